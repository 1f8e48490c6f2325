from __future__ import annotations

from typing import Sequence

from ..code_generation.fml_types import NULLARY_TRANSFORMS, TransformName
from ..model.completion import Diagnostic, Severity
from ..scope_environment import ScopeEnvironment
from ..type_environment import TypeEnvironment

ALLOWED_TRANSFORMS = [name.value for name in TransformName]


def check_transform_call(name: str, arg_count: int) -> list[Diagnostic]:
    try:
        transform = TransformName(name)
    except ValueError:
        return [
            Diagnostic(
                severity=Severity.ERROR,
                message=(
                    f'Transform "{name}" is not allowed. '
                    f"Allowed transform values are: {', '.join(ALLOWED_TRANSFORMS)}."
                ),
            )
        ]

    if transform in NULLARY_TRANSFORMS and arg_count > 0:
        return [
            Diagnostic(
                severity=Severity.ERROR,
                message=f'Transform "{transform.value}" takes 0 parameters.',
            )
        ]

    return []


def check_property_chain(
    type_env: TypeEnvironment,
    scope: ScopeEnvironment,
    variable: str,
    path: Sequence[str] = (),
) -> list[Diagnostic]:
    type_ = scope.get(variable)
    if type_ is None:
        return [Diagnostic(severity=Severity.ERROR, message=f'Unknown variable "{variable}".')]

    if not type_env.has_type(type_):
        return [
            Diagnostic(
                severity=Severity.WARNING,
                message=f'Type "{type_}" of variable "{variable}" is not loaded.',
            )
        ]

    if path and type_env.resolve_path_type(type_, list(path)) is None:
        return [
            Diagnostic(
                severity=Severity.ERROR,
                message=f'"{".".join(path)}" is not a property of {variable} ({type_}).',
            )
        ]

    return []
