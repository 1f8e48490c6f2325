"""Completion queries for the expression editor.

The editor resolves the cursor position itself and asks for the options of
either a bare identifier (variables and transform functions) or a property
access chain ``variable.part1.part2.``.
"""
from __future__ import annotations

import logging
from typing import Sequence

from ..code_generation.fml_types import TRANSFORM_DESCRIPTIONS
from ..model.completion import CompletionOption, CompletionType
from ..model.fhir_types import (
    ComplexField,
    Field,
    describe_field_type,
    is_code_field,
    is_element_like,
)
from ..scope_environment import ScopeEnvironment
from ..type_environment import TypeEnvironment

logger = logging.getLogger(__name__)


def transform_functions() -> list[CompletionOption]:
    return [
        CompletionOption(label=name.value, type=CompletionType.FUNCTION, info=info)
        for name, info in TRANSFORM_DESCRIPTIONS.items()
    ]


def complete_variables(scope: ScopeEnvironment) -> list[CompletionOption]:
    variables = [
        CompletionOption(label=name, type=CompletionType.VARIABLE, detail=scope.get(name))
        for name in scope.get_all()
    ]
    return variables + transform_functions()


def complete_properties(
    type_env: TypeEnvironment,
    scope: ScopeEnvironment,
    variable: str,
    path: Sequence[str] = (),
) -> list[CompletionOption]:
    """Fields reachable after ``variable.path``; empty when anything is unknown."""
    type_ = scope.get(variable)
    if type_ is None:
        logger.debug("variable '%s' is not in scope", variable)
        return []

    if not path:
        return _field_options(type_env.get_type_fields(type_) or {})

    last = type_env.resolve_path_type(type_, list(path))
    if last is None:
        return []

    if is_element_like(last):
        return _field_options(last.fields)

    if isinstance(last, ComplexField):
        return _field_options(type_env.get_type_fields(last.value) or {})

    return []


def complete_codes(type_env: TypeEnvironment, field: Field | None) -> list[CompletionOption]:
    """Closed choice list of a CODE field bound to a value set."""
    if not is_code_field(field) or field.valueSet is None:
        return []
    return [
        CompletionOption(label=concept.code, type=CompletionType.CONSTANT, detail=concept.display)
        for concept in type_env.get_options(field.valueSet.url)
    ]


def _field_options(fields: dict[str, Field]) -> list[CompletionOption]:
    return [
        CompletionOption(
            label=field.name,
            type=CompletionType.PROPERTY,
            detail=describe_field_type(field),
        )
        for field in fields.values()
    ]
