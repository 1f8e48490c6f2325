"""Reduction of raw FHIR StructureDefinitions and ValueSets.

The raw JSON is validated with the ``fhir.resources`` R4B models first and then
reduced to the ``Resource``/``Field`` trees the type environment works on.
"""
from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping

from fhir.resources.R4B.codesystem import CodeSystem
from fhir.resources.R4B.elementdefinition import ElementDefinition
from fhir.resources.R4B.structuredefinition import StructureDefinition
from fhir.resources.R4B.valueset import ValueSet as FhirValueSet
from pydantic import ValidationError

from .defined_types import normalize_type_code
from .errors import (
    InvalidStructureDefinition,
    InvalidValueSet,
    MissingSnapshot,
    MissingTypeCode,
    StructuralViolation,
)
from .model.fhir_types import (
    AlternativesField,
    BackboneElementField,
    BindingStrength,
    ComplexField,
    ElementField,
    Field,
    PrimitiveField,
    PrimitiveResource,
    ReferenceField,
    Resource,
    StructuredResource,
    ValueSetBinding,
    is_code_field,
    is_element_like,
)
from .model.valueset import ValueSet, ValueSetConcept, ValueSetEntry

logger = logging.getLogger(__name__)

BOUND_STRENGTHS = {strength.value for strength in BindingStrength}


def is_base_definition(name: str, type_: str) -> bool:
    """Heuristic separating base types from constrained profiles.

    A definition is kept when its name and its type share a substring
    relationship (``Patient``/``Patient``, ``SimpleQuantity``/``Quantity``).
    """
    return type_ in name or name in type_


def parse_structure_definition(raw: dict[str, Any]) -> Resource | None:
    """Reduces a raw StructureDefinition to a ``Resource``.

    Returns ``None`` for definitions that look like constrained profiles.

    Raises:
        InvalidStructureDefinition: the JSON is not a valid StructureDefinition
        MissingSnapshot: a non-primitive type has neither snapshot nor differential
        StructuralViolation: an element is nested below a non-element field
        MissingTypeCode: an element type carries no code
    """
    try:
        sd = StructureDefinition.model_validate(raw)
    except ValidationError as e:
        raise InvalidStructureDefinition(raw.get("name"), str(e)) from e

    if not is_base_definition(sd.name, sd.type):
        logger.debug("skipping profile '%s' of type '%s'", sd.name, sd.type)
        return None

    if sd.kind == "primitive-type":
        return PrimitiveResource(
            url=sd.url,
            name=sd.name,
            title=sd.title,
            description=sd.description,
            derivation=sd.derivation,
            baseDefinition=sd.baseDefinition,
            value=sd.type,
            abstract=sd.abstract,
        )

    elements = _elements(sd)
    if elements is None:
        raise MissingSnapshot(sd.name)

    fields: dict[str, Field] = {}
    for elem in elements:
        parts = elem.path.split(".")
        if len(parts) == 1:
            continue

        # Patient.contact.name -> prefix ["contact"], last "name"
        prefix = parts[1:-1]
        last = parts[-1]

        cursor = fields
        for part in prefix:
            owner = cursor.get(part)
            if owner is None or not is_element_like(owner):
                raise StructuralViolation(part, elem.path)
            cursor = owner.fields

        field = _parse_type(elem, url=f"{sd.url}#{elem.path}", name=last)
        if field is None:
            logger.debug("ignoring untyped element '%s' of '%s'", elem.path, sd.name)
            continue

        binding = _binding(elem)
        if binding is not None and is_code_field(field):
            field.valueSet = binding

        cursor[last] = field

    return StructuredResource(
        url=sd.url,
        name=sd.name,
        title=sd.title,
        kind=sd.kind,
        description=sd.description,
        abstract=sd.abstract,
        derivation=sd.derivation,
        baseDefinition=sd.baseDefinition,
        fields=fields,
    )


def _elements(sd: StructureDefinition) -> list[ElementDefinition] | None:
    if sd.snapshot is not None and sd.snapshot.element:
        return sd.snapshot.element
    if sd.differential is not None and sd.differential.element:
        return sd.differential.element
    return None


def _binding(elem: ElementDefinition) -> ValueSetBinding | None:
    binding = elem.binding
    if binding is None or not binding.valueSet:
        return None
    if binding.strength not in BOUND_STRENGTHS:
        return None
    return ValueSetBinding(
        url=strip_version(binding.valueSet),
        strength=BindingStrength(binding.strength),
    )


def strip_version(canonical: str) -> str:
    return canonical.split("|", 1)[0]


def _parse_type(elem: ElementDefinition, *, url: str, name: str) -> Field | None:
    types = elem.type or []
    if not types:
        return None

    metadata = {
        "url": url,
        "name": name,
        "path": elem.path,
        "min": elem.min if elem.min is not None else 0,
        "max": _parse_max(elem.max),
    }

    if len(types) > 1:
        return AlternativesField(
            value=[f for f in (_parse_one(t, metadata) for t in types) if f is not None],
            **metadata,
        )

    return _parse_one(types[0], metadata)


def _parse_max(value: str | None) -> int | str:
    if value is None or value == "*":
        return "*"
    return int(value)


def _parse_one(type_, metadata: dict[str, Any]) -> Field | None:
    if not type_.code:
        raise MissingTypeCode(metadata["path"])

    code = normalize_type_code(type_.code)
    if code == "BackboneElement":
        return BackboneElementField(fields={}, **metadata)
    if code == "Element":
        return ElementField(fields={}, **metadata)
    if code == "Reference":
        return ReferenceField(value=list(type_.targetProfile or []), **metadata)
    if code[0].islower():
        return PrimitiveField(value=code, **metadata)
    if code[0].isupper():
        return ComplexField(value=code, **metadata)

    return None


# ----------------------------------------------------------------------
# Value sets
# ----------------------------------------------------------------------
def parse_valueset_map(resources: Mapping[str, dict[str, Any]]) -> dict[str, ValueSet]:
    """Reduces raw ValueSets, filling bare includes from the matching CodeSystem."""
    code_systems = {
        raw["url"]: raw
        for raw in resources.values()
        if raw.get("resourceType") == "CodeSystem" and raw.get("url")
    }

    valuesets: dict[str, ValueSet] = {}
    for raw in resources.values():
        if raw.get("resourceType") != "ValueSet":
            continue
        valueset = parse_valueset(raw, code_systems)
        valuesets[valueset.url] = valueset
    return valuesets


def parse_valueset(
    raw: dict[str, Any], code_systems: Mapping[str, dict[str, Any]] | None = None
) -> ValueSet:
    try:
        vs = FhirValueSet.model_validate(raw)
    except ValidationError as e:
        raise InvalidValueSet(raw.get("url"), str(e)) from e
    if not vs.url:
        raise InvalidValueSet(vs.id, "missing url")

    code_systems = code_systems or {}
    include: list[ValueSetEntry] = []
    for inc in (vs.compose.include if vs.compose else None) or []:
        if inc.concept:
            concepts = [
                ValueSetConcept(code=c.code, display=c.display) for c in inc.concept
            ]
        elif inc.system in code_systems:
            concepts = _code_system_concepts(code_systems[inc.system])
        else:
            concepts = []
        include.append(ValueSetEntry(system=inc.system, concept=concepts))

    return ValueSet(id=vs.id, url=strip_version(vs.url), include=include)


def _code_system_concepts(raw: dict[str, Any]) -> list[ValueSetConcept]:
    try:
        cs = CodeSystem.model_validate(raw)
    except ValidationError as e:
        logger.warning("ignoring invalid CodeSystem '%s'", raw.get("url"))
        logger.debug(e)
        return []

    def flatten(concepts: Iterable) -> Iterable[ValueSetConcept]:
        for concept in concepts or []:
            yield ValueSetConcept(
                code=concept.code,
                display=concept.display,
                definition=concept.definition,
            )
            yield from flatten(concept.concept)

    return list(flatten(cs.concept))


def get_code_systems(raw_valueset: dict[str, Any]) -> list[str]:
    compose = raw_valueset.get("compose") or {}
    excluded = {i.get("system") for i in compose.get("exclude") or []}
    systems: list[str] = []
    for inc in compose.get("include") or []:
        system = inc.get("system")
        if system and system not in excluded and system not in systems:
            systems.append(system)
    return systems


def get_valuesets_url(resource: Resource | None) -> list[str]:
    """Urls of the value sets bound to the CODE fields of ``resource``."""
    if resource is None or isinstance(resource, PrimitiveResource):
        return []

    urls: list[str] = []

    def walk(fields: dict[str, Field]) -> None:
        for field in fields.values():
            if is_code_field(field) and field.valueSet is not None:
                if field.valueSet.url not in urls:
                    urls.append(field.valueSet.url)
            elif is_element_like(field):
                walk(field.fields)

    walk(resource.fields)
    return urls
