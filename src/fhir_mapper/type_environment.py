from __future__ import annotations

import logging
import re
from typing import Mapping, Sequence

from .defined_types import canonical_url, is_defined_type
from .model.fhir_types import (
    AlternativesField,
    ComplexField,
    Field,
    PrimitiveField,
    PrimitiveResource,
    ReferenceField,
    Resource,
    StructuredResource,
    describe_field_type,
    is_code_field,
    is_element_like,
)
from .model.valueset import ValueSet, ValueSetConcept
from .type_tree import TypeTree

logger = logging.getLogger(__name__)

TypeMap = Mapping[str, Resource]
ValueSetMap = Mapping[str, ValueSet]

CHOICE_SUFFIX = "[x]"


class TypeEnvironment:
    """Read-only queries over a loaded set of types and value sets.

    Types are addressed by canonical url or, for the types defined by the core
    specification, by their bare name. Lookups of unknown types return ``None``
    (or an empty list) instead of raising.
    """

    def __init__(self, type_map: TypeMap, valueset_map: ValueSetMap | None = None) -> None:
        self._type_map = dict(type_map)
        self._valueset_map = dict(valueset_map or {})

        resources = {url: t for url, t in self._type_map.items() if t.kind == "resource"}
        elements = {url: t for url, t in self._type_map.items() if t.kind != "resource"}

        self._resource_tree = TypeTree(resources) if resources else None
        self._element_tree = TypeTree(elements) if elements else None

    @property
    def resource_tree(self) -> TypeTree | None:
        return self._resource_tree

    @property
    def element_tree(self) -> TypeTree | None:
        return self._element_tree

    def _normalize(self, identifier: str) -> str:
        if identifier in self._type_map:
            return identifier
        if is_defined_type(identifier):
            return canonical_url(identifier)
        return identifier

    def has_type(self, identifier: str) -> bool:
        return self.get_type(identifier) is not None

    def get_type(self, identifier: str) -> Resource | None:
        return self._type_map.get(self._normalize(identifier))

    def get_type_fields(self, identifier: str) -> dict[str, Field] | None:
        type_ = self.get_type(identifier)
        if isinstance(type_, StructuredResource):
            return type_.fields
        return None

    def resolve_path_type(self, identifier: str, path_parts: Sequence[str]) -> Field | None:
        """Resolves the field reached by ``identifier.part1.part2...``."""
        if not path_parts:
            return None

        fields = self.get_type_fields(identifier)
        if fields is None:
            return None

        head, *tail = path_parts
        field = lookup_field(fields, head)
        if field is None:
            return None

        return self._resolve_tail(field, tail)

    def _resolve_tail(self, field: Field, path_parts: Sequence[str]) -> Field | None:
        while path_parts:
            head, *path_parts = path_parts

            if is_element_like(field):
                nxt = lookup_field(field.fields, head)
            elif isinstance(field, ComplexField):
                nxt = self.resolve_path_type(field.value, [head])
            elif isinstance(field, (PrimitiveField, ReferenceField, AlternativesField)):
                return None
            else:
                raise TypeError(f"unhandled field kind: {field!r}")

            if nxt is None:
                return None
            field = nxt

        return field

    def get_implementations(self, identifier: str) -> list[Resource]:
        """Concrete types deriving from ``identifier`` (itself excluded)."""
        tree = self._tree_for(identifier)
        if tree is None:
            return []
        node = tree.get_node(self._normalize(identifier)) or tree.get_node(identifier)
        if node is None:
            return []
        return [n.value for n in tree.get_descendants(node) if not n.value.abstract]

    def is_subtype_of(self, t1: str, t2: str) -> bool:
        """Whether ``t1`` equals ``t2`` or derives from it."""
        tree = self._tree_for(t1)
        if tree is None:
            return False
        node = tree.get_node(self._normalize(t1)) or tree.get_node(t1)
        other = tree.get_node(self._normalize(t2)) or tree.get_node(t2)
        if node is None or other is None:
            return False
        if node.url == other.url:
            return True
        return any(ancestor.url == other.url for ancestor in tree.get_ancestors(node))

    def _tree_for(self, identifier: str) -> TypeTree | None:
        normalized = self._normalize(identifier)
        for tree in (self._resource_tree, self._element_tree):
            if tree is not None and (
                tree.contains_node(normalized) or tree.contains_node(identifier)
            ):
                return tree
        return None

    def get_valueset(self, url: str) -> ValueSet | None:
        return self._valueset_map.get(url.split("|", 1)[0])

    def get_options(self, valueset_url: str) -> list[ValueSetConcept]:
        valueset = self.get_valueset(valueset_url)
        if valueset is None:
            logger.debug("unknown value set '%s'", valueset_url)
            return []
        return valueset.concepts

    def get_field_options(self, identifier: str, path_parts: Sequence[str]) -> list[ValueSetConcept]:
        field = self.resolve_path_type(identifier, path_parts)
        if not is_code_field(field) or field.valueSet is None:
            return []
        return self.get_options(field.valueSet.url)

    def describe(self, identifier: str, path_parts: Sequence[str]) -> str | None:
        field = self.resolve_path_type(identifier, path_parts)
        return describe_field_type(field) if field is not None else None

    def is_primitive(self, identifier: str) -> bool:
        return isinstance(self.get_type(identifier), PrimitiveResource)


def lookup_field(fields: Mapping[str, Field], name: str) -> Field | None:
    """Finds ``name`` among ``fields``, resolving concrete choice names.

    ``valueQuantity`` selects the ``Quantity`` alternative of ``value[x]``.
    """
    field = fields.get(name)
    if field is not None:
        return field

    for key, candidate in fields.items():
        if not key.endswith(CHOICE_SUFFIX):
            continue
        base = key[: -len(CHOICE_SUFFIX)]
        match = re.fullmatch(re.escape(base) + r"([A-Z]\w*)", name)
        if match is None:
            continue
        type_name = match.group(1)
        options = candidate.value if isinstance(candidate, AlternativesField) else [candidate]
        for option in options:
            option_type = _choice_type_name(option)
            if option_type is not None and option_type[:1].upper() + option_type[1:] == type_name:
                return option
    return None


def _choice_type_name(field: Field) -> str | None:
    if isinstance(field, (PrimitiveField, ComplexField)):
        return field.value
    if isinstance(field, ReferenceField):
        return "Reference"
    return None
