"""Reduced representation of FHIR types.

A ``Resource`` corresponds to one ``StructureDefinition`` and a ``Field`` to
one element inside it. Both are tagged unions discriminated by ``kind`` so
they survive a round trip through the reduced JSON metadata.
"""
from __future__ import annotations

from enum import Enum
from typing import Annotated, Iterator, Literal, Union

from pydantic import BaseModel, Discriminator, TypeAdapter


class Datatype(str, Enum):
    """Primitive datatypes the mapping language can read and write."""

    BASE64BINARY = "base64Binary"
    BOOLEAN = "boolean"
    CANONICAL = "canonical"
    CODE = "code"
    DATE = "date"
    DATETIME = "dateTime"
    DECIMAL = "decimal"
    ID = "id"
    INTEGER = "integer"
    INSTANT = "instant"
    MARKDOWN = "markdown"
    OID = "oid"
    POSITIVEINT = "positiveInt"
    STRING = "string"
    TIME = "time"
    UNSIGNEDINT = "unsignedInt"
    URI = "uri"
    URL = "url"
    UUID = "uuid"
    XHTML = "xhtml"


class BindingStrength(str, Enum):
    REQUIRED = "required"
    PREFERRED = "preferred"
    EXTENSIBLE = "extensible"


class ValueSetBinding(BaseModel):
    url: str
    strength: BindingStrength


Cardinality = Union[int, Literal["*"]]


class BaseField(BaseModel):
    url: str | None = None
    name: str
    path: str
    min: int = 0
    max: Cardinality = "*"


class PrimitiveField(BaseField):
    kind: Literal["primitive"] = "primitive"
    value: str
    valueSet: ValueSetBinding | None = None

    @property
    def datatype(self) -> Datatype | None:
        try:
            return Datatype(self.value)
        except ValueError:
            return None


class BackboneElementField(BaseField):
    kind: Literal["backbone-element"] = "backbone-element"
    fields: dict[str, "Field"] = {}


class ElementField(BaseField):
    kind: Literal["element"] = "element"
    fields: dict[str, "Field"] = {}


class ComplexField(BaseField):
    kind: Literal["complex"] = "complex"
    value: str


class ReferenceField(BaseField):
    kind: Literal["reference"] = "reference"
    value: list[str] = []


class AlternativesField(BaseField):
    kind: Literal["alternatives"] = "alternatives"
    value: list["Field"] = []


Field = Annotated[
    Union[
        PrimitiveField,
        BackboneElementField,
        ElementField,
        ComplexField,
        ReferenceField,
        AlternativesField,
    ],
    Discriminator("kind"),
]


class BaseResource(BaseModel):
    url: str
    name: str
    title: str | None = None
    abstract: bool = False
    description: str | None = None
    derivation: str | None = None
    baseDefinition: str | None = None


class StructuredResource(BaseResource):
    kind: Literal["resource", "complex-type", "logical"]
    fields: dict[str, Field] = {}


class PrimitiveResource(BaseResource):
    kind: Literal["primitive-type"] = "primitive-type"
    value: str


Resource = Annotated[
    Union[StructuredResource, PrimitiveResource],
    Discriminator("kind"),
]

# Node payloads in a mapping graph carry either a whole type or one of its fields.
AnyType = Annotated[
    Union[
        StructuredResource,
        PrimitiveResource,
        PrimitiveField,
        BackboneElementField,
        ElementField,
        ComplexField,
        ReferenceField,
        AlternativesField,
    ],
    Discriminator("kind"),
]

for _model in (BackboneElementField, ElementField, AlternativesField, StructuredResource):
    _model.model_rebuild()

resource_adapter: TypeAdapter[Resource] = TypeAdapter(Resource)


def is_element_like(field: Field) -> bool:
    return isinstance(field, (ElementField, BackboneElementField))


def is_code_field(field: Field | None) -> bool:
    return isinstance(field, PrimitiveField) and field.value == Datatype.CODE.value


def is_resource(obj: object) -> bool:
    return isinstance(obj, (StructuredResource, PrimitiveResource))


def describe_field_type(field: Field) -> str:
    """Human readable type of a field, as shown next to completion options."""
    if isinstance(field, PrimitiveField):
        return field.value
    if isinstance(field, BackboneElementField):
        return "BackboneElement"
    if isinstance(field, ElementField):
        return "Element"
    if isinstance(field, ComplexField):
        return field.value
    if isinstance(field, ReferenceField):
        return f"Reference({'|'.join(_short_name(url) for url in field.value)})"
    if isinstance(field, AlternativesField):
        return "|".join(describe_field_type(f) for f in field.value)
    raise TypeError(f"unhandled field kind: {field!r}")


def field_type_name(field: Field) -> str:
    """Name of the type a variable bound to ``field`` holds."""
    if isinstance(field, BackboneElementField):
        return "BackboneElement"
    if isinstance(field, ElementField):
        return "Element"
    if isinstance(field, (ComplexField, PrimitiveField)):
        return field.value
    if isinstance(field, ReferenceField):
        return "Reference"
    if isinstance(field, AlternativesField):
        return field.name
    raise TypeError(f"unhandled field kind: {field!r}")


def iter_field_paths(resource: Resource) -> Iterator[str]:
    """Yields the schema path of every field of ``resource`` in declaration order."""
    if isinstance(resource, PrimitiveResource):
        return

    def walk(fields: dict[str, Field]) -> Iterator[str]:
        for field in fields.values():
            yield field.path
            if is_element_like(field):
                yield from walk(field.fields)

    yield from walk(resource.fields)


def _short_name(url: str) -> str:
    return url.rsplit("/", 1)[-1]
