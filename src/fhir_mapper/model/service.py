from pydantic import BaseModel

from .fhir_types import Field, Resource
from .valueset import ValueSetConcept


class PathInput(BaseModel):
    path: list[str]


class FieldList(BaseModel):
    fields: list[Field]


class ResolvedField(BaseModel):
    field: Field
    type: str


class ResourceList(BaseModel):
    resources: list[Resource]


class ValueSetOptions(BaseModel):
    url: str
    options: list[ValueSetConcept]


class CompletionInput(BaseModel):
    scope: dict[str, str] = {}
    variable: str | None = None
    path: list[str] = []
    # complete the codes of the bound field reached by ``variable.path``
    codes: bool = False


class ValidationInput(BaseModel):
    scope: dict[str, str] = {}
    variable: str | None = None
    path: list[str] = []
    transform: str | None = None
    arg_count: int = 0
