from enum import Enum

from pydantic import BaseModel


class CompletionType(str, Enum):
    VARIABLE = "variable"
    FUNCTION = "function"
    PROPERTY = "property"
    CONSTANT = "constant"


class CompletionOption(BaseModel):
    label: str
    type: CompletionType
    detail: str | None = None
    info: str | None = None


class CompletionList(BaseModel):
    options: list[CompletionOption]


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


class Diagnostic(BaseModel):
    severity: Severity
    message: str


class DiagnosticList(BaseModel):
    diagnostics: list[Diagnostic]
