from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Union


class NodeType(str, Enum):
    SOURCE = "sourceNode"
    TARGET = "targetNode"
    GROUP = "groupNode"
    FAKE = "fakeNode"
    BOTH = "sourceTargetNode"


class TransformName(str, Enum):
    """Transform codes of the mapping language."""

    CREATE = "create"
    COPY = "copy"
    TRUNCATE = "truncate"
    ESCAPE = "escape"
    CAST = "cast"
    APPEND = "append"
    TRANSLATE = "translate"
    REFERENCE = "reference"
    DATE_OP = "dateOp"
    UUID = "uuid"
    POINTER = "pointer"
    EVALUATE = "evaluate"
    CC = "cc"
    C = "c"
    QTY = "qty"
    ID = "id"
    CP = "cp"


# Editor-only transform node holding a literal value.
CONST_TRANSFORM = "const"

TRANSFORM_DESCRIPTIONS = {
    TransformName.CREATE: "Use the standard API to create a new object of the given type",
    TransformName.COPY: "Simply copy the source value",
    TransformName.TRUNCATE: "Source value is truncated to the given length",
    TransformName.ESCAPE: "Source value is escaped from one format to another",
    TransformName.CAST: "Source value is converted to the given type",
    TransformName.APPEND: "Source values are appended to each other",
    TransformName.TRANSLATE: "Source value is translated using a ConceptMap",
    TransformName.REFERENCE: "Return a reference to the given target resource",
    TransformName.DATE_OP: "Perform a date operation",
    TransformName.UUID: "Generate a random UUID",
    TransformName.POINTER: "Return the appropriate string to put in a reference",
    TransformName.EVALUATE: "Execute the supplied FHIRPath expression",
    TransformName.CC: "Create a CodeableConcept",
    TransformName.C: "Create a Coding",
    TransformName.QTY: "Create a Quantity",
    TransformName.ID: "Create an Identifier",
    TransformName.CP: "Create a ContactPoint",
}

# Transforms taking no argument at all.
NULLARY_TRANSFORMS = {TransformName.UUID}


@dataclass(frozen=True, slots=True)
class TransformParameter:
    """Reference to a graph node, optionally narrowed to one of its fields."""

    id: str
    resource: str
    alias: str
    field: str | None = None
    origin: NodeType = NodeType.BOTH

    def expression(self) -> str:
        return f"{self.alias}.{self.field}" if self.field else self.alias


@dataclass(frozen=True, slots=True)
class ValueParameter:
    value: str | int | float | bool

    def expression(self) -> str:
        if isinstance(self.value, bool):
            return "true" if self.value else "false"
        if isinstance(self.value, (int, float)):
            return str(self.value)
        escaped = str(self.value).replace("\\", "\\\\").replace("'", "\\'")
        return f"'{escaped}'"


Parameter = Union[TransformParameter, ValueParameter]
