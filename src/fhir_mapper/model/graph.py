"""Snapshot of the editor's mapping canvas.

Field names follow the editor's JSON (``sourceHandle``, ``transformName``, ...)
so a canvas export can be validated as-is.
"""
from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field

from .fhir_types import AnyType


class GraphNodeType(str, Enum):
    SOURCE = "sourceNode"
    TARGET = "targetNode"
    TRANSFORM = "transformNode"
    GROUP = "groupNode"


class Argument(BaseModel):
    value: str | int | float | bool


class GraphNodeData(BaseModel):
    type: AnyType | None = None
    alias: str | None = None
    transformName: str | None = None
    args: list[Argument] = []
    # group nodes: the called group's name and its declared parameter names
    name: str | None = None
    sources: list[str] = []
    targets: list[str] = []


class GraphNode(BaseModel):
    id: str
    type: GraphNodeType
    data: GraphNodeData = Field(default_factory=GraphNodeData)


class GraphEdge(BaseModel):
    id: str
    source: str
    target: str
    sourceHandle: str | None = None
    targetHandle: str | None = None


class GroupGraph(BaseModel):
    name: str = "Main"
    nodes: list[GraphNode] = []
    edges: list[GraphEdge] = []


class MappingTemplate(BaseModel):
    name: str
    groups: list[GroupGraph] = []
