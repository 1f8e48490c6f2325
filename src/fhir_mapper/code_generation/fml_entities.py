"""Entities of the rule forest built from one mapping graph.

The forest is an arena keyed by entity id: ``father`` holds the id of the
parent entity and ``children`` the ordered ids of the child entities.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator

from ..model.fhir_types import field_type_name, is_resource
from ..model.graph import GraphNode
from .fml_types import NodeType, Parameter, TransformName, TransformParameter

SOURCE_ANCHOR = "fakeSource"
TARGET_ANCHOR = "fakeTarget"
ANCHORS = (SOURCE_ANCHOR, TARGET_ANCHOR)


@dataclass(slots=True)
class FMLBaseEntity:
    id: str
    type: NodeType
    father: str | None = None
    children: list[str] = field(default_factory=list)


@dataclass(slots=True)
class FMLNode(FMLBaseEntity):
    """A source or target variable of the group."""

    resource: str | None = None
    alias: str | None = None
    url: str | None = None
    is_resource_type: bool = False

    @classmethod
    def from_graph_node(cls, node: GraphNode, type_: NodeType) -> "FMLNode":
        resource, url, is_res = describe_node(node)
        return cls(
            id=node.id,
            type=type_,
            resource=resource,
            alias=node_alias(node),
            url=url,
            is_resource_type=is_res,
        )


@dataclass(slots=True)
class FMLGroupNode(FMLNode):
    """Call of another group, bound to the wired source and target fields."""

    name: str = ""
    sources: list[TransformParameter] = field(default_factory=list)
    targets: list[TransformParameter] = field(default_factory=list)
    expected_sources: int = 0
    expected_targets: int = 0
    label: str = ""

    def add_source(self, param: TransformParameter) -> None:
        self.sources.append(param)

    def add_target(self, param: TransformParameter) -> None:
        self.targets.append(param)

    @property
    def references(self) -> list[str]:
        return [param.id for param in self.targets]

    @property
    def is_complete(self) -> bool:
        return (
            len(self.sources) == self.expected_sources
            and len(self.targets) == self.expected_targets
        )


@dataclass(slots=True)
class FMLRule(FMLBaseEntity):
    """One mapping statement; its id is the label it is emitted with.

    ``variable`` is set for rules that only bind a nested variable
    (``src.field as var``) for the rules nested below them.
    """

    action: TransformName | None = None
    left_param: TransformParameter | None = None
    right_params: list[Parameter] = field(default_factory=list)
    is_reference: bool = False
    condition: str | None = None
    variable: str | None = None
    # ids of the nodes whose definition must be emitted first
    references: list[str] = field(default_factory=list)

    @property
    def right_param(self) -> Parameter | None:
        return self.right_params[0] if self.right_params else None

    @property
    def is_binding(self) -> bool:
        return self.variable is not None


def node_alias(node: GraphNode) -> str:
    return node.data.alias or f"var_{node.id}"


def describe_node(node: GraphNode) -> tuple[str | None, str | None, bool]:
    """Type name, canonical url and resource flag of a graph node's payload."""
    type_ = node.data.type
    if type_ is None:
        return None, None, False
    if is_resource(type_):
        return type_.name, type_.url, True
    return field_type_name(type_), type_.url, False


class FMLForest:
    """Arena holding every entity of one compile pass."""

    def __init__(self) -> None:
        self._entities: dict[str, FMLBaseEntity] = {}
        for anchor in ANCHORS:
            self.add(FMLBaseEntity(id=anchor, type=NodeType.FAKE))

    def __contains__(self, entity_id: str) -> bool:
        return entity_id in self._entities

    def __iter__(self) -> Iterator[FMLBaseEntity]:
        return iter(self._entities.values())

    def __len__(self) -> int:
        return len(self._entities)

    def add(self, entity: FMLBaseEntity) -> FMLBaseEntity:
        if entity.id in self._entities:
            raise ValueError(f"duplicate entity id '{entity.id}'")
        self._entities[entity.id] = entity
        return entity

    def get(self, entity_id: str) -> FMLBaseEntity:
        return self._entities[entity_id]

    @property
    def source_anchor(self) -> FMLBaseEntity:
        return self._entities[SOURCE_ANCHOR]

    @property
    def target_anchor(self) -> FMLBaseEntity:
        return self._entities[TARGET_ANCHOR]

    def link(self, parent: FMLBaseEntity, child: FMLBaseEntity) -> None:
        child.father = parent.id
        parent.children.append(child.id)

    def unlink(self, child: FMLBaseEntity) -> None:
        if child.father is not None:
            self._entities[child.father].children.remove(child.id)
            child.father = None

    def get_father(self, entity: FMLBaseEntity) -> FMLBaseEntity | None:
        return self._entities[entity.father] if entity.father is not None else None

    def get_children(self, entity: FMLBaseEntity) -> list[FMLBaseEntity]:
        return [self._entities[child] for child in entity.children]

    def get_roots(self) -> list[FMLBaseEntity]:
        return [
            entity
            for entity in self._entities.values()
            if entity.father is None and entity.id not in ANCHORS
        ]

    def adopt_roots(self) -> None:
        """Hangs every rootless entity below the matching anchor."""
        for entity in self.get_roots():
            anchor = self.target_anchor if entity.type == NodeType.TARGET else self.source_anchor
            self.link(anchor, entity)

    def get_path(self, entity: FMLBaseEntity) -> list[FMLBaseEntity]:
        """Entities from the top of the tree down to ``entity``, anchors excluded."""
        path: list[FMLBaseEntity] = []
        current: FMLBaseEntity | None = entity
        while current is not None and current.id not in ANCHORS:
            path.append(current)
            current = self.get_father(current)
        path.reverse()
        return path

    def nodes(self, type_: NodeType) -> list[FMLNode]:
        return [
            entity
            for entity in self._entities.values()
            if isinstance(entity, FMLNode)
            and not isinstance(entity, FMLGroupNode)
            and entity.type == type_
        ]

    def root_nodes(self, type_: NodeType) -> list[FMLNode]:
        """Variables of ``type_`` that are group parameters rather than nested bindings."""
        anchor = TARGET_ANCHOR if type_ == NodeType.TARGET else SOURCE_ANCHOR
        return [node for node in self.nodes(type_) if node.father in (None, anchor)]
