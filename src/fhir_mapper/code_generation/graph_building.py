"""Classification of graph edges into rules and assembly of the rule forest."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterator, Sequence

from ..errors import UnresolvedNodeReference
from ..model.fhir_types import (
    AnyType,
    ComplexField,
    Field,
    ReferenceField,
    StructuredResource,
    is_element_like,
)
from ..model.graph import GraphEdge, GraphNode, GraphNodeType, GroupGraph
from ..type_environment import TypeEnvironment, lookup_field
from .fml_entities import (
    ANCHORS,
    FMLBaseEntity,
    FMLForest,
    FMLGroupNode,
    FMLNode,
    FMLRule,
    describe_node,
    node_alias,
)
from .fml_types import (
    CONST_TRANSFORM,
    NodeType,
    Parameter,
    TransformName,
    TransformParameter,
    ValueParameter,
)
from .naming import LabelAllocator, normalize_group_name

logger = logging.getLogger(__name__)

# rule or group id -> entities that must be emitted before it
Dependencies = dict[str, list[FMLBaseEntity]]

VARIABLE_NODES = (GraphNodeType.SOURCE, GraphNodeType.TARGET)


def find_node(nodes: Sequence[GraphNode], node_id: str) -> GraphNode:
    for node in nodes:
        if node.id == node_id:
            return node
    raise UnresolvedNodeReference(node_id)


def to_fml_node_type(type_: GraphNodeType) -> NodeType:
    if type_ == GraphNodeType.SOURCE:
        return NodeType.SOURCE
    if type_ == GraphNodeType.TARGET:
        return NodeType.TARGET
    if type_ == GraphNodeType.GROUP:
        return NodeType.GROUP
    return NodeType.BOTH


def get_type(source_type: NodeType, target_type: NodeType) -> NodeType:
    if NodeType.GROUP in (source_type, target_type):
        return NodeType.GROUP
    if source_type == target_type:
        return source_type
    return NodeType.BOTH


def transform_param_from_node(node: GraphNode, field: str | None = None) -> TransformParameter:
    resource, _, _ = describe_node(node)
    return TransformParameter(
        id=node.id,
        resource=resource or "",
        alias=node_alias(node),
        field=field,
        origin=to_fml_node_type(node.type),
    )


def literal_from_node(node: GraphNode) -> ValueParameter | None:
    if not node.data.args:
        return None
    return ValueParameter(node.data.args[0].value)


def attach_parent_child(forest: FMLForest, parent: FMLBaseEntity, child: FMLBaseEntity) -> bool:
    """Links ``child`` below ``parent`` when their sides are compatible.

    Source entities only nest below source entities and target entities below
    target entities; rules reading one side and writing the other, and group
    calls, nest anywhere. A child keeps its first parent and a link that would
    close a cycle is refused.
    """
    if child.father is not None:
        return False
    if not (parent.type == child.type or child.type in (NodeType.BOTH, NodeType.GROUP)):
        return False

    current: FMLBaseEntity | None = parent
    while current is not None:
        if current.id == child.id:
            logger.warning("refusing to nest '%s' below its own descendant '%s'", child.id, parent.id)
            return False
        current = forest.get_father(current)

    forest.link(parent, child)
    return True


def walk(forest: FMLForest) -> Iterator[FMLBaseEntity]:
    """Pre-order walk from the source anchor, then the target anchor."""
    stack = [forest.target_anchor, forest.source_anchor]
    while stack:
        entity = stack.pop()
        yield entity
        stack.extend(reversed(forest.get_children(entity)))


def collect_dependencies(forest: FMLForest) -> Dependencies:
    """Maps every rule and group call to the paths of the variables it references."""
    dependencies: Dependencies = {}
    for entity in walk(forest):
        if not isinstance(entity, (FMLRule, FMLGroupNode)):
            continue

        seen: set[str] = set()
        path: list[FMLBaseEntity] = []
        for node_id in entity.references:
            for item in forest.get_path(forest.get(node_id)):
                if item.id not in seen and item.id != entity.id:
                    seen.add(item.id)
                    path.append(item)
        if path:
            dependencies[entity.id] = path
    return dependencies


@dataclass(slots=True)
class FMLForestResult:
    forest: FMLForest
    dependencies: Dependencies


class FMLForestBuilder:
    """Turns one group graph into a rule forest rooted at the two anchors."""

    def __init__(self, graph: GroupGraph, *, type_env: TypeEnvironment | None = None) -> None:
        self._graph = graph
        self._nodes = graph.nodes
        self._type_env = type_env

        self._forest = FMLForest()
        self._labels = LabelAllocator(reserved=[*ANCHORS, *(n.id for n in graph.nodes)])
        self._groups: dict[str, FMLGroupNode] = {}
        # rules and group calls waiting for the scope of the variables they use
        self._pending: list[tuple[FMLBaseEntity, list[str], FMLBaseEntity | None]] = []

    def build(self) -> FMLForestResult:
        self._create_nodes()
        for edge in self._graph.edges:
            self.build_rule_from_edge(edge)
        self._attach_groups()
        for entity, variables, default in self._pending:
            self._place(entity, variables, default)
        self._forest.adopt_roots()
        return FMLForestResult(
            forest=self._forest,
            dependencies=collect_dependencies(self._forest),
        )

    # ------------------------------------------------------------------
    # Forest construction
    # ------------------------------------------------------------------
    def _create_nodes(self) -> None:
        for node in self._nodes:
            if node.type in VARIABLE_NODES:
                self._forest.add(FMLNode.from_graph_node(node, to_fml_node_type(node.type)))

    def _attach_groups(self) -> None:
        for group in self._groups.values():
            if not group.is_complete:
                logger.warning(
                    "skipping group node '%s': %d of %d sources and %d of %d targets connected",
                    group.id,
                    len(group.sources),
                    group.expected_sources,
                    len(group.targets),
                    group.expected_targets,
                )
                continue

            group.label = self._labels.allocate(group.name)
            self._forest.add(group)
            default = self._forest.get(group.sources[0].id) if group.sources else None
            self._defer(group, [p.id for p in (*group.sources, *group.targets)], default)

    def _entity(self, node: GraphNode) -> FMLBaseEntity:
        return self._forest.get(node.id)

    def _new_rule(self, base: str, type_: NodeType, **kwargs) -> FMLRule:
        rule = FMLRule(id=self._labels.allocate(base), type=type_, **kwargs)
        self._forest.add(rule)
        return rule

    # ------------------------------------------------------------------
    # Edge classification
    # ------------------------------------------------------------------
    def build_rule_from_edge(self, edge: GraphEdge) -> FMLBaseEntity | None:
        source = find_node(self._nodes, edge.source)
        target = find_node(self._nodes, edge.target)

        # transform inputs are read when the transform's output edge is handled
        if target.type == GraphNodeType.TRANSFORM:
            return None

        if source.type == GraphNodeType.TRANSFORM:
            return self._handle_transform(source, target, edge)

        if GraphNodeType.GROUP in (source.type, target.type):
            return self._handle_group(source, target, edge)

        if source.id == target.id:
            return self._handle_create(target)

        kinds = (source.type, target.type)
        if kinds == (GraphNodeType.SOURCE, GraphNodeType.SOURCE):
            return self._handle_source_binding(source, target, edge)

        if kinds == (GraphNodeType.TARGET, GraphNodeType.TARGET):
            if edge.sourceHandle is None:
                return self._handle_reference(source, target, edge)
            if edge.targetHandle is None:
                return self._handle_target_binding(source, target, edge)
            return self._handle_target_copy(source, target, edge)

        if kinds == (GraphNodeType.SOURCE, GraphNodeType.TARGET):
            return self._handle_copy(source, target, edge)

        logger.warning(
            "ignoring edge '%s' from %s to %s", edge.id, source.type.value, target.type.value
        )
        return None

    def _handle_transform(
        self, transform: GraphNode, target: GraphNode, edge: GraphEdge
    ) -> FMLRule | None:
        if target.type != GraphNodeType.TARGET:
            logger.warning("ignoring edge '%s': transforms can only write to target nodes", edge.id)
            return None

        left = transform_param_from_node(target, edge.targetHandle)
        left_node = self._entity(target)
        name = transform.data.transformName

        if name == CONST_TRANSFORM:
            value = literal_from_node(transform)
            if value is None:
                logger.warning("ignoring constant node '%s' without a value", transform.id)
                return None
            rule = self._new_rule(
                TransformName.COPY.value,
                NodeType.TARGET,
                action=TransformName.COPY,
                left_param=left,
                right_params=[value],
                references=[target.id],
            )
            self._defer(rule, [target.id], left_node)
            return rule

        try:
            action = TransformName(name)
        except ValueError:
            logger.warning("ignoring transform node '%s' with unknown transform '%s'", transform.id, name)
            return None

        if action == TransformName.UUID:
            rule = self._new_rule(
                action.value,
                NodeType.TARGET,
                action=action,
                left_param=left,
                references=[target.id],
            )
            self._defer(rule, [target.id], left_node)
            return rule

        params = self._transform_inputs(transform)
        params.extend(ValueParameter(arg.value) for arg in transform.data.args)

        from_source = [
            p for p in params if isinstance(p, TransformParameter) and p.origin == NodeType.SOURCE
        ]
        from_target = [
            p.id for p in params if isinstance(p, TransformParameter) and p.origin == NodeType.TARGET
        ]

        rule = self._new_rule(
            action.value,
            NodeType.BOTH if from_source else NodeType.TARGET,
            action=action,
            left_param=left,
            right_params=params,
            references=list(dict.fromkeys([target.id, *from_target])),
        )
        parent = self._forest.get(from_source[0].id) if from_source else left_node
        variables = [p.id for p in params if isinstance(p, TransformParameter)]
        self._defer(rule, [target.id, *variables], parent)
        return rule

    def _transform_inputs(self, transform: GraphNode) -> list[Parameter]:
        params: list[Parameter] = []
        for edge in self._graph.edges:
            if edge.target != transform.id:
                continue

            node = find_node(self._nodes, edge.source)
            if node.type in VARIABLE_NODES:
                params.append(transform_param_from_node(node, edge.sourceHandle))
            elif node.type == GraphNodeType.TRANSFORM and node.data.transformName == CONST_TRANSFORM:
                value = literal_from_node(node)
                if value is not None:
                    params.append(value)
            else:
                logger.warning(
                    "ignoring input '%s' of transform node '%s'", node.id, transform.id
                )
        return params

    def _handle_create(self, node: GraphNode) -> FMLRule | None:
        variable = self._entity(node)
        if not isinstance(variable, FMLNode):
            return None

        rule = self._new_rule(
            TransformName.CREATE.value,
            variable.type,
            action=TransformName.CREATE,
            left_param=transform_param_from_node(node),
            right_params=[ValueParameter(variable.resource or "")],
        )
        attach_parent_child(self._forest, rule, variable)
        return rule

    def _handle_source_binding(
        self, parent: GraphNode, child: GraphNode, edge: GraphEdge
    ) -> FMLRule | None:
        if edge.sourceHandle is None:
            logger.warning("ignoring edge '%s' between source nodes without a field", edge.id)
            return None

        child_node = self._entity(child)
        rule = self._new_rule(
            node_alias(child),
            NodeType.SOURCE,
            right_params=[transform_param_from_node(parent, edge.sourceHandle)],
            variable=node_alias(child),
        )
        attach_parent_child(self._forest, self._entity(parent), rule)
        attach_parent_child(self._forest, rule, child_node)
        return rule

    def _handle_target_binding(
        self, parent: GraphNode, child: GraphNode, edge: GraphEdge
    ) -> FMLRule:
        child_node = self._entity(child)
        rule = self._new_rule(
            node_alias(child),
            NodeType.TARGET,
            left_param=transform_param_from_node(parent, edge.sourceHandle),
            variable=node_alias(child),
        )
        attach_parent_child(self._forest, self._entity(parent), rule)
        attach_parent_child(self._forest, rule, child_node)
        return rule

    def _handle_reference(
        self, referenced: GraphNode, owner: GraphNode, edge: GraphEdge
    ) -> FMLRule | None:
        if edge.targetHandle is None:
            logger.warning("ignoring edge '%s' between target nodes without a field", edge.id)
            return None

        action = (
            TransformName.REFERENCE
            if self._is_reference_field(owner, edge.targetHandle)
            else TransformName.COPY
        )
        rule = self._new_rule(
            action.value,
            NodeType.TARGET,
            action=action,
            left_param=transform_param_from_node(owner, edge.targetHandle),
            right_params=[transform_param_from_node(referenced)],
            is_reference=True,
            references=[owner.id, referenced.id],
        )
        self._defer(rule, [owner.id, referenced.id], self._entity(owner))
        return rule

    def _handle_target_copy(self, source: GraphNode, target: GraphNode, edge: GraphEdge) -> FMLRule:
        rule = self._new_rule(
            TransformName.COPY.value,
            NodeType.TARGET,
            action=TransformName.COPY,
            left_param=transform_param_from_node(target, edge.targetHandle),
            right_params=[transform_param_from_node(source, edge.sourceHandle)],
            references=[target.id, source.id],
        )
        self._defer(rule, [target.id, source.id], self._entity(target))
        return rule

    def _handle_copy(self, source: GraphNode, target: GraphNode, edge: GraphEdge) -> FMLRule:
        rule = self._new_rule(
            TransformName.COPY.value,
            get_type(to_fml_node_type(source.type), to_fml_node_type(target.type)),
            action=TransformName.COPY,
            left_param=transform_param_from_node(target, edge.targetHandle),
            right_params=[transform_param_from_node(source, edge.sourceHandle)],
            references=[target.id],
        )
        self._defer(rule, [source.id, target.id], self._entity(source))
        return rule

    def _handle_group(self, source: GraphNode, target: GraphNode, edge: GraphEdge) -> FMLGroupNode | None:
        if source.type == GraphNodeType.SOURCE and target.type == GraphNodeType.GROUP:
            group = self._group_node(target)
            group.add_source(transform_param_from_node(source, edge.sourceHandle))
        elif source.type == GraphNodeType.GROUP and target.type == GraphNodeType.TARGET:
            group = self._group_node(source)
            group.add_target(transform_param_from_node(target, edge.targetHandle))
        else:
            logger.warning(
                "ignoring edge '%s' from %s to %s", edge.id, source.type.value, target.type.value
            )
            return None
        return group

    def _group_node(self, node: GraphNode) -> FMLGroupNode:
        group = self._groups.get(node.id)
        if group is None:
            group = FMLGroupNode(
                id=node.id,
                type=NodeType.GROUP,
                alias=node_alias(node),
                name=normalize_group_name(node.data.name or "", default=f"Group{node.id}"),
                expected_sources=len(node.data.sources),
                expected_targets=len(node.data.targets),
            )
            self._groups[node.id] = group
        return group

    # ------------------------------------------------------------------
    # Variable scopes
    # ------------------------------------------------------------------
    def _defer(
        self, entity: FMLBaseEntity, variables: list[str], default: FMLBaseEntity | None
    ) -> None:
        self._pending.append((entity, variables, default))

    def _place(
        self, entity: FMLBaseEntity, variables: list[str], default: FMLBaseEntity | None
    ) -> None:
        """Attaches ``entity`` inside the block declaring every variable it uses.

        Nested variables are only visible inside the ``then`` block of the rule
        binding them, so the entity goes below the innermost one. Without nested
        variables it goes below ``default``.
        """
        nested = [
            node
            for node in (self._forest.get(v) for v in dict.fromkeys(variables))
            if node.father is not None
        ]
        if not nested:
            if default is not None:
                attach_parent_child(self._forest, default, entity)
            return

        scope = self._innermost(nested) or self._merge_scopes(entity, nested)
        attach_parent_child(self._forest, scope, entity)

    def _lineage(self, entity: FMLBaseEntity) -> list[str]:
        ids = []
        current: FMLBaseEntity | None = entity
        while current is not None:
            ids.append(current.id)
            current = self._forest.get_father(current)
        return ids

    def _innermost(self, nodes: list[FMLBaseEntity]) -> FMLBaseEntity | None:
        """The node whose block also encloses all other ``nodes``, if any."""
        deepest = max(nodes, key=lambda n: len(self._lineage(n)))
        lineage = self._lineage(deepest)
        if all(node.id in lineage for node in nodes):
            return deepest
        return None

    def _merge_scopes(self, entity: FMLBaseEntity, nested: list[FMLBaseEntity]) -> FMLBaseEntity:
        """Moves the target binding chain into the source binding block.

        ``src.a as x then { src -> tgt.b as y then { x -> y.c ... } }`` scopes
        both variables. A chain already moved below another source variable
        stays where it is.
        """
        sources = [n for n in nested if n.type == NodeType.SOURCE]
        targets = [n for n in nested if n.type != NodeType.SOURCE]
        source_scope = self._innermost(sources) if sources else None
        target_scope = self._innermost(targets) if targets else None

        if source_scope is not None and target_scope is not None:
            top = self._outermost_rule(target_scope)
            if top is not None and self._is_movable(top, source_scope):
                self._forest.unlink(top)
                self._forest.link(source_scope, top)
                return target_scope

        fallback = max(nested, key=lambda n: len(self._lineage(n)))
        logger.warning(
            "'%s' uses variables of unrelated blocks, nesting it below '%s'",
            entity.id,
            fallback.id,
        )
        return fallback

    def _outermost_rule(self, node: FMLBaseEntity) -> FMLRule | None:
        top = None
        for entity_id in self._lineage(node):
            entity = self._forest.get(entity_id)
            if isinstance(entity, FMLRule):
                top = entity
        return top

    def _is_movable(self, rule: FMLRule, scope: FMLBaseEntity) -> bool:
        if rule.id in self._lineage(scope):
            return False
        father = self._forest.get_father(rule)
        # still below a group parameter, or a rootless create rule
        return father is None or (father.type == NodeType.TARGET and father.father is None)

    # ------------------------------------------------------------------
    # Type lookups
    # ------------------------------------------------------------------
    def _is_reference_field(self, node: GraphNode, field_name: str) -> bool:
        """Whether ``field_name`` of the node's type holds a Reference.

        Fields that cannot be resolved are assumed to be references.
        """
        field = self._resolve_field(node.data.type, field_name)
        return field is None or isinstance(field, ReferenceField)

    def _resolve_field(self, type_: AnyType | None, field_name: str) -> Field | None:
        if isinstance(type_, StructuredResource) or is_element_like(type_):
            return lookup_field(type_.fields, field_name)
        if isinstance(type_, ComplexField) and self._type_env is not None:
            return self._type_env.resolve_path_type(type_.value, [field_name])
        return None
