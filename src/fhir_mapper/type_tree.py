"""Inheritance hierarchy over a set of FHIR types.

Nodes live in an arena keyed by canonical url; the father is stored as a url
and the children as an ordered list of urls.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Mapping

from .errors import InvalidTypeHierarchy
from .model.fhir_types import Resource

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class TypeNode:
    value: Resource
    father: str | None = None
    children: list[str] = field(default_factory=list)

    @property
    def url(self) -> str:
        return self.value.url

    @property
    def name(self) -> str:
        return self.value.name


NodeRef = TypeNode | str


class TypeTree:
    def __init__(self, type_map: Mapping[str, Resource]) -> None:
        self._nodes: dict[str, TypeNode] = {
            res.url: TypeNode(res) for res in type_map.values()
        }

        for node in self._nodes.values():
            base = node.value.baseDefinition
            if base is not None and base in self._nodes and base != node.url:
                node.father = base
                self._nodes[base].children.append(node.url)

        roots = [node.url for node in self._nodes.values() if node.father is None]
        if len(roots) != 1:
            raise InvalidTypeHierarchy(roots)

        self._root = roots[0]
        logger.debug("built type tree of %d types rooted at '%s'", len(self._nodes), self._root)

    def __len__(self) -> int:
        return len(self._nodes)

    @property
    def root(self) -> TypeNode:
        return self._nodes[self._root]

    def get_all_nodes(self) -> list[TypeNode]:
        return [self.root, *self.get_descendants(self.root)]

    def get_node(self, identifier: str) -> TypeNode | None:
        """Looks a node up by canonical url, falling back to the type name."""
        node = self._nodes.get(identifier)
        if node is not None:
            return node
        for candidate in self._nodes.values():
            if candidate.name == identifier:
                return candidate
        return None

    def contains_node(self, identifier: str) -> bool:
        return self.get_node(identifier) is not None

    def get_father(self, node: NodeRef) -> TypeNode | None:
        resolved = self._resolve(node)
        if resolved is None or resolved.father is None:
            return None
        return self._nodes[resolved.father]

    def get_children(self, node: NodeRef) -> list[TypeNode]:
        resolved = self._resolve(node)
        if resolved is None:
            return []
        return [self._nodes[url] for url in resolved.children]

    def get_ancestors(self, node: NodeRef) -> list[TypeNode]:
        """Ancestors ordered from the root down to the immediate father."""
        ancestors: list[TypeNode] = []
        current = self.get_father(node)
        while current is not None:
            ancestors.append(current)
            current = self.get_father(current)
        ancestors.reverse()
        return ancestors

    def get_descendants(self, node: NodeRef) -> list[TypeNode]:
        """Pre-order listing of the subtree below ``node`` (``node`` excluded)."""
        resolved = self._resolve(node)
        if resolved is None:
            return []

        descendants: list[TypeNode] = []
        stack = [self._nodes[url] for url in reversed(resolved.children)]
        while stack:
            current = stack.pop()
            descendants.append(current)
            stack.extend(self._nodes[url] for url in reversed(current.children))
        return descendants

    def _resolve(self, node: NodeRef) -> TypeNode | None:
        if isinstance(node, TypeNode):
            return self._nodes.get(node.url)
        return self.get_node(node)
