"""Depth-first printer of a rule forest.

Variables a rule references are emitted before the rule itself; rules with
nested rules open a ``then { ... }`` block. Every entity is printed at most
once, so entities reached again through a dependency are skipped.
"""
from __future__ import annotations

from ..errors import MissingSourceParameter
from .fml_entities import FMLBaseEntity, FMLForest, FMLGroupNode, FMLRule
from .fml_types import NodeType, TransformName, TransformParameter
from .graph_building import Dependencies
from .naming import variable_name


def is_printable(entity: FMLBaseEntity) -> bool:
    return isinstance(entity, (FMLRule, FMLGroupNode))


class RuleTreePrinter:
    def __init__(
        self,
        forest: FMLForest,
        dependencies: Dependencies,
        *,
        main: str | None,
        group_name: str,
        indent: str = "  ",
    ) -> None:
        self._forest = forest
        self._dependencies = dependencies
        self._main = main
        self._group_name = group_name
        self._indent = indent
        self._visited: set[str] = set()

    def print_forest(self, level: int = 1) -> list[str]:
        lines: list[str] = []
        for anchor in (self._forest.source_anchor, self._forest.target_anchor):
            lines.extend(self.print_rule_tree(anchor, level))
        return lines

    def print_rule_tree(self, entity: FMLBaseEntity, level: int) -> list[str]:
        if entity.id in self._visited:
            return []
        self._visited.add(entity.id)

        # variables and anchors only carry the rules nested below them
        if not is_printable(entity):
            return self._print_children(entity, level)

        lines: list[str] = []
        for dependency in self._dependencies.get(entity.id, []):
            if is_printable(dependency):
                lines.extend(self.print_rule_tree(dependency, level))

        if isinstance(entity, FMLGroupNode):
            head, label = self.render_group_call(entity), entity.label
        else:
            head, label = self.render_rule(entity), entity.id

        pad = self._indent * level
        body = self._print_children(entity, level + 1)
        if body:
            lines.append(f"{pad}{head} then {{")
            lines.extend(body)
            lines.append(f'{pad}}} "{label}";')
        else:
            lines.append(f'{pad}{head} "{label}";')
        return lines

    def _print_children(self, entity: FMLBaseEntity, level: int) -> list[str]:
        lines: list[str] = []
        for child in self._forest.get_children(entity):
            lines.extend(self.print_rule_tree(child, level))
        return lines

    @property
    def main(self) -> str:
        if self._main is None:
            raise MissingSourceParameter(self._group_name)
        return self._main

    def render_rule(self, rule: FMLRule) -> str:
        if rule.is_binding:
            if rule.type == NodeType.SOURCE:
                return f"{rule.right_param.expression()} as {rule.variable}"
            return f"{self.main} -> {rule.left_param.expression()} as {rule.variable}"

        sources = [
            p.expression()
            for p in rule.right_params
            if isinstance(p, TransformParameter) and p.origin == NodeType.SOURCE
        ]
        source = ", ".join(sources) if sources else self.main
        if rule.condition:
            source = f"{source} where ({rule.condition})"

        if rule.action == TransformName.COPY:
            value = rule.right_param.expression()
        else:
            args = ", ".join(p.expression() for p in rule.right_params)
            value = f"{rule.action.value}({args})"

        left = rule.left_param
        if rule.action == TransformName.CREATE and left.field is None:
            return f"{source} -> {value} as {left.alias}"
        return f"{source} -> {left.expression()} = {value}"

    def render_group_call(self, group: FMLGroupNode) -> str:
        sources, targets, variables = [], [], []

        for param in group.sources:
            if param.field:
                var = variable_name(param.field, param.id)
                sources.append(f"{param.expression()} as {var}")
            else:
                var = param.alias
                sources.append(param.alias)
            variables.append(var)

        for param in group.targets:
            if param.field:
                var = variable_name(param.field, param.id)
                targets.append(f"{param.expression()} as {var}")
            else:
                var = param.alias
            variables.append(var)

        head = ", ".join(sources) if sources else self.main
        if targets:
            head = f"{head} -> {', '.join(targets)}"
        return f"{head} then {group.name}({', '.join(variables)})"
