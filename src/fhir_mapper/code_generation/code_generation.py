"""Compilation of mapping graphs into mapping-language text."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field

from ..config import MapperConfig
from ..model.graph import GroupGraph, MappingTemplate
from ..type_environment import TypeEnvironment
from .emitter import RuleTreePrinter
from .fml_entities import FMLNode
from .fml_types import NodeType
from .graph_building import FMLForestBuilder
from .naming import normalize_group_name

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class GroupProgram:
    name: str
    header: str
    body: list[str] = field(default_factory=list)
    uses: list[str] = field(default_factory=list)

    def lines(self) -> list[str]:
        return [self.header, *self.body, "}"]


def _declaration(mode: str, node: FMLNode) -> str:
    if node.resource:
        return f"{mode} {node.alias} : {node.resource}"
    return f"{mode} {node.alias}"


def _uses(mode: str, node: FMLNode) -> str | None:
    if not node.is_resource_type or not node.url:
        return None
    return f'uses "{node.url}" alias {node.resource} as {mode}'


def generate_group(
    graph: GroupGraph,
    *,
    type_env: TypeEnvironment | None = None,
    config: MapperConfig | None = None,
) -> GroupProgram:
    """Compiles one group graph.

    Raises:
        UnresolvedNodeReference: an edge names a node missing from the graph
        MissingSourceParameter: a rule needs a source variable but the group has none
    """
    config = config or MapperConfig()
    name = normalize_group_name(graph.name, default=config.default_group_name)

    result = FMLForestBuilder(graph, type_env=type_env).build()
    forest = result.forest

    sources = forest.root_nodes(NodeType.SOURCE)
    targets = forest.root_nodes(NodeType.TARGET)

    params = [_declaration("source", n) for n in sources] + [
        _declaration("target", n) for n in targets
    ]
    uses = [_uses("source", n) for n in sources] + [_uses("target", n) for n in targets]

    printer = RuleTreePrinter(
        forest,
        result.dependencies,
        main=sources[0].alias if sources else None,
        group_name=name,
        indent=config.indent,
    )
    body = printer.print_forest(level=1)
    logger.debug("compiled group '%s' into %d lines", name, len(body))

    return GroupProgram(
        name=name,
        header=f"group {name}({', '.join(params)}) {{",
        body=body,
        uses=[line for line in uses if line is not None],
    )


def sort_uses(lines: list[str]) -> list[str]:
    """Distinct ``uses`` lines, source declarations first, otherwise in order."""
    unique = list(dict.fromkeys(lines))
    return sorted(unique, key=lambda line: not line.endswith(" as source"))


def generate_template(
    template: MappingTemplate,
    *,
    type_env: TypeEnvironment | None = None,
    config: MapperConfig | None = None,
) -> str:
    """Compiles every group of ``template`` into one mapping program.

    Either the whole program is returned or the first compilation error is
    raised; no partial output is produced.
    """
    config = config or MapperConfig()
    groups = [generate_group(g, type_env=type_env, config=config) for g in template.groups]

    map_name = normalize_group_name(template.name, default=template.name)
    lines = [f'map "{config.map_url_prefix}{map_name}" = "{template.name}"', ""]

    uses = sort_uses([line for group in groups for line in group.uses])
    if uses:
        lines.extend(uses)
        lines.append("")

    for index, group in enumerate(groups):
        if index:
            lines.append("")
        lines.extend(group.lines())

    return "\n".join(lines) + "\n"
