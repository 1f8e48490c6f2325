from __future__ import annotations

import re
from typing import Iterable


def camelize(text: str) -> str:
    parts = re.split(r"[^A-Za-z0-9]+", text)
    parts = [part for part in parts if part]
    if not parts:
        return ""

    first = parts[0]
    camel = first[0].upper() + first[1:]
    for part in parts[1:]:
        camel += part[0].upper() + part[1:]
    return camel


def normalize_group_name(text: str, default: str = "Main") -> str:
    """Turns an editor tab title into a group identifier (``my group`` -> ``MyGroup``)."""
    candidate = camelize(text)[:64]
    if candidate and candidate[0].isdigit():
        candidate = f"G{candidate}"
    return candidate or default


def variable_name(field: str, node_id: str) -> str:
    """Name of the variable a group call binds to ``field`` of node ``node_id``."""
    candidate = re.sub(r"\W", "_", f"{field}_{node_id}")
    if candidate[0].isdigit():
        candidate = f"v{candidate}"
    return candidate


class LabelAllocator:
    """Hands out rule labels unique within one group.

    The first use of a base keeps it as is, later uses get ``_2``, ``_3``...
    Reserved names (graph node ids, anchors) are never handed out.
    """

    def __init__(self, reserved: Iterable[str] = ()) -> None:
        self._taken: set[str] = set(reserved)

    def allocate(self, base: str) -> str:
        label = base
        counter = 1
        while label in self._taken:
            counter += 1
            label = f"{base}_{counter}"
        self._taken.add(label)
        return label
