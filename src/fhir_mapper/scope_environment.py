from __future__ import annotations


class ScopeEnvironment:
    """Variables visible to an expression, each bound to a type url or name."""

    def __init__(self, scope: dict[str, str] | None = None) -> None:
        self._scope: dict[str, str] = dict(scope or {})

    def exists(self, name: str) -> bool:
        return name in self._scope

    def get(self, name: str) -> str | None:
        return self._scope.get(name)

    def set(self, name: str, type_: str) -> None:
        self._scope[name] = type_

    def get_all(self) -> list[str]:
        return list(self._scope)
