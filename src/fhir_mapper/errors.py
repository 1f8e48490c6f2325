class InitializationError(Exception):
    pass


class SchemaError(Exception):
    pass


class InvalidStructureDefinition(SchemaError):
    def __init__(self, name: str | None, reason: str) -> None:
        super().__init__(f"Invalid StructureDefinition/{name}: {reason}")
        self.name = name


class MissingSnapshot(SchemaError):
    def __init__(self, name: str) -> None:
        super().__init__(f'Undefined "snapshot" for StructureDefinition/{name}')
        self.name = name


class StructuralViolation(SchemaError):
    def __init__(self, segment: str, path: str) -> None:
        super().__init__(f"Expected Element/BackboneElement at: {segment} in {path}")
        self.segment = segment
        self.path = path


class MissingTypeCode(SchemaError):
    def __init__(self, path: str) -> None:
        super().__init__(f'"type.code" must be defined at: {path}')
        self.path = path


class TypeTreeError(Exception):
    pass


class InvalidTypeHierarchy(TypeTreeError):
    def __init__(self, roots: list[str]) -> None:
        super().__init__(
            f"Expected exactly one root type, found {len(roots)}: {', '.join(roots) or '-'}"
        )
        self.roots = roots


class CompilationError(Exception):
    pass


class UnresolvedNodeReference(CompilationError):
    def __init__(self, node_id: str) -> None:
        super().__init__(f"Node with id '{node_id}' not found")
        self.node_id = node_id


class MissingSourceParameter(CompilationError):
    def __init__(self, group: str) -> None:
        super().__init__(f"Group '{group}' has no source parameter to read from")
        self.group = group


class InvalidValueSet(SchemaError):
    def __init__(self, url: str | None, reason: str) -> None:
        super().__init__(f"Invalid ValueSet {url}: {reason}")
        self.url = url
