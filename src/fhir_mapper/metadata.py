"""Offline reduction of FHIR definitions and loading of the reduced metadata.

``derive_metadata`` turns a directory of raw StructureDefinitions, ValueSets
and CodeSystems into one ``<name>.json`` file per reduced type plus a single
``valuesets.json``. The loaders read that directory back into a
``TypeEnvironment``.
"""
import json
import logging
from pathlib import Path
from typing import Any

from pydantic import TypeAdapter, ValidationError

from .config import MapperConfig
from .errors import InitializationError, SchemaError, TypeTreeError
from .model.fhir_types import Resource, resource_adapter
from .model.valueset import ValueSet
from .structure_definition import parse_structure_definition, parse_valueset_map
from .type_environment import TypeEnvironment

logger = logging.getLogger(__name__)

VALUESETS_FILE = "valuesets.json"

valueset_map_adapter: TypeAdapter[dict[str, ValueSet]] = TypeAdapter(dict[str, ValueSet])


def _read_json(file: Path) -> dict[str, Any] | None:
    try:
        content = json.loads(file.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        logger.warning("skipping unreadable file %s", file)
        logger.debug(e)
        return None

    return content if isinstance(content, dict) else None


def derive_metadata(input_dir: Path, output_dir: Path) -> list[str]:
    """Reduces every definition below ``input_dir`` into ``output_dir``.

    Definitions that fail to parse are logged and skipped. Returns the names
    of the written types.
    """
    output_dir.mkdir(parents=True, exist_ok=True)

    written: list[str] = []
    terminologies: dict[str, dict[str, Any]] = {}

    for file in sorted(input_dir.glob("**/*.json")):
        raw = _read_json(file)
        if raw is None:
            continue

        resource_type = raw.get("resourceType")
        if resource_type in ("ValueSet", "CodeSystem"):
            if raw.get("url"):
                terminologies[raw["url"]] = raw
            continue

        if resource_type != "StructureDefinition":
            continue

        try:
            resource = parse_structure_definition(raw)
        except SchemaError as e:
            logger.warning("skipping %s: %s", file.name, e)
            continue

        if resource is None:
            continue

        target = output_dir / f"{resource.name}.json"
        target.write_text(
            resource.model_dump_json(indent=2, exclude_none=True), encoding="utf-8"
        )
        written.append(resource.name)
        logger.debug("wrote %s", target)

    try:
        valuesets = parse_valueset_map(terminologies)
    except SchemaError as e:
        logger.warning("skipping value sets: %s", e)
        valuesets = {}

    (output_dir / VALUESETS_FILE).write_text(
        valueset_map_adapter.dump_json(valuesets, indent=2, exclude_none=True).decode("utf-8"),
        encoding="utf-8",
    )

    logger.info("derived %d types and %d value sets", len(written), len(valuesets))
    return written


def load_type_map(metadata_dir: Path) -> dict[str, Resource]:
    if not metadata_dir.is_dir():
        msg = f"metadata directory {str(metadata_dir)} does not exist"
        logger.error(msg)
        raise InitializationError(msg)

    type_map: dict[str, Resource] = {}
    for file in sorted(metadata_dir.glob("*.json")):
        if file.name == VALUESETS_FILE:
            continue

        try:
            resource = resource_adapter.validate_json(file.read_text(encoding="utf-8"))
        except (OSError, ValidationError) as e:
            msg = f"failed to load type metadata from {str(file)}"
            logger.error(msg)
            logger.error(e)
            raise InitializationError(msg) from e

        type_map[resource.url] = resource

    return type_map


def load_valueset_map(file: Path) -> dict[str, ValueSet]:
    if not file.is_file():
        logger.debug("no value sets at %s", file)
        return {}

    try:
        return valueset_map_adapter.validate_json(file.read_text(encoding="utf-8"))
    except (OSError, ValidationError) as e:
        msg = f"failed to load value sets from {str(file)}"
        logger.error(msg)
        logger.error(e)
        raise InitializationError(msg) from e


def load_type_environment(config: MapperConfig) -> TypeEnvironment:
    type_map = load_type_map(config.metadata_path)

    valueset_dir = config.valueset_path or config.metadata_path
    valueset_map = load_valueset_map(valueset_dir / VALUESETS_FILE)

    try:
        type_env = TypeEnvironment(type_map, valueset_map)
    except TypeTreeError as e:
        msg = f"invalid type hierarchy in {str(config.metadata_path)}"
        logger.error(msg)
        logger.error(e)
        raise InitializationError(msg) from e

    logger.info("loaded %d types and %d value sets", len(type_map), len(valueset_map))
    return type_env
