import logging
from pathlib import Path

from pydantic import BaseModel, ValidationError

from .errors import InitializationError

logger = logging.getLogger(__name__)

DEFAULT_MAP_URL_PREFIX = "http://hl7.org/fhir/StructureMap/"


class MapperConfig(BaseModel):
    metadata_dir: str = "metadata"
    valueset_dir: str | None = None
    map_url_prefix: str = DEFAULT_MAP_URL_PREFIX
    default_group_name: str = "Main"
    indent: str = "  "
    log_level: str = "INFO"
    _base_dir: Path = Path(".")

    @staticmethod
    def from_json(file: str | Path) -> "MapperConfig":
        file = Path(file)

        try:
            content = file.read_text(encoding="utf-8")
            config = MapperConfig.model_validate_json(content)

        except (OSError, ValidationError) as e:
            msg = f"failed to load config from {str(file)}"
            logger.error(msg)
            logger.error(e)
            raise InitializationError(msg) from e

        else:
            config._base_dir = file.parent
            return config

    def _resolve(self, value: str) -> Path:
        path = Path(value)
        return path if path.is_absolute() else self._base_dir / path

    @property
    def metadata_path(self) -> Path:
        return self._resolve(self.metadata_dir)

    @property
    def valueset_path(self) -> Path | None:
        return self._resolve(self.valueset_dir) if self.valueset_dir else None
