import logging
from pathlib import Path

from pydantic import ValidationError

from .code_generation import generate_template
from .config import MapperConfig
from .errors import CompilationError, InitializationError
from .metadata import load_type_environment
from .model.error import Error as ErrorModel
from .model.graph import MappingTemplate

logger = logging.getLogger(__name__)


def output(graph_file: Path, config_file: Path | None = None, output_file: Path | None = None):
    """Compiles the mapping graph stored in ``graph_file``.

    The program is written to ``output_file`` or printed when none is given.
    Type information is used when the configured metadata directory exists.
    """
    try:
        config = MapperConfig.from_json(config_file) if config_file else MapperConfig()

        type_env = None
        if config.metadata_path.is_dir():
            type_env = load_type_environment(config)
        else:
            logger.info("no metadata at %s, compiling without type information", config.metadata_path)

        template = MappingTemplate.model_validate_json(graph_file.read_text(encoding="utf-8"))
        content = generate_template(template, type_env=type_env, config=config)

    except (OSError, ValidationError, InitializationError, CompilationError) as e:
        logger.error(e)
        return ErrorModel.from_except(e)

    if output_file is None:
        print(content, end="")
    else:
        output_file.write_text(content, encoding="utf-8")
        logger.info("wrote %s", output_file)
