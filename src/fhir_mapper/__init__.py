from .code_generation import generate_template
from .structure_definition import parse_structure_definition
from .type_environment import TypeEnvironment

__all__ = ["generate_template", "parse_structure_definition", "TypeEnvironment"]
