from .code_generation import generate_group, generate_template

__all__ = ["generate_group", "generate_template"]
