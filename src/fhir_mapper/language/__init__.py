from .autocompletion import complete_codes, complete_properties, complete_variables
from .validation import check_property_chain, check_transform_call

__all__ = [
    "complete_codes",
    "complete_properties",
    "complete_variables",
    "check_property_chain",
    "check_transform_call",
]
