"""Helpers: storage paths and schema previews."""

from .paths import construct_parsed_path, get_base_name
from .schema_parser import (
    group_fields_by_location,
    parse_schema_to_fields,
    summarize_fields,
    to_display_name,
)

__all__ = [
    "construct_parsed_path",
    "get_base_name",
    "group_fields_by_location",
    "parse_schema_to_fields",
    "summarize_fields",
    "to_display_name",
]
