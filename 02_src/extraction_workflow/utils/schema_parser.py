"""Turn a JSON-Schema-shaped template schema into a flat field preview."""

import re
from typing import Any, Dict, List, Optional, Union

from ..schemas.fields import LOCATIONS, TemplateField

_LINE_ITEM_HINTS = ("line_item", "items", "products", "services")
_FOOTER_HINTS = (
    "total", "subtotal", "tax", "discount", "grand", "balance", "due", "payment",
)
_HEADER_HINTS = (
    "number", "date", "vendor", "customer", "company", "address", "name", "id",
    "reference",
)


def map_schema_type(
    schema_type: Union[str, List[str], None],
    fmt: Optional[str] = None,
) -> str:
    """Map a JSON Schema type/format pair to a display data type.

    Args:
        schema_type: "type" of the property; a list like ["string", "null"] is allowed
        fmt: "format" of the property

    Returns:
        One of string, number, boolean, array, object, date, currency
    """
    if isinstance(schema_type, list):
        primary = next((t for t in schema_type if t != "null"), "string")
    else:
        primary = schema_type or "string"

    if fmt:
        fmt = fmt.lower()
        if fmt in ("date", "date-time"):
            return "date"
        if fmt in ("currency", "money"):
            return "currency"

    primary = primary.lower()
    if primary == "integer":
        return "number"
    if primary in ("string", "number", "boolean", "array", "object"):
        return primary
    return "string"


def to_display_name(field_name: str) -> str:
    """Convert snake_case / camelCase / kebab-case to Title Case.

    Examples:
        >>> to_display_name("invoice_number")
        'Invoice Number'
        >>> to_display_name("dueDate")
        'Due Date'
    """
    spaced = re.sub(r"([A-Z])", r" \1", field_name)
    spaced = re.sub(r"[_-]", " ", spaced)
    return " ".join(word.capitalize() for word in spaced.split())


def infer_location(field_name: str, data_type: str) -> str:
    """Guess where in a document a field lives from its name and type."""
    lower = field_name.lower()

    if data_type == "array" or any(hint in lower for hint in _LINE_ITEM_HINTS):
        return "line_item"
    if any(hint in lower for hint in _FOOTER_HINTS):
        return "footer"
    if any(hint in lower for hint in _HEADER_HINTS):
        return "header"
    return "body"


def parse_schema_to_fields(schema: Optional[Dict[str, Any]]) -> List[TemplateField]:
    """Flatten a schema's properties into TemplateField previews.

    Arrays contribute the array field itself followed by its item fields, and
    nested objects contribute their fields; nested names are dotted
    ("line_items.quantity") and nested display names use " > ".

    Args:
        schema: Schema dict with "properties" and optional "required"

    Returns:
        Preview fields in schema order (empty when the schema has no properties)
    """
    fields: List[TemplateField] = []
    if not isinstance(schema, dict):
        return fields

    properties = schema.get("properties")
    if not isinstance(properties, dict):
        return fields
    required = schema.get("required") or []

    for name, prop in properties.items():
        if not isinstance(prop, dict):
            continue

        data_type = map_schema_type(prop.get("type"), prop.get("format"))
        title = prop.get("title")

        if data_type == "array" and isinstance(prop.get("items"), dict):
            fields.append(
                TemplateField(
                    field_name=name,
                    display_name=title or to_display_name(name),
                    data_type="array",
                    location="line_item",
                    required=name in required,
                )
            )
            for nested in parse_schema_to_fields(prop["items"]):
                fields.append(
                    TemplateField(
                        field_name=f"{name}.{nested.field_name}",
                        display_name=f"{to_display_name(name)} > {nested.display_name}",
                        data_type=nested.data_type,
                        location="line_item",
                        required=nested.required,
                    )
                )

        elif data_type == "object" and isinstance(prop.get("properties"), dict):
            for nested in parse_schema_to_fields(prop):
                fields.append(
                    TemplateField(
                        field_name=f"{name}.{nested.field_name}",
                        display_name=f"{to_display_name(name)} > {nested.display_name}",
                        data_type=nested.data_type,
                        location=nested.location,
                        required=nested.required,
                    )
                )

        else:
            fields.append(
                TemplateField(
                    field_name=name,
                    display_name=title or prop.get("description") or to_display_name(name),
                    data_type=data_type,
                    location=infer_location(name, data_type),
                    required=name in required,
                )
            )

    return fields


def group_fields_by_location(fields: List[TemplateField]) -> Dict[str, List[TemplateField]]:
    """Group preview fields by location; unknown locations fall into "body"."""
    groups: Dict[str, List[TemplateField]] = {location: [] for location in LOCATIONS}
    for field in fields:
        location = field.location if field.location in groups else "body"
        groups[location].append(field)
    return groups


def summarize_fields(fields: List[TemplateField]) -> Dict[str, int]:
    """Count preview fields per location, plus a "total" entry."""
    summary = {location: len(items) for location, items in group_fields_by_location(fields).items()}
    summary["total"] = len(fields)
    return summary
