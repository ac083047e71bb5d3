"""Field schemas - discovered fields, user selections and template previews."""

from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

DATA_TYPES = ("string", "number", "date", "currency", "boolean", "array")
LOCATIONS = ("header", "line_item", "footer", "body")


@dataclass(frozen=True)
class DiscoveredField:
    """A candidate field found during document analysis.

    Attributes:
        field_name: Unique key of the field within a document
        display_name: Human readable label
        data_type: One of DATA_TYPES (other strings are tolerated)
        location: Where in the document the field was found (one of LOCATIONS)
        required: Whether the field is mandatory for this document type
        sample_value: Example value seen during analysis
        confidence: Discovery confidence in [0, 1]
    """
    field_name: str
    display_name: str
    data_type: str = "string"
    location: str = "body"
    required: bool = False
    sample_value: Optional[str] = None
    confidence: float = 0.0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DiscoveredField":
        """Build a field from a service payload entry."""
        field_name = data["field_name"]
        return cls(
            field_name=field_name,
            display_name=data.get("display_name") or field_name,
            data_type=data.get("data_type") or "string",
            location=data.get("location") or "body",
            required=bool(data.get("required", False)),
            sample_value=data.get("sample_value"),
            confidence=float(data.get("confidence") or 0.0),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class FieldSelection:
    """A user-confirmed subset of a DiscoveredField's attributes."""
    field_name: str
    display_name: str
    data_type: str
    location: str
    required: bool

    @classmethod
    def from_field(cls, field: DiscoveredField) -> "FieldSelection":
        return cls(
            field_name=field.field_name,
            display_name=field.display_name,
            data_type=field.data_type,
            location=field.location,
            required=field.required,
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class TemplateField:
    """Preview of one field of a hydrated template schema.

    Derived from the schema by utils.schema_parser; never edited directly.
    """
    field_name: str
    display_name: str
    data_type: str
    location: str
    required: bool = False
