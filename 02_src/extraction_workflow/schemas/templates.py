"""Template schemas."""

from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class TemplateInfo:
    """A saved extraction template.

    Attributes:
        name: Template name (unique per organization)
        document_type: Document type the template was built for
        field_count: Number of fields in the template schema
        folder_name: Explicit folder association; the service usually omits it
            and the template then belongs to folders named after document_type
        created_at: Creation timestamp as sent by the service
        storage_path: Where the service keeps the template schema
    """
    name: str
    document_type: str
    field_count: int = 0
    folder_name: Optional[str] = None
    created_at: Optional[str] = None
    storage_path: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TemplateInfo":
        return cls(
            name=data["name"],
            document_type=data.get("document_type") or "",
            field_count=int(data.get("field_count") or 0),
            folder_name=data.get("folder_name"),
            created_at=data.get("created_at"),
            storage_path=data.get("gcs_path") or data.get("storage_path"),
        )
