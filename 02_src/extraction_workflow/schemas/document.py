"""Document and caller-context schemas."""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass
class Document:
    """A document as known to the document-management backend.

    Attributes:
        id: Document identifier
        name: File name (e.g. "invoice_001.pdf")
        folder_id: Folder identifier, resolved to a name on demand
        folder_name: Folder name when the backend already supplied it
        metadata: Any other attributes, passed through untouched
    """
    id: str
    name: str
    folder_id: Optional[str] = None
    folder_name: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Document":
        known = {"id", "name", "folder_id", "folder_name"}
        return cls(
            id=str(data["id"]),
            name=data["name"],
            folder_id=data.get("folder_id"),
            folder_name=data.get("folder_name"),
            metadata={k: v for k, v in data.items() if k not in known},
        )

    def to_dict(self) -> Dict[str, Any]:
        data = dict(self.metadata)
        data.update(
            {
                "id": self.id,
                "name": self.name,
                "folder_id": self.folder_id,
                "folder_name": self.folder_name,
            }
        )
        return data


@dataclass(frozen=True)
class OrgContext:
    """Opaque organization/user identity of the caller."""
    org_id: str
    org_name: str
    user_id: Optional[str] = None


@dataclass
class ExtractionContext:
    """Handoff blob written by the ingestion side before navigating to extraction.

    Attributes:
        document: The document to extract from
        parse_output: Prior parse output (free-form), may be absent
        folder_name: Folder name resolved by the producer
    """
    document: Document
    parse_output: Optional[Dict[str, Any]]
    folder_name: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "document": self.document.to_dict(),
            "parse_output": self.parse_output,
            "folder_name": self.folder_name,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ExtractionContext":
        return cls(
            document=Document.from_dict(data["document"]),
            parse_output=data.get("parse_output"),
            folder_name=data.get("folder_name") or "default",
        )
