"""Results of the remote extraction-service operations."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .fields import DiscoveredField
from .templates import TemplateInfo


@dataclass
class TokenUsage:
    """Token accounting reported by the extraction step (diagnostics only)."""
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0
    estimated_cost_usd: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["TokenUsage"]:
        if not data:
            return None
        return cls(
            prompt_tokens=int(data.get("prompt_tokens") or 0),
            completion_tokens=int(data.get("completion_tokens") or 0),
            total_tokens=int(data.get("total_tokens") or 0),
            estimated_cost_usd=data.get("estimated_cost_usd"),
        )


@dataclass
class AnalysisResult:
    """Outcome of field discovery.

    Attributes:
        fields: Header/body/footer fields
        line_item_fields: Repeating (table) fields
        document_type: Detected document type, if any
        has_line_items: Whether the document contains line items
        session_id: Continuity token issued by the service
        processing_time_ms: Server-side processing time
    """
    fields: List[DiscoveredField] = field(default_factory=list)
    line_item_fields: List[DiscoveredField] = field(default_factory=list)
    document_type: Optional[str] = None
    has_line_items: bool = False
    session_id: Optional[str] = None
    processing_time_ms: int = 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AnalysisResult":
        return cls(
            fields=[DiscoveredField.from_dict(f) for f in data.get("fields") or []],
            line_item_fields=[
                DiscoveredField.from_dict(f) for f in data.get("line_item_fields") or []
            ],
            document_type=data.get("document_type") or None,
            has_line_items=bool(data.get("has_line_items", False)),
            session_id=data.get("session_id") or None,
            processing_time_ms=int(data.get("processing_time_ms") or 0),
        )

    @property
    def total_fields(self) -> int:
        return len(self.fields) + len(self.line_item_fields)


@dataclass
class SchemaResult:
    """Outcome of schema generation or template hydration."""
    schema: Optional[Dict[str, Any]] = None
    template_name: Optional[str] = None
    document_type: Optional[str] = None
    storage_uri: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SchemaResult":
        return cls(
            schema=data.get("schema") or None,
            template_name=data.get("template_name") or data.get("name"),
            document_type=data.get("document_type"),
            storage_uri=data.get("gcs_uri") or data.get("gcs_path"),
        )


@dataclass
class TemplateListResult:
    templates: List[TemplateInfo] = field(default_factory=list)
    total: int = 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TemplateListResult":
        templates = [TemplateInfo.from_dict(t) for t in data.get("templates") or []]
        return cls(templates=templates, total=int(data.get("total") or len(templates)))


@dataclass
class ExtractionResult:
    """Extracted record plus the server-side job reference.

    Attributes:
        extracted_data: Free-form record keyed by field name
        extraction_job_id: Job reference required by save and export
        extracted_field_count: Number of fields the service filled in
        token_usage: Cost accounting (not used for control flow)
        schema_title: Title of the schema the service applied
    """
    extracted_data: Dict[str, Any] = field(default_factory=dict)
    extraction_job_id: Optional[str] = None
    extracted_field_count: int = 0
    token_usage: Optional[TokenUsage] = None
    schema_title: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ExtractionResult":
        return cls(
            extracted_data=data.get("extracted_data") or {},
            extraction_job_id=data.get("extraction_job_id") or None,
            extracted_field_count=int(data.get("extracted_field_count") or 0),
            token_usage=TokenUsage.from_dict(data.get("token_usage")),
            schema_title=data.get("schema_title"),
        )


@dataclass
class SaveResult:
    record_id: Optional[str] = None
    message: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SaveResult":
        return cls(record_id=data.get("record_id"), message=data.get("message") or "")


@dataclass
class ExportPayload:
    """Binary spreadsheet returned by the export endpoint."""
    content: bytes
    filename: str
