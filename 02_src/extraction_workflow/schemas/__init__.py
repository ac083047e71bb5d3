"""Data schemas for the extraction workflow."""

from .fields import DiscoveredField, FieldSelection, TemplateField
from .templates import TemplateInfo
from .extraction import (
    AnalysisResult,
    ExportPayload,
    ExtractionResult,
    SaveResult,
    SchemaResult,
    TemplateListResult,
    TokenUsage,
)
from .document import Document, ExtractionContext, OrgContext
from .config import WorkflowConfig, ServiceConfig, DocumentServiceConfig

__all__ = [
    "DiscoveredField",
    "FieldSelection",
    "TemplateField",
    "TemplateInfo",
    "AnalysisResult",
    "ExportPayload",
    "ExtractionResult",
    "SaveResult",
    "SchemaResult",
    "TemplateListResult",
    "TokenUsage",
    "Document",
    "ExtractionContext",
    "OrgContext",
    "WorkflowConfig",
    "ServiceConfig",
    "DocumentServiceConfig",
]
