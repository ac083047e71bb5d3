"""
Extraction Workflow - client-side driver for document field extraction.

This package runs the extraction workflow against a remote extraction service:
- ExtractionWorkflow: analyze -> select -> extract -> actions state machine
- TemplateSelectionCoordinator: reuse a saved template instead of analyzing
- ExtractionPage: binds a handed-off document to both of the above
"""

__version__ = "0.1.0"

# Core classes
from .core.service_client import (
    BaseExtractionClient,
    ExtractionServiceError,
    ExtractionWorkflowError,
    HttpExtractionClient,
)
from .core.folders import BaseFolderResolver, DocumentServiceFolderResolver, StaticFolderResolver
from .core.state import MemoryHandoffStore, DiskHandoffStore, store_extraction_context
from .core.catalog import TemplateCatalog
from .core.selection import FieldSelectionManager
from .core.template_selection import (
    ProceedWithAnalysis,
    ProceedWithTemplate,
    TemplateSelectionCoordinator,
)
from .core.workflow import ExtractionWorkflow, WorkflowStep
from .core.orchestrator import ExtractionPage

# Schemas
from .schemas.config import ServiceConfig, DocumentServiceConfig, WorkflowConfig
from .schemas.document import Document, ExtractionContext, OrgContext
from .schemas.fields import DiscoveredField, FieldSelection, TemplateField
from .schemas.templates import TemplateInfo
from .schemas.extraction import ExtractionResult, TokenUsage

__all__ = [
    # Version
    "__version__",

    # Service
    "BaseExtractionClient",
    "ExtractionServiceError",
    "ExtractionWorkflowError",
    "HttpExtractionClient",
    "BaseFolderResolver",
    "DocumentServiceFolderResolver",
    "StaticFolderResolver",

    # Workflow
    "MemoryHandoffStore",
    "DiskHandoffStore",
    "store_extraction_context",
    "TemplateCatalog",
    "FieldSelectionManager",
    "ProceedWithAnalysis",
    "ProceedWithTemplate",
    "TemplateSelectionCoordinator",
    "ExtractionWorkflow",
    "WorkflowStep",
    "ExtractionPage",

    # Schemas - Config
    "ServiceConfig",
    "DocumentServiceConfig",
    "WorkflowConfig",

    # Schemas - Data
    "Document",
    "ExtractionContext",
    "OrgContext",
    "DiscoveredField",
    "FieldSelection",
    "TemplateField",
    "TemplateInfo",
    "ExtractionResult",
    "TokenUsage",
]
