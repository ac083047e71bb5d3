"""Core components: service client, selection, templates, workflow and orchestration."""

from .service_client import (
    BaseExtractionClient,
    ExtractionServiceError,
    ExtractionWorkflowError,
    HttpExtractionClient,
)
from .folders import (
    BaseFolderResolver,
    DocumentServiceFolderResolver,
    FolderResolutionError,
    StaticFolderResolver,
)
from .state import (
    HandoffStore,
    MemoryHandoffStore,
    DiskHandoffStore,
    store_extraction_context,
    take_extraction_context,
    clear_extraction_context,
)
from .export import FileExportSink
from .catalog import TemplateCatalog, filter_templates_by_folder
from .selection import FieldSelectionManager
from .template_selection import (
    ProceedWithAnalysis,
    ProceedWithTemplate,
    TemplateSelectionCoordinator,
)
from .workflow import ExtractionWorkflow, SessionRegistry, WorkflowStep
from .orchestrator import ExtractionPage

__all__ = [
    # Service
    "BaseExtractionClient",
    "ExtractionServiceError",
    "ExtractionWorkflowError",
    "HttpExtractionClient",
    # Folders
    "BaseFolderResolver",
    "DocumentServiceFolderResolver",
    "FolderResolutionError",
    "StaticFolderResolver",
    # Handoff
    "HandoffStore",
    "MemoryHandoffStore",
    "DiskHandoffStore",
    "store_extraction_context",
    "take_extraction_context",
    "clear_extraction_context",
    "FileExportSink",
    # Templates and selection
    "TemplateCatalog",
    "filter_templates_by_folder",
    "FieldSelectionManager",
    "ProceedWithAnalysis",
    "ProceedWithTemplate",
    "TemplateSelectionCoordinator",
    # Workflow
    "ExtractionWorkflow",
    "SessionRegistry",
    "WorkflowStep",
    "ExtractionPage",
]
