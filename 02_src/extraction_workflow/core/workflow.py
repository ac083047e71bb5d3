"""Extraction workflow controller.

Drives one document through analyze -> select -> extract -> actions against
the extraction service, keeping discovered fields, selections, the active
schema, extraction results and the session id consistent.
"""

import logging
import threading
import weakref
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

from ..schemas.document import Document, OrgContext
from ..schemas.extraction import AnalysisResult, ExtractionResult, SaveResult, TokenUsage
from ..schemas.fields import DiscoveredField, FieldSelection
from ..schemas.templates import TemplateInfo
from .export import ExportSink, FileExportSink
from .folders import BaseFolderResolver, StaticFolderResolver
from .selection import FieldSelectionManager
from .service_client import BaseExtractionClient, ExtractionWorkflowError

logger = logging.getLogger(__name__)


class WorkflowStep(str, Enum):
    ANALYZE = "analyze"
    SELECT = "select"
    EXTRACT = "extract"
    ACTIONS = "actions"


STEP_ORDER: List[WorkflowStep] = [
    WorkflowStep.ANALYZE,
    WorkflowStep.SELECT,
    WorkflowStep.EXTRACT,
    WorkflowStep.ACTIONS,
]


class SessionRegistry:
    """Tracks which live workflow holds each session id.

    Entries disappear when the owning workflow is garbage collected.
    """

    def __init__(self) -> None:
        self._owners: "weakref.WeakValueDictionary[str, Any]" = weakref.WeakValueDictionary()
        self._lock = threading.Lock()

    def claim(self, session_id: str, owner: Any) -> bool:
        """Bind session_id to owner; False if another live owner holds it."""
        with self._lock:
            holder = self._owners.get(session_id)
            if holder is not None and holder is not owner:
                return False
            self._owners[session_id] = owner
            return True

    def release(self, session_id: str, owner: Any) -> None:
        with self._lock:
            if self._owners.get(session_id) is owner:
                del self._owners[session_id]

    def owner_of(self, session_id: str) -> Optional[Any]:
        return self._owners.get(session_id)


default_session_registry = SessionRegistry()


class ExtractionWorkflow:
    """State machine for one extraction workflow instance.

    Every remote operation returns True when it succeeded and advanced (or,
    for save/export, completed) and False otherwise; the reason for a False
    is in `error`. Operations never raise for remote or precondition
    failures.

    Only one remote operation runs at a time: a call made while another is
    outstanding is ignored. A reset (start/close) while a call is outstanding
    makes its eventual response stale, and stale responses are discarded.

    Attributes:
        step: Current WorkflowStep
        is_open: Whether the workflow is presented to the user
        is_loading: Whether a remote operation is outstanding
        error: Last precondition or remote error message
        document: Active document
        session_id: Continuity token issued by the first successful analysis
        discovered_fields / line_item_fields: Analysis output
        document_type / has_line_items: Analysis output
        schema: Active extraction schema
        saved_template: Template recorded when generate_schema saved one
        extracted_data / extraction_job_id / token_usage: Extraction output
    """

    def __init__(
        self,
        client: BaseExtractionClient,
        org: Optional[OrgContext] = None,
        folder_resolver: Optional[BaseFolderResolver] = None,
        export_sink: Optional[ExportSink] = None,
        session_registry: Optional[SessionRegistry] = None,
    ) -> None:
        """Initialize the workflow.

        Args:
            client: Extraction-service client
            org: Organization/user context of the caller
            folder_resolver: Resolves a document's folder name (document fields + 'default' if None)
            export_sink: Receives exported spreadsheets (writes to the current directory if None)
            session_registry: Registry enforcing one workflow per session id
        """
        self.client = client
        self.org = org
        self.folder_resolver = folder_resolver or StaticFolderResolver()
        self.export_sink = export_sink or FileExportSink(Path("."))
        self.session_registry = session_registry or default_session_registry

        self.selection = FieldSelectionManager()
        self.document: Optional[Document] = None
        self.is_open = False

        self._lock = threading.RLock()
        self._epoch = 0
        self._busy = False
        self._template_token = 0

        self._reset_state()

    # -- state ------------------------------------------------------------

    def _reset_state(self) -> None:
        with self._lock:
            if getattr(self, "session_id", None):
                self.session_registry.release(self.session_id, self)

            self._epoch += 1
            self._busy = False
            self._template_token += 1

            self.step = WorkflowStep.ANALYZE
            self.is_loading = False
            self.error: Optional[str] = None

            self.discovered_fields: List[DiscoveredField] = []
            self.line_item_fields: List[DiscoveredField] = []
            self.document_type: Optional[str] = None
            self.has_line_items = False

            self.selection.clear()
            self.schema: Optional[Dict[str, Any]] = None
            self.saved_template: Optional[TemplateInfo] = None

            self.extracted_data: Optional[Dict[str, Any]] = None
            self.extraction_job_id: Optional[str] = None
            self.extracted_field_count = 0
            self.token_usage: Optional[TokenUsage] = None
            self.last_save: Optional[SaveResult] = None
            self.last_export_path: Optional[Path] = None

            self.session_id: Optional[str] = None
            self.document_type_hint: Optional[str] = None
            self.folder_name: Optional[str] = None

    @property
    def is_processing(self) -> bool:
        return self.is_loading

    @property
    def selected_fields(self) -> List[FieldSelection]:
        return self.selection.selections

    @property
    def selected_template(self) -> Optional[TemplateInfo]:
        return self.selection.template

    @property
    def active_template_name(self) -> Optional[str]:
        """Template name sent to extract/save: the chosen template, else the saved one."""
        if self.selection.template is not None:
            return self.selection.template.name
        if self.saved_template is not None:
            return self.saved_template.name
        return None

    # -- lifecycle ----------------------------------------------------------

    def start_extraction(
        self,
        document: Document,
        document_type_hint: Optional[str] = None,
        folder_name: Optional[str] = None,
    ) -> None:
        """Reset everything and open the workflow for a document at `analyze`."""
        self._reset_state()
        self.document = document
        self.document_type_hint = document_type_hint
        self.folder_name = folder_name
        self.is_open = True
        logger.info(f"Started extraction for '{document.name}'")

    def start_extraction_with_template(
        self,
        document: Document,
        template: TemplateInfo,
        schema: Dict[str, Any],
        document_type_hint: Optional[str] = None,
        folder_name: Optional[str] = None,
    ) -> None:
        """Reset, adopt a hydrated template and jump straight to `extract`."""
        self.start_extraction(document, document_type_hint, folder_name)
        self.selection.choose_template(template)
        self.schema = schema
        self.document_type = template.document_type or None
        self.step = WorkflowStep.EXTRACT
        logger.info(f"Using template '{template.name}' for '{document.name}', skipping analysis")

    def close_extraction(self, retain_document: bool = False) -> None:
        """Close the workflow and reset all working state.

        Args:
            retain_document: Keep the document reference for a caller that
                reopens a related step right after closing
        """
        document = self.document
        self.is_open = False
        self._reset_state()
        self.document = document if retain_document else None
        logger.info(f"Closed extraction (document retained: {retain_document})")

    def complete_extraction(self) -> None:
        self.close_extraction(retain_document=True)

    # -- navigation -----------------------------------------------------------

    def go_to_step(self, step: Union[WorkflowStep, str]) -> None:
        self.step = WorkflowStep(step)
        self.error = None

    def previous_step(self) -> None:
        index = STEP_ORDER.index(self.step)
        if index > 0:
            self.step = STEP_ORDER[index - 1]
            self.error = None

    def next_step(self) -> None:
        index = STEP_ORDER.index(self.step)
        if index < len(STEP_ORDER) - 1:
            self.step = STEP_ORDER[index + 1]
            self.error = None

    # -- selection ------------------------------------------------------------

    def toggle_field_selection(self, field: DiscoveredField) -> bool:
        return self.selection.toggle(field)

    def select_all_fields(self) -> None:
        self.selection.select_all(self.discovered_fields, self.line_item_fields)

    def clear_field_selections(self) -> None:
        self.selection.clear()

    def select_template(self, template: Optional[TemplateInfo]) -> bool:
        """Choose a saved template (or None) and load its schema.

        Choosing a template clears the manual selections and the previous
        schema; None only clears. Ignored while another operation is in
        flight. A load answered after a reset is discarded.

        Returns:
            True when the template's schema is now active
        """
        epoch = self._begin("selectTemplate")
        if epoch is None:
            return False

        try:
            with self._lock:
                self.selection.choose_template(template)
                self.schema = None
                self._template_token += 1
                token = self._template_token

            if template is None:
                return False

            try:
                result = self.client.get_template(template.name, self.folder_name)
            except (ExtractionWorkflowError, ValueError) as e:
                with self._lock:
                    if token != self._template_token:
                        return False
                    self.error = str(e) or "Failed to load template"
                logger.error(f"Failed to load template '{template.name}': {e}")
                return False

            with self._lock:
                if token != self._template_token:
                    logger.debug(f"Discarding stale template load for '{template.name}'")
                    return False
                if not result.schema:
                    self.error = "Template has no schema"
                    logger.warning(f"Template '{template.name}' has no schema")
                    return False
                self.schema = result.schema
            logger.info(f"Loaded schema of template '{template.name}'")
            return True
        finally:
            self._finish(epoch)

    # -- operation guards -----------------------------------------------------

    def _reject(self, message: str) -> bool:
        self.error = message
        logger.warning(message)
        return False

    def _begin(self, operation: str) -> Optional[int]:
        """Mark an operation in flight; None if another one already is."""
        with self._lock:
            if self._busy:
                logger.warning(f"Ignoring {operation}: another operation is in progress")
                return None
            self._busy = True
            self.is_loading = True
            self.error = None
            return self._epoch

    def _finish(self, epoch: int) -> None:
        with self._lock:
            if epoch == self._epoch:
                self._busy = False
                self.is_loading = False

    def _apply(self, epoch: int, operation: str, apply: Callable[[], bool]) -> bool:
        with self._lock:
            if epoch != self._epoch:
                logger.info(f"Discarding late {operation} response after reset")
                return False
            return apply()

    def _fail(
        self,
        epoch: int,
        operation: str,
        exc: Exception,
        fallback: str,
        cleanup: Optional[Callable[[], None]] = None,
    ) -> bool:
        with self._lock:
            if epoch != self._epoch:
                logger.info(f"Discarding late {operation} failure after reset")
                return False
            self.error = str(exc) or fallback
            if cleanup is not None:
                cleanup()
        logger.error(f"{operation} failed: {exc}")
        return False

    def _resolve_folder(self, document: Document) -> str:
        if not self.folder_name:
            org_id = self.org.org_id if self.org else None
            self.folder_name = self.folder_resolver.resolve(document, org_id)
        return self.folder_name

    # -- remote operations ----------------------------------------------------

    def analyze_fields(self) -> bool:
        """Discover fields; on success store them and advance to `select`.

        The only operation that may adopt a new session id.
        """
        if self.document is None or self.org is None:
            return self._reject("Please select a document and ensure you are logged in")

        epoch = self._begin("analyzeFields")
        if epoch is None:
            return False

        document = self.document
        try:
            folder_name = self._resolve_folder(document)
            logger.info(f"Analyzing fields in '{document.name}' (folder '{folder_name}')")
            result = self.client.analyze_fields(
                document.name,
                self.org.org_name,
                folder_name,
                self.document_type_hint,
                self.session_id,
            )
        except (ExtractionWorkflowError, ValueError) as e:
            return self._fail(epoch, "analyzeFields", e, "Failed to analyze document")
        else:
            return self._apply(epoch, "analyzeFields", lambda: self._on_analyzed(result))
        finally:
            self._finish(epoch)

    def _on_analyzed(self, result: AnalysisResult) -> bool:
        if result.session_id and self.session_id is None:
            if not self.session_registry.claim(result.session_id, self):
                return self._reject(f"Session {result.session_id} is already used by another workflow")
            self.session_id = result.session_id
        elif result.session_id and result.session_id != self.session_id:
            logger.warning(
                f"Service returned session {result.session_id}, keeping {self.session_id}"
            )

        self.discovered_fields = list(result.fields)
        self.line_item_fields = list(result.line_item_fields)
        self.document_type = result.document_type
        self.has_line_items = result.has_line_items
        self.step = WorkflowStep.SELECT

        logger.info(f"Found {result.total_fields} fields (type={result.document_type})")
        return True

    def generate_schema(self, template_name: str, save_template: bool = True) -> bool:
        """Compile a schema from the selections; on success advance to `extract`.

        Args:
            template_name: Name for the template
            save_template: Save the schema as a reusable template
        """
        selections = self.selection.selections
        if not selections:
            return self._reject("Please select at least one field")
        if not self.document_type:
            return self._reject("Document type is required")

        epoch = self._begin("generateSchema")
        if epoch is None:
            return False

        document_type = self.document_type
        try:
            result = self.client.generate_schema(
                template_name,
                document_type,
                selections,
                save_template,
                self.folder_name,
                self.session_id,
            )
        except (ExtractionWorkflowError, ValueError) as e:
            return self._fail(epoch, "generateSchema", e, "Failed to generate schema")
        else:
            def apply() -> bool:
                self.schema = result.schema
                self.saved_template = (
                    TemplateInfo(
                        name=template_name,
                        document_type=document_type,
                        field_count=len(selections),
                        folder_name=self.folder_name,
                    )
                    if save_template
                    else None
                )
                self.step = WorkflowStep.EXTRACT
                logger.info(
                    f"Schema saved as '{template_name}'" if save_template else "Schema generated"
                )
                return True

            return self._apply(epoch, "generateSchema", apply)
        finally:
            self._finish(epoch)

    def extract_data(self) -> bool:
        """Run extraction with the active schema and/or template; advance to `actions`.

        A failed call clears any earlier result so stale data is never shown
        as the outcome of this attempt.
        """
        if self.document is None or self.org is None:
            return self._reject("Document and user information required")
        if self.schema is None and self.selection.template is None:
            return self._reject("Schema or template is required")

        epoch = self._begin("extractData")
        if epoch is None:
            return False

        document = self.document
        try:
            folder_name = self._resolve_folder(document)
            logger.info(f"Extracting data from '{document.name}'")
            result = self.client.extract_data(
                document.name,
                self.org.org_name,
                folder_name,
                self.active_template_name,
                self.schema,
                self.session_id,
            )
        except (ExtractionWorkflowError, ValueError) as e:
            return self._fail(epoch, "extractData", e, "Failed to extract data", self._clear_results)
        else:
            return self._apply(epoch, "extractData", lambda: self._on_extracted(result))
        finally:
            self._finish(epoch)

    def _clear_results(self) -> None:
        self.extracted_data = None
        self.extraction_job_id = None
        self.extracted_field_count = 0
        self.token_usage = None

    def _on_extracted(self, result: ExtractionResult) -> bool:
        self.extracted_data = result.extracted_data
        self.extraction_job_id = result.extraction_job_id
        self.extracted_field_count = result.extracted_field_count
        self.token_usage = result.token_usage
        self.step = WorkflowStep.ACTIONS
        logger.info(f"Extracted {result.extracted_field_count} fields")
        return True

    def save_extracted_data(self) -> bool:
        """Persist the extracted data; the step is unchanged."""
        if not self.extracted_data or not self.extraction_job_id or self.document is None:
            return self._reject("No extracted data to save")

        epoch = self._begin("saveExtractedData")
        if epoch is None:
            return False

        try:
            result = self.client.save_extracted_data(
                self.extraction_job_id,
                self.document.id,
                self.extracted_data,
                self.active_template_name,
                self.folder_name,
            )
        except (ExtractionWorkflowError, ValueError) as e:
            return self._fail(epoch, "saveExtractedData", e, "Failed to save data")
        else:
            def apply() -> bool:
                self.last_save = result
                logger.info(f"Data saved successfully (record={result.record_id})")
                return True

            return self._apply(epoch, "saveExtractedData", apply)
        finally:
            self._finish(epoch)

    def export_to_excel(self) -> bool:
        """Download the spreadsheet for the extraction job and hand it to the export sink."""
        if not self.extraction_job_id:
            return self._reject("No extraction job to export")

        epoch = self._begin("exportToExcel")
        if epoch is None:
            return False

        try:
            payload = self.client.export_to_excel(self.extraction_job_id)
            with self._lock:
                if epoch != self._epoch:
                    logger.info("Discarding late exportToExcel response after reset")
                    return False
            path = self.export_sink(payload)
        except (ExtractionWorkflowError, ValueError, OSError) as e:
            return self._fail(epoch, "exportToExcel", e, "Failed to export to Excel")
        else:
            self.last_export_path = path
            return True
        finally:
            self._finish(epoch)
