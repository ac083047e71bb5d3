"""Workflow page orchestrator.

Binds a document handed off by the ingestion side to a template selection
coordinator and an extraction workflow, and guards navigation away from
unfinished work.
"""

import logging
from typing import Any, Callable, Dict, Optional

from ..schemas.document import Document
from ..schemas.templates import TemplateInfo
from .state import HandoffStore, clear_extraction_context, take_extraction_context
from .template_selection import (
    ProceedWithAnalysis,
    ProceedWithTemplate,
    SelectionEvent,
    TemplateSelectionCoordinator,
)
from .workflow import ExtractionWorkflow, WorkflowStep

logger = logging.getLogger(__name__)

ConfirmCallback = Callable[[str], bool]

UNSAVED_PROGRESS_MESSAGE = "You have unsaved extraction progress. Are you sure you want to leave?"
CANCEL_MESSAGE = "Are you sure you want to cancel extraction? Any progress will be lost."


class ExtractionPage:
    """Orchestrates template selection and extraction for one document.

    Attributes:
        document_id: Id of the document this page is bound to
        document / parse_output / folder_name: Context taken from the handoff store
        show_template_selection: Whether template selection is presented first
        is_initialized / init_error: Outcome of initialize()
        return_path: Where navigation goes when the page is left
    """

    def __init__(
        self,
        document_id: str,
        store: HandoffStore,
        workflow: ExtractionWorkflow,
        coordinator: TemplateSelectionCoordinator,
        came_from: Optional[str] = None,
        on_parsed: Optional[Callable[[Document, Optional[Dict[str, Any]]], None]] = None,
    ) -> None:
        """Initialize the page.

        Args:
            document_id: Document to bind
            store: Handoff store the ingestion side wrote the context to
            workflow: Extraction workflow instance
            coordinator: Template selection coordinator
            came_from: "parse" when opened from the parse results view
            on_parsed: Presentation callback invoked with the bound document
                and its parse output once the context is loaded
        """
        self.document_id = document_id
        self.store = store
        self.workflow = workflow
        self.coordinator = coordinator
        self.on_parsed = on_parsed
        self.coordinator.on_event = self._on_selection_event

        self.document: Optional[Document] = None
        self.parse_output: Optional[Dict[str, Any]] = None
        self.folder_name: Optional[str] = None

        self.show_template_selection = False
        self.is_initialized = False
        self.init_error: Optional[str] = None

        if came_from == "parse":
            self.return_path = f"/documents/{document_id}/parse"
        else:
            self.return_path = "/documents"

    def initialize(self) -> bool:
        """Load the handoff context and choose the first screen.

        Template selection comes first when the folder has templates;
        otherwise the workflow starts at `analyze`.

        Returns:
            True if the page is initialized
        """
        self.init_error = None

        context = take_extraction_context(self.store, self.document_id)
        if context is None:
            self.init_error = (
                "Extraction context not found. Please start extraction from the document page."
            )
            logger.error(f"No extraction context for document {self.document_id}")
            return False

        self.document = context.document
        self.parse_output = context.parse_output
        self.folder_name = context.folder_name
        logger.info(
            f"Loaded extraction context: document={context.document.name}, "
            f"folder={context.folder_name}, has_parse_output={context.parse_output is not None}"
        )

        if self.on_parsed is not None:
            self.on_parsed(self.document, self.parse_output)

        if self.coordinator.catalog.has_templates_for(self.folder_name):
            self.show_template_selection = True
            self.coordinator.open_selection(self.document, self.folder_name, self.parse_output)
        else:
            self._start_analysis()

        self.is_initialized = True
        return True

    def _start_analysis(self) -> None:
        self.workflow.start_extraction(self.document, folder_name=self.folder_name)
        self.show_template_selection = False

    def _on_selection_event(self, event: SelectionEvent) -> None:
        # Act on the pending event, consumed so it runs exactly once
        pending = self.coordinator.take_event()
        if pending is None:
            logger.debug(f"Ignoring {type(event).__name__}: already consumed")
            return
        if self.document is None:
            logger.warning(f"Ignoring {type(pending).__name__}: no document bound")
            return

        if isinstance(pending, ProceedWithTemplate):
            self.handle_select_template(pending.template, pending.schema)
        elif isinstance(pending, ProceedWithAnalysis):
            self.handle_analyze_new()

    def handle_select_template(self, template: TemplateInfo, schema: Dict[str, Any]) -> None:
        if self.document is None:
            return
        self.workflow.start_extraction_with_template(
            self.document, template, schema, folder_name=self.folder_name
        )
        self.show_template_selection = False

    def handle_analyze_new(self) -> None:
        if self.document is None:
            return
        self._start_analysis()

    @property
    def has_unsaved_progress(self) -> bool:
        """True while the workflow is open and has not reached `actions`."""
        return self.workflow.is_open and self.workflow.step != WorkflowStep.ACTIONS

    def _leave(self, complete: bool = False) -> str:
        clear_extraction_context(self.store, self.document_id)
        if complete:
            self.workflow.complete_extraction()
        elif self.workflow.is_open:
            self.workflow.close_extraction()
        self.coordinator.close()
        return self.return_path

    def handle_back(self, confirm: Optional[ConfirmCallback] = None) -> Optional[str]:
        """Leave the page, asking `confirm` first when progress would be lost.

        Returns:
            Navigation target, or None if the user chose to stay
        """
        if self.has_unsaved_progress:
            if confirm is None:
                logger.warning(f"Discarding unsaved extraction progress at step '{self.workflow.step.value}'")
            elif not confirm(UNSAVED_PROGRESS_MESSAGE):
                return None
        return self._leave()

    def handle_cancel(self, confirm: Optional[ConfirmCallback] = None) -> Optional[str]:
        if confirm is not None and not confirm(CANCEL_MESSAGE):
            return None
        return self._leave()

    def handle_complete(self) -> str:
        logger.info("Extraction completed")
        return self._leave(complete=True)
