"""Template selection coordinator.

Offers the saved templates of a document's folder, hydrates the chosen one
and emits exactly one proceed event: continue with the template, or run a
fresh field analysis.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Union

from ..schemas.document import Document
from ..schemas.fields import TemplateField
from ..schemas.templates import TemplateInfo
from ..utils.schema_parser import parse_schema_to_fields
from .catalog import TemplateCatalog
from .service_client import ExtractionServiceError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProceedWithTemplate:
    """Continue extraction with a hydrated template."""
    template: TemplateInfo
    schema: Dict[str, Any] = field(hash=False)


@dataclass(frozen=True)
class ProceedWithAnalysis:
    """Continue with a fresh field analysis."""


SelectionEvent = Union[ProceedWithTemplate, ProceedWithAnalysis]


class TemplateSelectionCoordinator:
    """State machine: closed -> open -> hydrating -> ready(template) | ready(none).

    Attributes:
        is_open: Whether the selection is being presented
        is_loading_fields: Whether a template is being hydrated
        error: Last hydration or validation error
        document: Document the selection is for
        folder_name: Folder used to filter candidates and scope template lookups
        parse_output: Prior parse output, passed through to the consumer
        selected_template: Template the user picked, if any
        template_fields: Preview of the hydrated template's fields
        schema: Hydrated template schema (None unless hydration succeeded)
    """

    def __init__(
        self,
        catalog: TemplateCatalog,
        on_event: Optional[Callable[[SelectionEvent], None]] = None,
    ) -> None:
        """Initialize the coordinator.

        Args:
            catalog: Template catalog (its client is used for hydration)
            on_event: Listener called whenever a proceed event is emitted
        """
        self.catalog = catalog
        self.on_event = on_event

        self.is_open = False
        self.is_loading_fields = False
        self.error: Optional[str] = None

        self.document: Optional[Document] = None
        self.folder_name: Optional[str] = None
        self.parse_output: Optional[Dict[str, Any]] = None

        self.selected_template: Optional[TemplateInfo] = None
        self.template_fields: List[TemplateField] = []
        self.schema: Optional[Dict[str, Any]] = None

        self._pending_event: Optional[SelectionEvent] = None
        self._hydration_token = 0

    # -- derived state ----------------------------------------------------

    @property
    def all_templates(self) -> List[TemplateInfo]:
        return self.catalog.templates

    @property
    def filtered_templates(self) -> List[TemplateInfo]:
        return self.catalog.filter_by_folder(self.folder_name)

    @property
    def is_loading_templates(self) -> bool:
        return self.catalog.is_loading

    @property
    def should_proceed_with_template(self) -> bool:
        return isinstance(self._pending_event, ProceedWithTemplate)

    @property
    def should_proceed_with_analyze(self) -> bool:
        return isinstance(self._pending_event, ProceedWithAnalysis)

    # -- actions ----------------------------------------------------------

    def _reset_state(self) -> None:
        self.selected_template = None
        self.template_fields = []
        self.schema = None
        self.error = None
        self.is_loading_fields = False
        self._pending_event = None
        self._hydration_token += 1

    def open_selection(
        self,
        document: Document,
        folder_name: str,
        parse_output: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._reset_state()
        self.document = document
        self.folder_name = folder_name
        self.parse_output = parse_output
        self.is_open = True
        logger.info(
            f"Template selection opened for '{document.name}' in folder '{folder_name}' "
            f"({len(self.filtered_templates)} candidates)"
        )

    def close(self) -> None:
        self.is_open = False
        self.document = None
        self.folder_name = None
        self.parse_output = None
        self._reset_state()

    def refresh_templates(self) -> bool:
        return self.catalog.refresh()

    def select_template(self, template: Optional[TemplateInfo]) -> bool:
        """Pick a template (or None) and hydrate its schema.

        A response for a selection that has since been replaced is discarded.

        Returns:
            True when a schema is ready for the template, False otherwise
        """
        self._hydration_token += 1
        token = self._hydration_token

        self.selected_template = template
        self.template_fields = []
        self.schema = None
        self.error = None

        if template is None:
            self.is_loading_fields = False
            return False

        self.is_loading_fields = True
        try:
            result = self.catalog.client.get_template(template.name, self.folder_name or None)
            if not result.schema:
                raise ExtractionServiceError("Template has no schema")
        except (ExtractionServiceError, ValueError) as e:
            if token != self._hydration_token:
                logger.debug(f"Discarding stale hydration failure for '{template.name}'")
                return False
            self.error = str(e) or "Failed to load template details"
            self.is_loading_fields = False
            logger.error(f"Failed to load template '{template.name}': {e}")
            return False

        if token != self._hydration_token:
            logger.debug(f"Discarding stale hydration result for '{template.name}'")
            return False

        self.schema = result.schema
        self.template_fields = parse_schema_to_fields(result.schema)
        self.is_loading_fields = False
        logger.info(
            f"Template '{template.name}' loaded for folder '{self.folder_name}': "
            f"{len(self.template_fields)} fields"
        )
        return True

    def proceed_with_template(self) -> bool:
        """Emit ProceedWithTemplate if a template is selected and hydrated."""
        if self.selected_template is None or self.schema is None:
            self.error = "Please select a template first"
            logger.warning("Cannot proceed with template: no hydrated template selected")
            return False

        self._emit(ProceedWithTemplate(template=self.selected_template, schema=self.schema))
        return True

    def proceed_with_analyze(self) -> None:
        self._emit(ProceedWithAnalysis())

    def _emit(self, event: SelectionEvent) -> None:
        self._pending_event = event
        self.is_open = False
        logger.info(f"Template selection emitted {type(event).__name__}")
        if self.on_event is not None:
            self.on_event(event)

    def take_event(self) -> Optional[SelectionEvent]:
        """Return the pending proceed event and clear it (consumed exactly once)."""
        event, self._pending_event = self._pending_event, None
        return event

    def reset_proceed_flags(self) -> None:
        self._pending_event = None
