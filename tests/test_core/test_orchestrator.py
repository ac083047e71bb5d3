"""Tests for the ExtractionPage orchestrator."""

from unittest.mock import Mock

import pytest

from extraction_workflow.core.catalog import TemplateCatalog
from extraction_workflow.core.orchestrator import (
    CANCEL_MESSAGE,
    UNSAVED_PROGRESS_MESSAGE,
    ExtractionPage,
)
from extraction_workflow.core.state import MemoryHandoffStore, store_extraction_context
from extraction_workflow.core.template_selection import ProceedWithAnalysis, TemplateSelectionCoordinator
from extraction_workflow.core.workflow import WorkflowStep
from extraction_workflow.schemas.extraction import SchemaResult


@pytest.fixture
def store() -> MemoryHandoffStore:
    return MemoryHandoffStore()


@pytest.fixture
def coordinator(fake_client) -> TemplateSelectionCoordinator:
    return TemplateSelectionCoordinator(TemplateCatalog(fake_client))


@pytest.fixture
def page(store, workflow, coordinator, document) -> ExtractionPage:
    store_extraction_context(store, document.id, document, {"markdown": "# Invoice"}, "Invoices")
    return ExtractionPage(document.id, store, workflow, coordinator)


class TestInitialize:
    """Context loading and first screen."""

    def test_missing_context(self, store, workflow, coordinator):
        """Without a handoff context the page reports an init error."""
        page = ExtractionPage("404", store, workflow, coordinator)

        assert page.initialize() is False
        assert page.init_error.startswith("Extraction context not found")
        assert not workflow.is_open

    def test_no_templates_starts_analysis(self, page, workflow, document):
        """A folder without templates goes straight to analyze."""
        assert page.initialize() is True

        assert page.is_initialized
        assert not page.show_template_selection
        assert workflow.is_open
        assert workflow.step == WorkflowStep.ANALYZE
        assert workflow.document.id == document.id
        assert workflow.folder_name == "Invoices"

    def test_templates_open_selection(self, page, fake_client, coordinator, workflow, invoice_template):
        """A folder with templates shows template selection first."""
        fake_client.template_list = [invoice_template]

        page.initialize()

        assert page.show_template_selection
        assert coordinator.is_open
        assert coordinator.filtered_templates == [invoice_template]
        assert coordinator.parse_output == {"markdown": "# Invoice"}
        assert not workflow.is_open

    def test_context_taken_once(self, page, store, document):
        """The context is read and cleared by initialize()."""
        page.initialize()

        assert not store.exists(f"extraction-context-{document.id}")

    def test_on_parsed_called(self, store, workflow, coordinator, document):
        """The on_parsed hook receives the document and parse output."""
        store_extraction_context(store, document.id, document, None, "Invoices")
        on_parsed = Mock()
        page = ExtractionPage(document.id, store, workflow, coordinator, on_parsed=on_parsed)

        page.initialize()

        on_parsed.assert_called_once_with(page.document, None)


class TestSelectionEvents:
    """Coordinator events drive the workflow."""

    def test_proceed_with_template(self, page, fake_client, coordinator, workflow, invoice_template, invoice_schema):
        """ProceedWithTemplate starts extraction at the extract step."""
        fake_client.template_list = [invoice_template]
        fake_client.template_schemas["inv-template"] = SchemaResult(schema=invoice_schema)
        page.initialize()

        coordinator.select_template(invoice_template)
        coordinator.proceed_with_template()

        assert not page.show_template_selection
        assert workflow.step == WorkflowStep.EXTRACT
        assert workflow.selected_template == invoice_template
        assert workflow.schema == invoice_schema
        assert coordinator.take_event() is None

    def test_proceed_with_analysis(self, page, fake_client, coordinator, workflow, invoice_template):
        """ProceedWithAnalysis starts a fresh analysis."""
        fake_client.template_list = [invoice_template]
        page.initialize()

        coordinator.proceed_with_analyze()

        assert workflow.is_open
        assert workflow.step == WorkflowStep.ANALYZE
        assert not coordinator.should_proceed_with_analyze

    def test_consumed_event_not_acted_on_again(self, page, fake_client, coordinator, workflow, invoice_template):
        """A notification with no pending event leaves the workflow alone."""
        fake_client.template_list = [invoice_template]
        page.initialize()

        page._on_selection_event(ProceedWithAnalysis())

        assert not workflow.is_open
        assert page.show_template_selection

    def test_pending_event_wins_over_notification(
        self, page, fake_client, coordinator, workflow, invoice_template, invoice_schema
    ):
        """The handler acts on the event it consumed, not the one it was called with."""
        fake_client.template_list = [invoice_template]
        fake_client.template_schemas["inv-template"] = SchemaResult(schema=invoice_schema)
        page.initialize()
        coordinator.on_event = None
        coordinator.select_template(invoice_template)
        coordinator.proceed_with_template()

        page._on_selection_event(ProceedWithAnalysis())

        assert workflow.step == WorkflowStep.EXTRACT
        assert workflow.selected_template == invoice_template
        assert workflow.schema == invoice_schema
        assert coordinator.take_event() is None


class TestNavigation:
    """Leaving the page."""

    def test_return_path(self, store, workflow, coordinator):
        """The return path depends on where the page was opened from."""
        assert ExtractionPage("7", store, workflow, coordinator, came_from="parse").return_path == "/documents/7/parse"
        assert ExtractionPage("7", store, workflow, coordinator).return_path == "/documents"

    def test_back_with_unsaved_progress_declined(self, page, workflow):
        """Declining the confirmation keeps the page open."""
        page.initialize()
        confirm = Mock(return_value=False)

        assert page.has_unsaved_progress
        assert page.handle_back(confirm) is None
        confirm.assert_called_once_with(UNSAVED_PROGRESS_MESSAGE)
        assert workflow.is_open

    def test_back_with_unsaved_progress_confirmed(self, page, workflow):
        """Confirming closes the workflow and returns the target."""
        page.initialize()

        assert page.handle_back(Mock(return_value=True)) == "/documents"
        assert not workflow.is_open

    def test_back_at_actions_does_not_ask(self, page, workflow):
        """At the actions step nothing is lost, so no confirmation is asked."""
        page.initialize()
        workflow.go_to_step(WorkflowStep.ACTIONS)
        confirm = Mock()

        assert page.handle_back(confirm) == "/documents"
        confirm.assert_not_called()

    def test_cancel_asks_confirmation(self, page, workflow):
        """Cancel consults the confirm callback."""
        page.initialize()
        confirm = Mock(return_value=False)

        assert page.handle_cancel(confirm) is None
        confirm.assert_called_once_with(CANCEL_MESSAGE)
        assert workflow.is_open

    def test_complete_keeps_document(self, page, workflow, coordinator, document):
        """Completing closes the workflow but keeps the document reference."""
        page.initialize()

        assert page.handle_complete() == "/documents"
        assert not workflow.is_open
        assert workflow.document.id == document.id
        assert not coordinator.is_open
