"""Shared fixtures: an in-process extraction client and sample data.

Set EXTRACTION_TEST_LOG_DIR to also write the package logs of a test run to a file.
"""

import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import pytest

from extraction_workflow.core.export import FileExportSink
from extraction_workflow.core.service_client import BaseExtractionClient
from extraction_workflow.core.workflow import ExtractionWorkflow, SessionRegistry
from extraction_workflow.core.folders import StaticFolderResolver
from extraction_workflow.schemas.document import Document, OrgContext
from extraction_workflow.schemas.extraction import (
    AnalysisResult,
    ExportPayload,
    ExtractionResult,
    SaveResult,
    SchemaResult,
    TemplateListResult,
    TokenUsage,
)
from extraction_workflow.schemas.fields import DiscoveredField, FieldSelection
from extraction_workflow.schemas.templates import TemplateInfo

# === Optional file logging ===
if os.getenv("EXTRACTION_TEST_LOG_DIR"):
    _logs_dir = Path(os.environ["EXTRACTION_TEST_LOG_DIR"])
    _logs_dir.mkdir(parents=True, exist_ok=True)

    _file_handler = logging.FileHandler(
        _logs_dir / f"run_{datetime.now().strftime('%Y-%m-%d_%H%M%S')}.log", encoding="utf-8"
    )
    _file_handler.setLevel(logging.DEBUG)
    _file_handler.setFormatter(logging.Formatter("%(asctime)s | %(name)s | %(message)s", datefmt="%H:%M:%S"))

    logging.getLogger("extraction_workflow").addHandler(_file_handler)
    logging.getLogger("extraction_workflow").setLevel(logging.DEBUG)

INVOICE_SCHEMA = {
    "title": "Invoice",
    "type": "object",
    "properties": {
        "invoice_number": {"type": "string"},
        "total": {"type": "number"},
    },
    "required": ["invoice_number"],
}


class FakeExtractionClient(BaseExtractionClient):
    """Extraction client answering from canned results.

    Every call is recorded in `calls`. A method listed in `failures` raises
    the stored exception; a callable in `hooks` runs inside the call before
    it answers (to simulate work happening while a request is in flight).
    """

    def __init__(self) -> None:
        self.calls: List[Tuple[str, Dict[str, Any]]] = []
        self.failures: Dict[str, Exception] = {}
        self.hooks: Dict[str, Callable[[], None]] = {}

        self.analysis = AnalysisResult(
            fields=[
                DiscoveredField("invoice_number", "Invoice Number", location="header", sample_value="INV-1"),
                DiscoveredField("total", "Total", data_type="currency", location="footer"),
            ],
            line_item_fields=[
                DiscoveredField("line_items.description", "Description", location="line_item"),
            ],
            document_type="invoice",
            has_line_items=True,
            session_id="sess-1",
        )
        self.schema_result = SchemaResult(schema=INVOICE_SCHEMA, template_name="inv-template")
        self.template_schemas: Dict[str, SchemaResult] = {}
        self.template_list: List[TemplateInfo] = []
        self.extraction = ExtractionResult(
            extracted_data={"invoice_number": "INV-1", "total": 120.5},
            extraction_job_id="job-1",
            extracted_field_count=2,
            token_usage=TokenUsage(prompt_tokens=100, completion_tokens=20, total_tokens=120),
        )
        self.save_result = SaveResult(record_id="rec-1", message="saved")
        self.export_payload = ExportPayload(content=b"PK\x03\x04xlsx", filename="extraction_job-1.xlsx")

    def _call(self, name: str, **kwargs: Any) -> None:
        self.calls.append((name, kwargs))
        hook = self.hooks.pop(name, None)
        if hook is not None:
            hook()
        if name in self.failures:
            raise self.failures[name]

    def calls_to(self, name: str) -> List[Dict[str, Any]]:
        return [kwargs for called, kwargs in self.calls if called == name]

    def analyze_fields(
        self,
        document_name: str,
        org_name: str,
        folder_name: str,
        document_type_hint: Optional[str] = None,
        session_id: Optional[str] = None,
    ) -> AnalysisResult:
        self._call(
            "analyze_fields",
            document_name=document_name,
            org_name=org_name,
            folder_name=folder_name,
            document_type_hint=document_type_hint,
            session_id=session_id,
        )
        return self.analysis

    def generate_schema(
        self,
        template_name: str,
        document_type: str,
        fields: Sequence[FieldSelection],
        save_template: bool = True,
        folder_name: Optional[str] = None,
        session_id: Optional[str] = None,
    ) -> SchemaResult:
        self._call(
            "generate_schema",
            template_name=template_name,
            document_type=document_type,
            fields=list(fields),
            save_template=save_template,
            folder_name=folder_name,
            session_id=session_id,
        )
        return self.schema_result

    def get_template(self, template_name: str, folder_name: Optional[str] = None) -> SchemaResult:
        self._call("get_template", template_name=template_name, folder_name=folder_name)
        return self.template_schemas.get(template_name, SchemaResult(schema=None, template_name=template_name))

    def list_templates(self) -> TemplateListResult:
        self._call("list_templates")
        return TemplateListResult(templates=list(self.template_list), total=len(self.template_list))

    def extract_data(
        self,
        document_name: str,
        org_name: str,
        folder_name: str,
        template_name: Optional[str] = None,
        schema: Optional[Dict[str, Any]] = None,
        session_id: Optional[str] = None,
    ) -> ExtractionResult:
        self._call(
            "extract_data",
            document_name=document_name,
            org_name=org_name,
            folder_name=folder_name,
            template_name=template_name,
            schema=schema,
            session_id=session_id,
        )
        return self.extraction

    def save_extracted_data(
        self,
        job_id: str,
        document_id: str,
        data: Dict[str, Any],
        template_name: Optional[str] = None,
        folder_name: Optional[str] = None,
    ) -> SaveResult:
        self._call(
            "save_extracted_data",
            job_id=job_id,
            document_id=document_id,
            data=data,
            template_name=template_name,
            folder_name=folder_name,
        )
        return self.save_result

    def export_to_excel(self, job_id: str) -> ExportPayload:
        self._call("export_to_excel", job_id=job_id)
        return self.export_payload


@pytest.fixture
def fake_client() -> FakeExtractionClient:
    return FakeExtractionClient()


@pytest.fixture
def org() -> OrgContext:
    return OrgContext(org_id="org-1", org_name="Acme Corp", user_id="user-1")


@pytest.fixture
def document() -> Document:
    return Document(id="42", name="invoice_001.pdf", folder_id="f-1", folder_name="Invoices")


@pytest.fixture
def invoice_template() -> TemplateInfo:
    return TemplateInfo(name="inv-template", document_type="invoice", field_count=2)


@pytest.fixture
def receipt_template() -> TemplateInfo:
    return TemplateInfo(name="receipt-template", document_type="receipt", field_count=3)


@pytest.fixture
def session_registry() -> SessionRegistry:
    return SessionRegistry()


@pytest.fixture
def workflow(fake_client, org, session_registry, tmp_path) -> ExtractionWorkflow:
    return ExtractionWorkflow(
        fake_client,
        org=org,
        folder_resolver=StaticFolderResolver({"f-1": "Invoices"}),
        export_sink=FileExportSink(tmp_path / "exports"),
        session_registry=session_registry,
    )


@pytest.fixture
def invoice_schema():
    return INVOICE_SCHEMA
