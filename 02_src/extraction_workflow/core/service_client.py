"""Extraction service client.

Binds the remote field-discovery, schema-generation, template and extraction
operations over HTTP, with retry logic for rate limits and server errors.
"""

from __future__ import annotations

import logging
import re
import time
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Sequence
from urllib.parse import quote

import requests

from ..schemas.config import ServiceConfig
from ..schemas.extraction import (
    AnalysisResult,
    ExportPayload,
    ExtractionResult,
    SaveResult,
    SchemaResult,
    TemplateListResult,
)
from ..schemas.fields import FieldSelection
from ..utils.paths import construct_parsed_path

logger = logging.getLogger(__name__)

_FILENAME_RE = re.compile(r"""filename[^;=\n]*=((['"]).*?\2|[^;\n]*)""")


class ExtractionWorkflowError(RuntimeError):
    """Base class for errors raised by the extraction workflow collaborators."""


class ExtractionServiceError(ExtractionWorkflowError):
    """Raised when an extraction-service call fails or reports success=false."""


def _require(value: Optional[str], name: str) -> None:
    if not value or not value.strip():
        raise ValueError(f"{name} is required")


class BaseExtractionClient(ABC):
    """Base interface for extraction-service clients.

    Every method either returns a parsed result or raises
    ExtractionServiceError; argument problems raise ValueError before any call.
    """

    @abstractmethod
    def analyze_fields(
        self,
        document_name: str,
        org_name: str,
        folder_name: str,
        document_type_hint: Optional[str] = None,
        session_id: Optional[str] = None,
    ) -> AnalysisResult:
        raise NotImplementedError

    @abstractmethod
    def generate_schema(
        self,
        template_name: str,
        document_type: str,
        fields: Sequence[FieldSelection],
        save_template: bool = True,
        folder_name: Optional[str] = None,
        session_id: Optional[str] = None,
    ) -> SchemaResult:
        raise NotImplementedError

    @abstractmethod
    def get_template(self, template_name: str, folder_name: Optional[str] = None) -> SchemaResult:
        raise NotImplementedError

    @abstractmethod
    def list_templates(self) -> TemplateListResult:
        raise NotImplementedError

    @abstractmethod
    def extract_data(
        self,
        document_name: str,
        org_name: str,
        folder_name: str,
        template_name: Optional[str] = None,
        schema: Optional[Dict[str, Any]] = None,
        session_id: Optional[str] = None,
    ) -> ExtractionResult:
        raise NotImplementedError

    @abstractmethod
    def save_extracted_data(
        self,
        job_id: str,
        document_id: str,
        data: Dict[str, Any],
        template_name: Optional[str] = None,
        folder_name: Optional[str] = None,
    ) -> SaveResult:
        raise NotImplementedError

    @abstractmethod
    def export_to_excel(self, job_id: str) -> ExportPayload:
        raise NotImplementedError


class HttpExtractionClient(BaseExtractionClient):
    """REST client for the extraction service.

    Features:
    - Retry on 429 (rate limit), 500-599 (server errors) and connection errors
    - Exponential backoff: sleep_s = backoff_base ** (attempt - 1)
    - success=false payloads raised as ExtractionServiceError with the server message
    """

    def __init__(self, config: Optional[ServiceConfig] = None) -> None:
        """Initialize extraction client.

        Args:
            config: Service configuration (read from environment if not provided)
        """
        self.config = config or ServiceConfig()
        self._calls_made = 0

    def _build_url(self, path: str) -> str:
        return f"{self.config.base_url}/extraction/{path.lstrip('/')}"

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.config.api_key:
            headers["Authorization"] = f"Bearer {self.config.api_key}"
        return headers

    def _request(
        self,
        method: str,
        path: str,
        operation: str,
        json_body: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, str]] = None,
    ) -> requests.Response:
        """Send a request with retry logic.

        Args:
            method: "GET" or "POST"
            path: Path below the extraction API root
            operation: Operation name for logs and errors
            json_body: JSON body for POST
            params: Query parameters

        Returns:
            Successful response (status < 400)

        Raises:
            ExtractionServiceError: If all retry attempts fail or a client error is returned
        """
        url = self._build_url(path)
        last_error: Optional[str] = None

        for attempt in range(1, self.config.max_retries + 1):
            start_time = time.monotonic()
            try:
                if method == "POST":
                    resp = requests.post(
                        url,
                        json=json_body,
                        params=params,
                        headers=self._headers(),
                        timeout=self.config.timeout_sec,
                    )
                else:
                    resp = requests.get(
                        url,
                        params=params,
                        headers=self._headers(),
                        timeout=self.config.timeout_sec,
                    )
            except (requests.ConnectionError, requests.Timeout) as exc:
                last_error = str(exc)
                logger.warning(
                    f"Extraction API {operation} attempt {attempt}/{self.config.max_retries}: "
                    f"connection error: {str(exc)[:200]}"
                )
                if attempt < self.config.max_retries:
                    time.sleep(self.config.backoff_base ** (attempt - 1))
                    continue
                raise ExtractionServiceError(f"{operation} failed: {exc}") from exc
            except requests.RequestException as exc:
                raise ExtractionServiceError(f"{operation} failed: {exc}") from exc

            status = resp.status_code
            latency_ms = int((time.monotonic() - start_time) * 1000)
            self._calls_made += 1

            if status == 429 or 500 <= status < 600:
                last_error = f"status={status}, body={resp.text[:400]}"
                logger.warning(
                    f"Extraction API {operation} attempt {attempt}/{self.config.max_retries}: "
                    f"status={status}, latency={latency_ms}ms, will retry"
                )
                if attempt < self.config.max_retries:
                    time.sleep(self.config.backoff_base ** (attempt - 1))
                    continue
                raise ExtractionServiceError(f"{operation} failed: {last_error}")

            if status >= 400:
                logger.info(f"Extraction API {operation} failed with status={status}, not retrying")
                raise ExtractionServiceError(
                    f"{operation} failed: {self._error_message(resp) or f'status={status}'}"
                )

            logger.debug(f"Extraction API {operation}: status={status}, latency={latency_ms}ms")
            return resp

        raise ExtractionServiceError(
            f"{operation} failed after {self.config.max_retries} attempts: {last_error}"
        )

    @staticmethod
    def _error_message(resp: requests.Response) -> Optional[str]:
        try:
            payload = resp.json()
        except ValueError:
            return resp.text[:400] or None
        if isinstance(payload, dict):
            return payload.get("error") or payload.get("detail") or payload.get("message")
        return None

    def _payload(self, resp: requests.Response, operation: str) -> Dict[str, Any]:
        """Decode a JSON payload and raise on success=false.

        Raises:
            ExtractionServiceError: Malformed payload or explicit failure
        """
        try:
            payload = resp.json()
        except ValueError as exc:
            raise ExtractionServiceError(f"{operation} returned malformed JSON") from exc

        if not isinstance(payload, dict):
            raise ExtractionServiceError(f"{operation} returned unexpected payload: {payload!r}"[:400])

        if not payload.get("success", False):
            raise ExtractionServiceError(payload.get("error") or f"{operation} failed")

        return payload

    def analyze_fields(
        self,
        document_name: str,
        org_name: str,
        folder_name: str,
        document_type_hint: Optional[str] = None,
        session_id: Optional[str] = None,
    ) -> AnalysisResult:
        """Discover extractable fields in a parsed document.

        Returns:
            AnalysisResult with fields, line-item fields, document type and session id
        """
        _require(document_name, "document_name")
        body: Dict[str, Any] = {
            "document_name": document_name,
            "parsed_file_path": construct_parsed_path(org_name, folder_name, document_name),
        }
        if document_type_hint:
            body["document_type_hint"] = document_type_hint
        if session_id:
            body["session_id"] = session_id

        logger.info(f"Extraction analyzeFields: document={document_name}, hint={document_type_hint}")
        payload = self._payload(self._request("POST", "analyze", "analyzeFields", json_body=body), "analyzeFields")
        result = AnalysisResult.from_dict(payload)

        logger.info(
            f"Extraction analyzeFields completed: document={document_name}, "
            f"fields={result.total_fields}, type={result.document_type}, "
            f"line_items={result.has_line_items}, time={result.processing_time_ms}ms"
        )
        return result

    def generate_schema(
        self,
        template_name: str,
        document_type: str,
        fields: Sequence[FieldSelection],
        save_template: bool = True,
        folder_name: Optional[str] = None,
        session_id: Optional[str] = None,
    ) -> SchemaResult:
        """Compile an extraction schema from selected fields.

        Args:
            template_name: Name the schema is saved under when save_template is set
            document_type: Detected document type
            fields: Selected fields (at least one)
            save_template: Persist the schema as a reusable template
            folder_name: Folder the template is associated with
            session_id: Continuity token from analysis
        """
        _require(template_name, "template_name")
        _require(document_type, "document_type")
        if not fields:
            raise ValueError("At least one field must be selected")

        body: Dict[str, Any] = {
            "template_name": template_name,
            "document_type": document_type,
            "selected_fields": [f.to_dict() for f in fields],
            "save_template": save_template,
        }
        if folder_name:
            body["folder_name"] = folder_name
        if session_id:
            body["session_id"] = session_id

        logger.info(
            f"Extraction generateSchema: template={template_name}, type={document_type}, "
            f"fields={len(fields)}, save={save_template}"
        )
        payload = self._payload(
            self._request("POST", "generate-schema", "generateSchema", json_body=body),
            "generateSchema",
        )
        result = SchemaResult.from_dict(payload)
        logger.info(f"Extraction generateSchema completed: template={template_name}, uri={result.storage_uri}")
        return result

    def get_template(self, template_name: str, folder_name: Optional[str] = None) -> SchemaResult:
        """Fetch a template's full schema, optionally scoped to a folder."""
        _require(template_name, "template_name")
        params = {"folder_name": folder_name} if folder_name else None

        logger.info(f"Extraction getTemplate: template={template_name}, folder={folder_name}")
        resp = self._request("GET", f"templates/{quote(template_name, safe='')}", "getTemplate", params=params)
        return SchemaResult.from_dict(self._payload(resp, "getTemplate"))

    def list_templates(self) -> TemplateListResult:
        """List all templates of the caller's organization."""
        payload = self._payload(self._request("GET", "templates", "listTemplates"), "listTemplates")
        result = TemplateListResult.from_dict(payload)
        logger.info(f"Extraction listTemplates completed: {result.total} templates")
        return result

    def extract_data(
        self,
        document_name: str,
        org_name: str,
        folder_name: str,
        template_name: Optional[str] = None,
        schema: Optional[Dict[str, Any]] = None,
        session_id: Optional[str] = None,
    ) -> ExtractionResult:
        """Run extraction with a schema and/or a saved template."""
        _require(document_name, "document_name")
        if not template_name and not schema:
            raise ValueError("Either template_name or schema must be provided")

        body: Dict[str, Any] = {
            "document_name": document_name,
            "parsed_file_path": construct_parsed_path(org_name, folder_name, document_name),
        }
        if template_name:
            body["template_name"] = template_name
        if schema:
            body["schema"] = schema
        if session_id:
            body["session_id"] = session_id

        logger.info(
            f"Extraction extractData: document={document_name}, template={template_name}, "
            f"has_schema={schema is not None}"
        )
        payload = self._payload(self._request("POST", "extract", "extractData", json_body=body), "extractData")
        result = ExtractionResult.from_dict(payload)

        logger.info(
            f"Extraction extractData completed: job={result.extraction_job_id}, "
            f"fields={result.extracted_field_count}, tokens={result.token_usage}"
        )
        return result

    def save_extracted_data(
        self,
        job_id: str,
        document_id: str,
        data: Dict[str, Any],
        template_name: Optional[str] = None,
        folder_name: Optional[str] = None,
    ) -> SaveResult:
        """Persist an extraction job's data against a document."""
        _require(job_id, "extraction_job_id")
        _require(document_id, "document_id")

        body: Dict[str, Any] = {
            "extraction_job_id": job_id,
            "document_id": document_id,
            "extracted_data": data,
        }
        if template_name:
            body["template_id"] = template_name
        if folder_name:
            body["folder_name"] = folder_name

        logger.info(f"Extraction saveExtractedData: job={job_id}, document={document_id}")
        payload = self._payload(self._request("POST", "save", "saveExtractedData", json_body=body), "saveExtractedData")
        return SaveResult.from_dict(payload)

    def export_to_excel(self, job_id: str) -> ExportPayload:
        """Download the spreadsheet rendering of an extraction job.

        The filename comes from Content-Disposition when present.
        """
        _require(job_id, "extraction_job_id")

        logger.info(f"Extraction exportToExcel: job={job_id}")
        resp = self._request("GET", f"export/{quote(job_id, safe='')}", "exportToExcel")

        filename = f"extraction_{job_id}.xlsx"
        disposition = resp.headers.get("content-disposition")
        if disposition:
            match = _FILENAME_RE.search(disposition)
            if match and match.group(1):
                filename = match.group(1).replace('"', "").replace("'", "")

        return ExportPayload(content=resp.content, filename=filename)
