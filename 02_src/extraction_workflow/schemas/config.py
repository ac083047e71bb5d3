"""Configuration schemas for service clients and the workflow."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

DEFAULT_EXTRACTION_API_URL = "http://localhost:8001/api/v1"
DEFAULT_DOCUMENT_API_URL = "http://localhost:8000/api/v1"


@dataclass
class ServiceConfig:
    """Configuration for the extraction-service client.

    Attributes:
        base_url: Extraction API root (from env EXTRACTION_API_URL if not provided)
        api_key: Bearer token (from env EXTRACTION_API_KEY if not provided, optional)
        timeout_sec: Request timeout in seconds
        max_retries: Maximum number of retry attempts
        backoff_base: Base for exponential backoff calculation
    """
    base_url: Optional[str] = None
    api_key: Optional[str] = None
    timeout_sec: int = 60
    max_retries: int = 3
    backoff_base: float = 1.5

    def __post_init__(self):
        """Load endpoint and key from environment if not provided."""
        if self.base_url is None:
            self.base_url = os.getenv("EXTRACTION_API_URL", DEFAULT_EXTRACTION_API_URL)
        if self.api_key is None:
            self.api_key = os.getenv("EXTRACTION_API_KEY") or None
        self.base_url = self.base_url.rstrip("/")
        if self.max_retries < 1:
            raise ValueError("max_retries must be at least 1")


@dataclass
class DocumentServiceConfig:
    """Configuration for the document-service client used for folder lookups.

    Attributes:
        base_url: Document API root (from env DOCUMENT_API_URL if not provided)
        api_key: Bearer token (from env DOCUMENT_API_KEY if not provided, optional)
        timeout_sec: Request timeout in seconds
    """
    base_url: Optional[str] = None
    api_key: Optional[str] = None
    timeout_sec: int = 30

    def __post_init__(self):
        if self.base_url is None:
            self.base_url = os.getenv("DOCUMENT_API_URL", DEFAULT_DOCUMENT_API_URL)
        if self.api_key is None:
            self.api_key = os.getenv("DOCUMENT_API_KEY") or None
        self.base_url = self.base_url.rstrip("/")


@dataclass
class WorkflowConfig:
    """Configuration for a workflow run.

    Attributes:
        state_dir: Directory for the handoff store (optional, memory if None)
        export_dir: Directory where exported spreadsheets are written
        default_folder: Folder name used when a document's folder is unknown
        log_level: Logging level (default: INFO)
    """
    state_dir: Optional[Path] = None
    export_dir: Path = Path(".")
    default_folder: str = "default"
    log_level: str = "INFO"
