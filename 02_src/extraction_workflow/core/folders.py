"""Folder-name resolution through the document service."""

import logging
from abc import ABC, abstractmethod
from typing import Dict, Optional

import requests

from ..schemas.config import DocumentServiceConfig
from ..schemas.document import Document
from .service_client import ExtractionWorkflowError

logger = logging.getLogger(__name__)

DEFAULT_FOLDER = "default"


class FolderResolutionError(ExtractionWorkflowError):
    """Raised when the document service cannot return a folder."""


class BaseFolderResolver(ABC):
    """Resolves a document's folder name.

    Subclasses implement lookup(); resolve() applies the shortcut and fallback.
    """

    def __init__(self, default_folder: str = DEFAULT_FOLDER) -> None:
        self.default_folder = default_folder

    @abstractmethod
    def lookup(self, org_id: str, folder_id: str) -> str:
        """Return the name of a folder.

        Raises:
            FolderResolutionError: If the folder cannot be fetched
        """
        raise NotImplementedError

    def resolve(self, document: Document, org_id: Optional[str]) -> str:
        """Resolve a document's folder name.

        Uses document.folder_name when present, otherwise looks the folder up
        by id; falls back to default_folder when neither works.
        """
        if document.folder_name:
            return document.folder_name

        if document.folder_id and org_id:
            try:
                return self.lookup(org_id, document.folder_id)
            except FolderResolutionError as e:
                logger.warning(f"Could not resolve folder name for '{document.name}': {e}")

        return self.default_folder


class StaticFolderResolver(BaseFolderResolver):
    """Resolver backed by a fixed folder_id -> name mapping."""

    def __init__(self, folders: Optional[Dict[str, str]] = None, default_folder: str = DEFAULT_FOLDER) -> None:
        super().__init__(default_folder)
        self.folders = dict(folders or {})

    def lookup(self, org_id: str, folder_id: str) -> str:
        try:
            return self.folders[folder_id]
        except KeyError:
            raise FolderResolutionError(f"Unknown folder: {folder_id}") from None


class DocumentServiceFolderResolver(BaseFolderResolver):
    """Resolver calling GET {base}/organizations/{org_id}/folders/{folder_id}."""

    def __init__(
        self,
        config: Optional[DocumentServiceConfig] = None,
        default_folder: str = DEFAULT_FOLDER,
    ) -> None:
        super().__init__(default_folder)
        self.config = config or DocumentServiceConfig()
        self._cache: Dict[str, str] = {}

    def lookup(self, org_id: str, folder_id: str) -> str:
        cache_key = f"{org_id}/{folder_id}"
        if cache_key in self._cache:
            return self._cache[cache_key]

        url = f"{self.config.base_url}/organizations/{org_id}/folders/{folder_id}"
        headers = {"Accept": "application/json"}
        if self.config.api_key:
            headers["Authorization"] = f"Bearer {self.config.api_key}"

        try:
            resp = requests.get(url, headers=headers, timeout=self.config.timeout_sec)
            resp.raise_for_status()
            payload = resp.json()
        except (requests.RequestException, ValueError) as exc:
            raise FolderResolutionError(f"Folder lookup failed: {exc}") from exc

        name = payload.get("name") if isinstance(payload, dict) else None
        if not name:
            raise FolderResolutionError(f"Folder {folder_id} has no name")

        self._cache[cache_key] = name
        logger.debug(f"Resolved folder {folder_id} -> '{name}'")
        return name
