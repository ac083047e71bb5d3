"""Session-scoped handoff store with memory and disk backends.

The ingestion side puts an extraction context under a document key before
navigating; the extraction side takes it once (read-and-clear).
"""

import logging
import re
from pathlib import Path
from typing import Any, Dict, Optional, Protocol

import yaml

from ..schemas.document import Document, ExtractionContext

logger = logging.getLogger(__name__)

_UNSAFE_KEY_CHARS = re.compile(r"[^A-Za-z0-9_.-]")


class HandoffStore(Protocol):
    """Protocol for handoff store backends."""

    def put(self, key: str, value: Dict[str, Any]) -> None:
        """Store value under key, replacing any previous value.

        Args:
            key: Store key (e.g., "extraction-context-42")
            value: JSON/YAML-serializable dict
        """
        ...

    def take(self, key: str) -> Optional[Dict[str, Any]]:
        """Return the value under key and remove it.

        Args:
            key: Store key

        Returns:
            Stored value or None if the key is absent
        """
        ...

    def exists(self, key: str) -> bool:
        ...


class MemoryHandoffStore:
    """In-memory handoff store for a single process."""

    def __init__(self) -> None:
        self._data: Dict[str, Dict[str, Any]] = {}
        logger.info("Initialized MemoryHandoffStore backend")

    def put(self, key: str, value: Dict[str, Any]) -> None:
        self._data[key] = value
        logger.debug(f"MemoryHandoffStore: stored key '{key}'")

    def take(self, key: str) -> Optional[Dict[str, Any]]:
        value = self._data.pop(key, None)
        logger.debug(f"MemoryHandoffStore: took key '{key}' (found: {value is not None})")
        return value

    def exists(self, key: str) -> bool:
        return key in self._data


class DiskHandoffStore:
    """File-based handoff store, one YAML file per key under state_dir/handoff."""

    def __init__(self, state_dir: Path) -> None:
        """Initialize disk store.

        Args:
            state_dir: Root directory for state storage
        """
        self.state_dir = Path(state_dir)
        self.handoff_dir = self.state_dir / "handoff"
        self.handoff_dir.mkdir(parents=True, exist_ok=True)
        logger.info(f"Initialized DiskHandoffStore backend at {self.handoff_dir}")

    def _get_file_path(self, key: str) -> Path:
        if not key:
            raise ValueError("Handoff key cannot be empty")
        return self.handoff_dir / f"{_UNSAFE_KEY_CHARS.sub('_', key)}.yaml"

    def put(self, key: str, value: Dict[str, Any]) -> None:
        file_path = self._get_file_path(key)
        try:
            with file_path.open("w", encoding="utf-8") as f:
                yaml.safe_dump(value, f, allow_unicode=True, default_flow_style=False)
            logger.info(f"DiskHandoffStore: stored key '{key}' to {file_path}")
        except Exception as e:
            logger.error(f"DiskHandoffStore: failed to store key '{key}': {e}")
            raise

    def take(self, key: str) -> Optional[Dict[str, Any]]:
        file_path = self._get_file_path(key)
        if not file_path.exists():
            logger.debug(f"DiskHandoffStore: key '{key}' not found")
            return None

        try:
            with file_path.open("r", encoding="utf-8") as f:
                value = yaml.safe_load(f)
        except Exception as e:
            logger.error(f"DiskHandoffStore: failed to load key '{key}': {e}")
            raise

        file_path.unlink()
        logger.debug(f"DiskHandoffStore: took key '{key}' from {file_path}")
        return value

    def exists(self, key: str) -> bool:
        return self._get_file_path(key).exists()


def extraction_context_key(document_id: str) -> str:
    return f"extraction-context-{document_id}"


def store_extraction_context(
    store: HandoffStore,
    document_id: str,
    document: Document,
    parse_output: Optional[Dict[str, Any]],
    folder_name: str,
) -> None:
    """Store the extraction context before navigating to the extraction view."""
    context = ExtractionContext(document=document, parse_output=parse_output, folder_name=folder_name)
    store.put(extraction_context_key(document_id), context.to_dict())
    logger.info(
        f"Stored extraction context: document_id={document_id}, name={document.name}, "
        f"folder={folder_name}, has_parse_output={parse_output is not None}"
    )


def take_extraction_context(store: HandoffStore, document_id: str) -> Optional[ExtractionContext]:
    """Read and clear the extraction context of a document."""
    data = store.take(extraction_context_key(document_id))
    if data is None:
        return None
    return ExtractionContext.from_dict(data)


def clear_extraction_context(store: HandoffStore, document_id: str) -> None:
    store.take(extraction_context_key(document_id))
