"""Tests for handoff store backends and extraction-context helpers."""

from pathlib import Path

import pytest
import yaml

from extraction_workflow.core.state import (
    DiskHandoffStore,
    MemoryHandoffStore,
    clear_extraction_context,
    extraction_context_key,
    store_extraction_context,
    take_extraction_context,
)
from extraction_workflow.schemas.document import Document


class TestMemoryHandoffStore:
    """Test suite for MemoryHandoffStore backend."""

    @pytest.fixture
    def store(self) -> MemoryHandoffStore:
        return MemoryHandoffStore()

    def test_put_and_take(self, store: MemoryHandoffStore) -> None:
        """Test that take returns the stored value."""
        store.put("key", {"a": 1})
        assert store.take("key") == {"a": 1}

    def test_take_clears(self, store: MemoryHandoffStore) -> None:
        """Test that a value can only be taken once."""
        store.put("key", {"a": 1})
        store.take("key")

        assert store.take("key") is None
        assert not store.exists("key")

    def test_put_overwrites(self, store: MemoryHandoffStore) -> None:
        """Test that a second put replaces the value."""
        store.put("key", {"v": 1})
        store.put("key", {"v": 2})
        assert store.take("key") == {"v": 2}


class TestDiskHandoffStore:
    """Test suite for DiskHandoffStore backend."""

    @pytest.fixture
    def store(self, tmp_path: Path) -> DiskHandoffStore:
        return DiskHandoffStore(tmp_path)

    def test_directory_creation(self, store: DiskHandoffStore) -> None:
        """Test that the handoff directory is created."""
        assert store.handoff_dir.exists()

    def test_put_writes_yaml(self, store: DiskHandoffStore) -> None:
        """Test that values are written as YAML files."""
        store.put("extraction-context-1", {"folder_name": "Счета", "n": 3})

        file_path = store.handoff_dir / "extraction-context-1.yaml"
        assert file_path.exists()
        with file_path.open(encoding="utf-8") as f:
            assert yaml.safe_load(f) == {"folder_name": "Счета", "n": 3}

    def test_take_removes_file(self, store: DiskHandoffStore) -> None:
        """Test that take reads and deletes the file."""
        store.put("key", {"a": [1, 2]})

        assert store.exists("key")
        assert store.take("key") == {"a": [1, 2]}
        assert not store.exists("key")
        assert store.take("key") is None

    def test_unsafe_key_is_sanitized(self, store: DiskHandoffStore) -> None:
        """Test that keys cannot escape the handoff directory."""
        store.put("../../etc/passwd", {"x": 1})

        assert list(store.handoff_dir.iterdir()) == [store.handoff_dir / ".._.._etc_passwd.yaml"]
        assert store.take("../../etc/passwd") == {"x": 1}

    def test_empty_key_rejected(self, store: DiskHandoffStore) -> None:
        """Test that an empty key raises ValueError."""
        with pytest.raises(ValueError):
            store.put("", {})


class TestExtractionContextHelpers:
    """Producer/consumer helpers on top of a store."""

    @pytest.fixture(params=["memory", "disk"])
    def store(self, request, tmp_path):
        if request.param == "memory":
            return MemoryHandoffStore()
        return DiskHandoffStore(tmp_path)

    def test_store_and_take(self, store) -> None:
        """Test that the context round-trips through the store and is consumed."""
        document = Document(id="42", name="invoice.pdf", folder_id="f-1", metadata={"size": 1024})
        store_extraction_context(store, "42", document, {"pages": 2}, "Invoices")

        context = take_extraction_context(store, "42")

        assert context.document == document
        assert context.parse_output == {"pages": 2}
        assert context.folder_name == "Invoices"
        assert take_extraction_context(store, "42") is None

    def test_missing_context(self, store) -> None:
        """Test that an absent context yields None."""
        assert take_extraction_context(store, "nope") is None

    def test_clear(self, store) -> None:
        """Test that clear removes a stored context."""
        store_extraction_context(store, "1", Document(id="1", name="a.pdf"), None, "default")
        clear_extraction_context(store, "1")

        assert not store.exists(extraction_context_key("1"))
