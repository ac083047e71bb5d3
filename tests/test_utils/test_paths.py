"""Tests for parsed-document path helpers."""

import pytest

from extraction_workflow.utils.paths import construct_parsed_path, get_base_name


@pytest.mark.parametrize(
    "name, expected",
    [
        ("invoice.pdf", "invoice"),
        ("archive.tar.gz", "archive.tar"),
        ("README", "README"),
        (".env", ".env"),
    ],
)
def test_get_base_name(name, expected):
    """Only the last extension is stripped; dotfiles keep their name."""
    assert get_base_name(name) == expected


def test_construct_parsed_path():
    """The parsed markdown lives under {org}/parsed/{folder}/{base}.md."""
    assert construct_parsed_path("Acme Corp", "Invoices", "invoice_001.pdf") == "Acme Corp/parsed/Invoices/invoice_001.md"


@pytest.mark.parametrize(
    "org, folder, doc",
    [("", "Invoices", "a.pdf"), ("Acme", "  ", "a.pdf"), ("Acme", "Invoices", "")],
)
def test_construct_parsed_path_rejects_empty(org, folder, doc):
    """Empty components raise ValueError."""
    with pytest.raises(ValueError):
        construct_parsed_path(org, folder, doc)
