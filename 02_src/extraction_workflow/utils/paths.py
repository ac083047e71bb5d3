"""Storage path helpers for parsed documents."""


def get_base_name(document_name: str) -> str:
    """Strip the last extension from a document name.

    Examples:
        >>> get_base_name("invoice.pdf")
        'invoice'
        >>> get_base_name("archive.tar.gz")
        'archive.tar'
        >>> get_base_name(".env")
        '.env'
    """
    dot = document_name.rfind(".")
    return document_name[:dot] if dot > 0 else document_name


def construct_parsed_path(org_name: str, folder_name: str, document_name: str) -> str:
    """Build the storage path of a document's parsed markdown.

    Examples:
        >>> construct_parsed_path("Acme Corp", "invoices", "doc.pdf")
        'Acme Corp/parsed/invoices/doc.md'
    """
    for label, value in (
        ("org_name", org_name),
        ("folder_name", folder_name),
        ("document_name", document_name),
    ):
        if not value or not value.strip():
            raise ValueError(f"{label} is required and cannot be empty")

    return f"{org_name}/parsed/{folder_name}/{get_base_name(document_name)}.md"
