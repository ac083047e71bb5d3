"""Template catalog - cached list of an organization's extraction templates."""

import logging
from typing import List, Optional

from ..schemas.templates import TemplateInfo
from .service_client import BaseExtractionClient, ExtractionServiceError

logger = logging.getLogger(__name__)


def normalize_for_matching(value: str) -> str:
    """Lowercase, trim, hyphens to underscores, drop a plural trailing 's'.

    Examples:
        >>> normalize_for_matching(" Purchase-Orders ")
        'purchase_order'
    """
    normalized = value.strip().lower().replace("-", "_")
    return normalized[:-1] if normalized.endswith("s") else normalized


def template_association(template: TemplateInfo) -> str:
    """The folder a template belongs to: its folder_name when the service sent one, else its document type."""
    return template.folder_name or template.document_type


def filter_templates_by_folder(templates: List[TemplateInfo], folder_name: Optional[str]) -> List[TemplateInfo]:
    """Keep the templates whose association equals the folder name after normalization.

    "Invoices" matches a template of document type "invoice". Non-matching
    templates are dropped; an empty folder name matches nothing.
    """
    if not folder_name or not folder_name.strip():
        return []
    target = normalize_for_matching(folder_name)
    return [
        t for t in templates
        if template_association(t) and normalize_for_matching(template_association(t)) == target
    ]


class TemplateCatalog:
    """Loads and caches templates from the extraction service.

    The first access to `templates` loads the list once; refresh() reloads it.
    A failed refresh keeps the previously cached list and records `error`.
    """

    def __init__(self, client: BaseExtractionClient) -> None:
        self.client = client
        self.error: Optional[str] = None
        self.is_loading = False
        self._templates: List[TemplateInfo] = []
        self._loaded = False
        self._attempted = False

    def refresh(self) -> bool:
        """Reload the template list.

        Returns:
            True on success, False if the service call failed
        """
        self.is_loading = True
        self.error = None
        self._attempted = True
        try:
            result = self.client.list_templates()
        except ExtractionServiceError as e:
            self.error = str(e) or "Failed to load templates"
            logger.error(f"Failed to load templates: {e}")
            return False
        finally:
            self.is_loading = False

        self._templates = list(result.templates)
        self._loaded = True
        logger.info(f"Template catalog loaded {len(self._templates)} templates")
        return True

    @property
    def templates(self) -> List[TemplateInfo]:
        if not self._attempted and not self.is_loading:
            self.refresh()
        return list(self._templates)

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    def get(self, name: str) -> Optional[TemplateInfo]:
        return next((t for t in self.templates if t.name == name), None)

    def filter_by_folder(self, folder_name: Optional[str]) -> List[TemplateInfo]:
        return filter_templates_by_folder(self.templates, folder_name)

    def has_templates_for(self, folder_name: Optional[str]) -> bool:
        return bool(self.filter_by_folder(folder_name))
