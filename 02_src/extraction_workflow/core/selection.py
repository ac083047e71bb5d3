"""Field selection manager.

Holds the manual field selections and the active template together: picking
a template empties the selections, and any manual selection change drops
the template.
"""

import logging
from typing import Iterable, List, Optional

from ..schemas.fields import DiscoveredField, FieldSelection
from ..schemas.templates import TemplateInfo

logger = logging.getLogger(__name__)


class FieldSelectionManager:
    """In-memory field selections keyed by field_name."""

    def __init__(self) -> None:
        self._selections: List[FieldSelection] = []
        self._template: Optional[TemplateInfo] = None

    @property
    def selections(self) -> List[FieldSelection]:
        return list(self._selections)

    @property
    def selected_names(self) -> List[str]:
        return [s.field_name for s in self._selections]

    @property
    def template(self) -> Optional[TemplateInfo]:
        return self._template

    def __len__(self) -> int:
        return len(self._selections)

    def is_selected(self, field_name: str) -> bool:
        return any(s.field_name == field_name for s in self._selections)

    def toggle(self, field: DiscoveredField) -> bool:
        """Add the field if absent, remove it if present.

        Returns:
            True if the field is selected after the call
        """
        self._template = None

        for index, selection in enumerate(self._selections):
            if selection.field_name == field.field_name:
                del self._selections[index]
                logger.debug(f"Deselected field '{field.field_name}'")
                return False

        self._selections.append(FieldSelection.from_field(field))
        logger.debug(f"Selected field '{field.field_name}'")
        return True

    def select_all(
        self,
        discovered_fields: Iterable[DiscoveredField],
        line_item_fields: Iterable[DiscoveredField] = (),
    ) -> None:
        """Replace the selections with every discovered and line-item field."""
        self._selections = [FieldSelection.from_field(f) for f in discovered_fields]
        self._selections.extend(FieldSelection.from_field(f) for f in line_item_fields)
        self._template = None
        logger.debug(f"Selected all {len(self._selections)} fields")

    def clear(self) -> None:
        self._selections = []
        self._template = None

    def choose_template(self, template: Optional[TemplateInfo]) -> None:
        """Make a template active; a non-null template empties the selections."""
        self._template = template
        if template is not None:
            self._selections = []
            logger.debug(f"Template '{template.name}' chosen, manual selections cleared")
