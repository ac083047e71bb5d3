"""Export sinks - where a downloaded spreadsheet ends up."""

import logging
from pathlib import Path
from typing import Callable

from ..schemas.extraction import ExportPayload

logger = logging.getLogger(__name__)

ExportSink = Callable[[ExportPayload], Path]


class FileExportSink:
    """Writes export payloads into a directory, keeping the server's filename."""

    def __init__(self, export_dir: Path) -> None:
        self.export_dir = Path(export_dir)

    def __call__(self, payload: ExportPayload) -> Path:
        self.export_dir.mkdir(parents=True, exist_ok=True)
        # Server-supplied names must not escape export_dir
        target = self.export_dir / Path(payload.filename).name
        target.write_bytes(payload.content)
        logger.info(f"Exported {len(payload.content)} bytes to {target}")
        return target
