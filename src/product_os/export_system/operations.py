"""
Export System Operations - the entry points exposed to the CLI and other
callers.
"""

import logging
import os
import subprocess
import sys
from datetime import datetime
from pathlib import Path
from typing import Any

from ..config import get_db_path, get_workspace_path
from ..database import EntityStore
from ..exceptions import NotFoundError
from ..models import ExportOptions, ExportPreview, ExportRecord, ExportResult
from .copy_snapshot import generate_copy_snapshot
from .executor import execute_export
from .preview import get_preview

logger = logging.getLogger(__name__)


def open_folder(path: Path | str) -> None:
    """Open a directory in the platform file manager without waiting.

    Raises:
        NotFoundError: If the directory does not exist
    """
    folder = Path(path)
    if not folder.is_dir():
        raise NotFoundError("Folder", str(folder))

    if sys.platform.startswith("win"):
        os.startfile(folder)  # type: ignore[attr-defined]
        return

    opener = "open" if sys.platform == "darwin" else "xdg-open"
    subprocess.Popen(
        [opener, str(folder)],
        stdout=subprocess.DEVNULL,
        stderr=subprocess.DEVNULL,
    )
    logger.debug(f"Opened {folder} with {opener}")


class ExportSystem:
    """
    Main interface for export operations.

    Wraps an EntityStore and the workspace root that export bundles are
    written under.
    """

    def __init__(self, store: EntityStore, workspace_path: Path | str | None = None):
        """
        Initialize Export System.

        Args:
            store: Entity store to read from and record history in
            workspace_path: Workspace root; required only for execute_export
        """
        self.store = store
        self.workspace_path = Path(workspace_path) if workspace_path else None

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> "ExportSystem":
        """Build from a configuration dictionary (see config.load_config)."""
        store = EntityStore(db_path=get_db_path(config))
        return cls(store, get_workspace_path(config))

    # =========================================================================
    # Export runs
    # =========================================================================

    def get_export_preview(self, options: ExportOptions) -> ExportPreview:
        """Entities an export with these options would contain."""
        return get_preview(self.store, options)

    def execute_export(self, options: ExportOptions) -> ExportResult:
        """Write an export bundle under the workspace and record it."""
        return execute_export(self.store, options, self.workspace_path)

    # =========================================================================
    # History
    # =========================================================================

    def get_export_history(self, product_id: str | None = None) -> list[ExportRecord]:
        """Past export runs, newest first."""
        return self.store.get_export_history(product_id)

    def clear_export_history(self, product_id: str | None = None) -> int:
        """Delete history records; returns how many were removed."""
        return self.store.clear_export_history(product_id)

    def delete_export(self, export_id: str) -> None:
        """Delete one history record (the bundle on disk is kept)."""
        self.store.delete_export_record(export_id)

    # =========================================================================
    # Snapshots
    # =========================================================================

    def generate_copy_snapshot(
        self, product_id: str, now: datetime | None = None
    ) -> str:
        """Markdown digest of a product's current state."""
        return generate_copy_snapshot(self.store, product_id, now=now)

    def open_folder(self, path: Path | str) -> None:
        """Open an export bundle directory in the file manager."""
        open_folder(path)
