"""Export System - markdown export bundles and copy snapshots.

Usage:
    from product_os.database import EntityStore
    from product_os.export_system import ExportSystem
    from product_os.models import ExportMode, ExportOptions

    exports = ExportSystem(EntityStore(db_path=...), workspace_path=...)

    options = ExportOptions(
        product_id="prod_1a2b3c4d5e6f",
        mode=ExportMode.INCREMENTAL,
        start_date="2024-06-01",
        include_linked_context=True,
    )
    preview = exports.get_export_preview(options)
    result = exports.execute_export(options)

    markdown = exports.generate_copy_snapshot("prod_1a2b3c4d5e6f")
"""

from .copy_snapshot import extract_questions, generate_copy_snapshot
from .executor import execute_export
from .markdown import html_to_text, render_entity_markdown, sanitize_filename
from .operations import ExportSystem, open_folder
from .preview import expand_linked_context, get_preview

__all__ = [
    "ExportSystem",
    "get_preview",
    "expand_linked_context",
    "execute_export",
    "render_entity_markdown",
    "sanitize_filename",
    "html_to_text",
    "generate_copy_snapshot",
    "extract_questions",
    "open_folder",
]
