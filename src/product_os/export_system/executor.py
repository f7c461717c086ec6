"""
Export execution: write an export bundle to disk and record it in history.

Bundle layout:
    <workspace>/exports/runs/<export_id>/
        <type_folder>/<slug>-<id8>.md
        manifest.json
        snapshot.md

The history record is inserted only after every file is written. A failed
run leaves its partial directory in place and no history record.
"""

import json
import logging
from pathlib import Path

from ..database import EntityStore, generate_id, utc_now
from ..exceptions import (
    ExportError,
    ProductNotFoundError,
    WorkspaceNotConfiguredError,
)
from ..models import (
    TYPE_FOLDERS,
    TYPE_LABELS,
    Entity,
    ExportCounts,
    ExportMode,
    ExportOptions,
    ExportRecord,
    ExportResult,
)
from .dates import format_date
from .markdown import render_entity_markdown, sanitize_filename
from .preview import get_preview

logger = logging.getLogger(__name__)

MANIFEST_FILENAME = "manifest.json"
SNAPSHOT_FILENAME = "snapshot.md"
RECENT_ACTIVITY_LIMIT = 20


def get_runs_dir(workspace_path: Path | str) -> Path:
    """Directory holding one subdirectory per export run."""
    return Path(workspace_path) / "exports" / "runs"


def entity_relative_path(entity: Entity, used: set[str] | None = None) -> str:
    """Relative POSIX path of an entity's markdown file inside a bundle.

    When the short-id name is already taken in this run, the full id is
    used instead so no file is overwritten.
    """
    folder = TYPE_FOLDERS[entity.type]
    slug = sanitize_filename(entity.title or "untitled")
    path = f"{folder}/{slug}-{entity.id[:8]}.md"
    if used is not None and path in used:
        path = f"{folder}/{slug}-{entity.id}.md"
    return path


def render_export_snapshot(
    entities: list[Entity],
    counts: ExportCounts,
    options: ExportOptions,
    exported_at: str,
) -> str:
    """Human-readable digest written next to the manifest."""
    lines = ["# Export Snapshot", ""]
    lines.append(f"**Exported:** {exported_at}")
    lines.append(f"**Mode:** {options.mode.value}")
    if options.mode == ExportMode.INCREMENTAL and options.start_date:
        lines.append(f"**Since:** {options.start_date}")
    lines.append("")

    lines.append("## Summary")
    lines.append("")
    lines.append(f"**Total Items:** {counts.total}")
    lines.append("")
    for entity_type, count in counts.by_type.items():
        if count > 0:
            lines.append(f"- **{TYPE_LABELS[entity_type]}:** {count}")
    lines.append("")

    lines.append("## Recent Activity")
    lines.append("")
    recent = sorted(entities, key=lambda e: e.updated_at, reverse=True)
    for entity in recent[:RECENT_ACTIVITY_LIMIT]:
        lines.append(
            f"- [{entity.type.value}] {entity.title or 'Untitled'} "
            f"({format_date(entity.updated_at)})"
        )

    return "\n".join(lines) + "\n"


def build_manifest(
    export_id: str,
    exported_at: str,
    options: ExportOptions,
    counts: ExportCounts,
    files: list[tuple[Entity, str]],
) -> dict:
    """Manifest describing a bundle; each path is exactly the file written."""
    return {
        "exportId": export_id,
        "exportedAt": exported_at,
        "mode": options.mode.value,
        "scopeType": options.scope_type.value,
        "productId": options.product_id,
        "startDate": options.start_date or None,
        "counts": counts.to_dict(),
        "files": [
            {
                "id": entity.id,
                "type": entity.type.value,
                "title": entity.title,
                "path": path,
            }
            for entity, path in files
        ],
    }


def execute_export(
    store: EntityStore,
    options: ExportOptions,
    workspace_path: Path | str | None,
    now: str | None = None,
) -> ExportResult:
    """Write an export bundle and record it.

    Args:
        store: Entity store
        options: Selection options
        workspace_path: Workspace root; exports go under <root>/exports/runs
        now: Override the run timestamp

    Returns:
        ExportResult for the completed run

    Raises:
        WorkspaceNotConfiguredError: No workspace root configured
        ProductNotFoundError: A specific product id does not exist
        ExportError: Writing the bundle failed (no history record stored)
    """
    if not workspace_path:
        raise WorkspaceNotConfiguredError()
    if not options.is_all_products and store.get_product(options.product_id) is None:
        raise ProductNotFoundError(options.product_id)

    export_id = generate_id("exp")
    now = now or utc_now()
    preview = get_preview(store, options)
    export_dir = get_runs_dir(workspace_path) / export_id

    files: list[tuple[Entity, str]] = []
    used_paths: set[str] = set()
    counts = ExportCounts()

    try:
        export_dir.mkdir(parents=True, exist_ok=True)

        for summary in preview.entities:
            entity = store.get_entity(summary.id)
            if entity is None:
                logger.warning(f"Entity disappeared during export, skipping: {summary.id}")
                continue

            markdown = render_entity_markdown(
                entity,
                tags=store.resolve_tag_names(
                    entity.persona_ids, entity.feature_ids, entity.dimension_value_ids
                ),
                links=store.get_linked_counts(entity.id),
            )
            relative_path = entity_relative_path(entity, used_paths)
            target = export_dir / relative_path
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(markdown, encoding="utf-8")

            used_paths.add(relative_path)
            files.append((entity, relative_path))
            counts.add(entity.type)

        manifest = build_manifest(export_id, now, options, counts, files)
        (export_dir / MANIFEST_FILENAME).write_text(
            json.dumps(manifest, indent=2), encoding="utf-8"
        )

        snapshot = render_export_snapshot(
            [entity for entity, _ in files], counts, options, now
        )
        (export_dir / SNAPSHOT_FILENAME).write_text(snapshot, encoding="utf-8")

    except OSError as e:
        logger.error(f"Export {export_id} failed, leaving {export_dir} for inspection")
        raise ExportError(f"Failed to write export {export_id}: {e}") from e

    store.store_export_record(
        ExportRecord(
            id=export_id,
            product_id=None if options.is_all_products else options.product_id,
            mode=options.mode,
            scope_type=options.scope_type,
            start_date=options.start_date or None,
            end_date=now,
            counts=counts,
            output_path=str(export_dir),
            created_at=now,
        )
    )

    logger.info(f"Exported {counts.total} entities to {export_dir}")
    return ExportResult(
        id=export_id,
        output_path=str(export_dir),
        counts=counts,
        created_at=now,
    )
