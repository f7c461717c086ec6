"""
Export selection: which entities an export with given options contains.

Selection rules:
- full: every entity in scope
- incremental with a start date: entities created OR updated on/after it
- incremental + include_linked_context: plus the targets of outgoing
  relationships from the selected set (one hop, never transitive)
"""

import logging

from ..database import EntityStore
from ..models import Entity, ExportCounts, ExportMode, ExportOptions, ExportPreview

logger = logging.getLogger(__name__)


def expand_linked_context(store: EntityStore, seeds: list[Entity]) -> list[Entity]:
    """Entities one outgoing hop away from the seeds, excluding the seeds.

    Entities added here are not expanded further.
    """
    if not seeds:
        return []

    included = {entity.id for entity in seeds}
    additional: list[Entity] = []
    for target in store.list_relationship_targets([entity.id for entity in seeds]):
        if target.id not in included:
            included.add(target.id)
            additional.append(target)

    logger.debug(f"Linked context added {len(additional)} entities")
    return additional


def select_entities(store: EntityStore, options: ExportOptions) -> list[Entity]:
    """Entities in export order: base selection by updatedAt desc, then linked."""
    since = None
    if options.mode == ExportMode.INCREMENTAL and options.cutoff:
        since = options.cutoff

    selected = store.list_entities(
        None if options.is_all_products else options.product_id,
        since=since,
    )

    if options.mode == ExportMode.INCREMENTAL and options.include_linked_context:
        selected.extend(expand_linked_context(store, selected))

    return selected


def get_preview(store: EntityStore, options: ExportOptions) -> ExportPreview:
    """Build the export preview: entity summaries plus counts by type."""
    counts = ExportCounts()
    summaries = []
    for entity in select_entities(store, options):
        counts.add(entity.type)
        summaries.append(entity.to_summary())

    return ExportPreview(counts=counts, entities=summaries)
