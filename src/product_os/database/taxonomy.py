"""
Taxonomy storage: personas, features, dimensions and dimension values.

Items are never hard-deleted; archiving hides them from default listings
while keeping existing entity tags resolvable.
"""

import logging
from dataclasses import dataclass

from ..exceptions import NotFoundError
from ..models import ResolvedTags, Taxonomy, TaxonomyItem, TaxonomyKind
from .database import ProductOSDatabase, generate_id, utc_now

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _TableSpec:
    table: str
    parent_column: str
    label: str
    id_prefix: str


_TABLES: dict[TaxonomyKind, _TableSpec] = {
    TaxonomyKind.PERSONA: _TableSpec("personas", "product_id", "Persona", "pers"),
    TaxonomyKind.FEATURE: _TableSpec("features", "product_id", "Feature", "feat"),
    TaxonomyKind.DIMENSION: _TableSpec("dimensions", "product_id", "Dimension", "dim"),
    TaxonomyKind.DIMENSION_VALUE: _TableSpec(
        "dimension_values", "dimension_id", "Dimension value", "dimval"
    ),
}


def _item_from_row(kind: TaxonomyKind, row) -> TaxonomyItem:
    spec = _TABLES[kind]
    return TaxonomyItem(
        id=row["id"],
        kind=kind,
        parent_id=row[spec.parent_column],
        name=row["name"],
        is_archived=row["is_archived"] == 1,
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def create_taxonomy_item(
    db: ProductOSDatabase, kind: TaxonomyKind, parent_id: str, name: str
) -> TaxonomyItem:
    """Create a persona, feature, dimension or dimension value.

    Args:
        db: Database handle
        kind: Item kind
        parent_id: Product id, or dimension id for dimension values
        name: Display name

    Returns:
        Created TaxonomyItem
    """
    kind = TaxonomyKind(kind)
    spec = _TABLES[kind]
    item_id = generate_id(spec.id_prefix)
    now = utc_now()

    db.execute_update(
        f"""
        INSERT INTO {spec.table}
        (id, {spec.parent_column}, name, is_archived, created_at, updated_at)
        VALUES (?, ?, ?, 0, ?, ?)
        """,
        (item_id, parent_id, name, now, now),
    )
    logger.debug(f"Created {kind.value} {item_id}: {name}")
    return TaxonomyItem(
        id=item_id,
        kind=kind,
        parent_id=parent_id,
        name=name,
        created_at=now,
        updated_at=now,
    )


def get_taxonomy_item(
    db: ProductOSDatabase, kind: TaxonomyKind, item_id: str
) -> TaxonomyItem | None:
    """Get one taxonomy item by id."""
    kind = TaxonomyKind(kind)
    row = db.execute_one(
        f"SELECT * FROM {_TABLES[kind].table} WHERE id = ?", (item_id,)
    )
    return _item_from_row(kind, row) if row else None


def list_taxonomy_items(
    db: ProductOSDatabase,
    kind: TaxonomyKind,
    parent_id: str,
    include_archived: bool = False,
) -> list[TaxonomyItem]:
    """List items of one kind under a product (or dimension), by name."""
    kind = TaxonomyKind(kind)
    spec = _TABLES[kind]
    where = "" if include_archived else " AND is_archived = 0"
    rows = db.execute(
        f"SELECT * FROM {spec.table} WHERE {spec.parent_column} = ?{where} ORDER BY name",
        (parent_id,),
    )
    return [_item_from_row(kind, row) for row in rows]


def _update_item(
    db: ProductOSDatabase,
    kind: TaxonomyKind,
    item_id: str,
    column: str,
    value,
) -> TaxonomyItem:
    kind = TaxonomyKind(kind)
    spec = _TABLES[kind]
    rows = db.execute_update(
        f"UPDATE {spec.table} SET {column} = ?, updated_at = ? WHERE id = ?",
        (value, utc_now(), item_id),
    )
    if rows == 0:
        raise NotFoundError(spec.label, item_id)

    item = get_taxonomy_item(db, kind, item_id)
    if item is None:
        raise NotFoundError(spec.label, item_id)
    return item


def rename_taxonomy_item(
    db: ProductOSDatabase, kind: TaxonomyKind, item_id: str, name: str
) -> TaxonomyItem:
    """Rename a taxonomy item.

    Raises:
        NotFoundError: If the item does not exist
    """
    return _update_item(db, kind, item_id, "name", name)


def archive_taxonomy_item(
    db: ProductOSDatabase, kind: TaxonomyKind, item_id: str
) -> TaxonomyItem:
    """Archive a taxonomy item.

    Raises:
        NotFoundError: If the item does not exist
    """
    return _update_item(db, kind, item_id, "is_archived", 1)


def unarchive_taxonomy_item(
    db: ProductOSDatabase, kind: TaxonomyKind, item_id: str
) -> TaxonomyItem:
    """Restore an archived taxonomy item.

    Raises:
        NotFoundError: If the item does not exist
    """
    return _update_item(db, kind, item_id, "is_archived", 0)


def get_taxonomy(
    db: ProductOSDatabase, product_id: str, include_archived: bool = False
) -> Taxonomy:
    """Get personas, features and dimensions (with values) for a product."""
    dimensions = list_taxonomy_items(
        db, TaxonomyKind.DIMENSION, product_id, include_archived
    )
    for dimension in dimensions:
        dimension.values = list_taxonomy_items(
            db, TaxonomyKind.DIMENSION_VALUE, dimension.id, include_archived
        )

    return Taxonomy(
        personas=list_taxonomy_items(
            db, TaxonomyKind.PERSONA, product_id, include_archived
        ),
        features=list_taxonomy_items(
            db, TaxonomyKind.FEATURE, product_id, include_archived
        ),
        dimensions=dimensions,
    )


def _names_by_id(db: ProductOSDatabase, sql: str, ids: list[str]) -> dict[str, str]:
    if not ids:
        return {}
    placeholders = ", ".join("?" for _ in ids)
    rows = db.execute(sql.format(placeholders=placeholders), tuple(ids))
    return {row["id"]: row["name"] for row in rows}


def resolve_tag_names(
    db: ProductOSDatabase,
    persona_ids: list[str],
    feature_ids: list[str],
    dimension_value_ids: list[str],
) -> ResolvedTags:
    """Resolve tag ids to display names, keeping the given order.

    Dimension values render as "Dimension: Value". Unknown ids are dropped.
    """
    personas = _names_by_id(
        db, "SELECT id, name FROM personas WHERE id IN ({placeholders})", persona_ids
    )
    features = _names_by_id(
        db, "SELECT id, name FROM features WHERE id IN ({placeholders})", feature_ids
    )
    values = _names_by_id(
        db,
        """
        SELECT v.id, d.name || ': ' || v.name AS name
        FROM dimension_values v
        JOIN dimensions d ON d.id = v.dimension_id
        WHERE v.id IN ({placeholders})
        """,
        dimension_value_ids,
    )

    return ResolvedTags(
        personas=[personas[i] for i in persona_ids if i in personas],
        features=[features[i] for i in feature_ids if i in features],
        dimension_values=[values[i] for i in dimension_value_ids if i in values],
    )
