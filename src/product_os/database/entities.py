"""
Entity storage and retrieval.

Entities are the product-management artifacts (captures, problems,
hypotheses, ...). Each entity may be tagged with personas, features and
dimension values, and archived softly by setting status to "archived".
"""

import json
import logging
import sqlite3

from ..exceptions import NotFoundError, WriteRejectedError
from ..models import Entity, EntityContext, EntityType
from .database import ProductOSDatabase, generate_id, utc_now
from .products import touch_product

logger = logging.getLogger(__name__)

ARCHIVED_STATUS = "archived"

# Tag join tables: (table, id column)
_TAG_TABLES = {
    "persona_ids": ("entity_personas", "persona_id"),
    "feature_ids": ("entity_features", "feature_id"),
    "dimension_value_ids": ("entity_dimension_values", "dimension_value_id"),
}


def _stored_timestamp(value: str) -> str:
    from ..export_system.dates import to_utc_timestamp

    return to_utc_timestamp(value)


def _set_tags(
    conn: sqlite3.Connection,
    entity_id: str,
    field_name: str,
    tag_ids: list[str],
) -> None:
    table, column = _TAG_TABLES[field_name]
    conn.execute(f"DELETE FROM {table} WHERE entity_id = ?", (entity_id,))
    for tag_id in dict.fromkeys(tag_ids):
        conn.execute(
            f"INSERT INTO {table} (entity_id, {column}) VALUES (?, ?)",
            (entity_id, tag_id),
        )


def create_entity(
    db: ProductOSDatabase,
    product_id: str,
    entity_type: EntityType,
    title: str = "",
    body: str = "",
    status: str | None = None,
    metadata: dict | None = None,
    persona_ids: list[str] | None = None,
    feature_ids: list[str] | None = None,
    dimension_value_ids: list[str] | None = None,
    created_at: str | None = None,
    updated_at: str | None = None,
) -> Entity:
    """Create a new entity with its tags.

    Args:
        db: Database handle
        product_id: Owning product
        entity_type: Kind of artifact
        title: Title (may be empty)
        body: Rich-text body
        status: Optional status
        metadata: Optional type-specific metadata
        persona_ids: Persona tags
        feature_ids: Feature tags
        dimension_value_ids: Dimension value tags
        created_at: Override creation time (imports)
        updated_at: Override update time (imports)

    Returns:
        Created Entity

    Raises:
        WriteRejectedError: If timestamps are inverted or a reference is invalid
        InvalidTimestampError: If a timestamp override cannot be parsed
    """
    entity_type = EntityType(entity_type)
    entity_id = generate_id()
    created_at = _stored_timestamp(created_at) if created_at else utc_now()
    updated_at = _stored_timestamp(updated_at) if updated_at else created_at
    if updated_at < created_at:
        raise WriteRejectedError(
            f"updated_at ({updated_at}) precedes created_at ({created_at})"
        )

    tags = {
        "persona_ids": persona_ids or [],
        "feature_ids": feature_ids or [],
        "dimension_value_ids": dimension_value_ids or [],
    }

    with db.connection() as conn:
        conn.execute(
            """
            INSERT INTO entities
            (id, product_id, type, title, body, status, metadata,
             promoted_to_id, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, NULL, ?, ?)
            """,
            (
                entity_id,
                product_id,
                entity_type.value,
                title,
                body,
                status,
                json.dumps(metadata) if metadata else None,
                created_at,
                updated_at,
            ),
        )
        for field_name, tag_ids in tags.items():
            _set_tags(conn, entity_id, field_name, tag_ids)

    touch_product(db, product_id, updated_at)
    logger.debug(f"Created {entity_type.value} {entity_id}")

    return Entity(
        id=entity_id,
        product_id=product_id,
        type=entity_type,
        title=title,
        body=body,
        status=status,
        raw_metadata=metadata or None,
        created_at=created_at,
        updated_at=updated_at,
        **tags,
    )


def get_entity_context(db: ProductOSDatabase, entity_id: str) -> EntityContext:
    """Get tag ids attached to an entity."""
    context = EntityContext()
    for field_name, (table, column) in _TAG_TABLES.items():
        rows = db.execute(
            f"SELECT {column} FROM {table} WHERE entity_id = ? ORDER BY rowid",
            (entity_id,),
        )
        setattr(context, field_name, [row[column] for row in rows])
    return context


def get_entity(db: ProductOSDatabase, entity_id: str) -> Entity | None:
    """Get an entity with its tag ids."""
    row = db.execute_one("SELECT * FROM entities WHERE id = ?", (entity_id,))
    if not row:
        return None
    context = get_entity_context(db, entity_id)
    return Entity.from_row(
        row,
        persona_ids=context.persona_ids,
        feature_ids=context.feature_ids,
        dimension_value_ids=context.dimension_value_ids,
    )


def list_entities(
    db: ProductOSDatabase,
    product_id: str | None = None,
    entity_type: EntityType | None = None,
    status: str | None = None,
    statuses: list[str] | None = None,
    search: str | None = None,
    since: str | None = None,
    created_since: str | None = None,
    order_by: str = "updated_at",
    limit: int | None = None,
) -> list[Entity]:
    """List entities, newest first.

    Tag ids are not loaded; use get_entity for full detail.

    Args:
        db: Database handle
        product_id: Restrict to one product (None for all)
        entity_type: Restrict to one type
        status: Restrict to one status
        statuses: Restrict to any of several statuses
        search: Substring match on title or body
        since: Keep entities created OR updated at/after this timestamp
        created_since: Keep entities created at/after this timestamp
        order_by: "updated_at" or "created_at", always descending
        limit: Maximum results

    Returns:
        List of Entity
    """
    if order_by not in ("updated_at", "created_at"):
        raise ValueError(f"Unsupported order_by: {order_by}")

    query = "SELECT * FROM entities WHERE 1=1"
    params: list = []

    if product_id is not None:
        query += " AND product_id = ?"
        params.append(product_id)
    if entity_type is not None:
        query += " AND type = ?"
        params.append(EntityType(entity_type).value)
    if status is not None:
        query += " AND status = ?"
        params.append(status)
    if statuses:
        query += f" AND status IN ({', '.join('?' for _ in statuses)})"
        params.extend(statuses)
    if search:
        query += " AND (title LIKE ? OR body LIKE ?)"
        params.extend([f"%{search}%", f"%{search}%"])
    if since:
        since = _stored_timestamp(since)
        query += " AND (created_at >= ? OR updated_at >= ?)"
        params.extend([since, since])
    if created_since:
        query += " AND created_at >= ?"
        params.append(_stored_timestamp(created_since))

    query += f" ORDER BY {order_by} DESC, id"
    if limit is not None:
        query += " LIMIT ?"
        params.append(limit)

    rows = db.execute(query, tuple(params))
    return [Entity.from_row(row) for row in rows]


def list_question_candidates(
    db: ProductOSDatabase, product_id: str, limit: int = 50
) -> list[Entity]:
    """Most recently updated entities whose body contains a question mark."""
    rows = db.execute(
        """
        SELECT * FROM entities
        WHERE product_id = ? AND body LIKE '%?%'
        ORDER BY updated_at DESC, id
        LIMIT ?
        """,
        (product_id, limit),
    )
    return [Entity.from_row(row) for row in rows]


def count_by_type(db: ProductOSDatabase, product_id: str) -> dict[str, int]:
    """Count a product's entities per type, ordered by type name."""
    rows = db.execute(
        """
        SELECT type, COUNT(*) as cnt
        FROM entities
        WHERE product_id = ?
        GROUP BY type
        ORDER BY type
        """,
        (product_id,),
    )
    return {row["type"]: row["cnt"] for row in rows}


def update_entity(
    db: ProductOSDatabase,
    entity_id: str,
    title: str | None = None,
    body: str | None = None,
    status: str | None = None,
    metadata: dict | None = None,
    persona_ids: list[str] | None = None,
    feature_ids: list[str] | None = None,
    dimension_value_ids: list[str] | None = None,
) -> Entity:
    """Update an entity; only fields passed as non-None change.

    Raises:
        NotFoundError: If the entity does not exist
    """
    existing = db.execute_one(
        "SELECT product_id FROM entities WHERE id = ?", (entity_id,)
    )
    if not existing:
        raise NotFoundError("Entity", entity_id)

    updates = []
    params: list = []

    if title is not None:
        updates.append("title = ?")
        params.append(title)
    if body is not None:
        updates.append("body = ?")
        params.append(body)
    if status is not None:
        updates.append("status = ?")
        params.append(status)
    if metadata is not None:
        updates.append("metadata = ?")
        params.append(json.dumps(metadata))

    now = utc_now()
    updates.append("updated_at = ?")
    params.append(now)
    params.append(entity_id)

    tags = {
        "persona_ids": persona_ids,
        "feature_ids": feature_ids,
        "dimension_value_ids": dimension_value_ids,
    }

    with db.connection() as conn:
        cursor = conn.execute(
            f"UPDATE entities SET {', '.join(updates)} WHERE id = ?", tuple(params)
        )
        if cursor.rowcount == 0:
            raise NotFoundError("Entity", entity_id)
        for field_name, tag_ids in tags.items():
            if tag_ids is not None:
                _set_tags(conn, entity_id, field_name, tag_ids)

    touch_product(db, existing["product_id"], now)

    entity = get_entity(db, entity_id)
    if entity is None:
        raise NotFoundError("Entity", entity_id)
    return entity


def archive_entity(db: ProductOSDatabase, entity_id: str) -> Entity:
    """Archive an entity (soft delete)."""
    return update_entity(db, entity_id, status=ARCHIVED_STATUS)


def delete_entity(db: ProductOSDatabase, entity_id: str) -> None:
    """Permanently delete an entity, its tags and relationships.

    Raises:
        NotFoundError: If the entity does not exist
    """
    rows = db.execute_update("DELETE FROM entities WHERE id = ?", (entity_id,))
    if rows == 0:
        raise NotFoundError("Entity", entity_id)
    logger.debug(f"Deleted entity {entity_id}")


def promote_capture(
    db: ProductOSDatabase,
    capture_id: str,
    target_type: EntityType,
    title: str | None = None,
) -> Entity:
    """Promote a capture into a typed entity.

    The new entity inherits the capture's body and tags; the capture keeps
    a promoted_to_id pointer to it.

    Raises:
        NotFoundError: If the capture does not exist
        WriteRejectedError: If the source is not a capture or target is a capture
    """
    capture = get_entity(db, capture_id)
    if capture is None:
        raise NotFoundError("Entity", capture_id)
    if capture.type != EntityType.CAPTURE:
        raise WriteRejectedError(f"Only captures can be promoted: {capture_id}")
    target_type = EntityType(target_type)
    if target_type == EntityType.CAPTURE:
        raise WriteRejectedError("Cannot promote a capture into a capture")

    promoted = create_entity(
        db,
        product_id=capture.product_id,
        entity_type=target_type,
        title=title if title is not None else capture.title,
        body=capture.body,
        persona_ids=capture.persona_ids,
        feature_ids=capture.feature_ids,
        dimension_value_ids=capture.dimension_value_ids,
    )

    db.execute_update(
        "UPDATE entities SET promoted_to_id = ?, updated_at = ? WHERE id = ?",
        (promoted.id, promoted.created_at, capture_id),
    )
    logger.info(f"Promoted capture {capture_id} → {target_type.value} {promoted.id}")
    return promoted
