"""
Relationship storage and graph lookups.

Relationships are directed edges (source → target) between entities of the
same product.
"""

import logging

from ..exceptions import NotFoundError, WriteRejectedError
from ..models import Entity, EntityType, Relationship
from .database import ProductOSDatabase, generate_id, utc_now

logger = logging.getLogger(__name__)

# Keep IN (...) lists well under SQLite's bound-parameter limit
_IN_CHUNK = 500


def create_relationship(
    db: ProductOSDatabase,
    source_id: str,
    target_id: str,
    relationship_type: str | None = None,
) -> Relationship:
    """Link two entities.

    Args:
        db: Database handle
        source_id: Entity the edge starts from
        target_id: Entity the edge points to
        relationship_type: Optional label (e.g. "supports", "tests")

    Returns:
        Created Relationship

    Raises:
        NotFoundError: If either entity does not exist
        WriteRejectedError: For self-links or cross-product links
    """
    if source_id == target_id:
        raise WriteRejectedError("An entity cannot be linked to itself")

    rows = db.execute(
        "SELECT id, product_id FROM entities WHERE id IN (?, ?)",
        (source_id, target_id),
    )
    products = {row["id"]: row["product_id"] for row in rows}
    for entity_id in (source_id, target_id):
        if entity_id not in products:
            raise NotFoundError("Entity", entity_id)
    if products[source_id] != products[target_id]:
        raise WriteRejectedError("Relationships must stay within one product")

    now = utc_now()
    relationship = Relationship(
        id=generate_id("rel"),
        product_id=products[source_id],
        source_id=source_id,
        target_id=target_id,
        relationship_type=relationship_type,
        created_at=now,
        updated_at=now,
    )
    db.execute_update(
        """
        INSERT INTO relationships
        (id, product_id, source_id, target_id, relationship_type, created_at, updated_at)
        VALUES (?, ?, ?, ?, ?, ?, ?)
        """,
        (
            relationship.id,
            relationship.product_id,
            source_id,
            target_id,
            relationship_type,
            now,
            now,
        ),
    )
    logger.debug(f"Linked {source_id} → {target_id} ({relationship_type})")
    return relationship


def delete_relationship(db: ProductOSDatabase, relationship_id: str) -> None:
    """Remove a relationship.

    Raises:
        NotFoundError: If the relationship does not exist
    """
    rows = db.execute_update(
        "DELETE FROM relationships WHERE id = ?", (relationship_id,)
    )
    if rows == 0:
        raise NotFoundError("Relationship", relationship_id)


def get_relationships(db: ProductOSDatabase, entity_id: str) -> list[Relationship]:
    """Get all edges touching an entity, in either direction."""
    rows = db.execute(
        """
        SELECT * FROM relationships
        WHERE source_id = ? OR target_id = ?
        ORDER BY created_at
        """,
        (entity_id, entity_id),
    )
    return [Relationship.from_row(row) for row in rows]


def list_relationship_targets(
    db: ProductOSDatabase, source_ids: list[str]
) -> list[Entity]:
    """Distinct entities reachable as targets from any of source_ids.

    Tag ids are not loaded.
    """
    targets: dict[str, Entity] = {}
    ids = list(dict.fromkeys(source_ids))

    for start in range(0, len(ids), _IN_CHUNK):
        chunk = ids[start : start + _IN_CHUNK]
        placeholders = ", ".join("?" for _ in chunk)
        rows = db.execute(
            f"""
            SELECT DISTINCT e.* FROM entities e
            JOIN relationships r ON e.id = r.target_id
            WHERE r.source_id IN ({placeholders})
            ORDER BY e.updated_at DESC, e.id
            """,
            tuple(chunk),
        )
        for row in rows:
            if row["id"] not in targets:
                targets[row["id"]] = Entity.from_row(row)

    return list(targets.values())


def get_linked_counts(db: ProductOSDatabase, entity_id: str) -> dict[EntityType, int]:
    """Count distinct linked entities per type, both edge directions."""
    rows = db.execute(
        """
        SELECT e.type, COUNT(DISTINCT e.id) as cnt
        FROM entities e
        JOIN (
            SELECT target_id AS linked_id FROM relationships WHERE source_id = ?
            UNION
            SELECT source_id AS linked_id FROM relationships WHERE target_id = ?
        ) linked ON e.id = linked.linked_id
        GROUP BY e.type
        """,
        (entity_id, entity_id),
    )
    return {EntityType(row["type"]): row["cnt"] for row in rows}
