"""
Export run history.

One row per completed export run. Rows are never mutated; they are removed
individually or in bulk and never expire on their own. Deleting a row never
touches the bundle on disk.
"""

import logging

from ..exceptions import NotFoundError
from ..models import ExportRecord
from .database import ProductOSDatabase

logger = logging.getLogger(__name__)


def store_export_record(db: ProductOSDatabase, record: ExportRecord) -> None:
    """Insert a history record for a completed export."""
    data = record.to_dict()
    columns = ", ".join(data.keys())
    placeholders = ", ".join(["?" for _ in data])
    db.execute_update(
        f"INSERT INTO exports ({columns}) VALUES ({placeholders})",
        tuple(data.values()),
    )
    logger.debug(f"Recorded export {record.id}")


def get_export_record(db: ProductOSDatabase, export_id: str) -> ExportRecord | None:
    """Get one history record by export id."""
    row = db.execute_one("SELECT * FROM exports WHERE id = ?", (export_id,))
    return ExportRecord.from_row(row) if row else None


def get_export_history(
    db: ProductOSDatabase, product_id: str | None = None
) -> list[ExportRecord]:
    """List export history, newest first.

    Args:
        db: Database handle
        product_id: When given, that product's runs plus all-product runs

    Returns:
        List of ExportRecord
    """
    if product_id:
        rows = db.execute(
            """
            SELECT * FROM exports
            WHERE product_id = ? OR product_id IS NULL
            ORDER BY created_at DESC
            """,
            (product_id,),
        )
    else:
        rows = db.execute("SELECT * FROM exports ORDER BY created_at DESC")

    return [ExportRecord.from_row(row) for row in rows]


def clear_export_history(
    db: ProductOSDatabase, product_id: str | None = None
) -> int:
    """Delete history records.

    Args:
        db: Database handle
        product_id: When given, only that product's runs (all-product runs
            are kept); otherwise every record

    Returns:
        Number of records removed
    """
    if product_id:
        removed = db.execute_update(
            "DELETE FROM exports WHERE product_id = ?", (product_id,)
        )
    else:
        removed = db.execute_update("DELETE FROM exports")

    logger.info(f"Cleared {removed} export history record(s)")
    return removed


def delete_export_record(db: ProductOSDatabase, export_id: str) -> None:
    """Delete one history record.

    Raises:
        NotFoundError: If no record has this id
    """
    rows = db.execute_update("DELETE FROM exports WHERE id = ?", (export_id,))
    if rows == 0:
        raise NotFoundError("Export", export_id)
