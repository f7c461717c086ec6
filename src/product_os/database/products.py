"""
Product storage and retrieval.
"""

import logging

from ..exceptions import NotFoundError
from ..models import Product
from .database import ProductOSDatabase, generate_id, utc_now

logger = logging.getLogger(__name__)


def create_product(
    db: ProductOSDatabase,
    name: str,
    description: str | None = None,
    icon: str | None = None,
) -> Product:
    """Create a new product.

    Args:
        db: Database handle
        name: Display name
        description: Optional description
        icon: Optional icon (emoji or short string)

    Returns:
        Created Product
    """
    product_id = generate_id("prod")
    now = utc_now()
    db.execute_update(
        """
        INSERT INTO products
        (id, name, description, icon, created_at, updated_at, last_activity_at)
        VALUES (?, ?, ?, ?, ?, ?, ?)
        """,
        (product_id, name, description, icon, now, now, now),
    )
    logger.info(f"Created product {product_id}: {name}")
    return Product(
        id=product_id,
        name=name,
        description=description,
        icon=icon,
        created_at=now,
        updated_at=now,
        last_activity_at=now,
    )


def get_product(db: ProductOSDatabase, product_id: str) -> Product | None:
    """Get a product by id."""
    row = db.execute_one("SELECT * FROM products WHERE id = ?", (product_id,))
    return Product.from_row(row) if row else None


def list_products(db: ProductOSDatabase) -> list[Product]:
    """List products, most recently active first."""
    rows = db.execute("SELECT * FROM products ORDER BY last_activity_at DESC")
    return [Product.from_row(row) for row in rows]


def update_product(
    db: ProductOSDatabase,
    product_id: str,
    name: str | None = None,
    description: str | None = None,
    icon: str | None = None,
) -> Product:
    """Update product fields.

    Raises:
        NotFoundError: If the product does not exist
    """
    updates = []
    params: list = []

    if name is not None:
        updates.append("name = ?")
        params.append(name)
    if description is not None:
        updates.append("description = ?")
        params.append(description)
    if icon is not None:
        updates.append("icon = ?")
        params.append(icon)

    updates.append("updated_at = ?")
    params.append(utc_now())
    params.append(product_id)

    rows = db.execute_update(
        f"UPDATE products SET {', '.join(updates)} WHERE id = ?", tuple(params)
    )
    if rows == 0:
        raise NotFoundError("Product", product_id)

    product = get_product(db, product_id)
    if product is None:
        raise NotFoundError("Product", product_id)
    return product


def touch_product(db: ProductOSDatabase, product_id: str, now: str | None = None) -> None:
    """Bump last_activity_at after a change to one of the product's entities."""
    db.execute_update(
        "UPDATE products SET last_activity_at = ? WHERE id = ?",
        (now or utc_now(), product_id),
    )


def delete_product(db: ProductOSDatabase, product_id: str) -> None:
    """Permanently delete a product and everything it owns.

    Export history rows are kept; they describe files already on disk.

    Raises:
        NotFoundError: If the product does not exist
    """
    rows = db.execute_update("DELETE FROM products WHERE id = ?", (product_id,))
    if rows == 0:
        raise NotFoundError("Product", product_id)
    logger.info(f"Deleted product {product_id}")
