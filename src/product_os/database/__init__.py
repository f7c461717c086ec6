"""
Product OS Database Module

Provides a single SQLite database for:
- products
- entities and their persona/feature/dimension tags
- taxonomy (personas, features, dimensions, dimension values)
- relationships between entities
- exports: export run history

Database location: ~/.product-os/product-os.db (overridable via config)
"""

from .database import (
    SCHEMA_VERSION,
    ProductOSDatabase,
    generate_id,
    get_default_db_path,
    utc_now,
)
from .entities import ARCHIVED_STATUS
from .store import EntityStore

__all__ = [
    # Database
    "ProductOSDatabase",
    "get_default_db_path",
    "generate_id",
    "utc_now",
    "SCHEMA_VERSION",
    # Entities
    "ARCHIVED_STATUS",
    # Store
    "EntityStore",
]
