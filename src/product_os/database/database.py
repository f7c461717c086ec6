"""
Core database connection and schema management for Product OS.

The database holds:
- products
- entities + tag join tables (personas, features, dimension values)
- taxonomy (personas, features, dimensions, dimension_values)
- relationships (directed entity graph)
- exports (export run history)

Location: ~/.product-os/product-os.db (user-level default)
"""

import logging
import sqlite3
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path

from ..exceptions import WriteRejectedError

logger = logging.getLogger(__name__)

# Schema version for migrations
SCHEMA_VERSION = "1.2.0"


def get_default_db_path(project_root: Path | None = None) -> Path:
    """Get the default database path.

    Path resolution:
    1. If project_root provided: .product-os/product-os.db (project-local)
    2. Otherwise: ~/.product-os/product-os.db (user-level fallback)

    Args:
        project_root: If provided, uses project-local database.

    Returns:
        Path to product-os.db
    """
    if project_root:
        return Path(project_root) / ".product-os" / "product-os.db"
    else:
        return Path.home() / ".product-os" / "product-os.db"


def utc_now() -> str:
    """Current time as an ISO-8601 UTC string with millisecond precision."""
    return (
        datetime.now(timezone.utc)
        .isoformat(timespec="milliseconds")
        .replace("+00:00", "Z")
    )


def generate_id(prefix: str | None = None) -> str:
    """Generate a record id.

    Entities use a bare 32-char hex id; other records are prefixed
    (e.g. "exp_3f9c0a1b2c4d").
    """
    if prefix is None:
        return uuid.uuid4().hex
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


# Embedded schema
SCHEMA = """
-- Schema metadata
CREATE TABLE IF NOT EXISTS schema_info (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
);

-- Products
CREATE TABLE IF NOT EXISTS products (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    description TEXT,
    icon TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    last_activity_at TEXT NOT NULL
);

-- Entities (captures, problems, hypotheses, experiments, decisions, ...)
CREATE TABLE IF NOT EXISTS entities (
    id TEXT PRIMARY KEY,
    product_id TEXT NOT NULL,
    type TEXT NOT NULL CHECK(type IN (
        'capture', 'problem', 'hypothesis', 'experiment', 'decision',
        'artifact', 'feedback', 'feature_request', 'feature'
    )),
    title TEXT NOT NULL DEFAULT '',
    body TEXT NOT NULL DEFAULT '',
    status TEXT,
    metadata TEXT,                       -- JSON, shape depends on type
    promoted_to_id TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    FOREIGN KEY (product_id) REFERENCES products(id) ON DELETE CASCADE,
    FOREIGN KEY (promoted_to_id) REFERENCES entities(id) ON DELETE SET NULL
);

CREATE INDEX IF NOT EXISTS idx_entities_product ON entities(product_id);
CREATE INDEX IF NOT EXISTS idx_entities_type ON entities(type);
CREATE INDEX IF NOT EXISTS idx_entities_updated ON entities(updated_at);
CREATE INDEX IF NOT EXISTS idx_entities_created ON entities(created_at);

-- Taxonomy
CREATE TABLE IF NOT EXISTS personas (
    id TEXT PRIMARY KEY,
    product_id TEXT NOT NULL,
    name TEXT NOT NULL,
    is_archived INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    FOREIGN KEY (product_id) REFERENCES products(id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS features (
    id TEXT PRIMARY KEY,
    product_id TEXT NOT NULL,
    name TEXT NOT NULL,
    is_archived INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    FOREIGN KEY (product_id) REFERENCES products(id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS dimensions (
    id TEXT PRIMARY KEY,
    product_id TEXT NOT NULL,
    name TEXT NOT NULL,
    is_archived INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    FOREIGN KEY (product_id) REFERENCES products(id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS dimension_values (
    id TEXT PRIMARY KEY,
    dimension_id TEXT NOT NULL,
    name TEXT NOT NULL,
    is_archived INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    FOREIGN KEY (dimension_id) REFERENCES dimensions(id) ON DELETE CASCADE
);

-- Entity tags (N-to-N)
CREATE TABLE IF NOT EXISTS entity_personas (
    entity_id TEXT NOT NULL,
    persona_id TEXT NOT NULL,
    PRIMARY KEY (entity_id, persona_id),
    FOREIGN KEY (entity_id) REFERENCES entities(id) ON DELETE CASCADE,
    FOREIGN KEY (persona_id) REFERENCES personas(id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS entity_features (
    entity_id TEXT NOT NULL,
    feature_id TEXT NOT NULL,
    PRIMARY KEY (entity_id, feature_id),
    FOREIGN KEY (entity_id) REFERENCES entities(id) ON DELETE CASCADE,
    FOREIGN KEY (feature_id) REFERENCES features(id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS entity_dimension_values (
    entity_id TEXT NOT NULL,
    dimension_value_id TEXT NOT NULL,
    PRIMARY KEY (entity_id, dimension_value_id),
    FOREIGN KEY (entity_id) REFERENCES entities(id) ON DELETE CASCADE,
    FOREIGN KEY (dimension_value_id) REFERENCES dimension_values(id) ON DELETE CASCADE
);

-- Relationships (directed entity graph)
CREATE TABLE IF NOT EXISTS relationships (
    id TEXT PRIMARY KEY,
    product_id TEXT NOT NULL,
    source_id TEXT NOT NULL,
    target_id TEXT NOT NULL,
    relationship_type TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    FOREIGN KEY (product_id) REFERENCES products(id) ON DELETE CASCADE,
    FOREIGN KEY (source_id) REFERENCES entities(id) ON DELETE CASCADE,
    FOREIGN KEY (target_id) REFERENCES entities(id) ON DELETE CASCADE
);

CREATE INDEX IF NOT EXISTS idx_relationships_source ON relationships(source_id);
CREATE INDEX IF NOT EXISTS idx_relationships_target ON relationships(target_id);

-- Export run history (no FK: product_id NULL means "all products")
CREATE TABLE IF NOT EXISTS exports (
    id TEXT PRIMARY KEY,
    product_id TEXT,
    mode TEXT NOT NULL CHECK(mode IN ('full', 'incremental')),
    scope_type TEXT NOT NULL CHECK(scope_type IN ('product', 'all')),
    start_date TEXT,
    end_date TEXT NOT NULL,
    counts TEXT NOT NULL,                -- JSON {total, byType}
    output_path TEXT,
    created_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_exports_product ON exports(product_id);
CREATE INDEX IF NOT EXISTS idx_exports_created ON exports(created_at);
"""


class ProductOSDatabase:
    """SQLite database for all Product OS data."""

    def __init__(
        self, db_path: Path | str | None = None, project_root: Path | None = None
    ):
        """Initialize database connection.

        Args:
            db_path: Explicit path to database file.
            project_root: Project root for project-local database.
                         Ignored if db_path is provided.
        """
        if db_path:
            self.db_path = Path(db_path)
        else:
            self.db_path = get_default_db_path(project_root)

        self._ensure_db_exists()

    def _ensure_db_exists(self) -> None:
        """Create database and schema if they don't exist."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        with self.connection() as conn:
            conn.executescript(SCHEMA)
            conn.execute(
                "INSERT OR REPLACE INTO schema_info (key, value) VALUES (?, ?)",
                ("schema_version", SCHEMA_VERSION),
            )
        logger.debug(f"Database ready: {self.db_path}")

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        """Context manager for database connections.

        Integrity failures surface as WriteRejectedError.

        Yields:
            sqlite3.Connection with row_factory set to sqlite3.Row
        """
        conn = sqlite3.connect(self.db_path, timeout=10.0)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        conn.execute("PRAGMA journal_mode = WAL")
        try:
            yield conn
            conn.commit()
        except sqlite3.IntegrityError as e:
            conn.rollback()
            raise WriteRejectedError(f"Write rejected: {e}") from e
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def execute(self, sql: str, params: tuple = ()) -> list[sqlite3.Row]:
        """Execute SQL and return all results."""
        with self.connection() as conn:
            cursor = conn.execute(sql, params)
            return cursor.fetchall()

    def execute_one(self, sql: str, params: tuple = ()) -> sqlite3.Row | None:
        """Execute SQL and return first result."""
        with self.connection() as conn:
            cursor = conn.execute(sql, params)
            return cursor.fetchone()

    def execute_update(self, sql: str, params: tuple = ()) -> int:
        """Execute INSERT/UPDATE/DELETE and return rows affected."""
        with self.connection() as conn:
            cursor = conn.execute(sql, params)
            return cursor.rowcount

    def get_schema_version(self) -> str:
        """Get current schema version."""
        result = self.execute_one(
            "SELECT value FROM schema_info WHERE key = ?", ("schema_version",)
        )
        return result["value"] if result else "unknown"

    def get_stats(self) -> dict:
        """Get database statistics for diagnostics."""
        stats = {
            "schema_version": self.get_schema_version(),
            "database_path": str(self.db_path),
        }

        tables = ["products", "entities", "relationships", "exports"]
        for table in tables:
            result = self.execute_one(f"SELECT COUNT(*) as cnt FROM {table}")
            stats[f"{table}_count"] = result["cnt"] if result else 0

        stats["database_size_bytes"] = self.db_path.stat().st_size
        return stats
