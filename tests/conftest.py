"""Shared pytest fixtures for Product OS tests.

Every test gets a throwaway SQLite database and workspace under tmp_path.
"""

from collections.abc import Callable
from pathlib import Path

import pytest

from product_os.database import EntityStore
from product_os.export_system import ExportSystem
from product_os.models import Entity, EntityType, Product

# =============================================================================
# Path Fixtures
# =============================================================================


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    """Return a fresh database path."""
    return tmp_path / "data" / "product-os.db"


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """Return an empty workspace root."""
    path = tmp_path / "workspace"
    path.mkdir()
    return path


# =============================================================================
# Store Fixtures
# =============================================================================


@pytest.fixture
def store(db_path: Path) -> EntityStore:
    """Entity store backed by a temporary database."""
    return EntityStore(db_path=db_path)


@pytest.fixture
def product(store: EntityStore) -> Product:
    """A product named P1."""
    return store.create_product("P1", description="Test product")


@pytest.fixture
def export_system(store: EntityStore, workspace: Path) -> ExportSystem:
    """Export system writing under the temporary workspace."""
    return ExportSystem(store, workspace)


@pytest.fixture
def make_entity(store: EntityStore, product: Product) -> Callable[..., Entity]:
    """Factory creating entities in the default product.

    Usage:
        make_entity(EntityType.PROBLEM, "Slow checkout", updated_at="2024-06-02T00:00:00.000Z")
    """

    def _make(
        entity_type: EntityType = EntityType.CAPTURE,
        title: str = "Untitled",
        updated_at: str | None = None,
        created_at: str | None = None,
        product_id: str | None = None,
        **fields,
    ) -> Entity:
        if updated_at and not created_at:
            created_at = updated_at
        return store.create_entity(
            product_id or product.id,
            entity_type,
            title=title,
            created_at=created_at,
            updated_at=updated_at,
            **fields,
        )

    return _make
