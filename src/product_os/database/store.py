"""
EntityStore - one handle over products, entities, taxonomy, relationships
and export history.

The export core receives an EntityStore explicitly rather than reaching for
a global database connection.
"""

from pathlib import Path

from ..models import (
    Entity,
    EntityContext,
    EntityType,
    ExportRecord,
    Product,
    Relationship,
    ResolvedTags,
    Taxonomy,
    TaxonomyItem,
    TaxonomyKind,
)
from . import entities, exports, products, relationships, taxonomy
from .database import ProductOSDatabase


class EntityStore:
    """Main interface for Product OS persistence."""

    def __init__(
        self,
        db: ProductOSDatabase | None = None,
        db_path: Path | str | None = None,
    ):
        """
        Initialize the store.

        Args:
            db: Existing database handle
            db_path: Path to SQLite database (ignored when db is given)
        """
        self.db = db or ProductOSDatabase(db_path=db_path)

    # =========================================================================
    # Products
    # =========================================================================

    def create_product(
        self, name: str, description: str | None = None, icon: str | None = None
    ) -> Product:
        return products.create_product(self.db, name, description, icon)

    def get_product(self, product_id: str) -> Product | None:
        return products.get_product(self.db, product_id)

    def list_products(self) -> list[Product]:
        return products.list_products(self.db)

    def update_product(self, product_id: str, **fields) -> Product:
        return products.update_product(self.db, product_id, **fields)

    def delete_product(self, product_id: str) -> None:
        products.delete_product(self.db, product_id)

    # =========================================================================
    # Entities
    # =========================================================================

    def create_entity(
        self, product_id: str, entity_type: EntityType, **fields
    ) -> Entity:
        return entities.create_entity(self.db, product_id, entity_type, **fields)

    def get_entity(self, entity_id: str) -> Entity | None:
        return entities.get_entity(self.db, entity_id)

    def get_entity_context(self, entity_id: str) -> EntityContext:
        return entities.get_entity_context(self.db, entity_id)

    def list_entities(self, product_id: str | None = None, **filters) -> list[Entity]:
        return entities.list_entities(self.db, product_id, **filters)

    def list_question_candidates(self, product_id: str, limit: int = 50) -> list[Entity]:
        return entities.list_question_candidates(self.db, product_id, limit)

    def count_by_type(self, product_id: str) -> dict[str, int]:
        return entities.count_by_type(self.db, product_id)

    def update_entity(self, entity_id: str, **fields) -> Entity:
        return entities.update_entity(self.db, entity_id, **fields)

    def archive_entity(self, entity_id: str) -> Entity:
        return entities.archive_entity(self.db, entity_id)

    def delete_entity(self, entity_id: str) -> None:
        entities.delete_entity(self.db, entity_id)

    def promote_capture(
        self, capture_id: str, target_type: EntityType, title: str | None = None
    ) -> Entity:
        return entities.promote_capture(self.db, capture_id, target_type, title)

    # =========================================================================
    # Relationships
    # =========================================================================

    def create_relationship(
        self, source_id: str, target_id: str, relationship_type: str | None = None
    ) -> Relationship:
        return relationships.create_relationship(
            self.db, source_id, target_id, relationship_type
        )

    def delete_relationship(self, relationship_id: str) -> None:
        relationships.delete_relationship(self.db, relationship_id)

    def get_relationships(self, entity_id: str) -> list[Relationship]:
        return relationships.get_relationships(self.db, entity_id)

    def list_relationship_targets(self, source_ids: list[str]) -> list[Entity]:
        return relationships.list_relationship_targets(self.db, source_ids)

    def get_linked_counts(self, entity_id: str) -> dict[EntityType, int]:
        return relationships.get_linked_counts(self.db, entity_id)

    # =========================================================================
    # Taxonomy
    # =========================================================================

    def create_taxonomy_item(
        self, kind: TaxonomyKind, parent_id: str, name: str
    ) -> TaxonomyItem:
        return taxonomy.create_taxonomy_item(self.db, kind, parent_id, name)

    def get_taxonomy_item(self, kind: TaxonomyKind, item_id: str) -> TaxonomyItem | None:
        return taxonomy.get_taxonomy_item(self.db, kind, item_id)

    def list_taxonomy_items(
        self, kind: TaxonomyKind, parent_id: str, include_archived: bool = False
    ) -> list[TaxonomyItem]:
        return taxonomy.list_taxonomy_items(self.db, kind, parent_id, include_archived)

    def rename_taxonomy_item(
        self, kind: TaxonomyKind, item_id: str, name: str
    ) -> TaxonomyItem:
        return taxonomy.rename_taxonomy_item(self.db, kind, item_id, name)

    def archive_taxonomy_item(self, kind: TaxonomyKind, item_id: str) -> TaxonomyItem:
        return taxonomy.archive_taxonomy_item(self.db, kind, item_id)

    def unarchive_taxonomy_item(self, kind: TaxonomyKind, item_id: str) -> TaxonomyItem:
        return taxonomy.unarchive_taxonomy_item(self.db, kind, item_id)

    def get_taxonomy(self, product_id: str, include_archived: bool = False) -> Taxonomy:
        return taxonomy.get_taxonomy(self.db, product_id, include_archived)

    def resolve_tag_names(
        self,
        persona_ids: list[str],
        feature_ids: list[str],
        dimension_value_ids: list[str],
    ) -> ResolvedTags:
        return taxonomy.resolve_tag_names(
            self.db, persona_ids, feature_ids, dimension_value_ids
        )

    # =========================================================================
    # Export history
    # =========================================================================

    def store_export_record(self, record: ExportRecord) -> None:
        exports.store_export_record(self.db, record)

    def get_export_record(self, export_id: str) -> ExportRecord | None:
        return exports.get_export_record(self.db, export_id)

    def get_export_history(self, product_id: str | None = None) -> list[ExportRecord]:
        return exports.get_export_history(self.db, product_id)

    def clear_export_history(self, product_id: str | None = None) -> int:
        return exports.clear_export_history(self.db, product_id)

    def delete_export_record(self, export_id: str) -> None:
        exports.delete_export_record(self.db, export_id)
