"""
Product OS Models - Data classes for products, entities, taxonomy and exports.
"""

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union

logger = logging.getLogger(__name__)

# Sentinel product id meaning "every product"
ALL_PRODUCTS = "all"


class EntityType(str, Enum):
    """Kind of product-management artifact."""

    CAPTURE = "capture"
    PROBLEM = "problem"
    HYPOTHESIS = "hypothesis"
    EXPERIMENT = "experiment"
    DECISION = "decision"
    ARTIFACT = "artifact"
    FEEDBACK = "feedback"
    FEATURE_REQUEST = "feature_request"
    FEATURE = "feature"


# Export subfolder per entity type
TYPE_FOLDERS: dict[EntityType, str] = {
    EntityType.CAPTURE: "captures",
    EntityType.PROBLEM: "problems",
    EntityType.HYPOTHESIS: "hypotheses",
    EntityType.EXPERIMENT: "experiments",
    EntityType.DECISION: "decisions",
    EntityType.ARTIFACT: "artifacts",
    EntityType.FEEDBACK: "feedback",
    EntityType.FEATURE_REQUEST: "feature-requests",
    EntityType.FEATURE: "features",
}

# Human-readable plural labels
TYPE_LABELS: dict[EntityType, str] = {
    EntityType.CAPTURE: "Captures",
    EntityType.PROBLEM: "Problems",
    EntityType.HYPOTHESIS: "Hypotheses",
    EntityType.EXPERIMENT: "Experiments",
    EntityType.DECISION: "Decisions",
    EntityType.ARTIFACT: "Artifacts",
    EntityType.FEEDBACK: "Feedback",
    EntityType.FEATURE_REQUEST: "Feature Requests",
    EntityType.FEATURE: "Features",
}


class ExportMode(str, Enum):
    """How the export set is selected."""

    FULL = "full"  # Everything in scope
    INCREMENTAL = "incremental"  # Created or updated since a cutoff


class ScopeType(str, Enum):
    """What an export run covered."""

    PRODUCT = "product"
    ALL = "all"


class TaxonomyKind(str, Enum):
    """Taxonomy item kinds."""

    PERSONA = "persona"
    FEATURE = "feature"
    DIMENSION = "dimension"
    DIMENSION_VALUE = "dimension_value"


# =========================================================================
# Per-type metadata
# =========================================================================


def _str_or_none(value: Any) -> str | None:
    return value if isinstance(value, str) and value else None


@dataclass
class HypothesisMetadata:
    """Metadata carried by hypotheses."""

    confidence: float | None = None

    @classmethod
    def from_dict(cls, data: dict) -> "HypothesisMetadata":
        confidence = data.get("confidence")
        if isinstance(confidence, bool) or not isinstance(confidence, (int, float)):
            confidence = None
        return cls(confidence=confidence)


@dataclass
class ExperimentMetadata:
    """Metadata carried by experiments."""

    start_date: str | None = None
    end_date: str | None = None
    outcome: str | None = None  # validated, invalidated, inconclusive
    metrics: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> "ExperimentMetadata":
        metrics = data.get("metrics")
        if not isinstance(metrics, list):
            metrics = []
        return cls(
            start_date=_str_or_none(data.get("startDate")),
            end_date=_str_or_none(data.get("endDate")),
            outcome=_str_or_none(data.get("outcome")),
            metrics=[m for m in metrics if isinstance(m, str) and m],
        )


@dataclass
class DecisionMetadata:
    """Metadata carried by decisions."""

    decision_type: str | None = None  # reversible, irreversible
    decided_at: str | None = None

    @classmethod
    def from_dict(cls, data: dict) -> "DecisionMetadata":
        return cls(
            decision_type=_str_or_none(data.get("decisionType")),
            decided_at=_str_or_none(data.get("decidedAt")),
        )


@dataclass
class ArtifactMetadata:
    """Metadata carried by artifacts."""

    artifact_type: str | None = None
    source: str | None = None

    @classmethod
    def from_dict(cls, data: dict) -> "ArtifactMetadata":
        return cls(
            artifact_type=_str_or_none(data.get("artifactType")),
            source=_str_or_none(data.get("source")),
        )


@dataclass
class GenericMetadata:
    """Untyped metadata for entity types without a known shape."""

    values: dict[str, Any] = field(default_factory=dict)


EntityMetadata = Union[
    HypothesisMetadata,
    ExperimentMetadata,
    DecisionMetadata,
    ArtifactMetadata,
    GenericMetadata,
]

_METADATA_TYPES = {
    EntityType.HYPOTHESIS: HypothesisMetadata,
    EntityType.EXPERIMENT: ExperimentMetadata,
    EntityType.DECISION: DecisionMetadata,
    EntityType.ARTIFACT: ArtifactMetadata,
}


def load_metadata_json(raw: str | dict | None) -> dict | None:
    """Decode a metadata column, returning None for anything malformed."""
    if raw is None or raw == "":
        return None
    if isinstance(raw, dict):
        return raw
    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as e:
        logger.debug(f"Ignoring malformed metadata: {e}")
        return None
    return data if isinstance(data, dict) else None


def parse_metadata(
    entity_type: EntityType, raw: str | dict | None
) -> EntityMetadata | None:
    """Build the typed metadata variant for an entity type.

    Args:
        entity_type: Type of the owning entity
        raw: JSON string from the database, an already-decoded dict, or None

    Returns:
        Typed metadata, or None when absent or malformed
    """
    data = load_metadata_json(raw)
    if data is None:
        return None
    metadata_cls = _METADATA_TYPES.get(EntityType(entity_type))
    if metadata_cls is None:
        return GenericMetadata(values=data)
    return metadata_cls.from_dict(data)


# =========================================================================
# Products and entities
# =========================================================================


@dataclass
class Product:
    """A product whose artifacts are tracked."""

    id: str
    name: str
    description: str | None = None
    icon: str | None = None
    created_at: str = ""
    updated_at: str = ""
    last_activity_at: str = ""

    @classmethod
    def from_row(cls, row) -> "Product":
        """Create from database row."""
        return cls(
            id=row["id"],
            name=row["name"],
            description=row["description"],
            icon=row["icon"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
            last_activity_at=row["last_activity_at"],
        )


@dataclass
class EntitySummary:
    """Summary fields carried by export previews."""

    id: str
    type: EntityType
    title: str
    status: str | None
    updated_at: str

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type.value,
            "title": self.title,
            "status": self.status,
            "updatedAt": self.updated_at,
        }


@dataclass
class Entity:
    """Core product-management artifact."""

    id: str
    product_id: str
    type: EntityType
    title: str = ""
    body: str = ""
    status: str | None = None
    raw_metadata: dict | None = None
    promoted_to_id: str | None = None
    created_at: str = ""
    updated_at: str = ""
    persona_ids: list[str] = field(default_factory=list)
    feature_ids: list[str] = field(default_factory=list)
    dimension_value_ids: list[str] = field(default_factory=list)

    @property
    def metadata(self) -> EntityMetadata | None:
        """Typed view of raw_metadata for this entity's type."""
        return parse_metadata(self.type, self.raw_metadata)

    def to_summary(self) -> EntitySummary:
        return EntitySummary(
            id=self.id,
            type=self.type,
            title=self.title,
            status=self.status,
            updated_at=self.updated_at,
        )

    @classmethod
    def from_row(
        cls,
        row,
        persona_ids: list[str] | None = None,
        feature_ids: list[str] | None = None,
        dimension_value_ids: list[str] | None = None,
    ) -> "Entity":
        """Create from database row."""
        return cls(
            id=row["id"],
            product_id=row["product_id"],
            type=EntityType(row["type"]),
            title=row["title"] or "",
            body=row["body"] or "",
            status=row["status"],
            raw_metadata=load_metadata_json(row["metadata"]),
            promoted_to_id=row["promoted_to_id"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
            persona_ids=persona_ids or [],
            feature_ids=feature_ids or [],
            dimension_value_ids=dimension_value_ids or [],
        )


@dataclass
class EntityContext:
    """Tag ids attached to one entity."""

    persona_ids: list[str] = field(default_factory=list)
    feature_ids: list[str] = field(default_factory=list)
    dimension_value_ids: list[str] = field(default_factory=list)


@dataclass
class ResolvedTags:
    """Tag names resolved from ids, for rendering."""

    personas: list[str] = field(default_factory=list)
    features: list[str] = field(default_factory=list)
    dimension_values: list[str] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not (self.personas or self.features or self.dimension_values)


@dataclass
class Relationship:
    """Directed edge between two entities."""

    id: str
    product_id: str
    source_id: str
    target_id: str
    relationship_type: str | None = None
    created_at: str = ""
    updated_at: str = ""

    @classmethod
    def from_row(cls, row) -> "Relationship":
        """Create from database row."""
        return cls(
            id=row["id"],
            product_id=row["product_id"],
            source_id=row["source_id"],
            target_id=row["target_id"],
            relationship_type=row["relationship_type"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )


# =========================================================================
# Taxonomy
# =========================================================================


@dataclass
class TaxonomyItem:
    """Persona, feature, dimension or dimension value.

    parent_id is the product id for personas, features and dimensions, and
    the dimension id for dimension values.
    """

    id: str
    kind: TaxonomyKind
    parent_id: str
    name: str
    is_archived: bool = False
    created_at: str = ""
    updated_at: str = ""
    values: list["TaxonomyItem"] = field(default_factory=list)


@dataclass
class Taxonomy:
    """All taxonomy items for one product."""

    personas: list[TaxonomyItem] = field(default_factory=list)
    features: list[TaxonomyItem] = field(default_factory=list)
    dimensions: list[TaxonomyItem] = field(default_factory=list)


# =========================================================================
# Exports
# =========================================================================


@dataclass
class ExportOptions:
    """Selection input for previews and export runs."""

    product_id: str
    mode: ExportMode = ExportMode.FULL
    start_date: str | None = None
    include_linked_context: bool = False
    cutoff: str | None = field(init=False, default=None)

    def __post_init__(self) -> None:
        from .export_system.dates import to_utc_timestamp

        self.mode = ExportMode(self.mode)
        # start_date is kept as given for the manifest; cutoff is what gets
        # compared against stored timestamps
        if self.start_date:
            self.cutoff = to_utc_timestamp(self.start_date)

    @property
    def is_all_products(self) -> bool:
        return self.product_id == ALL_PRODUCTS

    @property
    def scope_type(self) -> ScopeType:
        return ScopeType.ALL if self.is_all_products else ScopeType.PRODUCT


@dataclass
class ExportCounts:
    """Entity counts, total and per type."""

    total: int = 0
    by_type: dict[EntityType, int] = field(
        default_factory=lambda: {t: 0 for t in EntityType}
    )

    def add(self, entity_type: EntityType) -> None:
        self.by_type[EntityType(entity_type)] += 1
        self.total += 1

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "byType": {t.value: count for t, count in self.by_type.items()},
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ExportCounts":
        counts = cls(total=data.get("total", 0))
        for type_value, count in (data.get("byType") or {}).items():
            try:
                counts.by_type[EntityType(type_value)] = count
            except ValueError:
                logger.debug(f"Ignoring unknown type in counts: {type_value}")
        return counts


@dataclass
class ExportPreview:
    """What an export with the given options would contain."""

    counts: ExportCounts
    entities: list[EntitySummary]


@dataclass
class ExportResult:
    """Outcome of a completed export run."""

    id: str
    output_path: str
    counts: ExportCounts
    created_at: str


@dataclass
class ExportRecord:
    """Persisted history entry for one export run."""

    id: str
    product_id: str | None
    mode: ExportMode
    scope_type: ScopeType
    start_date: str | None
    end_date: str
    counts: ExportCounts
    output_path: str | None
    created_at: str

    def to_dict(self) -> dict:
        """Convert to dictionary for database insertion."""
        return {
            "id": self.id,
            "product_id": self.product_id,
            "mode": self.mode.value,
            "scope_type": self.scope_type.value,
            "start_date": self.start_date,
            "end_date": self.end_date,
            "counts": json.dumps(self.counts.to_dict()),
            "output_path": self.output_path,
            "created_at": self.created_at,
        }

    @classmethod
    def from_row(cls, row) -> "ExportRecord":
        """Create from database row."""
        return cls(
            id=row["id"],
            product_id=row["product_id"],
            mode=ExportMode(row["mode"]),
            scope_type=ScopeType(row["scope_type"]),
            start_date=row["start_date"],
            end_date=row["end_date"],
            counts=ExportCounts.from_dict(json.loads(row["counts"])),
            output_path=row["output_path"],
            created_at=row["created_at"],
        )
