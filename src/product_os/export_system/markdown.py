"""
Markdown rendering for exported entities.

render_entity_markdown is pure: the caller resolves tag names and linked
counts from the store and passes them in.

Section order is fixed:
    # Title
    metadata bullets (type, dates, status, type-specific fields)
    ## Context        (omitted without tags)
    ## Notes          (omitted when the body is empty)
    ## Linked Items   (omitted without links)
"""

import re

from ..models import (
    TYPE_LABELS,
    ArtifactMetadata,
    DecisionMetadata,
    Entity,
    EntityType,
    ExperimentMetadata,
    HypothesisMetadata,
    ResolvedTags,
)
from .dates import format_date, format_metadata_date

MAX_SLUG_LENGTH = 50

_NON_ALNUM = re.compile(r"[^a-z0-9]+")
_EDGE_HYPHENS = re.compile(r"^-|-$")
_BLOCK_END = re.compile(
    r"<br\s*/?>|</(?:p|div|li|h[1-6]|blockquote|pre|tr)>", re.IGNORECASE
)
_LIST_ITEM = re.compile(r"<li(?:\s[^>]*)?>", re.IGNORECASE)
_TAG = re.compile(r"<[^>]*>")
_EXTRA_BLANK_LINES = re.compile(r"\n{3,}")


def sanitize_filename(name: str) -> str:
    """Turn a title into a filesystem-safe slug.

    >>> sanitize_filename("My Cool Idea!!!")
    'my-cool-idea'
    """
    slug = _NON_ALNUM.sub("-", (name or "").lower())
    slug = _EDGE_HYPHENS.sub("", slug)
    return slug[:MAX_SLUG_LENGTH] or "untitled"


def html_to_text(html: str) -> str:
    """Strip rich-text markup down to plain text.

    Block-level closing tags become line breaks, list items become "- "
    bullets, remaining tags are dropped and the common entities decoded.
    """
    if not html:
        return ""
    text = _BLOCK_END.sub("\n", html)
    text = _LIST_ITEM.sub("- ", text)
    text = _TAG.sub("", text)
    text = (
        text.replace("&nbsp;", " ")
        .replace("&lt;", "<")
        .replace("&gt;", ">")
        .replace("&amp;", "&")
    )
    text = "\n".join(line.rstrip() for line in text.splitlines())
    return _EXTRA_BLANK_LINES.sub("\n\n", text).strip()


def _metadata_fields(entity: Entity) -> list[tuple[str, str]]:
    fields: list[tuple[str, str]] = []
    metadata = entity.metadata

    if isinstance(metadata, HypothesisMetadata):
        if metadata.confidence is not None:
            fields.append(("Confidence", f"{metadata.confidence:g}"))
    elif isinstance(metadata, ExperimentMetadata):
        started = format_metadata_date(metadata.start_date)
        if started:
            fields.append(("Started", started))
        ends = format_metadata_date(metadata.end_date)
        if ends:
            fields.append(("Ends", ends))
        if metadata.outcome:
            fields.append(("Outcome", metadata.outcome))
        if metadata.metrics:
            fields.append(("Metrics", ", ".join(metadata.metrics)))
    elif isinstance(metadata, DecisionMetadata):
        if metadata.decision_type:
            fields.append(("Decision Type", metadata.decision_type))
        decided = format_metadata_date(metadata.decided_at)
        if decided:
            fields.append(("Decided", decided))
    elif isinstance(metadata, ArtifactMetadata):
        if metadata.artifact_type:
            fields.append(("Artifact Type", metadata.artifact_type))
        if metadata.source:
            fields.append(("Source", metadata.source))

    return fields


def render_entity_markdown(
    entity: Entity,
    tags: ResolvedTags | None = None,
    links: dict[EntityType, int] | None = None,
) -> str:
    """Render one entity as a markdown document.

    Args:
        entity: Entity with full detail
        tags: Tag names resolved from the entity's tag ids
        links: Linked entity counts per type

    Returns:
        Markdown text ending in a newline
    """
    lines = [f"# {entity.title or 'Untitled'}", ""]

    lines.append(f"- **Type:** {entity.type.value}")
    lines.append(f"- **Created:** {format_date(entity.created_at)}")
    lines.append(f"- **Updated:** {format_date(entity.updated_at)}")
    if entity.status:
        lines.append(f"- **Status:** {entity.status}")
    for label, value in _metadata_fields(entity):
        lines.append(f"- **{label}:** {value}")
    if entity.promoted_to_id:
        lines.append(f"- **Promoted To:** {entity.promoted_to_id}")
    lines.append("")

    if tags is not None and not tags.is_empty():
        lines.append("## Context")
        lines.append("")
        if tags.personas:
            lines.append(f"- **Personas:** {', '.join(tags.personas)}")
        if tags.features:
            lines.append(f"- **Features:** {', '.join(tags.features)}")
        if tags.dimension_values:
            lines.append(f"- **Dimensions:** {', '.join(tags.dimension_values)}")
        lines.append("")

    body = html_to_text(entity.body)
    if body:
        lines.append("## Notes")
        lines.append("")
        lines.append(body)
        lines.append("")

    buckets = [
        (TYPE_LABELS[entity_type], (links or {}).get(entity_type, 0))
        for entity_type in EntityType
    ]
    buckets = [(label, count) for label, count in buckets if count > 0]
    if buckets:
        lines.append("## Linked Items")
        lines.append("")
        for label, count in buckets:
            lines.append(f"- **{label}:** {count}")
        lines.append("")

    return "\n".join(lines).rstrip("\n") + "\n"
