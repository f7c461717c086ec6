"""
Copy snapshot: a single markdown digest of a product's current state,
meant to be pasted into another tool.

Sections (each omitted when empty):
- Active Problems
- Running Experiments
- Recent Decisions (Last 14 Days)
- Open Questions (heuristically pulled from entity bodies)
- Quick Stats footer
"""

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from ..database import EntityStore
from ..models import DecisionMetadata, Entity, EntityType, ExperimentMetadata
from .dates import format_date, format_metadata_date, format_time, to_utc_timestamp

logger = logging.getLogger(__name__)

ACTIVE_PROBLEM_STATUSES = ["active", "exploring"]
RUNNING_EXPERIMENT_STATUSES = ["running", "planned"]
RECENT_DECISION_DAYS = 14

QUESTION_SCAN_LIMIT = 50
QUESTIONS_PER_ENTITY = 3
QUESTION_LIMIT = 10
MIN_QUESTION_LENGTH = 11
MAX_QUESTION_LENGTH = 299

_QUESTION = re.compile(r"[^.!?\n]*\?")
_TAG = re.compile(r"<[^>]*>")
_WHITESPACE = re.compile(r"\s+")


@dataclass
class OpenQuestion:
    """A question found in an entity body."""

    question: str
    title: str
    type: str


def extract_questions(body: str) -> list[str]:
    """Pull question-like fragments out of one body.

    Takes the first three runs of text ending in "?" (split on . ! ? and
    newlines), strips markup, collapses whitespace, and keeps those of
    11-299 characters.
    """
    questions = []
    for match in _QUESTION.findall(body or "")[:QUESTIONS_PER_ENTITY]:
        cleaned = _WHITESPACE.sub(" ", _TAG.sub("", match)).strip()
        if MIN_QUESTION_LENGTH <= len(cleaned) <= MAX_QUESTION_LENGTH:
            questions.append(cleaned)
    return questions


def collect_open_questions(entities: list[Entity]) -> list[OpenQuestion]:
    """Questions across entities in recency order, deduplicated and capped."""
    seen: set[str] = set()
    questions: list[OpenQuestion] = []
    for entity in entities:
        for question in extract_questions(entity.body):
            if question in seen:
                continue
            seen.add(question)
            questions.append(
                OpenQuestion(
                    question=question,
                    title=entity.title or "Untitled",
                    type=entity.type.value,
                )
            )
    return questions[:QUESTION_LIMIT]


def _experiment_line(experiment: Entity) -> str:
    line = (
        f"- **{experiment.title or 'Untitled'}** ({experiment.status}) "
        f"- updated {format_date(experiment.updated_at)}"
    )
    metadata = experiment.metadata
    if isinstance(metadata, ExperimentMetadata):
        started = format_metadata_date(metadata.start_date)
        if started:
            line += f" | Started: {started}"
        ends = format_metadata_date(metadata.end_date)
        if ends:
            line += f" | Ends: {ends}"
    return line


def _decision_line(decision: Entity) -> str:
    line = f"- **{decision.title or 'Untitled'}** - {format_date(decision.created_at)}"
    metadata = decision.metadata
    if isinstance(metadata, DecisionMetadata) and metadata.decision_type:
        line += f" ({metadata.decision_type})"
    return line


def generate_copy_snapshot(
    store: EntityStore,
    product_id: str,
    now: datetime | None = None,
) -> str:
    """Generate the copy snapshot markdown for one product.

    Args:
        store: Entity store
        product_id: Product to summarize
        now: Override generation time (timezone-aware)

    Returns:
        Markdown text
    """
    now = now or datetime.now(timezone.utc)
    product = store.get_product(product_id)
    product_name = product.name if product else "Product"

    lines = [f"# {product_name} - Current State"]
    lines.append(f"_Generated: {format_date(now)} {format_time(now)}_")
    lines.append("")

    problems = store.list_entities(
        product_id,
        entity_type=EntityType.PROBLEM,
        statuses=ACTIVE_PROBLEM_STATUSES,
    )
    if problems:
        lines.append("## Active Problems")
        lines.append("")
        for problem in problems:
            lines.append(
                f"- **{problem.title or 'Untitled'}** ({problem.status}) "
                f"- updated {format_date(problem.updated_at)}"
            )
        lines.append("")

    experiments = store.list_entities(
        product_id,
        entity_type=EntityType.EXPERIMENT,
        statuses=RUNNING_EXPERIMENT_STATUSES,
    )
    if experiments:
        lines.append("## Running Experiments")
        lines.append("")
        lines.extend(_experiment_line(experiment) for experiment in experiments)
        lines.append("")

    decisions = store.list_entities(
        product_id,
        entity_type=EntityType.DECISION,
        created_since=to_utc_timestamp(now - timedelta(days=RECENT_DECISION_DAYS)),
        order_by="created_at",
    )
    if decisions:
        lines.append(f"## Recent Decisions (Last {RECENT_DECISION_DAYS} Days)")
        lines.append("")
        lines.extend(_decision_line(decision) for decision in decisions)
        lines.append("")

    questions = collect_open_questions(
        store.list_question_candidates(product_id, limit=QUESTION_SCAN_LIMIT)
    )
    if questions:
        lines.append("## Open Questions")
        lines.append("")
        for item in questions:
            lines.append(f"- {item.question}")
            lines.append(f"  _From: {item.title} ({item.type})_")
        lines.append("")

    stats = store.count_by_type(product_id)
    if stats:
        lines.append("---")
        lines.append("")
        lines.append("**Quick Stats:**")
        lines.append(" | ".join(f"{count} {type_name}s" for type_name, count in stats.items()))

    logger.debug(f"Generated copy snapshot for {product_id}: {len(questions)} questions")
    return "\n".join(lines)
