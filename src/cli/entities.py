"""Entity CLI commands: add, list, link, archive and promote."""

import typer

from product_os.exceptions import ProductOSError
from product_os.models import EntityType

from .console import console, create_table, print_success, print_table, truncate
from .context import fail, get_store

app = typer.Typer(
    name="entities",
    help="Manage captures, problems, experiments and other entities",
    no_args_is_help=True,
)

TYPE_CHOICES = ", ".join(t.value for t in EntityType)


def _parse_type(value: str) -> EntityType:
    try:
        return EntityType(value.lower().replace("-", "_"))
    except ValueError:
        fail(f"Unknown entity type: {value} (expected one of: {TYPE_CHOICES})")


@app.command(name="add")
def add_entity(
    ctx: typer.Context,
    product_id: str = typer.Argument(..., help="Owning product id"),
    entity_type: str = typer.Argument(..., help=f"Entity type: {TYPE_CHOICES}"),
    title: str = typer.Argument(..., help="Entity title"),
    body: str = typer.Option("", "--body", "-b", help="Body text (HTML allowed)"),
    status: str | None = typer.Option(None, "--status", "-s", help="Status"),
) -> None:
    """Add an entity to a product."""
    parsed_type = _parse_type(entity_type)
    store = get_store(ctx)
    if store.get_product(product_id) is None:
        fail(f"Product not found: {product_id}")
    try:
        entity = store.create_entity(
            product_id, parsed_type, title=title, body=body, status=status
        )
    except ProductOSError as e:
        fail(e)
    print_success(f"Added {entity.type.value} {entity.title!r} ({entity.id})")


@app.command(name="list")
def list_entities(
    ctx: typer.Context,
    product_id: str = typer.Argument(..., help="Product id"),
    entity_type: str | None = typer.Option(
        None, "--type", "-t", help=f"Filter by type: {TYPE_CHOICES}"
    ),
    status: str | None = typer.Option(None, "--status", "-s", help="Filter by status"),
) -> None:
    """List a product's entities, most recently updated first."""
    parsed_type = _parse_type(entity_type) if entity_type else None
    store = get_store(ctx)
    entities = store.list_entities(product_id, entity_type=parsed_type, status=status)

    if not entities:
        console.print("[dim]No entities found.[/dim]")
        if entity_type or status:
            console.print("[dim]Try removing filters to see all entities.[/dim]")
        return

    table = create_table("Entities")
    table.add_column("ID", style="cyan")
    table.add_column("Type", style="blue")
    table.add_column("Title", style="green")
    table.add_column("Status", style="magenta")
    table.add_column("Updated", style="dim")

    for entity in entities:
        table.add_row(
            entity.id[:8],
            entity.type.value,
            truncate(entity.title or "Untitled", 40),
            entity.status or "",
            entity.updated_at,
        )

    print_table(table)
    console.print(f"\n[dim]Total: {len(entities)}[/dim]")


@app.command(name="link")
def link_entities(
    ctx: typer.Context,
    source_id: str = typer.Argument(..., help="Entity the link starts from"),
    target_id: str = typer.Argument(..., help="Entity the link points to"),
    relationship_type: str | None = typer.Option(
        None, "--type", "-t", help="Relationship label (e.g. supports, tests)"
    ),
) -> None:
    """Link two entities of the same product."""
    store = get_store(ctx)
    try:
        relationship = store.create_relationship(source_id, target_id, relationship_type)
    except ProductOSError as e:
        fail(e)
    print_success(f"Linked {source_id[:8]} → {target_id[:8]} ({relationship.id})")


@app.command(name="archive")
def archive_entity(
    ctx: typer.Context,
    entity_id: str = typer.Argument(..., help="Entity to archive"),
) -> None:
    """Mark an entity as archived."""
    store = get_store(ctx)
    try:
        entity = store.archive_entity(entity_id)
    except ProductOSError as e:
        fail(e)
    print_success(f"Archived {entity.type.value} {entity.title!r}")


@app.command(name="promote")
def promote_capture(
    ctx: typer.Context,
    capture_id: str = typer.Argument(..., help="Capture to promote"),
    entity_type: str = typer.Argument(..., help="Target entity type"),
    title: str | None = typer.Option(
        None, "--title", help="Title for the new entity (default: capture title)"
    ),
) -> None:
    """Promote a capture into a typed entity."""
    parsed_type = _parse_type(entity_type)
    store = get_store(ctx)
    try:
        promoted = store.promote_capture(capture_id, parsed_type, title=title)
    except ProductOSError as e:
        fail(e)
    print_success(f"Promoted capture to {promoted.type.value} ({promoted.id})")
