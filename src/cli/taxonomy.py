"""Taxonomy CLI commands: personas, features and dimensions."""

import typer

from product_os.exceptions import ProductOSError
from product_os.models import TaxonomyKind

from .console import console, print_panel, print_success
from .context import fail, get_store

app = typer.Typer(
    name="taxonomy",
    help="Manage personas, features and dimensions used to tag entities",
    no_args_is_help=True,
)

KIND_CHOICES = ", ".join(k.value for k in TaxonomyKind)


@app.command(name="add")
def add_item(
    ctx: typer.Context,
    parent_id: str = typer.Argument(
        ..., help="Product id (dimension id when adding a dimension_value)"
    ),
    kind: str = typer.Argument(..., help=f"Item kind: {KIND_CHOICES}"),
    name: str = typer.Argument(..., help="Display name"),
) -> None:
    """Add a taxonomy item."""
    try:
        parsed_kind = TaxonomyKind(kind.lower().replace("-", "_"))
    except ValueError:
        fail(f"Unknown taxonomy kind: {kind} (expected one of: {KIND_CHOICES})")

    store = get_store(ctx)
    try:
        item = store.create_taxonomy_item(parsed_kind, parent_id, name)
    except ProductOSError as e:
        fail(e)
    print_success(f"Added {item.kind.value} {item.name!r} ({item.id})")


@app.command(name="list")
def list_items(
    ctx: typer.Context,
    product_id: str = typer.Argument(..., help="Product id"),
    include_archived: bool = typer.Option(
        False, "--archived", help="Include archived items"
    ),
) -> None:
    """Show a product's personas, features and dimensions."""
    store = get_store(ctx)
    taxonomy = store.get_taxonomy(product_id, include_archived=include_archived)

    if not (taxonomy.personas or taxonomy.features or taxonomy.dimensions):
        console.print("[dim]No taxonomy items for this product.[/dim]")
        return

    def _label(item) -> str:
        suffix = " [dim](archived)[/dim]" if item.is_archived else ""
        return f"{item.name} [dim]{item.id}[/dim]{suffix}"

    lines = ["[bold]Personas:[/bold]"]
    lines.extend(f"  - {_label(p)}" for p in taxonomy.personas)
    lines.append("[bold]Features:[/bold]")
    lines.extend(f"  - {_label(f)}" for f in taxonomy.features)
    lines.append("[bold]Dimensions:[/bold]")
    for dimension in taxonomy.dimensions:
        lines.append(f"  - {_label(dimension)}")
        lines.extend(f"      - {_label(v)}" for v in dimension.values)

    print_panel(f"Taxonomy: {product_id}", "\n".join(lines))
