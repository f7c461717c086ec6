"""Export CLI commands: preview, run, history, snapshot and folder access."""

from pathlib import Path

import typer

from product_os.config import ConfigurationError, get_export_defaults
from product_os.exceptions import NotFoundError, ProductOSError
from product_os.models import ALL_PRODUCTS, TYPE_LABELS, ExportCounts, ExportMode, ExportOptions

from .console import (
    console,
    create_table,
    print_info,
    print_panel,
    print_success,
    print_table,
    truncate,
)
from .context import fail, get_config, get_export_system

app = typer.Typer(
    name="exports",
    help="Export products to markdown bundles and manage export history",
    no_args_is_help=True,
)


def _build_options(
    ctx: typer.Context,
    product: str,
    mode: str | None,
    since: str | None,
    linked: bool | None,
) -> ExportOptions:
    """Export options from flags, falling back to config defaults."""
    try:
        defaults = get_export_defaults(get_config(ctx))
    except ConfigurationError as e:
        fail(e)

    try:
        export_mode = ExportMode(mode or defaults["mode"])
    except ValueError:
        fail(f"Unknown export mode: {mode} (expected full or incremental)")

    try:
        return ExportOptions(
            product_id=product,
            mode=export_mode,
            start_date=since,
            include_linked_context=(
                defaults["include_linked_context"] if linked is None else linked
            ),
        )
    except ProductOSError as e:
        fail(e)


def _counts_summary(counts: ExportCounts) -> str:
    parts = [
        f"{TYPE_LABELS[entity_type]}: {count}"
        for entity_type, count in counts.by_type.items()
        if count > 0
    ]
    return ", ".join(parts) if parts else "nothing"


_PRODUCT_OPTION = typer.Option(
    ALL_PRODUCTS, "--product", "-p", help="Product id, or 'all' for every product"
)
_MODE_OPTION = typer.Option(
    None, "--mode", "-m", help="full or incremental (default from config)"
)
_SINCE_OPTION = typer.Option(
    None, "--since", help="Incremental cutoff (ISO date or timestamp; dates and naive times are UTC)"
)
_LINKED_OPTION = typer.Option(
    None,
    "--linked/--no-linked",
    help="Include one hop of linked entities in incremental exports",
)


@app.command(name="preview")
def preview_export(
    ctx: typer.Context,
    product: str = _PRODUCT_OPTION,
    mode: str | None = _MODE_OPTION,
    since: str | None = _SINCE_OPTION,
    linked: bool | None = _LINKED_OPTION,
) -> None:
    """Show which entities an export would contain, without writing anything."""
    options = _build_options(ctx, product, mode, since, linked)
    exports = get_export_system(ctx)
    preview = exports.get_export_preview(options)

    if preview.counts.total == 0:
        console.print("[dim]Nothing to export with these options.[/dim]")
        return

    table = create_table(f"Export Preview ({options.mode.value})")
    table.add_column("ID", style="cyan")
    table.add_column("Type", style="blue")
    table.add_column("Title", style="green")
    table.add_column("Status", style="magenta")
    table.add_column("Updated", style="dim")

    for summary in preview.entities:
        table.add_row(
            summary.id[:8],
            summary.type.value,
            truncate(summary.title or "Untitled", 40),
            summary.status or "",
            summary.updated_at,
        )

    print_table(table)
    console.print(
        f"\n[dim]Total: {preview.counts.total} | {_counts_summary(preview.counts)}[/dim]"
    )


@app.command(name="run")
def run_export(
    ctx: typer.Context,
    product: str = _PRODUCT_OPTION,
    mode: str | None = _MODE_OPTION,
    since: str | None = _SINCE_OPTION,
    linked: bool | None = _LINKED_OPTION,
) -> None:
    """Write an export bundle under the workspace."""
    options = _build_options(ctx, product, mode, since, linked)
    exports = get_export_system(ctx)
    try:
        result = exports.execute_export(options)
    except ProductOSError as e:
        fail(e)

    print_success(f"Exported {result.counts.total} entities ({result.id})")
    print_info(f"Output: {result.output_path}")


@app.command(name="history")
def export_history(
    ctx: typer.Context,
    product: str | None = typer.Option(
        None, "--product", "-p", help="Limit to one product (all-product runs included)"
    ),
) -> None:
    """List past export runs, newest first."""
    exports = get_export_system(ctx)
    records = exports.get_export_history(product)

    if not records:
        console.print("[dim]No exports yet.[/dim]")
        return

    table = create_table("Export History")
    table.add_column("ID", style="cyan")
    table.add_column("Created", style="dim")
    table.add_column("Scope", style="blue")
    table.add_column("Mode", style="magenta")
    table.add_column("Items", justify="right")
    table.add_column("Output", style="green")

    for record in records:
        scope = record.product_id or record.scope_type.value
        table.add_row(
            record.id,
            record.created_at,
            scope,
            record.mode.value,
            str(record.counts.total),
            truncate(record.output_path, 50),
        )

    print_table(table)


@app.command(name="clear")
def clear_history(
    ctx: typer.Context,
    product: str | None = typer.Option(
        None, "--product", "-p", help="Only clear this product's records"
    ),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """Delete export history records. Bundles on disk are kept."""
    if not yes:
        target = f"product {product}" if product else "all products"
        typer.confirm(f"Clear export history for {target}?", abort=True)

    exports = get_export_system(ctx)
    removed = exports.clear_export_history(product)
    print_success(f"Removed {removed} export record(s)")


@app.command(name="delete")
def delete_export(
    ctx: typer.Context,
    export_id: str = typer.Argument(..., help="Export id from 'exports history'"),
) -> None:
    """Delete one export history record. The bundle on disk is kept."""
    exports = get_export_system(ctx)
    try:
        exports.delete_export(export_id)
    except ProductOSError as e:
        fail(e)
    print_success(f"Deleted export record {export_id}")


@app.command(name="snapshot")
def copy_snapshot(
    ctx: typer.Context,
    product_id: str = typer.Argument(..., help="Product to summarize"),
    output: Path | None = typer.Option(
        None, "--output", "-o", help="Write to a file instead of stdout"
    ),
) -> None:
    """Print a markdown digest of a product's current state."""
    exports = get_export_system(ctx)
    if exports.store.get_product(product_id) is None:
        fail(f"Product not found: {product_id}")

    markdown = exports.generate_copy_snapshot(product_id)

    if output:
        output.write_text(markdown, encoding="utf-8")
        print_success(f"Snapshot written to {output}")
        return

    # Plain echo keeps markdown brackets out of rich markup parsing
    typer.echo(markdown)


@app.command(name="open")
def open_export(
    ctx: typer.Context,
    export_id: str = typer.Argument(..., help="Export id from 'exports history'"),
) -> None:
    """Open an export bundle's folder in the file manager."""
    exports = get_export_system(ctx)
    record = exports.store.get_export_record(export_id)
    if record is None or not record.output_path:
        fail(NotFoundError("Export", export_id))

    try:
        exports.open_folder(record.output_path)
    except ProductOSError as e:
        fail(e)
    print_panel("Opened", record.output_path, style="green")
