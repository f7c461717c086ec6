"""Product CLI commands."""

import typer

from product_os.exceptions import ProductOSError

from .console import console, create_table, print_success, print_table, truncate
from .context import fail, get_store

app = typer.Typer(
    name="products",
    help="Create and list products",
    no_args_is_help=True,
)


@app.command(name="create")
def create_product(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Product name"),
    description: str | None = typer.Option(
        None, "--description", "-d", help="Short description"
    ),
    icon: str | None = typer.Option(None, "--icon", help="Icon (emoji or short text)"),
) -> None:
    """Create a new product."""
    store = get_store(ctx)
    try:
        product = store.create_product(name, description=description, icon=icon)
    except ProductOSError as e:
        fail(e)
    print_success(f"Created product {product.name} ({product.id})")


@app.command(name="list")
def list_products(ctx: typer.Context) -> None:
    """List all products, most recently active first."""
    store = get_store(ctx)
    products = store.list_products()

    if not products:
        console.print("[dim]No products yet. Create one with 'product-os products create'.[/dim]")
        return

    table = create_table("Products")
    table.add_column("ID", style="cyan")
    table.add_column("Name", style="green")
    table.add_column("Description", style="dim")
    table.add_column("Last Activity", style="magenta")

    for product in products:
        table.add_row(
            product.id,
            f"{product.icon} {product.name}" if product.icon else product.name,
            truncate(product.description, 40),
            product.last_activity_at,
        )

    print_table(table)
