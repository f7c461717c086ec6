"""Product OS CLI entry point."""

import logging
from pathlib import Path

import typer

from product_os.config import ConfigurationError, get_log_level, load_config

from . import __version__
from .console import console
from .context import fail
from .entities import app as entities_app
from .exports import app as exports_app
from .products import app as products_app
from .taxonomy import app as taxonomy_app

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

app = typer.Typer(
    name="product-os",
    help="Product OS - track product work and export it as markdown",
    no_args_is_help=True,
)


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        console.print(f"product-os version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    version: bool = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    ),
    config_path: Path | None = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to config.yaml (default: ~/.product-os/config.yaml)",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable debug logging",
    ),
) -> None:
    """Product OS - track product work and export it as markdown."""
    try:
        config = load_config(str(config_path) if config_path else None)
    except ConfigurationError as e:
        fail(e)

    logging.basicConfig(
        level=logging.DEBUG if verbose else get_log_level(config),
        format=LOG_FORMAT,
    )
    ctx.obj = config


app.add_typer(products_app, name="products")
app.add_typer(entities_app, name="entities")
app.add_typer(taxonomy_app, name="taxonomy")
app.add_typer(exports_app, name="exports")


if __name__ == "__main__":
    app()
