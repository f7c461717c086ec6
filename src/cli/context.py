"""Shared command state: loaded config, store and export system.

The root callback stores the loaded config on ``ctx.obj``; subcommands
build their handles from it.
"""

import logging
from typing import Any, NoReturn

import typer

from product_os.config import ConfigurationError, get_db_path, load_config
from product_os.database import EntityStore
from product_os.exceptions import ProductOSError
from product_os.export_system import ExportSystem

from .console import print_error

logger = logging.getLogger(__name__)


def get_config(ctx: typer.Context) -> dict[str, Any]:
    """Config loaded by the root callback, or loaded now with defaults."""
    if ctx.obj is None:
        try:
            ctx.obj = load_config()
        except ConfigurationError as e:
            fail(e)
    return ctx.obj


def get_store(ctx: typer.Context) -> EntityStore:
    """Entity store for the configured database."""
    config = get_config(ctx)
    db_path = get_db_path(config)
    logger.debug(f"Using database: {db_path}")
    return EntityStore(db_path=db_path)


def get_export_system(ctx: typer.Context) -> ExportSystem:
    """Export system for the configured database and workspace."""
    return ExportSystem.from_config(get_config(ctx))


def fail(error: ProductOSError | ConfigurationError | str) -> NoReturn:
    """Print an error line and exit with status 1."""
    print_error(str(error))
    raise typer.Exit(1)
