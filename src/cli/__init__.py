"""Product OS CLI - manage products and export them to markdown."""

from product_os import __version__

__all__ = ["__version__"]
