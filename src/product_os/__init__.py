"""Product OS - track product-management artifacts and export them as markdown."""

__version__ = "0.3.0"
