"""
Product OS exceptions.

Callers distinguish three conditions:
- PreconditionError: nothing was attempted (workspace missing, unknown product)
- NotFoundError: a targeted mutation hit a row that no longer exists
- WriteRejectedError: the database refused the write
"""


class ProductOSError(Exception):
    """Base exception for all Product OS errors."""

    def __init__(self, message: str, remediation: str | None = None):
        """Initialize the error.

        Args:
            message: Human-readable error message
            remediation: Suggested fix for the user
        """
        super().__init__(message)
        self.message = message
        self.remediation = remediation

    def __str__(self) -> str:
        if self.remediation:
            return f"{self.message}\nTo fix: {self.remediation}"
        return self.message


class PreconditionError(ProductOSError):
    """Raised before any side effect when an operation cannot start."""


class WorkspaceNotConfiguredError(PreconditionError):
    """No workspace root is configured for export output."""

    def __init__(self, message: str = "Workspace not configured"):
        super().__init__(
            message,
            remediation="Set workspace.path in config.yaml or PRODUCT_OS_WORKSPACE",
        )


class ProductNotFoundError(PreconditionError):
    """The requested product does not exist."""

    def __init__(self, product_id: str):
        super().__init__(f"Product not found: {product_id}")
        self.product_id = product_id


class NotFoundError(ProductOSError):
    """A targeted read-modify operation found no matching row."""

    def __init__(self, kind: str, record_id: str):
        super().__init__(f"{kind} not found: {record_id}")
        self.kind = kind
        self.record_id = record_id


class WriteRejectedError(ProductOSError):
    """The database rejected a write (constraint or integrity failure)."""


class ExportError(ProductOSError):
    """Writing an export bundle failed; no history record was stored."""


class InvalidTimestampError(ProductOSError):
    """A timestamp or date argument could not be parsed."""

    def __init__(self, value: str):
        super().__init__(
            f"Invalid timestamp: {value}",
            remediation="Use an ISO date (2024-06-01) or timestamp (2024-06-01T09:30:00Z)",
        )
        self.value = value
