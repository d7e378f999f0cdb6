"""Store error hierarchy for storage backends.

Backend-specific exceptions (asyncpg, botocore) are wrapped in one of these
so callers see a single family of errors.
"""


class StoreError(Exception):
    """Base exception for all store errors."""

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        super().__init__(message)
        self.cause = cause


class ConnectionError(StoreError):
    """Raised when the backend cannot be reached.

    Examples:
        - Database connection timeout
        - Pool exhausted or closed
        - Network errors
    """


class ConflictError(StoreError):
    """Raised on unique constraint violation, e.g. a duplicate audit id."""


class ValidationError(StoreError):
    """Raised when the backend rejects the shape of the data written."""
