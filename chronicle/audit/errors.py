"""Audit engine errors.

None of these escape ``AuditService``; they exist so writers and the
factory can signal failures that the service boundary logs.
"""


class AuditError(Exception):
    """Base exception for audit engine errors."""

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        super().__init__(message)
        self.cause = cause


class WriterUnavailableError(AuditError):
    """Raised when a writer's backend client cannot be initialised."""


class UnknownWriterError(AuditError):
    """Raised when asked to build a writer for an unsupported kind."""
