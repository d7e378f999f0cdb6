"""Test factories for creating test data."""

from tests.factories.audit import (
    AuditLogFactory,
    FailingWriter,
    RaisingWriter,
    RecordingWriter,
)

__all__ = [
    "AuditLogFactory",
    "FailingWriter",
    "RaisingWriter",
    "RecordingWriter",
]
