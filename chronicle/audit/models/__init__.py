"""Audit domain models."""

from chronicle.audit.models.change import ABSENT, ChangeRecord, to_jsonable, value_type
from chronicle.audit.models.record import (
    AuditLog,
    AuditMetadata,
    AuditOperation,
    utc_now,
)

__all__ = [
    "ABSENT",
    "AuditLog",
    "AuditMetadata",
    "AuditOperation",
    "ChangeRecord",
    "to_jsonable",
    "utc_now",
    "value_type",
]
