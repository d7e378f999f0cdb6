"""Database connectivity for the relational audit writer."""

from chronicle.db.errors import (
    ConflictError,
    ConnectionError,
    StoreError,
    ValidationError,
)
from chronicle.db.pool import PostgresPool

__all__ = [
    "ConflictError",
    "ConnectionError",
    "PostgresPool",
    "StoreError",
    "ValidationError",
]
