"""PostgreSQL audit writer.

Writes audit records to per-entity tables named ``{entity}_audit_logs``.

Expected table schema per entity:

    CREATE TABLE invoice_audit_logs (
        id UUID PRIMARY KEY,
        entity_id VARCHAR(100) NOT NULL,
        operation VARCHAR(20) NOT NULL,
        user_id VARCHAR(100) NOT NULL,
        timestamp TIMESTAMPTZ NOT NULL,
        changes JSONB NOT NULL,
        snapshot_before JSONB,
        snapshot_after JSONB,
        metadata JSONB,
        created_at TIMESTAMPTZ DEFAULT NOW()
    );
    CREATE INDEX idx_invoice_audit_entity ON invoice_audit_logs(entity_id, timestamp DESC);
    CREATE INDEX idx_invoice_audit_user ON invoice_audit_logs(user_id, timestamp DESC);
"""

import json
from collections.abc import Sequence
from typing import Any

from chronicle.audit.models import AuditLog, to_jsonable
from chronicle.audit.writers.base import BackendWriter, chunked
from chronicle.config.models.audit import WriterKind
from chronicle.db.pool import PostgresPool

COLUMNS = (
    "id",
    "entity_id",
    "operation",
    "user_id",
    "timestamp",
    "changes",
    "snapshot_before",
    "snapshot_after",
    "metadata",
)
JSON_COLUMNS = frozenset({"changes", "snapshot_before", "snapshot_after", "metadata"})


def quote_ident(name: str) -> str:
    """Quote a SQL identifier."""
    return '"' + name.replace('"', '""') + '"'


def _json_or_none(value: Any) -> str | None:
    return json.dumps(to_jsonable(value)) if value is not None else None


class PostgresWriter(BackendWriter):
    """Inserts one row per audit record with parameterized values.

    Batches are written as one multi-row INSERT per chunk of
    ``batch_size`` rows.
    """

    kind = WriterKind.POSTGRES

    def __init__(
        self,
        pool: PostgresPool,
        *,
        schema_name: str = "public",
        batch_size: int = 500,
    ) -> None:
        """Initialize with connection pool.

        Args:
            pool: PostgreSQL connection pool
            schema_name: Schema holding the audit tables
            batch_size: Rows per INSERT statement in batch writes
        """
        self._pool = pool
        self._schema_name = schema_name
        self._batch_size = batch_size

    @property
    def schema_name(self) -> str:
        return self._schema_name

    def qualified_table(self, table_name: str) -> str:
        """Schema-qualified, quoted table name."""
        return f"{quote_ident(self._schema_name)}.{quote_ident(table_name)}"

    def build_insert(self, table_name: str, row_count: int) -> str:
        """Build an INSERT statement with placeholders for ``row_count`` rows."""
        width = len(COLUMNS)
        rows = []
        for row in range(row_count):
            params = [
                f"${row * width + i + 1}" + ("::jsonb" if column in JSON_COLUMNS else "")
                for i, column in enumerate(COLUMNS)
            ]
            rows.append(f"({', '.join(params)}, NOW())")
        return (
            f"INSERT INTO {self.qualified_table(table_name)} "
            f"({', '.join(COLUMNS)}, created_at) VALUES {', '.join(rows)}"
        )

    @staticmethod
    def row_values(record: AuditLog) -> tuple[Any, ...]:
        """Parameter values for one record, in column order."""
        return (
            record.id,
            record.entity_id,
            record.operation.value,
            record.user_id,
            record.timestamp,
            json.dumps([change.to_dict() for change in record.changes]),
            _json_or_none(record.snapshot_before),
            _json_or_none(record.snapshot_after),
            json.dumps(record.metadata.to_dict()) if record.metadata else None,
        )

    async def _write(self, record: AuditLog, destination: str) -> None:
        async with self._pool.acquire() as conn:
            await conn.execute(self.build_insert(destination, 1), *self.row_values(record))

    async def _write_batch(self, records: Sequence[AuditLog], destination: str) -> None:
        async with self._pool.acquire() as conn:
            for chunk in chunked(records, self._batch_size):
                values: list[Any] = []
                for record in chunk:
                    values.extend(self.row_values(record))
                await conn.execute(self.build_insert(destination, len(chunk)), *values)
