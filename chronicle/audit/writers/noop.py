"""No-op audit writer."""

from collections.abc import Sequence

from chronicle.audit.models import AuditLog
from chronicle.audit.writers.base import AuditWriter, WriteResult
from chronicle.config.models.audit import WriterKind
from chronicle.observability.logging import get_logger

logger = get_logger(__name__)


class NoOpWriter(AuditWriter):
    """Accepts and discards audit records.

    Used when auditing should be wired but not persisted (tests, local
    development, a queue writer with no queue). Each call still logs at
    debug level, like the real writers do.
    """

    kind = WriterKind.NOOP

    async def write(self, record: AuditLog, destination: str) -> WriteResult:
        logger.debug(
            "audit_noop_write",
            destination=destination,
            entity_id=record.entity_id,
            operation=record.operation.value,
        )
        return WriteResult(self.type, destination, 1)

    async def write_batch(
        self, records: Sequence[AuditLog], destination: str
    ) -> WriteResult:
        logger.debug("audit_noop_batch_write", destination=destination, count=len(records))
        return WriteResult(self.type, destination, len(records))
