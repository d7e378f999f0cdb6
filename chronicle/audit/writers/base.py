"""AuditWriter contract and the shared failure boundary for backends.

Every writer resolves its ``write``/``write_batch`` calls: a failing
backend produces a logged ``WriteResult`` with an error, never an
exception. ``BackendWriter`` implements that boundary once; concrete
backends only implement ``_write`` and ``_write_batch``.
"""

import time
from abc import ABC, abstractmethod
from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from typing import ClassVar, TypeVar

from chronicle.audit.models import AuditLog
from chronicle.config.models.audit import WriterKind
from chronicle.observability.logging import get_logger
from chronicle.observability.metrics import AUDIT_WRITE_LATENCY, AUDIT_WRITER_FAILURES

logger = get_logger(__name__)

T = TypeVar("T")


def chunked(items: Sequence[T], size: int) -> Iterator[Sequence[T]]:
    """Yield consecutive slices of at most ``size`` items, in order."""
    for start in range(0, len(items), size):
        yield items[start:start + size]


@dataclass(frozen=True)
class WriteResult:
    """Outcome of a writer call.

    Attributes:
        writer: Writer kind that handled the call
        destination: Table, stream or queue destination name
        count: Number of records in the call
        error: Failure description, None on success
    """

    writer: str
    destination: str
    count: int
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class AuditWriter(ABC):
    """Interface for audit log writers.

    Implementations must never raise from ``write`` or ``write_batch``;
    failures are logged and reported through the returned ``WriteResult``.
    ``write_batch`` with no records performs no I/O.
    """

    kind: ClassVar[WriterKind]

    @property
    def type(self) -> str:
        """Writer type tag, e.g. "dynamodb"."""
        return self.kind.value

    @abstractmethod
    async def write(self, record: AuditLog, destination: str) -> WriteResult:
        """Write a single audit record to ``destination``."""

    @abstractmethod
    async def write_batch(
        self, records: Sequence[AuditLog], destination: str
    ) -> WriteResult:
        """Write several audit records to ``destination``."""


class BackendWriter(AuditWriter):
    """Base for writers that perform I/O against a storage backend."""

    async def write(self, record: AuditLog, destination: str) -> WriteResult:
        start = time.perf_counter()
        try:
            await self._write(record, destination)
        except Exception as e:
            AUDIT_WRITER_FAILURES.labels(writer=self.type).inc()
            logger.error(
                "audit_write_failed",
                writer=self.type,
                audit_id=str(record.id),
                entity_id=record.entity_id,
                destination=destination,
                error=str(e),
            )
            return WriteResult(self.type, destination, 1, error=str(e))
        finally:
            AUDIT_WRITE_LATENCY.labels(writer=self.type).observe(
                time.perf_counter() - start
            )

        logger.debug(
            "audit_write_completed",
            writer=self.type,
            audit_id=str(record.id),
            entity_id=record.entity_id,
            operation=record.operation.value,
            destination=destination,
        )
        return WriteResult(self.type, destination, 1)

    async def write_batch(
        self, records: Sequence[AuditLog], destination: str
    ) -> WriteResult:
        if not records:
            return WriteResult(self.type, destination, 0)

        start = time.perf_counter()
        try:
            await self._write_batch(records, destination)
        except Exception as e:
            AUDIT_WRITER_FAILURES.labels(writer=self.type).inc()
            logger.error(
                "audit_batch_write_failed",
                writer=self.type,
                count=len(records),
                first_audit_id=str(records[0].id),
                destination=destination,
                error=str(e),
            )
            return WriteResult(self.type, destination, len(records), error=str(e))
        finally:
            AUDIT_WRITE_LATENCY.labels(writer=self.type).observe(
                time.perf_counter() - start
            )

        logger.debug(
            "audit_batch_write_completed",
            writer=self.type,
            count=len(records),
            destination=destination,
        )
        return WriteResult(self.type, destination, len(records))

    @abstractmethod
    async def _write(self, record: AuditLog, destination: str) -> None:
        """Persist one record. May raise; ``write`` contains the failure."""

    @abstractmethod
    async def _write_batch(self, records: Sequence[AuditLog], destination: str) -> None:
        """Persist a non-empty batch. May raise; ``write_batch`` contains the failure."""
