"""Composite audit writer: fans each write out to several writers."""

import asyncio
from collections.abc import Sequence
from typing import Any

from chronicle.audit.models import AuditLog
from chronicle.audit.writers.base import AuditWriter, WriteResult
from chronicle.config.models.audit import WriterKind
from chronicle.observability.logging import get_logger

logger = get_logger(__name__)


class CompositeWriter(AuditWriter):
    """Delegates every call to an ordered list of writers, concurrently.

    All child calls are awaited to completion; one child failing never
    stops the others. Failures (exceptions or failed results) are logged
    with counts and reasons, and the composite call itself still resolves.
    """

    kind = WriterKind.COMPOSITE

    def __init__(self, writers: Sequence[AuditWriter]) -> None:
        self._writers = tuple(writers)

    @property
    def writers(self) -> list[AuditWriter]:
        """The wrapped writers, in dispatch order."""
        return list(self._writers)

    async def write(self, record: AuditLog, destination: str) -> WriteResult:
        outcomes = await asyncio.gather(
            *(writer.write(record, destination) for writer in self._writers),
            return_exceptions=True,
        )
        return self._summarize(
            outcomes, destination, count=1, audit_id=str(record.id)
        )

    async def write_batch(
        self, records: Sequence[AuditLog], destination: str
    ) -> WriteResult:
        if not records:
            return WriteResult(self.type, destination, 0)

        outcomes = await asyncio.gather(
            *(writer.write_batch(records, destination) for writer in self._writers),
            return_exceptions=True,
        )
        return self._summarize(outcomes, destination, count=len(records))

    def _summarize(
        self,
        outcomes: Sequence[Any],
        destination: str,
        count: int,
        **context: Any,
    ) -> WriteResult:
        errors: list[str] = []
        for writer, outcome in zip(self._writers, outcomes, strict=True):
            if isinstance(outcome, BaseException):
                errors.append(f"{writer.type}: {outcome or type(outcome).__name__}")
            elif isinstance(outcome, WriteResult) and not outcome.ok:
                errors.append(f"{writer.type}: {outcome.error}")

        total = len(self._writers)
        if errors:
            logger.error(
                "audit_composite_partial_failure",
                destination=destination,
                count=count,
                total_writers=total,
                failed_writers=len(errors),
                errors=errors,
                **context,
            )

        logger.debug(
            "audit_composite_write_completed",
            destination=destination,
            count=count,
            total_writers=total,
            successful_writers=total - len(errors),
            **context,
        )

        error = f"{len(errors)} of {total} writers failed" if errors else None
        return WriteResult(self.type, destination, count, error=error)
