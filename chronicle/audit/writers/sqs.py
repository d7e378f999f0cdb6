"""SQS audit writer.

Publishes audit records to a queue for asynchronous processing. Each
message carries the record and its destination table name, so a consumer
can persist it to the real store (or several).
"""

import asyncio
import json
from collections.abc import Sequence
from typing import Any

from chronicle.audit.errors import WriterUnavailableError
from chronicle.audit.models import AuditLog
from chronicle.audit.writers.base import BackendWriter, chunked
from chronicle.config.models.audit import WriterKind
from chronicle.observability.logging import get_logger

logger = get_logger(__name__)

# SendMessageBatch accepts at most 10 entries
BATCH_LIMIT = 10


class SQSWriter(BackendWriter):
    """Sends one message per audit record.

    When ``message_group_id`` is set the queue is treated as FIFO: every
    message gets that group id and the record id as deduplication id.

    If the SQS client cannot be created (boto3 missing, no region, ...)
    the writer stays constructed; every call then fails inside the writer
    boundary with a logged error and nothing is sent.
    """

    kind = WriterKind.SQS

    def __init__(
        self,
        queue_url: str,
        *,
        message_group_id: str | None = None,
        client: Any | None = None,
        region_name: str | None = None,
        endpoint_url: str | None = None,
    ) -> None:
        """Initialize the writer.

        Args:
            queue_url: Target queue URL
            message_group_id: FIFO message group id
            client: boto3 SQS client; created lazily if None
            region_name: AWS region for the lazily created client
            endpoint_url: Endpoint override for the lazily created client
        """
        self._queue_url = queue_url
        self._message_group_id = message_group_id
        self._client = client
        self._region_name = region_name
        self._endpoint_url = endpoint_url
        self._unavailable: WriterUnavailableError | None = None

    @property
    def queue_url(self) -> str:
        return self._queue_url

    def _get_client(self) -> Any:
        if self._client is not None:
            return self._client
        if self._unavailable is not None:
            raise self._unavailable

        try:
            import boto3

            self._client = boto3.client(
                "sqs",
                region_name=self._region_name,
                endpoint_url=self._endpoint_url,
            )
        except Exception as e:
            self._unavailable = WriterUnavailableError(
                f"SQS client unavailable: {e}", cause=e
            )
            logger.warning("sqs_client_unavailable", error=str(e))
            raise self._unavailable from e
        return self._client

    def build_message(self, record: AuditLog, destination: str) -> dict[str, Any]:
        """Message body and attributes for one record (without QueueUrl/Id)."""
        message: dict[str, Any] = {
            "MessageBody": json.dumps(
                {"auditLog": record.to_item(), "tableName": destination}
            ),
            "MessageAttributes": {
                "tableName": {"DataType": "String", "StringValue": destination},
                "operation": {
                    "DataType": "String",
                    "StringValue": record.operation.value,
                },
            },
        }
        if self._message_group_id:
            message["MessageGroupId"] = self._message_group_id
            message["MessageDeduplicationId"] = str(record.id)
        return message

    async def _write(self, record: AuditLog, destination: str) -> None:
        client = self._get_client()
        await asyncio.to_thread(
            client.send_message,
            QueueUrl=self._queue_url,
            **self.build_message(record, destination),
        )

    async def _write_batch(self, records: Sequence[AuditLog], destination: str) -> None:
        client = self._get_client()

        for chunk in chunked(records, BATCH_LIMIT):
            entries = [
                {"Id": str(index), **self.build_message(record, destination)}
                for index, record in enumerate(chunk)
            ]
            response = await asyncio.to_thread(
                client.send_message_batch,
                QueueUrl=self._queue_url,
                Entries=entries,
            )
            failed = (response or {}).get("Failed", [])
            if failed:
                logger.warning(
                    "sqs_batch_entries_failed",
                    destination=destination,
                    count=len(failed),
                    audit_ids=[str(chunk[int(entry["Id"])].id) for entry in failed],
                )
