"""DynamoDB audit writer.

Writes audit records to per-entity DynamoDB tables, named
``{prefix}-{entity}-audit-logs`` by default.

Expected table schema per entity:
- id (String): partition key
- timestamp (String): sort key
- GSI on entityId + timestamp for per-entity history
- ttl (Number): optional, enable TTL on this attribute to auto-expire items
"""

import asyncio
import json
import time
from collections.abc import Sequence
from decimal import Decimal
from typing import Any

from chronicle.audit.errors import WriterUnavailableError
from chronicle.audit.models import AuditLog
from chronicle.audit.writers.base import BackendWriter, chunked
from chronicle.config.models.audit import WriterKind
from chronicle.observability.logging import get_logger

logger = get_logger(__name__)

# BatchWriteItem accepts at most 25 put requests
BATCH_LIMIT = 25


class DynamoDBWriter(BackendWriter):
    """Writes one item per audit record, keyed by the record id.

    boto3 is synchronous, so calls run in a worker thread to keep the
    event loop free.
    """

    kind = WriterKind.DYNAMODB

    def __init__(
        self,
        resource: Any | None = None,
        *,
        ttl_seconds: int | None = None,
        region_name: str | None = None,
        endpoint_url: str | None = None,
    ) -> None:
        """Initialize the writer.

        Args:
            resource: boto3 DynamoDB service resource; created lazily if None
            ttl_seconds: Attach a ``ttl`` attribute expiring items after this long
            region_name: AWS region for the lazily created resource
            endpoint_url: Endpoint override for the lazily created resource
        """
        self._resource = resource
        self._ttl_seconds = ttl_seconds
        self._region_name = region_name
        self._endpoint_url = endpoint_url

    def _get_resource(self) -> Any:
        if self._resource is None:
            try:
                import boto3

                self._resource = boto3.resource(
                    "dynamodb",
                    region_name=self._region_name,
                    endpoint_url=self._endpoint_url,
                )
            except Exception as e:
                raise WriterUnavailableError(
                    f"DynamoDB client unavailable: {e}", cause=e
                ) from e
        return self._resource

    def build_item(self, record: AuditLog) -> dict[str, Any]:
        """Build the DynamoDB item for a record.

        Numbers become ``Decimal`` since boto3 rejects Python floats.
        """
        item: dict[str, Any] = json.loads(
            json.dumps(record.to_item()), parse_float=Decimal
        )
        if self._ttl_seconds:
            item["ttl"] = int(time.time()) + self._ttl_seconds
        return item

    async def _write(self, record: AuditLog, destination: str) -> None:
        table = self._get_resource().Table(destination)
        await asyncio.to_thread(table.put_item, Item=self.build_item(record))

    async def _write_batch(self, records: Sequence[AuditLog], destination: str) -> None:
        resource = self._get_resource()

        for chunk in chunked(records, BATCH_LIMIT):
            requests = [{"PutRequest": {"Item": self.build_item(r)}} for r in chunk]
            response = await asyncio.to_thread(
                resource.batch_write_item,
                RequestItems={destination: requests},
            )
            unprocessed = (response or {}).get("UnprocessedItems", {}).get(destination, [])
            if unprocessed:
                logger.warning(
                    "dynamodb_unprocessed_audit_items",
                    destination=destination,
                    count=len(unprocessed),
                )
