"""Writer construction and caching.

``create_writer`` maps a ``WriterKind`` to a configured writer instance;
``WriterRegistry`` builds each kind once and reuses it for the process
lifetime.
"""

from collections.abc import Callable
from typing import Any

from chronicle.audit.errors import UnknownWriterError
from chronicle.audit.writers import (
    AuditWriter,
    CompositeWriter,
    DynamoDBWriter,
    NoOpWriter,
    PostgresWriter,
    SQSWriter,
)
from chronicle.config.models.audit import WriterConfig, WriterKind
from chronicle.config.models.storage import StorageConfig
from chronicle.db.pool import PostgresPool
from chronicle.observability.logging import get_logger

logger = get_logger(__name__)


class WriterDependencies:
    """Backend handles shared by every writer a registry builds.

    Handles left as None are created on demand: the PostgreSQL pool from
    ``storage.postgres`` (once, then shared), the boto3 resource/client
    lazily by the writers themselves.
    """

    def __init__(
        self,
        storage: StorageConfig | None = None,
        *,
        pool: PostgresPool | None = None,
        dynamodb_resource: Any | None = None,
        sqs_client: Any | None = None,
    ) -> None:
        self.storage = storage or StorageConfig()
        self.dynamodb_resource = dynamodb_resource
        self.sqs_client = sqs_client
        self._pool = pool

    def postgres_pool(self) -> PostgresPool:
        """Return the shared pool, creating it (unconnected) on first use."""
        if self._pool is None:
            postgres = self.storage.postgres
            self._pool = PostgresPool(
                dsn=postgres.dsn,
                min_size=postgres.min_pool_size,
                max_size=postgres.max_pool_size,
                command_timeout=postgres.command_timeout,
            )
        return self._pool


def create_writer(
    kind: WriterKind | str,
    config: WriterConfig,
    dependencies: WriterDependencies | None = None,
) -> AuditWriter:
    """Create a writer for the given kind.

    A queue writer without a queue URL degrades to the no-op writer. The
    composite writer is built from ``config.composite.writers``, leaving
    out the queue child when no queue URL is configured.

    Raises:
        UnknownWriterError: If the kind is not a known writer
    """
    deps = dependencies or WriterDependencies()
    aws = deps.storage.aws

    try:
        kind = WriterKind(kind)
    except ValueError as e:
        raise UnknownWriterError(f"Unsupported audit writer: {kind}", cause=e) from e

    if kind is WriterKind.DYNAMODB:
        return DynamoDBWriter(
            deps.dynamodb_resource,
            ttl_seconds=config.dynamodb.ttl_seconds,
            region_name=aws.region_name,
            endpoint_url=aws.endpoint_url,
        )

    elif kind is WriterKind.POSTGRES:
        return PostgresWriter(
            deps.postgres_pool(),
            schema_name=config.postgres.schema_name,
            batch_size=config.postgres.batch_size,
        )

    elif kind is WriterKind.SQS:
        if not config.sqs.queue_url:
            logger.warning("sqs_writer_without_queue_url", fallback="noop")
            return NoOpWriter()
        return SQSWriter(
            config.sqs.queue_url,
            message_group_id=config.sqs.message_group_id,
            client=deps.sqs_client,
            region_name=aws.region_name,
            endpoint_url=aws.endpoint_url,
        )

    elif kind is WriterKind.COMPOSITE:
        children = [
            create_writer(child, config, deps)
            for child in config.composite.writers
            if child is not WriterKind.SQS or config.sqs.queue_url
        ]
        logger.info(
            "composite_writer_created",
            writers=[child.type for child in children],
        )
        return CompositeWriter(children)

    # WriterKind.NOOP
    return NoOpWriter()


class WriterRegistry:
    """Lazily built, per-kind cache of writer instances.

    Concurrent first use of a kind can build it twice; the last one stored
    wins and both are equivalent.
    """

    def __init__(
        self,
        config_provider: Callable[[], WriterConfig],
        dependencies: WriterDependencies | None = None,
    ) -> None:
        """Initialize the registry.

        Args:
            config_provider: Returns the current writer settings when a writer is built
            dependencies: Backend handles passed to created writers
        """
        self._config_provider = config_provider
        self._dependencies = dependencies or WriterDependencies()
        self._writers: dict[WriterKind, AuditWriter] = {}

    def get(self, kind: WriterKind | str) -> AuditWriter:
        """Get the writer for a kind, building it on first use."""
        kind = WriterKind(kind)
        writer = self._writers.get(kind)
        if writer is None:
            writer = create_writer(kind, self._config_provider(), self._dependencies)
            self._writers[kind] = writer
            logger.debug("audit_writer_created", writer=kind.value)
        return writer

    def register(self, kind: WriterKind | str, writer: AuditWriter) -> None:
        """Use ``writer`` for ``kind`` instead of building one."""
        self._writers[WriterKind(kind)] = writer

    def clear(self) -> None:
        """Drop all cached writers. Intended for test isolation."""
        self._writers.clear()

    def __contains__(self, kind: object) -> bool:
        return kind in self._writers
