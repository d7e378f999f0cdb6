"""Configuration models."""

from chronicle.config.models.audit import (
    DEFAULT_EXCLUDED_FIELDS,
    AuditConfig,
    CompositeWriterConfig,
    DynamoDBWriterConfig,
    EntityAuditConfig,
    PostgresWriterConfig,
    SQSWriterConfig,
    WriterConfig,
    WriterKind,
)
from chronicle.config.models.observability import ObservabilityConfig
from chronicle.config.models.storage import AWSConfig, PostgresConfig, StorageConfig

__all__ = [
    "DEFAULT_EXCLUDED_FIELDS",
    "AWSConfig",
    "AuditConfig",
    "CompositeWriterConfig",
    "DynamoDBWriterConfig",
    "EntityAuditConfig",
    "ObservabilityConfig",
    "PostgresConfig",
    "PostgresWriterConfig",
    "SQSWriterConfig",
    "StorageConfig",
    "WriterConfig",
    "WriterKind",
]
