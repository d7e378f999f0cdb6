"""Audit configuration models.

All models are frozen: updates go through ``AuditConfigResolver``, which
builds new instances instead of mutating ones already handed out.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

# BaseEntity bookkeeping fields, in both camelCase and snake_case spellings
DEFAULT_EXCLUDED_FIELDS: tuple[str, ...] = (
    "version",
    "updatedAt",
    "createdAt",
    "active",
    "updated_at",
    "created_at",
)


class WriterKind(str, Enum):
    """Audit writer backends."""

    DYNAMODB = "dynamodb"
    POSTGRES = "postgres"
    SQS = "sqs"
    COMPOSITE = "composite"
    NOOP = "noop"


class EntityAuditConfig(BaseModel):
    """Per entity-type audit override."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = Field(default=True, description="Audit this entity type")
    writer: WriterKind | None = Field(
        default=None, description="Writer override (default writer if unset)"
    )
    table_name: str | None = Field(
        default=None, description="Destination override, used verbatim"
    )
    exclude_fields: tuple[str, ...] = Field(
        default=(), description="Fields excluded in addition to the defaults"
    )
    include_snapshots: bool | None = Field(
        default=None, description="Attach before/after snapshots (default true)"
    )


class DynamoDBWriterConfig(BaseModel):
    """DynamoDB writer settings."""

    model_config = ConfigDict(frozen=True)

    table_prefix: str = Field(
        default="",
        description='Table prefix ("myapp" -> "myapp-invoice-audit-logs")',
    )
    ttl_seconds: int | None = Field(
        default=None,
        gt=0,
        description="Expire audit items this many seconds after writing",
    )


class PostgresWriterConfig(BaseModel):
    """PostgreSQL writer settings."""

    model_config = ConfigDict(frozen=True)

    schema_name: str = Field(default="public", description="Schema holding audit tables")
    batch_size: int = Field(
        default=500,
        gt=0,
        le=3000,
        description="Rows per multi-row INSERT statement",
    )


class SQSWriterConfig(BaseModel):
    """SQS writer settings."""

    model_config = ConfigDict(frozen=True)

    queue_url: str | None = Field(default=None, description="Target queue URL")
    message_group_id: str | None = Field(
        default=None, description="Message group id; enables FIFO semantics"
    )


class CompositeWriterConfig(BaseModel):
    """Composite writer settings."""

    model_config = ConfigDict(frozen=True)

    writers: tuple[WriterKind, ...] = Field(
        default=(WriterKind.DYNAMODB, WriterKind.SQS),
        description="Child writers, in dispatch order",
    )

    @field_validator("writers")
    @classmethod
    def no_nested_composite(cls, value: tuple[WriterKind, ...]) -> tuple[WriterKind, ...]:
        if WriterKind.COMPOSITE in value:
            raise ValueError("composite writer cannot contain itself")
        return value


class WriterConfig(BaseModel):
    """Backend-specific writer settings."""

    model_config = ConfigDict(frozen=True)

    dynamodb: DynamoDBWriterConfig = Field(default_factory=DynamoDBWriterConfig)
    postgres: PostgresWriterConfig = Field(default_factory=PostgresWriterConfig)
    sqs: SQSWriterConfig = Field(default_factory=SQSWriterConfig)
    composite: CompositeWriterConfig = Field(default_factory=CompositeWriterConfig)


class AuditConfig(BaseModel):
    """Global audit configuration."""

    model_config = ConfigDict(frozen=True)

    global_enabled: bool = Field(default=True, description="Kill switch for all auditing")
    default_writer: WriterKind = Field(
        default=WriterKind.DYNAMODB, description="Writer used when no override is set"
    )
    default_exclude_fields: tuple[str, ...] = Field(
        default=DEFAULT_EXCLUDED_FIELDS,
        description="Fields stripped from every audit",
    )
    entities: dict[str, EntityAuditConfig] = Field(
        default_factory=dict, description="Per entity-type overrides"
    )
    writers: WriterConfig = Field(default_factory=WriterConfig)
