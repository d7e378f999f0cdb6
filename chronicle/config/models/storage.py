"""Storage backend connection models."""

from pydantic import BaseModel, Field


class PostgresConfig(BaseModel):
    """PostgreSQL connection settings for the relational writer.

    The DSN should come from CHRONICLE_STORAGE__POSTGRES__DSN or DATABASE_URL,
    never from a committed config file.
    """

    dsn: str | None = Field(default=None, description="Connection string")
    min_pool_size: int = Field(default=1, gt=0, description="Minimum open connections")
    max_pool_size: int = Field(default=10, gt=0, description="Maximum open connections")
    command_timeout: float = Field(
        default=30.0, gt=0, description="Statement timeout in seconds"
    )


class AWSConfig(BaseModel):
    """AWS client settings shared by the DynamoDB and SQS writers."""

    region_name: str | None = Field(default=None, description="AWS region")
    endpoint_url: str | None = Field(
        default=None, description="Endpoint override (e.g. LocalStack)"
    )


class StorageConfig(BaseModel):
    """Connection settings for all audit backends."""

    postgres: PostgresConfig = Field(default_factory=PostgresConfig)
    aws: AWSConfig = Field(default_factory=AWSConfig)
