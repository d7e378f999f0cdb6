"""AuditLog model: the persisted unit of the audit trail."""

from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from chronicle.audit.models.change import ChangeRecord, to_jsonable


def utc_now() -> datetime:
    """Return current UTC time."""
    return datetime.now(UTC)


class AuditOperation(str, Enum):
    """Audited operation kinds."""

    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


class AuditMetadata(BaseModel):
    """Correlation context attached to an audit record.

    Unknown keys are kept, so callers can attach anything useful for
    tracing (job ids, tenant ids, ...).
    """

    model_config = ConfigDict(
        frozen=True,
        extra="allow",
        alias_generator=to_camel,
        populate_by_name=True,
    )

    request_id: str | None = Field(default=None, description="Request id for tracing")
    ip_address: str | None = Field(default=None, description="Client IP address")
    user_agent: str | None = Field(default=None, description="Client user agent")
    source: str | None = Field(
        default=None, description='Origin of the change ("api", "batch-job", ...)'
    )

    def to_dict(self) -> dict[str, Any]:
        """Serialize with camelCase keys, dropping unset fields."""
        return to_jsonable(self.model_dump(by_alias=True, exclude_none=True))


class AuditLog(BaseModel):
    """Immutable record of one CREATE/UPDATE/DELETE on a business entity.

    The entity type is deliberately not a field: it is encoded in the
    destination table or stream name the record is written to.
    """

    model_config = ConfigDict(frozen=True)

    id: UUID = Field(default_factory=uuid4, description="Unique identifier")
    entity_id: str = Field(..., description="Business entity identifier")
    operation: AuditOperation = Field(..., description="Operation kind")
    user_id: str = Field(default="system", description="Acting user")
    timestamp: datetime = Field(default_factory=utc_now, description="Recording time")
    changes: tuple[ChangeRecord, ...] = Field(
        default=(), description="Field-level changes in traversal order"
    )
    snapshot_before: dict[str, Any] | None = Field(
        default=None, description="Entity state before the operation"
    )
    snapshot_after: dict[str, Any] | None = Field(
        default=None, description="Entity state after the operation"
    )
    metadata: AuditMetadata | None = Field(default=None, description="Correlation context")

    def to_item(self) -> dict[str, Any]:
        """Serialize to the camelCase document stored by KV and queue backends."""
        return {
            "id": str(self.id),
            "entityId": self.entity_id,
            "operation": self.operation.value,
            "userId": self.user_id,
            "timestamp": self.timestamp.isoformat(),
            "changes": [change.to_dict() for change in self.changes],
            "snapshotBefore": to_jsonable(self.snapshot_before),
            "snapshotAfter": to_jsonable(self.snapshot_after),
            "metadata": self.metadata.to_dict() if self.metadata else None,
        }
