"""Decoupled audit logging for domain entities.

Audit data is stored separately from business entities, one destination
per entity type, and auditing never affects the operation being audited.

Example:
    from chronicle.audit import get_audit_service

    await get_audit_service().audit_update(
        entity_type="Invoice",
        entity_id=invoice.id,
        entity_before=existing_invoice,
        entity_after=updated_invoice,
        user_id=user_id,
        metadata={"source": "api"},
    )
"""

from chronicle.audit.change_detection import (
    ChangeDetectionOptions,
    deep_equal,
    detect_changes,
    detect_create_changes,
    detect_delete_changes,
)
from chronicle.audit.errors import AuditError, UnknownWriterError, WriterUnavailableError
from chronicle.audit.factory import WriterDependencies, WriterRegistry, create_writer
from chronicle.audit.models import (
    ABSENT,
    AuditLog,
    AuditMetadata,
    AuditOperation,
    ChangeRecord,
)
from chronicle.audit.resolver import (
    AuditConfigResolver,
    default_audit_config,
    kv_table_name,
    relational_table_name,
)
from chronicle.audit.service import AuditService, get_audit_service, to_snapshot
from chronicle.audit.writers import (
    AuditWriter,
    CompositeWriter,
    DynamoDBWriter,
    NoOpWriter,
    PostgresWriter,
    SQSWriter,
    WriteResult,
)
from chronicle.config.models.audit import (
    DEFAULT_EXCLUDED_FIELDS,
    AuditConfig,
    EntityAuditConfig,
    WriterConfig,
    WriterKind,
)

__all__ = [
    "ABSENT",
    "DEFAULT_EXCLUDED_FIELDS",
    "AuditConfig",
    "AuditConfigResolver",
    "AuditError",
    "AuditLog",
    "AuditMetadata",
    "AuditOperation",
    "AuditService",
    "AuditWriter",
    "ChangeDetectionOptions",
    "ChangeRecord",
    "CompositeWriter",
    "DynamoDBWriter",
    "EntityAuditConfig",
    "NoOpWriter",
    "PostgresWriter",
    "SQSWriter",
    "UnknownWriterError",
    "WriteResult",
    "WriterConfig",
    "WriterDependencies",
    "WriterKind",
    "WriterRegistry",
    "WriterUnavailableError",
    "create_writer",
    "deep_equal",
    "default_audit_config",
    "detect_changes",
    "detect_create_changes",
    "detect_delete_changes",
    "get_audit_service",
    "kv_table_name",
    "relational_table_name",
    "to_snapshot",
]
