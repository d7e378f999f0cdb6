"""Audit service: the entry point business services call after a write.

For each CREATE/UPDATE/DELETE it resolves the entity type's settings,
detects changes, builds an ``AuditLog`` and hands it to the resolved
writer. Audit failures never fail the business operation: every error is
logged here and the call returns normally.

Usage:
    from chronicle.audit import get_audit_service

    await get_audit_service().audit_update(
        entity_type="Invoice",
        entity_id=invoice.id,
        entity_before=existing,
        entity_after=updated,
        user_id=current_user_id,
        metadata={"source": "api"},
    )
"""

import copy
import dataclasses
from collections.abc import Mapping
from functools import lru_cache
from typing import Any

from pydantic import BaseModel

from chronicle.audit.change_detection import (
    ChangeDetectionOptions,
    detect_changes,
    detect_create_changes,
    detect_delete_changes,
)
from chronicle.audit.factory import WriterDependencies, WriterRegistry
from chronicle.audit.models import AuditLog, AuditMetadata, AuditOperation
from chronicle.audit.resolver import AuditConfigResolver
from chronicle.config import get_settings
from chronicle.config.models.storage import StorageConfig
from chronicle.observability.logging import get_logger, get_request_id
from chronicle.observability.metrics import AUDIT_RECORDS, AUDIT_SKIPPED

logger = get_logger(__name__)

Entity = Mapping[str, Any] | BaseModel
Metadata = AuditMetadata | Mapping[str, Any] | None


def to_snapshot(entity: Entity) -> dict[str, Any]:
    """Convert an entity to a plain dict snapshot.

    Accepts mappings, pydantic models and dataclass instances.

    Raises:
        TypeError: If the entity is none of those
    """
    if isinstance(entity, BaseModel):
        return entity.model_dump()
    if dataclasses.is_dataclass(entity) and not isinstance(entity, type):
        return dataclasses.asdict(entity)
    if isinstance(entity, Mapping):
        return copy.deepcopy(dict(entity))
    raise TypeError(f"Cannot snapshot entity of type {type(entity).__name__}")


class AuditService:
    """Records audit trails for entity operations.

    All public methods are fail-safe: they log errors but never raise.
    """

    def __init__(
        self,
        resolver: AuditConfigResolver | None = None,
        writers: WriterRegistry | None = None,
        dependencies: WriterDependencies | None = None,
    ) -> None:
        """Initialize the service.

        Args:
            resolver: Configuration resolver; a default one is created if None
            writers: Writer registry; built from the resolver's writer settings if None
            dependencies: Backend handles for the default registry
        """
        self._resolver = resolver if resolver is not None else AuditConfigResolver()
        self._writers = writers if writers is not None else WriterRegistry(
            lambda: self._resolver.get_config().writers, dependencies
        )

    @property
    def resolver(self) -> AuditConfigResolver:
        return self._resolver

    @property
    def writers(self) -> WriterRegistry:
        return self._writers

    def clear_writer_cache(self) -> None:
        """Drop cached writers so the next call rebuilds them from config."""
        self._writers.clear()

    async def audit_create(
        self,
        *,
        entity_type: str,
        entity_id: Any,
        entity: Entity,
        user_id: str | None = None,
        metadata: Metadata = None,
    ) -> None:
        """Record a CREATE operation."""
        await self._audit(
            AuditOperation.CREATE,
            entity_type=entity_type,
            entity_id=entity_id,
            before=None,
            after=entity,
            user_id=user_id,
            metadata=metadata,
        )

    async def audit_update(
        self,
        *,
        entity_type: str,
        entity_id: Any,
        entity_before: Entity,
        entity_after: Entity,
        user_id: str | None = None,
        metadata: Metadata = None,
    ) -> None:
        """Record an UPDATE operation; nothing is written if nothing changed."""
        await self._audit(
            AuditOperation.UPDATE,
            entity_type=entity_type,
            entity_id=entity_id,
            before=entity_before,
            after=entity_after,
            user_id=user_id,
            metadata=metadata,
        )

    async def audit_delete(
        self,
        *,
        entity_type: str,
        entity_id: Any,
        entity: Entity,
        user_id: str | None = None,
        metadata: Metadata = None,
    ) -> None:
        """Record a DELETE operation."""
        await self._audit(
            AuditOperation.DELETE,
            entity_type=entity_type,
            entity_id=entity_id,
            before=entity,
            after=None,
            user_id=user_id,
            metadata=metadata,
        )

    async def _audit(
        self,
        operation: AuditOperation,
        *,
        entity_type: str,
        entity_id: Any,
        before: Entity | None,
        after: Entity | None,
        user_id: str | None,
        metadata: Metadata,
    ) -> None:
        destination: str | None = None
        try:
            if not self._resolver.is_enabled(entity_type):
                logger.debug(
                    "audit_skipped",
                    reason="disabled",
                    entity_type=entity_type,
                    entity_id=str(entity_id),
                    operation=operation.value,
                )
                AUDIT_SKIPPED.labels(operation=operation.value, reason="disabled").inc()
                return

            writer_kind = self._resolver.writer_for(entity_type)
            destination = self._resolver.table_name_for(entity_type, writer_kind)
            options = ChangeDetectionOptions(
                exclude_fields=self._resolver.excluded_fields_for(entity_type)
            )
            include_snapshots = self._resolver.include_snapshots_for(entity_type)

            snapshot_before = to_snapshot(before) if before is not None else None
            snapshot_after = to_snapshot(after) if after is not None else None

            if snapshot_before is None:
                changes = detect_create_changes(snapshot_after or {}, options)
            elif snapshot_after is None:
                changes = detect_delete_changes(snapshot_before, options)
            else:
                changes = detect_changes(snapshot_before, snapshot_after, options)
                if not changes:
                    logger.debug(
                        "audit_skipped",
                        reason="no_changes",
                        message="no changes detected",
                        entity_type=entity_type,
                        entity_id=str(entity_id),
                    )
                    AUDIT_SKIPPED.labels(
                        operation=operation.value, reason="no_changes"
                    ).inc()
                    return

            record = AuditLog(
                entity_id=str(entity_id),
                operation=operation,
                user_id=user_id or "system",
                changes=tuple(changes),
                snapshot_before=snapshot_before if include_snapshots else None,
                snapshot_after=snapshot_after if include_snapshots else None,
                metadata=self._build_metadata(metadata),
            )

            writer = self._writers.get(writer_kind)
            result = await writer.write(record, destination)

            AUDIT_RECORDS.labels(
                operation=operation.value,
                writer=writer.type,
                outcome="written" if result.ok else "failed",
            ).inc()
            logger.debug(
                "audit_recorded",
                audit_id=str(record.id),
                operation=operation.value,
                entity_type=entity_type,
                entity_id=record.entity_id,
                destination=destination,
                change_count=len(changes),
                ok=result.ok,
            )
        except Exception as e:
            AUDIT_RECORDS.labels(
                operation=operation.value, writer="unknown", outcome="error"
            ).inc()
            logger.error(
                "audit_failed",
                operation=operation.value,
                entity_type=entity_type,
                entity_id=str(entity_id),
                destination=destination,
                error=str(e),
                error_type=type(e).__name__,
            )

    @staticmethod
    def _build_metadata(metadata: Metadata) -> AuditMetadata | None:
        """Normalize metadata, filling request_id from the bound log context."""
        if isinstance(metadata, AuditMetadata):
            result: AuditMetadata | None = metadata
        elif metadata is not None:
            result = AuditMetadata.model_validate(dict(metadata))
        else:
            result = None

        if result is not None and result.request_id:
            return result

        request_id = get_request_id()
        if request_id is None:
            return result
        if result is None:
            return AuditMetadata(request_id=request_id)
        return result.model_copy(update={"request_id": request_id})


def default_dependencies() -> WriterDependencies:
    """Backend handles built from the ``storage`` settings.

    Falls back to code defaults when no configuration directory exists,
    or (logged at error level) when the settings fail to load or validate.
    """
    try:
        storage = get_settings().storage
    except FileNotFoundError as e:
        logger.debug("storage_config_defaults_used", reason=str(e))
        storage = StorageConfig()
    except Exception as e:
        logger.error(
            "storage_config_invalid",
            fallback="defaults",
            error=str(e),
            error_type=type(e).__name__,
        )
        storage = StorageConfig()
    return WriterDependencies(storage)


@lru_cache(maxsize=1)
def get_audit_service() -> AuditService:
    """Get the process-wide audit service.

    Call ``get_audit_service.cache_clear()`` to rebuild it (tests).
    """
    return AuditService(dependencies=default_dependencies())
