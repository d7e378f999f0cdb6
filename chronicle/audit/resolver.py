"""Audit configuration resolution.

``AuditConfigResolver`` owns the current ``AuditConfig`` and answers the
per entity-type questions the service asks on every call: is auditing
enabled, which writer, which destination, which fields to exclude, and
whether to attach snapshots.

Updates are copy-on-write: ``set_config`` and ``configure_entity`` swap in a
new frozen config object, so a config already returned by ``get_config``
never changes underneath its holder.
"""

from collections.abc import Callable, Mapping
from typing import Any

from chronicle.config import get_settings
from chronicle.config.models.audit import (
    AuditConfig,
    EntityAuditConfig,
    WriterConfig,
    WriterKind,
)
from chronicle.observability.logging import get_logger

logger = get_logger(__name__)


def default_audit_config() -> AuditConfig:
    """Build the default config from application settings.

    Falls back to code defaults when no configuration directory exists,
    e.g. in library use without a config/ folder. Settings that fail to
    load or validate are logged at error level and also fall back.
    """
    try:
        return get_settings().audit
    except FileNotFoundError as e:
        logger.debug("audit_config_defaults_used", reason=str(e))
        return AuditConfig()
    except Exception as e:
        logger.error(
            "audit_config_invalid",
            fallback="defaults",
            error=str(e),
            error_type=type(e).__name__,
        )
        return AuditConfig()


def kv_table_name(entity_type: str, prefix: str = "") -> str:
    """``{prefix}-{entity}-audit-logs``, or ``{entity}-audit-logs`` without prefix."""
    name = entity_type.lower()
    return f"{prefix}-{name}-audit-logs" if prefix else f"{name}-audit-logs"


def relational_table_name(entity_type: str) -> str:
    """``{entity}_audit_logs``, the lowercased type name with no prefix."""
    return f"{entity_type.lower()}_audit_logs"


class AuditConfigResolver:
    """Holds the audit configuration and resolves effective entity settings.

    Resolution rules:
    - enabled: False when globally disabled, else the entity flag, else True
    - writer: the entity override, else the default writer
    - table name: the entity override verbatim, else the writer's naming convention
    - excluded fields: union of global defaults and entity additions
    - snapshots: the entity flag, else True
    """

    def __init__(
        self,
        config: AuditConfig | None = None,
        defaults: Callable[[], AuditConfig] = default_audit_config,
    ) -> None:
        """Initialize the resolver.

        Args:
            config: Initial configuration; built lazily from ``defaults`` if None
            defaults: Factory used on first access and after ``reset_config``
        """
        self._config = config
        self._defaults = defaults

    def get_config(self) -> AuditConfig:
        """Return the current configuration, initialising defaults on first use."""
        config = self._config
        if config is None:
            config = self._defaults()
            self._config = config
        return config

    def set_config(
        self,
        partial: AuditConfig | Mapping[str, Any] | None = None,
        **overrides: Any,
    ) -> AuditConfig:
        """Merge a partial configuration into the current one.

        Top-level keys replace the current values; ``entities`` is merged
        per entity type and ``writers`` per backend.

        Args:
            partial: Keys to merge (a mapping, or a full AuditConfig)
            **overrides: Additional keys, merged after ``partial``

        Returns:
            The new configuration
        """
        if isinstance(partial, AuditConfig):
            updates: dict[str, Any] = {
                key: getattr(partial, key) for key in partial.model_fields_set
            }
        else:
            updates = dict(partial or {})
        updates.update(overrides)

        current = self.get_config()
        data = current.model_dump()

        for key, value in updates.items():
            if key == "entities":
                entities = dict(current.entities)
                for entity_type, entity_config in (value or {}).items():
                    entities[entity_type] = EntityAuditConfig.model_validate(entity_config)
                data["entities"] = entities
            elif key == "writers":
                data["writers"] = self._merge_writers(current.writers, value or {})
            else:
                data[key] = value

        config = AuditConfig.model_validate(data)
        self._config = config
        logger.debug("audit_config_updated", keys=sorted(updates))
        return config

    @staticmethod
    def _merge_writers(
        current: WriterConfig, value: WriterConfig | Mapping[str, Any]
    ) -> WriterConfig:
        if isinstance(value, WriterConfig):
            updates = {key: getattr(value, key) for key in value.model_fields_set}
        else:
            updates = dict(value)
        merged = current.model_dump()
        merged.update(updates)
        return WriterConfig.model_validate(merged)

    def configure_entity(
        self, entity_type: str, config: EntityAuditConfig | Mapping[str, Any]
    ) -> AuditConfig:
        """Replace one entity type's override as a whole.

        Args:
            entity_type: Entity type name, e.g. "Invoice"
            config: Full override for that type (not merged field by field)

        Returns:
            The new configuration
        """
        current = self.get_config()
        entities = dict(current.entities)
        entities[entity_type] = EntityAuditConfig.model_validate(config)
        new_config = current.model_copy(update={"entities": entities})
        self._config = new_config
        logger.debug("audit_entity_configured", entity_type=entity_type)
        return new_config

    def reset_config(self) -> None:
        """Drop the current configuration; the next access rebuilds defaults.

        Intended for test isolation.
        """
        self._config = None

    def _entity(self, entity_type: str) -> EntityAuditConfig | None:
        return self.get_config().entities.get(entity_type)

    def is_enabled(self, entity_type: str) -> bool:
        """Check if auditing is enabled for an entity type."""
        if not self.get_config().global_enabled:
            return False
        entity = self._entity(entity_type)
        return entity.enabled if entity is not None else True

    def writer_for(self, entity_type: str) -> WriterKind:
        """Get the writer kind for an entity type."""
        entity = self._entity(entity_type)
        if entity is not None and entity.writer is not None:
            return entity.writer
        return self.get_config().default_writer

    def table_name_for(self, entity_type: str, writer: WriterKind | str) -> str:
        """Get the destination name for an entity type and writer kind.

        Naming conventions (unless the entity sets ``table_name``):
        - dynamodb: ``{prefix}-{entity}-audit-logs``, e.g. ``myapp-invoice-audit-logs``
        - postgres: ``{entity}_audit_logs``, e.g. ``invoice_audit_logs``
        - sqs, composite, noop: the dynamodb convention
        """
        config = self.get_config()
        entity = config.entities.get(entity_type)
        if entity is not None and entity.table_name:
            return entity.table_name

        if WriterKind(writer) is WriterKind.POSTGRES:
            return relational_table_name(entity_type)
        return kv_table_name(entity_type, config.writers.dynamodb.table_prefix)

    def excluded_fields_for(self, entity_type: str) -> list[str]:
        """Deduplicated union of default and entity-specific excluded fields."""
        entity = self._entity(entity_type)
        fields = list(self.get_config().default_exclude_fields)
        if entity is not None:
            fields.extend(entity.exclude_fields)
        return list(dict.fromkeys(fields))

    def include_snapshots_for(self, entity_type: str) -> bool:
        """Check if before/after snapshots should be attached."""
        entity = self._entity(entity_type)
        if entity is not None and entity.include_snapshots is not None:
            return entity.include_snapshots
        return True
