"""Bootstrap module for wiring Chronicle from configuration.

Loads settings, configures structured logging from the ``observability``
section and returns the process-wide audit service.

Example usage:

    from chronicle.bootstrap import bootstrap

    audit = bootstrap()

    await audit.audit_create(
        entity_type="Invoice",
        entity_id=invoice.id,
        entity=invoice,
        user_id=user_id,
    )
"""

from chronicle.audit.service import AuditService, get_audit_service
from chronicle.config import get_settings
from chronicle.config.loader import get_environment
from chronicle.observability.logging import get_logger, setup_logging

logger = get_logger(__name__)


def bootstrap(log_level: str | None = None) -> AuditService:
    """Configure logging and return the audit service.

    Args:
        log_level: Override for ``observability.log_level``

    Returns:
        The shared AuditService (same instance as ``get_audit_service()``)

    Raises:
        FileNotFoundError: If no config/default.toml can be found
    """
    settings = get_settings()
    observability = settings.observability
    setup_logging(
        level=log_level or observability.log_level,
        format=observability.log_format,
        redact_pii=observability.redact_pii,
    )

    service = get_audit_service()
    config = service.resolver.get_config()
    logger.info(
        "chronicle_bootstrapped",
        app_name=settings.app_name,
        environment=get_environment(),
        global_enabled=config.global_enabled,
        default_writer=config.default_writer.value,
    )
    return service
