"""Observability configuration model."""

from typing import Literal

from pydantic import BaseModel, Field


class ObservabilityConfig(BaseModel):
    """Logging and metrics settings."""

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Minimum log level"
    )
    log_format: Literal["json", "console"] = Field(
        default="json", description="json for production, console for development"
    )
    redact_pii: bool = Field(default=True, description="Redact PII in log events")
