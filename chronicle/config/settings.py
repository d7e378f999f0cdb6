"""Root settings model for Chronicle configuration."""

from typing import Any

from pydantic import Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from chronicle.config.models.audit import AuditConfig
from chronicle.config.models.observability import ObservabilityConfig
from chronicle.config.models.storage import StorageConfig

# TOML config consumed by the settings source below
_toml_config: dict[str, Any] = {}


def set_toml_config(config: dict[str, Any]) -> None:
    """Set the TOML configuration to be used by Settings."""
    global _toml_config
    _toml_config = config


class TomlConfigSettingsSource(PydanticBaseSettingsSource):
    """Settings source that reads from the loaded TOML configuration."""

    def get_field_value(
        self, field: Any, field_name: str  # noqa: ARG002
    ) -> tuple[Any, str, bool]:
        value = _toml_config.get(field_name)
        return value, field_name, value is not None

    def __call__(self) -> dict[str, Any]:
        return _toml_config.copy()


class Settings(BaseSettings):
    """Root configuration object.

    Configuration is loaded in this order:
    1. Pydantic model defaults (in code)
    2. config/default.toml (base configuration)
    3. config/{CHRONICLE_ENV}.toml (environment overrides)
    4. CHRONICLE_* environment variables (runtime overrides), e.g.
       CHRONICLE_AUDIT__WRITERS__DYNAMODB__TABLE_PREFIX=myapp
    """

    model_config = SettingsConfigDict(
        env_prefix="CHRONICLE_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = Field(default="chronicle", description="Application name for logging")
    audit: AuditConfig = Field(
        default_factory=AuditConfig, description="Audit engine configuration"
    )
    storage: StorageConfig = Field(
        default_factory=StorageConfig, description="Backend connection settings"
    )
    observability: ObservabilityConfig = Field(
        default_factory=ObservabilityConfig, description="Logging configuration"
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,  # noqa: ARG003
        file_secret_settings: PydanticBaseSettingsSource,  # noqa: ARG003
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Priority: constructor args, then CHRONICLE_* env vars, then TOML."""
        return (
            init_settings,
            env_settings,
            TomlConfigSettingsSource(settings_cls),
        )
