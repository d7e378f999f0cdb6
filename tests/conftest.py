"""Shared test fixtures for the Chronicle test suite."""

import os
from collections.abc import Callable, Generator
from pathlib import Path
from typing import Any

import pytest
import structlog

from chronicle.audit import (
    AuditConfig,
    AuditConfigResolver,
    AuditService,
    WriterRegistry,
    get_audit_service,
)
from chronicle.config import get_settings
from chronicle.config.settings import set_toml_config
from tests.factories import RecordingWriter


@pytest.fixture
def test_config_dir(tmp_path: Path) -> Path:
    """Create a temporary config directory for testing."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    return config_dir


@pytest.fixture
def mock_toml_files(test_config_dir: Path) -> Callable[[dict[str, str]], None]:
    """Factory fixture to create TOML files in the test config directory.

    Usage:
        def test_something(mock_toml_files):
            mock_toml_files({
                "default.toml": "app_name = 'test'",
                "development.toml": "[audit]\\nglobal_enabled = false",
            })
    """

    def _create_toml_files(files: dict[str, str]) -> None:
        for filename, content in files.items():
            (test_config_dir / filename).write_text(content)

    return _create_toml_files


class EnvOverrideContext:
    """Context manager for temporarily setting environment variables."""

    def __init__(self, overrides: dict[str, str]) -> None:
        self.overrides = overrides
        self.original_env: dict[str, str | None] = {}

    def __enter__(self) -> None:
        for key, value in self.overrides.items():
            self.original_env[key] = os.environ.get(key)
            os.environ[key] = value

    def __exit__(self, *args: Any) -> None:
        for key in self.overrides:
            original = self.original_env[key]
            if original is None:
                os.environ.pop(key, None)
            else:
                os.environ[key] = original


@pytest.fixture
def env_override() -> Callable[[dict[str, str]], EnvOverrideContext]:
    """Temporarily set environment variables.

    Usage:
        def test_something(env_override):
            with env_override({"CHRONICLE_ENV": "production"}):
                ...
    """
    return EnvOverrideContext


@pytest.fixture(autouse=True)
def clear_caches() -> Generator[None, None, None]:
    """Reset process-wide caches and log context around each test."""
    get_settings.cache_clear()
    set_toml_config({})
    get_audit_service.cache_clear()
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()
    yield
    get_settings.cache_clear()
    set_toml_config({})
    get_audit_service.cache_clear()
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()


@pytest.fixture
def resolver() -> AuditConfigResolver:
    """Resolver starting from code defaults, independent of config files."""
    return AuditConfigResolver(AuditConfig(), defaults=AuditConfig)


@pytest.fixture
def recording_writer() -> RecordingWriter:
    return RecordingWriter()


@pytest.fixture
def audit_service(
    resolver: AuditConfigResolver, recording_writer: RecordingWriter
) -> AuditService:
    """Service whose every writer kind resolves to the recording writer."""
    registry = WriterRegistry(lambda: resolver.get_config().writers)
    for kind in ("dynamodb", "postgres", "sqs", "composite", "noop"):
        registry.register(kind, recording_writer)
    return AuditService(resolver=resolver, writers=registry)
