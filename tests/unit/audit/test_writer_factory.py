"""Tests for writer construction and the writer registry."""

from unittest.mock import MagicMock

import pytest
from structlog.testing import capture_logs

from chronicle.audit.errors import UnknownWriterError
from chronicle.audit.factory import WriterDependencies, WriterRegistry, create_writer
from chronicle.audit.writers import (
    CompositeWriter,
    DynamoDBWriter,
    NoOpWriter,
    PostgresWriter,
    SQSWriter,
)
from chronicle.config.models.audit import WriterConfig, WriterKind
from chronicle.config.models.storage import StorageConfig
from tests.factories import RecordingWriter

QUEUE_URL = "https://sqs.us-east-1.amazonaws.com/123/audit"


@pytest.fixture
def deps() -> WriterDependencies:
    return WriterDependencies(dynamodb_resource=MagicMock(), sqs_client=MagicMock())


def with_queue(**sqs: str) -> WriterConfig:
    return WriterConfig.model_validate({"sqs": {"queue_url": QUEUE_URL, **sqs}})


class TestCreateWriter:
    """Tests for create_writer."""

    def test_dynamodb(self, deps: WriterDependencies) -> None:
        assert isinstance(create_writer("dynamodb", WriterConfig(), deps), DynamoDBWriter)

    def test_postgres_uses_shared_pool(self) -> None:
        deps = WriterDependencies(StorageConfig())
        config = WriterConfig.model_validate({"postgres": {"schema_name": "audit"}})

        first = create_writer(WriterKind.POSTGRES, config, deps)
        second = create_writer(WriterKind.POSTGRES, config, deps)

        assert isinstance(first, PostgresWriter)
        assert first.schema_name == "audit"
        assert deps.postgres_pool() is deps.postgres_pool()
        assert first._pool is second._pool

    def test_sqs_with_queue_url(self, deps: WriterDependencies) -> None:
        writer = create_writer("sqs", with_queue(), deps)
        assert isinstance(writer, SQSWriter)
        assert writer.queue_url == QUEUE_URL

    def test_sqs_without_queue_url_degrades_to_noop(self, deps: WriterDependencies) -> None:
        with capture_logs() as logs:
            writer = create_writer("sqs", WriterConfig(), deps)
        assert isinstance(writer, NoOpWriter)
        assert logs[0]["event"] == "sqs_writer_without_queue_url"
        assert logs[0]["log_level"] == "warning"

    def test_composite_with_queue(self, deps: WriterDependencies) -> None:
        writer = create_writer("composite", with_queue(), deps)
        assert isinstance(writer, CompositeWriter)
        assert [child.type for child in writer.writers] == ["dynamodb", "sqs"]

    def test_composite_without_queue_is_kv_only(self, deps: WriterDependencies) -> None:
        writer = create_writer("composite", WriterConfig(), deps)
        assert isinstance(writer, CompositeWriter)
        assert [child.type for child in writer.writers] == ["dynamodb"]

    def test_composite_children_configurable(self, deps: WriterDependencies) -> None:
        config = WriterConfig.model_validate({"composite": {"writers": ["postgres", "noop"]}})
        writer = create_writer("composite", config, deps)
        assert [child.type for child in writer.writers] == ["postgres", "noop"]  # type: ignore[attr-defined]

    def test_nested_composite_rejected(self) -> None:
        with pytest.raises(ValueError):
            WriterConfig.model_validate({"composite": {"writers": ["composite"]}})

    def test_noop(self, deps: WriterDependencies) -> None:
        assert isinstance(create_writer("noop", WriterConfig(), deps), NoOpWriter)

    def test_unknown_kind(self, deps: WriterDependencies) -> None:
        with pytest.raises(UnknownWriterError, match="kafka"):
            create_writer("kafka", WriterConfig(), deps)


class TestWriterRegistry:
    """Tests for WriterRegistry."""

    def test_caches_per_kind(self, deps: WriterDependencies) -> None:
        registry = WriterRegistry(WriterConfig, deps)
        assert registry.get("dynamodb") is registry.get(WriterKind.DYNAMODB)
        assert WriterKind.DYNAMODB in registry

    def test_reads_config_when_building(self, deps: WriterDependencies) -> None:
        configs = [WriterConfig(), with_queue()]
        registry = WriterRegistry(lambda: configs[-1], deps)
        assert isinstance(registry.get("sqs"), SQSWriter)

    def test_clear_rebuilds(self, deps: WriterDependencies) -> None:
        registry = WriterRegistry(WriterConfig, deps)
        first = registry.get("noop")
        registry.clear()
        assert WriterKind.NOOP not in registry
        assert registry.get("noop") is not first

    def test_register_overrides(self, deps: WriterDependencies) -> None:
        registry = WriterRegistry(WriterConfig, deps)
        writer = RecordingWriter()
        registry.register("postgres", writer)
        assert registry.get("postgres") is writer

    def test_unknown_kind(self, deps: WriterDependencies) -> None:
        registry = WriterRegistry(WriterConfig, deps)
        with pytest.raises(ValueError):
            registry.get("kafka")
