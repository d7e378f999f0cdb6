"""Tests for AuditService."""

from dataclasses import dataclass
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
import structlog
from pydantic import BaseModel
from structlog.testing import capture_logs

from chronicle.audit import (
    AuditConfigResolver,
    AuditMetadata,
    AuditOperation,
    AuditService,
    WriterRegistry,
    get_audit_service,
    to_snapshot,
)
from chronicle.audit.models import ABSENT
from tests.factories import FailingWriter, RaisingWriter, RecordingWriter


class Invoice(BaseModel):
    id: str
    amount: float
    status: str


@dataclass
class Customer:
    id: str
    name: str


class TestToSnapshot:
    """Tests for to_snapshot."""

    def test_mapping_is_copied(self) -> None:
        entity = {"address": {"city": "NYC"}}
        snapshot = to_snapshot(entity)
        snapshot["address"]["city"] = "LA"
        assert entity["address"]["city"] == "NYC"

    def test_pydantic_model(self) -> None:
        assert to_snapshot(Invoice(id="1", amount=10.0, status="draft")) == {
            "id": "1",
            "amount": 10.0,
            "status": "draft",
        }

    def test_dataclass(self) -> None:
        assert to_snapshot(Customer(id="c1", name="Ann")) == {"id": "c1", "name": "Ann"}

    def test_unsupported_type(self) -> None:
        with pytest.raises(TypeError):
            to_snapshot(42)  # type: ignore[arg-type]


class TestAuditUpdate:
    """Tests for audit_update."""

    @pytest.mark.asyncio
    async def test_writes_one_record(
        self, audit_service: AuditService, recording_writer: RecordingWriter
    ) -> None:
        await audit_service.audit_update(
            entity_type="Invoice",
            entity_id="inv-1",
            entity_before={"name": "John", "email": "john@x.com"},
            entity_after={"name": "Jane", "email": "john@x.com"},
            user_id="user-7",
        )

        assert len(recording_writer.writes) == 1
        record, destination = recording_writer.writes[0]
        assert destination == "invoice-audit-logs"
        assert record.operation == AuditOperation.UPDATE
        assert record.entity_id == "inv-1"
        assert record.user_id == "user-7"
        assert [c.path for c in record.changes] == ["name"]
        assert record.snapshot_before == {"name": "John", "email": "john@x.com"}
        assert record.snapshot_after == {"name": "Jane", "email": "john@x.com"}

    @pytest.mark.asyncio
    async def test_no_changes_writes_nothing(
        self, audit_service: AuditService, recording_writer: RecordingWriter
    ) -> None:
        with capture_logs() as logs:
            await audit_service.audit_update(
                entity_type="Invoice",
                entity_id="inv-1",
                entity_before={"name": "John", "version": 1, "updatedAt": "a"},
                entity_after={"name": "John", "version": 2, "updatedAt": "b"},
            )

        assert recording_writer.writes == []
        skipped = next(log for log in logs if log["event"] == "audit_skipped")
        assert skipped["reason"] == "no_changes"
        assert skipped["log_level"] == "debug"

    @pytest.mark.asyncio
    async def test_added_array_item(
        self, audit_service: AuditService, recording_writer: RecordingWriter
    ) -> None:
        await audit_service.audit_update(
            entity_type="Order",
            entity_id=5,
            entity_before={"items": ["a", "b"]},
            entity_after={"items": ["a", "b", "c"]},
        )
        record, _ = recording_writer.writes[0]
        assert record.entity_id == "5"
        change = record.changes[0]
        assert change.path == "items[2]"
        assert change.old_value is ABSENT
        assert change.new_value == "c"

    @pytest.mark.asyncio
    async def test_entity_exclusions_applied(
        self,
        audit_service: AuditService,
        resolver: AuditConfigResolver,
        recording_writer: RecordingWriter,
    ) -> None:
        resolver.configure_entity("User", {"exclude_fields": ["lastLogin"]})
        await audit_service.audit_update(
            entity_type="User",
            entity_id="u1",
            entity_before={"lastLogin": "a"},
            entity_after={"lastLogin": "b"},
        )
        assert recording_writer.writes == []

    @pytest.mark.asyncio
    async def test_pydantic_entities(
        self, audit_service: AuditService, recording_writer: RecordingWriter
    ) -> None:
        before = Invoice(id="1", amount=10.0, status="draft")
        after = before.model_copy(update={"status": "sent"})

        await audit_service.audit_update(
            entity_type="Invoice", entity_id=before.id, entity_before=before, entity_after=after
        )

        record, _ = recording_writer.writes[0]
        assert [c.path for c in record.changes] == ["status"]


class TestAuditCreateDelete:
    """Tests for audit_create and audit_delete."""

    @pytest.mark.asyncio
    async def test_create(
        self, audit_service: AuditService, recording_writer: RecordingWriter
    ) -> None:
        await audit_service.audit_create(
            entity_type="Invoice",
            entity_id="inv-1",
            entity={"id": "inv-1", "amount": 10, "version": 1},
        )
        record, _ = recording_writer.writes[0]
        assert record.operation == AuditOperation.CREATE
        assert record.user_id == "system"
        assert [c.path for c in record.changes] == ["id", "amount"]
        assert all(c.old_value is None for c in record.changes)
        assert record.snapshot_before is None
        assert record.snapshot_after == {"id": "inv-1", "amount": 10, "version": 1}

    @pytest.mark.asyncio
    async def test_delete(
        self, audit_service: AuditService, recording_writer: RecordingWriter
    ) -> None:
        await audit_service.audit_delete(
            entity_type="Customer",
            entity_id="c1",
            entity=Customer(id="c1", name="Ann"),
            user_id="admin",
        )
        record, destination = recording_writer.writes[0]
        assert destination == "customer-audit-logs"
        assert record.operation == AuditOperation.DELETE
        assert all(c.new_value is None for c in record.changes)
        assert record.snapshot_before == {"id": "c1", "name": "Ann"}
        assert record.snapshot_after is None

    @pytest.mark.asyncio
    async def test_empty_create_still_written(
        self, audit_service: AuditService, recording_writer: RecordingWriter
    ) -> None:
        await audit_service.audit_create(entity_type="Tag", entity_id="t1", entity={})
        assert len(recording_writer.writes) == 1
        assert recording_writer.writes[0][0].changes == ()


class TestResolution:
    """Tests for config-driven routing."""

    @pytest.mark.asyncio
    async def test_globally_disabled_touches_no_writer(
        self, resolver: AuditConfigResolver, recording_writer: RecordingWriter
    ) -> None:
        registry = MagicMock(spec=WriterRegistry)
        service = AuditService(resolver=resolver, writers=registry)
        resolver.set_config(global_enabled=False)

        with (
            patch("chronicle.audit.service.detect_create_changes") as create_spy,
            patch("chronicle.audit.service.detect_changes") as update_spy,
            patch("chronicle.audit.service.detect_delete_changes") as delete_spy,
        ):
            await service.audit_create(entity_type="Invoice", entity_id="1", entity={"a": 1})
            await service.audit_update(
                entity_type="Invoice", entity_id="1", entity_before={"a": 1}, entity_after={"a": 2}
            )
            await service.audit_delete(entity_type="Invoice", entity_id="1", entity={"a": 1})

        registry.get.assert_not_called()
        create_spy.assert_not_called()
        update_spy.assert_not_called()
        delete_spy.assert_not_called()

    @pytest.mark.asyncio
    async def test_entity_disabled(
        self,
        audit_service: AuditService,
        resolver: AuditConfigResolver,
        recording_writer: RecordingWriter,
    ) -> None:
        resolver.configure_entity("Session", {"enabled": False})
        with capture_logs() as logs:
            await audit_service.audit_create(entity_type="Session", entity_id="s", entity={"a": 1})
        assert recording_writer.writes == []
        assert logs[0]["reason"] == "disabled"

    @pytest.mark.asyncio
    async def test_postgres_destination(
        self, resolver: AuditConfigResolver, recording_writer: RecordingWriter
    ) -> None:
        postgres_writer = RecordingWriter()
        registry = WriterRegistry(lambda: resolver.get_config().writers)
        registry.register("postgres", postgres_writer)
        registry.register("dynamodb", recording_writer)
        service = AuditService(resolver=resolver, writers=registry)
        resolver.configure_entity("Invoice", {"writer": "postgres"})

        await service.audit_create(entity_type="Invoice", entity_id="1", entity={"a": 1})

        assert recording_writer.writes == []
        assert postgres_writer.writes[0][1] == "invoice_audit_logs"

    @pytest.mark.asyncio
    async def test_prefixed_destination(
        self,
        audit_service: AuditService,
        resolver: AuditConfigResolver,
        recording_writer: RecordingWriter,
    ) -> None:
        resolver.set_config(writers={"dynamodb": {"table_prefix": "myapp"}})
        await audit_service.audit_create(entity_type="Invoice", entity_id="1", entity={"a": 1})
        assert recording_writer.writes[0][1] == "myapp-invoice-audit-logs"

    @pytest.mark.asyncio
    async def test_snapshots_disabled(
        self,
        audit_service: AuditService,
        resolver: AuditConfigResolver,
        recording_writer: RecordingWriter,
    ) -> None:
        resolver.configure_entity("Invoice", {"include_snapshots": False})
        await audit_service.audit_update(
            entity_type="Invoice",
            entity_id="1",
            entity_before={"a": 1},
            entity_after={"a": 2},
        )
        record, _ = recording_writer.writes[0]
        assert record.snapshot_before is None
        assert record.snapshot_after is None
        assert len(record.changes) == 1


class TestFailureContainment:
    """Tests that audit failures never reach the caller."""

    @pytest.mark.asyncio
    async def test_raising_writer_is_contained(self, resolver: AuditConfigResolver) -> None:
        registry = WriterRegistry(lambda: resolver.get_config().writers)
        writer = RaisingWriter()
        registry.register("dynamodb", writer)
        service = AuditService(resolver=resolver, writers=registry)

        with capture_logs() as logs:
            await service.audit_update(
                entity_type="Invoice",
                entity_id="inv-1",
                entity_before={"a": 1},
                entity_after={"a": 2},
            )

        assert len(writer.writes) == 1
        failure = next(log for log in logs if log["event"] == "audit_failed")
        assert failure["log_level"] == "error"
        assert failure["entity_id"] == "inv-1"
        assert failure["entity_type"] == "Invoice"
        assert failure["destination"] == "invoice-audit-logs"
        assert failure["operation"] == "UPDATE"
        assert failure["error"] == "backend down"

    @pytest.mark.asyncio
    async def test_failed_result_is_not_raised(self, resolver: AuditConfigResolver) -> None:
        registry = WriterRegistry(lambda: resolver.get_config().writers)
        writer = FailingWriter()
        registry.register("dynamodb", writer)
        service = AuditService(resolver=resolver, writers=registry)

        with capture_logs() as logs:
            await service.audit_create(entity_type="Invoice", entity_id="1", entity={"a": 1})

        recorded = next(log for log in logs if log["event"] == "audit_recorded")
        assert recorded["ok"] is False

    @pytest.mark.asyncio
    async def test_unsnapshotable_entity_is_contained(
        self, audit_service: AuditService, recording_writer: RecordingWriter
    ) -> None:
        with capture_logs() as logs:
            await audit_service.audit_create(
                entity_type="Invoice", entity_id="1", entity=object()  # type: ignore[arg-type]
            )
        assert recording_writer.writes == []
        failure = next(log for log in logs if log["event"] == "audit_failed")
        assert failure["error_type"] == "TypeError"
        assert failure["destination"] == "invoice-audit-logs"


class TestMetadata:
    """Tests for metadata handling."""

    @pytest.mark.asyncio
    async def test_mapping_metadata(
        self, audit_service: AuditService, recording_writer: RecordingWriter
    ) -> None:
        await audit_service.audit_create(
            entity_type="Invoice",
            entity_id="1",
            entity={"a": 1},
            metadata={"source": "api", "ipAddress": "10.0.0.1", "jobId": "j1"},
        )
        metadata = recording_writer.writes[0][0].metadata
        assert metadata is not None
        assert metadata.to_dict() == {"ipAddress": "10.0.0.1", "source": "api", "jobId": "j1"}

    @pytest.mark.asyncio
    async def test_request_id_from_log_context(
        self, audit_service: AuditService, recording_writer: RecordingWriter
    ) -> None:
        structlog.contextvars.bind_contextvars(request_id="req-42")
        await audit_service.audit_create(entity_type="Invoice", entity_id="1", entity={"a": 1})
        metadata = recording_writer.writes[0][0].metadata
        assert metadata is not None
        assert metadata.request_id == "req-42"

    @pytest.mark.asyncio
    async def test_explicit_request_id_wins(
        self, audit_service: AuditService, recording_writer: RecordingWriter
    ) -> None:
        structlog.contextvars.bind_contextvars(request_id="req-42")
        await audit_service.audit_create(
            entity_type="Invoice",
            entity_id="1",
            entity={"a": 1},
            metadata=AuditMetadata(request_id="explicit"),
        )
        metadata = recording_writer.writes[0][0].metadata
        assert metadata is not None
        assert metadata.request_id == "explicit"

    @pytest.mark.asyncio
    async def test_no_metadata(
        self, audit_service: AuditService, recording_writer: RecordingWriter
    ) -> None:
        await audit_service.audit_create(entity_type="Invoice", entity_id="1", entity={"a": 1})
        assert recording_writer.writes[0][0].metadata is None


class TestGetAuditService:
    """Tests for the process-wide service."""

    def test_singleton(self) -> None:
        assert get_audit_service() is get_audit_service()

    def test_cache_clear_rebuilds(self) -> None:
        first = get_audit_service()
        get_audit_service.cache_clear()
        assert get_audit_service() is not first

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("env_var", "value"),
        [
            ("CHRONICLE_AUDIT__DEFAULT_WRITER", "kafka"),
            ("CHRONICLE_STORAGE__POSTGRES__MIN_POOL_SIZE", "0"),
        ],
    )
    async def test_invalid_settings_fall_back_to_defaults(
        self, monkeypatch: pytest.MonkeyPatch, env_var: str, value: str
    ) -> None:
        """Should keep auditing with code defaults when settings fail validation."""
        repo_config = Path(__file__).resolve().parents[3] / "config"
        monkeypatch.setenv("CHRONICLE_CONFIG_DIR", str(repo_config))
        monkeypatch.setenv(env_var, value)

        with capture_logs() as logs:
            service = get_audit_service()
            writer = RecordingWriter()
            service.writers.register("dynamodb", writer)
            await service.audit_create(entity_type="Invoice", entity_id="1", entity={"a": 1})

        assert len(writer.writes) == 1
        assert writer.writes[0][1] == "invoice-audit-logs"
        events = {log["event"]: log for log in logs}
        assert events["storage_config_invalid"]["log_level"] == "error"
        assert events["audit_config_invalid"]["error_type"] == "ValidationError"

    @pytest.mark.asyncio
    async def test_unparseable_toml_falls_back_to_defaults(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Should keep auditing when the TOML file cannot be parsed."""
        config_dir = tmp_path / "config"
        config_dir.mkdir()
        (config_dir / "default.toml").write_text("[audit\nglobal_enabled = ")
        monkeypatch.setenv("CHRONICLE_CONFIG_DIR", str(config_dir))

        service = get_audit_service()
        writer = RecordingWriter()
        service.writers.register("dynamodb", writer)
        await service.audit_create(entity_type="Invoice", entity_id="1", entity={"a": 1})

        assert len(writer.writes) == 1
