"""
Test infrastructure components: logging, metrics, retry, settings, bus.

These tests verify the production hardening infrastructure works correctly.
"""

import sqlite3
from datetime import datetime, timezone

import pytest
from prometheus_client import REGISTRY
from structlog.testing import capture_logs

from eventsync_finance.kernel.bus import InProcessBus
from eventsync_finance.kernel.errors import StreamVersionConflict
from eventsync_finance.kernel.event_store import SQLiteEventStore
from eventsync_finance.kernel.events import Event
from eventsync_finance.kernel.logging import (
    LogOperation,
    configure_logging,
    get_correlation_id,
    get_logger,
    redact_context,
    set_correlation_id,
)
from eventsync_finance.kernel.metrics import track_command_duration
from eventsync_finance.kernel.retry import retry_on_sqlite_lock
from eventsync_finance.kernel.settings import FinanceSettings


def _event(stream_id: str = "exp-9", version: int = 1, command_id: str = "cmd-1") -> Event:
    return Event(
        event_id=f"evt-{stream_id}-{version}",
        stream_id=stream_id,
        stream_type="expense",
        version=version,
        command_id=command_id,
        event_type="ExpenseLogged",
        occurred_at=datetime.now(timezone.utc),
        actor_id="lead-1",
        payload={"amount": "10"},
    )


def _sample(name: str, labels: dict[str, str]) -> float:
    return REGISTRY.get_sample_value(name, labels) or 0.0


class TestLoggingFramework:
    """Test structured logging framework."""

    def test_configure_logging_console(self) -> None:
        configure_logging(json_output=False, log_level="INFO")
        assert get_logger(__name__) is not None

    def test_configure_logging_json(self) -> None:
        configure_logging(json_output=True, log_level="DEBUG")
        assert get_logger(__name__) is not None

    def test_correlation_id(self) -> None:
        cid = get_correlation_id()
        assert len(cid) > 0
        assert get_correlation_id() == cid

        set_correlation_id("req-123")
        assert get_correlation_id() == "req-123"

    def test_redact_context(self) -> None:
        redacted = redact_context(
            {"actor_id": "u-1", "amount": "500", "operation": "approve_budget"}
        )

        assert redacted == {
            "actor_id": "***REDACTED***",
            "amount": "***REDACTED***",
            "operation": "approve_budget",
        }

    def test_log_operation_context_manager(self) -> None:
        configure_logging(json_output=False, log_level="INFO")
        logger = get_logger(__name__)

        with LogOperation(logger, "log_expense", event_id="evt-1", amount="12") as op:
            assert op.operation == "log_expense"

    def test_log_operation_with_exception(self) -> None:
        configure_logging(json_output=False, log_level="INFO")
        logger = get_logger(__name__)

        with pytest.raises(ValueError):
            with LogOperation(logger, "failing_operation"):
                raise ValueError("Test error")

    def test_log_operation_business_rule_is_warning(self) -> None:
        with capture_logs() as logs:
            logger = get_logger("rejection-test")
            with pytest.raises(StreamVersionConflict):
                with LogOperation(logger, "approve_budget", event_id="evt-1", actor_id="u-1"):
                    raise StreamVersionConflict("budget-evt-1", 1, 2)

        rejected = [entry for entry in logs if entry["event"] == "approve_budget rejected"]
        assert len(rejected) == 1
        assert rejected[0]["log_level"] == "warning"
        assert rejected[0]["error_type"] == "StreamVersionConflict"
        assert rejected[0]["actor_id"] == "***REDACTED***"
        assert rejected[0]["event_id"] == "evt-1"

    def test_log_operation_fault_is_error(self) -> None:
        with capture_logs() as logs:
            logger = get_logger("fault-test")
            with pytest.raises(RuntimeError):
                with LogOperation(logger, "log_expense"):
                    raise RuntimeError("disk full")

        failed = [entry for entry in logs if entry["event"] == "log_expense failed"]
        assert failed[0]["log_level"] == "error"
        assert failed[0]["error"] == "disk full"


class TestMetrics:
    """Test Prometheus metrics collection."""

    def test_events_appended_metric(self, temp_db) -> None:
        store = SQLiteEventStore(temp_db)
        labels = {"stream_type": "expense", "event_type": "ExpenseLogged"}
        before = _sample("esf_events_appended_total", labels)

        store.append("exp-9", 0, [_event()])

        assert _sample("esf_events_appended_total", labels) == before + 1

    def test_events_loaded_metric(self, temp_db) -> None:
        store = SQLiteEventStore(temp_db)
        store.append("exp-9", 0, [_event()])
        before = _sample("esf_events_loaded_total", {"stream_type": "expense"})

        store.load_stream("exp-9")

        assert _sample("esf_events_loaded_total", {"stream_type": "expense"}) == before + 1

    def test_version_conflict_metric(self, temp_db) -> None:
        store = SQLiteEventStore(temp_db)
        store.append("exp-9", 0, [_event()])
        before = _sample("esf_stream_version_conflicts_total", {"stream_type": "expense"})

        with pytest.raises(StreamVersionConflict):
            store.append("exp-9", 0, [_event(command_id="cmd-2", version=1)])

        after = _sample("esf_stream_version_conflicts_total", {"stream_type": "expense"})
        assert after == before + 1

    def test_track_command_duration(self) -> None:
        @track_command_duration("unit_test_command")
        def succeed() -> str:
            return "ok"

        @track_command_duration("unit_test_command")
        def fail() -> None:
            raise RuntimeError("boom")

        success = {"command_type": "unit_test_command", "status": "success"}
        failure = {"command_type": "unit_test_command", "status": "failure"}
        before_ok = _sample("esf_commands_processed_total", success)
        before_fail = _sample("esf_commands_processed_total", failure)

        assert succeed() == "ok"
        with pytest.raises(RuntimeError):
            fail()

        assert _sample("esf_commands_processed_total", success) == before_ok + 1
        assert _sample("esf_commands_processed_total", failure) == before_fail + 1


class TestRetryLogic:
    """Test retry logic with exponential backoff."""

    def test_retry_decorator(self) -> None:
        call_count = 0

        @retry_on_sqlite_lock(max_attempts=3, min_wait_ms=1, max_wait_ms=5)
        def flaky() -> str:
            nonlocal call_count
            call_count += 1
            if call_count < 2:
                raise sqlite3.OperationalError("database is locked")
            return "success"

        assert flaky() == "success"
        assert call_count == 2

    def test_retry_gives_up(self) -> None:
        call_count = 0

        @retry_on_sqlite_lock(max_attempts=2, min_wait_ms=1, max_wait_ms=5)
        def always_locked() -> None:
            nonlocal call_count
            call_count += 1
            raise sqlite3.OperationalError("database is locked")

        with pytest.raises(sqlite3.OperationalError):
            always_locked()
        assert call_count == 2

    def test_business_errors_not_retried(self) -> None:
        call_count = 0

        @retry_on_sqlite_lock(max_attempts=3, min_wait_ms=1, max_wait_ms=5)
        def conflict() -> None:
            nonlocal call_count
            call_count += 1
            raise StreamVersionConflict("exp-1", 0, 1)

        with pytest.raises(StreamVersionConflict):
            conflict()
        assert call_count == 1


class TestSettings:
    """Test environment-driven settings."""

    def test_defaults(self) -> None:
        settings = FinanceSettings()

        assert settings.jwt_algorithm == "HS256"
        assert not settings.is_production

    def test_environment_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("EVENTSYNC_ENVIRONMENT", "production")
        monkeypatch.setenv("EVENTSYNC_ACCESS_TOKEN_EXPIRE_MINUTES", "5")

        settings = FinanceSettings()

        assert settings.is_production
        assert settings.access_token_expire_minutes == 5


class TestEventBus:
    """Test in-process pub/sub."""

    def test_publish_in_registration_order(self) -> None:
        bus = InProcessBus()
        seen: list[str] = []
        bus.subscribe("ExpenseLogged", lambda e: seen.append(f"a:{e.stream_id}"))
        bus.subscribe("ExpenseLogged", lambda e: seen.append(f"b:{e.stream_id}"))

        bus.publish_events([_event("exp-1"), _event("exp-2")])

        assert seen == ["a:exp-1", "b:exp-1", "a:exp-2", "b:exp-2"]

    def test_unsubscribed_event_type_is_ignored(self) -> None:
        bus = InProcessBus()
        bus.publish_event(_event())
        assert bus.registered_event_types() == []

    def test_subscribe_all(self) -> None:
        bus = InProcessBus()
        bus.subscribe_all(["ExpenseLogged", "ExpenseApproved"], lambda e: None)
        assert bus.registered_event_types() == ["ExpenseApproved", "ExpenseLogged"]

    def test_handler_errors_propagate(self) -> None:
        bus = InProcessBus()

        def broken(event: Event) -> None:
            raise KeyError("missing field")

        bus.subscribe("ExpenseLogged", broken)
        with pytest.raises(KeyError):
            bus.publish_event(_event())
