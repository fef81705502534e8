"""
Tests for SQLite Event Store

Verifies core event sourcing properties:
- Append-only semantics
- Idempotency via command_id (per stream)
- Optimistic locking via stream versioning
- Commit-order replay

Fun fact: Testing an event store is a small cash-book audit. Nothing may go
missing and nothing may be written twice.
"""

from datetime import datetime, timedelta, timezone

import pytest

from eventsync_finance.kernel.errors import EventStoreError, StreamVersionConflict
from eventsync_finance.kernel.event_store import SQLiteEventStore
from eventsync_finance.kernel.events import Event, create_event
from eventsync_finance.kernel.ids import generate_id

T0 = datetime(2025, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


def make_event(
    stream_id: str,
    version: int,
    command_id: str | None = None,
    event_type: str = "ExpenseLogged",
    occurred_at: datetime = T0,
    payload: dict | None = None,
) -> Event:
    return create_event(
        event_id=generate_id(),
        stream_id=stream_id,
        stream_type="expense",
        event_type=event_type,
        occurred_at=occurred_at,
        command_id=command_id or generate_id(),
        actor_id="lead-1",
        payload=payload or {"amount": "3000"},
        version=version,
    )


def test_append_and_load_single_event(event_store: SQLiteEventStore) -> None:
    event = make_event("exp-1", 1, payload={"amount": "3000", "category": "Food"})

    appended = event_store.append("exp-1", 0, [event])
    assert [e.event_id for e in appended] == [event.event_id]

    loaded = event_store.load_stream("exp-1")
    assert len(loaded) == 1
    assert loaded[0] == event
    assert loaded[0].payload == {"amount": "3000", "category": "Food"}
    assert loaded[0].occurred_at == T0


def test_empty_append_is_noop(event_store: SQLiteEventStore) -> None:
    assert event_store.append("exp-1", 0, []) == []
    assert event_store.count_events() == 0


def test_unknown_stream_is_empty(event_store: SQLiteEventStore) -> None:
    assert event_store.load_stream("nope") == []
    assert event_store.get_stream_version("nope") == 0


def test_stream_versioning(event_store: SQLiteEventStore) -> None:
    event_store.append("exp-1", 0, [make_event("exp-1", 1)])
    assert event_store.get_stream_version("exp-1") == 1

    event_store.append("exp-1", 1, [make_event("exp-1", 2, event_type="ExpenseApproved")])
    assert event_store.get_stream_version("exp-1") == 2

    loaded = event_store.load_stream("exp-1")
    assert [e.version for e in loaded] == [1, 2]
    assert [e.event_type for e in loaded] == ["ExpenseLogged", "ExpenseApproved"]


def test_optimistic_locking_conflict(event_store: SQLiteEventStore) -> None:
    event_store.append("exp-1", 0, [make_event("exp-1", 1)])

    with pytest.raises(StreamVersionConflict) as exc_info:
        event_store.append("exp-1", 0, [make_event("exp-1", 1)])

    assert exc_info.value.stream_id == "exp-1"
    assert exc_info.value.expected_version == 0
    assert exc_info.value.actual_version == 1
    assert event_store.count_events() == 1


def test_idempotent_replay_returns_original_events(event_store: SQLiteEventStore) -> None:
    command_id = generate_id()
    first = event_store.append("exp-1", 0, [make_event("exp-1", 1, command_id=command_id)])

    # Same command again, even with a stale expected_version
    again = event_store.append("exp-1", 0, [make_event("exp-1", 1, command_id=command_id)])

    assert [e.event_id for e in again] == [e.event_id for e in first]
    assert event_store.count_events() == 1


def test_idempotency_is_per_stream(event_store: SQLiteEventStore) -> None:
    # A bulk command writes one event to each expense stream
    command_id = generate_id()
    event_store.append("exp-1", 0, [make_event("exp-1", 1, command_id=command_id)])
    event_store.append("exp-2", 0, [make_event("exp-2", 1, command_id=command_id)])

    assert event_store.count_events() == 2
    assert event_store.count_streams() == 2


def test_load_events_after_in_commit_order(event_store: SQLiteEventStore) -> None:
    # Later commits can carry earlier (or equal) timestamps
    event_store.append("exp-2", 0, [make_event("exp-2", 1, occurred_at=T0)])
    event_store.append("exp-1", 0, [make_event("exp-1", 1, occurred_at=T0 - timedelta(hours=1))])
    event_store.append("exp-2", 1, [make_event("exp-2", 2, occurred_at=T0)])

    events, position = event_store.load_events_after(0)

    assert [(e.stream_id, e.version) for e in events] == [
        ("exp-2", 1),
        ("exp-1", 1),
        ("exp-2", 2),
    ]

    # Nothing new since the last position
    assert event_store.load_events_after(position) == ([], position)


def test_load_events_after_resumes_from_position(event_store: SQLiteEventStore) -> None:
    event_store.append("exp-1", 0, [make_event("exp-1", 1)])
    _, position = event_store.load_events_after(0)

    event_store.append("exp-1", 1, [make_event("exp-1", 2)])
    event_store.append("exp-2", 0, [make_event("exp-2", 1)])
    events, later = event_store.load_events_after(position)

    assert [(e.stream_id, e.version) for e in events] == [("exp-1", 2), ("exp-2", 1)]
    assert later > position


def test_events_survive_reopen(temp_db) -> None:
    store = SQLiteEventStore(temp_db)
    store.append("exp-1", 0, [make_event("exp-1", 1)])

    reopened = SQLiteEventStore(temp_db)

    assert reopened.count_events() == 1
    assert reopened.get_stream_version("exp-1") == 1


def test_failed_append_writes_nothing(event_store: SQLiteEventStore) -> None:
    first = make_event("exp-1", 1)
    duplicate_id = first.model_copy(update={"version": 2})

    with pytest.raises(EventStoreError):
        event_store.append("exp-1", 0, [first, duplicate_id])

    assert event_store.count_events() == 0
    assert event_store.get_stream_version("exp-1") == 0
