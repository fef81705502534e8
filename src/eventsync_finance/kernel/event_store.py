"""
SQLite Event Store - the append-only finance ledger

Every budget request, allocation, expense status change, team assignment and
audit entry is stored here as an immutable event; the registries are
rebuilt from it on startup and caught up from it before every read.

- A command_id that already wrote to a stream returns the stored events
- Each stream is versioned; a stale writer gets StreamVersionConflict
- WAL mode, so report queries don't block appends
"""

import json
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterator

from eventsync_finance.kernel.errors import EventStoreError, StreamVersionConflict
from eventsync_finance.kernel.events import Event
from eventsync_finance.kernel.logging import get_logger
from eventsync_finance.kernel.metrics import (
    events_appended_total,
    events_loaded_total,
    stream_version_conflicts_total,
)
from eventsync_finance.kernel.retry import retry_on_sqlite_lock

logger = get_logger(__name__)

_COLUMNS = """
    event_id, stream_id, stream_type, version,
    command_id, event_type, occurred_at, actor_id, payload_json
"""

_SCHEMA = """
CREATE TABLE IF NOT EXISTS events (
    event_id TEXT PRIMARY KEY,
    stream_id TEXT NOT NULL,
    stream_type TEXT NOT NULL,
    version INTEGER NOT NULL,
    command_id TEXT NOT NULL,
    event_type TEXT NOT NULL,
    occurred_at TEXT NOT NULL,
    actor_id TEXT,
    payload_json TEXT NOT NULL,
    UNIQUE(stream_id, version)
);
CREATE INDEX IF NOT EXISTS idx_events_command ON events(command_id, stream_id);
CREATE INDEX IF NOT EXISTS idx_events_stream_type ON events(stream_type, occurred_at);
"""


class SQLiteEventStore:
    """
    One SQLite file, one `events` table

    (stream_id, version) is unique, which backs optimistic locking even if
    two processes share the file.
    """

    def __init__(self, db_path: str | Path) -> None:
        self.db_path = Path(db_path)
        self._initialize_schema()

    def _initialize_schema(self) -> None:
        with self._connect() as conn:
            conn.execute("PRAGMA journal_mode=WAL")
            conn.execute("PRAGMA synchronous=NORMAL")
            conn.executescript(_SCHEMA)

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(str(self.db_path), timeout=5.0)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        finally:
            conn.close()

    @retry_on_sqlite_lock()
    def append(
        self,
        stream_id: str,
        expected_version: int,
        events: list[Event],
    ) -> list[Event]:
        """
        Append events to a stream with optimistic locking

        The replay check and the version check run inside one IMMEDIATE
        transaction, so two writers racing on the same budget cannot both
        pass them.

        Args:
            stream_id: Budget, expense, team or audit stream
            expected_version: Version the caller last saw (0 for a new stream)
            events: Events to append, versions expected_version+1 onwards

        Returns:
            The appended events, or the originally stored ones when this
            command already wrote to the stream

        Raises:
            StreamVersionConflict: Someone else wrote to the stream first
            EventStoreError: On other database errors
        """
        if not events:
            return []

        command_id = events[0].command_id
        stream_type = events[0].stream_type

        with self._connect() as conn:
            try:
                conn.execute("BEGIN IMMEDIATE")

                # A command may write to several streams; replay is per stream
                replayed = self._select(
                    conn, "WHERE command_id = ? AND stream_id = ? ORDER BY version", command_id, stream_id
                )
                if replayed:
                    conn.rollback()
                    logger.debug("Command replayed", command_id=command_id, stream_id=stream_id)
                    return replayed

                current_version = self._get_stream_version(conn, stream_id)
                if current_version != expected_version:
                    raise StreamVersionConflict(stream_id, expected_version, current_version)

                conn.executemany(
                    f"INSERT INTO events ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
                    [_to_row(event) for event in events],
                )
                conn.commit()

            except StreamVersionConflict:
                conn.rollback()
                stream_version_conflicts_total.labels(stream_type=stream_type).inc()
                raise

            except sqlite3.IntegrityError as e:
                conn.rollback()
                if "events.stream_id, events.version" in str(e):
                    stream_version_conflicts_total.labels(stream_type=stream_type).inc()
                    current = self._get_stream_version(conn, stream_id)
                    raise StreamVersionConflict(stream_id, expected_version, current) from e
                raise EventStoreError(f"Failed to append events to {stream_id}: {e}") from e

            except sqlite3.OperationalError:
                # Lock contention; the retry decorator decides
                conn.rollback()
                raise

        for event in events:
            events_appended_total.labels(
                stream_type=event.stream_type, event_type=event.event_type
            ).inc()
        return events

    def load_stream(self, stream_id: str) -> list[Event]:
        """Events of one stream in version order (empty if it doesn't exist)"""
        with self._connect() as conn:
            events = self._select(conn, "WHERE stream_id = ? ORDER BY version", stream_id)
        if events:
            events_loaded_total.labels(stream_type=events[0].stream_type).inc(len(events))
        return events

    def load_events_after(self, position: int) -> tuple[list[Event], int]:
        """
        Events committed after `position`, in commit order

        Commit order (rowid), not occurred_at: an expense logged against a
        budget must replay after the approval it depends on even if the
        clocks disagree. Position 0 replays the whole log; later positions
        let a process sharing the file pick up what other writers appended.

        Args:
            position: rowid of the last event already seen (0 for none)

        Returns:
            (events, new position)
        """
        with self._connect() as conn:
            rows = conn.execute(
                f"SELECT rowid AS position, {_COLUMNS} FROM events WHERE rowid > ? ORDER BY rowid",
                (position,),
            ).fetchall()
        if not rows:
            return [], position
        events = [_from_row(row) for row in rows]
        for event in events:
            events_loaded_total.labels(stream_type=event.stream_type).inc()
        return events, rows[-1]["position"]

    def get_stream_version(self, stream_id: str) -> int:
        """Current version of a stream (0 if it doesn't exist)"""
        with self._connect() as conn:
            return self._get_stream_version(conn, stream_id)

    def count_events(self) -> int:
        with self._connect() as conn:
            return conn.execute("SELECT COUNT(*) FROM events").fetchone()[0]

    def count_streams(self) -> int:
        with self._connect() as conn:
            return conn.execute("SELECT COUNT(DISTINCT stream_id) FROM events").fetchone()[0]

    @staticmethod
    def _get_stream_version(conn: sqlite3.Connection, stream_id: str) -> int:
        row = conn.execute(
            "SELECT COALESCE(MAX(version), 0) FROM events WHERE stream_id = ?", (stream_id,)
        ).fetchone()
        return row[0]

    @staticmethod
    def _select(conn: sqlite3.Connection, clause: str, *params: object) -> list[Event]:
        cursor = conn.execute(f"SELECT {_COLUMNS} FROM events {clause}", params)
        return [_from_row(row) for row in cursor.fetchall()]


def _to_row(event: Event) -> tuple:
    return (
        event.event_id,
        event.stream_id,
        event.stream_type,
        event.version,
        event.command_id,
        event.event_type,
        event.occurred_at.isoformat(),
        event.actor_id,
        json.dumps(event.payload),
    )


def _from_row(row: sqlite3.Row) -> Event:
    return Event(
        event_id=row["event_id"],
        stream_id=row["stream_id"],
        stream_type=row["stream_type"],
        version=row["version"],
        command_id=row["command_id"],
        event_type=row["event_type"],
        occurred_at=datetime.fromisoformat(row["occurred_at"]),
        actor_id=row["actor_id"],
        payload=json.loads(row["payload_json"]),
    )
