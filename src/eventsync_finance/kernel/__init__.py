"""
Kernel - Core event sourcing infrastructure

The kernel provides the machinery every finance module builds upon: the
immutable event envelope, the append-only store, time and id providers, the
error hierarchy, plus the logging, metrics and settings every module shares.

Fun fact: Event sourcing was inspired by accountants - they never erase ledger
entries, they add correcting entries. A finance ledger is coming home.
"""

from eventsync_finance.kernel.errors import (
    EventStoreError,
    FinanceError,
    InvariantViolation,
    StreamVersionConflict,
)
from eventsync_finance.kernel.events import Event, StreamType, create_event
from eventsync_finance.kernel.ids import generate_id
from eventsync_finance.kernel.session import Role, Session
from eventsync_finance.kernel.time import FixedTimeProvider, RealTimeProvider, TimeProvider

__all__ = [
    # IDs
    "generate_id",
    # Time
    "TimeProvider",
    "RealTimeProvider",
    "FixedTimeProvider",
    # Events
    "Event",
    "StreamType",
    "create_event",
    # Identity
    "Role",
    "Session",
    # Errors
    "FinanceError",
    "EventStoreError",
    "StreamVersionConflict",
    "InvariantViolation",
]
