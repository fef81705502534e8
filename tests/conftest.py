"""
Pytest configuration and shared fixtures

Fun fact: The name "conftest" comes from pytest's configuration testing
framework. Files named conftest.py are automatically discovered and their
fixtures are available to all tests in the same directory and subdirectories!
"""

import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator

import pytest

from eventsync_finance.access.models import PermissionKey, PermissionSet
from eventsync_finance.kernel.event_store import SQLiteEventStore
from eventsync_finance.kernel.policy import FinancePolicy
from eventsync_finance.kernel.session import Role, Session
from eventsync_finance.kernel.time import FixedTimeProvider
from eventsync_finance.ledger import FinanceLedger
from helpers import EVENT_ID, food_and_printing


@pytest.fixture
def temp_db() -> Iterator[Path]:
    """Provide a temporary database file that's cleaned up after test"""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = Path(f.name)

    yield db_path

    # Cleanup (WAL mode leaves sidecar files)
    for path in (db_path, Path(f"{db_path}-wal"), Path(f"{db_path}-shm")):
        if path.exists():
            path.unlink()


@pytest.fixture
def event_store(temp_db: Path) -> SQLiteEventStore:
    """Provide a fresh event store for each test"""
    return SQLiteEventStore(temp_db)


@pytest.fixture
def test_time() -> FixedTimeProvider:
    """
    Provide a controllable time provider for deterministic tests

    Default time: 2025-01-15 12:00:00 UTC
    """
    return FixedTimeProvider(datetime(2025, 1, 15, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def finance_policy() -> FinancePolicy:
    """Provide default finance policy for tests"""
    return FinancePolicy()


# =============================================================================
# Sessions
# =============================================================================


@pytest.fixture
def admin() -> Session:
    return Session(actor_id="admin-1", role=Role.ADMIN, name="Ada Admin")


@pytest.fixture
def lead() -> Session:
    """Organizer who is team lead of EVENT_ID"""
    return Session(actor_id="lead-1", role=Role.ORGANIZER, name="Lee Lead")


@pytest.fixture
def member() -> Session:
    """Organizer on the EVENT_ID team without special permissions"""
    return Session(actor_id="member-1", role=Role.ORGANIZER, name="Max Member")


@pytest.fixture
def outsider() -> Session:
    """Organizer with no assignment on EVENT_ID"""
    return Session(actor_id="outsider-1", role=Role.ORGANIZER)


# =============================================================================
# Ledger
# =============================================================================


@pytest.fixture
def ledger(
    temp_db: Path,
    test_time: FixedTimeProvider,
    finance_policy: FinancePolicy,
    admin: Session,
    lead: Session,
    member: Session,
) -> FinanceLedger:
    """
    Ledger with one event team: lead-1 as team lead and member-1 as plain member
    """
    ledger = FinanceLedger(temp_db, policy=finance_policy, time_provider=test_time)
    ledger.assign_team_member(admin, EVENT_ID, lead.actor_id, PermissionSet(is_team_lead=True))
    ledger.assign_team_member(admin, EVENT_ID, member.actor_id, PermissionSet())
    return ledger



@pytest.fixture
def approved_budget(
    ledger: FinanceLedger, admin: Session, lead: Session, test_time: FixedTimeProvider
) -> dict:
    """Budget for EVENT_ID: Food 10000→8000, Printing 2000→2000 (PARTIALLY_APPROVED)"""
    ledger.request_budget(lead, EVENT_ID, food_and_printing())
    test_time.advance_seconds(60)
    budget = ledger.approve_budget(
        admin,
        EVENT_ID,
        allocations={"Food": 8000, "Printing": 2000},
        approval_notes="Food trimmed to match headcount",
    )
    test_time.advance_seconds(60)
    return budget


@pytest.fixture
def attendance_manager(ledger: FinanceLedger, admin: Session) -> Session:
    """Organizer allowed to manage attendance on EVENT_ID"""
    session = Session(actor_id="door-1", role=Role.ORGANIZER)
    ledger.assign_team_member(
        admin,
        EVENT_ID,
        session.actor_id,
        PermissionSet(permissions={PermissionKey.CAN_MANAGE_ATTENDANCE: True}),
    )
    return session
