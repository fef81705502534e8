"""
Event envelope for the finance ledger

Every fact about a budget, an expense, an event team or an audited action is
stored in the same envelope; the domain-specific part lives in `payload`.
Payloads are plain JSON (amounts as strings) so a replay years later does not
depend on today's pydantic models.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class StreamType(str, Enum):
    """Aggregate kinds, one stream per instance"""

    BUDGET = "budget"  # budget-<event_id>
    EXPENSE = "expense"  # <expense_id>
    TEAM = "team"  # team-<event_id>
    AUDIT = "audit"  # <audit_id>
    TRANSACTION = "transaction"  # ledger-<event_id>


class Event(BaseModel):
    """
    An immutable, versioned fact

    (stream_id, version) orders events within an aggregate; command_id ties
    them to the request that produced them so a retried request is answered
    from the log instead of being applied twice.
    """

    event_id: str = Field(..., description="UUIDv7, time-ordered")
    stream_id: str
    stream_type: str = Field(..., description="One of StreamType's values")
    event_type: str = Field(..., description="e.g. BudgetApproved, ExpenseReimbursed")
    occurred_at: datetime
    actor_id: str | None = Field(default=None, description="None for system events")
    command_id: str
    payload: dict = Field(default_factory=dict)
    version: int = Field(..., ge=1)

    model_config = {"frozen": True}


def create_event(
    *,
    event_id: str,
    stream_id: str,
    stream_type: StreamType | str,
    event_type: str,
    occurred_at: datetime,
    command_id: str,
    version: int,
    actor_id: str | None = None,
    payload: dict | None = None,
) -> Event:
    """Build an Event; stream_type is stored as its plain string value"""
    return Event(
        event_id=event_id,
        stream_id=stream_id,
        stream_type=StreamType(stream_type).value,
        event_type=event_type,
        occurred_at=occurred_at,
        actor_id=actor_id,
        command_id=command_id,
        payload=payload or {},
        version=version,
    )
