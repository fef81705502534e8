"""
Transaction Module Events
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel

from eventsync_finance.transactions.models import Direction


class TransactionRecorded(BaseModel):
    transaction_id: str
    event_id: str
    direction: Direction
    kind: str
    amount_cents: int
    currency: str
    note: str | None
    reason: str | None
    metadata: dict[str, Any]
    recorded_by: str
    created_at: datetime


class TransactionReversed(BaseModel):
    """A REVERSAL entry; reference_transaction_id is the entry it undoes"""

    transaction_id: str
    event_id: str
    direction: Direction
    kind: str
    amount_cents: int
    currency: str
    note: str
    reason: str
    metadata: dict[str, Any]
    reference_transaction_id: str
    recorded_by: str
    created_at: datetime


TRANSACTION_EVENT_TYPES = ["TransactionRecorded", "TransactionReversed"]
