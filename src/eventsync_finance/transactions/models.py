"""
Transaction Domain Models

Amounts are integer cents so balances add up exactly; a balance is only
meaningful within one currency.
"""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

DEFAULT_CURRENCY = "INR"
REVERSAL_KIND = "REVERSAL"

# Audit action types
FINANCE_TX_CREATED = "FINANCE_TX_CREATED"
FINANCE_TX_REVERSED = "FINANCE_TX_REVERSED"


class Direction(str, Enum):
    DEBIT = "DEBIT"  # money out
    CREDIT = "CREDIT"  # money in

    def opposite(self) -> "Direction":
        return Direction.DEBIT if self == Direction.CREDIT else Direction.CREDIT


class Transaction(BaseModel):
    """
    One ledger entry

    Attributes:
        transaction_id: Unique identifier
        event_id: Event whose ledger the entry belongs to
        kind: Free-form category, e.g. SPONSORSHIP, VENUE, REVERSAL
        amount_cents: Strictly positive; direction carries the sign
        reference_transaction_id: For a REVERSAL, the entry it undoes
    """

    transaction_id: str
    event_id: str
    direction: Direction
    kind: str
    amount_cents: int = Field(gt=0)
    currency: str = DEFAULT_CURRENCY
    note: str | None = None
    reason: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    reference_transaction_id: str | None = None
    recorded_by: str
    created_at: datetime

    model_config = {
        "frozen": True,
        "json_schema_extra": {
            "examples": [
                {
                    "transaction_id": "01908e9a-3b87-7000-8000-123456789abc",
                    "event_id": "evt-42",
                    "direction": "CREDIT",
                    "kind": "SPONSORSHIP",
                    "amount_cents": 2500000,
                    "currency": "INR",
                    "note": "Gold sponsor, first instalment",
                    "reason": None,
                    "metadata": {"invoice": "INV-0042"},
                    "reference_transaction_id": None,
                    "recorded_by": "lead-1",
                    "created_at": "2025-01-15T10:30:00Z",
                }
            ]
        },
    }
