"""
Transaction Module Commands
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from eventsync_finance.transactions.models import DEFAULT_CURRENCY, REVERSAL_KIND, Direction


class RecordTransaction(BaseModel):
    """Record money in or out of an event's ledger"""

    model_config = ConfigDict(str_strip_whitespace=True)

    event_id: str = Field(..., min_length=1)
    direction: Direction
    kind: str = Field(..., min_length=1)
    amount_cents: int = Field(..., gt=0)
    currency: str = Field(default=DEFAULT_CURRENCY, pattern=r"^[A-Z]{3}$")
    note: str | None = None
    reason: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator("currency", mode="before")
    @classmethod
    def upper_currency(cls, value: Any) -> Any:
        if value is None or value == "":
            return DEFAULT_CURRENCY
        return value.strip().upper() if isinstance(value, str) else value

    @field_validator("kind")
    @classmethod
    def not_reversal(cls, value: str) -> str:
        if value.upper() == REVERSAL_KIND:
            raise ValueError("REVERSAL entries are only created by reversing a transaction")
        return value


class ReverseTransaction(BaseModel):
    transaction_id: str
    reason: str
