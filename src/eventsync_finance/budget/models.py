"""
Budget Domain Models - Core entities for event budgets

Key concepts:
- One budget per event; DRAFT is the state of an event with no budget yet
- Totals are derived from the category list, never stored separately
- History is an append-only log, one entry per budget event
- Amendments are resolved exactly once
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Iterator

from pydantic import BaseModel, Field


class BudgetStatus(str, Enum):
    """
    Budget lifecycle states

    DRAFT → REQUESTED → APPROVED | PARTIALLY_APPROVED | REJECTED
    REJECTED → REQUESTED (re-request)
    APPROVED | PARTIALLY_APPROVED → CLOSED

    Expenses may only be logged against APPROVED or PARTIALLY_APPROVED budgets.
    """

    DRAFT = "DRAFT"
    REQUESTED = "REQUESTED"
    APPROVED = "APPROVED"
    PARTIALLY_APPROVED = "PARTIALLY_APPROVED"
    REJECTED = "REJECTED"
    CLOSED = "CLOSED"

    @property
    def is_approved(self) -> bool:
        return self in (BudgetStatus.APPROVED, BudgetStatus.PARTIALLY_APPROVED)


class BudgetCategory(str, Enum):
    """Fixed set of spending categories"""

    FOOD = "Food"
    PRINTING = "Printing"
    TRAVEL = "Travel"
    MARKETING = "Marketing"
    LOGISTICS = "Logistics"
    PRIZES = "Prizes"
    EQUIPMENT = "Equipment"
    OTHER = "Other"


class AmendmentStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class HistoryAction(str, Enum):
    """What a history entry records"""

    CREATED = "CREATED"
    UPDATED = "UPDATED"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    AMENDMENT_REQUESTED = "AMENDMENT_REQUESTED"
    AMENDMENT_APPROVED = "AMENDMENT_APPROVED"
    AMENDMENT_REJECTED = "AMENDMENT_REJECTED"
    CLOSED = "CLOSED"


class Category(BaseModel):
    """
    One budget line

    requested_amount comes from the organizer, allocated_amount from the admin.
    Allocation above the request is allowed.
    """

    name: BudgetCategory
    requested_amount: Decimal = Field(ge=0)
    allocated_amount: Decimal = Field(default=Decimal("0"), ge=0)
    justification: str = Field(..., min_length=1)

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "name": "Food",
                    "requested_amount": "10000",
                    "allocated_amount": "8000",
                    "justification": "Lunch for 200 participants",
                }
            ]
        }
    }


class RequestedCategory(BaseModel):
    """Category change asked for in an amendment"""

    name: BudgetCategory
    requested_amount: Decimal = Field(ge=0)
    justification: str = ""


class Amendment(BaseModel):
    """
    Request to change an approved budget

    Created PENDING; an admin resolves it once to APPROVED or REJECTED.
    resulting_allocations is filled only on approval.
    """

    amendment_id: str
    requested_by: str
    requested_at: datetime
    reason: str
    requested_categories: list[RequestedCategory]
    status: AmendmentStatus = AmendmentStatus.PENDING
    admin_notes: str | None = None
    reviewed_by: str | None = None
    reviewed_at: datetime | None = None
    resulting_allocations: dict[str, Decimal] = Field(default_factory=dict)


class HistoryEntry(BaseModel):
    """One immutable line in a budget's trail"""

    action: HistoryAction
    performed_by: str | None
    timestamp: datetime
    note: str | None = None
    previous_status: BudgetStatus | None = None
    new_status: BudgetStatus | None = None

    model_config = {"frozen": True}


class BudgetHistory:
    """
    Append-only log of history entries

    There is no way to edit or remove an entry: append returns a new log
    and the underlying tuple cannot be mutated.
    """

    __slots__ = ("_entries",)

    def __init__(self, entries: tuple[HistoryEntry, ...] = ()) -> None:
        self._entries = tuple(entries)

    def append(self, entry: HistoryEntry) -> "BudgetHistory":
        return BudgetHistory(self._entries + (entry,))

    @property
    def entries(self) -> tuple[HistoryEntry, ...]:
        return self._entries

    def last(self) -> HistoryEntry | None:
        return self._entries[-1] if self._entries else None

    def __iter__(self) -> Iterator[HistoryEntry]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __getitem__(self, index: int) -> HistoryEntry:
        return self._entries[index]

    def to_list(self) -> list[dict[str, Any]]:
        return [entry.model_dump(mode="json") for entry in self._entries]


class Budget(BaseModel):
    """
    Event-scoped budget

    Attributes:
        budget_id: Unique identifier
        event_id: Owning event (one budget per event)
        status: Current lifecycle state
        categories: Ordered budget lines
        approval_notes: Admin notes from the last approval or rejection
        amendments: Ordered amendment requests
        version: Stream version (optimistic locking)
    """

    budget_id: str
    event_id: str
    status: BudgetStatus
    categories: list[Category]
    approval_notes: str | None = None
    created_by: str | None = None
    created_at: datetime
    updated_at: datetime
    amendments: list[Amendment] = Field(default_factory=list)
    version: int = 0

    def total_requested_amount(self) -> Decimal:
        return sum((c.requested_amount for c in self.categories), Decimal("0"))

    def total_allocated_amount(self) -> Decimal:
        return sum((c.allocated_amount for c in self.categories), Decimal("0"))

    def category(self, name: str) -> Category | None:
        for category in self.categories:
            if category.name.value == name:
                return category
        return None

    def category_names(self) -> list[str]:
        return [c.name.value for c in self.categories]

    def amendment(self, amendment_id: str) -> Amendment | None:
        for amendment in self.amendments:
            if amendment.amendment_id == amendment_id:
                return amendment
        return None


def budget_from_record(record: dict[str, Any]) -> Budget:
    """Build a Budget model from a BudgetRegistry record"""
    return Budget.model_validate(record)
