"""
Expense Domain Models

An expense is money spent against one category of an approved event budget.
PERSONAL_SPEND is paid out of an organizer's pocket and must be reimbursed;
ADMIN_PAID was settled by the organization and never is.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, Field


class ExpenseStatus(str, Enum):
    """
    Expense lifecycle states

    PENDING → APPROVED → REIMBURSED (PERSONAL_SPEND only)
    PENDING → CHANGES_REQUESTED → PENDING (resubmit)
    PENDING → REJECTED

    REJECTED and REIMBURSED are terminal.
    """

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    CHANGES_REQUESTED = "CHANGES_REQUESTED"
    REJECTED = "REJECTED"
    REIMBURSED = "REIMBURSED"

    @property
    def counts_as_spent(self) -> bool:
        return self in (ExpenseStatus.APPROVED, ExpenseStatus.REIMBURSED)


class ExpenseType(str, Enum):
    PERSONAL_SPEND = "PERSONAL_SPEND"
    ADMIN_PAID = "ADMIN_PAID"


class Expense(BaseModel):
    """
    Single expense record

    Attributes:
        expense_id: Unique identifier (also the event stream id)
        event_id: Event whose budget the expense is charged to
        category: Budget category name
        amount: Strictly positive amount
        incurred_by: Payee (who gets reimbursed for PERSONAL_SPEND)
    """

    expense_id: str
    event_id: str
    budget_id: str
    category: str
    amount: Decimal = Field(gt=0)
    description: str = ""
    type: ExpenseType
    status: ExpenseStatus = ExpenseStatus.PENDING
    receipt_url: str | None = None
    incurred_by: str
    admin_notes: str | None = None
    approved_by: str | None = None
    approved_at: datetime | None = None
    reimbursed_by: str | None = None
    reimbursed_at: datetime | None = None
    created_at: datetime
    updated_at: datetime
    version: int = 0

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "expense_id": "01908e9a-3b87-7000-8000-123456789abc",
                    "event_id": "evt-42",
                    "budget_id": "01908e9a-0000-7000-8000-000000000001",
                    "category": "Food",
                    "amount": "3000",
                    "description": "Snacks for volunteers",
                    "type": "PERSONAL_SPEND",
                    "status": "PENDING",
                    "incurred_by": "user-lead",
                    "created_at": "2025-01-15T10:30:00Z",
                    "updated_at": "2025-01-15T10:30:00Z",
                }
            ]
        }
    }


def expense_from_record(record: dict) -> Expense:
    return Expense.model_validate(record)
