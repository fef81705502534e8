"""
Expense Module Commands
"""

from decimal import Decimal

from pydantic import BaseModel, Field

from eventsync_finance.expense.models import ExpenseStatus, ExpenseType


class LogExpense(BaseModel):
    """
    Record spend against an approved budget

    incurred_by defaults to the actor logging the expense.
    """

    event_id: str = Field(..., min_length=1)
    category: str = Field(..., min_length=1)
    amount: Decimal = Field(..., gt=0)
    type: ExpenseType = ExpenseType.PERSONAL_SPEND
    description: str = ""
    receipt_url: str | None = None
    incurred_by: str | None = None


class UpdateExpenseStatus(BaseModel):
    expense_id: str
    status: ExpenseStatus
    admin_notes: str | None = None


class ResubmitExpense(BaseModel):
    """Corrected fields after CHANGES_REQUESTED; None keeps the current value"""

    expense_id: str
    category: str | None = None
    amount: Decimal | None = Field(default=None, gt=0)
    description: str | None = None
    receipt_url: str | None = None


class BulkUpdateExpenses(BaseModel):
    expense_ids: list[str] = Field(..., min_length=1)
    status: ExpenseStatus
    admin_notes: str | None = None
