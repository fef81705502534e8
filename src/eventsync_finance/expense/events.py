"""
Expense Module Events
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel

from eventsync_finance.expense.models import ExpenseType


class ExpenseLogged(BaseModel):
    expense_id: str
    event_id: str
    budget_id: str
    category: str
    amount: Decimal
    type: ExpenseType
    description: str
    receipt_url: str | None
    incurred_by: str
    logged_by: str
    logged_at: datetime


class ExpenseApproved(BaseModel):
    expense_id: str
    event_id: str
    admin_notes: str | None
    approved_by: str
    approved_at: datetime


class ExpenseChangesRequested(BaseModel):
    expense_id: str
    event_id: str
    admin_notes: str
    requested_by: str
    requested_at: datetime


class ExpenseRejected(BaseModel):
    expense_id: str
    event_id: str
    admin_notes: str
    rejected_by: str
    rejected_at: datetime


class ExpenseReimbursed(BaseModel):
    """Personal spend paid back to the payee"""

    expense_id: str
    event_id: str
    incurred_by: str
    amount: Decimal
    admin_notes: str | None
    reimbursed_by: str
    reimbursed_at: datetime


class ExpenseResubmitted(BaseModel):
    """Payee corrected an expense after CHANGES_REQUESTED; it is PENDING again"""

    expense_id: str
    event_id: str
    category: str
    amount: Decimal
    description: str
    receipt_url: str | None
    resubmitted_by: str
    resubmitted_at: datetime


EXPENSE_EVENT_TYPES = [
    "ExpenseLogged",
    "ExpenseApproved",
    "ExpenseChangesRequested",
    "ExpenseRejected",
    "ExpenseReimbursed",
    "ExpenseResubmitted",
]
