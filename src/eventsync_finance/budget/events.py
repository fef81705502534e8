"""
Budget Module Events - Domain events for event budgets

Every change to a budget is one of these facts. The BudgetRegistry derives
current state and the history trail from them; nothing else writes budgets.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from eventsync_finance.budget.models import BudgetStatus


class CategoryLine(BaseModel):
    """Category as carried in event payloads"""

    name: str
    requested_amount: Decimal
    justification: str


class BudgetRequested(BaseModel):
    """A budget was requested for an event that had none"""

    budget_id: str
    event_id: str
    categories: list[CategoryLine]
    requested_by: str
    requested_at: datetime


class BudgetRequestUpdated(BaseModel):
    """
    A REQUESTED or REJECTED budget was re-submitted

    Categories are replaced wholesale and allocations reset to zero.
    """

    budget_id: str
    event_id: str
    categories: list[CategoryLine]
    previous_status: BudgetStatus
    requested_by: str
    requested_at: datetime


class BudgetApproved(BaseModel):
    """Admin approved (fully or partially) a REQUESTED budget"""

    budget_id: str
    event_id: str
    status: BudgetStatus
    allocations: dict[str, Decimal]
    approval_notes: str
    approved_by: str
    approved_at: datetime


class BudgetRejected(BaseModel):
    budget_id: str
    event_id: str
    approval_notes: str
    rejected_by: str
    rejected_at: datetime


class AmendmentRequested(BaseModel):
    budget_id: str
    event_id: str
    amendment_id: str
    requested_categories: list[CategoryLine]
    reason: str
    requested_by: str
    requested_at: datetime


class AmendmentApproved(BaseModel):
    """
    Admin approved an amendment

    new_categories lists amendment categories the budget did not have yet;
    they are added with the amendment's requested amount and justification.
    """

    budget_id: str
    event_id: str
    amendment_id: str
    allocations: dict[str, Decimal]
    new_categories: list[CategoryLine] = Field(default_factory=list)
    admin_notes: str
    reviewed_by: str
    reviewed_at: datetime


class AmendmentRejected(BaseModel):
    budget_id: str
    event_id: str
    amendment_id: str
    admin_notes: str
    reviewed_by: str
    reviewed_at: datetime


class BudgetClosed(BaseModel):
    budget_id: str
    event_id: str
    reason: str | None = None
    closed_by: str
    closed_at: datetime


BUDGET_EVENT_TYPES = [
    "BudgetRequested",
    "BudgetRequestUpdated",
    "BudgetApproved",
    "BudgetRejected",
    "AmendmentRequested",
    "AmendmentApproved",
    "AmendmentRejected",
    "BudgetClosed",
]
