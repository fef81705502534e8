"""
Budget Module Commands - Intentions to change budget state

Commands carry what a caller asked for. Shape is validated here by pydantic;
business rules (notes, allocations, state) are enforced by the handlers.
"""

from decimal import Decimal

from pydantic import BaseModel, Field

from eventsync_finance.budget.models import AmendmentStatus, BudgetCategory, BudgetStatus


class CategoryRequestSpec(BaseModel):
    """One category line in a budget request"""

    name: BudgetCategory
    requested_amount: Decimal = Field(..., ge=0)
    justification: str


class AllocationSpec(BaseModel):
    """
    Admin allocation for one category

    amount is optional at the shape level so a missing amount is reported
    by the handler as an invalid allocation rather than a schema error.
    """

    category: str
    amount: Decimal | None = None


class RequestBudget(BaseModel):
    """
    Create or re-submit the budget for an event

    Allowed from DRAFT (no budget yet), REQUESTED and REJECTED.
    """

    event_id: str = Field(..., min_length=1)
    categories: list[CategoryRequestSpec] = Field(..., min_length=1)


class ApproveBudget(BaseModel):
    """
    Admin decision on a REQUESTED budget

    status None lets the handler derive APPROVED or PARTIALLY_APPROVED
    from the allocation totals.
    """

    event_id: str
    status: BudgetStatus | None = None
    allocations: list[AllocationSpec] = Field(default_factory=list)
    approval_notes: str = ""


class RequestAmendment(BaseModel):
    event_id: str
    requested_categories: list[CategoryRequestSpec] = Field(..., min_length=1)
    reason: str = ""


class ReviewAmendment(BaseModel):
    """Admin resolution of a PENDING amendment"""

    event_id: str
    amendment_id: str
    status: AmendmentStatus
    admin_notes: str = ""
    allocations: list[AllocationSpec] = Field(default_factory=list)


class CloseBudget(BaseModel):
    event_id: str
    reason: str | None = None
