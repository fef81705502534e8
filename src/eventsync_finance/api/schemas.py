"""
Request bodies for the REST API.

Clients send camelCase keys; snake_case is accepted too. Allocation items
also accept the older {categoryName, allocatedAmount} spelling.
"""

from decimal import Decimal
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from eventsync_finance.access.models import PermissionSet
from eventsync_finance.budget.models import AmendmentStatus, BudgetStatus
from eventsync_finance.expense.models import ExpenseStatus, ExpenseType
from eventsync_finance.transactions.models import Direction


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CategoryBody(CamelModel):
    name: str
    requested_amount: Decimal = Field(..., ge=0)
    justification: str = ""


class AllocationBody(CamelModel):
    category: str = Field(
        ..., validation_alias=AliasChoices("category", "categoryName", "category_name", "name")
    )
    amount: Decimal | None = Field(
        default=None,
        validation_alias=AliasChoices("amount", "allocatedAmount", "allocated_amount"),
    )


class BudgetRequestBody(CamelModel):
    event_id: str
    categories: list[CategoryBody] = Field(..., min_length=1)


class BudgetApprovalBody(CamelModel):
    status: BudgetStatus | None = None
    allocations: list[AllocationBody] = Field(default_factory=list)
    approval_notes: str = ""


class BudgetCloseBody(CamelModel):
    reason: str | None = None


class AmendmentRequestBody(CamelModel):
    requested_categories: list[CategoryBody] = Field(..., min_length=1)
    reason: str = ""


class AmendmentReviewBody(CamelModel):
    status: AmendmentStatus
    admin_notes: str = ""
    allocations: list[AllocationBody] = Field(default_factory=list)


class ExpenseBody(CamelModel):
    event_id: str
    category: str
    amount: Decimal = Field(..., gt=0)
    type: ExpenseType = ExpenseType.PERSONAL_SPEND
    description: str = ""
    receipt_url: str | None = None
    incurred_by: str | None = None


class ExpenseStatusBody(CamelModel):
    status: ExpenseStatus
    admin_notes: str | None = None


class ExpenseResubmitBody(CamelModel):
    category: str | None = None
    amount: Decimal | None = Field(default=None, gt=0)
    description: str | None = None
    receipt_url: str | None = None


class BulkExpenseBody(CamelModel):
    expense_ids: list[str] = Field(..., min_length=1)
    status: ExpenseStatus
    admin_notes: str | None = None


class DestructiveActionBody(CamelModel):
    reason: str = ""
    event_id: str | None = None
    old_state: dict[str, Any] | None = None


class TransactionBody(CamelModel):
    event_id: str
    direction: Direction
    kind: str = ""
    amount_cents: int = Field(..., gt=0)
    currency: str | None = None
    note: str | None = None
    reason: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class ReversalBody(CamelModel):
    reason: str = ""


class TeamMemberBody(CamelModel):
    is_team_lead: bool = False
    permissions: dict[str, bool] = Field(default_factory=dict)
    can_manage_team: bool = False
    can_manage_speakers: bool = False
    can_view_logs: bool = False

    def to_permission_set(self) -> PermissionSet:
        return PermissionSet.model_validate(self.model_dump())


def allocation_dicts(allocations: list[AllocationBody]) -> list[dict[str, Any]]:
    return [{"category": a.category, "amount": a.amount} for a in allocations]


def category_dicts(categories: list[CategoryBody]) -> list[dict[str, Any]]:
    return [
        {
            "name": c.name,
            "requested_amount": c.requested_amount,
            "justification": c.justification,
        }
        for c in categories
    ]
