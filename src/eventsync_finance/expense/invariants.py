"""
Expense Module Invariants
"""

from decimal import Decimal
from typing import Iterable

from eventsync_finance.budget.models import BudgetStatus
from eventsync_finance.expense.models import Expense, ExpenseStatus, ExpenseType
from eventsync_finance.kernel.errors import (
    BudgetNotApproved,
    BudgetNotFound,
    CategoryCeilingExceeded,
    CategoryNotInBudget,
    NotReimbursable,
)


def validate_budget_accepts_expenses(budget: dict | None, event_id: str) -> dict:
    """
    Expenses need an APPROVED or PARTIALLY_APPROVED budget

    Returns:
        The budget record

    Raises:
        BudgetNotFound: Event has no budget
        BudgetNotApproved: Budget is in any other status
    """
    if budget is None:
        raise BudgetNotFound(event_id)
    if not BudgetStatus(budget["status"]).is_approved:
        raise BudgetNotApproved(event_id, budget["status"])
    return budget


def validate_category_in_budget(budget: dict, category: str) -> dict:
    """Return the budget's category record or raise CategoryNotInBudget"""
    for line in budget["categories"]:
        if line["name"] == category:
            return line
    raise CategoryNotInBudget(budget["event_id"], category)


def validate_reimbursable(expense: Expense) -> None:
    """Only personal spend is paid back"""
    if expense.type != ExpenseType.PERSONAL_SPEND:
        raise NotReimbursable(expense.expense_id, expense.type.value)


def spent_in_category(
    expenses: Iterable[dict], event_id: str, category: str, exclude_id: str | None = None
) -> Decimal:
    """Sum of APPROVED and REIMBURSED expenses for one category of one event"""
    total = Decimal("0")
    for record in expenses:
        if record["event_id"] != event_id or record["category"] != category:
            continue
        if record["expense_id"] == exclude_id:
            continue
        if ExpenseStatus(record["status"]).counts_as_spent:
            total += record["amount"]
    return total


def validate_category_ceiling(
    expense: Expense, allocated: Decimal, already_spent: Decimal
) -> None:
    """
    Approving expense must not push approved spend above the allocation

    Raises:
        CategoryCeilingExceeded: allocated < already_spent + expense.amount
    """
    if already_spent + expense.amount > allocated:
        raise CategoryCeilingExceeded(
            expense.category,
            str(expense.amount),
            str(allocated),
            str(already_spent),
        )
