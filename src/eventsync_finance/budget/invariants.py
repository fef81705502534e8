"""
Budget Module Invariants - pure validation functions

Each function either returns normally or raises a typed InvariantViolation.
They take plain values so they can be tested without a ledger.
"""

from decimal import Decimal
from typing import Iterable

from eventsync_finance.budget.commands import AllocationSpec, CategoryRequestSpec
from eventsync_finance.budget.models import Amendment, AmendmentStatus, Budget
from eventsync_finance.kernel.errors import (
    AllocationsRequired,
    AmendmentAlreadyResolved,
    CategoryNotInBudget,
    DuplicateCategory,
    InvalidAllocation,
    MissingNotes,
)


def validate_notes_present(value: str | None, field: str) -> str:
    """
    Require a non-blank explanation

    Returns:
        The stripped value

    Raises:
        MissingNotes: If value is None, empty or whitespace only
    """
    if value is None or not value.strip():
        raise MissingNotes(field)
    return value.strip()


def validate_unique_categories(categories: Iterable[CategoryRequestSpec]) -> None:
    seen: set[str] = set()
    for category in categories:
        name = category.name.value
        if name in seen:
            raise DuplicateCategory(name)
        seen.add(name)


def validate_category_requests(categories: list[CategoryRequestSpec]) -> None:
    """Every requested line needs a justification and a unique name"""
    validate_unique_categories(categories)
    for category in categories:
        validate_notes_present(category.justification, f"Justification for {category.name.value}")


def validate_allocations(
    allocations: list[AllocationSpec],
    allowed_categories: Iterable[str],
    event_id: str,
) -> dict[str, Decimal]:
    """
    Check allocation specs and fold them into {category: amount}

    Args:
        allocations: Allocation specs from the admin
        allowed_categories: Category names an allocation may target
        event_id: For error messages

    Raises:
        AllocationsRequired: If no allocation is given
        InvalidAllocation: If an amount is missing or negative
        CategoryNotInBudget: If an allocation names an unknown category
        DuplicateCategory: If a category is allocated twice
    """
    if not allocations:
        raise AllocationsRequired()

    allowed = set(allowed_categories)
    result: dict[str, Decimal] = {}
    for allocation in allocations:
        if allocation.amount is None or allocation.amount < 0:
            raise InvalidAllocation(allocation.category, allocation.amount)
        if allocation.category not in allowed:
            raise CategoryNotInBudget(event_id, allocation.category)
        if allocation.category in result:
            raise DuplicateCategory(allocation.category)
        result[allocation.category] = allocation.amount
    return result


def derive_approval_is_full(budget: Budget, allocations: dict[str, Decimal]) -> bool:
    """
    True when allocations, applied to the budget, cover every requested amount

    Categories without an allocation keep their current allocation.
    """
    total_allocated = Decimal("0")
    for category in budget.categories:
        total_allocated += allocations.get(category.name.value, category.allocated_amount)
    return total_allocated == budget.total_requested_amount()


def validate_amendment_pending(amendment: Amendment) -> None:
    if amendment.status != AmendmentStatus.PENDING:
        raise AmendmentAlreadyResolved(amendment.amendment_id, amendment.status.value)
