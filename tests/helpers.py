"""
Test Helper Functions - Builders for projection records

Handlers and invariants read plain record dicts (the shape the registries
keep), so unit tests build those records directly instead of running a
whole ledger.

Fun fact: The Builder pattern was formalized by the Gang of Four in 1994,
but test data builders were popularized by the growing programmer test
movement in the 2000s - we use them to keep tests readable and maintainable!
"""

from decimal import Decimal
from typing import Any

EVENT_ID = "evt-hackathon"
CREATED_AT = "2025-01-15T12:00:00Z"


def food_and_printing() -> list[dict[str, Any]]:
    """Two-line request: Food 10000, Printing 2000"""
    return [
        {"name": "Food", "requested_amount": 10000, "justification": "Lunch for 200 participants"},
        {"name": "Printing", "requested_amount": 2000, "justification": "Badges and banners"},
    ]


def create_budget_record(
    status: str = "REQUESTED",
    categories: dict[str, tuple[str, str]] | None = None,
    event_id: str = EVENT_ID,
    amendments: list[dict[str, Any]] | None = None,
    version: int = 1,
) -> dict[str, Any]:
    """
    Builder for BudgetRegistry-shaped records

    Args:
        status: Budget status value
        categories: name → (requested_amount, allocated_amount)
        event_id: Owning event
        amendments: Amendment records
        version: Stream version

    Example:
        >>> create_budget_record("APPROVED", {"Food": ("10000", "8000")})
    """
    categories = categories or {"Food": ("10000", "0"), "Printing": ("2000", "0")}
    lines = [
        {
            "name": name,
            "requested_amount": Decimal(requested),
            "allocated_amount": Decimal(allocated),
            "justification": f"{name} for the event",
        }
        for name, (requested, allocated) in categories.items()
    ]
    return {
        "budget_id": f"budget-id-{event_id}",
        "event_id": event_id,
        "status": status,
        "categories": lines,
        "total_requested_amount": sum((c["requested_amount"] for c in lines), Decimal("0")),
        "total_allocated_amount": sum((c["allocated_amount"] for c in lines), Decimal("0")),
        "approval_notes": None,
        "created_by": "lead-1",
        "created_at": CREATED_AT,
        "updated_at": CREATED_AT,
        "amendments": amendments or [],
        "version": version,
    }


def create_amendment_record(
    amendment_id: str = "amend-1",
    status: str = "PENDING",
    requested: dict[str, str] | None = None,
    reason: str = "Headcount grew to 300",
) -> dict[str, Any]:
    """Builder for amendment records; requested maps category → amount"""
    requested = requested or {"Food": "12000"}
    return {
        "amendment_id": amendment_id,
        "requested_by": "lead-1",
        "requested_at": CREATED_AT,
        "reason": reason,
        "requested_categories": [
            {"name": name, "requested_amount": Decimal(amount), "justification": ""}
            for name, amount in requested.items()
        ],
        "status": status,
        "admin_notes": None,
        "reviewed_by": None,
        "reviewed_at": None,
        "resulting_allocations": {},
    }


def create_expense_record(
    expense_id: str = "exp-1",
    status: str = "PENDING",
    amount: str = "3000",
    category: str = "Food",
    expense_type: str = "PERSONAL_SPEND",
    incurred_by: str = "lead-1",
    event_id: str = EVENT_ID,
    version: int = 1,
) -> dict[str, Any]:
    """Builder for ExpenseRegistry-shaped records"""
    return {
        "expense_id": expense_id,
        "event_id": event_id,
        "budget_id": f"budget-id-{event_id}",
        "category": category,
        "amount": Decimal(amount),
        "description": "Snacks",
        "type": expense_type,
        "status": status,
        "receipt_url": None,
        "incurred_by": incurred_by,
        "admin_notes": None,
        "approved_by": None,
        "approved_at": None,
        "reimbursed_by": None,
        "reimbursed_at": None,
        "created_at": CREATED_AT,
        "updated_at": CREATED_AT,
        "version": version,
    }
