"""
Finance reports

Pure functions over the budget and expense projections. "Spent" always means
APPROVED plus REIMBURSED expenses; pending, rejected and changes-requested
expenses are not money out of the door.
"""

import csv
import io
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Any

from eventsync_finance.budget.models import BudgetStatus
from eventsync_finance.budget.projections import BudgetRegistry
from eventsync_finance.expense.models import ExpenseStatus
from eventsync_finance.expense.projections import ExpenseRegistry
from eventsync_finance.kernel.policy import FinancePolicy


class AlertType(str, Enum):
    OVERALL_OVERBUDGET = "OVERALL_OVERBUDGET"
    CATEGORY_OVERBUDGET = "CATEGORY_OVERBUDGET"
    NEAR_BUDGET_LIMIT = "NEAR_BUDGET_LIMIT"


class AlertSeverity(str, Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class ExportType(str, Enum):
    EVENT_WISE = "event-wise"
    CATEGORY_WISE = "category-wise"
    EXPENSES = "expenses"


_SEVERITY_ORDER = {AlertSeverity.HIGH: 0, AlertSeverity.MEDIUM: 1, AlertSeverity.LOW: 2}


def utilization_percent(spent: Decimal, allocated: Decimal) -> float:
    """Spent as a percentage of allocated; 0 when nothing is allocated"""
    if allocated <= 0:
        return 0.0
    return round(float(spent / allocated * 100), 2)


def parse_range_bound(value: str | None, end: bool = False) -> datetime | None:
    """
    Parse an ISO date or datetime bounding a report range

    A bare date covers the whole day: as a start it means midnight, as an
    end it means the last instant of that day.
    """
    if not value:
        return None
    try:
        day = date.fromisoformat(value)
    except ValueError:
        return datetime.fromisoformat(value)
    return datetime.combine(day, time.max if end else time.min)


def event_wise_report(
    budgets: BudgetRegistry,
    expenses: ExpenseRegistry,
    start: datetime | None = None,
    end: datetime | None = None,
) -> list[dict[str, Any]]:
    """
    One row per budget created in [start, end]

    Rows: event_id, budget_id, status, requested_amount, allocated_amount,
    total_spent, remaining, utilization, is_over_budget, expense_count
    """
    rows = []
    for budget in budgets.list_created_between(start, end):
        event_id = budget["event_id"]
        spent = expenses.total_spent(event_id)
        allocated = budget["total_allocated_amount"]
        rows.append(
            {
                "event_id": event_id,
                "budget_id": budget["budget_id"],
                "status": budget["status"],
                "requested_amount": budget["total_requested_amount"],
                "allocated_amount": allocated,
                "total_spent": spent,
                "remaining": allocated - spent,
                "utilization": utilization_percent(spent, allocated),
                "is_over_budget": spent > allocated,
                "expense_count": len(expenses.list_by_event(event_id)),
            }
        )
    return sorted(rows, key=lambda r: r["total_spent"], reverse=True)


def category_wise_report(
    budgets: BudgetRegistry,
    expenses: ExpenseRegistry,
    start: datetime | None = None,
    end: datetime | None = None,
) -> list[dict[str, Any]]:
    """
    One row per category across all events

    Allocations come from budgets created in [start, end]; spend from
    expenses logged in [start, end].
    """
    allocated: dict[str, Decimal] = {}
    for budget in budgets.list_created_between(start, end):
        for category in budget["categories"]:
            allocated[category["name"]] = (
                allocated.get(category["name"], Decimal("0")) + category["allocated_amount"]
            )

    spent: dict[str, Decimal] = {}
    counts: dict[str, int] = {}
    for expense in expenses.list_created_between(start, end):
        if not ExpenseStatus(expense["status"]).counts_as_spent:
            continue
        spent[expense["category"]] = spent.get(expense["category"], Decimal("0")) + expense["amount"]
        counts[expense["category"]] = counts.get(expense["category"], 0) + 1

    total_spent = sum(spent.values(), Decimal("0"))
    rows = []
    for name in sorted(set(allocated) | set(spent)):
        category_spent = spent.get(name, Decimal("0"))
        category_allocated = allocated.get(name, Decimal("0"))
        rows.append(
            {
                "category": name,
                "allocated_amount": category_allocated,
                "total_spent": category_spent,
                "expense_count": counts.get(name, 0),
                "utilization": utilization_percent(category_spent, category_allocated),
                "share_of_spend": utilization_percent(category_spent, total_spent),
            }
        )
    return sorted(rows, key=lambda r: r["total_spent"], reverse=True)


def over_budget_alerts(
    budgets: BudgetRegistry,
    expenses: ExpenseRegistry,
    policy: FinancePolicy,
) -> list[dict[str, Any]]:
    """
    Alerts for approved (or closed) budgets, most severe first

    - OVERALL_OVERBUDGET (HIGH): event spend above total allocation
    - CATEGORY_OVERBUDGET (MEDIUM): category spend above its allocation
    - NEAR_BUDGET_LIMIT (LOW): category utilization at or above the policy threshold
    """
    alerts: list[dict[str, Any]] = []
    for budget in budgets.list_all():
        status = BudgetStatus(budget["status"])
        if not (status.is_approved or status == BudgetStatus.CLOSED):
            continue

        event_id = budget["event_id"]
        spent_by_category = expenses.spent_by_category(event_id)
        total_spent = sum(spent_by_category.values(), Decimal("0"))
        total_allocated = budget["total_allocated_amount"]

        if total_spent > total_allocated:
            alerts.append(
                {
                    "type": AlertType.OVERALL_OVERBUDGET.value,
                    "severity": AlertSeverity.HIGH.value,
                    "event_id": event_id,
                    "category": None,
                    "allocated_amount": total_allocated,
                    "total_spent": total_spent,
                    "overage": total_spent - total_allocated,
                    "utilization": utilization_percent(total_spent, total_allocated),
                    "message": f"Event {event_id} is over budget by {total_spent - total_allocated}",
                }
            )

        for category in budget["categories"]:
            name = category["name"]
            category_allocated = category["allocated_amount"]
            category_spent = spent_by_category.get(name, Decimal("0"))
            if category_spent > category_allocated:
                alerts.append(
                    {
                        "type": AlertType.CATEGORY_OVERBUDGET.value,
                        "severity": AlertSeverity.MEDIUM.value,
                        "event_id": event_id,
                        "category": name,
                        "allocated_amount": category_allocated,
                        "total_spent": category_spent,
                        "overage": category_spent - category_allocated,
                        "utilization": utilization_percent(category_spent, category_allocated),
                        "message": f"{name} is over its allocation by {category_spent - category_allocated}",
                    }
                )
            elif (
                category_allocated > 0
                and category_spent / category_allocated
                >= Decimal(str(policy.near_limit_threshold))
            ):
                alerts.append(
                    {
                        "type": AlertType.NEAR_BUDGET_LIMIT.value,
                        "severity": AlertSeverity.LOW.value,
                        "event_id": event_id,
                        "category": name,
                        "allocated_amount": category_allocated,
                        "total_spent": category_spent,
                        "overage": Decimal("0"),
                        "utilization": utilization_percent(category_spent, category_allocated),
                        "message": f"{name} has used {utilization_percent(category_spent, category_allocated)}% of its allocation",
                    }
                )

    return sorted(alerts, key=lambda a: _SEVERITY_ORDER[AlertSeverity(a["severity"])])


_EXPENSE_COLUMNS = [
    "expense_id",
    "event_id",
    "category",
    "amount",
    "type",
    "status",
    "incurred_by",
    "description",
    "receipt_url",
    "approved_by",
    "approved_at",
    "reimbursed_by",
    "reimbursed_at",
    "created_at",
]


def _to_csv(rows: list[dict[str, Any]], columns: list[str]) -> str:
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=columns, extrasaction="ignore", lineterminator="\n")
    writer.writeheader()
    for row in rows:
        writer.writerow({key: "" if row.get(key) is None else row.get(key) for key in columns})
    return buffer.getvalue()


def export_csv(
    export_type: ExportType,
    budgets: BudgetRegistry,
    expenses: ExpenseRegistry,
    start: datetime | None = None,
    end: datetime | None = None,
) -> str:
    """Render one of the reports (or the raw expense list) as CSV text"""
    if export_type == ExportType.EVENT_WISE:
        rows = event_wise_report(budgets, expenses, start, end)
        columns = [
            "event_id",
            "budget_id",
            "status",
            "requested_amount",
            "allocated_amount",
            "total_spent",
            "remaining",
            "utilization",
            "is_over_budget",
            "expense_count",
        ]
    elif export_type == ExportType.CATEGORY_WISE:
        rows = category_wise_report(budgets, expenses, start, end)
        columns = [
            "category",
            "allocated_amount",
            "total_spent",
            "expense_count",
            "utilization",
            "share_of_spend",
        ]
    else:
        rows = sorted(
            expenses.list_created_between(start, end), key=lambda e: e["created_at"]
        )
        columns = _EXPENSE_COLUMNS
    return _to_csv(rows, columns)
