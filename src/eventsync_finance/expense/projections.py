"""
Expense Module Projections

ExpenseRegistry: current state of every expense, plus the derived
reimbursement worklist grouped by payee.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any

from eventsync_finance.expense.events import EXPENSE_EVENT_TYPES
from eventsync_finance.expense.models import ExpenseStatus, ExpenseType
from eventsync_finance.kernel.events import Event
from eventsync_finance.kernel.time import ensure_utc


class ExpenseRegistry:
    """
    Expense projection - current state of all expenses, keyed by expense_id

    Built from events: ExpenseLogged, ExpenseApproved, ExpenseChangesRequested,
                       ExpenseRejected, ExpenseReimbursed, ExpenseResubmitted
    """

    event_types = EXPENSE_EVENT_TYPES

    def __init__(self) -> None:
        self.expenses: dict[str, dict] = {}

    def apply_event(self, event: Event) -> None:
        """
        Apply an event to update the projection

        Args:
            event: Event to apply
        """
        payload = event.payload
        if event.event_type == "ExpenseLogged":
            self._apply_expense_logged(event)
            return

        expense = self.expenses.get(payload["expense_id"])
        if expense is None:
            return

        if event.event_type == "ExpenseApproved":
            expense["status"] = ExpenseStatus.APPROVED.value
            expense["admin_notes"] = payload.get("admin_notes")
            expense["approved_by"] = payload["approved_by"]
            expense["approved_at"] = payload["approved_at"]
        elif event.event_type == "ExpenseChangesRequested":
            expense["status"] = ExpenseStatus.CHANGES_REQUESTED.value
            expense["admin_notes"] = payload["admin_notes"]
        elif event.event_type == "ExpenseRejected":
            expense["status"] = ExpenseStatus.REJECTED.value
            expense["admin_notes"] = payload["admin_notes"]
        elif event.event_type == "ExpenseReimbursed":
            expense["status"] = ExpenseStatus.REIMBURSED.value
            if payload.get("admin_notes"):
                expense["admin_notes"] = payload["admin_notes"]
            expense["reimbursed_by"] = payload["reimbursed_by"]
            expense["reimbursed_at"] = payload["reimbursed_at"]
        elif event.event_type == "ExpenseResubmitted":
            expense["status"] = ExpenseStatus.PENDING.value
            expense["category"] = payload["category"]
            expense["amount"] = Decimal(str(payload["amount"]))
            expense["description"] = payload["description"]
            expense["receipt_url"] = payload["receipt_url"]
        else:
            return

        expense["updated_at"] = event.occurred_at.isoformat()
        expense["version"] = event.version

    def _apply_expense_logged(self, event: Event) -> None:
        payload = event.payload
        self.expenses[payload["expense_id"]] = {
            "expense_id": payload["expense_id"],
            "event_id": payload["event_id"],
            "budget_id": payload["budget_id"],
            "category": payload["category"],
            "amount": Decimal(str(payload["amount"])),
            "description": payload["description"],
            "type": payload["type"],
            "status": ExpenseStatus.PENDING.value,
            "receipt_url": payload.get("receipt_url"),
            "incurred_by": payload["incurred_by"],
            "admin_notes": None,
            "approved_by": None,
            "approved_at": None,
            "reimbursed_by": None,
            "reimbursed_at": None,
            "created_at": payload["logged_at"],
            "updated_at": payload["logged_at"],
            "version": event.version,
        }

    # ========== Query Methods ==========

    def get(self, expense_id: str) -> dict | None:
        return self.expenses.get(expense_id)

    def list_by_event(self, event_id: str) -> list[dict]:
        """Expenses for one event, newest first"""
        return sorted(
            (e for e in self.expenses.values() if e["event_id"] == event_id),
            key=lambda e: e["created_at"],
            reverse=True,
        )

    def list_by_status(self, status: ExpenseStatus) -> list[dict]:
        """Expenses in one status, oldest first (worklist order)"""
        return sorted(
            (e for e in self.expenses.values() if e["status"] == status.value),
            key=lambda e: e["created_at"],
        )

    def list_pending(self) -> list[dict]:
        return self.list_by_status(ExpenseStatus.PENDING)

    def list_all(self) -> list[dict]:
        return list(self.expenses.values())

    def list_created_between(
        self, start: datetime | None = None, end: datetime | None = None
    ) -> list[dict]:
        start = ensure_utc(start) if start is not None else None
        end = ensure_utc(end) if end is not None else None
        result = []
        for expense in self.expenses.values():
            created = ensure_utc(datetime.fromisoformat(expense["created_at"]))
            if start is not None and created < start:
                continue
            if end is not None and created > end:
                continue
            result.append(expense)
        return result

    def spent_by_category(self, event_id: str) -> dict[str, Decimal]:
        """APPROVED + REIMBURSED totals per category for one event"""
        spent: dict[str, Decimal] = {}
        for expense in self.expenses.values():
            if expense["event_id"] != event_id:
                continue
            if not ExpenseStatus(expense["status"]).counts_as_spent:
                continue
            spent[expense["category"]] = spent.get(expense["category"], Decimal("0")) + expense["amount"]
        return spent

    def total_spent(self, event_id: str) -> Decimal:
        return sum(self.spent_by_category(event_id).values(), Decimal("0"))

    def pending_reimbursements_by_user(self) -> list[dict[str, Any]]:
        """
        APPROVED personal spend awaiting payout, grouped by payee

        Returns:
            [{user_id, total_amount, bill_count, expenses}], largest total first
        """
        groups: dict[str, dict[str, Any]] = {}
        for expense in self.list_by_status(ExpenseStatus.APPROVED):
            if expense["type"] != ExpenseType.PERSONAL_SPEND.value:
                continue
            group = groups.setdefault(
                expense["incurred_by"],
                {
                    "user_id": expense["incurred_by"],
                    "total_amount": Decimal("0"),
                    "bill_count": 0,
                    "expenses": [],
                },
            )
            group["total_amount"] += expense["amount"]
            group["bill_count"] += 1
            group["expenses"].append(expense)
        return sorted(groups.values(), key=lambda g: g["total_amount"], reverse=True)
