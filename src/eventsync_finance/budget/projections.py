"""
Budget Module Projections - Read Models for Query Operations

Projections are built from events and provide efficient query access.
They are the "read" side of CQRS.

BudgetRegistry: current state of every event budget, its amendments
and its history trail.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any

from eventsync_finance.budget.events import BUDGET_EVENT_TYPES
from eventsync_finance.budget.models import (
    AmendmentStatus,
    BudgetHistory,
    BudgetStatus,
    HistoryAction,
    HistoryEntry,
)
from eventsync_finance.kernel.events import Event
from eventsync_finance.kernel.time import ensure_utc


def _category(line: dict[str, Any], allocated: Decimal = Decimal("0")) -> dict[str, Any]:
    return {
        "name": line["name"],
        "requested_amount": Decimal(str(line["requested_amount"])),
        "allocated_amount": allocated,
        "justification": line["justification"],
    }


class BudgetRegistry:
    """
    Main budget projection - current state of all budgets, keyed by event_id

    Built from events: BudgetRequested, BudgetRequestUpdated, BudgetApproved,
                       BudgetRejected, AmendmentRequested, AmendmentApproved,
                       AmendmentRejected, BudgetClosed

    Every applied event appends exactly one history entry and recomputes
    the totals from the category list.
    """

    event_types = BUDGET_EVENT_TYPES

    def __init__(self) -> None:
        self.budgets: dict[str, dict] = {}
        self.histories: dict[str, BudgetHistory] = {}

    def apply_event(self, event: Event) -> None:
        """
        Apply an event to update the projection

        Args:
            event: Event to apply
        """
        handler = {
            "BudgetRequested": self._apply_budget_requested,
            "BudgetRequestUpdated": self._apply_budget_request_updated,
            "BudgetApproved": self._apply_budget_approved,
            "BudgetRejected": self._apply_budget_rejected,
            "AmendmentRequested": self._apply_amendment_requested,
            "AmendmentApproved": self._apply_amendment_approved,
            "AmendmentRejected": self._apply_amendment_rejected,
            "BudgetClosed": self._apply_budget_closed,
        }.get(event.event_type)
        if handler is not None:
            handler(event)

    def _apply_budget_requested(self, event: Event) -> None:
        payload = event.payload
        event_id = payload["event_id"]

        self.budgets[event_id] = {
            "budget_id": payload["budget_id"],
            "event_id": event_id,
            "status": BudgetStatus.REQUESTED.value,
            "categories": [_category(line) for line in payload["categories"]],
            "total_requested_amount": Decimal("0"),
            "total_allocated_amount": Decimal("0"),
            "approval_notes": None,
            "created_by": payload["requested_by"],
            "created_at": payload["requested_at"],
            "updated_at": payload["requested_at"],
            "history": [],
            "amendments": [],
            "version": event.version,
        }
        self.histories[event_id] = BudgetHistory()
        self._record(
            event,
            HistoryAction.CREATED,
            previous_status=BudgetStatus.DRAFT,
            note="Budget requested",
        )

    def _apply_budget_request_updated(self, event: Event) -> None:
        payload = event.payload
        budget = self.budgets.get(payload["event_id"])
        if budget is None:
            return

        previous = BudgetStatus(budget["status"])
        budget["categories"] = [_category(line) for line in payload["categories"]]
        budget["status"] = BudgetStatus.REQUESTED.value
        budget["approval_notes"] = None
        budget["updated_at"] = payload["requested_at"]
        self._record(
            event,
            HistoryAction.UPDATED,
            previous_status=previous,
            note="Budget request updated",
        )

    def _apply_budget_approved(self, event: Event) -> None:
        payload = event.payload
        budget = self.budgets.get(payload["event_id"])
        if budget is None:
            return

        previous = BudgetStatus(budget["status"])
        self._apply_allocations(budget, payload["allocations"])
        budget["status"] = payload["status"]
        budget["approval_notes"] = payload["approval_notes"]
        budget["updated_at"] = payload["approved_at"]
        self._record(
            event,
            HistoryAction.APPROVED,
            previous_status=previous,
            note=payload["approval_notes"],
        )

    def _apply_budget_rejected(self, event: Event) -> None:
        payload = event.payload
        budget = self.budgets.get(payload["event_id"])
        if budget is None:
            return

        previous = BudgetStatus(budget["status"])
        budget["status"] = BudgetStatus.REJECTED.value
        budget["approval_notes"] = payload["approval_notes"]
        budget["updated_at"] = payload["rejected_at"]
        self._record(
            event,
            HistoryAction.REJECTED,
            previous_status=previous,
            note=payload["approval_notes"],
        )

    def _apply_amendment_requested(self, event: Event) -> None:
        payload = event.payload
        budget = self.budgets.get(payload["event_id"])
        if budget is None:
            return

        budget["amendments"].append(
            {
                "amendment_id": payload["amendment_id"],
                "requested_by": payload["requested_by"],
                "requested_at": payload["requested_at"],
                "reason": payload["reason"],
                "requested_categories": [
                    {
                        "name": line["name"],
                        "requested_amount": Decimal(str(line["requested_amount"])),
                        "justification": line["justification"],
                    }
                    for line in payload["requested_categories"]
                ],
                "status": AmendmentStatus.PENDING.value,
                "admin_notes": None,
                "reviewed_by": None,
                "reviewed_at": None,
                "resulting_allocations": {},
            }
        )
        budget["updated_at"] = payload["requested_at"]
        self._record(
            event,
            HistoryAction.AMENDMENT_REQUESTED,
            previous_status=BudgetStatus(budget["status"]),
            note=payload["reason"],
        )

    def _apply_amendment_approved(self, event: Event) -> None:
        payload = event.payload
        budget = self.budgets.get(payload["event_id"])
        if budget is None:
            return

        for line in payload.get("new_categories", []):
            budget["categories"].append(_category(line))
        self._apply_allocations(budget, payload["allocations"])
        self._resolve_amendment(
            budget,
            payload,
            AmendmentStatus.APPROVED,
            resulting_allocations={
                name: Decimal(str(amount)) for name, amount in payload["allocations"].items()
            },
        )
        self._record(
            event,
            HistoryAction.AMENDMENT_APPROVED,
            previous_status=BudgetStatus(budget["status"]),
            note=payload["admin_notes"],
        )

    def _apply_amendment_rejected(self, event: Event) -> None:
        payload = event.payload
        budget = self.budgets.get(payload["event_id"])
        if budget is None:
            return

        self._resolve_amendment(budget, payload, AmendmentStatus.REJECTED)
        self._record(
            event,
            HistoryAction.AMENDMENT_REJECTED,
            previous_status=BudgetStatus(budget["status"]),
            note=payload["admin_notes"],
        )

    def _apply_budget_closed(self, event: Event) -> None:
        payload = event.payload
        budget = self.budgets.get(payload["event_id"])
        if budget is None:
            return

        previous = BudgetStatus(budget["status"])
        budget["status"] = BudgetStatus.CLOSED.value
        budget["updated_at"] = payload["closed_at"]
        self._record(
            event,
            HistoryAction.CLOSED,
            previous_status=previous,
            note=payload.get("reason"),
        )

    # ========== Helpers ==========

    def _apply_allocations(self, budget: dict, allocations: dict[str, Any]) -> None:
        for category in budget["categories"]:
            if category["name"] in allocations:
                category["allocated_amount"] = Decimal(str(allocations[category["name"]]))

    def _resolve_amendment(
        self,
        budget: dict,
        payload: dict,
        status: AmendmentStatus,
        resulting_allocations: dict[str, Decimal] | None = None,
    ) -> None:
        for amendment in budget["amendments"]:
            if amendment["amendment_id"] == payload["amendment_id"]:
                amendment["status"] = status.value
                amendment["admin_notes"] = payload["admin_notes"]
                amendment["reviewed_by"] = payload["reviewed_by"]
                amendment["reviewed_at"] = payload["reviewed_at"]
                if resulting_allocations is not None:
                    amendment["resulting_allocations"] = resulting_allocations
        budget["updated_at"] = payload["reviewed_at"]

    def _record(
        self,
        event: Event,
        action: HistoryAction,
        previous_status: BudgetStatus,
        note: str | None,
    ) -> None:
        """Recompute totals, stamp the version and append one history entry"""
        event_id = event.payload["event_id"]
        budget = self.budgets[event_id]

        budget["total_requested_amount"] = sum(
            (c["requested_amount"] for c in budget["categories"]), Decimal("0")
        )
        budget["total_allocated_amount"] = sum(
            (c["allocated_amount"] for c in budget["categories"]), Decimal("0")
        )
        budget["version"] = event.version

        entry = HistoryEntry(
            action=action,
            performed_by=event.actor_id,
            timestamp=event.occurred_at,
            note=note,
            previous_status=previous_status,
            new_status=BudgetStatus(budget["status"]),
        )
        history = self.histories.get(event_id, BudgetHistory()).append(entry)
        self.histories[event_id] = history
        budget["history"] = history.to_list()

    # ========== Query Methods ==========

    def get(self, event_id: str) -> dict | None:
        """Get the budget record for an event, or None"""
        return self.budgets.get(event_id)

    def get_history(self, event_id: str) -> BudgetHistory:
        return self.histories.get(event_id, BudgetHistory())

    def list_by_status(self, status: BudgetStatus) -> list[dict]:
        return [
            budget for budget in self.budgets.values() if budget["status"] == status.value
        ]

    def list_all(self) -> list[dict]:
        return list(self.budgets.values())

    def list_created_between(
        self, start: datetime | None = None, end: datetime | None = None
    ) -> list[dict]:
        """Budgets whose created_at falls in [start, end]"""
        start = ensure_utc(start) if start is not None else None
        end = ensure_utc(end) if end is not None else None
        result = []
        for budget in self.budgets.values():
            created = ensure_utc(datetime.fromisoformat(budget["created_at"]))
            if start is not None and created < start:
                continue
            if end is not None and created > end:
                continue
            result.append(budget)
        return result

    def list_pending_amendments(self) -> list[dict]:
        """
        PENDING amendments across all budgets, oldest first

        Each item carries its budget's event_id and budget_id.
        """
        pending = []
        for budget in self.budgets.values():
            for amendment in budget["amendments"]:
                if amendment["status"] == AmendmentStatus.PENDING.value:
                    pending.append(
                        {
                            **amendment,
                            "event_id": budget["event_id"],
                            "budget_id": budget["budget_id"],
                        }
                    )
        return sorted(pending, key=lambda a: a["requested_at"])
