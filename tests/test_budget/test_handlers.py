"""
Tests for Budget Module Handlers - Command→Event Transformation

These tests verify that budget commands are validated against the
transition table and the invariants, and converted to events.
"""

from decimal import Decimal

import pytest

from eventsync_finance.budget.commands import (
    AllocationSpec,
    ApproveBudget,
    CategoryRequestSpec,
    CloseBudget,
    RequestAmendment,
    RequestBudget,
    ReviewAmendment,
)
from eventsync_finance.budget.handlers import BudgetCommandHandlers
from eventsync_finance.budget.models import AmendmentStatus, BudgetStatus
from eventsync_finance.kernel.errors import (
    AllocationsRequired,
    AmendmentAlreadyResolved,
    AmendmentNotFound,
    BudgetNotFound,
    CategoryNotInBudget,
    IllegalBudgetTransition,
    MissingNotes,
)
from eventsync_finance.kernel.ids import generate_id
from eventsync_finance.kernel.policy import FinancePolicy
from eventsync_finance.kernel.time import FixedTimeProvider
from helpers import EVENT_ID, create_amendment_record, create_budget_record


@pytest.fixture
def handlers(test_time: FixedTimeProvider, finance_policy: FinancePolicy) -> BudgetCommandHandlers:
    """Provide command handlers with test dependencies"""
    return BudgetCommandHandlers(test_time, finance_policy)


def _request(*lines: tuple[str, str]) -> RequestBudget:
    return RequestBudget(
        event_id=EVENT_ID,
        categories=[
            CategoryRequestSpec(
                name=name, requested_amount=Decimal(amount), justification=f"{name} costs"
            )
            for name, amount in lines
        ],
    )


def _approve(
    status: BudgetStatus | None = None, notes: str = "Looks fine", **allocations: str
) -> ApproveBudget:
    return ApproveBudget(
        event_id=EVENT_ID,
        status=status,
        allocations=[AllocationSpec(category=k, amount=Decimal(v)) for k, v in allocations.items()],
        approval_notes=notes,
    )


# =============================================================================
# Request
# =============================================================================


def test_request_budget_creates_stream(handlers: BudgetCommandHandlers) -> None:
    events = handlers.handle_request_budget(
        _request(("Food", "10000"), ("Printing", "2000")), generate_id(), "lead-1", {}
    )

    assert len(events) == 1
    event = events[0]
    assert event.event_type == "BudgetRequested"
    assert event.stream_type == "budget"
    assert event.stream_id == f"budget-{EVENT_ID}"
    assert event.version == 1
    assert event.actor_id == "lead-1"
    assert event.payload["event_id"] == EVENT_ID
    assert event.payload["requested_by"] == "lead-1"
    assert [c["name"] for c in event.payload["categories"]] == ["Food", "Printing"]
    assert event.payload["categories"][0]["requested_amount"] == "10000"


@pytest.mark.parametrize("status", ["REQUESTED", "REJECTED"])
def test_re_request_updates_existing_budget(handlers: BudgetCommandHandlers, status: str) -> None:
    budgets = {EVENT_ID: create_budget_record(status, version=2)}

    events = handlers.handle_request_budget(
        _request(("Food", "9000")), generate_id(), "lead-1", budgets
    )

    assert events[0].event_type == "BudgetRequestUpdated"
    assert events[0].version == 3
    assert events[0].payload["previous_status"] == status
    assert events[0].payload["budget_id"] == budgets[EVENT_ID]["budget_id"]


@pytest.mark.parametrize("status", ["APPROVED", "PARTIALLY_APPROVED", "CLOSED"])
def test_re_request_blocked_after_approval(handlers: BudgetCommandHandlers, status: str) -> None:
    budgets = {EVENT_ID: create_budget_record(status)}

    with pytest.raises(IllegalBudgetTransition):
        handlers.handle_request_budget(_request(("Food", "1")), generate_id(), "lead-1", budgets)


# =============================================================================
# Approve / reject
# =============================================================================


def test_approve_full_allocation_derives_approved(handlers: BudgetCommandHandlers) -> None:
    budgets = {EVENT_ID: create_budget_record()}

    events = handlers.handle_approve_budget(
        _approve(Food="10000", Printing="2000"), generate_id(), "admin-1", budgets
    )

    event = events[0]
    assert event.event_type == "BudgetApproved"
    assert event.version == 2
    assert event.payload["status"] == "APPROVED"
    assert event.payload["allocations"] == {"Food": "10000", "Printing": "2000"}
    assert event.payload["approved_by"] == "admin-1"


def test_approve_short_allocation_derives_partial(handlers: BudgetCommandHandlers) -> None:
    budgets = {EVENT_ID: create_budget_record()}

    events = handlers.handle_approve_budget(
        _approve(Food="8000", Printing="2000"), generate_id(), "admin-1", budgets
    )

    assert events[0].payload["status"] == "PARTIALLY_APPROVED"


def test_explicit_status_is_honored(handlers: BudgetCommandHandlers) -> None:
    budgets = {EVENT_ID: create_budget_record()}

    events = handlers.handle_approve_budget(
        _approve(BudgetStatus.APPROVED, Food="8000"), generate_id(), "admin-1", budgets
    )

    assert events[0].payload["status"] == "APPROVED"


def test_approval_notes_are_stripped(handlers: BudgetCommandHandlers) -> None:
    budgets = {EVENT_ID: create_budget_record()}

    events = handlers.handle_approve_budget(
        _approve(notes="  Trimmed  ", Food="1"), generate_id(), "admin-1", budgets
    )

    assert events[0].payload["approval_notes"] == "Trimmed"


@pytest.mark.parametrize("status", [None, BudgetStatus.REJECTED])
def test_blank_notes_rejected(handlers: BudgetCommandHandlers, status: BudgetStatus | None) -> None:
    budgets = {EVENT_ID: create_budget_record()}

    with pytest.raises(MissingNotes):
        handlers.handle_approve_budget(
            _approve(status, notes="   ", Food="10"), generate_id(), "admin-1", budgets
        )


def test_approval_requires_allocations(handlers: BudgetCommandHandlers) -> None:
    budgets = {EVENT_ID: create_budget_record()}

    with pytest.raises(AllocationsRequired):
        handlers.handle_approve_budget(_approve(), generate_id(), "admin-1", budgets)


def test_approval_rejects_unknown_category(handlers: BudgetCommandHandlers) -> None:
    budgets = {EVENT_ID: create_budget_record()}

    with pytest.raises(CategoryNotInBudget):
        handlers.handle_approve_budget(_approve(Travel="500"), generate_id(), "admin-1", budgets)


def test_reject_budget(handlers: BudgetCommandHandlers) -> None:
    budgets = {EVENT_ID: create_budget_record()}

    events = handlers.handle_approve_budget(
        _approve(BudgetStatus.REJECTED, notes="Out of scope this term"),
        generate_id(),
        "admin-1",
        budgets,
    )

    assert events[0].event_type == "BudgetRejected"
    assert events[0].payload["approval_notes"] == "Out of scope this term"


@pytest.mark.parametrize("status", ["APPROVED", "PARTIALLY_APPROVED", "REJECTED", "CLOSED"])
def test_decision_only_once_per_request(handlers: BudgetCommandHandlers, status: str) -> None:
    budgets = {EVENT_ID: create_budget_record(status)}

    with pytest.raises(IllegalBudgetTransition):
        handlers.handle_approve_budget(_approve(Food="10"), generate_id(), "admin-1", budgets)
    with pytest.raises(IllegalBudgetTransition):
        handlers.handle_approve_budget(
            _approve(BudgetStatus.REJECTED), generate_id(), "admin-1", budgets
        )


def test_approve_missing_budget(handlers: BudgetCommandHandlers) -> None:
    with pytest.raises(BudgetNotFound):
        handlers.handle_approve_budget(_approve(Food="10"), generate_id(), "admin-1", {})


def test_cannot_decide_closed_status(handlers: BudgetCommandHandlers) -> None:
    budgets = {EVENT_ID: create_budget_record()}

    with pytest.raises(IllegalBudgetTransition):
        handlers.handle_approve_budget(
            _approve(BudgetStatus.CLOSED, Food="10"), generate_id(), "admin-1", budgets
        )


# =============================================================================
# Amendments
# =============================================================================


def _amendment_request(reason: str = "Headcount grew to 300") -> RequestAmendment:
    return RequestAmendment(
        event_id=EVENT_ID,
        requested_categories=[
            CategoryRequestSpec(name="Food", requested_amount=Decimal("12000"), justification="More lunch"),
            CategoryRequestSpec(name="Travel", requested_amount=Decimal("3000"), justification="Speaker trains"),
        ],
        reason=reason,
    )


def test_request_amendment(handlers: BudgetCommandHandlers) -> None:
    budgets = {EVENT_ID: create_budget_record("APPROVED", {"Food": ("10000", "10000")})}

    events = handlers.handle_request_amendment(
        _amendment_request(), generate_id(), "lead-1", budgets
    )

    assert events[0].event_type == "AmendmentRequested"
    assert events[0].payload["reason"] == "Headcount grew to 300"
    assert events[0].payload["amendment_id"]
    assert len(events[0].payload["requested_categories"]) == 2


@pytest.mark.parametrize("status", ["REQUESTED", "REJECTED", "CLOSED"])
def test_amendment_needs_approved_budget(handlers: BudgetCommandHandlers, status: str) -> None:
    budgets = {EVENT_ID: create_budget_record(status)}

    with pytest.raises(IllegalBudgetTransition):
        handlers.handle_request_amendment(_amendment_request(), generate_id(), "lead-1", budgets)


def test_amendment_needs_reason(handlers: BudgetCommandHandlers) -> None:
    budgets = {EVENT_ID: create_budget_record("APPROVED")}

    with pytest.raises(MissingNotes):
        handlers.handle_request_amendment(
            _amendment_request(reason="  "), generate_id(), "lead-1", budgets
        )


def _budget_with_amendment(status: str = "PENDING") -> dict:
    return {
        EVENT_ID: create_budget_record(
            "APPROVED",
            {"Food": ("10000", "10000")},
            amendments=[
                create_amendment_record(status=status, requested={"Food": "12000", "Travel": "3000"})
            ],
        )
    }


def _review(status: AmendmentStatus, notes: str = "Agreed", **allocations: str) -> ReviewAmendment:
    return ReviewAmendment(
        event_id=EVENT_ID,
        amendment_id="amend-1",
        status=status,
        admin_notes=notes,
        allocations=[AllocationSpec(category=k, amount=Decimal(v)) for k, v in allocations.items()],
    )


def test_approve_amendment_adds_requested_category(handlers: BudgetCommandHandlers) -> None:
    events = handlers.handle_review_amendment(
        _review(AmendmentStatus.APPROVED, Food="12000", Travel="2500"),
        generate_id(),
        "admin-1",
        _budget_with_amendment(),
    )

    payload = events[0].payload
    assert events[0].event_type == "AmendmentApproved"
    assert payload["allocations"] == {"Food": "12000", "Travel": "2500"}
    assert [c["name"] for c in payload["new_categories"]] == ["Travel"]
    assert payload["new_categories"][0]["requested_amount"] == "3000"
    # Empty justification on the amendment line falls back to the reason
    assert payload["new_categories"][0]["justification"] == "Headcount grew to 300"


def test_approve_amendment_rejects_unrequested_category(handlers: BudgetCommandHandlers) -> None:
    with pytest.raises(CategoryNotInBudget):
        handlers.handle_review_amendment(
            _review(AmendmentStatus.APPROVED, Prizes="100"),
            generate_id(),
            "admin-1",
            _budget_with_amendment(),
        )


def test_reject_amendment_ignores_allocations(handlers: BudgetCommandHandlers) -> None:
    events = handlers.handle_review_amendment(
        _review(AmendmentStatus.REJECTED, notes="Not this quarter", Prizes="100"),
        generate_id(),
        "admin-1",
        _budget_with_amendment(),
    )

    assert events[0].event_type == "AmendmentRejected"
    assert "allocations" not in events[0].payload


def test_amendment_resolved_once(handlers: BudgetCommandHandlers) -> None:
    with pytest.raises(AmendmentAlreadyResolved):
        handlers.handle_review_amendment(
            _review(AmendmentStatus.REJECTED),
            generate_id(),
            "admin-1",
            _budget_with_amendment("APPROVED"),
        )


def test_review_unknown_amendment(handlers: BudgetCommandHandlers) -> None:
    budgets = {EVENT_ID: create_budget_record("APPROVED")}

    with pytest.raises(AmendmentNotFound):
        handlers.handle_review_amendment(
            _review(AmendmentStatus.REJECTED), generate_id(), "admin-1", budgets
        )


def test_review_needs_notes(handlers: BudgetCommandHandlers) -> None:
    with pytest.raises(MissingNotes):
        handlers.handle_review_amendment(
            _review(AmendmentStatus.APPROVED, notes="", Food="1"),
            generate_id(),
            "admin-1",
            _budget_with_amendment(),
        )


# =============================================================================
# Close
# =============================================================================


def test_close_budget(handlers: BudgetCommandHandlers) -> None:
    budgets = {EVENT_ID: create_budget_record("APPROVED", version=4)}

    events = handlers.handle_close_budget(
        CloseBudget(event_id=EVENT_ID, reason=" Event finished "), generate_id(), "admin-1", budgets
    )

    assert events[0].event_type == "BudgetClosed"
    assert events[0].version == 5
    assert events[0].payload["reason"] == "Event finished"


@pytest.mark.parametrize("status", ["REQUESTED", "REJECTED", "CLOSED"])
def test_close_needs_approved_budget(handlers: BudgetCommandHandlers, status: str) -> None:
    budgets = {EVENT_ID: create_budget_record(status)}

    with pytest.raises(IllegalBudgetTransition):
        handlers.handle_close_budget(CloseBudget(event_id=EVENT_ID), generate_id(), "admin-1", budgets)
