"""
Tests for Expense Module Handlers and Invariants
"""

from decimal import Decimal

import pytest

from eventsync_finance.expense.commands import LogExpense, ResubmitExpense, UpdateExpenseStatus
from eventsync_finance.expense.handlers import ExpenseCommandHandlers, target_status
from eventsync_finance.expense.invariants import spent_in_category
from eventsync_finance.expense.models import ExpenseStatus, ExpenseType
from eventsync_finance.kernel.errors import (
    BudgetNotApproved,
    BudgetNotFound,
    CategoryCeilingExceeded,
    CategoryNotInBudget,
    ExpenseNotFound,
    IllegalExpenseTransition,
    MissingNotes,
    NotReimbursable,
)
from eventsync_finance.kernel.ids import generate_id
from eventsync_finance.kernel.policy import FinancePolicy
from eventsync_finance.kernel.time import FixedTimeProvider
from helpers import EVENT_ID, create_budget_record, create_expense_record


@pytest.fixture
def handlers(test_time: FixedTimeProvider, finance_policy: FinancePolicy) -> ExpenseCommandHandlers:
    return ExpenseCommandHandlers(test_time, finance_policy)


@pytest.fixture
def budgets() -> dict:
    return {
        EVENT_ID: create_budget_record(
            "APPROVED", {"Food": ("10000", "8000"), "Printing": ("2000", "2000")}
        )
    }


def _log(amount: str = "3000", category: str = "Food", **kwargs: object) -> LogExpense:
    return LogExpense(event_id=EVENT_ID, category=category, amount=Decimal(amount), **kwargs)


def _update(status: ExpenseStatus, notes: str | None = None) -> UpdateExpenseStatus:
    return UpdateExpenseStatus(expense_id="exp-1", status=status, admin_notes=notes)


# =============================================================================
# Log
# =============================================================================


def test_log_expense(handlers: ExpenseCommandHandlers, budgets: dict) -> None:
    events = handlers.handle_log_expense(
        _log(description="  Snacks  "), generate_id(), "member-1", budgets
    )

    event = events[0]
    assert event.event_type == "ExpenseLogged"
    assert event.stream_type == "expense"
    assert event.stream_id == event.payload["expense_id"]
    assert event.version == 1
    assert event.payload["amount"] == "3000"
    assert event.payload["type"] == "PERSONAL_SPEND"
    assert event.payload["incurred_by"] == "member-1"
    assert event.payload["description"] == "Snacks"
    assert event.payload["budget_id"] == budgets[EVENT_ID]["budget_id"]


def test_log_expense_on_behalf(handlers: ExpenseCommandHandlers, budgets: dict) -> None:
    events = handlers.handle_log_expense(
        _log(incurred_by="member-2"), generate_id(), "lead-1", budgets
    )

    assert events[0].payload["incurred_by"] == "member-2"
    assert events[0].payload["logged_by"] == "lead-1"


def test_log_not_capped_by_allocation(handlers: ExpenseCommandHandlers, budgets: dict) -> None:
    """Over-allocation spend is logged; reports flag it later"""
    events = handlers.handle_log_expense(_log("50000"), generate_id(), "lead-1", budgets)

    assert events[0].payload["amount"] == "50000"


@pytest.mark.parametrize("status", ["REQUESTED", "REJECTED", "CLOSED"])
def test_log_needs_approved_budget(handlers: ExpenseCommandHandlers, status: str) -> None:
    budgets = {EVENT_ID: create_budget_record(status)}

    with pytest.raises(BudgetNotApproved) as exc_info:
        handlers.handle_log_expense(_log(), generate_id(), "lead-1", budgets)

    assert exc_info.value.current_status == status


def test_log_needs_budget(handlers: ExpenseCommandHandlers) -> None:
    with pytest.raises(BudgetNotFound):
        handlers.handle_log_expense(_log(), generate_id(), "lead-1", {})


def test_log_needs_known_category(handlers: ExpenseCommandHandlers, budgets: dict) -> None:
    with pytest.raises(CategoryNotInBudget):
        handlers.handle_log_expense(_log(category="Travel"), generate_id(), "lead-1", budgets)


def test_amount_must_be_positive() -> None:
    with pytest.raises(ValueError):
        _log("0")
    with pytest.raises(ValueError):
        _log("-5")


# =============================================================================
# Status updates
# =============================================================================


def test_approve_expense(handlers: ExpenseCommandHandlers, budgets: dict) -> None:
    expenses = {"exp-1": create_expense_record()}

    events = handlers.handle_update_status(
        _update(ExpenseStatus.APPROVED), generate_id(), "admin-1", expenses, budgets
    )

    assert events[0].event_type == "ExpenseApproved"
    assert events[0].version == 2
    assert events[0].payload["approved_by"] == "admin-1"


@pytest.mark.parametrize(
    "status, event_type",
    [
        (ExpenseStatus.CHANGES_REQUESTED, "ExpenseChangesRequested"),
        (ExpenseStatus.REJECTED, "ExpenseRejected"),
    ],
)
def test_notes_required_for_pushback(
    handlers: ExpenseCommandHandlers, budgets: dict, status: ExpenseStatus, event_type: str
) -> None:
    expenses = {"exp-1": create_expense_record()}

    with pytest.raises(MissingNotes):
        handlers.handle_update_status(_update(status, "  "), generate_id(), "admin-1", expenses, budgets)

    events = handlers.handle_update_status(
        _update(status, "Receipt is unreadable"), generate_id(), "admin-1", expenses, budgets
    )
    assert events[0].event_type == event_type
    assert events[0].payload["admin_notes"] == "Receipt is unreadable"


def test_reimburse_approved_personal_spend(handlers: ExpenseCommandHandlers, budgets: dict) -> None:
    expenses = {"exp-1": create_expense_record(status="APPROVED", version=2)}

    events = handlers.handle_update_status(
        _update(ExpenseStatus.REIMBURSED), generate_id(), "admin-1", expenses, budgets
    )

    assert events[0].event_type == "ExpenseReimbursed"
    assert events[0].version == 3
    assert events[0].payload["incurred_by"] == "lead-1"
    assert events[0].payload["amount"] == "3000"


def test_admin_paid_is_not_reimbursable(handlers: ExpenseCommandHandlers, budgets: dict) -> None:
    expenses = {"exp-1": create_expense_record(status="APPROVED", expense_type="ADMIN_PAID")}

    with pytest.raises(NotReimbursable):
        handlers.handle_update_status(
            _update(ExpenseStatus.REIMBURSED), generate_id(), "admin-1", expenses, budgets
        )


def test_reimburse_requires_approval(handlers: ExpenseCommandHandlers, budgets: dict) -> None:
    expenses = {"exp-1": create_expense_record()}

    with pytest.raises(IllegalExpenseTransition):
        handlers.handle_update_status(
            _update(ExpenseStatus.REIMBURSED), generate_id(), "admin-1", expenses, budgets
        )


def test_setting_pending_is_illegal(handlers: ExpenseCommandHandlers, budgets: dict) -> None:
    expenses = {"exp-1": create_expense_record(status="CHANGES_REQUESTED")}

    with pytest.raises(IllegalExpenseTransition):
        handlers.handle_update_status(
            _update(ExpenseStatus.PENDING), generate_id(), "admin-1", expenses, budgets
        )


def test_update_unknown_expense(handlers: ExpenseCommandHandlers, budgets: dict) -> None:
    with pytest.raises(ExpenseNotFound):
        handlers.handle_update_status(
            _update(ExpenseStatus.APPROVED), generate_id(), "admin-1", {}, budgets
        )


def test_category_ceiling_when_enforced(test_time: FixedTimeProvider, budgets: dict) -> None:
    handlers = ExpenseCommandHandlers(test_time, FinancePolicy(enforce_category_ceiling=True))
    expenses = {
        "exp-0": create_expense_record("exp-0", status="APPROVED", amount="6000"),
        "exp-1": create_expense_record("exp-1", amount="3000"),
    }

    with pytest.raises(CategoryCeilingExceeded) as exc_info:
        handlers.handle_update_status(
            _update(ExpenseStatus.APPROVED), generate_id(), "admin-1", expenses, budgets
        )

    assert exc_info.value.allocated == "8000"
    assert exc_info.value.spent == "6000"


def test_spent_in_category_counts_approved_and_reimbursed() -> None:
    records = [
        create_expense_record("a", status="APPROVED", amount="100"),
        create_expense_record("b", status="REIMBURSED", amount="200"),
        create_expense_record("c", status="PENDING", amount="400"),
        create_expense_record("d", status="REJECTED", amount="800"),
        create_expense_record("e", status="APPROVED", amount="1600", category="Printing"),
    ]

    assert spent_in_category(records, EVENT_ID, "Food") == Decimal("300")
    assert spent_in_category(records, EVENT_ID, "Food", exclude_id="a") == Decimal("200")


# =============================================================================
# Resubmit
# =============================================================================


def test_resubmit_keeps_unchanged_fields(handlers: ExpenseCommandHandlers, budgets: dict) -> None:
    expenses = {"exp-1": create_expense_record(status="CHANGES_REQUESTED", version=2)}

    events = handlers.handle_resubmit_expense(
        ResubmitExpense(expense_id="exp-1", amount=Decimal("2500")),
        generate_id(),
        "lead-1",
        expenses,
        budgets,
    )

    payload = events[0].payload
    assert events[0].event_type == "ExpenseResubmitted"
    assert payload["amount"] == "2500"
    assert payload["category"] == "Food"
    assert payload["description"] == "Snacks"


def test_resubmit_only_after_changes_requested(
    handlers: ExpenseCommandHandlers, budgets: dict
) -> None:
    for status in ("PENDING", "APPROVED", "REJECTED", "REIMBURSED"):
        expenses = {"exp-1": create_expense_record(status=status)}
        with pytest.raises(IllegalExpenseTransition):
            handlers.handle_resubmit_expense(
                ResubmitExpense(expense_id="exp-1"), generate_id(), "lead-1", expenses, budgets
            )


def test_resubmit_needs_open_budget(handlers: ExpenseCommandHandlers) -> None:
    expenses = {"exp-1": create_expense_record(status="CHANGES_REQUESTED")}
    budgets = {EVENT_ID: create_budget_record("CLOSED")}

    with pytest.raises(BudgetNotApproved):
        handlers.handle_resubmit_expense(
            ResubmitExpense(expense_id="exp-1"), generate_id(), "lead-1", expenses, budgets
        )


def test_target_status() -> None:
    assert target_status("ExpenseResubmitted") == ExpenseStatus.PENDING
    assert target_status("ExpenseReimbursed") == ExpenseStatus.REIMBURSED
    assert target_status("BudgetClosed") is None


def test_expense_types() -> None:
    assert {t.value for t in ExpenseType} == {"PERSONAL_SPEND", "ADMIN_PAID"}
