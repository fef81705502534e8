"""
Expense Module Handlers - Command→Event transformation

Each expense is its own stream (stream_id == expense_id), so every status
change commits atomically and independently of other expenses.
"""

from eventsync_finance.budget.invariants import validate_notes_present
from eventsync_finance.expense.commands import (
    LogExpense,
    ResubmitExpense,
    UpdateExpenseStatus,
)
from eventsync_finance.expense.events import (
    ExpenseApproved,
    ExpenseChangesRequested,
    ExpenseLogged,
    ExpenseReimbursed,
    ExpenseRejected,
    ExpenseResubmitted,
)
from eventsync_finance.expense.invariants import (
    spent_in_category,
    validate_budget_accepts_expenses,
    validate_category_ceiling,
    validate_category_in_budget,
    validate_reimbursable,
)
from eventsync_finance.expense.models import Expense, ExpenseStatus, expense_from_record
from eventsync_finance.expense.transitions import (
    ExpenseAction,
    action_for_status,
    next_expense_status,
)
from eventsync_finance.kernel.errors import ExpenseNotFound
from eventsync_finance.kernel.events import Event, StreamType, create_event
from eventsync_finance.kernel.ids import generate_id
from eventsync_finance.kernel.policy import FinancePolicy
from eventsync_finance.kernel.time import TimeProvider


class ExpenseCommandHandlers:
    """Command handlers for the expense module"""

    def __init__(self, time_provider: TimeProvider, policy: FinancePolicy) -> None:
        self.time_provider = time_provider
        self.policy = policy

    def _load(self, expense_id: str, expenses: dict) -> Expense:
        record = expenses.get(expense_id)
        if record is None:
            raise ExpenseNotFound(expense_id)
        return expense_from_record(record)

    def _event(
        self,
        expense_id: str,
        version: int,
        event_type: str,
        command_id: str,
        actor_id: str,
        payload: dict,
    ) -> Event:
        return create_event(
            event_id=generate_id(),
            stream_id=expense_id,
            stream_type=StreamType.EXPENSE,
            event_type=event_type,
            occurred_at=self.time_provider.now(),
            command_id=command_id,
            actor_id=actor_id,
            payload=payload,
            version=version + 1,
        )

    def handle_log_expense(
        self,
        command: LogExpense,
        command_id: str,
        actor_id: str,
        budgets: dict,
    ) -> list[Event]:
        """
        Handle LogExpense command

        Validates:
        - Budget exists and is APPROVED or PARTIALLY_APPROVED
        - Category is one of the budget's categories

        Amount against remaining allocation is not checked here;
        over-budget reports surface overruns.
        """
        now = self.time_provider.now()
        budget = validate_budget_accepts_expenses(budgets.get(command.event_id), command.event_id)
        validate_category_in_budget(budget, command.category)

        expense_id = generate_id()
        payload = ExpenseLogged(
            expense_id=expense_id,
            event_id=command.event_id,
            budget_id=budget["budget_id"],
            category=command.category,
            amount=command.amount,
            type=command.type,
            description=command.description.strip(),
            receipt_url=command.receipt_url,
            incurred_by=command.incurred_by or actor_id,
            logged_by=actor_id,
            logged_at=now,
        ).model_dump(mode="json")
        return [self._event(expense_id, 0, "ExpenseLogged", command_id, actor_id, payload)]

    def handle_update_status(
        self,
        command: UpdateExpenseStatus,
        command_id: str,
        actor_id: str,
        expenses: dict,
        budgets: dict,
    ) -> list[Event]:
        """
        Handle UpdateExpenseStatus command

        - CHANGES_REQUESTED and REJECTED need non-blank admin notes
        - REIMBURSED needs an APPROVED PERSONAL_SPEND expense
        - APPROVED is capped by the category allocation when the policy says so
        """
        now = self.time_provider.now()
        expense = self._load(command.expense_id, expenses)
        action = action_for_status(expense.status, command.status)
        next_expense_status(expense.status, action)
        notes = command.admin_notes.strip() if command.admin_notes else None

        if action == ExpenseAction.APPROVE:
            if self.policy.enforce_category_ceiling:
                budget = validate_budget_accepts_expenses(
                    budgets.get(expense.event_id), expense.event_id
                )
                line = validate_category_in_budget(budget, expense.category)
                validate_category_ceiling(
                    expense,
                    line["allocated_amount"],
                    spent_in_category(
                        expenses.values(),
                        expense.event_id,
                        expense.category,
                        exclude_id=expense.expense_id,
                    ),
                )
            event_type = "ExpenseApproved"
            payload = ExpenseApproved(
                expense_id=expense.expense_id,
                event_id=expense.event_id,
                admin_notes=notes,
                approved_by=actor_id,
                approved_at=now,
            ).model_dump(mode="json")

        elif action == ExpenseAction.REQUEST_CHANGES:
            event_type = "ExpenseChangesRequested"
            payload = ExpenseChangesRequested(
                expense_id=expense.expense_id,
                event_id=expense.event_id,
                admin_notes=validate_notes_present(command.admin_notes, "Admin notes"),
                requested_by=actor_id,
                requested_at=now,
            ).model_dump(mode="json")

        elif action == ExpenseAction.REJECT:
            event_type = "ExpenseRejected"
            payload = ExpenseRejected(
                expense_id=expense.expense_id,
                event_id=expense.event_id,
                admin_notes=validate_notes_present(command.admin_notes, "Admin notes"),
                rejected_by=actor_id,
                rejected_at=now,
            ).model_dump(mode="json")

        else:
            validate_reimbursable(expense)
            event_type = "ExpenseReimbursed"
            payload = ExpenseReimbursed(
                expense_id=expense.expense_id,
                event_id=expense.event_id,
                incurred_by=expense.incurred_by,
                amount=expense.amount,
                admin_notes=notes,
                reimbursed_by=actor_id,
                reimbursed_at=now,
            ).model_dump(mode="json")

        return [
            self._event(expense.expense_id, expense.version, event_type, command_id, actor_id, payload)
        ]

    def handle_resubmit_expense(
        self,
        command: ResubmitExpense,
        command_id: str,
        actor_id: str,
        expenses: dict,
        budgets: dict,
    ) -> list[Event]:
        """
        Handle ResubmitExpense command (CHANGES_REQUESTED → PENDING)

        The budget must still accept expenses and a changed category must
        exist in it.
        """
        now = self.time_provider.now()
        expense = self._load(command.expense_id, expenses)
        next_expense_status(expense.status, ExpenseAction.RESUBMIT)

        budget = validate_budget_accepts_expenses(budgets.get(expense.event_id), expense.event_id)
        category = command.category or expense.category
        validate_category_in_budget(budget, category)

        payload = ExpenseResubmitted(
            expense_id=expense.expense_id,
            event_id=expense.event_id,
            category=category,
            amount=command.amount if command.amount is not None else expense.amount,
            description=(
                command.description.strip()
                if command.description is not None
                else expense.description
            ),
            receipt_url=command.receipt_url if command.receipt_url is not None else expense.receipt_url,
            resubmitted_by=actor_id,
            resubmitted_at=now,
        ).model_dump(mode="json")
        return [
            self._event(
                expense.expense_id, expense.version, "ExpenseResubmitted", command_id, actor_id, payload
            )
        ]


def target_status(event_type: str) -> ExpenseStatus | None:
    """Status an expense event leaves the expense in"""
    return {
        "ExpenseLogged": ExpenseStatus.PENDING,
        "ExpenseApproved": ExpenseStatus.APPROVED,
        "ExpenseChangesRequested": ExpenseStatus.CHANGES_REQUESTED,
        "ExpenseRejected": ExpenseStatus.REJECTED,
        "ExpenseReimbursed": ExpenseStatus.REIMBURSED,
        "ExpenseResubmitted": ExpenseStatus.PENDING,
    }.get(event_type)
