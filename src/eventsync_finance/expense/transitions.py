"""
Expense state machine

Same shape as the budget table: listed pairs are legal, everything else
raises IllegalExpenseTransition.
"""

from enum import Enum

from eventsync_finance.expense.models import ExpenseStatus
from eventsync_finance.kernel.errors import IllegalExpenseTransition


class ExpenseAction(str, Enum):
    APPROVE = "APPROVE"
    REQUEST_CHANGES = "REQUEST_CHANGES"
    REJECT = "REJECT"
    REIMBURSE = "REIMBURSE"
    RESUBMIT = "RESUBMIT"


EXPENSE_TRANSITIONS: dict[tuple[ExpenseStatus, ExpenseAction], ExpenseStatus] = {
    (ExpenseStatus.PENDING, ExpenseAction.APPROVE): ExpenseStatus.APPROVED,
    (ExpenseStatus.PENDING, ExpenseAction.REQUEST_CHANGES): ExpenseStatus.CHANGES_REQUESTED,
    (ExpenseStatus.PENDING, ExpenseAction.REJECT): ExpenseStatus.REJECTED,
    (ExpenseStatus.APPROVED, ExpenseAction.REIMBURSE): ExpenseStatus.REIMBURSED,
    (ExpenseStatus.CHANGES_REQUESTED, ExpenseAction.RESUBMIT): ExpenseStatus.PENDING,
}

# Target status an admin sets → action that reaches it
STATUS_ACTIONS: dict[ExpenseStatus, ExpenseAction] = {
    ExpenseStatus.APPROVED: ExpenseAction.APPROVE,
    ExpenseStatus.CHANGES_REQUESTED: ExpenseAction.REQUEST_CHANGES,
    ExpenseStatus.REJECTED: ExpenseAction.REJECT,
    ExpenseStatus.REIMBURSED: ExpenseAction.REIMBURSE,
}


def next_expense_status(current: ExpenseStatus, action: ExpenseAction) -> ExpenseStatus:
    """
    Resolve the status an expense moves to

    Raises:
        IllegalExpenseTransition: If the table has no edge for (current, action)
    """
    try:
        return EXPENSE_TRANSITIONS[(current, action)]
    except KeyError:
        raise IllegalExpenseTransition(current.value, action.value) from None


def action_for_status(current: ExpenseStatus, target: ExpenseStatus) -> ExpenseAction:
    """Action an admin status update stands for; PENDING is only reachable by resubmit"""
    action = STATUS_ACTIONS.get(target)
    if action is None:
        raise IllegalExpenseTransition(current.value, f"set {target.value} on")
    return action
