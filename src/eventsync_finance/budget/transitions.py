"""
Budget state machine

The table below is the only place budget statuses change. Every
(status, action) pair that is not listed is illegal, and asking for it raises
IllegalBudgetTransition naming both.
"""

from enum import Enum

from eventsync_finance.budget.models import BudgetStatus
from eventsync_finance.kernel.errors import IllegalBudgetTransition


class BudgetAction(str, Enum):
    REQUEST = "REQUEST"
    APPROVE = "APPROVE"
    PARTIALLY_APPROVE = "PARTIALLY_APPROVE"
    REJECT = "REJECT"
    REQUEST_AMENDMENT = "REQUEST_AMENDMENT"
    REVIEW_AMENDMENT = "REVIEW_AMENDMENT"
    CLOSE = "CLOSE"


_S = BudgetStatus
_A = BudgetAction

BUDGET_TRANSITIONS: dict[tuple[BudgetStatus, BudgetAction], BudgetStatus] = {
    # Request / re-request
    (_S.DRAFT, _A.REQUEST): _S.REQUESTED,
    (_S.REQUESTED, _A.REQUEST): _S.REQUESTED,
    (_S.REJECTED, _A.REQUEST): _S.REQUESTED,
    # Admin decision, once per request cycle
    (_S.REQUESTED, _A.APPROVE): _S.APPROVED,
    (_S.REQUESTED, _A.PARTIALLY_APPROVE): _S.PARTIALLY_APPROVED,
    (_S.REQUESTED, _A.REJECT): _S.REJECTED,
    # Amendments leave the status alone
    (_S.APPROVED, _A.REQUEST_AMENDMENT): _S.APPROVED,
    (_S.PARTIALLY_APPROVED, _A.REQUEST_AMENDMENT): _S.PARTIALLY_APPROVED,
    (_S.APPROVED, _A.REVIEW_AMENDMENT): _S.APPROVED,
    (_S.PARTIALLY_APPROVED, _A.REVIEW_AMENDMENT): _S.PARTIALLY_APPROVED,
    # Close
    (_S.APPROVED, _A.CLOSE): _S.CLOSED,
    (_S.PARTIALLY_APPROVED, _A.CLOSE): _S.CLOSED,
}


def next_budget_status(current: BudgetStatus, action: BudgetAction) -> BudgetStatus:
    """
    Resolve the status a budget moves to

    Raises:
        IllegalBudgetTransition: If the table has no edge for (current, action)
    """
    try:
        return BUDGET_TRANSITIONS[(current, action)]
    except KeyError:
        raise IllegalBudgetTransition(current.value, action.value) from None


def can_transition(current: BudgetStatus, action: BudgetAction) -> bool:
    return (current, action) in BUDGET_TRANSITIONS


def action_for_decision(status: BudgetStatus) -> BudgetAction:
    """Map the status an admin asks for to the action that produces it"""
    mapping = {
        BudgetStatus.APPROVED: BudgetAction.APPROVE,
        BudgetStatus.PARTIALLY_APPROVED: BudgetAction.PARTIALLY_APPROVE,
        BudgetStatus.REJECTED: BudgetAction.REJECT,
    }
    if status not in mapping:
        raise IllegalBudgetTransition(BudgetStatus.REQUESTED.value, f"decide {status.value} on")
    return mapping[status]
