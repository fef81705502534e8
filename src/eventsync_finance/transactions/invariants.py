"""
Transaction Module Invariants
"""

from eventsync_finance.kernel.errors import (
    MissingNotes,
    TransactionNotFound,
    TransactionNotReversible,
)
from eventsync_finance.transactions.models import REVERSAL_KIND


def validate_reversal_reason(reason: str | None) -> str:
    """Return the trimmed reason, or raise MissingNotes when it is blank"""
    trimmed = (reason or "").strip()
    if not trimmed:
        raise MissingNotes("reason")
    return trimmed


def validate_reversible(
    transaction: dict | None, transaction_id: str, reversed_ids: set[str]
) -> dict:
    """
    An entry can be reversed once, and a reversal is never reversed itself

    Returns:
        The transaction record

    Raises:
        TransactionNotFound: No such transaction
        TransactionNotReversible: Already reversed, or a REVERSAL entry
    """
    if transaction is None:
        raise TransactionNotFound(transaction_id)
    if transaction["kind"] == REVERSAL_KIND:
        raise TransactionNotReversible(transaction_id, "a reversal")
    if transaction_id in reversed_ids:
        raise TransactionNotReversible(transaction_id, "already reversed")
    return transaction
