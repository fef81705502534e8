"""
Event ledger endpoints: record, reverse, balance, history.

Open to admins and to the team lead of the event; the ledger checks which.
"""

from flask import Blueprint, Response, g, request

from eventsync_finance.api.app import current_ledger, ok
from eventsync_finance.api.auth import require_session
from eventsync_finance.api.schemas import ReversalBody, TransactionBody
from eventsync_finance.transactions.models import DEFAULT_CURRENCY

transactions_bp = Blueprint("transactions", __name__)


@transactions_bp.post("/transactions")
@require_session
def record_transaction() -> tuple[Response, int]:
    body = TransactionBody.model_validate(request.get_json(silent=True) or {})
    transaction = current_ledger().record_transaction(
        g.session,
        body.event_id,
        body.direction,
        body.kind,
        body.amount_cents,
        currency=body.currency,
        note=body.note,
        reason=body.reason,
        metadata=body.metadata,
    )
    return ok(transaction, "Transaction recorded", 201)


@transactions_bp.post("/transactions/<transaction_id>/reverse")
@require_session
def reverse_transaction(transaction_id: str) -> tuple[Response, int]:
    body = ReversalBody.model_validate(request.get_json(silent=True) or {})
    reversal = current_ledger().reverse_transaction(g.session, transaction_id, body.reason)
    return ok(reversal, "Transaction reversed", 201)


@transactions_bp.get("/events/<event_id>/balance")
@require_session
def event_balance(event_id: str) -> tuple[Response, int]:
    currency = request.args.get("currency") or DEFAULT_CURRENCY
    return ok(current_ledger().get_event_balance(g.session, event_id, currency))


@transactions_bp.get("/events/<event_id>/transactions")
@require_session
def event_transactions(event_id: str) -> tuple[Response, int]:
    limit = request.args.get("limit", 50, type=int)
    return ok(current_ledger().list_transactions(g.session, event_id, limit))
