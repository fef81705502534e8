"""
Transaction Module Projections

TransactionBook: every ledger entry, indexed per event, plus running
credit and debit totals per (event, currency).
"""

from eventsync_finance.kernel.events import Event
from eventsync_finance.transactions.events import TRANSACTION_EVENT_TYPES
from eventsync_finance.transactions.models import DEFAULT_CURRENCY, Direction


class TransactionBook:
    """
    Ledger projection

    Built from events: TransactionRecorded, TransactionReversed
    """

    event_types = TRANSACTION_EVENT_TYPES

    def __init__(self) -> None:
        self.transactions: dict[str, dict] = {}
        self.by_event: dict[str, list[str]] = {}
        # ids of entries that a REVERSAL has undone
        self.reversed: set[str] = set()
        self._totals: dict[tuple[str, str], dict[str, int]] = {}
        self._versions: dict[str, int] = {}

    def apply_event(self, event: Event) -> None:
        if event.event_type not in TRANSACTION_EVENT_TYPES:
            return
        payload = event.payload
        record = {
            "transaction_id": payload["transaction_id"],
            "event_id": payload["event_id"],
            "direction": payload["direction"],
            "kind": payload["kind"],
            "amount_cents": payload["amount_cents"],
            "currency": payload["currency"],
            "note": payload["note"],
            "reason": payload["reason"],
            "metadata": payload["metadata"],
            "reference_transaction_id": payload.get("reference_transaction_id"),
            "recorded_by": payload["recorded_by"],
            "created_at": payload["created_at"],
        }
        self.transactions[record["transaction_id"]] = record
        self.by_event.setdefault(record["event_id"], []).append(record["transaction_id"])
        if record["reference_transaction_id"]:
            self.reversed.add(record["reference_transaction_id"])

        totals = self._totals.setdefault(
            (record["event_id"], record["currency"]), {"credits_cents": 0, "debits_cents": 0}
        )
        if record["direction"] == Direction.CREDIT.value:
            totals["credits_cents"] += record["amount_cents"]
        else:
            totals["debits_cents"] += record["amount_cents"]
        self._versions[record["event_id"]] = event.version

    def stream_version(self, event_id: str) -> int:
        return self._versions.get(event_id, 0)

    def get(self, transaction_id: str) -> dict | None:
        return self.transactions.get(transaction_id)

    def list_for_event(self, event_id: str, limit: int = 50) -> list[dict]:
        """Newest first; stream order breaks created_at ties"""
        ids = self.by_event.get(event_id, [])
        return [self.transactions[tid] for tid in reversed(ids)][:limit]

    def balance(self, event_id: str, currency: str = DEFAULT_CURRENCY) -> dict:
        """Credits minus debits in one currency; all zeros for an empty ledger"""
        totals = self._totals.get((event_id, currency), {"credits_cents": 0, "debits_cents": 0})
        return {
            "event_id": event_id,
            "currency": currency,
            "credits_cents": totals["credits_cents"],
            "debits_cents": totals["debits_cents"],
            "balance_cents": totals["credits_cents"] - totals["debits_cents"],
        }
