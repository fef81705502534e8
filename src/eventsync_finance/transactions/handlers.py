"""
Transaction Module Handlers

One stream per event ledger (ledger-<event_id>). A reversal is appended to
the same stream as the entry it undoes, so the stream version orders both
and two admins cannot reverse the same entry concurrently.
"""

from eventsync_finance.kernel.events import Event, StreamType, create_event
from eventsync_finance.kernel.ids import generate_id, transaction_stream_id
from eventsync_finance.kernel.time import TimeProvider
from eventsync_finance.transactions.commands import RecordTransaction, ReverseTransaction
from eventsync_finance.transactions.events import TransactionRecorded, TransactionReversed
from eventsync_finance.transactions.invariants import (
    validate_reversal_reason,
    validate_reversible,
)
from eventsync_finance.transactions.models import REVERSAL_KIND, Transaction
from eventsync_finance.transactions.projections import TransactionBook


class TransactionCommandHandlers:
    """Command handlers for event ledgers"""

    def __init__(self, time_provider: TimeProvider) -> None:
        self.time_provider = time_provider

    def _event(
        self,
        event_id: str,
        event_type: str,
        command_id: str,
        actor_id: str,
        payload: dict,
        book: TransactionBook,
    ) -> Event:
        return create_event(
            event_id=generate_id(),
            stream_id=transaction_stream_id(event_id),
            stream_type=StreamType.TRANSACTION,
            event_type=event_type,
            occurred_at=self.time_provider.now(),
            command_id=command_id,
            actor_id=actor_id,
            payload=payload,
            version=book.stream_version(event_id) + 1,
        )

    def handle_record_transaction(
        self,
        command: RecordTransaction,
        command_id: str,
        actor_id: str,
        book: TransactionBook,
    ) -> list[Event]:
        payload = TransactionRecorded(
            transaction_id=generate_id(),
            event_id=command.event_id,
            direction=command.direction,
            kind=command.kind,
            amount_cents=command.amount_cents,
            currency=command.currency,
            note=command.note or None,
            reason=command.reason or None,
            metadata=command.metadata,
            recorded_by=actor_id,
            created_at=self.time_provider.now(),
        ).model_dump(mode="json")
        return [
            self._event(command.event_id, "TransactionRecorded", command_id, actor_id, payload, book)
        ]

    def handle_reverse_transaction(
        self,
        command: ReverseTransaction,
        command_id: str,
        actor_id: str,
        book: TransactionBook,
    ) -> list[Event]:
        """
        Handle ReverseTransaction command

        The reversal moves the same amount in the opposite direction, so the
        event balance returns to what it was before the original entry.

        Raises:
            MissingNotes: Blank reason
            TransactionNotFound: No such transaction
            TransactionNotReversible: Already reversed, or itself a reversal
        """
        reason = validate_reversal_reason(command.reason)
        record = validate_reversible(
            book.get(command.transaction_id), command.transaction_id, book.reversed
        )
        original = Transaction.model_validate(record)

        payload = TransactionReversed(
            transaction_id=generate_id(),
            event_id=original.event_id,
            direction=original.direction.opposite(),
            kind=REVERSAL_KIND,
            amount_cents=original.amount_cents,
            currency=original.currency,
            note=f"Reversal of {original.transaction_id}",
            reason=reason,
            metadata={"reversalOf": original.transaction_id},
            reference_transaction_id=original.transaction_id,
            recorded_by=actor_id,
            created_at=self.time_provider.now(),
        ).model_dump(mode="json")
        return [
            self._event(original.event_id, "TransactionReversed", command_id, actor_id, payload, book)
        ]
