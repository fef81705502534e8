"""
In-process Event Bus

Synchronous pub/sub that fans committed events out to the projections that
care about them. The ledger registers each read model once per event type,
so a new projection only needs a subscription, not a change to the ledger.
"""

from collections import defaultdict
from typing import Callable

from eventsync_finance.kernel.events import Event
from eventsync_finance.kernel.logging import get_logger

logger = get_logger(__name__)

EventHandler = Callable[[Event], None]


class InProcessBus:
    """Simple synchronous in-process event bus"""

    def __init__(self) -> None:
        self._event_handlers: defaultdict[str, list[EventHandler]] = defaultdict(list)

    def subscribe(self, event_type: str, handler: EventHandler) -> None:
        """
        Register an event handler (can have multiple per event type)

        Args:
            event_type: Type of event to handle (e.g., "BudgetApproved")
            handler: Function that processes event (typically a projection's apply_event)
        """
        self._event_handlers[event_type].append(handler)
        logger.debug(
            "Event handler registered",
            event_type=event_type,
            total_handlers=len(self._event_handlers[event_type]),
        )

    def subscribe_all(self, event_types: list[str], handler: EventHandler) -> None:
        """Register one handler for several event types"""
        for event_type in event_types:
            self.subscribe(event_type, handler)

    def publish_event(self, event: Event) -> None:
        """
        Publish an event to all registered handlers

        Handlers are called synchronously in registration order. Projections
        are the only subscribers; an exception here means the read model is
        broken, so it propagates instead of being swallowed.
        """
        handlers = self._event_handlers.get(event.event_type, [])

        if not handlers:
            logger.debug(
                "No handlers registered for event type",
                event_type=event.event_type,
                event_id=event.event_id,
            )
            return

        for handler in handlers:
            handler(event)

    def publish_events(self, events: list[Event]) -> None:
        """Publish multiple events in order"""
        for event in events:
            self.publish_event(event)

    def registered_event_types(self) -> list[str]:
        """Event types with at least one subscriber"""
        return sorted(self._event_handlers.keys())
