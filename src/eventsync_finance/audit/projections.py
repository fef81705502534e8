"""
Audit Module Projections

AuditTrail: every audit entry, indexed by entity, plus the set of entities a
destructive action has already been applied to.
"""

from eventsync_finance.audit.events import AUDIT_EVENT_TYPES
from eventsync_finance.audit.models import DESTRUCTIVE_ACTIONS, EntityType, Severity
from eventsync_finance.kernel.events import Event


class AuditTrail:
    """
    Audit projection

    Built from events: AuditEntryRecorded
    """

    event_types = AUDIT_EVENT_TYPES

    def __init__(self) -> None:
        self.entries: dict[str, dict] = {}
        self.invalidated: set[tuple[str, str]] = set()

    def apply_event(self, event: Event) -> None:
        if event.event_type != "AuditEntryRecorded":
            return
        entry = dict(event.payload)
        self.entries[entry["audit_id"]] = entry
        if entry["action_type"] in DESTRUCTIVE_ACTIONS:
            self.invalidated.add((entry["entity_type"], entry["entity_id"]))

    def get(self, audit_id: str) -> dict | None:
        return self.entries.get(audit_id)

    def is_invalidated(self, entity_type: EntityType, entity_id: str) -> bool:
        return (entity_type.value, entity_id) in self.invalidated

    def get_trail(self, entity_type: EntityType, entity_id: str) -> list[dict]:
        """Entries for one entity, newest first"""
        return sorted(
            (
                e
                for e in self.entries.values()
                if e["entity_type"] == entity_type.value and e["entity_id"] == entity_id
            ),
            key=lambda e: e["created_at"],
            reverse=True,
        )

    def list_entries(
        self, event_id: str | None = None, severity: Severity | None = None
    ) -> list[dict]:
        """Entries filtered by event and/or severity, newest first"""
        result = [
            e
            for e in self.entries.values()
            if (event_id is None or e["event_id"] == event_id)
            and (severity is None or e["severity"] == severity.value)
        ]
        return sorted(result, key=lambda e: e["created_at"], reverse=True)
