"""
Audit Module Events

Audit entries are write-once, so a single event type carries the whole entry.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel

from eventsync_finance.audit.models import ActorType, EntityType, Severity


class AuditEntryRecorded(BaseModel):
    audit_id: str
    entity_type: EntityType
    entity_id: str
    event_id: str | None
    action_type: str
    actor_type: ActorType
    actor_id: str
    actor_name: str | None
    severity: Severity
    reason: str | None
    old_state: dict[str, Any] | None
    new_state: dict[str, Any] | None
    created_at: datetime


AUDIT_EVENT_TYPES = ["AuditEntryRecorded"]
