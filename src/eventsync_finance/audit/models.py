"""
Audit Domain Models
"""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class EntityType(str, Enum):
    ATTENDANCE = "ATTENDANCE"
    CERTIFICATE = "CERTIFICATE"
    BUDGET = "BUDGET"
    EXPENSE = "EXPENSE"
    TEAM = "TEAM"
    TRANSACTION = "TRANSACTION"


class ActorType(str, Enum):
    ADMIN = "ADMIN"
    ORGANIZER = "ORGANIZER"
    SYSTEM = "SYSTEM"


class Severity(str, Enum):
    INFO = "INFO"
    WARNING = "WARNING"
    CRITICAL = "CRITICAL"


# Action types that make an entity unusable; each may happen once per entity
ATTENDANCE_INVALIDATED = "ATTENDANCE_INVALIDATED"
CERTIFICATE_REVOKED = "CERTIFICATE_REVOKED"
DESTRUCTIVE_ACTIONS = {ATTENDANCE_INVALIDATED, CERTIFICATE_REVOKED}


class AuditEntry(BaseModel):
    """
    One audit record

    old_state and new_state are free-form snapshots of the entity before and
    after the action; they are stored as given.
    """

    audit_id: str
    entity_type: EntityType
    entity_id: str
    event_id: str | None = None
    action_type: str
    actor_type: ActorType
    actor_id: str
    actor_name: str | None = None
    severity: Severity
    reason: str | None = None
    old_state: dict[str, Any] | None = None
    new_state: dict[str, Any] | None = None
    created_at: datetime

    model_config = {
        "frozen": True,
        "json_schema_extra": {
            "examples": [
                {
                    "audit_id": "01908e9a-3b87-7000-8000-123456789abc",
                    "entity_type": "ATTENDANCE",
                    "entity_id": "att-7",
                    "event_id": "evt-42",
                    "action_type": "ATTENDANCE_INVALIDATED",
                    "actor_type": "ADMIN",
                    "actor_id": "admin-1",
                    "severity": "CRITICAL",
                    "reason": "Duplicate QR scan from another device",
                    "old_state": {"status": "PRESENT"},
                    "new_state": {"status": "INVALIDATED"},
                    "created_at": "2025-01-15T10:30:00Z",
                }
            ]
        },
    }
