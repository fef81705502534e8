"""
Audit Module Commands
"""

from typing import Any

from pydantic import BaseModel, Field

from eventsync_finance.audit.models import EntityType, Severity


class InvalidateAttendance(BaseModel):
    attendance_id: str = Field(..., min_length=1)
    event_id: str | None = None
    reason: str = ""
    old_state: dict[str, Any] | None = None


class RevokeCertificate(BaseModel):
    certificate_id: str = Field(..., min_length=1)
    event_id: str | None = None
    reason: str = ""
    old_state: dict[str, Any] | None = None


class RecordAuditEntry(BaseModel):
    """Generic audit entry; CRITICAL entries must carry a valid reason"""

    entity_type: EntityType
    entity_id: str = Field(..., min_length=1)
    event_id: str | None = None
    action_type: str = Field(..., min_length=1)
    severity: Severity = Severity.INFO
    reason: str | None = None
    old_state: dict[str, Any] | None = None
    new_state: dict[str, Any] | None = None
