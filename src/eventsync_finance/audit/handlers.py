"""
Audit Module Handlers

Every entry is its own stream (stream_id == audit_id) and version 1.
"""

from typing import Any

from eventsync_finance.audit.commands import (
    InvalidateAttendance,
    RecordAuditEntry,
    RevokeCertificate,
)
from eventsync_finance.audit.events import AuditEntryRecorded
from eventsync_finance.audit.invariants import validate_not_already_invalidated, validate_reason
from eventsync_finance.audit.models import (
    ATTENDANCE_INVALIDATED,
    CERTIFICATE_REVOKED,
    DESTRUCTIVE_ACTIONS,
    ActorType,
    EntityType,
    Severity,
)
from eventsync_finance.kernel.events import Event, StreamType, create_event
from eventsync_finance.kernel.ids import generate_id
from eventsync_finance.kernel.policy import FinancePolicy
from eventsync_finance.kernel.time import TimeProvider


class AuditCommandHandlers:
    """Command handlers for the audit module"""

    def __init__(self, time_provider: TimeProvider, policy: FinancePolicy) -> None:
        self.time_provider = time_provider
        self.policy = policy

    def _entry(
        self,
        *,
        entity_type: EntityType,
        entity_id: str,
        event_id: str | None,
        action_type: str,
        severity: Severity,
        reason: str | None,
        old_state: dict[str, Any] | None,
        new_state: dict[str, Any] | None,
        command_id: str,
        actor_id: str,
        actor_type: ActorType,
        actor_name: str | None,
    ) -> list[Event]:
        now = self.time_provider.now()
        audit_id = generate_id()
        payload = AuditEntryRecorded(
            audit_id=audit_id,
            entity_type=entity_type,
            entity_id=entity_id,
            event_id=event_id,
            action_type=action_type,
            actor_type=actor_type,
            actor_id=actor_id,
            actor_name=actor_name,
            severity=severity,
            reason=reason,
            old_state=old_state,
            new_state=new_state,
            created_at=now,
        ).model_dump(mode="json")

        return [
            create_event(
                event_id=generate_id(),
                stream_id=audit_id,
                stream_type=StreamType.AUDIT,
                event_type="AuditEntryRecorded",
                occurred_at=now,
                command_id=command_id,
                actor_id=actor_id,
                payload=payload,
                version=1,
            )
        ]

    def handle_invalidate_attendance(
        self,
        command: InvalidateAttendance,
        command_id: str,
        actor_id: str,
        actor_type: ActorType,
        actor_name: str | None,
        invalidated: set[tuple[str, str]],
    ) -> list[Event]:
        """
        Handle InvalidateAttendance command

        Raises:
            ReasonTooShort: Trimmed reason shorter than the policy minimum
            EntityAlreadyInvalidated: Attendance was already invalidated
        """
        reason = validate_reason(command.reason, self.policy.min_destructive_reason_length)
        validate_not_already_invalidated(
            invalidated, EntityType.ATTENDANCE.value, command.attendance_id
        )
        return self._entry(
            entity_type=EntityType.ATTENDANCE,
            entity_id=command.attendance_id,
            event_id=command.event_id,
            action_type=ATTENDANCE_INVALIDATED,
            severity=Severity.CRITICAL,
            reason=reason,
            old_state=command.old_state,
            new_state={"status": "INVALIDATED", "reason": reason},
            command_id=command_id,
            actor_id=actor_id,
            actor_type=actor_type,
            actor_name=actor_name,
        )

    def handle_revoke_certificate(
        self,
        command: RevokeCertificate,
        command_id: str,
        actor_id: str,
        actor_type: ActorType,
        actor_name: str | None,
        invalidated: set[tuple[str, str]],
    ) -> list[Event]:
        """Handle RevokeCertificate command (same rules as invalidation)"""
        reason = validate_reason(command.reason, self.policy.min_destructive_reason_length)
        validate_not_already_invalidated(
            invalidated, EntityType.CERTIFICATE.value, command.certificate_id
        )
        return self._entry(
            entity_type=EntityType.CERTIFICATE,
            entity_id=command.certificate_id,
            event_id=command.event_id,
            action_type=CERTIFICATE_REVOKED,
            severity=Severity.CRITICAL,
            reason=reason,
            old_state=command.old_state,
            new_state={"status": "REVOKED", "reason": reason},
            command_id=command_id,
            actor_id=actor_id,
            actor_type=actor_type,
            actor_name=actor_name,
        )

    def handle_record_audit_entry(
        self,
        command: RecordAuditEntry,
        command_id: str,
        actor_id: str,
        actor_type: ActorType,
        actor_name: str | None,
        invalidated: set[tuple[str, str]],
    ) -> list[Event]:
        """
        Handle RecordAuditEntry command

        CRITICAL entries and destructive action types go through the same
        reason and once-only checks as the dedicated commands.
        """
        reason = command.reason.strip() if command.reason else None
        if command.severity == Severity.CRITICAL or command.action_type in DESTRUCTIVE_ACTIONS:
            reason = validate_reason(command.reason, self.policy.min_destructive_reason_length)
        if command.action_type in DESTRUCTIVE_ACTIONS:
            validate_not_already_invalidated(
                invalidated, command.entity_type.value, command.entity_id
            )
        return self._entry(
            entity_type=command.entity_type,
            entity_id=command.entity_id,
            event_id=command.event_id,
            action_type=command.action_type,
            severity=command.severity,
            reason=reason,
            old_state=command.old_state,
            new_state=command.new_state,
            command_id=command_id,
            actor_id=actor_id,
            actor_type=actor_type,
            actor_name=actor_name,
        )
