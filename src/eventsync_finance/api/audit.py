"""
Audit endpoints: destructive actions and trail queries.
"""

from flask import Blueprint, Response, g, request

from eventsync_finance.api.app import current_ledger, ok
from eventsync_finance.api.auth import require_session
from eventsync_finance.api.schemas import DestructiveActionBody

audit_bp = Blueprint("audit", __name__)


@audit_bp.post("/attendance/<attendance_id>/invalidate")
@require_session
def invalidate_attendance(attendance_id: str) -> tuple[Response, int]:
    body = DestructiveActionBody.model_validate(request.get_json(silent=True) or {})
    entry = current_ledger().invalidate_attendance(
        g.session,
        attendance_id,
        body.reason,
        event_id=body.event_id,
        old_state=body.old_state,
    )
    return ok(entry, "Attendance invalidated", 201)


@audit_bp.post("/certificates/<certificate_id>/revoke")
@require_session
def revoke_certificate(certificate_id: str) -> tuple[Response, int]:
    body = DestructiveActionBody.model_validate(request.get_json(silent=True) or {})
    entry = current_ledger().revoke_certificate(
        g.session,
        certificate_id,
        body.reason,
        event_id=body.event_id,
        old_state=body.old_state,
    )
    return ok(entry, "Certificate revoked", 201)


@audit_bp.get("/<entity_type>/<entity_id>")
@require_session
def audit_trail(entity_type: str, entity_id: str) -> tuple[Response, int]:
    return ok(current_ledger().get_audit_trail(g.session, entity_type.upper(), entity_id))
