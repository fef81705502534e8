"""
Team access endpoints.
"""

from flask import Blueprint, Response, g, request

from eventsync_finance.api.app import current_ledger, ok
from eventsync_finance.api.auth import require_session
from eventsync_finance.api.schemas import TeamMemberBody

access_bp = Blueprint("access", __name__)


@access_bp.put("/<event_id>/members/<user_id>")
@require_session
def assign_member(event_id: str, user_id: str) -> tuple[Response, int]:
    body = TeamMemberBody.model_validate(request.get_json(silent=True) or {})
    member = current_ledger().assign_team_member(
        g.session, event_id, user_id, body.to_permission_set()
    )
    return ok(member, "Team member assigned")


@access_bp.delete("/<event_id>/members/<user_id>")
@require_session
def remove_member(event_id: str, user_id: str) -> tuple[Response, int]:
    current_ledger().remove_team_member(g.session, event_id, user_id)
    return ok(None, "Team member removed")


@access_bp.get("/<event_id>/members")
@require_session
def list_members(event_id: str) -> tuple[Response, int]:
    return ok(current_ledger().list_team_members(g.session, event_id))


@access_bp.get("/<event_id>/me")
@require_session
def my_permissions(event_id: str) -> tuple[Response, int]:
    permissions = current_ledger().get_my_permissions(g.session, event_id)
    return ok(permissions.model_dump(mode="json"))
