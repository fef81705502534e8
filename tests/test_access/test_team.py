"""
Tests for team membership handlers and the TeamAccessRegistry projection
"""

import pytest

from eventsync_finance.access.commands import AssignTeamMember, RemoveTeamMember
from eventsync_finance.access.handlers import TeamCommandHandlers
from eventsync_finance.access.models import PermissionKey, PermissionSet
from eventsync_finance.access.projections import TeamAccessRegistry
from eventsync_finance.kernel.errors import NotTeamMember
from eventsync_finance.kernel.ids import generate_id
from eventsync_finance.kernel.time import FixedTimeProvider
from helpers import EVENT_ID


@pytest.fixture
def teams() -> TeamAccessRegistry:
    return TeamAccessRegistry()


@pytest.fixture
def handlers(test_time: FixedTimeProvider) -> TeamCommandHandlers:
    return TeamCommandHandlers(test_time)


def _assign(
    handlers: TeamCommandHandlers,
    teams: TeamAccessRegistry,
    user_id: str,
    permission_set: PermissionSet | None = None,
    event_id: str = EVENT_ID,
) -> None:
    command = AssignTeamMember(
        event_id=event_id,
        user_id=user_id,
        permission_set=permission_set or PermissionSet(),
    )
    for event in handlers.handle_assign_team_member(command, generate_id(), "admin-1", teams):
        teams.apply_event(event)


def test_permission_set_lead_holds_everything() -> None:
    lead = PermissionSet(is_team_lead=True)

    assert all(lead.has(key) for key in PermissionKey)
    effective = lead.effective()
    assert effective.can_manage_team
    assert effective.can_view_logs
    assert effective.can_manage_speakers


def test_permission_set_member_only_granted_keys() -> None:
    member = PermissionSet(permissions={PermissionKey.CAN_SEND_EMAILS: True})

    assert member.has(PermissionKey.CAN_SEND_EMAILS)
    assert not member.has(PermissionKey.CAN_EDIT_EVENT)
    assert member.effective() is member


def test_assign_creates_team_stream(handlers: TeamCommandHandlers, teams: TeamAccessRegistry) -> None:
    command = AssignTeamMember(event_id=EVENT_ID, user_id="member-1")

    events = handlers.handle_assign_team_member(command, generate_id(), "admin-1", teams)

    assert events[0].stream_id == f"team-{EVENT_ID}"
    assert events[0].stream_type == "team"
    assert events[0].version == 1
    assert events[0].payload["assigned_by"] == "admin-1"


def test_versions_increase_per_team(handlers: TeamCommandHandlers, teams: TeamAccessRegistry) -> None:
    _assign(handlers, teams, "member-1")
    _assign(handlers, teams, "member-2")
    _assign(handlers, teams, "member-3", event_id="evt-other")

    assert teams.stream_version(EVENT_ID) == 2
    assert teams.stream_version("evt-other") == 1
    assert teams.stream_version("evt-unknown") == 0


def test_reassign_replaces_permissions(
    handlers: TeamCommandHandlers, teams: TeamAccessRegistry
) -> None:
    _assign(handlers, teams, "member-1")
    assert not teams.has_permission(EVENT_ID, "member-1", PermissionKey.CAN_MANAGE_ATTENDANCE)

    _assign(
        handlers,
        teams,
        "member-1",
        PermissionSet(permissions={PermissionKey.CAN_MANAGE_ATTENDANCE: True}),
    )

    assert teams.has_permission(EVENT_ID, "member-1", PermissionKey.CAN_MANAGE_ATTENDANCE)
    assert len(teams.list_members(EVENT_ID)) == 1


def test_lead_and_membership_queries(
    handlers: TeamCommandHandlers, teams: TeamAccessRegistry
) -> None:
    _assign(handlers, teams, "lead-1", PermissionSet(is_team_lead=True))
    _assign(handlers, teams, "lead-1", PermissionSet(), event_id="evt-other")

    assert teams.is_team_lead(EVENT_ID, "lead-1")
    assert not teams.is_team_lead("evt-other", "lead-1")
    assert not teams.is_team_lead(EVENT_ID, "stranger")
    assert sorted(teams.events_for_user("lead-1")) == sorted([EVENT_ID, "evt-other"])
    assert teams.permissions_for(EVENT_ID, "lead-1").is_team_lead


def test_permissions_for_non_member(teams: TeamAccessRegistry) -> None:
    with pytest.raises(NotTeamMember):
        teams.permissions_for(EVENT_ID, "stranger")

    assert not teams.has_permission(EVENT_ID, "stranger", PermissionKey.CAN_EDIT_EVENT)


def test_remove_member(handlers: TeamCommandHandlers, teams: TeamAccessRegistry) -> None:
    _assign(handlers, teams, "member-1")

    events = handlers.handle_remove_team_member(
        RemoveTeamMember(event_id=EVENT_ID, user_id="member-1"), generate_id(), "admin-1", teams
    )
    for event in events:
        teams.apply_event(event)

    assert events[0].version == 2
    assert not teams.is_member(EVENT_ID, "member-1")
    assert teams.stream_version(EVENT_ID) == 2


def test_remove_non_member(handlers: TeamCommandHandlers, teams: TeamAccessRegistry) -> None:
    with pytest.raises(NotTeamMember):
        handlers.handle_remove_team_member(
            RemoveTeamMember(event_id=EVENT_ID, user_id="ghost"), generate_id(), "admin-1", teams
        )
