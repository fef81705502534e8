"""
Access Module Handlers

One stream per event team (team-<event_id>); assignments and removals on
the same team are ordered by its version.
"""

from eventsync_finance.access.commands import AssignTeamMember, RemoveTeamMember
from eventsync_finance.access.events import TeamMemberAssigned, TeamMemberRemoved
from eventsync_finance.access.projections import TeamAccessRegistry
from eventsync_finance.kernel.errors import NotTeamMember
from eventsync_finance.kernel.events import Event, StreamType, create_event
from eventsync_finance.kernel.ids import generate_id, team_stream_id
from eventsync_finance.kernel.time import TimeProvider


class TeamCommandHandlers:
    """Command handlers for team membership"""

    def __init__(self, time_provider: TimeProvider) -> None:
        self.time_provider = time_provider

    def _event(
        self,
        event_id: str,
        event_type: str,
        command_id: str,
        actor_id: str,
        payload: dict,
        teams: TeamAccessRegistry,
    ) -> Event:
        return create_event(
            event_id=generate_id(),
            stream_id=team_stream_id(event_id),
            stream_type=StreamType.TEAM,
            event_type=event_type,
            occurred_at=self.time_provider.now(),
            command_id=command_id,
            actor_id=actor_id,
            payload=payload,
            version=teams.stream_version(event_id) + 1,
        )

    def handle_assign_team_member(
        self,
        command: AssignTeamMember,
        command_id: str,
        actor_id: str,
        teams: TeamAccessRegistry,
    ) -> list[Event]:
        payload = TeamMemberAssigned(
            event_id=command.event_id,
            user_id=command.user_id,
            permission_set=command.permission_set,
            assigned_by=actor_id,
            assigned_at=self.time_provider.now(),
        ).model_dump(mode="json")
        return [
            self._event(command.event_id, "TeamMemberAssigned", command_id, actor_id, payload, teams)
        ]

    def handle_remove_team_member(
        self,
        command: RemoveTeamMember,
        command_id: str,
        actor_id: str,
        teams: TeamAccessRegistry,
    ) -> list[Event]:
        """
        Raises:
            NotTeamMember: The user is not on the event team
        """
        if teams.get_member(command.event_id, command.user_id) is None:
            raise NotTeamMember(command.event_id, command.user_id)
        payload = TeamMemberRemoved(
            event_id=command.event_id,
            user_id=command.user_id,
            removed_by=actor_id,
            removed_at=self.time_provider.now(),
        ).model_dump(mode="json")
        return [
            self._event(command.event_id, "TeamMemberRemoved", command_id, actor_id, payload, teams)
        ]
