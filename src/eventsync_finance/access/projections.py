"""
Access Module Projections

TeamAccessRegistry: current team of every event and each member's
permission set.
"""

from eventsync_finance.access.events import TEAM_EVENT_TYPES
from eventsync_finance.access.models import PermissionKey, PermissionSet
from eventsync_finance.kernel.errors import NotTeamMember
from eventsync_finance.kernel.events import Event


class TeamAccessRegistry:
    """
    Team projection, keyed by event_id then user_id

    Built from events: TeamMemberAssigned, TeamMemberRemoved
    """

    event_types = TEAM_EVENT_TYPES

    def __init__(self) -> None:
        self.teams: dict[str, dict[str, dict]] = {}
        self._versions: dict[str, int] = {}

    def apply_event(self, event: Event) -> None:
        payload = event.payload
        event_id = payload["event_id"]
        if event.event_type == "TeamMemberAssigned":
            self.teams.setdefault(event_id, {})[payload["user_id"]] = {
                "event_id": event_id,
                "user_id": payload["user_id"],
                "permission_set": payload["permission_set"],
                "assigned_by": payload["assigned_by"],
                "assigned_at": payload["assigned_at"],
            }
        elif event.event_type == "TeamMemberRemoved":
            self.teams.get(event_id, {}).pop(payload["user_id"], None)
        else:
            return
        self._versions[event_id] = event.version

    def stream_version(self, event_id: str) -> int:
        return self._versions.get(event_id, 0)

    def get_member(self, event_id: str, user_id: str) -> dict | None:
        return self.teams.get(event_id, {}).get(user_id)

    def list_members(self, event_id: str) -> list[dict]:
        return list(self.teams.get(event_id, {}).values())

    def is_member(self, event_id: str, user_id: str) -> bool:
        return self.get_member(event_id, user_id) is not None

    def permissions_for(self, event_id: str, user_id: str) -> PermissionSet:
        """
        Raises:
            NotTeamMember: The user has no assignment on the event
        """
        member = self.get_member(event_id, user_id)
        if member is None:
            raise NotTeamMember(event_id, user_id)
        return PermissionSet.model_validate(member["permission_set"])

    def is_team_lead(self, event_id: str, user_id: str) -> bool:
        member = self.get_member(event_id, user_id)
        return bool(member and member["permission_set"].get("is_team_lead"))

    def has_permission(self, event_id: str, user_id: str, key: PermissionKey) -> bool:
        if not self.is_member(event_id, user_id):
            return False
        return self.permissions_for(event_id, user_id).has(key)

    def events_for_user(self, user_id: str) -> list[str]:
        return [event_id for event_id, team in self.teams.items() if user_id in team]
