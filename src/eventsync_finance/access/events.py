"""
Access Module Events
"""

from datetime import datetime

from pydantic import BaseModel

from eventsync_finance.access.models import PermissionSet


class TeamMemberAssigned(BaseModel):
    event_id: str
    user_id: str
    permission_set: PermissionSet
    assigned_by: str
    assigned_at: datetime


class TeamMemberRemoved(BaseModel):
    event_id: str
    user_id: str
    removed_by: str
    removed_at: datetime


TEAM_EVENT_TYPES = ["TeamMemberAssigned", "TeamMemberRemoved"]
