"""
Access Module Commands
"""

from pydantic import BaseModel, Field

from eventsync_finance.access.models import PermissionSet


class AssignTeamMember(BaseModel):
    """Add a user to an event team, or replace their permissions"""

    event_id: str = Field(..., min_length=1)
    user_id: str = Field(..., min_length=1)
    permission_set: PermissionSet = Field(default_factory=PermissionSet)


class RemoveTeamMember(BaseModel):
    event_id: str
    user_id: str
