"""
Access Domain Models
"""

from enum import Enum

from pydantic import BaseModel, Field


class PermissionKey(str, Enum):
    """Per-event capabilities an organizer can be granted"""

    CAN_VIEW_PARTICIPANTS = "can_view_participants"
    CAN_MANAGE_ATTENDANCE = "can_manage_attendance"
    CAN_SEND_EMAILS = "can_send_emails"
    CAN_GENERATE_CERTIFICATES = "can_generate_certificates"
    CAN_EDIT_EVENT = "can_edit_event"


class PermissionSet(BaseModel):
    """
    What one user may do on one event

    A team lead holds every permission regardless of the flags below.
    """

    is_team_lead: bool = False
    permissions: dict[PermissionKey, bool] = Field(default_factory=dict)
    can_manage_team: bool = False
    can_manage_speakers: bool = False
    can_view_logs: bool = False

    def has(self, key: PermissionKey) -> bool:
        if self.is_team_lead:
            return True
        return bool(self.permissions.get(key, False))

    def effective(self) -> "PermissionSet":
        """Expanded view with every flag a team lead implicitly holds"""
        if not self.is_team_lead:
            return self
        return PermissionSet(
            is_team_lead=True,
            permissions={key: True for key in PermissionKey},
            can_manage_team=True,
            can_manage_speakers=True,
            can_view_logs=True,
        )
