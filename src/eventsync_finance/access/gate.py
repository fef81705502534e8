"""
Permission gate - cached permission checks for one user

The gate answers "may this user do X on the selected event?" without a
round trip per question. It is a convenience for clients (the CLI's
`team check`, UI code); every ledger operation re-checks server-side.

Two explicit default modes decide the answer when there is nothing to check
against:
- no_context_default: no event selected yet (PERMIT by default, so global
  screens are not blocked)
- error_default: the last permission load failed (DENY by default)
"""

from enum import Enum
from typing import Callable

from eventsync_finance.access.models import PermissionKey, PermissionSet
from eventsync_finance.kernel.logging import get_logger

logger = get_logger(__name__)

# (user_id, event_id) -> PermissionSet; may raise
PermissionLoader = Callable[[str, str], PermissionSet]


class DefaultMode(str, Enum):
    PERMIT = "PERMIT"
    DENY = "DENY"


class PermissionGate:
    """
    Caches one PermissionSet for (user, selected event)

    Example:
        >>> gate = PermissionGate(ledger.permission_loader(), "user-7")
        >>> gate.select_event("evt-42")
        >>> gate.has_permission(PermissionKey.CAN_MANAGE_ATTENDANCE)
    """

    def __init__(
        self,
        loader: PermissionLoader,
        user_id: str,
        no_context_default: DefaultMode = DefaultMode.PERMIT,
        error_default: DefaultMode = DefaultMode.DENY,
    ) -> None:
        self._loader = loader
        self.user_id = user_id
        self.no_context_default = no_context_default
        self.error_default = error_default
        self._event_id: str | None = None
        self._permissions: PermissionSet | None = None
        self._load_error: str | None = None
        self.fetch_count = 0

    @property
    def event_id(self) -> str | None:
        return self._event_id

    @property
    def permissions(self) -> PermissionSet | None:
        return self._permissions

    @property
    def load_error(self) -> str | None:
        return self._load_error

    def select_event(self, event_id: str | None) -> None:
        """Switch the selected event; permissions are fetched only when it changes"""
        if event_id == self._event_id and (self._permissions or self._load_error):
            return
        self._event_id = event_id
        if event_id is None:
            self._permissions = None
            self._load_error = None
            return
        self._fetch()

    def refresh(self) -> None:
        """Refetch permissions for the selected event"""
        if self._event_id is not None:
            self._fetch()

    def _fetch(self) -> None:
        if self._event_id is None:
            return
        self.fetch_count += 1
        try:
            self._permissions = self._loader(self.user_id, self._event_id)
            self._load_error = None
        except Exception as e:
            # Any failure falls back to error_default
            self._permissions = None
            self._load_error = str(e)
            logger.warning(
                "Permission load failed",
                event_id=self._event_id,
                error=str(e),
                fallback=self.error_default.value,
            )

    def has_permission(self, key: PermissionKey) -> bool:
        if self._event_id is None:
            return self.no_context_default == DefaultMode.PERMIT
        if self._permissions is None:
            return self.error_default == DefaultMode.PERMIT
        return self._permissions.has(key)

    @property
    def is_team_lead(self) -> bool:
        return bool(self._permissions and self._permissions.is_team_lead)

    def can_manage_team(self) -> bool:
        return self._flag("can_manage_team")

    def can_view_logs(self) -> bool:
        return self._flag("can_view_logs")

    def _flag(self, name: str) -> bool:
        if self._event_id is None:
            return self.no_context_default == DefaultMode.PERMIT
        if self._permissions is None:
            return self.error_default == DefaultMode.PERMIT
        return bool(getattr(self._permissions.effective(), name))
