"""
Session - the explicit "current actor"

Every façade operation receives a Session instead of reading identity from
ambient state. The REST layer builds one from the bearer token, the CLI from
its --actor/--role options, and tests construct them directly.
"""

from enum import Enum

from pydantic import BaseModel, Field


class Role(str, Enum):
    """Platform roles; event-scoped roles (team lead, member) live in access"""

    ADMIN = "ADMIN"
    ORGANIZER = "ORGANIZER"
    SYSTEM = "SYSTEM"


class Session(BaseModel):
    """Authenticated actor for one request or CLI invocation"""

    actor_id: str = Field(..., min_length=1)
    role: Role
    name: str | None = None

    model_config = {"frozen": True}

    @property
    def is_admin(self) -> bool:
        return self.role in (Role.ADMIN, Role.SYSTEM)

    @property
    def display_name(self) -> str:
        return self.name or self.actor_id
