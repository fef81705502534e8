"""
JWT bearer authentication for the REST API.

Tokens carry the actor id in `sub`, the platform role and a display name.
Decoding a token yields the Session every ledger call needs.
"""

from datetime import datetime, timedelta, timezone
from functools import wraps
from typing import Any, Callable, TypeVar

from flask import g, request
from jose import JWTError, jwt

from eventsync_finance.api.app import current_settings
from eventsync_finance.kernel.errors import AuthenticationError
from eventsync_finance.kernel.session import Role, Session
from eventsync_finance.kernel.settings import FinanceSettings

F = TypeVar("F", bound=Callable[..., Any])


def create_access_token(
    session: Session,
    settings: FinanceSettings,
    expires_delta: timedelta | None = None,
) -> str:
    """
    Create a JWT access token for a session.

    Args:
        session: Actor the token stands for
        settings: Provides secret, algorithm and default lifetime
        expires_delta: Optional custom expiration time

    Example payload:
        {"sub": "admin-1", "role": "ADMIN", "name": "Ada", "exp": 1234567890}
    """
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    to_encode: dict[str, Any] = {
        "sub": session.actor_id,
        "role": session.role.value,
        "exp": expire,
    }
    if session.name:
        to_encode["name"] = session.name
    return jwt.encode(to_encode, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str, settings: FinanceSettings) -> Session:
    """
    Decode and validate a JWT access token.

    Raises:
        AuthenticationError: Bad signature, expired token or malformed claims
    """
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except JWTError as e:
        raise AuthenticationError("Could not validate credentials") from e

    actor_id = payload.get("sub")
    role = payload.get("role")
    if not actor_id or role not in (Role.ADMIN.value, Role.ORGANIZER.value):
        raise AuthenticationError("Invalid token payload")
    return Session(actor_id=actor_id, role=Role(role), name=payload.get("name"))


def session_from_request(settings: FinanceSettings) -> Session:
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise AuthenticationError("Missing bearer token")
    return decode_access_token(token.strip(), settings)


def require_session(view: F) -> F:
    """Authenticate the request and expose the Session as flask.g.session"""

    @wraps(view)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        g.session = session_from_request(current_settings())
        return view(*args, **kwargs)

    return wrapper  # type: ignore[return-value]
