"""FastAPI dependencies for authentication and authorization.

authorize_route is installed as a global application dependency and runs
before every handler. It looks the matched route template up in the central
route policy table, resolves the bearer token to a CurrentIdentity and
rejects the request when the identity does not satisfy the route.

Handlers then receive the identity explicitly:

    @router.get("/orders")
    def list_orders(identity: CurrentIdentityDep, db: Session = Depends(get_db)):
        ...
"""

from typing import Annotated, Optional
from uuid import UUID

import jwt
from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from database import get_db
from errors import AccessDenied, NotAuthenticated
from models.user import User
from observability.logging_config import get_logger
from observability.metrics import access_denied_total
from observability.context import new_correlation_id
from .identity import CurrentIdentity
from .jwt import decode_token
from .roles import RouteAccess, role_satisfies
from .route_policy import resolve_access, route_template
from .sessions import get_active_session

logger = get_logger(__name__)

# Bearer scheme; missing header is handled by the route policy, not here
security = HTTPBearer(auto_error=False)


def resolve_identity(token: str, db: Session) -> Optional[CurrentIdentity]:
    """Turn a bearer token into an identity, or None if it is not usable.

    A token is usable only if its signature and expiry are valid, the session
    it names is active and belongs to the subject, and the user is enabled.
    """
    try:
        payload = decode_token(token)
        user_id = UUID(payload["sub"])
        session_id = UUID(payload["sid"])
    except (jwt.InvalidTokenError, KeyError, ValueError):
        return None

    if get_active_session(db, session_id, user_id) is None:
        return None

    user = db.query(User).filter(User.id == user_id).first()
    if user is None or not user.enabled:
        return None

    return CurrentIdentity.from_user(user, session_id)


def authorize_route(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> None:
    """Enforce the route policy table for the matched route.

    Stores the resolved identity (or None) on ``request.state.identity``.

    Raises:
        NotAuthenticated: Route is not public and no usable token was presented
        AccessDenied: Identity lacks the role the route requires
    """
    path = route_template(request.scope.get("route"), request.url.path)
    access = resolve_access(path)

    identity = resolve_identity(credentials.credentials, db) if credentials else None
    request.state.identity = identity

    if access == RouteAccess.PUBLIC:
        return

    if identity is None:
        raise NotAuthenticated()

    if not role_satisfies(identity.role, access):
        correlation_id = new_correlation_id()
        access_denied_total.labels(reason="role").inc()
        logger.warning(
            "Route access denied",
            extra={
                "correlation_id": correlation_id,
                "reason": "role",
                "user_id": identity.id,
                "path": path,
            },
        )
        raise AccessDenied(correlation_id)


def get_optional_identity(request: Request) -> Optional[CurrentIdentity]:
    """Identity resolved by authorize_route, or None for anonymous callers."""
    return getattr(request.state, "identity", None)


def get_current_identity(request: Request) -> CurrentIdentity:
    """Identity resolved by authorize_route for a protected route.

    Raises:
        NotAuthenticated: If no identity was resolved
    """
    identity = get_optional_identity(request)
    if identity is None:
        raise NotAuthenticated()
    return identity


# Type aliases for dependency injection
CurrentIdentityDep = Annotated[CurrentIdentity, Depends(get_current_identity)]
OptionalIdentityDep = Annotated[Optional[CurrentIdentity], Depends(get_optional_identity)]
