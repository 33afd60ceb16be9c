"""Signed access tokens.

A token is an HS256 JWT with these claims:

    sub       user id
    sid       server-side session id (UserSession.id)
    role      role at issue time; informational, authorization reads the DB
    username  display name for clients
    iat, exp  issue and expiry time (JWT_EXPIRY_MINUTES, default 60)

The signature only proves the token was issued by this service. Whether it
is still usable is decided by the session it names: logout, login rotation
and account changes revoke the session, and the token dies with it.
"""

import os
from datetime import datetime, timedelta, timezone
from typing import Any, Dict
from uuid import UUID

import jwt

ALGORITHM = "HS256"
REQUIRED_CLAIMS = ["exp", "iat", "sub", "sid"]
DEFAULT_EXPIRY_MINUTES = 60


def _secret() -> str:
    secret = os.getenv("JWT_SECRET")
    if not secret:
        raise ValueError("JWT_SECRET environment variable is not set")
    return secret


def token_lifetime_minutes() -> int:
    """JWT_EXPIRY_MINUTES, falling back to the default when unset or invalid."""
    try:
        return int(os.getenv("JWT_EXPIRY_MINUTES", str(DEFAULT_EXPIRY_MINUTES)))
    except ValueError:
        return DEFAULT_EXPIRY_MINUTES


def create_access_token(user_id: UUID, session_id: UUID, role: str, username: str) -> str:
    """Issue a token bound to session_id.

    Raises:
        ValueError: If JWT_SECRET is not set
    """
    issued = datetime.now(timezone.utc)
    claims = {
        "sub": str(user_id),
        "sid": str(session_id),
        "role": role,
        "username": username,
        "iat": int(issued.timestamp()),
        "exp": int((issued + timedelta(minutes=token_lifetime_minutes())).timestamp()),
    }
    return jwt.encode(claims, _secret(), algorithm=ALGORITHM)


def decode_token(token: str) -> Dict[str, Any]:
    """Verify signature, expiry and required claims; return the claims.

    Raises:
        jwt.ExpiredSignatureError: Token has expired
        jwt.InvalidTokenError: Bad signature, wrong algorithm, malformed or
            missing a required claim
        ValueError: If JWT_SECRET is not set
    """
    try:
        return jwt.decode(
            token,
            _secret(),
            algorithms=[ALGORITHM],
            options={"require": REQUIRED_CLAIMS},
        )
    except jwt.ExpiredSignatureError:
        raise jwt.ExpiredSignatureError("Token has expired")
    except jwt.InvalidTokenError as e:
        raise jwt.InvalidTokenError(f"Invalid token: {e}")
