"""Server-side login sessions.

A session row is created on every successful login and referenced from the
access token (``sid`` claim). Login always issues a brand-new session id and
revokes the one the client presented, so an identifier planted before
authentication is never promoted to an authenticated session.
"""

from datetime import timedelta
from typing import Optional
from uuid import UUID

from sqlalchemy.orm import Session

from audit.service import ClientInfo
from config import settings
from models.base import utcnow
from models.user import User
from models.user_session import UserSession


def _active_filter(query):
    return query.filter(
        UserSession.revoked_at.is_(None),
        UserSession.expires_at > utcnow(),
    )


def get_active_session(db: Session, session_id: UUID, user_id: UUID) -> Optional[UserSession]:
    """Load a session only if it belongs to user_id and is unrevoked and unexpired.

    Expiry is compared in SQL so the check does not depend on how the driver
    returns timezone information.
    """
    query = db.query(UserSession).filter(
        UserSession.id == session_id,
        UserSession.user_id == user_id,
    )
    return _active_filter(query).first()


def revoke_session(db: Session, session_id: UUID) -> bool:
    """Revoke one session, locking its row. Returns True if it was active."""
    session_row = (
        db.query(UserSession)
        .filter(UserSession.id == session_id)
        .with_for_update()
        .first()
    )
    if session_row is None or session_row.revoked_at is not None:
        return False
    session_row.revoked_at = utcnow()
    return True


def revoke_user_sessions(db: Session, user_id: UUID, keep: Optional[UUID] = None) -> int:
    """Revoke every active session of a user, optionally sparing one.

    Returns:
        int: Number of sessions revoked
    """
    query = _active_filter(db.query(UserSession).filter(UserSession.user_id == user_id))
    if keep is not None:
        query = query.filter(UserSession.id != keep)

    revoked = 0
    for session_row in query.with_for_update().all():
        session_row.revoked_at = utcnow()
        revoked += 1
    return revoked


def rotate_session(
    db: Session,
    user: User,
    prior_session_id: Optional[UUID],
    client: ClientInfo,
) -> UserSession:
    """Replace whatever session the client held with a fresh one.

    Runs inside the caller's transaction; nothing is committed here so the
    revocations and the insert land together.

    Args:
        db: Database session
        user: Authenticated user
        prior_session_id: Session id the client presented with the login, if any
        client: Request metadata to record on the new session

    Returns:
        UserSession: The newly created (flushed) session
    """
    if prior_session_id is not None:
        revoke_session(db, prior_session_id)

    if settings.SINGLE_SESSION_PER_USER:
        revoke_user_sessions(db, user.id)

    now = utcnow()
    new_session = UserSession(
        user_id=user.id,
        created_at=now,
        expires_at=now + timedelta(minutes=settings.SESSION_TTL_MINUTES),
        ip_address=client.ip_address,
        user_agent=client.user_agent,
    )
    db.add(new_session)
    db.flush()
    return new_session
