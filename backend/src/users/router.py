"""User administration endpoints (ADMIN only).

The route policy table restricts everything under /admin to administrators.
Administrators can:
- List users
- Get individual user details
- Enable/disable users and change their role

Users are never deleted. Every mutation revokes the target's sessions and
writes audit log events.
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session
from uuid import UUID

from audit.service import log_from_request
from auth.dependencies import CurrentIdentityDep
from auth.roles import UserRole
from auth.sessions import revoke_user_sessions
from database import get_db
from errors import NotFound, ValidationFailed
from models.user import User
from observability.logging_config import get_logger
from .schemas import UserUpdate, UserResponse, UserListResponse

logger = get_logger(__name__)

router = APIRouter(prefix="/admin/users", tags=["Admin: Users"])


def _get_user_or_404(db: Session, user_id: UUID) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise NotFound("User not found")
    return user


@router.get(
    "",
    response_model=UserListResponse,
    summary="List users (ADMIN only)",
)
def list_users(
    identity: CurrentIdentityDep,
    db: Session = Depends(get_db),
) -> UserListResponse:
    """List all users, newest first."""
    users = db.query(User).order_by(User.created_at.desc()).all()

    return UserListResponse(
        users=[UserResponse.model_validate(u) for u in users],
        total=len(users)
    )


@router.get(
    "/{user_id}",
    response_model=UserResponse,
    summary="Get user by ID (ADMIN only)",
)
def get_user(
    user_id: UUID,
    identity: CurrentIdentityDep,
    db: Session = Depends(get_db),
) -> UserResponse:
    """Get single user by ID.

    Raises:
        404: User not found
    """
    return UserResponse.model_validate(_get_user_or_404(db, user_id))


@router.patch(
    "/{user_id}",
    response_model=UserResponse,
    summary="Update user (ADMIN only)",
    description="Changes role and/or enabled flag. Ends the user's sessions.",
)
def update_user(
    user_id: UUID,
    request: Request,
    data: UserUpdate,
    identity: CurrentIdentityDep,
    db: Session = Depends(get_db),
) -> UserResponse:
    """Update a user's role or enabled flag.

    Raises:
        404: User not found
        422: Administrator tried to disable or demote themself
    """
    user = _get_user_or_404(db, user_id)

    if user.id == identity.id:
        problems = {}
        if data.enabled is False:
            problems["enabled"] = ["You cannot disable your own account"]
        if data.role is not None and data.role != UserRole.ADMIN:
            problems["role"] = ["You cannot remove your own administrator role"]
        if problems:
            raise ValidationFailed(problems)

    audit_events = []

    if data.role is not None and data.role.value != user.role:
        old_role = user.role
        user.role = data.role.value
        audit_events.append({
            "action": "USER_ROLE_CHANGED",
            "metadata": {"old_role": old_role, "new_role": data.role.value}
        })

    if data.enabled is not None and data.enabled != user.enabled:
        user.enabled = data.enabled
        audit_events.append({
            "action": "USER_ENABLED" if data.enabled else "USER_DISABLED",
            "metadata": {"enabled": data.enabled}
        })

    if audit_events:
        revoked = revoke_user_sessions(db, user.id)
        for event in audit_events:
            event["metadata"]["sessions_revoked"] = revoked
            log_from_request(
                db=db,
                request=request,
                action=event["action"],
                actor_id=identity.id,
                entity_type="user",
                entity_id=user.id,
                metadata=event["metadata"]
            )
        db.commit()
        db.refresh(user)
        logger.info(
            f"Updated user {user.id}: {', '.join(e['action'] for e in audit_events)}",
            extra={"user_id": identity.id},
        )

    return UserResponse.model_validate(user)
