"""The authenticated caller, as handed to services."""

from dataclasses import dataclass
from uuid import UUID

from models.user import User
from .roles import UserRole


@dataclass(frozen=True)
class CurrentIdentity:
    """Identity resolved for one request.

    Built from the database row, not from token claims, so a role change or
    a disabled account takes effect on the very next request.
    """
    id: UUID
    username: str
    role: UserRole
    session_id: UUID

    @classmethod
    def from_user(cls, user: User, session_id: UUID) -> "CurrentIdentity":
        return cls(
            id=user.id,
            username=user.username,
            role=UserRole(user.role),
            session_id=session_id,
        )
