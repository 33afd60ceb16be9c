"""Schemas for the user administration endpoints."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict

from auth.roles import UserRole
from auth.schemas import UserResponse as ProfileResponse


class UserUpdate(BaseModel):
    """PATCH /admin/users/{id}. Any change revokes the target's sessions."""
    model_config = ConfigDict(extra='forbid')

    role: Optional[UserRole] = None
    enabled: Optional[bool] = None


class UserResponse(ProfileResponse):
    """Profile plus bookkeeping fields only administrators see."""
    updated_at: datetime


class UserListResponse(BaseModel):
    users: List[UserResponse]
    total: int
