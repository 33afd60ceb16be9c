"""Pydantic schemas for authentication endpoints"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class RegisterRequest(BaseModel):
    """Request schema for self-registration.

    Fields are deliberately loose strings: the credential manager validates
    all of them together and reports every problem in one response.
    """
    username: str
    email: str
    password: str
    password_confirm: str
    full_name: Optional[str] = None
    phone_number: Optional[str] = None
    address: Optional[str] = None


class LoginRequest(BaseModel):
    """Request schema for user login.

    Attributes:
        identifier: Username or email address
        password: User's password (plain text, will be verified against hash)
    """
    identifier: str = Field(..., min_length=1, max_length=100)
    password: str = Field(..., min_length=1, max_length=256)


class LoginResponse(BaseModel):
    """Response schema for successful login.

    Attributes:
        access_token: JWT access token bound to a fresh server-side session
        token_type: Token type (always "bearer")
        expires_in: Token expiry in seconds
    """
    access_token: str
    token_type: str = "bearer"
    expires_in: int = 3600


class UserResponse(BaseModel):
    """User information response (excludes password_hash)."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    username: str
    email: str
    role: str
    enabled: bool
    full_name: Optional[str] = None
    phone_number: Optional[str] = None
    address: Optional[str] = None
    last_login_at: Optional[datetime] = None
    created_at: datetime
