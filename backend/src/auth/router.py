"""Authentication endpoints for SecureShop API

Provides registration, login, logout and the current-identity profile.
"""

from typing import Annotated
from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from audit.service import client_from_request
from database import get_db
from errors import InvalidCredentials, NotAuthenticated
from models.user import User
from .dependencies import CurrentIdentityDep, OptionalIdentityDep
from .rate_limit import login_throttle, throttle_login
from .schemas import LoginRequest, LoginResponse, RegisterRequest, UserResponse
from .service import CredentialManager


router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def register(
    data: RegisterRequest,
    request: Request,
    db: Annotated[Session, Depends(get_db)],
):
    """Register a new ordinary user.

    Every invalid field is reported at once (422). A taken username or email
    yields 409 naming the conflicting field.
    """
    user = CredentialManager(db).register(data, client_from_request(request))
    return UserResponse.model_validate(user)


@router.post("/login", response_model=LoginResponse)
def login(
    credentials: LoginRequest,
    request: Request,
    db: Annotated[Session, Depends(get_db)],
    prior: OptionalIdentityDep,
    fingerprint: Annotated[str, Depends(throttle_login)],
):
    """Authenticate and return a JWT bound to a brand-new session.

    Security measures:
    - Rate limiting and lockout per client (Redis, when available)
    - One generic 401 for unknown user, wrong password and disabled account
    - The session presented with this request, if any, is revoked
    - Failed and successful logins are written to audit_log
    """
    manager = CredentialManager(db)
    try:
        result = manager.authenticate(
            identifier=credentials.identifier,
            password=credentials.password,
            prior_session_id=prior.session_id if prior else None,
            client=client_from_request(request),
        )
    except InvalidCredentials:
        login_throttle.note_failure(credentials.identifier, fingerprint)
        raise

    login_throttle.reset_failures(credentials.identifier, fingerprint)

    return LoginResponse(
        access_token=result.access_token,
        token_type="bearer",
        expires_in=result.expires_in,
    )


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
def logout(
    identity: CurrentIdentityDep,
    request: Request,
    db: Annotated[Session, Depends(get_db)],
):
    """Revoke the current session. The token stops working immediately."""
    CredentialManager(db).logout(identity, client_from_request(request))


@router.get("/me", response_model=UserResponse)
def get_me(
    identity: CurrentIdentityDep,
    db: Annotated[Session, Depends(get_db)],
):
    """Profile of the authenticated user (never includes the password hash)."""
    user = db.query(User).filter(User.id == identity.id).first()
    if user is None:
        raise NotAuthenticated()
    return UserResponse.model_validate(user)
