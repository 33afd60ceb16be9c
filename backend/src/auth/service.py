"""Credential manager: registration, login and logout.

All persistence for a single operation happens in one transaction. Login
failures are indistinguishable to the caller: unknown identifier, wrong
password and disabled account all raise the same InvalidCredentials after
the same amount of Argon2 work. The real reason is written only to the
audit log and the application log.
"""

import re
from dataclasses import dataclass
from typing import Dict, List, NoReturn, Optional
from uuid import UUID

from email_validator import validate_email, EmailNotValidError
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from audit.service import ClientInfo, log_audit_event
from errors import DuplicateIdentity, InvalidCredentials, ValidationFailed
from models.base import utcnow
from models.user import User
from models.user_session import UserSession
from observability.logging_config import get_logger
from observability.metrics import auth_attempts_total, registrations_total
from .identity import CurrentIdentity
from .jwt import create_access_token, token_lifetime_minutes
from .password import hash_password, needs_rehash, verify_dummy, verify_password
from .password_policy import validate_password
from .roles import UserRole
from .schemas import RegisterRequest
from .sessions import revoke_session, rotate_session

logger = get_logger(__name__)

USERNAME_PATTERN = re.compile(r"[A-Za-z0-9_-]{3,50}")
PHONE_PATTERN = re.compile(r"[0-9+\-() ]{1,20}")
EMAIL_MAX_LENGTH = 100
FULL_NAME_MAX_LENGTH = 100
ADDRESS_MAX_LENGTH = 500


@dataclass(frozen=True)
class LoginResult:
    """Outcome of a successful authentication."""
    user: User
    session: UserSession
    access_token: str
    expires_in: int


class CredentialManager:
    """Registers identities and turns credentials into sessions."""

    def __init__(self, db: Session):
        self.db = db

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def collect_registration_errors(self, candidate: RegisterRequest) -> Dict[str, List[str]]:
        """Validate every registration field without touching the database.

        Returns:
            Mapping of field name to problems; empty when the candidate is valid
        """
        errors: Dict[str, List[str]] = {}

        if not USERNAME_PATTERN.fullmatch(candidate.username or ""):
            errors["username"] = [
                "Username must be 3-50 characters of letters, digits, underscore or hyphen"
            ]

        email = (candidate.email or "").strip()
        if len(email) > EMAIL_MAX_LENGTH:
            errors["email"] = [f"Email must be at most {EMAIL_MAX_LENGTH} characters"]
        else:
            try:
                validate_email(email, check_deliverability=False)
            except EmailNotValidError:
                errors["email"] = ["Email address is not valid"]

        password_errors = validate_password(candidate.password or "")
        if password_errors:
            errors["password"] = password_errors

        if candidate.password != candidate.password_confirm:
            errors["password_confirm"] = ["Passwords do not match"]

        if candidate.full_name is not None and len(candidate.full_name) > FULL_NAME_MAX_LENGTH:
            errors["full_name"] = [f"Full name must be at most {FULL_NAME_MAX_LENGTH} characters"]

        if candidate.phone_number and not PHONE_PATTERN.fullmatch(candidate.phone_number):
            errors["phone_number"] = ["Phone number may contain only digits, spaces, +, - and parentheses"]

        if candidate.address is not None and len(candidate.address) > ADDRESS_MAX_LENGTH:
            errors["address"] = [f"Address must be at most {ADDRESS_MAX_LENGTH} characters"]

        return errors

    def _duplicate_field(self, username: str, email: str) -> Optional[str]:
        if self.db.query(User.id).filter(User.username == username).first():
            return "username"
        if self.db.query(User.id).filter(User.email == email).first():
            return "email"
        return None

    def register(self, candidate: RegisterRequest, client: Optional[ClientInfo] = None) -> User:
        """Create a new ordinary user.

        Raises:
            ValidationFailed: One or more fields are invalid (all are reported)
            DuplicateIdentity: Username or email is already registered
        """
        client = client or ClientInfo()

        errors = self.collect_registration_errors(candidate)
        if errors:
            registrations_total.labels(outcome="validation_failed").inc()
            raise ValidationFailed(errors)

        username = candidate.username
        email = candidate.email.strip().lower()

        duplicate = self._duplicate_field(username, email)
        if duplicate:
            registrations_total.labels(outcome="duplicate").inc()
            raise DuplicateIdentity(duplicate)

        user = User(
            username=username,
            email=email,
            password_hash=hash_password(candidate.password),
            role=UserRole.USER.value,
            enabled=True,
            full_name=candidate.full_name,
            phone_number=candidate.phone_number or None,
            address=candidate.address,
        )

        try:
            self.db.add(user)
            self.db.flush()
            log_audit_event(
                db=self.db,
                action="USER_REGISTERED",
                actor_id=user.id,
                entity_type="user",
                entity_id=user.id,
                metadata={"username": username},
                client=client,
            )
            self.db.commit()
        except IntegrityError:
            # Lost a race with a concurrent identical registration
            self.db.rollback()
            registrations_total.labels(outcome="duplicate").inc()
            raise DuplicateIdentity(self._duplicate_field(username, email) or "username")

        self.db.refresh(user)
        registrations_total.labels(outcome="success").inc()
        logger.info("User registered", extra={"user_id": user.id})
        return user

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------

    def _find_by_identifier(self, identifier: str) -> Optional[User]:
        identifier = identifier.strip()
        return self.db.query(User).filter(
            or_(
                User.username == identifier,
                User.email == identifier.lower(),
            )
        ).first()

    def _reject(self, identifier: str, reason: str, user: Optional[User], client: ClientInfo) -> NoReturn:
        log_audit_event(
            db=self.db,
            action="LOGIN_FAILED",
            actor_id=user.id if user else None,
            entity_type="user" if user else None,
            entity_id=user.id if user else None,
            metadata={"identifier": identifier[:100], "reason": reason},
            client=client,
        )
        self.db.commit()
        auth_attempts_total.labels(outcome="failure").inc()
        logger.info("Login rejected", extra={"reason": reason})
        raise InvalidCredentials()

    def authenticate(
        self,
        identifier: str,
        password: str,
        prior_session_id: Optional[UUID] = None,
        client: Optional[ClientInfo] = None,
    ) -> LoginResult:
        """Verify credentials and issue a brand-new session.

        Args:
            identifier: Username or email address
            password: Plain text password
            prior_session_id: Session the client presented with this request, revoked on success
            client: Request metadata for the session and audit records

        Returns:
            LoginResult: User, new session and signed access token

        Raises:
            InvalidCredentials: For every failure reason
        """
        client = client or ClientInfo()
        user = self._find_by_identifier(identifier or "")

        if user is None:
            verify_dummy(password)
            self._reject(identifier or "", "unknown_identifier", None, client)

        if not verify_password(password, user.password_hash):
            self._reject(identifier, "wrong_password", user, client)

        if not user.enabled:
            self._reject(identifier, "account_disabled", user, client)

        user.last_login_at = utcnow()
        if needs_rehash(user.password_hash):
            user.password_hash = hash_password(password)

        new_session = rotate_session(self.db, user, prior_session_id, client)

        log_audit_event(
            db=self.db,
            action="LOGIN_SUCCESS",
            actor_id=user.id,
            entity_type="user",
            entity_id=user.id,
            metadata={"session_id": str(new_session.id)},
            client=client,
        )
        self.db.commit()

        auth_attempts_total.labels(outcome="success").inc()
        logger.info("Login succeeded", extra={"user_id": user.id})

        access_token = create_access_token(
            user_id=user.id,
            session_id=new_session.id,
            role=user.role,
            username=user.username,
        )
        return LoginResult(
            user=user,
            session=new_session,
            access_token=access_token,
            expires_in=token_lifetime_minutes() * 60,
        )

    def logout(self, identity: CurrentIdentity, client: Optional[ClientInfo] = None) -> None:
        """Revoke the session behind the current token."""
        client = client or ClientInfo()
        revoke_session(self.db, identity.session_id)
        log_audit_event(
            db=self.db,
            action="LOGOUT",
            actor_id=identity.id,
            entity_type="user",
            entity_id=identity.id,
            metadata={"session_id": str(identity.session_id)},
            client=client,
        )
        self.db.commit()
        logger.info("Logout", extra={"user_id": identity.id})
