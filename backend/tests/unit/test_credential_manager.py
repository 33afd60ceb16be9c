"""Unit tests for CredentialManager

Tests cover:
- Registration validation reports every field problem at once
- Duplicate username and email detection
- Login failures are indistinguishable to the caller
- Session rotation on login and revocation on logout
- Audit trail for every credential event
"""

import pytest

import sys
from pathlib import Path
backend_src = Path(__file__).parent.parent.parent / "src"
sys.path.insert(0, str(backend_src))

from auth.identity import CurrentIdentity
from auth.schemas import RegisterRequest
from auth.service import CredentialManager
from audit.service import ClientInfo
from auth.sessions import get_active_session
from errors import DuplicateIdentity, InvalidCredentials, ValidationFailed
from models.audit_log import AuditLog
from models.user import User
from models.user_session import UserSession

DEFAULT_PASSWORD = "MyP@ssw0rd2024!"


def _candidate(**overrides):
    data = {
        "username": "carol",
        "email": "carol@mail.com",
        "password": DEFAULT_PASSWORD,
        "password_confirm": DEFAULT_PASSWORD,
    }
    data.update(overrides)
    return RegisterRequest(**data)


def _actions(db_session):
    return [row.action for row in db_session.query(AuditLog).order_by(AuditLog.created_at).all()]


class TestRegister:

    def test_register_creates_ordinary_user(self, db_session):
        user = CredentialManager(db_session).register(
            _candidate(email="Carol@Mail.com"),
            ClientInfo(ip_address="203.0.113.5", user_agent="pytest"),
        )

        assert user.role == "USER"
        assert user.enabled is True
        assert user.email == "carol@mail.com"
        assert user.password_hash.startswith("$argon2id$")
        assert DEFAULT_PASSWORD not in user.password_hash

        audit = db_session.query(AuditLog).filter(AuditLog.action == "USER_REGISTERED").one()
        assert audit.actor_id == user.id
        assert audit.ip_address == "203.0.113.5"

    def test_all_field_errors_reported_together(self, db_session):
        candidate = _candidate(
            username="x",
            email="not-an-email",
            password="password123",
            password_confirm="different",
            phone_number="call me",
        )

        with pytest.raises(ValidationFailed) as exc_info:
            CredentialManager(db_session).register(candidate)

        fields = exc_info.value.fields
        assert set(fields) == {"username", "email", "password", "password_confirm", "phone_number"}
        assert "Password contains a commonly used password" in fields["password"]
        assert fields["password_confirm"] == ["Passwords do not match"]
        assert db_session.query(User).count() == 0

    def test_duplicate_username(self, db_session, make_user):
        make_user("carol", email="someone@mail.com")

        with pytest.raises(DuplicateIdentity) as exc_info:
            CredentialManager(db_session).register(_candidate())

        assert exc_info.value.field == "username"
        assert exc_info.value.status_code == 409

    def test_duplicate_email(self, db_session, make_user):
        make_user("dave", email="carol@mail.com")

        with pytest.raises(DuplicateIdentity) as exc_info:
            CredentialManager(db_session).register(_candidate())

        assert exc_info.value.field == "email"


class TestAuthenticate:

    def test_login_by_username_and_email(self, db_session, alice):
        manager = CredentialManager(db_session)

        by_name = manager.authenticate("alice", DEFAULT_PASSWORD)
        by_email = manager.authenticate("ALICE@example.com", DEFAULT_PASSWORD)

        assert by_name.user.id == alice.id
        assert by_email.user.id == alice.id
        assert by_name.access_token
        assert by_name.expires_in > 0

    def test_login_updates_last_login(self, db_session, alice):
        assert alice.last_login_at is None

        CredentialManager(db_session).authenticate("alice", DEFAULT_PASSWORD)
        db_session.refresh(alice)

        assert alice.last_login_at is not None

    @pytest.mark.parametrize("identifier,password", [
        ("nobody", DEFAULT_PASSWORD),
        ("alice", DEFAULT_PASSWORD + "x"),
        ("alice", DEFAULT_PASSWORD[:-1]),
        ("alice", DEFAULT_PASSWORD.lower()),
        ("mallory", DEFAULT_PASSWORD),
    ])
    def test_failures_are_indistinguishable(self, db_session, alice, disabled_user, identifier, password):
        with pytest.raises(InvalidCredentials) as exc_info:
            CredentialManager(db_session).authenticate(identifier, password)

        assert exc_info.value.status_code == 401
        assert exc_info.value.to_dict() == {
            "error": "invalid_credentials",
            "message": "Invalid username or password",
        }

    @pytest.mark.parametrize("identifier,password,reason", [
        ("nobody", DEFAULT_PASSWORD, "unknown_identifier"),
        ("alice", "Wr0ng!Passw", "wrong_password"),
        ("mallory", DEFAULT_PASSWORD, "account_disabled"),
    ])
    def test_failure_reason_is_audited(self, db_session, alice, disabled_user, identifier, password, reason):
        with pytest.raises(InvalidCredentials):
            CredentialManager(db_session).authenticate(identifier, password)

        audit = db_session.query(AuditLog).filter(AuditLog.action == "LOGIN_FAILED").one()
        assert audit.metadata_json["reason"] == reason

    def test_login_issues_new_session_and_revokes_prior(self, db_session, alice):
        manager = CredentialManager(db_session)

        first = manager.authenticate("alice", DEFAULT_PASSWORD)
        second = manager.authenticate("alice", DEFAULT_PASSWORD, prior_session_id=first.session.id)

        assert second.session.id != first.session.id
        assert get_active_session(db_session, first.session.id, alice.id) is None
        assert get_active_session(db_session, second.session.id, alice.id) is not None

    def test_unknown_prior_session_is_ignored(self, db_session, alice):
        from uuid import uuid4

        result = CredentialManager(db_session).authenticate(
            "alice", DEFAULT_PASSWORD, prior_session_id=uuid4()
        )

        assert get_active_session(db_session, result.session.id, alice.id) is not None

    def test_session_records_client(self, db_session, alice):
        result = CredentialManager(db_session).authenticate(
            "alice", DEFAULT_PASSWORD, client=ClientInfo("198.51.100.7", "pytest-agent")
        )

        row = db_session.query(UserSession).filter(UserSession.id == result.session.id).one()
        assert row.ip_address == "198.51.100.7"
        assert row.user_agent == "pytest-agent"


class TestLogout:

    def test_logout_revokes_session(self, db_session, alice):
        manager = CredentialManager(db_session)
        result = manager.authenticate("alice", DEFAULT_PASSWORD)

        manager.logout(CurrentIdentity.from_user(alice, result.session.id))

        assert get_active_session(db_session, result.session.id, alice.id) is None
        assert _actions(db_session).count("LOGOUT") == 1
