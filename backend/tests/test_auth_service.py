"""
Authentication and session tests.

Verifies:
- Passwords stored as bcrypt hashes, never plaintext
- Duplicate username/email rejected without inserting a row
- Login by username or email
- Session token lifecycle (create, validate, idle timeout, revoke)
"""

from datetime import timedelta

import pytest

from shopcart.errors import DuplicateIdentityError, NotFoundError, ValidationError
from shopcart.models import SessionToken, User
from shopcart.services import auth_service, session_service
from shopcart.time_utils import utcnow

from conftest import PASSWORD


class TestRegistration:

    def test_password_is_hashed(self, customer):
        assert customer.password_hash != PASSWORD
        assert customer.password_hash.startswith("$2")
        assert auth_service.verify_password(PASSWORD, customer.password_hash)

    def test_email_is_normalized(self, db_session):
        user = auth_service.register_user("mixed", "  Mixed.Case@Example.COM ", PASSWORD)
        assert user.email == "mixed.case@example.com"

    def test_duplicate_username_rejected(self, db_session, customer):
        with pytest.raises(DuplicateIdentityError) as exc:
            auth_service.register_user("john", "another@example.com", PASSWORD)
        assert exc.value.details == {"field": "username"}
        assert db_session.query(User).count() == 1

    def test_duplicate_email_rejected(self, db_session, customer):
        with pytest.raises(DuplicateIdentityError) as exc:
            auth_service.register_user("johnny", "JOHN@example.com", PASSWORD)
        assert exc.value.details == {"field": "email"}
        assert db_session.query(User).count() == 1

    def test_duplicate_insert_after_checks_is_reported(self, db_session, customer, monkeypatch):
        # Another request registers "john" between the availability checks and the insert
        monkeypatch.setattr(auth_service, "is_username_available", lambda username: True)
        monkeypatch.setattr(auth_service, "is_email_available", lambda email: True)

        with pytest.raises(DuplicateIdentityError) as exc:
            auth_service.register_user("john", "another@example.com", PASSWORD)
        assert exc.value.details == {"field": "username"}

        with pytest.raises(DuplicateIdentityError) as exc:
            auth_service.register_user("johnny", "john@example.com", PASSWORD)
        assert exc.value.details == {"field": "email"}
        assert db_session.query(User).count() == 1

    @pytest.mark.parametrize("username,email,password", [
        (12345, "num@example.com", PASSWORD),
        ("numeric", None, PASSWORD),
        ("numeric", "num@example.com", ["x"]),
    ])
    def test_non_string_fields_rejected(self, db_session, username, email, password):
        with pytest.raises(ValidationError):
            auth_service.register_user(username, email, password)

    @pytest.mark.parametrize("password", ["short1", "lettersonly", "12345678", ""])
    def test_weak_password_rejected(self, db_session, password):
        with pytest.raises(ValidationError):
            auth_service.register_user("weak", "weak@example.com", password)
        assert db_session.query(User).count() == 0

    @pytest.mark.parametrize("username,email", [
        ("ab", "ab@example.com"),
        ("has space", "space@example.com"),
        ("valid_name", "not-an-email"),
    ])
    def test_malformed_identity_rejected(self, db_session, username, email):
        with pytest.raises(ValidationError):
            auth_service.register_user(username, email, PASSWORD)

    def test_availability_checks(self, customer):
        assert auth_service.is_username_available("john") is False
        assert auth_service.is_username_available("nobody") is True
        assert auth_service.is_email_available("JOHN@example.com") is False
        assert auth_service.is_email_available("nobody@example.com") is True


class TestAuthenticate:

    def test_login_by_username_and_email(self, customer):
        assert auth_service.authenticate("john", PASSWORD).id == customer.id
        assert auth_service.authenticate("john@example.com", PASSWORD).id == customer.id

    def test_login_records_last_login(self, customer):
        assert customer.last_login_at is None
        auth_service.authenticate("john", PASSWORD)
        assert customer.last_login_at is not None

    def test_wrong_password(self, customer):
        assert auth_service.authenticate("john", "wrong1234") is None

    def test_unknown_user(self, db_session):
        assert auth_service.authenticate("ghost", PASSWORD) is None

    def test_inactive_user_cannot_login(self, db_session, customer):
        customer.is_active = False
        db_session.commit()
        assert auth_service.authenticate("john", PASSWORD) is None

    def test_verify_password_rejects_garbage_hash(self):
        assert auth_service.verify_password(PASSWORD, "not-a-bcrypt-hash") is False


class TestProfile:

    def test_update_profile_ignores_unknown_fields(self, customer):
        user = auth_service.update_profile(customer.id, {"phone": "555-0100", "is_admin": True})
        assert user.phone == "555-0100"
        assert user.is_admin is False

    def test_update_missing_user(self, db_session):
        with pytest.raises(NotFoundError):
            auth_service.update_profile(9999, {"phone": "1"})

    def test_change_password(self, customer):
        auth_service.change_password(customer.id, PASSWORD, "newpass99")
        assert auth_service.authenticate("john", "newpass99") is not None
        assert auth_service.authenticate("john", PASSWORD) is None

    def test_change_password_requires_current(self, customer):
        with pytest.raises(ValidationError):
            auth_service.change_password(customer.id, "wrong1234", "newpass99")

    def test_full_name(self, customer, make_user):
        assert customer.full_name == "John Doe"
        assert make_user("plain").full_name == "plain"


class TestSessions:

    def test_token_stored_hashed(self, db_session, customer):
        session, token = session_service.create_session(customer.id)
        assert session.token_hash == session_service.hash_token(token)
        assert db_session.query(SessionToken).filter_by(token_hash=token).count() == 0

    def test_validate_returns_user(self, customer):
        _, token = session_service.create_session(customer.id)
        assert session_service.validate_session(token).id == customer.id
        assert session_service.validate_session("bogus") is None

    def test_revoked_token_rejected(self, customer):
        _, token = session_service.create_session(customer.id)
        assert session_service.revoke_session(token) is True
        assert session_service.validate_session(token) is None
        assert session_service.revoke_session(token) is False

    def test_idle_timeout(self, db_session, customer):
        session, token = session_service.create_session(customer.id)
        session.last_used_at = utcnow() - session_service.SESSION_IDLE_TIMEOUT - timedelta(minutes=1)
        db_session.commit()

        assert session_service.validate_session(token) is None
        db_session.refresh(session)
        assert session.is_revoked is True
        assert session.revoked_reason == "Idle timeout"

    def test_absolute_timeout(self, db_session, customer):
        session, token = session_service.create_session(customer.id)
        session.expires_at = utcnow() - timedelta(seconds=1)
        db_session.commit()
        assert session_service.validate_session(token) is None

    def test_deactivated_user_session_rejected(self, db_session, customer):
        _, token = session_service.create_session(customer.id)
        customer.is_active = False
        db_session.commit()
        assert session_service.validate_session(token) is None

    def test_session_for_missing_user(self, db_session):
        with pytest.raises(NotFoundError):
            session_service.create_session(9999)
