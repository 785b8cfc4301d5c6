# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Authentication Service

Registration and credential checks. Passwords are hashed with bcrypt; the
plaintext password is never stored or compared directly.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor from BCRYPT_ROUNDS, default 12)
- Minimum 8 characters, at least one letter and one digit
- Session tokens managed separately (see session_service.py)
"""

from __future__ import annotations

import re

import bcrypt
from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import User
from ..errors import DuplicateIdentityError, NotFoundError, ValidationError
from ..time_utils import utcnow
from ..validation import require_text

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9_.-]{3,50}$")

PROFILE_FIELDS = {"first_name", "last_name", "phone", "address"}


def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Requirements:
    - Minimum 8 characters
    - At least one letter
    - At least one digit

    Raises ValidationError if requirements not met.
    """
    if not password or len(password) < 8:
        raise ValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Za-z]', password):
        raise ValidationError("Password must contain at least one letter")

    if not re.search(r'\d', password):
        raise ValidationError("Password must contain at least one digit")


def hash_password(password: str) -> str:
    """Hash password using bcrypt. Password is validated for strength first."""
    validate_password_strength(password)
    rounds = current_app.config.get("BCRYPT_ROUNDS", 12)
    salt = bcrypt.gensalt(rounds=rounds)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    Returns False for anything that is not a well-formed bcrypt hash.
    """
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def is_username_available(username: str) -> bool:
    return not db.session.query(
        db.session.query(User).filter(User.username == username).exists()
    ).scalar()


def is_email_available(email: str) -> bool:
    return not db.session.query(
        db.session.query(User).filter(User.email == email.strip().lower()).exists()
    ).scalar()


def register_user(
    username: str,
    email: str,
    password: str,
    *,
    first_name: str | None = None,
    last_name: str | None = None,
    phone: str | None = None,
    address: str | None = None,
    is_admin: bool = False,
) -> User:
    """
    Create a new user.

    Raises:
        ValidationError: Malformed username/email or weak password
        DuplicateIdentityError: Username or email already registered
    """
    username = require_text(username, "username").strip()
    email = require_text(email, "email").strip().lower()
    require_text(password, "password")

    if not USERNAME_PATTERN.match(username):
        raise ValidationError(
            "Username must be 3-50 characters of letters, digits, '_', '.' or '-'"
        )
    if not EMAIL_PATTERN.match(email) or len(email) > 100:
        raise ValidationError("Invalid email address")

    if not is_username_available(username):
        current_app.logger.warning("Registration rejected: username %s already exists", username)
        raise DuplicateIdentityError("Username already exists", details={"field": "username"})

    if not is_email_available(email):
        current_app.logger.warning("Registration rejected: email %s already exists", email)
        raise DuplicateIdentityError("Email already exists", details={"field": "email"})

    # Hash password with bcrypt (validates strength automatically)
    password_hash = hash_password(password)

    user = User(
        username=username,
        email=email,
        password_hash=password_hash,
        first_name=first_name,
        last_name=last_name,
        phone=phone,
        address=address,
        is_admin=is_admin,
    )

    db.session.add(user)
    try:
        db.session.commit()
    except IntegrityError:
        # A concurrent registration took the username or email after the checks above
        db.session.rollback()
        taken = db.session.query(User.id).filter(User.username == username).first()
        field = "username" if taken else "email"
        current_app.logger.warning("Registration rejected: %s taken concurrently", field)
        raise DuplicateIdentityError(f"{field.capitalize()} already exists", details={"field": field})
    current_app.logger.info("User %s registered (id=%s)", user.username, user.id)
    return user


def authenticate(username: str, password: str) -> User | None:
    """
    Authenticate user with username (or email) and password.

    Returns User if credentials valid, None otherwise.
    Updates last_login_at timestamp on successful authentication.
    """
    if username is not None:
        require_text(username, "username")
    if password is not None:
        require_text(password, "password")
    if not username or not password:
        return None

    identifier = username.strip()
    user = db.session.query(User).filter(
        db.or_(User.username == identifier, User.email == identifier.lower()),
        User.is_active.is_(True),
    ).first()

    if not user or not verify_password(password, user.password_hash):
        current_app.logger.warning("Login failed for %s", identifier)
        return None

    user.last_login_at = utcnow()
    db.session.commit()
    current_app.logger.info("User %s logged in", user.username)
    return user


def get_user(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")
    return user


def update_profile(user_id: int, patch: dict) -> User:
    """Update profile fields; unknown keys are ignored."""
    user = get_user(user_id)
    for key, value in patch.items():
        if key in PROFILE_FIELDS:
            setattr(user, key, value)
    db.session.commit()
    return user


def change_password(user_id: int, current_password: str, new_password: str) -> None:
    require_text(current_password, "current_password")
    require_text(new_password, "new_password")
    user = get_user(user_id)
    if not verify_password(current_password, user.password_hash):
        raise ValidationError("Current password is incorrect")
    user.password_hash = hash_password(new_password)
    db.session.commit()
