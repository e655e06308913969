# Overview: Service-layer operations for auth; password hashing and user accounts.

"""
Authentication Service

WHY: Every review, decision and gate scan must be attributable. Uses bcrypt
for password hashing and validates password strength.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor 12)
- Minimum 8 characters required
- Must contain uppercase, lowercase, digit, and special char
- Session tokens managed separately (see session_service.py)
"""

import re

import bcrypt

from ..extensions import db
from ..models import User, USER_ROLES
from simlok.time_utils import utcnow


class PasswordValidationError(Exception):
    """Raised when password doesn't meet strength requirements."""
    pass


class UserExistsError(ValueError):
    """Email already registered."""


def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Raises PasswordValidationError if requirements not met.
    """
    if len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt with cost factor 12.

    Password is validated for strength before hashing.
    """
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=12)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """Timing-safe bcrypt check. Malformed hashes never match."""
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def create_user(
    *,
    email: str,
    password: str,
    officer_name: str,
    role: str = "VENDOR",
    vendor_name: str | None = None,
    phone_number: str | None = None,
    address: str | None = None,
) -> User:
    """
    Create a user with a bcrypt password hash.

    Raises:
        ValueError: unknown role
        UserExistsError: email already registered
        PasswordValidationError: weak password
    """
    email = (email or "").strip().lower()
    if not email:
        raise ValueError("email is required")
    if not (officer_name or "").strip():
        raise ValueError("officer_name is required")
    if role not in USER_ROLES:
        raise ValueError(f"Invalid role: {role}. Must be one of {', '.join(USER_ROLES)}")

    existing = db.session.query(User).filter_by(email=email).first()
    if existing:
        raise UserExistsError("Email already registered")

    user = User(
        email=email,
        officer_name=officer_name.strip(),
        role=role,
        vendor_name=vendor_name,
        phone_number=phone_number,
        address=address,
        password_hash=hash_password(password),
        is_active=True,
    )

    db.session.add(user)
    db.session.commit()
    return user


def authenticate(email: str, password: str) -> User | None:
    """
    Authenticate user with email and password.

    Returns User if credentials valid, None otherwise.
    Updates last_login_at timestamp on successful authentication.
    """
    user = db.session.query(User).filter(
        User.email == (email or "").strip().lower(),
        User.is_active.is_(True),
    ).first()

    if not user:
        return None

    if verify_password(password, user.password_hash):
        user.last_login_at = utcnow()
        db.session.commit()
        return user

    return None
