# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Authentication Service

Every write is attributable to a signed-in user. Passwords are hashed with
bcrypt (cost factor 12) and must meet the strength rules below.

SUSPENSION:
A suspended user cannot sign in, and any live session they hold is revoked
the next time it is presented (see session_service.validate_session).
The API answers 403 {"error": "Account suspended", "message": <reason>}.
"""

import re

import bcrypt

from ..extensions import db
from ..models import User
from stockdesk.time_utils import utcnow


ROLES = {"admin", "user"}


class PasswordValidationError(Exception):
    """Raised when password doesn't meet strength requirements."""
    pass


class UserSuspendedError(Exception):
    """Raised when a suspended user signs in or presents a session."""

    def __init__(self, reason: str | None = None):
        self.reason = reason or "Your account has been suspended"
        super().__init__(self.reason)


def validate_password_strength(password: str) -> None:
    """
    Minimum 8 characters with an uppercase letter, a lowercase letter,
    a digit and a special character.
    """
    if len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>_\-]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def hash_password(password: str) -> str:
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=12)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """Timing-safe bcrypt comparison. Malformed hashes never match."""
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def create_user(email: str, password: str, name: str | None = None, role: str = "user") -> User:
    """
    Create a user.

    Raises:
        ValueError: blank or duplicate email, unknown role
        PasswordValidationError: weak password
    """
    email = (email or "").strip().lower()
    if not email:
        raise ValueError("email is required")
    if role not in ROLES:
        raise ValueError(f"role must be one of: {', '.join(sorted(ROLES))}")

    if db.session.query(User).filter(User.email == email).first():
        raise ValueError("A user with this email already exists")

    user = User(
        email=email,
        name=(name or "").strip() or None,
        password_hash=hash_password(password),
        role=role,
    )
    db.session.add(user)
    db.session.commit()
    return user


def get_user_by_email(email: str) -> User | None:
    return db.session.query(User).filter(User.email == (email or "").strip().lower()).first()


def authenticate(email: str, password: str) -> User | None:
    """
    Returns the user when the credentials are valid, None otherwise.

    Raises UserSuspendedError for a suspended user with valid credentials,
    so the caller can show the reason instead of "invalid credentials".
    """
    user = (
        db.session.query(User)
        .filter(User.email == (email or "").strip().lower(), User.is_active.is_(True))
        .first()
    )
    if not user:
        return None

    if not verify_password(password, user.password_hash):
        return None

    if user.is_suspended:
        raise UserSuspendedError(user.suspended_reason)

    user.last_login_at = utcnow()
    db.session.commit()
    return user


def suspend_user(user_id: int, reason: str | None = None) -> User:
    """Suspend the user and revoke all of their sessions."""
    from .session_service import revoke_all_user_sessions

    user = db.session.query(User).filter_by(id=user_id).first()
    if not user:
        raise ValueError("User not found")

    user.is_suspended = True
    user.suspended_reason = (reason or "").strip() or None
    user.suspended_at = utcnow()
    db.session.flush()
    revoke_all_user_sessions(user.id, reason="Account suspended")
    return user


def unsuspend_user(user_id: int) -> User:
    user = db.session.query(User).filter_by(id=user_id).first()
    if not user:
        raise ValueError("User not found")

    user.is_suspended = False
    user.suspended_reason = None
    user.suspended_at = None
    db.session.commit()
    return user
