# Overview: Service-layer operations for auth; password hashing, user creation and credential checks.

"""
Authentication Service

Every action must be attributable. Uses bcrypt for password hashing and
validates password strength on every password write.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor 12)
- Minimum 8 characters required
- Must contain uppercase, lowercase, digit, and special char
- Session tokens managed separately (see session_service.py)
"""

import re

import bcrypt
from flask import current_app

from ..extensions import db
from ..models import User
from ..permissions import DEFAULT_ROLE, is_valid_role
from ..validation import ConflictError, ValidationError
from retail.time_utils import utcnow


EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class PasswordValidationError(Exception):
    """Raised when password doesn't meet strength requirements."""
    pass


def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character

    Raises PasswordValidationError if requirements not met.
    """
    if not isinstance(password, str) or len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")

    if not re.search(r"[^A-Za-z0-9]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def hash_password(password: str) -> str:
    """Validate strength, then hash with bcrypt (cost 12)."""
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=12)
    return bcrypt.hashpw(password.encode('utf-8'), salt).decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        # Malformed hash in the database
        return False


def create_user(
    username: str,
    email: str,
    password: str,
    role: str = DEFAULT_ROLE,
) -> User:
    """
    Create a user with a bcrypt password hash.

    Raises:
        ValidationError: missing username/email, malformed email, unknown role
        ConflictError: username or email already taken
        PasswordValidationError: weak password
    """
    username = (username or "").strip()
    email = (email or "").strip().lower()

    if not username or not email:
        raise ValidationError("Username and email are required")
    if len(username) > 64:
        raise ValidationError("Username exceeds max length 64")
    if not EMAIL_RE.match(email):
        raise ValidationError("Invalid email address")
    if not is_valid_role(role):
        raise ValidationError(f"Invalid role: {role}")

    existing = db.session.query(User).filter(
        db.or_(User.username == username, User.email == email)
    ).first()
    if existing:
        raise ConflictError("Username or email already exists")

    user = User(
        username=username,
        email=email,
        password_hash=hash_password(password),
        role=role,
    )
    db.session.add(user)
    db.session.commit()

    current_app.logger.info("User created: %s (role=%s)", username, role)
    return user


def authenticate(identifier: str, password: str) -> User | None:
    """
    Check username-or-email + password.

    Returns the User (last_login_at updated) or None. Inactive users never
    authenticate.
    """
    ident = (identifier or "").strip()
    user = db.session.query(User).filter(
        db.or_(User.username == ident, User.email == ident.lower()),
        User.is_active.is_(True),
    ).first()

    if not user:
        return None

    if verify_password(password, user.password_hash):
        user.last_login_at = utcnow()
        db.session.commit()
        return user

    return None


def change_password(user: User, current_password: str, new_password: str) -> None:
    if not verify_password(current_password, user.password_hash):
        raise ValidationError("Current password is incorrect")
    user.password_hash = hash_password(new_password)
    db.session.commit()
