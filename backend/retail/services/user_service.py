# Overview: Account administration: roles, password resets, deletion and profile pictures.

from flask import current_app

from ..extensions import db
from ..models import User
from ..permissions import is_valid_role, ROLES
from ..validation import ConflictError, NotFoundError, ValidationError
from . import session_service
from .auth_service import hash_password


def list_users() -> list[User]:
    return db.session.query(User).order_by(User.id.asc()).all()


def get_user(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")
    return user


def _is_protected(user: User) -> bool:
    protected = {e.lower() for e in current_app.config.get("PROTECTED_ADMIN_EMAILS", [])}
    return (user.email or "").lower() in protected


def _admin_count() -> int:
    return db.session.query(User).filter(User.role == "admin", User.is_active.is_(True)).count()


def set_role(*, user_id: int, role: str, acting_user: User) -> User:
    if not is_valid_role(role):
        raise ValidationError(f"Invalid role. Must be one of: {', '.join(ROLES)}")

    user = get_user(user_id)
    if _is_protected(user):
        raise ConflictError("This admin account is protected and cannot be modified")
    if user.role == "admin" and role != "admin" and _admin_count() <= 1:
        raise ConflictError("Cannot demote the last admin")

    old_role = user.role
    user.role = role
    db.session.commit()

    current_app.logger.info(
        "User %s role changed %s -> %s by %s", user.username, old_role, role, acting_user.username
    )
    return user


def reset_password(*, user_id: int, new_password: str, acting_user: User) -> User:
    user = get_user(user_id)
    if _is_protected(user) and user.id != acting_user.id:
        raise ConflictError("This admin account is protected and cannot be modified")

    user.password_hash = hash_password(new_password)
    user.refresh_token_hash = None
    user.refresh_token_expires_at = None
    db.session.commit()

    session_service.revoke_all_user_sessions(user.id, reason="Password reset")
    current_app.logger.info("Password reset for %s by %s", user.username, acting_user.username)
    return user


def delete_user(*, user_id: int, acting_user: User) -> None:
    user = get_user(user_id)
    if user.id == acting_user.id:
        raise ConflictError("You cannot delete your own account")
    if _is_protected(user):
        raise ConflictError("This admin account is protected and cannot be deleted")
    if user.role == "admin" and _admin_count() <= 1:
        raise ConflictError("Cannot delete the last admin")

    username = user.username
    db.session.delete(user)
    db.session.commit()
    current_app.logger.info("User %s deleted by %s", username, acting_user.username)


def set_profile_picture(user: User, reference: str | None) -> User:
    """Store (or clear with None/"") a reference to an already-uploaded image."""
    if reference is not None and not isinstance(reference, str):
        raise ValidationError("profile_picture must be a string")
    reference = (reference or "").strip() or None
    if reference and len(reference) > 512:
        raise ValidationError("profile_picture exceeds max length 512")
    user.profile_picture = reference
    db.session.commit()
    return user
