# Overview: Flask API routes for authentication; parses input and returns JSON responses.

"""
Authentication API routes

SECURITY FEATURES:
- Password strength validation on registration and password changes
- Login throttling: identifier locked after repeated failures
- Opaque session tokens; optional "remember me" refresh token
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..services import auth_service
from ..services import session_service
from ..services import login_throttle_service
from ..services import permission_service
from ..services import user_service
from ..services.auth_service import PasswordValidationError
from ..permissions import describe_permissions, ROLE_PERMISSIONS, ROLES
from ..validation import ValidationError, ConflictError
from ..decorators import require_auth


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _session_payload(user, session, token, message):
    return {
        "user": user.to_dict(),
        "permissions": sorted(permission_service.get_user_permissions(user)),
        "token": token,
        "session": session.to_dict(),
        "message": message,
    }


@auth_bp.post("/register")
def register_route():
    """
    Self-registration. New accounts get the `viewer` role; an admin can
    promote them through /api/users/<id>/role.
    """
    data = request.get_json(silent=True) or {}
    try:
        user = auth_service.create_user(
            username=data.get("username"),
            email=data.get("email"),
            password=data.get("password") or "",
        )
    except (ValidationError, PasswordValidationError) as e:
        return jsonify({"error": str(e)}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to register user")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"user": user.to_dict(), "message": "Registration successful"}), 201


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user and create session token.

    Body: {username | email, password, remember_me?}

    SECURITY:
    - Checks for lockout before attempting authentication
    - Records failed attempts for throttling
    - Records successful logins for audit trail
    """
    try:
        data = request.get_json(silent=True) or {}
        identifier = (data.get("username") or data.get("email") or "").strip()
        password = data.get("password")

        if not identifier or not password:
            return jsonify({"error": "username/email and password required"}), 400

        user_agent = request.headers.get("User-Agent")
        ip_address = request.remote_addr

        is_locked, seconds_remaining = login_throttle_service.is_account_locked(identifier)
        if is_locked:
            return jsonify({
                "error": "Account temporarily locked due to too many failed login attempts",
                "locked": True,
                "retry_after_seconds": seconds_remaining,
            }), 429

        user = auth_service.authenticate(identifier, password)

        if not user:
            failed_count = login_throttle_service.record_failed_attempt(
                identifier=identifier,
                ip_address=ip_address,
                user_agent=user_agent,
            )
            remaining = login_throttle_service.MAX_FAILED_ATTEMPTS - failed_count
            current_app.logger.warning("Failed login for %s (%s recent failures)", identifier, failed_count)

            if remaining <= 0:
                return jsonify({
                    "error": "Account locked due to too many failed login attempts",
                    "locked": True,
                    "retry_after_minutes": int(login_throttle_service.LOCKOUT_DURATION.total_seconds() // 60),
                }), 429
            if remaining <= 2:
                return jsonify({
                    "error": "Invalid credentials",
                    "warning": f"{remaining} attempts remaining before account lockout"
                }), 401
            return jsonify({"error": "Invalid credentials"}), 401

        login_throttle_service.record_successful_login(
            user_id=user.id,
            identifier=identifier,
            ip_address=ip_address,
            user_agent=user_agent
        )

        session, token = session_service.create_session(
            user_id=user.id,
            user_agent=user_agent,
            ip_address=ip_address
        )

        payload = _session_payload(user, session, token, "Login successful")
        if data.get("remember_me"):
            payload["refresh_token"] = session_service.issue_refresh_token(user)

        return jsonify(payload), 200

    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/refresh")
def refresh_route():
    """Exchange a "remember me" refresh token for a new session token."""
    data = request.get_json(silent=True) or {}
    user = session_service.user_for_refresh_token(data.get("refresh_token") or "")
    if not user:
        return jsonify({"error": "Invalid or expired refresh token"}), 401

    session, token = session_service.create_session(
        user_id=user.id,
        user_agent=request.headers.get("User-Agent"),
        ip_address=request.remote_addr,
    )
    return jsonify(_session_payload(user, session, token, "Session refreshed")), 200


@auth_bp.post("/logout")
@require_auth
def logout_route():
    """Revoke the current session and forget the refresh token."""
    session_service.revoke_session(g.session_token, reason="User logout")
    session_service.clear_refresh_token(g.current_user)
    return jsonify({"message": "Logout successful"}), 200


@auth_bp.get("/me")
@require_auth
def me_route():
    user = g.current_user
    return jsonify({
        "user": user.to_dict(),
        "permissions": sorted(permission_service.get_user_permissions(user)),
    })


@auth_bp.get("/permissions")
@require_auth
def permissions_route():
    """Current user's permissions grouped by category, plus the full role table for UIs."""
    codes = permission_service.get_user_permissions(g.current_user)
    return jsonify({
        "role": g.current_user.role,
        "permissions": sorted(codes),
        "by_category": describe_permissions(codes),
        "roles": {role: sorted(ROLE_PERMISSIONS[role]) for role in ROLES},
    })


@auth_bp.put("/password")
@require_auth
def change_password_route():
    data = request.get_json(silent=True) or {}
    try:
        auth_service.change_password(
            g.current_user,
            data.get("current_password") or "",
            data.get("new_password") or "",
        )
    except (ValidationError, PasswordValidationError) as e:
        return jsonify({"error": str(e)}), 400
    return jsonify({"message": "Password changed"})


@auth_bp.put("/profile-picture")
@require_auth
def profile_picture_route():
    data = request.get_json(silent=True) or {}
    try:
        user = user_service.set_profile_picture(g.current_user, data.get("profile_picture"))
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify({"user": user.to_dict()})
