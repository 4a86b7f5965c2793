# Overview: Flask API routes for user administration (admin only).

from flask import Blueprint, request, jsonify, g

from ..services import user_service
from ..services.auth_service import PasswordValidationError
from ..validation import ValidationError, NotFoundError, ConflictError
from ..decorators import require_auth, require_permission


users_bp = Blueprint("users", __name__, url_prefix="/api/users")


@users_bp.get("")
@require_auth
@require_permission("MANAGE_USERS")
def list_users_route():
    users = user_service.list_users()
    return jsonify({"items": [u.to_dict() for u in users], "count": len(users)})


@users_bp.put("/<int:user_id>/role")
@require_auth
@require_permission("MANAGE_USERS")
def set_role_route(user_id: int):
    data = request.get_json(silent=True) or {}
    try:
        user = user_service.set_role(user_id=user_id, role=data.get("role"), acting_user=g.current_user)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    return jsonify({"message": "Role updated", "user": user.to_dict()})


@users_bp.put("/<int:user_id>/password")
@require_auth
@require_permission("MANAGE_USERS")
def reset_password_route(user_id: int):
    data = request.get_json(silent=True) or {}
    try:
        user_service.reset_password(
            user_id=user_id,
            new_password=data.get("new_password") or data.get("password") or "",
            acting_user=g.current_user,
        )
    except PasswordValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    return jsonify({"message": "Password reset"})


@users_bp.delete("/<int:user_id>")
@require_auth
@require_permission("MANAGE_USERS")
def delete_user_route(user_id: int):
    try:
        user_service.delete_user(user_id=user_id, acting_user=g.current_user)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    return jsonify({"message": "User deleted"})
