# Overview: Flask API routes for returns; parses input and returns JSON responses.

"""
Return API routes

- POST   /api/returns               create (pending)
- PUT    /api/returns/<id>/approve  restock + revise order
- PUT    /api/returns/<id>/reject   no side effects, reason required
- DELETE /api/returns/<id>          hard delete (effects not reversed)
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..services import return_service
from ..validation import ValidationError, NotFoundError, ConflictError
from ..decorators import require_auth, require_permission


returns_bp = Blueprint("returns", __name__, url_prefix="/api/returns")


@returns_bp.post("")
@require_auth
@require_permission("CREATE_RETURN")
def create_return_route():
    """Body: sales_order_id, items: [{product_id, quantity}], reason, refund_method"""
    try:
        return_doc = return_service.create_return(
            data=request.get_json(silent=True) or {}, user=g.current_user
        )
        return jsonify({"message": "Return request created", "return": return_doc.to_dict()}), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ConflictError as e:
        return jsonify({"error": str(e), "details": e.details}), 409
    except Exception:
        current_app.logger.exception("Failed to create return")
        return jsonify({"error": "Internal server error"}), 500


@returns_bp.get("")
@require_auth
@require_permission("VIEW_RETURNS")
def list_returns_route():
    """Query params: status, order_id, page, per_page"""
    try:
        return jsonify(return_service.list_returns(
            status=request.args.get("status"),
            order_id=request.args.get("order_id", type=int),
            page=request.args.get("page", type=int),
            per_page=request.args.get("per_page", type=int),
        ))
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400


@returns_bp.get("/<int:return_id>")
@require_auth
@require_permission("VIEW_RETURNS")
def get_return_route(return_id: int):
    try:
        return jsonify({"return": return_service.get_return(return_id).to_dict()})
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404


@returns_bp.put("/<int:return_id>/approve")
@require_auth
@require_permission("APPROVE_RETURN")
def approve_return_route(return_id: int):
    try:
        return_doc = return_service.approve_return(return_id=return_id, user=g.current_user)
        return jsonify({"message": "Return approved", "return": return_doc.to_dict()})
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ConflictError as e:
        return jsonify({"error": str(e), "details": e.details}), 409
    except Exception:
        current_app.logger.exception("Failed to approve return")
        return jsonify({"error": "Internal server error"}), 500


@returns_bp.put("/<int:return_id>/reject")
@require_auth
@require_permission("APPROVE_RETURN")
def reject_return_route(return_id: int):
    data = request.get_json(silent=True) or {}
    try:
        return_doc = return_service.reject_return(
            return_id=return_id,
            reason=data.get("reason") or data.get("rejection_reason"),
            user=g.current_user,
        )
        return jsonify({"message": "Return rejected", "return": return_doc.to_dict()})
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ConflictError as e:
        return jsonify({"error": str(e), "details": e.details}), 409
    except Exception:
        current_app.logger.exception("Failed to reject return")
        return jsonify({"error": "Internal server error"}), 500


@returns_bp.delete("/<int:return_id>")
@require_auth
@require_permission("DELETE_RETURN")
def delete_return_route(return_id: int):
    try:
        result = return_service.delete_return(return_id=return_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify(dict(result, message="Return deleted"))
