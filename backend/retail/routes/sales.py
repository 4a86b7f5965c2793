# Overview: Flask API routes for sales orders; parses input and returns JSON responses.

"""Sales order API routes with permission enforcement"""

from flask import Blueprint, request, jsonify, g, current_app

from ..services import sales_service
from ..validation import ValidationError, NotFoundError, ConflictError
from ..decorators import require_auth, require_permission


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.post("")
@require_auth
@require_permission("CREATE_SALE")
def create_order_route():
    """
    Create a sales order and take stock for every item.

    Body: customer_name, customer_phone, currency (UGX|USD),
    items: [{product_id, quantity, custom_price?}]

    Available to: admin, sales
    """
    try:
        order = sales_service.create_order(data=request.get_json(silent=True) or {}, user=g.current_user)
        return jsonify({"message": "Sales order created", "order": order.to_dict()}), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ConflictError as e:
        return jsonify({"error": str(e), "details": e.details}), 409
    except Exception:
        current_app.logger.exception("Failed to create sales order")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("")
@require_auth
@require_permission("VIEW_SALES")
def list_orders_route():
    """Query params: search, status, page, per_page"""
    return jsonify(sales_service.list_orders(
        search=request.args.get("search"),
        status=request.args.get("status"),
        page=request.args.get("page", type=int),
        per_page=request.args.get("per_page", type=int),
    ))


@sales_bp.get("/<int:order_id>")
@require_auth
@require_permission("VIEW_SALES")
def get_order_route(order_id: int):
    try:
        order = sales_service.get_order(order_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify({"order": order.to_dict(include_history=True)})


@sales_bp.put("/<int:order_id>")
@require_auth
@require_permission("EDIT_SALE")
def update_order_route(order_id: int):
    """
    Edit an order. Supplying `items` replaces the whole item list.

    Available to: admin
    """
    try:
        order = sales_service.update_order(
            order_id=order_id, data=request.get_json(silent=True) or {}, user=g.current_user
        )
        return jsonify({"message": "Sales order updated", "order": order.to_dict(include_history=True)})
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ConflictError as e:
        return jsonify({"error": str(e), "details": e.details}), 409
    except Exception:
        current_app.logger.exception("Failed to update sales order")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.delete("/<int:order_id>")
@require_auth
@require_permission("DELETE_SALE")
def delete_order_route(order_id: int):
    try:
        sales_service.delete_order(order_id=order_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify({"message": "Sales order deleted"})
