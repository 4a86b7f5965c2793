# Overview: Flask API routes for invoices.

from flask import Blueprint, request, jsonify, g, current_app

from ..services import invoice_service
from ..validation import ValidationError, NotFoundError
from ..decorators import require_auth, require_permission


invoices_bp = Blueprint("invoices", __name__, url_prefix="/api/invoices")


@invoices_bp.post("/generate")
@require_auth
@require_permission("GENERATE_INVOICE")
def generate_invoice_route():
    """
    Generate an invoice.

    Body, from an order: {sales_order_id, notes?}
    Body, direct: {customer_name, customer_phone, currency, items, notes?}
    """
    try:
        invoice = invoice_service.generate_invoice(
            data=request.get_json(silent=True) or {}, user=g.current_user
        )
        return jsonify({"message": "Invoice generated", "invoice": invoice.to_dict()}), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to generate invoice")
        return jsonify({"error": "Internal server error"}), 500


@invoices_bp.get("")
@require_auth
@require_permission("VIEW_INVOICES")
def list_invoices_route():
    return jsonify(invoice_service.list_invoices(
        search=request.args.get("search"),
        page=request.args.get("page", type=int),
        per_page=request.args.get("per_page", type=int),
    ))


@invoices_bp.get("/<int:invoice_id>")
@require_auth
@require_permission("VIEW_INVOICES")
def get_invoice_route(invoice_id: int):
    try:
        return jsonify({"invoice": invoice_service.get_invoice(invoice_id).to_dict()})
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404


@invoices_bp.put("/<int:invoice_id>")
@require_auth
@require_permission("EDIT_INVOICE")
def update_invoice_route(invoice_id: int):
    try:
        invoice = invoice_service.update_invoice(
            invoice_id=invoice_id, data=request.get_json(silent=True) or {}
        )
        return jsonify({"message": "Invoice updated", "invoice": invoice.to_dict()})
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to update invoice")
        return jsonify({"error": "Internal server error"}), 500


@invoices_bp.delete("/<int:invoice_id>")
@require_auth
@require_permission("DELETE_INVOICE")
def delete_invoice_route(invoice_id: int):
    try:
        invoice_service.delete_invoice(invoice_id=invoice_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify({"message": "Invoice deleted"})
