# Overview: Flask API routes for the customer directory.

from flask import Blueprint, request

from ..services import customer_service
from ..models import Customer
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    ValidationError,
    NotFoundError,
    ConflictError,
)
from ..decorators import require_auth, require_permission

CUSTOMER_POLICY = ModelValidationPolicy(
    writable_fields={"name", "phone", "email", "address"},
    required_on_create={"name", "phone"},
)

customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@customers_bp.get("")
@require_auth
@require_permission("VIEW_CUSTOMERS")
def list_customers():
    return customer_service.list_customers(
        search=request.args.get("search"),
        page=request.args.get("page", type=int),
        per_page=request.args.get("per_page", type=int),
    )


@customers_bp.get("/<int:customer_id>")
@require_auth
@require_permission("VIEW_CUSTOMERS")
def get_customer(customer_id: int):
    try:
        return customer_service.get_customer(customer_id).to_dict()
    except NotFoundError as e:
        return {"error": str(e)}, 404


@customers_bp.get("/<int:customer_id>/purchase-history")
@require_auth
@require_permission("VIEW_CUSTOMERS")
def purchase_history(customer_id: int):
    try:
        return customer_service.purchase_history(customer_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404


@customers_bp.post("")
@require_auth
@require_permission("MANAGE_CUSTOMERS")
def create_customer():
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=False)
        return customer_service.create_customer(patch=patch), 201
    except ValidationError as e:
        return {"error": str(e)}, 400
    except ConflictError as e:
        return {"error": str(e)}, 409


@customers_bp.put("/<int:customer_id>")
@require_auth
@require_permission("MANAGE_CUSTOMERS")
def update_customer(customer_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=True)
        return customer_service.update_customer(customer_id=customer_id, patch=patch)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ConflictError as e:
        return {"error": str(e)}, 409


@customers_bp.delete("/<int:customer_id>")
@require_auth
@require_permission("DELETE_CUSTOMERS")
def delete_customer(customer_id: int):
    try:
        customer_service.delete_customer(customer_id=customer_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    return {"ok": True}
