# Overview: Flask API routes for products; parses input and returns JSON responses.

"""
Product catalog routes.

SECURITY: All routes require authentication.
- Read operations require VIEW_PRODUCTS
- Create/update require MANAGE_PRODUCTS, delete requires DELETE_PRODUCTS
"""
from flask import Blueprint, request, g, current_app

from ..services import products_service, reporting_service
from ..models import Product
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_product,
    ValidationError,
    NotFoundError,
    ConflictError,
)
from ..decorators import require_auth, require_permission

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={
        "sku",
        "name",
        "description",
        "price",
        "cost_price",
        "quantity",
        "low_stock_threshold",
    },
    required_on_create={"sku", "name", "price"},
    money_fields={"price": "price_cents", "cost_price": "cost_price_cents"},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_auth
@require_permission("VIEW_PRODUCTS")
def list_products():
    """
    Query params:
    - search: str (optional) - matches name, SKU or description
    - page / per_page: int (optional) - pagination (all items if page omitted)
    """
    return products_service.list_products(
        search=request.args.get("search"),
        page=request.args.get("page", type=int),
        per_page=request.args.get("per_page", type=int),
    )


@products_bp.get("/demand")
@require_auth
@require_permission("VIEW_PRODUCTS")
def product_demand():
    try:
        return reporting_service.product_demand()
    except Exception:
        current_app.logger.exception("Failed to compute product demand")
        return {"error": "Internal server error"}, 500


@products_bp.get("/<int:product_id>")
@require_auth
@require_permission("VIEW_PRODUCTS")
def get_product(product_id: int):
    try:
        return products_service.get_product(product_id).to_dict()
    except NotFoundError as e:
        return {"error": str(e)}, 404


@products_bp.get("/<int:product_id>/stock-transactions")
@require_auth
@require_permission("VIEW_PRODUCTS")
def product_stock_transactions(product_id: int):
    return products_service.list_stock_transactions(
        product_id,
        page=request.args.get("page", type=int),
        per_page=request.args.get("per_page", type=int),
    )


@products_bp.post("")
@require_auth
@require_permission("MANAGE_PRODUCTS")
def create_product_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
        enforce_rules_product(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        created = products_service.create_product(patch=patch, created_by_user_id=g.current_user.id)
    except ConflictError as e:
        return {"error": str(e)}, 409

    return created, 201


@products_bp.put("/<int:product_id>")
@require_auth
@require_permission("MANAGE_PRODUCTS")
def update_product_route(product_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
        enforce_rules_product(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        updated = products_service.update_product(product_id=product_id, patch=patch)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ConflictError as e:
        return {"error": str(e)}, 409

    return updated, 200


@products_bp.delete("/<int:product_id>")
@require_auth
@require_permission("DELETE_PRODUCTS")
def delete_product_route(product_id: int):
    try:
        products_service.delete_product(product_id=product_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404

    return {"ok": True}, 200
