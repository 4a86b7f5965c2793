# Overview: Flask API routes for the expense ledger.

from flask import Blueprint, request, g

from ..services import expense_service
from ..models import Expense
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_expense,
    ValidationError,
    NotFoundError,
)
from ..decorators import require_auth, require_permission
from retail.time_utils import parse_range

EXPENSE_POLICY = ModelValidationPolicy(
    writable_fields={"amount", "description", "category", "date"},
    required_on_create={"amount", "description"},
    money_fields={"amount": "amount_cents"},
)

expenses_bp = Blueprint("expenses", __name__, url_prefix="/api/expenses")


def _range_args():
    try:
        return parse_range(request.args.get("start_date"), request.args.get("end_date"))
    except ValueError:
        raise ValidationError("start_date/end_date must be ISO-8601 dates, start before end")


@expenses_bp.post("")
@require_auth
@require_permission("MANAGE_EXPENSES")
def create_expense():
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Expense, payload=payload, policy=EXPENSE_POLICY, partial=False)
        enforce_rules_expense(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    return expense_service.create_expense(patch=patch, user=g.current_user), 201


@expenses_bp.get("")
@require_auth
@require_permission("VIEW_EXPENSES")
def list_expenses():
    """Query params: start_date, end_date, category, page, per_page"""
    try:
        start, end = _range_args()
    except ValidationError as e:
        return {"error": str(e)}, 400

    return expense_service.list_expenses(
        start=start,
        end=end,
        category=request.args.get("category"),
        page=request.args.get("page", type=int),
        per_page=request.args.get("per_page", type=int),
    )


@expenses_bp.get("/summary")
@require_auth
@require_permission("VIEW_EXPENSES")
def expense_summary():
    try:
        start, end = _range_args()
    except ValidationError as e:
        return {"error": str(e)}, 400
    return expense_service.summarize_expenses(start=start, end=end)


@expenses_bp.put("/<int:expense_id>")
@require_auth
@require_permission("MANAGE_EXPENSES")
def update_expense(expense_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Expense, payload=payload, policy=EXPENSE_POLICY, partial=True)
        enforce_rules_expense(patch)
        return expense_service.update_expense(expense_id=expense_id, patch=patch)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except NotFoundError as e:
        return {"error": str(e)}, 404


@expenses_bp.delete("/<int:expense_id>")
@require_auth
@require_permission("MANAGE_EXPENSES")
def delete_expense(expense_id: int):
    try:
        expense_service.delete_expense(expense_id=expense_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    return {"ok": True}
