# Overview: Flask API routes for analytics and reports (read-only).

from datetime import date

from flask import Blueprint, request, jsonify, current_app

from ..services import reporting_service
from ..validation import ValidationError
from ..decorators import require_auth, require_permission
from retail.time_utils import parse_range

reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/analytics/daily")
@require_auth
@require_permission("VIEW_REPORTS")
def daily_analytics():
    """Query params: date (YYYY-MM-DD, default today UTC)"""
    raw = request.args.get("date")
    try:
        day = date.fromisoformat(raw) if raw else None
    except ValueError:
        return jsonify({"error": "date must be YYYY-MM-DD"}), 400
    return jsonify(reporting_service.daily_analytics(day))


@reports_bp.get("/analytics/period")
@require_auth
@require_permission("VIEW_REPORTS")
def period_analytics():
    """Query params: period = week | month | 3months | 6months | year"""
    try:
        return jsonify(reporting_service.period_analytics(request.args.get("period")))
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400


@reports_bp.get("/profit-analytics")
@require_auth
@require_permission("VIEW_REPORTS")
def profit_analytics():
    """Query params: start, end (ISO-8601; both optional)"""
    try:
        start, end = parse_range(request.args.get("start"), request.args.get("end"))
    except ValueError:
        return jsonify({"error": "start/end must be ISO-8601 dates, start before end"}), 400

    try:
        return jsonify(reporting_service.profit_analytics(start, end))
    except Exception:
        current_app.logger.exception("Failed to compute profit analytics")
        return jsonify({"error": "Internal server error"}), 500


@reports_bp.get("/low-stock")
@require_auth
@require_permission("VIEW_REPORTS")
def low_stock():
    return jsonify(reporting_service.low_stock())


@reports_bp.get("/sales-summary")
@require_auth
@require_permission("VIEW_REPORTS")
def sales_summary():
    return jsonify(reporting_service.sales_summary())


@reports_bp.get("/stock-status")
@require_auth
@require_permission("VIEW_REPORTS")
def stock_status():
    return jsonify(reporting_service.stock_status())


@reports_bp.get("/top-products")
@require_auth
@require_permission("VIEW_REPORTS")
def top_products():
    limit = min(max(request.args.get("limit", default=10, type=int), 1), 100)
    return jsonify(reporting_service.top_products(limit=limit))


@reports_bp.get("/sales-trend")
@require_auth
@require_permission("VIEW_REPORTS")
def sales_trend():
    return jsonify(reporting_service.sales_trend())
