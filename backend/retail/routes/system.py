# backend/retail/routes/system.py
"""
System health endpoint: database connectivity and record counts.
"""

import time

from flask import Blueprint, current_app

from ..extensions import db
from ..models import Product, SalesOrder, SessionToken, User
from retail.time_utils import utcnow, to_utc_z

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    start_time = time.time()
    try:
        counts = {
            "products": db.session.query(Product).count(),
            "sales_orders": db.session.query(SalesOrder).count(),
            "users": db.session.query(User).count(),
            "active_sessions": db.session.query(SessionToken).filter(
                SessionToken.is_revoked.is_(False),
                SessionToken.expires_at > utcnow(),
            ).count(),
        }
        return {
            "status": "healthy",
            "latency_ms": round((time.time() - start_time) * 1000, 2),
            "details": counts,
        }
    except Exception:
        current_app.logger.exception("Database health check failed")
        db.session.rollback()
        return {
            "status": "unhealthy",
            "latency_ms": round((time.time() - start_time) * 1000, 2),
            "error": "Database error",
        }


@system_bp.get("/health")
@system_bp.get("/api/health")
def health():
    database = check_database_health()
    healthy = database["status"] == "healthy"
    return {
        "status": "healthy" if healthy else "unhealthy",
        "timestamp": to_utc_z(utcnow()),
        "exchange_rate": current_app.config["EXCHANGE_RATE_UGX_PER_USD"],
        "database": database,
    }, 200 if healthy else 503
