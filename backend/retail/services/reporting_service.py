# Overview: Read-only analytics over orders, products and expenses.

"""
Reporting Service

All cross-currency totals are normalised with the CURRENT configured rate
(EXCHANGE_RATE_UGX_PER_USD), never with an order's stored snapshot rate.
Product-keyed aggregates (demand, top products) only count products that
still exist in the catalog.
"""

from __future__ import annotations

from collections import OrderedDict
from datetime import date, datetime, timedelta

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..models import OrderItem, Product, SalesOrder
from ..money import from_cents, normalize_totals
from ..validation import ValidationError
from retail.time_utils import day_bounds, to_utc_z, utcnow
from .expense_service import expense_total_cents


PERIODS = OrderedDict([
    # period: (days back, bucket)
    ("week", (7, "day")),
    ("month", (30, "day")),
    ("3months", (90, "week")),
    ("6months", (180, "week")),
    ("year", (365, "month")),
])

HIGH_MARGIN_THRESHOLD = 30
MEDIUM_MARGIN_THRESHOLD = 15


def _current_rate() -> int:
    return current_app.config["EXCHANGE_RATE_UGX_PER_USD"]


def _orders_between(start: datetime | None, end: datetime | None):
    query = db.session.query(SalesOrder)
    if start is not None:
        query = query.filter(SalesOrder.order_date >= start)
    if end is not None:
        query = query.filter(SalesOrder.order_date < end)
    return query


def _sums_by_currency(start: datetime | None, end: datetime | None) -> dict[str, dict]:
    rows = (
        _orders_between(start, end)
        .with_entities(
            SalesOrder.currency,
            func.count(SalesOrder.id),
            func.coalesce(func.sum(SalesOrder.total_amount_cents), 0),
            func.coalesce(func.sum(SalesOrder.total_profit_cents), 0),
        )
        .group_by(SalesOrder.currency)
        .all()
    )
    return {
        currency: {"orders": int(count), "revenue": int(revenue), "profit": int(profit)}
        for currency, count, revenue, profit in rows
    }


def _revenue_block(sums: dict[str, dict], rate: int) -> dict:
    order_count = sum(s["orders"] for s in sums.values())
    revenue_ugx, revenue_usd = normalize_totals(
        {cur: s["revenue"] for cur, s in sums.items()}, rate=rate
    )
    return {
        "total_revenue_ugx": from_cents(revenue_ugx),
        "total_revenue_usd": from_cents(revenue_usd),
        "total_orders": order_count,
        "avg_order_value_ugx": from_cents(round(revenue_ugx / order_count)) if order_count else 0,
        "avg_order_value_usd": from_cents(round(revenue_usd / order_count)) if order_count else 0,
        "exchange_rate": rate,
    }


def daily_analytics(day: date | None = None) -> dict:
    day = day or utcnow().date()
    start, end = day_bounds(day)
    rate = _current_rate()

    data = _revenue_block(_sums_by_currency(start, end), rate)
    data["date"] = day.isoformat()
    return data


def _bucket_key(when: datetime, bucket: str) -> str:
    if bucket == "day":
        return when.strftime("%Y-%m-%d")
    if bucket == "week":
        iso_year, iso_week, _ = when.isocalendar()
        return f"{iso_year}-W{iso_week:02d}"
    return when.strftime("%Y-%m")


def period_analytics(period: str | None = None) -> dict:
    period = period or "week"
    if period not in PERIODS:
        raise ValidationError(f"Invalid period. Must be one of: {', '.join(PERIODS)}")

    days_back, bucket = PERIODS[period]
    end = utcnow()
    start = end - timedelta(days=days_back)
    rate = _current_rate()

    data = _revenue_block(_sums_by_currency(start, end), rate)

    buckets: dict[str, dict] = {}
    orders = _orders_between(start, end).order_by(SalesOrder.order_date.asc()).all()
    for order in orders:
        key = _bucket_key(order.order_date, bucket)
        entry = buckets.setdefault(key, {"revenue": {}, "profit": {}, "orders": 0})
        entry["orders"] += 1
        entry["revenue"][order.currency] = entry["revenue"].get(order.currency, 0) + order.total_amount_cents
        entry["profit"][order.currency] = entry["profit"].get(order.currency, 0) + order.total_profit_cents

    breakdown = []
    for key in sorted(buckets):
        entry = buckets[key]
        revenue_ugx, _ = normalize_totals(entry["revenue"], rate=rate)
        profit_ugx, _ = normalize_totals(entry["profit"], rate=rate)
        breakdown.append({
            "period": key,
            "revenue_ugx": from_cents(revenue_ugx),
            "profit_ugx": from_cents(profit_ugx),
            "orders": entry["orders"],
        })

    data.update({
        "period": period,
        "group_by": bucket,
        "start_date": start.date().isoformat(),
        "end_date": end.date().isoformat(),
        "breakdown": breakdown,
    })
    return data


def margin_tier(margin: float) -> str:
    """high: > 30%, medium: > 15% and <= 30%, low: <= 15%."""
    if margin > HIGH_MARGIN_THRESHOLD:
        return "high"
    if margin > MEDIUM_MARGIN_THRESHOLD:
        return "medium"
    return "low"


def profit_analytics(start: datetime | None = None, end: datetime | None = None) -> dict:
    """
    Gross profit from the item-level profit snapshots of orders in the
    window, minus expenses recorded in the same window.
    """
    rate = _current_rate()
    sums = _sums_by_currency(start, end)

    revenue_ugx, revenue_usd = normalize_totals({c: s["revenue"] for c, s in sums.items()}, rate=rate)
    profit_ugx, profit_usd = normalize_totals({c: s["profit"] for c, s in sums.items()}, rate=rate)
    expenses_ugx = expense_total_cents(start, end)

    overall_margin = (profit_ugx / revenue_ugx * 100) if revenue_ugx else 0

    profitable = [p for p in db.session.query(Product).all() if p.profit_cents > 0]
    profitable.sort(key=lambda p: p.profit_margin, reverse=True)

    distribution = {"high_margin": 0, "medium_margin": 0, "low_margin": 0}
    for p in profitable:
        distribution[f"{margin_tier(p.profit_margin)}_margin"] += 1

    return {
        "start": to_utc_z(start) if start else None,
        "end": to_utc_z(end) if end else None,
        "total_orders": sum(s["orders"] for s in sums.values()),
        "total_revenue": from_cents(revenue_ugx),
        "total_revenue_usd": from_cents(revenue_usd),
        "gross_profit": from_cents(profit_ugx),
        "gross_profit_usd": from_cents(profit_usd),
        "total_expenses": from_cents(expenses_ugx),
        "net_profit": from_cents(profit_ugx - expenses_ugx),
        "overall_margin": round(overall_margin, 2),
        "currency": "UGX",
        "exchange_rate": rate,
        "margin_distribution": distribution,
        "top_profitable_products": [
            dict(p.to_dict(), margin_tier=margin_tier(p.profit_margin)) for p in profitable[:10]
        ],
    }


def classify_demand(total_sold: int, average: float) -> str:
    if total_sold <= 0:
        return "none"
    if total_sold >= 1.5 * average:
        return "high"
    if total_sold >= 0.5 * average:
        return "medium"
    return "low"


def _sold_by_product() -> dict[int, int]:
    # Inner join drops lines whose product has been deleted
    rows = (
        db.session.query(OrderItem.product_id, func.sum(OrderItem.quantity))
        .join(Product, Product.id == OrderItem.product_id)
        .group_by(OrderItem.product_id)
        .all()
    )
    return {pid: int(qty or 0) for pid, qty in rows}


def product_demand() -> dict:
    """
    Per-product demand level relative to the average units sold across
    products that have any sales.
    """
    sold = _sold_by_product()
    products = db.session.query(Product).order_by(Product.name.asc()).all()

    with_sales = [sold.get(p.id, 0) for p in products if sold.get(p.id, 0) > 0]
    average = sum(with_sales) / len(with_sales) if with_sales else 0

    groups = {"high": [], "medium": [], "low": [], "none": []}
    items = []
    for p in products:
        total_sold = sold.get(p.id, 0)
        level = classify_demand(total_sold, average)
        row = dict(p.to_dict(), total_sold=total_sold, demand_level=level)
        items.append(row)
        groups[level].append(row)

    return {
        "items": items,
        "high_demand": groups["high"],
        "medium_demand": groups["medium"],
        "low_demand": groups["low"],
        "no_demand": groups["none"],
        "statistics": {
            "total_products": len(products),
            "products_with_sales": len(with_sales),
            "products_without_sales": len(products) - len(with_sales),
            "average_sales": round(average, 2),
            "max_sales": max(with_sales) if with_sales else 0,
        },
    }


def alert_level(quantity: int, threshold: int) -> str:
    if quantity == 0:
        return "critical"
    if quantity <= threshold * 0.5:
        return "high"
    return "medium"


def low_stock() -> dict:
    products = (
        db.session.query(Product)
        .filter(Product.quantity <= Product.low_stock_threshold)
        .order_by(Product.quantity.asc(), Product.name.asc())
        .all()
    )
    items = [
        dict(p.to_dict(), alert_level=alert_level(p.quantity, p.low_stock_threshold))
        for p in products
    ]
    return {"count": len(items), "items": items}


def sales_summary() -> dict:
    rate = _current_rate()
    data = _revenue_block(_sums_by_currency(None, None), rate)
    return data


def stock_status() -> dict:
    total_products, total_items, total_value = db.session.query(
        func.count(Product.id),
        func.coalesce(func.sum(Product.quantity), 0),
        func.coalesce(func.sum(Product.quantity * Product.price_cents), 0),
    ).one()
    return {
        "total_products": int(total_products or 0),
        "total_items": int(total_items or 0),
        "total_inventory_value": from_cents(int(total_value or 0)),
        "currency": current_app.config.get("BASE_CURRENCY", "UGX"),
    }


def top_products(limit: int = 10) -> list[dict]:
    rate = _current_rate()
    rows = (
        db.session.query(
            OrderItem.product_id,
            Product.name,
            SalesOrder.currency,
            func.sum(OrderItem.quantity),
            func.sum(OrderItem.item_total_cents),
        )
        .join(SalesOrder, SalesOrder.id == OrderItem.sales_order_id)
        .join(Product, Product.id == OrderItem.product_id)
        .group_by(OrderItem.product_id, Product.name, SalesOrder.currency)
        .all()
    )

    folded: dict[int, dict] = {}
    for product_id, name, currency, qty, revenue in rows:
        entry = folded.setdefault(product_id, {"product_name": name, "quantity": 0, "revenue": {}})
        entry["quantity"] += int(qty or 0)
        entry["revenue"][currency] = entry["revenue"].get(currency, 0) + int(revenue or 0)

    ranked = sorted(folded.items(), key=lambda kv: kv[1]["quantity"], reverse=True)[:limit]
    return [
        {
            "product_id": product_id,
            "product_name": entry["product_name"],
            "total_quantity": entry["quantity"],
            "total_revenue_ugx": from_cents(normalize_totals(entry["revenue"], rate=rate)[0]),
        }
        for product_id, entry in ranked
    ]


def sales_trend(days: int = 7) -> list[dict]:
    """Revenue (UGX-normalised) and order count per day, oldest first."""
    rate = _current_rate()
    today = utcnow().date()
    first = today - timedelta(days=days - 1)
    start, _ = day_bounds(first)
    _, end = day_bounds(today)

    per_day: dict[str, dict] = OrderedDict(
        ((first + timedelta(days=i)).isoformat(), {"revenue": {}, "orders": 0}) for i in range(days)
    )
    for order in _orders_between(start, end).all():
        entry = per_day[order.order_date.date().isoformat()]
        entry["orders"] += 1
        entry["revenue"][order.currency] = entry["revenue"].get(order.currency, 0) + order.total_amount_cents

    return [
        {
            "date": day,
            "sales_ugx": from_cents(normalize_totals(entry["revenue"], rate=rate)[0]),
            "orders": entry["orders"],
        }
        for day, entry in per_day.items()
    ]
