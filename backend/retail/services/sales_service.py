"""
Sales Service - order creation, editing and deletion

Order creation is one transaction: order + item rows, an atomic conditional
stock decrement per product, and the stock-transaction audit rows all commit
together or not at all.

Item pricing (shared with invoices):
- unit price = custom price when given and > 0, else catalog price
- both are base-currency (UGX) amounts; USD documents divide by the rate
- cost snapshot is converted the same way, so profit is in one currency
"""

from __future__ import annotations

from collections import OrderedDict

from flask import current_app

from ..extensions import db
from ..models import OrderEdit, OrderItem, Product, SalesOrder, User
from ..money import convert_cents, from_cents
from ..validation import (
    ConflictError,
    NotFoundError,
    ValidationError,
    parse_item_requests,
    require_currency,
)
from retail.time_utils import utcnow
from . import customer_service
from .concurrency import conditional_decrement, increment_stock, lock_for_update, run_with_retry
from .pagination import paginate
from .products_service import record_stock_transaction

ORDER_STATUSES = ("pending", "completed")


def price_items(requests: list[dict], *, currency: str, rate: int) -> list[dict]:
    """
    Resolve parsed item requests against the catalog.

    Returns plain line dicts (cents in `currency`). Raises NotFoundError for
    an unknown product.
    """
    base = current_app.config.get("BASE_CURRENCY", "UGX")
    lines = []
    for req in requests:
        product = db.session.get(Product, req["product_id"])
        if not product:
            raise NotFoundError(
                f"Product not found: {req['product_id']}. It may have been deleted."
            )

        custom = req.get("custom_price_cents")
        custom_used = custom is not None and custom > 0
        base_price = custom if custom_used else product.price_cents

        unit_price = convert_cents(base_price, from_currency=base, to_currency=currency, rate=rate)
        cost_price = convert_cents(
            product.cost_price_cents or 0, from_currency=base, to_currency=currency, rate=rate
        )
        quantity = req["quantity"]

        lines.append({
            "product_id": product.id,
            "product_name": product.name,
            "quantity": quantity,
            "unit_price_cents": unit_price,
            "cost_price_cents": cost_price,
            "item_total_cents": unit_price * quantity,
            "item_profit_cents": (unit_price - cost_price) * quantity,
            "custom_price_used": custom_used,
        })
    return lines


def _quantities_by_product(lines) -> "OrderedDict[int, int]":
    totals: OrderedDict[int, int] = OrderedDict()
    for line in lines:
        pid = line["product_id"] if isinstance(line, dict) else line.product_id
        qty = line["quantity"] if isinstance(line, dict) else line.quantity
        totals[pid] = totals.get(pid, 0) + qty
    return totals


def _insufficient_stock(product_id: int, requested: int) -> ConflictError:
    """Build the conflict after the transaction has been rolled back."""
    product = db.session.get(Product, product_id)
    name = product.name if product else f"product {product_id}"
    available = product.quantity if product else 0
    return ConflictError(
        f"Insufficient stock for {name}. Available: {available} units, requested: {requested} units.",
        details={"product_id": product_id, "available": available, "requested": requested},
    )


def _take_stock(quantities, *, order_id: int, user_id: int | None, names: dict, transaction_type: str) -> None:
    """Conditional decrement for every product; rolls back and raises on the first shortfall."""
    for product_id, qty in quantities.items():
        if not conditional_decrement(product_id, qty):
            db.session.rollback()
            raise _insufficient_stock(product_id, qty)
        record_stock_transaction(
            product_id=product_id,
            product_name=names.get(product_id),
            transaction_type=transaction_type,
            quantity_delta=-qty,
            sales_order_id=order_id,
            performed_by_user_id=user_id,
            note=f"Order #{order_id}",
        )


def _build_items(lines: list[dict]) -> list[OrderItem]:
    return [OrderItem(**line) for line in lines]


def create_order(*, data: dict, user: User | None) -> SalesOrder:
    """
    Create a completed sales order and take its stock.

    Raises ValidationError (bad currency / items), NotFoundError (unknown
    product) or ConflictError (insufficient stock; nothing is written).
    """
    data = data or {}
    currency = require_currency(
        data.get("currency") or "UGX", current_app.config["SUPPORTED_CURRENCIES"]
    )
    requests = parse_item_requests(data.get("items"))

    def _op():
        rate = current_app.config["EXCHANGE_RATE_UGX_PER_USD"]
        lines = price_items(requests, currency=currency, rate=rate)

        order = SalesOrder(
            customer_name=(data.get("customer_name") or "").strip() or None,
            customer_phone=(data.get("customer_phone") or "").strip() or None,
            order_date=utcnow(),
            currency=currency,
            exchange_rate=rate,
            status="completed",
            served_by_user_id=user.id if user else None,
            served_by_username=user.username if user else None,
        )
        order.items = _build_items(lines)
        order.recompute_totals()

        db.session.add(order)
        db.session.flush()

        names = {line["product_id"]: line["product_name"] for line in lines}
        _take_stock(
            _quantities_by_product(lines),
            order_id=order.id,
            user_id=user.id if user else None,
            names=names,
            transaction_type="sale",
        )

        customer_service.record_purchase(order)
        db.session.commit()
        return order

    order = run_with_retry(_op)
    current_app.logger.info(
        "Order created: id=%s currency=%s total_cents=%s items=%s",
        order.id, order.currency, order.total_amount_cents, len(order.items),
    )
    return order


def get_order(order_id: int) -> SalesOrder:
    order = db.session.get(SalesOrder, order_id)
    if not order:
        raise NotFoundError("Sales order not found")
    return order


def list_orders(search: str | None = None, status: str | None = None,
                page: int | None = None, per_page: int | None = None) -> dict:
    query = db.session.query(SalesOrder)
    if status:
        query = query.filter(SalesOrder.status == status)
    if search:
        term = f"%{search.strip()}%"
        query = query.filter(
            db.or_(
                SalesOrder.customer_name.ilike(term),
                SalesOrder.customer_phone.ilike(term),
                SalesOrder.status.ilike(term),
            )
        )
    query = query.order_by(SalesOrder.order_date.desc(), SalesOrder.id.desc())
    return paginate(query, page, per_page, lambda o: o.to_dict())


def _reconcile_stock(order: SalesOrder, old_quantities, new_lines: list[dict], user: User | None) -> None:
    """Apply the per-product quantity delta of an item replacement to stock."""
    new_quantities = _quantities_by_product(new_lines)
    names = {line["product_id"]: line["product_name"] for line in new_lines}
    names.update({item.product_id: item.product_name for item in order.items})
    user_id = user.id if user else None

    increases = OrderedDict()
    for pid in set(old_quantities) | set(new_quantities):
        delta = new_quantities.get(pid, 0) - old_quantities.get(pid, 0)
        if delta > 0:
            increases[pid] = delta
        elif delta < 0:
            if not increment_stock(pid, -delta):
                current_app.logger.warning(
                    "Order %s edit: product %s no longer exists, %s units not restocked",
                    order.id, pid, -delta,
                )
                continue
            record_stock_transaction(
                product_id=pid,
                product_name=names.get(pid),
                transaction_type="adjustment",
                quantity_delta=-delta,
                sales_order_id=order.id,
                performed_by_user_id=user_id,
                note=f"Order #{order.id} edited",
            )

    _take_stock(increases, order_id=order.id, user_id=user_id, names=names, transaction_type="adjustment")


def _prune_history(order_id: int) -> None:
    limit = current_app.config.get("ORDER_EDIT_HISTORY_LIMIT", 50)
    stale_ids = [
        row.id for row in (
            db.session.query(OrderEdit.id)
            .filter(OrderEdit.sales_order_id == order_id)
            .order_by(OrderEdit.id.desc())
            .offset(limit)
            .all()
        )
    ]
    if stale_ids:
        db.session.query(OrderEdit).filter(OrderEdit.id.in_(stale_ids)).delete(synchronize_session=False)


def update_order(*, order_id: int, data: dict, user: User | None) -> SalesOrder:
    """
    Edit customer fields, status and/or replace the full item list.

    Items are re-priced exactly as on creation, using the order's own
    currency and exchange-rate snapshot. Every changed field is appended to
    the edit history. Stock is left alone unless RECONCILE_STOCK_ON_ORDER_EDIT
    is enabled.
    """
    data = data or {}
    if not isinstance(data, dict):
        raise ValidationError("Invalid JSON payload")

    status = data.get("status")
    if status is not None and status not in ORDER_STATUSES:
        raise ValidationError(f"Invalid status. Must be one of: {', '.join(ORDER_STATUSES)}")

    requests = None
    if data.get("items") is not None:
        requests = parse_item_requests(data.get("items"))

    def _op():
        order = lock_for_update(db.session.query(SalesOrder).filter_by(id=order_id)).first()
        if not order:
            raise NotFoundError("Sales order not found")

        changes = []
        for field in ("customer_name", "customer_phone"):
            if field not in data:
                continue
            new_value = (data.get(field) or "").strip() or None
            if new_value != getattr(order, field):
                changes.append({"field": field, "old_value": getattr(order, field), "new_value": new_value})
                setattr(order, field, new_value)

        if status is not None and status != order.status:
            changes.append({"field": "status", "old_value": order.status, "new_value": status})
            order.status = status

        if requests is not None:
            old_snapshot = [item.snapshot() for item in order.items]
            old_total = order.total_amount_cents
            old_profit = order.total_profit_cents
            old_quantities = _quantities_by_product(order.items)

            lines = price_items(requests, currency=order.currency, rate=order.exchange_rate)

            if current_app.config.get("RECONCILE_STOCK_ON_ORDER_EDIT"):
                _reconcile_stock(order, old_quantities, lines, user)

            order.items = _build_items(lines)
            order.recompute_totals()

            changes.append({
                "field": "items",
                "old_value": old_snapshot,
                "new_value": [item.snapshot() for item in order.items],
            })
            if order.total_amount_cents != old_total:
                changes.append({
                    "field": "total_amount",
                    "old_value": from_cents(old_total),
                    "new_value": from_cents(order.total_amount_cents),
                })
            if order.total_profit_cents != old_profit:
                changes.append({
                    "field": "total_profit",
                    "old_value": from_cents(old_profit),
                    "new_value": from_cents(order.total_profit_cents),
                })

        if changes:
            order.edits.append(OrderEdit(
                edited_at=utcnow(),
                edited_by_user_id=user.id if user else None,
                edited_by_username=user.username if user else None,
                changes=changes,
            ))
            db.session.flush()
            _prune_history(order.id)

        db.session.commit()
        return order, len(changes)

    order, change_count = run_with_retry(_op)
    if change_count:
        current_app.logger.info("Order %s edited: %s change(s)", order.id, change_count)
    return order


def delete_order(*, order_id: int) -> None:
    """
    Hard delete. Stock is not restored; returns and invoices referencing the
    order are left in place.
    """
    order = get_order(order_id)
    db.session.delete(order)
    db.session.commit()
    current_app.logger.info("Order %s deleted", order_id)
