"""
Return Processing Service

LIFECYCLE:
1. Create return (pending) - quantities checked against the order line
2. Approve (pending -> approved): restock, revise the order, record refund
3. Reject (pending -> rejected): no stock or order side effects

Approval is a single transaction. Refunds always use the unit price stored
on the order line at the time of sale, never the current catalog price.
"""

from __future__ import annotations

from collections import OrderedDict

from flask import current_app

from ..extensions import db
from ..models import Return, ReturnItem, SalesOrder, User
from ..validation import ConflictError, NotFoundError, ValidationError, parse_item_requests
from retail.time_utils import utcnow
from .concurrency import increment_stock, lock_for_update, run_with_retry
from .pagination import paginate
from .products_service import record_stock_transaction


RETURN_STATUS_PENDING = "pending"
RETURN_STATUS_APPROVED = "approved"
RETURN_STATUS_REJECTED = "rejected"

RETURN_STATUSES = (RETURN_STATUS_PENDING, RETURN_STATUS_APPROVED, RETURN_STATUS_REJECTED)


def _lines_for(order: SalesOrder, product_id: int):
    return [item for item in order.items if item.product_id == product_id]


def _take_from_lines(lines, quantity: int) -> list[tuple]:
    """(line, taken) pairs, first line first. Approval removes units in this order."""
    taken = []
    for line in lines:
        if quantity == 0:
            break
        take = min(line.quantity, quantity)
        if take:
            taken.append((line, take))
        quantity -= take
    return taken


def _refund_for(lines, quantity: int) -> int:
    refund = sum(line.unit_price_cents * take for line, take in _take_from_lines(lines, quantity))
    # units beyond what is still on the order are rejected at approval
    short = quantity - sum(line.quantity for line in lines)
    if short > 0:
        refund += lines[-1].unit_price_cents * short
    return refund


def _requested_by_product(requests: list[dict]) -> "OrderedDict[int, int]":
    totals: OrderedDict[int, int] = OrderedDict()
    for req in requests:
        totals[req["product_id"]] = totals.get(req["product_id"], 0) + req["quantity"]
    return totals


def create_return(*, data: dict, user: User | None) -> Return:
    """
    Create a pending return against an order.

    Each requested quantity must not exceed the quantity originally ordered
    on that line (current quantity plus anything already returned).
    """
    data = data or {}
    order_id = data.get("sales_order_id", data.get("order_id"))
    if isinstance(order_id, str) and order_id.strip().isdigit():
        order_id = int(order_id.strip())
    if not isinstance(order_id, int) or isinstance(order_id, bool):
        raise ValidationError("sales_order_id is required")

    requests = parse_item_requests(data.get("items"), allow_custom_price=False)

    order = db.session.get(SalesOrder, order_id)
    if not order:
        raise NotFoundError("Sales order not found")

    return_doc = Return(
        sales_order_id=order.id,
        customer_name=order.customer_name,
        customer_phone=order.customer_phone,
        currency=order.currency,
        reason=(data.get("reason") or "").strip() or None,
        refund_method=(data.get("refund_method") or "cash").strip(),
        status=RETURN_STATUS_PENDING,
        created_by_user_id=user.id if user else None,
        created_by_username=user.username if user else None,
    )

    total_refund = 0
    for product_id, quantity in _requested_by_product(requests).items():
        lines = _lines_for(order, product_id)
        if not lines:
            raise ValidationError(f"Product {product_id} is not part of order #{order.id}")

        ordered = sum(line.original_quantity for line in lines)
        if quantity > ordered:
            raise ConflictError(
                f"Cannot return {quantity} units of {lines[0].product_name}. "
                f"Only {ordered} were ordered.",
                details={"product_id": product_id, "requested": quantity, "ordered": ordered},
            )

        refund = _refund_for(lines, quantity)
        unit_price = (refund + quantity // 2) // quantity
        total_refund += refund
        return_doc.items.append(ReturnItem(
            product_id=product_id,
            product_name=lines[0].product_name,
            quantity=quantity,
            unit_price_cents=unit_price,
            refund_cents=refund,
        ))

    return_doc.total_refund_cents = total_refund
    db.session.add(return_doc)
    db.session.commit()

    current_app.logger.info(
        "Return created: id=%s order=%s refund_cents=%s", return_doc.id, order.id, total_refund
    )
    return return_doc


def get_return(return_id: int) -> Return:
    return_doc = db.session.get(Return, return_id)
    if not return_doc:
        raise NotFoundError("Return not found")
    return return_doc


def list_returns(status: str | None = None, order_id: int | None = None,
                 page: int | None = None, per_page: int | None = None) -> dict:
    query = db.session.query(Return)
    if status:
        if status not in RETURN_STATUSES:
            raise ValidationError(f"Invalid status. Must be one of: {', '.join(RETURN_STATUSES)}")
        query = query.filter(Return.status == status)
    if order_id is not None:
        query = query.filter(Return.sales_order_id == order_id)
    query = query.order_by(Return.created_at.desc(), Return.id.desc())
    return paginate(query, page, per_page, lambda r: r.to_dict())


def _lock_pending(return_id: int, action: str) -> Return:
    return_doc = lock_for_update(db.session.query(Return).filter_by(id=return_id)).first()
    if not return_doc:
        raise NotFoundError("Return not found")
    if return_doc.status != RETURN_STATUS_PENDING:
        raise ConflictError(
            f"Cannot {action} a return with status '{return_doc.status}'",
            details={"status": return_doc.status},
        )
    return return_doc


def _revise_order(order: SalesOrder, return_doc: Return) -> None:
    """
    Take the returned quantities off the order lines.

    Lines that reach zero are removed; the rest are re-priced from their
    snapshots. The refund is settled at the prices of the lines the units
    actually came off. Raises ConflictError if a line no longer holds
    enough units.
    """
    total_refund = 0
    for ret_item in return_doc.items:
        lines = _lines_for(order, ret_item.product_id)
        remaining = sum(line.quantity for line in lines)
        if ret_item.quantity > remaining:
            raise ConflictError(
                f"Cannot return {ret_item.quantity} units of {ret_item.product_name}. "
                f"Only {remaining} remain on order #{order.id}.",
                details={
                    "product_id": ret_item.product_id,
                    "requested": ret_item.quantity,
                    "remaining": remaining,
                },
            )

        refund = 0
        for line, taken in _take_from_lines(lines, ret_item.quantity):
            refund += line.unit_price_cents * taken
            line.quantity -= taken
            line.returned_quantity = (line.returned_quantity or 0) + taken
            line.reprice()

        ret_item.refund_cents = refund
        ret_item.unit_price_cents = (refund + ret_item.quantity // 2) // ret_item.quantity
        total_refund += refund

    for line in [item for item in order.items if item.quantity == 0]:
        order.items.remove(line)

    return_doc.total_refund_cents = total_refund
    order.recompute_totals()
    order.has_returns = True
    order.total_refunded_cents = (order.total_refunded_cents or 0) + total_refund


def approve_return(*, return_id: int, user: User | None) -> Return:
    """
    Approve a pending return in one transaction: restock each product,
    revise the order's lines and totals, then mark the return approved.

    A product deleted since the sale is not restocked (WARNING logged) but
    the order is still revised.
    """
    def _op():
        return_doc = _lock_pending(return_id, "approve")

        order = lock_for_update(
            db.session.query(SalesOrder).filter_by(id=return_doc.sales_order_id)
        ).first()
        if not order:
            raise NotFoundError("Original sales order no longer exists")

        try:
            _revise_order(order, return_doc)
        except ConflictError:
            db.session.rollback()
            raise

        for ret_item in return_doc.items:
            if not increment_stock(ret_item.product_id, ret_item.quantity):
                current_app.logger.warning(
                    "Return %s: product %s (%s) no longer exists, stock not restored",
                    return_doc.id, ret_item.product_id, ret_item.product_name,
                )
                continue
            record_stock_transaction(
                product_id=ret_item.product_id,
                product_name=ret_item.product_name,
                transaction_type="return",
                quantity_delta=ret_item.quantity,
                sales_order_id=order.id,
                return_id=return_doc.id,
                performed_by_user_id=user.id if user else None,
                note=f"Return #{return_doc.id} approved",
            )

        return_doc.status = RETURN_STATUS_APPROVED
        return_doc.approved_by_user_id = user.id if user else None
        return_doc.approved_by_username = user.username if user else None
        return_doc.approved_at = utcnow()

        db.session.commit()
        return return_doc

    return_doc = run_with_retry(_op)
    current_app.logger.info(
        "Return %s approved: order=%s refund_cents=%s",
        return_doc.id, return_doc.sales_order_id, return_doc.total_refund_cents,
    )
    return return_doc


def reject_return(*, return_id: int, reason: str | None, user: User | None) -> Return:
    reason = (reason or "").strip() if isinstance(reason, str) else ""

    def _op():
        return_doc = _lock_pending(return_id, "reject")
        if not reason:
            db.session.rollback()
            raise ValidationError("Rejection reason is required")
        return_doc.status = RETURN_STATUS_REJECTED
        return_doc.rejection_reason = reason[:512]
        return_doc.rejected_by_user_id = user.id if user else None
        return_doc.rejected_by_username = user.username if user else None
        return_doc.rejected_at = utcnow()
        db.session.commit()
        return return_doc

    return_doc = run_with_retry(_op)
    current_app.logger.info("Return %s rejected", return_doc.id)
    return return_doc


def delete_return(*, return_id: int) -> dict:
    """
    Hard delete in any status. Stock and order changes made by an approved
    return are NOT reversed.
    """
    return_doc = get_return(return_id)
    status = return_doc.status

    db.session.delete(return_doc)
    db.session.commit()

    if status == RETURN_STATUS_APPROVED:
        current_app.logger.warning(
            "Approved return %s deleted; its stock and order effects remain in place", return_id
        )
    return {"deleted": True, "status": status, "effects_reversed": False}
