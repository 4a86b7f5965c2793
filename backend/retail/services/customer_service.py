# Overview: Customer directory: CRUD, search, purchase history and cached purchase totals.

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import Customer, Invoice, SalesOrder
from ..money import convert_cents, from_cents
from ..validation import ConflictError, NotFoundError
from .pagination import paginate

CUSTOMER_MUTABLE_FIELDS = {"name", "phone", "email", "address"}


def _ensure_unique_phone(phone: str, exclude_id: int | None = None) -> None:
    query = db.session.query(Customer).filter(Customer.phone == phone)
    if exclude_id is not None:
        query = query.filter(Customer.id != exclude_id)
    if query.first():
        raise ConflictError("Customer with this phone number already exists", details={"phone": phone})


def list_customers(search: str | None = None, page: int | None = None, per_page: int | None = None) -> dict:
    query = db.session.query(Customer)
    if search:
        term = f"%{search.strip()}%"
        query = query.filter(
            db.or_(Customer.name.ilike(term), Customer.phone.ilike(term), Customer.email.ilike(term))
        )
    query = query.order_by(Customer.created_at.desc(), Customer.id.desc())
    return paginate(query, page, per_page, lambda c: c.to_dict())


def get_customer(customer_id: int) -> Customer:
    c = db.session.get(Customer, customer_id)
    if not c:
        raise NotFoundError("Customer not found")
    return c


def create_customer(*, patch: dict) -> dict:
    _ensure_unique_phone(patch["phone"])

    c = Customer()
    for k, v in patch.items():
        if k in CUSTOMER_MUTABLE_FIELDS:
            setattr(c, k, v)

    db.session.add(c)
    db.session.commit()
    current_app.logger.info("Customer created: id=%s phone=%s", c.id, c.phone)
    return c.to_dict()


def update_customer(*, customer_id: int, patch: dict) -> dict:
    c = get_customer(customer_id)
    if "phone" in patch and patch["phone"] != c.phone:
        _ensure_unique_phone(patch["phone"], exclude_id=c.id)

    for k, v in patch.items():
        if k in CUSTOMER_MUTABLE_FIELDS:
            setattr(c, k, v)
    db.session.commit()
    return c.to_dict()


def delete_customer(*, customer_id: int) -> None:
    # Orders keep their own name/phone snapshot
    c = get_customer(customer_id)
    db.session.delete(c)
    db.session.commit()


def record_purchase(order: SalesOrder) -> None:
    """
    Bump the cached totals of the customer whose phone matches the order.

    Runs inside the order transaction (caller commits). The amount is stored
    in the base currency using the order's own exchange-rate snapshot.
    """
    if not order.customer_phone:
        return

    customer = db.session.query(Customer).filter(Customer.phone == order.customer_phone).first()
    if not customer:
        return

    base = current_app.config.get("BASE_CURRENCY", "UGX")
    amount = convert_cents(
        order.total_amount_cents,
        from_currency=order.currency,
        to_currency=base,
        rate=order.exchange_rate,
    )
    customer.total_purchases = (customer.total_purchases or 0) + 1
    customer.total_spent_cents = (customer.total_spent_cents or 0) + amount


def purchase_history(customer_id: int) -> dict:
    """
    Orders and invoices matched by phone or name, with totals computed live
    from the documents (normalised to the base currency at each document's
    own rate).
    """
    c = get_customer(customer_id)
    base = current_app.config.get("BASE_CURRENCY", "UGX")

    orders = (
        db.session.query(SalesOrder)
        .filter(db.or_(SalesOrder.customer_phone == c.phone, SalesOrder.customer_name == c.name))
        .order_by(SalesOrder.order_date.desc())
        .all()
    )
    invoices = (
        db.session.query(Invoice)
        .filter(db.or_(Invoice.customer_phone == c.phone, Invoice.customer_name == c.name))
        .order_by(Invoice.created_at.desc())
        .all()
    )

    total_spent = sum(
        convert_cents(o.total_amount_cents, from_currency=o.currency, to_currency=base, rate=o.exchange_rate)
        for o in orders
    )
    total_invoiced = sum(
        convert_cents(i.total_amount_cents, from_currency=i.currency, to_currency=base, rate=i.exchange_rate)
        for i in invoices
    )

    return {
        "customer": c.to_dict(),
        "orders": [o.to_dict() for o in orders],
        "invoices": [i.to_dict() for i in invoices],
        "summary": {
            "total_orders": len(orders),
            "total_invoices": len(invoices),
            "total_spent": from_cents(total_spent),
            "total_invoiced": from_cents(total_invoiced),
            "currency": base,
        },
    }
