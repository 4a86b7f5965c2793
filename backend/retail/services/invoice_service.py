"""
Invoice Service

Two creation modes per call:
- from an order: copies the order's customer, priced items, total, currency
  and exchange rate
- direct: prices products exactly like order creation

Invoices never touch stock.
"""

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Invoice, InvoiceItem, SalesOrder, User
from ..validation import NotFoundError, ValidationError, parse_item_requests, require_currency
from .pagination import paginate
from .sales_service import price_items

INVOICE_STATUSES = ("generated", "sent", "paid", "cancelled")
NUMBER_ATTEMPTS = 3


def next_invoice_number() -> str:
    """
    INV-<last 6 digits of the ms timestamp>-<count + 1>.

    The suffix is advanced while the number is already taken.
    """
    stamp = str(int(time.time() * 1000))[-6:]
    seq = db.session.query(Invoice).count() + 1
    number = f"INV-{stamp}-{seq}"
    while db.session.query(Invoice.id).filter(Invoice.invoice_number == number).first():
        seq += 1
        number = f"INV-{stamp}-{seq}"
    return number


def _items_from_lines(lines: list[dict]) -> list[InvoiceItem]:
    return [InvoiceItem(**line) for line in lines]


def _build_from_order(order_id, user: User | None) -> Invoice:
    if isinstance(order_id, str) and order_id.strip().isdigit():
        order_id = int(order_id.strip())
    if not isinstance(order_id, int) or isinstance(order_id, bool):
        raise ValidationError("sales_order_id must be an integer id")

    order = db.session.get(SalesOrder, order_id)
    if not order:
        raise NotFoundError("Sales order not found")

    invoice = Invoice(
        sales_order_id=order.id,
        customer_name=order.customer_name,
        customer_phone=order.customer_phone,
        total_amount_cents=order.total_amount_cents,
        currency=order.currency,
        exchange_rate=order.exchange_rate,
        served_by_user_id=order.served_by_user_id or (user.id if user else None),
        served_by_username=order.served_by_username or (user.username if user else None),
    )
    invoice.items = _items_from_lines([item.snapshot_cents() for item in order.items])
    return invoice


def _build_direct(data: dict, user: User | None) -> Invoice:
    customer_name = (data.get("customer_name") or "").strip()
    customer_phone = (data.get("customer_phone") or "").strip()
    if not customer_name or not customer_phone or not data.get("items"):
        raise ValidationError(
            "Customer name, phone, and items are required for direct invoice creation"
        )

    currency = require_currency(
        data.get("currency") or "UGX", current_app.config["SUPPORTED_CURRENCIES"]
    )
    requests = parse_item_requests(data.get("items"))
    rate = current_app.config["EXCHANGE_RATE_UGX_PER_USD"]
    lines = price_items(requests, currency=currency, rate=rate)

    invoice = Invoice(
        customer_name=customer_name,
        customer_phone=customer_phone,
        total_amount_cents=sum(line["item_total_cents"] for line in lines),
        currency=currency,
        exchange_rate=rate,
        served_by_user_id=user.id if user else None,
        served_by_username=user.username if user else None,
    )
    invoice.items = _items_from_lines(lines)
    return invoice


def generate_invoice(*, data: dict, user: User | None) -> Invoice:
    data = data or {}
    if not isinstance(data, dict):
        raise ValidationError("Invalid JSON payload")

    currency = data.get("currency")
    if currency is not None:
        require_currency(currency, current_app.config["SUPPORTED_CURRENCIES"])

    notes = data.get("notes")
    for attempt in range(NUMBER_ATTEMPTS):
        if data.get("sales_order_id") not in (None, ""):
            invoice = _build_from_order(data["sales_order_id"], user)
        else:
            invoice = _build_direct(data, user)

        invoice.status = "generated"
        invoice.notes = notes.strip() if isinstance(notes, str) else None
        invoice.invoice_number = next_invoice_number()

        db.session.add(invoice)
        try:
            db.session.commit()
        except IntegrityError:
            # Number taken by a concurrent request
            db.session.rollback()
            if attempt >= NUMBER_ATTEMPTS - 1:
                raise
            continue

        current_app.logger.info(
            "Invoice %s generated (order=%s, total_cents=%s %s)",
            invoice.invoice_number, invoice.sales_order_id, invoice.total_amount_cents, invoice.currency,
        )
        return invoice


def get_invoice(invoice_id: int) -> Invoice:
    invoice = db.session.get(Invoice, invoice_id)
    if not invoice:
        raise NotFoundError("Invoice not found")
    return invoice


def list_invoices(search: str | None = None, page: int | None = None, per_page: int | None = None) -> dict:
    query = db.session.query(Invoice)
    if search:
        term = f"%{search.strip()}%"
        query = query.filter(
            db.or_(
                Invoice.invoice_number.ilike(term),
                Invoice.customer_name.ilike(term),
                Invoice.customer_phone.ilike(term),
            )
        )
    query = query.order_by(Invoice.created_at.desc(), Invoice.id.desc())
    return paginate(query, page, per_page, lambda i: i.to_dict())


def update_invoice(*, invoice_id: int, data: dict) -> Invoice:
    """
    Update customer fields, notes, status and/or items.

    New items are re-priced against the catalog in the invoice's own
    currency and exchange-rate snapshot.
    """
    data = data or {}
    if not isinstance(data, dict):
        raise ValidationError("Invalid JSON payload")

    invoice = get_invoice(invoice_id)

    status = data.get("status")
    if status and status not in INVOICE_STATUSES:
        raise ValidationError(f"Invalid status. Must be one of: {', '.join(INVOICE_STATUSES)}")

    lines = None
    if data.get("items"):
        requests = parse_item_requests(data.get("items"))
        lines = price_items(requests, currency=invoice.currency, rate=invoice.exchange_rate)

    for field in ("customer_name", "customer_phone"):
        value = data.get(field)
        if isinstance(value, str) and value.strip():
            setattr(invoice, field, value.strip())

    if "notes" in data:
        notes = data.get("notes")
        invoice.notes = notes.strip() if isinstance(notes, str) else None

    if status:
        invoice.status = status

    if lines is not None:
        invoice.items = _items_from_lines(lines)
        invoice.total_amount_cents = sum(line["item_total_cents"] for line in lines)

    db.session.commit()
    return invoice


def delete_invoice(*, invoice_id: int) -> None:
    invoice = get_invoice(invoice_id)
    number = invoice.invoice_number
    db.session.delete(invoice)
    db.session.commit()
    current_app.logger.info("Invoice %s deleted", number)
