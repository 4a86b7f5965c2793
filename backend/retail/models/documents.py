from __future__ import annotations

from ..extensions import db
from ..money import from_cents
from retail.time_utils import to_utc_z


class Return(db.Model):
    """
    Return request against a sales order.

    LIFECYCLE: pending -> approved | rejected (both terminal).
    Refunds use the order line's unit price at the time of sale, in the
    order's currency. sales_order_id is a value reference so the return
    survives deletion of its order.
    """
    __tablename__ = "returns"
    __table_args__ = (
        db.Index("ix_returns_order_status", "sales_order_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sales_order_id = db.Column(db.Integer, nullable=False, index=True)

    customer_name = db.Column(db.String(255), nullable=True)
    customer_phone = db.Column(db.String(32), nullable=True)

    total_refund_cents = db.Column(db.Integer, nullable=False, default=0)
    currency = db.Column(db.String(3), nullable=False, default="UGX")

    reason = db.Column(db.String(512), nullable=True)
    refund_method = db.Column(db.String(32), nullable=False, default="cash")

    status = db.Column(db.String(16), nullable=False, default="pending", index=True)

    created_by_user_id = db.Column(db.Integer, nullable=True)
    created_by_username = db.Column(db.String(64), nullable=True)

    approved_by_user_id = db.Column(db.Integer, nullable=True)
    approved_by_username = db.Column(db.String(64), nullable=True)
    approved_at = db.Column(db.DateTime(timezone=True), nullable=True)

    rejected_by_user_id = db.Column(db.Integer, nullable=True)
    rejected_by_username = db.Column(db.String(64), nullable=True)
    rejected_at = db.Column(db.DateTime(timezone=True), nullable=True)
    rejection_reason = db.Column(db.String(512), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )
    version_id = db.Column(db.Integer, nullable=False, default=1)

    items = db.relationship(
        "ReturnItem",
        backref="return_doc",
        cascade="all, delete-orphan",
        order_by="ReturnItem.id",
        lazy=True,
    )
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sales_order_id": self.sales_order_id,
            "customer_name": self.customer_name,
            "customer_phone": self.customer_phone,
            "items": [item.to_dict() for item in self.items],
            "total_refund_amount": from_cents(self.total_refund_cents),
            "currency": self.currency,
            "reason": self.reason,
            "refund_method": self.refund_method,
            "status": self.status,
            "created_by_user_id": self.created_by_user_id,
            "created_by_username": self.created_by_username,
            "approved_by_user_id": self.approved_by_user_id,
            "approved_by_username": self.approved_by_username,
            "approved_at": to_utc_z(self.approved_at) if self.approved_at else None,
            "rejected_by_user_id": self.rejected_by_user_id,
            "rejected_by_username": self.rejected_by_username,
            "rejected_at": to_utc_z(self.rejected_at) if self.rejected_at else None,
            "rejection_reason": self.rejection_reason,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class ReturnItem(db.Model):
    """Individual product line on a return."""
    __tablename__ = "return_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    return_id = db.Column(db.Integer, db.ForeignKey("returns.id", ondelete="CASCADE"), nullable=False, index=True)

    product_id = db.Column(db.Integer, nullable=False, index=True)
    product_name = db.Column(db.String(255), nullable=False)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    refund_cents = db.Column(db.Integer, nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "return_id": self.return_id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "unit_price": from_cents(self.unit_price_cents),
            "refund_amount": from_cents(self.refund_cents),
        }


class Invoice(db.Model):
    """
    Billable document. Never touches stock.

    Items are an independent snapshot: later order edits or returns do not
    change an invoice already generated from that order.
    """
    __tablename__ = "invoices"
    __table_args__ = (
        db.UniqueConstraint("invoice_number", name="uq_invoices_invoice_number"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    invoice_number = db.Column(db.String(64), nullable=False)

    # Value reference to the originating order (None for direct invoices)
    sales_order_id = db.Column(db.Integer, nullable=True, index=True)

    customer_name = db.Column(db.String(255), nullable=True)
    customer_phone = db.Column(db.String(32), nullable=True)

    total_amount_cents = db.Column(db.Integer, nullable=False, default=0)
    currency = db.Column(db.String(3), nullable=False, default="UGX")
    exchange_rate = db.Column(db.Integer, nullable=False)

    status = db.Column(db.String(16), nullable=False, default="generated", index=True)
    notes = db.Column(db.Text, nullable=True)

    served_by_user_id = db.Column(db.Integer, nullable=True)
    served_by_username = db.Column(db.String(64), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    items = db.relationship(
        "InvoiceItem",
        backref="invoice",
        cascade="all, delete-orphan",
        order_by="InvoiceItem.id",
        lazy=True,
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "invoice_number": self.invoice_number,
            "sales_order_id": self.sales_order_id,
            "customer_name": self.customer_name,
            "customer_phone": self.customer_phone,
            "items": [item.to_dict() for item in self.items],
            "total_amount": from_cents(self.total_amount_cents),
            "currency": self.currency,
            "exchange_rate": self.exchange_rate,
            "status": self.status,
            "notes": self.notes or "",
            "served_by_user_id": self.served_by_user_id,
            "served_by_username": self.served_by_username,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class InvoiceItem(db.Model):
    __tablename__ = "invoice_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    invoice_id = db.Column(db.Integer, db.ForeignKey("invoices.id", ondelete="CASCADE"), nullable=False, index=True)

    product_id = db.Column(db.Integer, nullable=False)
    product_name = db.Column(db.String(255), nullable=False)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    cost_price_cents = db.Column(db.Integer, nullable=False, default=0)
    item_total_cents = db.Column(db.Integer, nullable=False)
    item_profit_cents = db.Column(db.Integer, nullable=False)
    custom_price_used = db.Column(db.Boolean, nullable=False, default=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "unit_price": from_cents(self.unit_price_cents),
            "cost_price": from_cents(self.cost_price_cents),
            "item_total": from_cents(self.item_total_cents),
            "item_profit": from_cents(self.item_profit_cents),
            "custom_price_used": self.custom_price_used,
        }
