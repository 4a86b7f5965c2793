from __future__ import annotations

from ..extensions import db
from ..money import from_cents
from retail.time_utils import to_utc_z


class SalesOrder(db.Model):
    """
    Sales order document.

    Customer name/phone are copied onto the order (value snapshot, not a
    foreign key). exchange_rate is the UGX-per-USD rate at creation time and
    never changes afterwards.

    INVARIANT: total_amount_cents == sum(item.item_total_cents) and
    total_profit_cents == sum(item.item_profit_cents) after create, every
    edit and every approved return.
    """
    __tablename__ = "sales_orders"
    __table_args__ = (
        db.Index("ix_sales_orders_order_date", "order_date"),
        db.Index("ix_sales_orders_customer_phone", "customer_phone"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    customer_name = db.Column(db.String(255), nullable=True)
    customer_phone = db.Column(db.String(32), nullable=True)

    order_date = db.Column(db.DateTime(timezone=True), nullable=False)

    currency = db.Column(db.String(3), nullable=False, default="UGX")
    exchange_rate = db.Column(db.Integer, nullable=False)

    # pending, completed
    status = db.Column(db.String(16), nullable=False, default="completed", index=True)

    # Amounts in cents of the order currency
    total_amount_cents = db.Column(db.Integer, nullable=False, default=0)
    total_profit_cents = db.Column(db.Integer, nullable=False, default=0)

    has_returns = db.Column(db.Boolean, nullable=False, default=False)
    total_refunded_cents = db.Column(db.Integer, nullable=False, default=0)

    served_by_user_id = db.Column(db.Integer, nullable=True)
    served_by_username = db.Column(db.String(64), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )
    version_id = db.Column(db.Integer, nullable=False, default=1)

    items = db.relationship(
        "OrderItem",
        backref="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
        lazy=True,
    )
    edits = db.relationship(
        "OrderEdit",
        backref="order",
        cascade="all, delete-orphan",
        order_by="OrderEdit.id",
        lazy=True,
    )
    __mapper_args__ = {"version_id_col": version_id}

    def recompute_totals(self) -> None:
        self.total_amount_cents = sum(item.item_total_cents for item in self.items)
        self.total_profit_cents = sum(item.item_profit_cents for item in self.items)

    def to_dict(self, include_history: bool = False) -> dict:
        data = {
            "id": self.id,
            "customer_name": self.customer_name,
            "customer_phone": self.customer_phone,
            "order_date": to_utc_z(self.order_date),
            "currency": self.currency,
            "exchange_rate": self.exchange_rate,
            "status": self.status,
            "items": [item.to_dict() for item in self.items],
            "total_amount": from_cents(self.total_amount_cents),
            "total_profit": from_cents(self.total_profit_cents),
            "has_returns": self.has_returns,
            "total_refunded": from_cents(self.total_refunded_cents),
            "served_by_user_id": self.served_by_user_id,
            "served_by_username": self.served_by_username,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }
        if include_history:
            data["edit_history"] = [edit.to_dict() for edit in self.edits]
        return data


class OrderItem(db.Model):
    """
    Order line: product reference plus price/cost snapshots in the order currency.

    quantity is the current (post-return) quantity; the originally ordered
    quantity is quantity + returned_quantity.
    """
    __tablename__ = "order_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    sales_order_id = db.Column(
        db.Integer, db.ForeignKey("sales_orders.id", ondelete="CASCADE"), nullable=False, index=True
    )

    # Value reference: the product may be deleted later
    product_id = db.Column(db.Integer, nullable=False, index=True)
    product_name = db.Column(db.String(255), nullable=False)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    cost_price_cents = db.Column(db.Integer, nullable=False, default=0)
    item_total_cents = db.Column(db.Integer, nullable=False)
    item_profit_cents = db.Column(db.Integer, nullable=False)

    returned_quantity = db.Column(db.Integer, nullable=False, default=0)
    custom_price_used = db.Column(db.Boolean, nullable=False, default=False)

    @property
    def original_quantity(self) -> int:
        return self.quantity + (self.returned_quantity or 0)

    def reprice(self) -> None:
        self.item_total_cents = self.unit_price_cents * self.quantity
        self.item_profit_cents = (self.unit_price_cents - self.cost_price_cents) * self.quantity

    def snapshot_cents(self) -> dict:
        """Column values for copying this line onto another document."""
        return {
            "product_id": self.product_id,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "cost_price_cents": self.cost_price_cents,
            "item_total_cents": self.item_total_cents,
            "item_profit_cents": self.item_profit_cents,
            "custom_price_used": self.custom_price_used,
        }

    def snapshot(self) -> dict:
        """Wire-format copy used in edit-history diffs."""
        return {
            "product_id": self.product_id,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "unit_price": from_cents(self.unit_price_cents),
            "cost_price": from_cents(self.cost_price_cents),
            "item_total": from_cents(self.item_total_cents),
            "item_profit": from_cents(self.item_profit_cents),
            "custom_price_used": self.custom_price_used,
        }

    def to_dict(self) -> dict:
        data = self.snapshot()
        data.update({
            "id": self.id,
            "sales_order_id": self.sales_order_id,
            "returned_quantity": self.returned_quantity,
        })
        return data


class OrderEdit(db.Model):
    """
    Append-only edit-history entry: one row per edit, with field diffs.

    Retention is capped per order (ORDER_EDIT_HISTORY_LIMIT); older rows are pruned.
    """
    __tablename__ = "order_edits"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    sales_order_id = db.Column(
        db.Integer, db.ForeignKey("sales_orders.id", ondelete="CASCADE"), nullable=False, index=True
    )

    edited_at = db.Column(db.DateTime(timezone=True), nullable=False)
    edited_by_user_id = db.Column(db.Integer, nullable=True)
    edited_by_username = db.Column(db.String(64), nullable=True)

    # [{"field": ..., "old_value": ..., "new_value": ...}, ...]
    changes = db.Column(db.JSON, nullable=False, default=list)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "edited_at": to_utc_z(self.edited_at),
            "edited_by_user_id": self.edited_by_user_id,
            "edited_by_username": self.edited_by_username,
            "changes": self.changes,
        }
