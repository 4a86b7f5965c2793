from __future__ import annotations

from ..extensions import db
from ..money import from_cents
from retail.time_utils import to_utc_z


class Product(db.Model):
    """
    Sellable catalog item.

    Prices and costs are stored in cents of the base currency (UGX).
    SKU is unique across the whole catalog.

    Stock (`quantity`) changes only through:
    - direct product edits
    - order placement (conditional decrement)
    - return approval (increment)
    """
    __tablename__ = "products"
    __table_args__ = (
        db.UniqueConstraint("sku", name="uq_products_sku"),
        db.CheckConstraint("quantity >= 0", name="ck_products_quantity_non_negative"),
        db.Index("ix_products_name", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    sku = db.Column(db.String(64), nullable=False)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)

    price_cents = db.Column(db.Integer, nullable=False, default=0)
    cost_price_cents = db.Column(db.Integer, nullable=False, default=0)

    quantity = db.Column(db.Integer, nullable=False, default=0)
    low_stock_threshold = db.Column(db.Integer, nullable=False, default=10)

    created_by_user_id = db.Column(db.Integer, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    @property
    def profit_cents(self) -> int:
        return (self.price_cents or 0) - (self.cost_price_cents or 0)

    @property
    def profit_margin(self) -> float:
        """Percent of selling price; 0 when the product is free."""
        if not self.price_cents:
            return 0.0
        return self.profit_cents / self.price_cents * 100

    @property
    def is_low_stock(self) -> bool:
        return self.quantity <= self.low_stock_threshold

    def __repr__(self) -> str:
        return f"<Product id={self.id} sku={self.sku!r} name={self.name!r} qty={self.quantity}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sku": self.sku,
            "name": self.name,
            "description": self.description or "",
            "price": from_cents(self.price_cents),
            "cost_price": from_cents(self.cost_price_cents),
            "profit": from_cents(self.profit_cents),
            "profit_margin": round(self.profit_margin, 2),
            "quantity": self.quantity,
            "low_stock_threshold": self.low_stock_threshold,
            "is_low_stock": self.is_low_stock,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class StockTransaction(db.Model):
    """
    Append-only audit of stock movements.

    quantity_delta is signed: negative for sales, positive for returns.
    product_id is a value reference; rows outlive deleted products.
    """
    __tablename__ = "stock_transactions"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, nullable=False, index=True)
    product_name = db.Column(db.String(255), nullable=True)

    # sale, return, adjustment
    transaction_type = db.Column(db.String(32), nullable=False, index=True)
    quantity_delta = db.Column(db.Integer, nullable=False)

    sales_order_id = db.Column(db.Integer, nullable=True, index=True)
    return_id = db.Column(db.Integer, nullable=True, index=True)

    performed_by_user_id = db.Column(db.Integer, nullable=True)
    note = db.Column(db.String(255), nullable=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "transaction_type": self.transaction_type,
            "quantity_delta": self.quantity_delta,
            "sales_order_id": self.sales_order_id,
            "return_id": self.return_id,
            "performed_by_user_id": self.performed_by_user_id,
            "note": self.note,
            "occurred_at": to_utc_z(self.occurred_at),
        }
