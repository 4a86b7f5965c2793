from __future__ import annotations

from ..extensions import db
from ..money import from_cents
from retail.time_utils import to_utc_z


class Customer(db.Model):
    """
    Buyer contact record, unique by phone.

    Orders copy name/phone instead of referencing this table, so a customer
    record is optional for selling. total_purchases / total_spent_cents are
    a best-effort cache (base currency); purchase history is authoritative.
    """
    __tablename__ = "customers"
    __table_args__ = (
        db.UniqueConstraint("phone", name="uq_customers_phone"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(32), nullable=False)
    email = db.Column(db.String(255), nullable=True)
    address = db.Column(db.String(512), nullable=True)

    total_purchases = db.Column(db.Integer, nullable=False, default=0)
    total_spent_cents = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "phone": self.phone,
            "email": self.email or "",
            "address": self.address or "",
            "total_purchases": self.total_purchases,
            "total_spent": from_cents(self.total_spent_cents),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
