from __future__ import annotations

from ..extensions import db
from ..money import from_cents
from retail.time_utils import to_utc_z


class Expense(db.Model):
    """Standalone cost record in the base currency. Not linked to orders or products."""
    __tablename__ = "expenses"
    __table_args__ = (
        db.CheckConstraint("amount_cents > 0", name="ck_expenses_amount_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    amount_cents = db.Column(db.Integer, nullable=False)
    description = db.Column(db.String(512), nullable=False)
    category = db.Column(db.String(64), nullable=True, index=True)

    # Business date of the expense
    date = db.Column(db.DateTime(timezone=True), nullable=False, index=True)

    recorded_by_user_id = db.Column(db.Integer, nullable=True)
    recorded_by_username = db.Column(db.String(64), nullable=True)

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
            "amount": from_cents(self.amount_cents),
            "description": self.description,
            "category": self.category,
            "date": to_utc_z(self.date),
            "recorded_by_user_id": self.recorded_by_user_id,
            "recorded_by_username": self.recorded_by_username,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
