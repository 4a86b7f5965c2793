# Overview: Expense ledger: record, filter, summarise, update and delete expenses.

from __future__ import annotations

from datetime import datetime

from flask import current_app

from ..extensions import db
from ..models import Expense, User
from ..money import from_cents
from ..validation import NotFoundError
from retail.time_utils import utcnow
from .pagination import paginate

EXPENSE_MUTABLE_FIELDS = {"amount_cents", "description", "category", "date"}
UNCATEGORIZED = "Uncategorized"


def _filtered(start: datetime | None = None, end: datetime | None = None, category: str | None = None):
    query = db.session.query(Expense)
    if start is not None:
        query = query.filter(Expense.date >= start)
    if end is not None:
        query = query.filter(Expense.date < end)
    if category:
        query = query.filter(Expense.category == category)
    return query


def create_expense(*, patch: dict, user: User | None) -> dict:
    e = Expense(
        date=patch.get("date") or utcnow(),
        recorded_by_user_id=user.id if user else None,
        recorded_by_username=user.username if user else None,
    )
    for k, v in patch.items():
        if k in EXPENSE_MUTABLE_FIELDS and v is not None:
            setattr(e, k, v)
    if not e.category:
        e.category = None

    db.session.add(e)
    db.session.commit()
    current_app.logger.info("Expense recorded: id=%s amount_cents=%s", e.id, e.amount_cents)
    return e.to_dict()


def list_expenses(
    start: datetime | None = None,
    end: datetime | None = None,
    category: str | None = None,
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    query = _filtered(start, end, category).order_by(Expense.date.desc(), Expense.id.desc())
    return paginate(query, page, per_page, lambda e: e.to_dict())


def expense_total_cents(start: datetime | None = None, end: datetime | None = None) -> int:
    total = _filtered(start, end).with_entities(db.func.coalesce(db.func.sum(Expense.amount_cents), 0)).scalar()
    return int(total or 0)


def summarize_expenses(start: datetime | None = None, end: datetime | None = None) -> dict:
    """Total, count and per-category breakdown (largest first)."""
    rows = (
        _filtered(start, end)
        .with_entities(
            Expense.category,
            db.func.sum(Expense.amount_cents),
            db.func.count(Expense.id),
        )
        .group_by(Expense.category)
        .all()
    )

    by_category: dict[str, dict] = {}
    for category, total_cents, count in rows:
        key = category or UNCATEGORIZED
        bucket = by_category.setdefault(key, {"category": key, "total_cents": 0, "count": 0})
        bucket["total_cents"] += int(total_cents or 0)
        bucket["count"] += int(count or 0)

    breakdown = sorted(by_category.values(), key=lambda b: b["total_cents"], reverse=True)
    total = sum(b["total_cents"] for b in breakdown)

    return {
        "total_amount": from_cents(total),
        "count": sum(b["count"] for b in breakdown),
        "by_category": [
            {"category": b["category"], "total_amount": from_cents(b["total_cents"]), "count": b["count"]}
            for b in breakdown
        ],
        "currency": current_app.config.get("BASE_CURRENCY", "UGX"),
    }


def get_expense(expense_id: int) -> Expense:
    e = db.session.get(Expense, expense_id)
    if not e:
        raise NotFoundError("Expense not found")
    return e


def update_expense(*, expense_id: int, patch: dict) -> dict:
    e = get_expense(expense_id)
    for k, v in patch.items():
        if k in EXPENSE_MUTABLE_FIELDS:
            setattr(e, k, v)
    db.session.commit()
    return e.to_dict()


def delete_expense(*, expense_id: int) -> None:
    e = get_expense(expense_id)
    db.session.delete(e)
    db.session.commit()
