# Overview: Row locking, atomic stock moves and retry handling for multi-step writes.

from __future__ import annotations

import time

from sqlalchemy import update
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..models import Product


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE (the whole database is locked
    on first write instead), but other DBs will honor it.
    """
    return query.with_for_update()


def conditional_decrement(product_id: int, quantity: int) -> bool:
    """
    Atomically take `quantity` units from a product.

    Single UPDATE ... WHERE quantity >= n; returns False when stock is
    insufficient (or the product is gone) and nothing was changed.
    """
    result = db.session.execute(
        update(Product)
        .where(Product.id == product_id, Product.quantity >= quantity)
        .values(quantity=Product.quantity - quantity)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def increment_stock(product_id: int, quantity: int) -> bool:
    """Atomically add units back; returns False if the product no longer exists."""
    result = db.session.execute(
        update(Product)
        .where(Product.id == product_id)
        .values(quantity=Product.quantity + quantity)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic locking conflicts). func must be safe to re-run from scratch:
    the session is rolled back before every retry.
    """
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError):
            db.session.rollback()
            if attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))
