# backend/retail/services/products_service.py
"""
Products Service

Catalog CRUD plus the stock-transaction audit trail. Stock movements caused
by orders and returns go through services.concurrency; every movement is
recorded here with record_stock_transaction.
"""
from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import Product, StockTransaction
from ..validation import ConflictError, NotFoundError
from .pagination import paginate

PRODUCT_MUTABLE_FIELDS = {
    "sku",
    "name",
    "description",
    "price_cents",
    "cost_price_cents",
    "quantity",
    "low_stock_threshold",
}


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def _ensure_unique_sku(sku: str, exclude_id: int | None = None) -> None:
    query = db.session.query(Product).filter(Product.sku == sku)
    if exclude_id is not None:
        query = query.filter(Product.id != exclude_id)
    if query.first():
        raise ConflictError("Product with this SKU already exists", details={"sku": sku})


def list_products(
    search: str | None = None,
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    """Catalog listing; `search` matches name, SKU or description (case-insensitive)."""
    query = db.session.query(Product)

    if search:
        term = f"%{search.strip()}%"
        query = query.filter(
            db.or_(
                Product.name.ilike(term),
                Product.sku.ilike(term),
                Product.description.ilike(term),
            )
        )

    query = query.order_by(Product.name.asc(), Product.id.asc())
    return paginate(query, page, per_page, lambda p: p.to_dict())


def get_product(product_id: int) -> Product:
    p = db.session.get(Product, product_id)
    if not p:
        raise NotFoundError("Product not found")
    return p


def create_product(*, patch: dict, created_by_user_id: int | None = None) -> dict:
    """
    Create product using a validated patch dict.

    Raises ConflictError if the SKU is taken.
    """
    _ensure_unique_sku(patch["sku"])

    p = Product(
        created_by_user_id=created_by_user_id,
        low_stock_threshold=current_app.config.get("DEFAULT_LOW_STOCK_THRESHOLD", 10),
    )
    apply_product_patch(p, patch)

    db.session.add(p)
    db.session.commit()

    current_app.logger.info("Product created: id=%s sku=%s qty=%s", p.id, p.sku, p.quantity)
    return p.to_dict()


def update_product(*, product_id: int, patch: dict) -> dict:
    p = get_product(product_id)

    if "sku" in patch and patch["sku"] != p.sku:
        _ensure_unique_sku(patch["sku"], exclude_id=p.id)

    apply_product_patch(p, patch)
    db.session.commit()
    return p.to_dict()


def delete_product(*, product_id: int) -> None:
    """
    Hard delete.

    Orders, returns, invoices and stock transactions keep their own product
    snapshots, so history stays readable after the product is gone.
    """
    p = get_product(product_id)
    sku = p.sku
    db.session.delete(p)
    db.session.commit()
    current_app.logger.info("Product deleted: id=%s sku=%s", product_id, sku)


def record_stock_transaction(
    *,
    product_id: int,
    product_name: str | None,
    transaction_type: str,
    quantity_delta: int,
    sales_order_id: int | None = None,
    return_id: int | None = None,
    performed_by_user_id: int | None = None,
    note: str | None = None,
) -> StockTransaction:
    """Add an audit row to the current session (caller commits)."""
    txn = StockTransaction(
        product_id=product_id,
        product_name=product_name,
        transaction_type=transaction_type,
        quantity_delta=quantity_delta,
        sales_order_id=sales_order_id,
        return_id=return_id,
        performed_by_user_id=performed_by_user_id,
        note=note,
    )
    db.session.add(txn)
    return txn


def list_stock_transactions(product_id: int, page: int | None = None, per_page: int | None = None) -> dict:
    # History is readable even for deleted products
    query = (
        db.session.query(StockTransaction)
        .filter(StockTransaction.product_id == product_id)
        .order_by(StockTransaction.occurred_at.desc(), StockTransaction.id.desc())
    )
    return paginate(query, page, per_page, lambda t: t.to_dict())
