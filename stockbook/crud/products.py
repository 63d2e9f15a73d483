"""Catalogue CRUD for products."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..models.batch import PurchaseBatch
from ..models.product import Product
from ..services.errors import DuplicateSku, ValidationError

DEFAULT_UNIT = "piece"


def _utcnow() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def _clean(value: object) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def list_products(db: Session) -> list[dict[str, object]]:
    """Active products with their stock summary, alphabetically."""

    stmt = (
        select(
            Product,
            func.coalesce(func.sum(PurchaseBatch.remaining_qty), 0).label("stock_on_hand"),
            func.coalesce(func.sum(PurchaseBatch.quantity), 0).label("total_purchased"),
            func.count(func.distinct(PurchaseBatch.id)).label("batch_count"),
        )
        .outerjoin(
            PurchaseBatch,
            (PurchaseBatch.product_id == Product.id) & (PurchaseBatch.remaining_qty > 0),
        )
        .where(Product.is_active.is_(True))
        .group_by(Product.id)
        .order_by(Product.name)
    )
    rows = db.execute(stmt).all()
    return [
        {
            "product": row.Product,
            "stock_on_hand": int(row.stock_on_hand or 0),
            "total_purchased": int(row.total_purchased or 0),
            "batch_count": int(row.batch_count or 0),
        }
        for row in rows
    ]


def get_product(db: Session, product_id: int, *, include_inactive: bool = False) -> Product | None:
    product = db.get(Product, product_id)
    if product is None or (not include_inactive and not product.is_active):
        return None
    return product


def _sku_taken(db: Session, sku: str) -> bool:
    stmt = select(Product.id).where(Product.sku == sku)
    return db.execute(stmt).first() is not None


def _required(payload: dict, key: str) -> str:
    value = _clean(payload.get(key))
    if not value:
        raise ValidationError(key, "is required")
    return value


def create_product(db: Session, payload: dict) -> Product:
    sku = _required(payload, "sku")
    name = _required(payload, "name")
    if _sku_taken(db, sku):
        raise DuplicateSku(sku)
    now = _utcnow()
    product = Product(
        sku=sku,
        name=name,
        category=_clean(payload.get("category")),
        description=_clean(payload.get("description")),
        unit=_clean(payload.get("unit")) or DEFAULT_UNIT,
        is_active=True,
        created_at=now,
        updated_at=now,
    )
    db.add(product)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise DuplicateSku(sku) from exc
    db.refresh(product)
    return product


def update_product(db: Session, product: Product, payload: dict) -> Product:
    """Rename or recategorise a product. The SKU is its business key and never changes."""

    sku = _clean(payload.get("sku"))
    if sku is not None and sku != product.sku:
        raise ValidationError("sku", "is immutable and cannot be changed")
    product.name = _required(payload, "name")
    product.category = _clean(payload.get("category"))
    product.description = _clean(payload.get("description"))
    product.unit = _clean(payload.get("unit")) or DEFAULT_UNIT
    product.updated_at = _utcnow()
    db.commit()
    db.refresh(product)
    return product


def deactivate_product(db: Session, product: Product) -> None:
    """Soft delete: batches and sales keep pointing at the row."""

    product.is_active = False
    product.updated_at = _utcnow()
    db.commit()
