"""Purchase batch CRUD.

Batches are freely editable until the first sale draws from them; after that
the landed-cost inputs are frozen and edits or deletes raise ``BatchLocked``.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import desc, func, select
from sqlalchemy.orm import Session

from ..core.money import ZERO, to_decimal
from ..models.batch import PurchaseBatch
from ..models.product import Product
from ..models.sale import SaleBatchAllocation
from ..services.errors import BatchLocked, NotFound, ValidationError


def _utcnow() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def _iso_date(value: object) -> str:
    if isinstance(value, date):
        return value.isoformat()
    try:
        return date.fromisoformat(str(value or "").strip()).isoformat()
    except ValueError as exc:
        raise ValidationError("purchase_date", "must be an ISO date (YYYY-MM-DD)") from exc


def _amount(payload: dict, key: str, *, required: bool) -> Decimal:
    raw = payload.get(key)
    if raw is None or raw == "":
        if required:
            raise ValidationError(key, "is required")
        return ZERO
    try:
        value = to_decimal(raw)
    except ValueError as exc:
        raise ValidationError(key, "must be a decimal amount") from exc
    if required and value <= 0:
        raise ValidationError(key, "must be positive")
    if value < 0:
        raise ValidationError(key, "must not be negative")
    return value


def _normalize(db: Session, payload: dict) -> dict:
    product_id = payload.get("product_id")
    product = db.get(Product, product_id) if product_id else None
    if product is None or not product.is_active:
        raise NotFound("product", product_id)
    quantity = payload.get("quantity")
    if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity <= 0:
        raise ValidationError("quantity", "must be a positive whole number")
    return {
        "product_id": product.id,
        "purchase_date": _iso_date(payload.get("purchase_date")),
        "quantity": quantity,
        "unit_price": _amount(payload, "unit_price", required=True),
        "exchange_rate": _amount(payload, "exchange_rate", required=True),
        "freight": _amount(payload, "freight", required=False),
        "customs": _amount(payload, "customs", required=False),
        "notes": (payload.get("notes") or "").strip() or None,
    }


def list_batches(db: Session, product_id: int | None = None) -> list[PurchaseBatch]:
    """Every batch, newest purchase first."""

    stmt = select(PurchaseBatch).order_by(desc(PurchaseBatch.purchase_date), desc(PurchaseBatch.id))
    if product_id is not None:
        stmt = stmt.where(PurchaseBatch.product_id == product_id)
    return list(db.execute(stmt).scalars().all())


def get_batch(db: Session, batch_id: int) -> PurchaseBatch | None:
    return db.get(PurchaseBatch, batch_id)


def batch_has_allocations(db: Session, batch_id: int) -> bool:
    stmt = select(func.count()).select_from(SaleBatchAllocation).where(SaleBatchAllocation.batch_id == batch_id)
    return bool(db.scalar(stmt))


def create_batch(db: Session, payload: dict) -> PurchaseBatch:
    data = _normalize(db, payload)
    now = _utcnow()
    # A fresh batch is untouched stock.
    batch = PurchaseBatch(**data, remaining_qty=data["quantity"], created_at=now, updated_at=now)
    db.add(batch)
    db.commit()
    db.refresh(batch)
    return batch


def update_batch(db: Session, batch: PurchaseBatch, payload: dict) -> PurchaseBatch:
    if batch_has_allocations(db, batch.id):
        raise BatchLocked(batch.id, "edit")
    data = _normalize(db, payload)
    for key, value in data.items():
        setattr(batch, key, value)
    # No allocation references this batch, so all of it is still on hand.
    batch.remaining_qty = data["quantity"]
    batch.updated_at = _utcnow()
    db.commit()
    db.refresh(batch)
    return batch


def delete_batch(db: Session, batch: PurchaseBatch) -> None:
    if batch_has_allocations(db, batch.id):
        raise BatchLocked(batch.id, "delete")
    db.delete(batch)
    db.commit()
