"""Read helpers for sales. Writes go through ``services.sales.SaleLedger``."""

from __future__ import annotations

from sqlalchemy import desc, select
from sqlalchemy.orm import Session, selectinload

from ..models.sale import Sale


def list_sales(
    db: Session,
    *,
    product_id: int | None = None,
    date_from: str | None = None,
    date_to: str | None = None,
    limit: int = 500,
    offset: int = 0,
) -> list[Sale]:
    """Sales newest first, optionally filtered by product and date range."""

    stmt = select(Sale).options(selectinload(Sale.allocations))
    if product_id is not None:
        stmt = stmt.where(Sale.product_id == product_id)
    if date_from:
        stmt = stmt.where(Sale.sale_date >= date_from)
    if date_to:
        stmt = stmt.where(Sale.sale_date <= date_to)
    stmt = stmt.order_by(desc(Sale.sale_date), desc(Sale.id)).limit(limit).offset(offset)
    return list(db.execute(stmt).scalars().all())


def get_sale(db: Session, sale_id: int) -> Sale | None:
    stmt = select(Sale).options(selectinload(Sale.allocations)).where(Sale.id == sale_id)
    return db.execute(stmt).scalars().first()
