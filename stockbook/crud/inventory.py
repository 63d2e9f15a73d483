"""Current-state inventory views.

Unlike the sale reports these recompute landed cost from each batch's stored
inputs, since they describe stock that has not been sold yet.
"""

from __future__ import annotations

from collections import defaultdict
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..core.money import ZERO
from ..models.batch import PurchaseBatch
from ..models.product import Product
from ..services.ledger import landed_unit_cost


def _available_batches(db: Session, product_id: int | None = None) -> list[PurchaseBatch]:
    stmt = (
        select(PurchaseBatch)
        .where(PurchaseBatch.remaining_qty > 0)
        .order_by(PurchaseBatch.purchase_date.asc(), PurchaseBatch.id.asc())
    )
    if product_id is not None:
        stmt = stmt.where(PurchaseBatch.product_id == product_id)
    return list(db.execute(stmt).scalars().all())


def inventory_snapshot(db: Session) -> list[dict[str, object]]:
    """Stock on hand, average landed cost and value for each active product."""

    products = db.execute(
        select(Product).where(Product.is_active.is_(True)).order_by(Product.name)
    ).scalars().all()
    stock: dict[int, int] = defaultdict(int)
    value: dict[int, Decimal] = defaultdict(lambda: ZERO)
    for batch in _available_batches(db):
        stock[batch.product_id] += batch.remaining_qty
        value[batch.product_id] += batch.remaining_qty * landed_unit_cost(batch)

    rows = []
    for product in products:
        on_hand = stock.get(product.id, 0)
        total = value.get(product.id, ZERO)
        rows.append(
            {
                "id": product.id,
                "sku": product.sku,
                "name": product.name,
                "category": product.category,
                "unit": product.unit,
                "stock_on_hand": on_hand,
                "avg_landed_cost": total / on_hand if on_hand else ZERO,
                "inventory_value": total,
            }
        )
    return rows


def product_inventory(db: Session, product_id: int) -> list[dict[str, object]]:
    """Available batches of one product in the order a sale would consume them."""

    rows = []
    for batch in _available_batches(db, product_id):
        cost = landed_unit_cost(batch)
        rows.append(
            {
                "batch": batch,
                "landed_cost_per_unit": cost,
                "remaining_value": batch.remaining_qty * cost,
            }
        )
    return rows
