"""Profit and loss reporting built on frozen allocation costs.

Figures are never recomputed from current batch inputs: COGS is the sum of
``units_taken * landed_cost_per_unit`` over a sale's allocations, exactly as
they were written when the sale was created or last amended.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import asdict, dataclass
from decimal import Decimal
from typing import Any, Dict, Iterable, List

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from ..core.money import ZERO, percentage, to_decimal
from ..models.sale import Sale


@dataclass(frozen=True)
class SaleFinancials:
    revenue: Decimal
    cogs: Decimal
    gross_profit: Decimal
    net_profit: Decimal

    def as_dict(self) -> dict[str, Decimal]:
        return asdict(self)


def sale_financials(sale: Any, allocations: Iterable[Any] | None = None) -> SaleFinancials:
    """Revenue, COGS, gross and net profit of a single sale."""

    rows = sale.allocations if allocations is None else allocations
    revenue = to_decimal(sale.sale_price) * sale.quantity_sold
    cogs = sum(
        (row.units_taken * to_decimal(row.landed_cost_per_unit) for row in rows),
        ZERO,
    )
    gross_profit = revenue - cogs
    net_profit = gross_profit - to_decimal(sale.delivery_cost or 0)
    return SaleFinancials(revenue=revenue, cogs=cogs, gross_profit=gross_profit, net_profit=net_profit)


def _load_sales(db: Session, date_from: str | None, date_to: str | None) -> List[Sale]:
    stmt = select(Sale).options(selectinload(Sale.allocations))
    if date_from:
        stmt = stmt.where(Sale.sale_date >= date_from)
    if date_to:
        stmt = stmt.where(Sale.sale_date <= date_to)
    return list(db.execute(stmt).scalars().all())


def _empty_bucket() -> Dict[str, Any]:
    return {
        "sales_count": 0,
        "units_sold": 0,
        "revenue": ZERO,
        "cogs": ZERO,
        "gross_profit": ZERO,
        "delivery_costs": ZERO,
        "net_profit": ZERO,
    }


def _accumulate(bucket: Dict[str, Any], sale: Sale) -> None:
    figures = sale_financials(sale)
    bucket["sales_count"] += 1
    bucket["units_sold"] += sale.quantity_sold
    bucket["revenue"] += figures.revenue
    bucket["cogs"] += figures.cogs
    bucket["gross_profit"] += figures.gross_profit
    bucket["delivery_costs"] += to_decimal(sale.delivery_cost or 0)
    bucket["net_profit"] += figures.net_profit


def _with_margins(bucket: Dict[str, Any]) -> Dict[str, Any]:
    bucket["gross_margin_pct"] = percentage(bucket["gross_profit"], bucket["revenue"])
    bucket["net_margin_pct"] = percentage(bucket["net_profit"], bucket["revenue"])
    return bucket


def pnl_summary(db: Session, date_from: str | None = None, date_to: str | None = None) -> Dict[str, Any]:
    """Totals across every sale dated within ``[date_from, date_to]``."""

    totals = _empty_bucket()
    for sale in _load_sales(db, date_from, date_to):
        _accumulate(totals, sale)
    summary = _with_margins(totals)
    summary["date_from"] = date_from
    summary["date_to"] = date_to
    return summary


def profit_by_product(db: Session, date_from: str | None = None, date_to: str | None = None) -> List[Dict[str, Any]]:
    """Per-product totals ordered by net profit, best first."""

    buckets: Dict[int, Dict[str, Any]] = defaultdict(_empty_bucket)
    products: Dict[int, Any] = {}
    for sale in _load_sales(db, date_from, date_to):
        _accumulate(buckets[sale.product_id], sale)
        products[sale.product_id] = sale.product

    rows = []
    for product_id, bucket in buckets.items():
        product = products[product_id]
        row = {"product_id": product_id, "sku": product.sku, "product_name": product.name}
        row.update(_with_margins(bucket))
        rows.append(row)
    rows.sort(key=lambda row: (-row["net_profit"], row["product_id"]))
    return rows
