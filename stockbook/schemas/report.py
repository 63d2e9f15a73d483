from __future__ import annotations

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel


class ProfitFigures(BaseModel):
    sales_count: int
    units_sold: int
    revenue: Decimal
    cogs: Decimal
    gross_profit: Decimal
    delivery_costs: Decimal
    net_profit: Decimal
    gross_margin_pct: Decimal
    net_margin_pct: Decimal


class PnlSummary(ProfitFigures):
    date_from: Optional[str] = None
    date_to: Optional[str] = None


class ProductProfit(ProfitFigures):
    product_id: int
    sku: str
    product_name: str
