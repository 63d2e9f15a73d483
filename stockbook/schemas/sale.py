"""Pydantic schemas for sales and their batch allocations."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


class SaleIn(BaseModel):
    """Body of both the create and the amend request."""

    product_id: int
    sale_date: date
    quantity_sold: int = Field(gt=0)
    sale_price: Decimal = Field(gt=0)
    delivery_cost: Decimal = Field(default=Decimal("0"), ge=0)
    notes: Optional[str] = None

    model_config = {
        "json_schema_extra": {
            "example": {
                "product_id": 1,
                "sale_date": "2024-01-10",
                "quantity_sold": 3,
                "sale_price": "650.00",
                "delivery_cost": "120.00",
                "notes": "Marketplace order",
            }
        }
    }


class AllocationOut(BaseModel):
    id: int
    batch_id: int
    units_taken: int
    landed_cost_per_unit: Decimal

    class Config:
        from_attributes = True


class SaleOut(BaseModel):
    id: int
    product_id: int
    product_name: Optional[str] = None
    sku: Optional[str] = None
    sale_date: str
    quantity_sold: int
    sale_price: Decimal
    delivery_cost: Decimal
    notes: Optional[str] = None
    created_at: str
    updated_at: str
    revenue: Decimal
    cogs: Decimal
    gross_profit: Decimal
    net_profit: Decimal
    allocations: list[AllocationOut] = Field(default_factory=list)

    class Config:
        from_attributes = True
