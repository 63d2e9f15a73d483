"""Pydantic schemas for purchase batches."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


class BatchIn(BaseModel):
    product_id: int
    purchase_date: date
    quantity: int = Field(gt=0)
    unit_price: Decimal = Field(gt=0)
    exchange_rate: Decimal = Field(gt=0)
    freight: Decimal = Field(default=Decimal("0"), ge=0)
    customs: Decimal = Field(default=Decimal("0"), ge=0)
    notes: Optional[str] = None


class BatchOut(BaseModel):
    id: int
    product_id: int
    product_name: Optional[str] = None
    sku: Optional[str] = None
    purchase_date: str
    quantity: int
    remaining_qty: int
    unit_price: Decimal
    exchange_rate: Decimal
    freight: Decimal
    customs: Decimal
    notes: Optional[str] = None
    created_at: str
    updated_at: str
    landed_cost_per_unit: Decimal
    total_landed_cost: Decimal

    class Config:
        from_attributes = True
