"""Pydantic schemas for catalogue products."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class ProductBase(BaseModel):
    name: str = Field(min_length=1)
    category: Optional[str] = None
    description: Optional[str] = None
    unit: Optional[str] = None


class ProductCreate(ProductBase):
    sku: str = Field(min_length=1)


class ProductUpdate(ProductBase):
    # Optional; when sent it must equal the stored SKU.
    sku: Optional[str] = None


class ProductOut(BaseModel):
    id: int
    sku: str
    name: str
    category: Optional[str] = None
    description: Optional[str] = None
    unit: str
    is_active: bool
    created_at: str
    updated_at: str

    class Config:
        from_attributes = True


class ProductStockOut(ProductOut):
    stock_on_hand: int = 0
    total_purchased: int = 0
    batch_count: int = 0
