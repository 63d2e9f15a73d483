from __future__ import annotations

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel

from .batch import BatchOut
from .product import ProductOut


class InventoryItem(BaseModel):
    id: int
    sku: str
    name: str
    category: Optional[str] = None
    unit: str
    stock_on_hand: int
    avg_landed_cost: Decimal
    inventory_value: Decimal


class InventoryBatch(BatchOut):
    remaining_value: Decimal


class ProductInventory(BaseModel):
    product: ProductOut
    batches: list[InventoryBatch]
