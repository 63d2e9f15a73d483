from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..crud.inventory import inventory_snapshot, product_inventory
from ..crud.products import get_product
from ..db.session import get_db
from ..deps.auth import require_api_or_jwt
from ..schemas.inventory import InventoryBatch, InventoryItem, ProductInventory
from ..schemas.product import ProductOut
from ..services.errors import NotFound
from .api_batches import batch_to_schema

router = APIRouter(prefix="/api/v1/inventory", tags=["inventory"], dependencies=[Depends(require_api_or_jwt)])


@router.get("", response_model=list[InventoryItem])
def api_inventory(db: Session = Depends(get_db)):
    return inventory_snapshot(db)


@router.get("/{product_id}", response_model=ProductInventory)
def api_product_inventory(product_id: int, db: Session = Depends(get_db)):
    product = get_product(db, product_id)
    if not product:
        raise NotFound("product", product_id)
    batches = [
        InventoryBatch(**batch_to_schema(row["batch"]).model_dump(), remaining_value=row["remaining_value"])
        for row in product_inventory(db, product_id)
    ]
    return ProductInventory(product=ProductOut.model_validate(product, from_attributes=True), batches=batches)
