from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..crud.products import create_product, deactivate_product, get_product, list_products, update_product
from ..db.session import get_db
from ..deps.auth import require_api_or_jwt
from ..schemas.product import ProductCreate, ProductOut, ProductStockOut, ProductUpdate
from ..services.errors import NotFound

router = APIRouter(prefix="/api/v1/products", tags=["products"], dependencies=[Depends(require_api_or_jwt)])


def _require_product(db: Session, product_id: int):
    product = get_product(db, product_id)
    if not product:
        raise NotFound("product", product_id)
    return product


@router.get("", response_model=list[ProductStockOut])
def api_list_products(db: Session = Depends(get_db)):
    rows = list_products(db)
    return [
        ProductStockOut.model_validate(row["product"], from_attributes=True).model_copy(
            update={
                "stock_on_hand": row["stock_on_hand"],
                "total_purchased": row["total_purchased"],
                "batch_count": row["batch_count"],
            }
        )
        for row in rows
    ]


@router.post("", response_model=ProductOut, status_code=201)
def api_create_product(payload: ProductCreate, db: Session = Depends(get_db)):
    return create_product(db, payload.model_dump())


@router.get("/{product_id}", response_model=ProductOut)
def api_get_product(product_id: int, db: Session = Depends(get_db)):
    return _require_product(db, product_id)


@router.put("/{product_id}", response_model=ProductOut)
def api_update_product(product_id: int, payload: ProductUpdate, db: Session = Depends(get_db)):
    product = _require_product(db, product_id)
    return update_product(db, product, payload.model_dump())


@router.delete("/{product_id}")
def api_delete_product(product_id: int, db: Session = Depends(get_db)):
    product = _require_product(db, product_id)
    deactivate_product(db, product)
    return {"status": "deleted"}
