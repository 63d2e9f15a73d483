from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..crud.sales import get_sale, list_sales
from ..db.session import get_db
from ..deps.auth import require_api_or_jwt
from ..deps.ledger import get_sale_ledger
from ..models.sale import Sale
from ..schemas.sale import AllocationOut, SaleIn, SaleOut
from ..services.errors import NotFound
from ..services.reporting import sale_financials
from ..services.sales import SaleLedger

router = APIRouter(prefix="/api/v1/sales", tags=["sales"], dependencies=[Depends(require_api_or_jwt)])


def sale_to_schema(sale: Sale) -> SaleOut:
    figures = sale_financials(sale)
    payload = SaleOut.model_validate(
        {
            "id": sale.id,
            "product_id": sale.product_id,
            "product_name": sale.product_name,
            "sku": sale.sku,
            "sale_date": sale.sale_date,
            "quantity_sold": sale.quantity_sold,
            "sale_price": sale.sale_price,
            "delivery_cost": sale.delivery_cost,
            "notes": sale.notes,
            "created_at": sale.created_at,
            "updated_at": sale.updated_at,
            **figures.as_dict(),
        }
    )
    payload.allocations = [AllocationOut.model_validate(row, from_attributes=True) for row in sale.allocations]
    return payload


@router.get("", response_model=list[SaleOut])
def api_list_sales(
    product_id: int | None = Query(default=None),
    date_from: date | None = Query(default=None),
    date_to: date | None = Query(default=None),
    limit: int = Query(default=500, ge=1, le=5000),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
):
    sales = list_sales(
        db,
        product_id=product_id,
        date_from=date_from.isoformat() if date_from else None,
        date_to=date_to.isoformat() if date_to else None,
        limit=limit,
        offset=offset,
    )
    return [sale_to_schema(sale) for sale in sales]


@router.get("/{sale_id}", response_model=SaleOut)
def api_get_sale(sale_id: int, db: Session = Depends(get_db)):
    sale = get_sale(db, sale_id)
    if not sale:
        raise NotFound("sale", sale_id)
    return sale_to_schema(sale)


@router.post("", response_model=SaleOut, status_code=201)
def api_create_sale(payload: SaleIn, ledger: SaleLedger = Depends(get_sale_ledger)):
    outcome = ledger.create_sale(payload.model_dump())
    return sale_to_schema(outcome.sale)


@router.put("/{sale_id}", response_model=SaleOut)
def api_amend_sale(sale_id: int, payload: SaleIn, ledger: SaleLedger = Depends(get_sale_ledger)):
    outcome = ledger.amend_sale(sale_id, payload.model_dump())
    return sale_to_schema(outcome.sale)


@router.delete("/{sale_id}")
def api_void_sale(sale_id: int, ledger: SaleLedger = Depends(get_sale_ledger)):
    ledger.void_sale(sale_id)
    return {"status": "deleted"}
