from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..crud.batches import create_batch, delete_batch, get_batch, list_batches, update_batch
from ..db.session import get_db
from ..deps.auth import require_api_or_jwt
from ..models.batch import PurchaseBatch
from ..schemas.batch import BatchIn, BatchOut
from ..services.errors import NotFound
from ..services.ledger import landed_unit_cost

router = APIRouter(prefix="/api/v1/batches", tags=["batches"], dependencies=[Depends(require_api_or_jwt)])


def batch_to_schema(batch: PurchaseBatch) -> BatchOut:
    cost = landed_unit_cost(batch)
    return BatchOut.model_validate(
        {
            **{column: getattr(batch, column) for column in BatchOut.model_fields if hasattr(batch, column)},
            "landed_cost_per_unit": cost,
            "total_landed_cost": cost * batch.quantity,
        }
    )


def _require_batch(db: Session, batch_id: int) -> PurchaseBatch:
    batch = get_batch(db, batch_id)
    if not batch:
        raise NotFound("batch", batch_id)
    return batch


@router.get("", response_model=list[BatchOut])
def api_list_batches(product_id: int | None = Query(default=None), db: Session = Depends(get_db)):
    return [batch_to_schema(batch) for batch in list_batches(db, product_id=product_id)]


@router.post("", response_model=BatchOut, status_code=201)
def api_create_batch(payload: BatchIn, db: Session = Depends(get_db)):
    return batch_to_schema(create_batch(db, payload.model_dump()))


@router.get("/{batch_id}", response_model=BatchOut)
def api_get_batch(batch_id: int, db: Session = Depends(get_db)):
    return batch_to_schema(_require_batch(db, batch_id))


@router.put("/{batch_id}", response_model=BatchOut)
def api_update_batch(batch_id: int, payload: BatchIn, db: Session = Depends(get_db)):
    batch = _require_batch(db, batch_id)
    return batch_to_schema(update_batch(db, batch, payload.model_dump()))


@router.delete("/{batch_id}")
def api_delete_batch(batch_id: int, db: Session = Depends(get_db)):
    delete_batch(db, _require_batch(db, batch_id))
    return {"status": "deleted"}
