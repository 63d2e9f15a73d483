from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..db.session import get_db
from ..deps.auth import require_api_or_jwt
from ..schemas.report import PnlSummary, ProductProfit
from ..services.reporting import pnl_summary, profit_by_product

router = APIRouter(prefix="/api/v1/reports", tags=["reports"], dependencies=[Depends(require_api_or_jwt)])


def _iso(value: date | None) -> str | None:
    return value.isoformat() if value else None


@router.get("/pnl", response_model=PnlSummary)
def api_pnl(
    date_from: date | None = Query(default=None),
    date_to: date | None = Query(default=None),
    db: Session = Depends(get_db),
):
    return pnl_summary(db, date_from=_iso(date_from), date_to=_iso(date_to))


@router.get("/by-product", response_model=list[ProductProfit])
def api_profit_by_product(
    date_from: date | None = Query(default=None),
    date_to: date | None = Query(default=None),
    db: Session = Depends(get_db),
):
    return profit_by_product(db, date_from=_iso(date_from), date_to=_iso(date_to))
