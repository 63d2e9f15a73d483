from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..db.session import get_db
from ..deps.auth import require_api_or_jwt
from ..schemas.exchange_rate import ExchangeRateOut
from ..services.exchange_rate import get_exchange_rate

router = APIRouter(
    prefix="/api/v1/exchange-rate",
    tags=["exchange-rate"],
    dependencies=[Depends(require_api_or_jwt)],
)


@router.get("", response_model=ExchangeRateOut)
async def api_exchange_rate(db: Session = Depends(get_db)):
    quote = await get_exchange_rate(db)
    return ExchangeRateOut.model_validate(quote, from_attributes=True)
