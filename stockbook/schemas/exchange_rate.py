from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel


class ExchangeRateOut(BaseModel):
    rate: Decimal
    source: str
    fetched_at: str
    base_currency: str
    quote_currency: str

    class Config:
        from_attributes = True
