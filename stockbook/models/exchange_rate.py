"""Cached exchange-rate lookups."""

from __future__ import annotations

from sqlalchemy import Column, Integer, Text

from ..db.session import Base
from ..db.types import DecimalText


class ExchangeRateQuote(Base):
    __tablename__ = "exchange_rate_cache"

    id = Column(Integer, primary_key=True, index=True)
    base_currency = Column(Text, nullable=False)
    quote_currency = Column(Text, nullable=False)
    rate = Column(DecimalText, nullable=False)
    fetched_at = Column(Text, nullable=False)


__all__ = ["ExchangeRateQuote"]
