"""Source→target exchange rate with a database-backed cache.

A rate younger than ``EXCHANGE_RATE_CACHE_MINUTES`` is served from the cache.
Older than that, the live rate is fetched and stored. When the live lookup
fails the newest cached rate is served as a fallback, however old it is.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Dict, Optional

import httpx
from sqlalchemy import desc, select
from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.money import to_decimal
from ..models.exchange_rate import ExchangeRateQuote

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


class ExchangeRateUnavailable(Exception):
    """No live rate could be fetched and nothing is cached."""


@dataclass(frozen=True)
class RateQuote:
    rate: Decimal
    source: str
    fetched_at: str
    base_currency: str
    quote_currency: str


def _now() -> datetime:
    return datetime.now(tz=timezone.utc)


def _parse_timestamp(value: str) -> datetime:
    return datetime.strptime(value, TIMESTAMP_FORMAT).replace(tzinfo=timezone.utc)


def _latest_cached(db: Session, base: str, quote: str) -> ExchangeRateQuote | None:
    stmt = (
        select(ExchangeRateQuote)
        .where(ExchangeRateQuote.base_currency == base, ExchangeRateQuote.quote_currency == quote)
        .order_by(desc(ExchangeRateQuote.id))
        .limit(1)
    )
    return db.execute(stmt).scalars().first()


def _to_quote(row: ExchangeRateQuote, source: str) -> RateQuote:
    return RateQuote(
        rate=row.rate,
        source=source,
        fetched_at=row.fetched_at,
        base_currency=row.base_currency,
        quote_currency=row.quote_currency,
    )


async def fetch_live_rate(
    base: str,
    quote: str,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Decimal:
    params = {"from": base, "to": quote}
    async with httpx.AsyncClient(timeout=settings.EXCHANGE_RATE_TIMEOUT, transport=transport) as client:
        response = await client.get(settings.EXCHANGE_RATE_URL, params=params)
        if response.status_code >= 400:
            logger.error("Exchange rate provider returned %s", response.status_code)
        response.raise_for_status()
        payload: Dict[str, Any] = response.json()
    try:
        return to_decimal(payload["rates"][quote])
    except (KeyError, TypeError, ValueError) as exc:
        raise ValueError(f"Exchange rate payload has no {quote} rate") from exc


async def get_exchange_rate(
    db: Session,
    *,
    base: str | None = None,
    quote: str | None = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    now: datetime | None = None,
) -> RateQuote:
    base = (base or settings.SOURCE_CURRENCY).upper()
    quote = (quote or settings.TARGET_CURRENCY).upper()
    current = now or _now()

    cached = _latest_cached(db, base, quote)
    if cached is not None:
        age = current - _parse_timestamp(cached.fetched_at)
        if age < timedelta(minutes=settings.EXCHANGE_RATE_CACHE_MINUTES):
            return _to_quote(cached, "cache")

    try:
        rate = await fetch_live_rate(base, quote, transport=transport)
    except (httpx.HTTPError, ValueError) as exc:
        logger.warning("Live exchange rate lookup failed: %s", exc)
        if cached is not None:
            return _to_quote(cached, "fallback")
        raise ExchangeRateUnavailable(f"No {base}->{quote} rate available") from exc

    row = ExchangeRateQuote(
        base_currency=base,
        quote_currency=quote,
        rate=rate,
        fetched_at=current.strftime(TIMESTAMP_FORMAT),
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return _to_quote(row, "live")
