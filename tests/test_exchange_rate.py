import asyncio
import os
import sys
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from pathlib import Path

import httpx
import pytest
from sqlalchemy import create_engine, func, select
from sqlalchemy.orm import sessionmaker

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("DATA_DIR", str(ROOT / "data"))

from stockbook.db.session import Base
from stockbook.models.exchange_rate import ExchangeRateQuote
from stockbook.services.exchange_rate import ExchangeRateUnavailable, fetch_live_rate, get_exchange_rate

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture()
def db_session():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False})
    TestingSessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


class Provider:
    """Stand-in for the rate API that records every request."""

    def __init__(self, status_code=200, payload=None):
        self.status_code = status_code
        self.payload = payload if payload is not None else {"base": "AUD", "rates": {"PHP": 38.51}}
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code, json=self.payload)

    @property
    def transport(self):
        return httpx.MockTransport(self)


def _lookup(db, provider, now=NOW):
    return asyncio.run(get_exchange_rate(db, base="AUD", quote="PHP", transport=provider.transport, now=now))


def test_fetch_live_rate_queries_provider_with_currency_pair():
    provider = Provider()

    rate = asyncio.run(fetch_live_rate("AUD", "PHP", transport=provider.transport))

    assert rate == Decimal("38.51")
    (request,) = provider.requests
    assert request.url.params["from"] == "AUD"
    assert request.url.params["to"] == "PHP"


def test_fetch_live_rate_rejects_payload_without_quote_currency():
    provider = Provider(payload={"rates": {"USD": 0.66}})

    with pytest.raises(ValueError):
        asyncio.run(fetch_live_rate("AUD", "PHP", transport=provider.transport))


def test_first_lookup_is_live_and_cached(db_session):
    provider = Provider()

    quote = _lookup(db_session, provider)

    assert quote.source == "live"
    assert quote.rate == Decimal("38.51")
    assert quote.fetched_at == "2024-05-01T12:00:00Z"
    assert db_session.scalar(select(func.count()).select_from(ExchangeRateQuote)) == 1


def test_fresh_cache_is_served_without_calling_provider(db_session):
    _lookup(db_session, Provider())
    provider = Provider(payload={"rates": {"PHP": 99}})

    quote = _lookup(db_session, provider, now=NOW + timedelta(minutes=30))

    assert quote.source == "cache"
    assert quote.rate == Decimal("38.51")
    assert provider.requests == []


def test_stale_cache_triggers_a_new_live_lookup(db_session):
    _lookup(db_session, Provider())
    provider = Provider(payload={"rates": {"PHP": 39.02}})

    quote = _lookup(db_session, provider, now=NOW + timedelta(minutes=61))

    assert quote.source == "live"
    assert quote.rate == Decimal("39.02")
    assert len(provider.requests) == 1


def test_provider_failure_falls_back_to_last_cached_rate(db_session):
    _lookup(db_session, Provider())

    quote = _lookup(db_session, Provider(status_code=502), now=NOW + timedelta(days=2))

    assert quote.source == "fallback"
    assert quote.rate == Decimal("38.51")
    assert quote.fetched_at == "2024-05-01T12:00:00Z"


def test_provider_failure_without_cache_is_unavailable(db_session):
    with pytest.raises(ExchangeRateUnavailable):
        _lookup(db_session, Provider(status_code=500))
