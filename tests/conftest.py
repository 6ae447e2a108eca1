"""Shared fixtures: an isolated in-memory database and service graph per test."""

from zoneinfo import ZoneInfo

import pytest

from tradejournal.config import Settings
from tradejournal.database import build_engine, create_db_and_tables
from tradejournal.main import build_gateway
from tradejournal.schemas.trade import TradeCreate
from tradejournal.services.trade_store import TradeStore

UTC = ZoneInfo("UTC")

# 2024-01-15 00:00:00 UTC
BASE_TS = 1705276800000
HOUR_MS = 3_600_000


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        database_url="sqlite://",
        webhook_secret="test-secret",
        timezone="UTC",
        insight_api_key="",
        heartbeat_interval_seconds=3600,
    )


@pytest.fixture
def engine():
    engine = build_engine("sqlite://")
    create_db_and_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def trade_store(engine) -> TradeStore:
    return TradeStore(engine, UTC)


@pytest.fixture
def gateway(settings, engine):
    return build_gateway(settings, engine)


def make_trade(trade_id: str, **overrides) -> TradeCreate:
    fields = {
        "id": trade_id,
        "pair": "BTCUSDT",
        "direction": "LONG",
        "entry_price": 100.0,
        "timestamp": BASE_TS,
    }
    fields.update(overrides)
    return TradeCreate(**fields)
