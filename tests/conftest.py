from __future__ import annotations

import asyncio

import pytest

from config.settings import (
    AppSettings,
    CacheSettings,
    DatabaseSettings,
    DiscoverySettings,
    SchedulerSettings,
)
from radar.middlewares import create_engine, create_session_maker, init_db
from radar.services.pumpfun.candidates import TokenCandidate
from radar.utils.cache import configure_cache, get_cache


@pytest.fixture(autouse=True)
def memory_cache():
    configure_cache(CacheSettings(backend="memory"), force=True)
    asyncio.run(get_cache().clear())
    yield
    asyncio.run(get_cache().clear())


@pytest.fixture
def settings(tmp_path) -> AppSettings:
    return AppSettings(
        database=DatabaseSettings(dsn=f"sqlite+aiosqlite:///{tmp_path / 'radar.db'}"),
        scheduler=SchedulerSettings(enabled=False, run_on_startup=False),
        discovery=DiscoverySettings(include_trending=False, seed_tokens=[]),
    )


@pytest.fixture
def engine(settings):
    engine = create_engine(settings.database)
    asyncio.run(init_db(engine))
    yield engine
    asyncio.run(engine.dispose())


@pytest.fixture
def session_maker(engine):
    return create_session_maker(engine)


def make_candidate(index: int = 0, **overrides) -> TokenCandidate:
    data = {
        "address": f"Mint{index:04d}pump",
        "name": f"Token {index}",
        "symbol": f"TK{index}",
        "price_usd": 0.01,
        "market_cap": 250_000.0,
        "volume_24h": 75_000.0,
        "source": "test",
    }
    data.update(overrides)
    return TokenCandidate(**data)


@pytest.fixture
def candidate_factory():
    return make_candidate
