from __future__ import annotations

import asyncio

import pytest

from config.settings import PricingSettings
from radar.services.pumpfun.candidates import TokenCandidate, TokenMetadata
from radar.services.pumpfun.fetcher import TokenFetcher
from radar.services.pumpfun.moralis import MoralisPrice, MoralisTokenInfo
from radar.services.pumpfun.pricing import BondingCurvePricer
from radar.services.pumpfun.sources import UpstreamError


class _Source:
    def __init__(self, name, result=None, error=None):
        self.name = name
        self._result = result or []
        self._error = error
        self.calls = 0
        self.closed = False

    async def fetch_latest(self):
        self.calls += 1
        if self._error is not None:
            raise self._error
        return list(self._result)

    async def close(self):
        self.closed = True


class _Moralis(_Source):
    def __init__(self, price=None, info=None):
        super().__init__("moralis")
        self._price = price
        self._info = info

    async def get_price(self, address):
        return self._price

    async def get_metadata(self, address):
        return self._info


class _Dex(_Source):
    def __init__(self, pair=None, error=None):
        super().__init__("dexscreener")
        self._pair = pair
        self._pair_error = error

    async def fetch_pair(self, address):
        if self._pair_error is not None:
            raise self._pair_error
        return self._pair


def _candidate(address, source):
    return TokenCandidate(address=address, name=address, symbol=address.upper(), source=source)


def _fetcher(sources, moralis=None, dex=None):
    return TokenFetcher(
        sources,
        moralis=moralis or _Moralis(),
        dexscreener=dex or _Dex(),
        pricer=BondingCurvePricer(PricingSettings(sol_reference_price_usd=150.0)),
    )


def test_falls_back_in_priority_order():
    failing = _Source("pumpfun", error=UpstreamError("pumpfun: HTTP 503"))
    empty = _Source("pumpportal")
    working = _Source("dexscreener", result=[_candidate("a", "dex"), _candidate("a", "dex"), _candidate("b", "dex")])
    unused = _Source("spare", result=[_candidate("z", "spare")])

    result = asyncio.run(_fetcher([failing, empty, working, unused]).fetch_latest())

    assert result.source == "dexscreener"
    assert [candidate.address for candidate in result.candidates] == ["a", "b"]
    assert set(result.failures) == {"pumpfun", "pumpportal"}
    assert unused.calls == 0


def test_unexpected_source_errors_are_contained():
    broken = _Source("pumpfun", error=KeyError("mint"))
    working = _Source("dexscreener", result=[_candidate("a", "dex")])

    result = asyncio.run(_fetcher([broken, working]).fetch_latest())

    assert result.source == "dexscreener"
    assert "pumpfun" in result.failures


def test_all_sources_failing_yields_empty_cycle():
    sources = [
        _Source("pumpfun", error=UpstreamError("down")),
        _Source("pumpportal", error=UpstreamError("no events")),
    ]

    result = asyncio.run(_fetcher(sources).fetch_latest())

    assert result.source is None
    assert result.candidates == []
    assert set(result.failures) == {"pumpfun", "pumpportal"}


def test_fetch_one_merges_moralis_and_pair_data():
    moralis = _Moralis(
        price=MoralisPrice(usd_price=0.002, exchange_name="Pump.fun", pair_address="p1"),
        info=MoralisTokenInfo(
            name="Abc",
            symbol="ABC",
            metadata=TokenMetadata(image="https://img/abc.png"),
            uri="ipfs://QmAbc",
        ),
    )
    pair = TokenCandidate(
        address="abc",
        name="Abc pair",
        symbol="ABCP",
        price_usd=0.0021,
        market_cap=2_100_000,
        volume_24h=345_000,
        twitter="https://x.com/abc",
        source="dexscreener",
    )

    candidate = asyncio.run(_fetcher([], moralis=moralis, dex=_Dex(pair=pair)).fetch_one("abc"))

    assert candidate.name == "Abc"
    assert candidate.price_usd == 0.002
    assert candidate.market_cap == 2_100_000
    assert candidate.volume_24h == 345_000
    assert candidate.image_url == "https://img/abc.png"
    assert candidate.twitter == "https://x.com/abc"
    assert candidate.uri == "ipfs://QmAbc"
    assert candidate.description == "Token from Pump.fun (Pump.fun)"


def test_fetch_one_without_moralis_key_uses_pair_only():
    pair = TokenCandidate(address="abc", name="Abc", symbol="ABC", price_usd=0.5, source="dexscreener")

    candidate = asyncio.run(_fetcher([], dex=_Dex(pair=pair)).fetch_one("abc"))

    assert candidate.source == "dexscreener"
    assert candidate.price_usd == 0.5
    assert candidate.market_cap == pytest.approx(0.5 * 1_000_000_000)


def test_fetch_one_unknown_token_returns_none():
    dex = _Dex(error=UpstreamError("dexscreener: HTTP 404"))

    assert asyncio.run(_fetcher([], dex=dex).fetch_one("missing")) is None


def test_fetch_one_contains_pair_parsing_errors():
    moralis = _Moralis(info=MoralisTokenInfo(name="Abc", symbol="ABC", metadata=TokenMetadata(), uri=None))
    dex = _Dex(error=AttributeError("'list' object has no attribute 'get'"))

    candidate = asyncio.run(_fetcher([], moralis=moralis, dex=dex).fetch_one("abc"))

    assert candidate.symbol == "ABC"
    assert candidate.volume_24h == 0.0


def test_close_closes_each_client_once():
    dex = _Dex()
    sources = [_Source("pumpfun"), dex]
    fetcher = _fetcher(sources, dex=dex)

    asyncio.run(fetcher.close())

    assert all(source.closed for source in sources)
