from __future__ import annotations

import asyncio

import aiohttp

from config.settings import EnrichmentSettings
from radar.services.pumpfun.enrichment import MetadataEnricher, extract_cid

from fakes import FakeResponse, FakeSession

G1 = "https://g1.test/ipfs/"
G2 = "https://g2.test/ipfs/"
DOCUMENT = {
    "name": "Abc",
    "description": "to the moon",
    "image": "https://img/abc.png",
    "twitter": "https://x.com/abc",
}


def _enricher(session, sleeps):
    async def fake_sleep(delay):
        sleeps.append(delay)

    settings = EnrichmentSettings(gateways=[G1, G2.rstrip("/")], max_attempts=3, backoff_base_sec=1.0)
    return MetadataEnricher(settings, sleep=fake_sleep, session=session)


def test_extract_cid_variants():
    assert extract_cid("ipfs://QmAbc") == "QmAbc"
    assert extract_cid("ipfs://ipfs/QmAbc/meta.json") == "QmAbc/meta.json"
    assert extract_cid("https://cf-ipfs.com/ipfs/QmAbc") == "QmAbc"
    assert extract_cid("https://arweave.net/xyz") is None


def test_candidate_urls_start_with_original_and_skip_duplicates():
    enricher = _enricher(FakeSession({}), [])

    assert enricher.candidate_urls(f"{G1}QmAbc") == [f"{G1}QmAbc", f"{G2}QmAbc"]
    assert enricher.candidate_urls("ipfs://QmAbc") == [f"{G1}QmAbc", f"{G2}QmAbc"]
    assert enricher.candidate_urls("https://arweave.net/xyz") == ["https://arweave.net/xyz"]


def test_rate_limit_is_retried_with_exponential_backoff():
    sleeps = []
    session = FakeSession({f"{G1}QmAbc": [FakeResponse(status=429), FakeResponse(status=429), FakeResponse(DOCUMENT)]})

    metadata = asyncio.run(_enricher(session, sleeps).enrich("ipfs://QmAbc"))

    assert metadata.image == "https://img/abc.png"
    assert metadata.description == "to the moon"
    assert sleeps == [1.0, 2.0]


def test_exhausted_mirror_falls_through_without_final_wait():
    sleeps = []
    session = FakeSession(
        {
            f"{G1}QmAbc": FakeResponse(status=429),
            f"{G2}QmAbc": FakeResponse(DOCUMENT),
        }
    )

    metadata = asyncio.run(_enricher(session, sleeps).enrich("ipfs://QmAbc"))

    assert metadata.twitter == "https://x.com/abc"
    assert sleeps == [1.0, 2.0]
    assert [call["url"] for call in session.calls] == [f"{G1}QmAbc"] * 3 + [f"{G2}QmAbc"]


def test_non_rate_limit_errors_switch_mirror_without_waiting():
    sleeps = []
    session = FakeSession(
        {
            f"{G1}QmAbc": FakeResponse(error=aiohttp.ClientConnectionError("reset")),
            f"{G2}QmAbc": FakeResponse(DOCUMENT),
        }
    )

    metadata = asyncio.run(_enricher(session, sleeps).enrich("ipfs://QmAbc"))

    assert metadata is not None
    assert sleeps == []


def test_enrichment_failure_returns_none():
    sleeps = []
    session = FakeSession(
        {
            f"{G1}QmAbc": FakeResponse(status=500),
            f"{G2}QmAbc": FakeResponse({"name": "no useful fields"}),
        }
    )
    enricher = _enricher(session, sleeps)

    assert asyncio.run(enricher.enrich("ipfs://QmAbc")) is None
    assert asyncio.run(enricher.enrich(None)) is None
    assert asyncio.run(enricher.enrich("data:application/json,{}")) is None
