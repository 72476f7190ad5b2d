from __future__ import annotations

import itertools
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

from radar.services.pumpfun.scoring import Measured, Recommendation, Simulated, TokenScorer

NOW = datetime(2026, 10, 17, 12, 0, tzinfo=timezone.utc)


def _token(*, price=1.0, market_cap=1_000_000.0, volume=100_000.0, age=timedelta(days=2), address="A1"):
    return SimpleNamespace(
        address=address,
        price_usd=price,
        market_cap=market_cap,
        volume_24h=volume,
        created_at=NOW - age,
    )


def test_low_everything_token_is_clamped_to_avoid():
    scorer = TokenScorer()
    score = scorer.score(_token(price=0.0005, market_cap=50_000, volume=20_000), NOW)

    assert score.risk_score == 100
    assert score.recommendation is Recommendation.AVOID
    assert {"low_volume", "low_price", "low_market_cap"} <= set(score.reasons)


def test_score_always_within_bounds():
    scorer = TokenScorer()
    grid = itertools.product(
        (0.0, 0.0001, 0.5, 50.0),
        (0.0, 10_000.0, 5_000_000.0, 50_000_000.0),
        (0.0, 20_000.0, 300_000.0, 5_000_000.0),
        (timedelta(minutes=5), timedelta(days=3)),
    )
    for price, market_cap, volume, age in grid:
        score = scorer.score(_token(price=price, market_cap=market_cap, volume=volume, age=age), NOW)
        assert 0 <= score.risk_score <= 100


def test_low_volume_penalty_is_always_applied():
    scorer = TokenScorer()
    for price, market_cap in itertools.product((0.0001, 2.0), (10_000.0, 3_000_000.0, 40_000_000.0)):
        low = scorer.score(_token(price=price, market_cap=market_cap, volume=49_999), NOW)
        mid = scorer.score(_token(price=price, market_cap=market_cap, volume=60_000), NOW)
        assert "low_volume" in low.reasons
        assert low.risk_score == min(100, mid.risk_score + 20)


def test_liquid_established_token_is_buy():
    score = TokenScorer().score(_token(price=1.0, market_cap=20_000_000, volume=2_000_000), NOW)

    assert score.risk_score == 15
    assert score.recommendation is Recommendation.BUY
    assert score.potential_gain == "<2x"


def test_mid_volume_token_is_hold():
    score = TokenScorer().score(_token(price=0.01, market_cap=500_000, volume=200_000), NOW)

    assert score.risk_score == 50
    assert score.recommendation is Recommendation.HOLD
    assert score.potential_gain == "2x-10x"


def test_brand_new_token_is_only_monitored():
    score = TokenScorer().score(
        _token(price=1.0, market_cap=20_000_000, volume=2_000_000, age=timedelta(minutes=10)), NOW
    )

    assert score.risk_score == 40
    assert score.recommendation is Recommendation.MONITOR


def test_potential_gain_buckets():
    gain = TokenScorer.potential_gain
    assert gain(_token(market_cap=0, volume=1_000)) == "N/A"
    assert gain(_token(market_cap=50_000, volume=60_000)) == "100x+"
    assert gain(_token(market_cap=800_000, volume=400_000)) == "10x-100x"


def test_simulated_metrics_are_marked_and_reproducible():
    scorer = TokenScorer()
    token = _token(volume=600_000)
    seed = scorer.seed_for(token.address, NOW)

    first = scorer.simulate_metrics(token, seed)
    second = scorer.simulate_metrics(token, seed)

    assert first.as_dict() == second.as_dict()
    assert isinstance(first.price_change_24h, Simulated)
    assert first.price_change_24h.seed == seed
    assert isinstance(first.risk_level, Measured)
    assert first.as_dict()["riskLevel"] == {"value": "LOW", "simulated": False}
    assert first.as_dict()["liquidityScore"]["simulated"] is True
    assert -10 <= first.price_change_24h.value <= 10


def test_seed_is_stable_within_the_hour():
    assert TokenScorer.seed_for("A1", NOW) == TokenScorer.seed_for("A1", NOW + timedelta(minutes=30))
    assert TokenScorer.seed_for("A1", NOW) != TokenScorer.seed_for("A2", NOW)


def test_price_history_covers_every_hour():
    history = TokenScorer.simulate_price_history(0.002, 24, seed=7, now=NOW)

    assert len(history) == 25
    assert history[-1]["timestamp"] == NOW.isoformat()
    assert all(point["simulated"] and point["price"] > 0 for point in history)


def test_price_action_labels():
    action = TokenScorer.price_action
    assert [action(value) for value in (12, 7, 1, -2, -7, -20)] == [
        "PUMPING",
        "RISING",
        "UP",
        "DOWN",
        "FALLING",
        "DUMPING",
    ]
