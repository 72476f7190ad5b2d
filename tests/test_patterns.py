from __future__ import annotations

from datetime import datetime, timedelta, timezone

from radar.models import Token
from radar.services.pumpfun.patterns import PatternAnalyzer

NOW = datetime(2026, 10, 17, 12, 0, tzinfo=timezone.utc)


def _token(address, *, price, market_cap, volume, age):
    return Token(
        address=address,
        name=address,
        symbol=address[:4].upper(),
        price_usd=price,
        market_cap=market_cap,
        volume_24h=volume,
        created_at=NOW - age,
        updated_at=NOW - age,
    )


def test_strong_established_token_is_high_potential():
    analyzer = PatternAnalyzer()
    token = _token("blue", price=20.0, market_cap=50_000_000, volume=2_000_000, age=timedelta(days=3))

    analysis = analyzer.analyze(token, NOW)

    assert analysis.price_pattern.type == "spike"
    assert analysis.volume_pattern.type == "surge"
    assert not analysis.volume_pattern.is_suspicious
    assert analysis.insider_activity.recommendation == "safe"
    assert analysis.overall_score == 85
    assert analysis.migration_status == "established"
    assert analyzer.high_potential([analysis]) == [analysis]
    assert analyzer.risky([analysis]) == []


def test_fresh_microcap_is_flagged_as_insider_risk():
    analyzer = PatternAnalyzer()
    token = _token("rug", price=0.0001, market_cap=10_000, volume=5_000, age=timedelta(minutes=20))

    analysis = analyzer.analyze(token, NOW)

    assert analysis.insider_activity.risk_score == 90
    assert analysis.insider_activity.recommendation == "avoid"
    assert analysis.insider_activity.detected
    assert len(analysis.insider_activity.indicators) == 3
    assert analysis.overall_score == 0
    assert analysis.migration_status == "new"
    assert analyzer.risky([analysis]) == [analysis]


def test_suspicious_volume_surge_lowers_score():
    analyzer = PatternAnalyzer()
    token = _token("wash", price=1.0, market_cap=30_000_000, volume=20_000_000, age=timedelta(hours=5))

    analysis = analyzer.analyze(token, NOW)

    assert analysis.volume_pattern.is_suspicious
    assert analysis.migration_status == "migrating"
    # 50 - 25 (подозрительный объём) - 0.5 * 30 (объём высок относительно mcap)
    assert analysis.overall_score == 10


def test_risky_list_is_sorted_by_insider_risk():
    analyzer = PatternAnalyzer()
    analyses = analyzer.analyze_many(
        [
            _token("mid", price=0.0001, market_cap=500_000, volume=200_000, age=timedelta(days=2)),
            _token("worst", price=0.0001, market_cap=10_000, volume=5_000, age=timedelta(minutes=5)),
        ],
        NOW,
    )

    assert [item.token.address for item in analyzer.risky(analyses)] == ["worst", "mid"]
