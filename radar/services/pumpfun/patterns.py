"""Эвристический анализ паттернов по снапшоту токена.

Истории цен у нас нет, поэтому "паттерны" строятся на пороговых правилах по
текущим цене, объёму, капитализации и возрасту. Чистые функции, без I/O.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Iterable, Literal

from radar.models import Token, as_utc, utcnow

InsiderVerdict = Literal["avoid", "caution", "monitor", "safe"]
MigrationStatus = Literal["new", "migrating", "established"]

HIGH_POTENTIAL_SCORE = 70
HIGH_POTENTIAL_LIMIT = 10
RISKY_SCORE = 30


@dataclass(slots=True)
class PricePattern:
    type: Literal["spike", "dump", "steady"]
    severity: Literal["low", "medium", "high"]
    confidence: int
    description: str


@dataclass(slots=True)
class VolumePattern:
    type: Literal["surge", "decline", "normal"]
    change_percentage: float
    is_suspicious: bool


@dataclass(slots=True)
class InsiderActivity:
    detected: bool
    risk_score: int
    indicators: list[str] = field(default_factory=list)
    recommendation: InsiderVerdict = "safe"


@dataclass(slots=True)
class TokenAnalysis:
    token: Token
    price_pattern: PricePattern
    volume_pattern: VolumePattern
    insider_activity: InsiderActivity
    overall_score: float
    migration_status: MigrationStatus

    def as_dict(self) -> dict[str, Any]:
        return {
            "address": self.token.address,
            "name": self.token.name,
            "symbol": self.token.symbol,
            "pricePattern": {
                "type": self.price_pattern.type,
                "severity": self.price_pattern.severity,
                "confidence": self.price_pattern.confidence,
                "description": self.price_pattern.description,
            },
            "volumePattern": {
                "type": self.volume_pattern.type,
                "changePercentage": self.volume_pattern.change_percentage,
                "isSuspicious": self.volume_pattern.is_suspicious,
                # изменение объёма без истории не измерить
                "simulated": True,
            },
            "insiderActivity": {
                "detected": self.insider_activity.detected,
                "riskScore": self.insider_activity.risk_score,
                "indicators": list(self.insider_activity.indicators),
                "recommendation": self.insider_activity.recommendation,
            },
            "overallScore": self.overall_score,
            "migrationStatus": self.migration_status,
        }


class PatternAnalyzer:
    def analyze(self, token: Token, now: datetime | None = None) -> TokenAnalysis:
        now = now or utcnow()
        price = self.price_pattern(token)
        volume = self.volume_pattern(token)
        insider = self.insider_activity(token, now)
        return TokenAnalysis(
            token=token,
            price_pattern=price,
            volume_pattern=volume,
            insider_activity=insider,
            overall_score=self.overall_score(price, volume, insider),
            migration_status=self.migration_status(token, now),
        )

    def analyze_many(self, tokens: Iterable[Token], now: datetime | None = None) -> list[TokenAnalysis]:
        now = now or utcnow()
        return [self.analyze(token, now) for token in tokens]

    @staticmethod
    def price_pattern(token: Token) -> PricePattern:
        price = token.price_usd
        if price > 10:
            return PricePattern("spike", "high", 85, f"Возможный скачок цены: ${price}")
        if price < 0.001:
            return PricePattern("dump", "medium", 70, f"Очень низкая цена: ${price}")
        return PricePattern("steady", "low", 60, f"Цена стабильна: ${price}")

    @staticmethod
    def volume_pattern(token: Token) -> VolumePattern:
        volume = token.volume_24h
        if volume > 1_000_000:
            return VolumePattern("surge", 150.0, is_suspicious=volume > 10_000_000)
        if volume < 1_000:
            return VolumePattern("decline", -80.0, is_suspicious=False)
        return VolumePattern("normal", 0.0, is_suspicious=False)

    @staticmethod
    def insider_activity(token: Token, now: datetime | None = None) -> InsiderActivity:
        indicators: list[str] = []
        risk = 0
        if token.market_cap / (token.volume_24h or 1) < 5:
            indicators.append("Объём высокий относительно капитализации")
            risk += 30
        if token.market_cap < 100_000:
            indicators.append("Очень низкая капитализация")
            risk += 20
        if (now or utcnow()) - as_utc(token.created_at) < timedelta(hours=1):
            indicators.append("Токену меньше часа")
            risk += 40

        verdict: InsiderVerdict
        if risk >= 70:
            verdict = "avoid"
        elif risk >= 40:
            verdict = "caution"
        elif risk >= 20:
            verdict = "monitor"
        else:
            verdict = "safe"
        return InsiderActivity(
            detected=risk > 40,
            risk_score=min(risk, 100),
            indicators=indicators,
            recommendation=verdict,
        )

    @staticmethod
    def overall_score(price: PricePattern, volume: VolumePattern, insider: InsiderActivity) -> float:
        score = 50.0
        if price.type == "spike":
            score += 20
        elif price.type == "dump":
            score -= 30
        if volume.type == "surge" and not volume.is_suspicious:
            score += 15
        elif volume.is_suspicious:
            score -= 25
        score -= insider.risk_score * 0.5
        return max(0.0, min(100.0, score))

    @staticmethod
    def migration_status(token: Token, now: datetime | None = None) -> MigrationStatus:
        age = (now or utcnow()) - as_utc(token.created_at)
        if age < timedelta(hours=1):
            return "new"
        if age < timedelta(hours=24):
            return "migrating"
        return "established"

    @staticmethod
    def high_potential(analyses: Iterable[TokenAnalysis]) -> list[TokenAnalysis]:
        selected = [
            item
            for item in analyses
            if item.overall_score >= HIGH_POTENTIAL_SCORE
            and item.insider_activity.recommendation != "avoid"
        ]
        selected.sort(key=lambda item: item.overall_score, reverse=True)
        return selected[:HIGH_POTENTIAL_LIMIT]

    @staticmethod
    def risky(analyses: Iterable[TokenAnalysis]) -> list[TokenAnalysis]:
        selected = [
            item
            for item in analyses
            if item.insider_activity.recommendation == "avoid" or item.overall_score < RISKY_SCORE
        ]
        selected.sort(key=lambda item: item.insider_activity.risk_score, reverse=True)
        return selected


__all__ = [
    "InsiderActivity",
    "PatternAnalyzer",
    "PricePattern",
    "TokenAnalysis",
    "VolumePattern",
]
