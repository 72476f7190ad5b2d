"""Скоринг токенов для дашборда.

Риск-скор и рекомендация считаются пороговыми правилами по текущему снапшоту
(цена, объём, капитализация, возраст). Это эвристика для отображения, а не
модель. Метрики, для которых реальных данных нет (изменение цены, ATH/ATL,
ликвидность и т.п.), помечены как Simulated и генерируются из явного seed.
"""

from __future__ import annotations

import random
import zlib
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Optional, Protocol, Union

from radar.models import as_utc, utcnow

BASE_RISK = 50
LOW_VOLUME_USD = 50_000
HIGH_VOLUME_USD = 1_000_000
LOW_PRICE_USD = 0.001
LOW_MARKET_CAP_USD = 100_000
HIGH_MARKET_CAP_USD = 10_000_000
NEW_TOKEN_AGE = timedelta(hours=1)

LOW_VOLUME_PENALTY = 20
HIGH_VOLUME_BONUS = 20
LOW_PRICE_PENALTY = 15
LOW_MARKET_CAP_PENALTY = 15
HIGH_MARKET_CAP_BONUS = 15
NEW_TOKEN_PENALTY = 25

AVOID_RISK = 80
BUY_MAX_RISK = 40
HOLD_MAX_RISK = 60
BUY_MIN_VOLUME = 1_000_000
BUY_MIN_MARKET_CAP = 1_000_000
HOLD_MIN_VOLUME = 100_000


class Recommendation(str, Enum):
    BUY = "BUY"
    HOLD = "HOLD"
    MONITOR = "MONITOR"
    AVOID = "AVOID"


class ScorableToken(Protocol):
    address: str
    price_usd: float
    market_cap: float
    volume_24h: float
    created_at: datetime


@dataclass(frozen=True, slots=True)
class Measured:
    """Значение, посчитанное из реальных данных."""

    value: Any

    def as_dict(self) -> dict[str, Any]:
        return {"value": self.value, "simulated": False}


@dataclass(frozen=True, slots=True)
class Simulated:
    """Заглушка для отображения: псевдослучайное значение из seed."""

    value: Any
    seed: int

    def as_dict(self) -> dict[str, Any]:
        return {"value": self.value, "simulated": True, "seed": self.seed}


Signal = Optional[Union[Measured, Simulated]]


@dataclass(slots=True)
class TokenScore:
    risk_score: int
    recommendation: Recommendation
    potential_gain: str
    reasons: tuple[str, ...] = ()

    def as_dict(self) -> dict[str, Any]:
        return {
            "riskScore": self.risk_score,
            "recommendation": self.recommendation.value,
            "potentialGain": self.potential_gain,
            "reasons": list(self.reasons),
        }


@dataclass(slots=True)
class TokenMetrics:
    """Набор метрик карточки токена; почти всё здесь Simulated."""

    price_change_24h: Signal
    price_change_7d: Signal
    all_time_high: Signal
    all_time_low: Signal
    volume_change_24h: Signal
    market_cap_rank: Signal
    liquidity_score: Signal
    volatility_score: Signal
    trading_score: Signal
    risk_level: Signal
    momentum: Signal
    extra: dict[str, Signal] = field(default_factory=dict)

    def as_dict(self) -> dict[str, Any]:
        fields = {
            "priceChange24h": self.price_change_24h,
            "priceChange7d": self.price_change_7d,
            "allTimeHigh": self.all_time_high,
            "allTimeLow": self.all_time_low,
            "volumeChange24h": self.volume_change_24h,
            "marketCapRank": self.market_cap_rank,
            "liquidityScore": self.liquidity_score,
            "volatilityScore": self.volatility_score,
            "tradingScore": self.trading_score,
            "riskLevel": self.risk_level,
            "momentum": self.momentum,
            **self.extra,
        }
        return {key: (value.as_dict() if value is not None else None) for key, value in fields.items()}


def signal_value(signal: Signal, default: Any = None) -> Any:
    return signal.value if signal is not None else default


class TokenScorer:
    """Чистые функции скоринга; ничего не хранит между вызовами."""

    def score(self, token: ScorableToken, now: datetime | None = None) -> TokenScore:
        now = now or utcnow()
        is_new = self.is_very_new(token, now)
        risk = BASE_RISK
        reasons: list[str] = []
        if token.volume_24h < LOW_VOLUME_USD:
            risk += LOW_VOLUME_PENALTY
            reasons.append("low_volume")
        elif token.volume_24h > HIGH_VOLUME_USD:
            risk -= HIGH_VOLUME_BONUS
            reasons.append("high_volume")
        if token.price_usd < LOW_PRICE_USD:
            risk += LOW_PRICE_PENALTY
            reasons.append("low_price")
        if token.market_cap < LOW_MARKET_CAP_USD:
            risk += LOW_MARKET_CAP_PENALTY
            reasons.append("low_market_cap")
        elif token.market_cap > HIGH_MARKET_CAP_USD:
            risk -= HIGH_MARKET_CAP_BONUS
            reasons.append("high_market_cap")
        if is_new:
            risk += NEW_TOKEN_PENALTY
            reasons.append("new_token")
        risk = max(0, min(100, risk))
        return TokenScore(
            risk_score=risk,
            recommendation=self.recommend(token, risk, is_new),
            potential_gain=self.potential_gain(token),
            reasons=tuple(reasons),
        )

    @staticmethod
    def recommend(token: ScorableToken, risk: int, is_new: bool) -> Recommendation:
        """Сначала риск и возраст, потом проверки на апсайд."""

        if risk >= AVOID_RISK:
            return Recommendation.AVOID
        if is_new:
            return Recommendation.MONITOR
        if (
            risk < BUY_MAX_RISK
            and token.volume_24h >= BUY_MIN_VOLUME
            and token.market_cap >= BUY_MIN_MARKET_CAP
        ):
            return Recommendation.BUY
        if risk < HOLD_MAX_RISK and token.volume_24h >= HOLD_MIN_VOLUME:
            return Recommendation.HOLD
        return Recommendation.MONITOR

    @staticmethod
    def potential_gain(token: ScorableToken) -> str:
        if token.market_cap <= 0:
            return "N/A"
        turnover = token.volume_24h / token.market_cap
        if token.market_cap < LOW_MARKET_CAP_USD and turnover >= 1:
            return "100x+"
        if token.market_cap < 1_000_000 and turnover >= 0.5:
            return "10x-100x"
        if token.market_cap < HIGH_MARKET_CAP_USD and turnover >= 0.1:
            return "2x-10x"
        return "<2x"

    @staticmethod
    def is_very_new(token: ScorableToken, now: datetime | None = None) -> bool:
        return (now or utcnow()) - as_utc(token.created_at) < NEW_TOKEN_AGE

    @staticmethod
    def is_new_listing(token: ScorableToken, now: datetime | None = None) -> bool:
        """Младше 7 дней: метка "new" в карточке."""

        return (now or utcnow()) - as_utc(token.created_at) < timedelta(days=7)

    @staticmethod
    def risk_level(volume_24h: float) -> str:
        if volume_24h > 500_000:
            return "LOW"
        if volume_24h > 100_000:
            return "MEDIUM"
        return "HIGH"

    @staticmethod
    def seed_for(address: str, now: datetime | None = None) -> int:
        """Стабильный в пределах часа seed, чтобы карточка не "прыгала" при обновлении."""

        bucket = int((now or utcnow()).timestamp() // 3600)
        return zlib.crc32(f"{address}:{bucket}".encode())

    def simulate_metrics(self, token: ScorableToken, seed: int) -> TokenMetrics:
        rng = random.Random(seed)
        price_change_24h = (rng.random() - 0.5) * 20
        price_change_7d = (rng.random() - 0.5) * 50
        all_time_high = token.price_usd * (1 + rng.random() * 2)
        all_time_low = token.price_usd * (0.1 + rng.random() * 0.5)
        volume_change_24h = (rng.random() - 0.5) * 30
        market_cap_rank = rng.randint(1, 1000)
        liquidity_score = rng.randint(60, 99)
        volatility_score = rng.randint(30, 79)
        if token.volume_24h > 100_000:
            trading_score = rng.randint(70, 99)
        else:
            trading_score = rng.randint(20, 69)
        if price_change_24h > 5:
            momentum = "BULLISH"
        elif price_change_24h < -5:
            momentum = "BEARISH"
        else:
            momentum = "NEUTRAL"
        return TokenMetrics(
            price_change_24h=Simulated(round(price_change_24h, 2), seed),
            price_change_7d=Simulated(round(price_change_7d, 2), seed),
            all_time_high=Simulated(all_time_high, seed),
            all_time_low=Simulated(all_time_low, seed),
            volume_change_24h=Simulated(round(volume_change_24h, 2), seed),
            market_cap_rank=Simulated(market_cap_rank, seed),
            liquidity_score=Simulated(liquidity_score, seed),
            volatility_score=Simulated(volatility_score, seed),
            trading_score=Simulated(trading_score, seed),
            risk_level=Measured(self.risk_level(token.volume_24h)),
            momentum=Simulated(momentum, seed),
        )

    @staticmethod
    def simulate_price_history(
        price_usd: float,
        hours: int,
        seed: int,
        now: datetime | None = None,
    ) -> list[dict[str, Any]]:
        """Почасовая "история" вокруг текущей цены (реальных рядов мы не храним)."""

        rng = random.Random(seed)
        now = now or utcnow()
        volatility = 0.05
        history: list[dict[str, Any]] = []
        for i in range(hours, -1, -1):
            change = (rng.random() - 0.5) * volatility
            price = price_usd * (1 + change * (i / hours)) if hours else price_usd
            history.append(
                {
                    "timestamp": (now - timedelta(hours=i)).isoformat(),
                    "price": max(price, 0.000001),
                    "volume": rng.random() * 100_000 + 10_000,
                    "simulated": True,
                }
            )
        return history

    @staticmethod
    def price_action(price_change_24h: float) -> str:
        if price_change_24h > 10:
            return "PUMPING"
        if price_change_24h > 5:
            return "RISING"
        if price_change_24h > 0:
            return "UP"
        if price_change_24h > -5:
            return "DOWN"
        if price_change_24h > -10:
            return "FALLING"
        return "DUMPING"


__all__ = [
    "Measured",
    "Recommendation",
    "Signal",
    "Simulated",
    "TokenMetrics",
    "TokenScore",
    "TokenScorer",
    "signal_value",
]
