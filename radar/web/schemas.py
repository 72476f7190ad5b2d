"""Pydantic-схемы ответов HTTP API (camelCase наружу)."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Iterable

from pydantic import BaseModel, ConfigDict, Field, field_serializer
from pydantic.alias_generators import to_camel

from radar.models import Token, as_utc
from radar.services.pumpfun.candidates import TokenCandidate
from radar.services.pumpfun.patterns import TokenAnalysis
from radar.services.pumpfun.token_service import TokenDetails


class CamelModel(BaseModel):
    # to_camel превращает "_24h" в "24H", такие поля задают alias явно
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class TokenOut(CamelModel):
    id: int | None = None
    address: str
    name: str
    symbol: str
    description: str | None = None
    image_url: str | None = None
    website: str | None = None
    twitter: str | None = None
    telegram: str | None = None
    uri: str | None = None
    price_usd: float = 0.0
    market_cap: float = 0.0
    volume_24h: float = Field(0.0, alias="volume24h")
    created_at: datetime
    updated_at: datetime

    @field_serializer("created_at", "updated_at")
    def _utc(self, value: datetime) -> str:
        return as_utc(value).isoformat()


class CandidateOut(CamelModel):
    address: str
    name: str
    symbol: str
    price_usd: float
    market_cap: float
    volume_24h: float = Field(alias="volume24h")
    image_url: str | None = None
    website: str | None = None
    twitter: str | None = None
    telegram: str | None = None
    source: str


def token_payload(token: Token) -> dict[str, Any]:
    return TokenOut.model_validate(token).model_dump(by_alias=True, mode="json")


def tokens_payload(tokens: Iterable[Token]) -> list[dict[str, Any]]:
    return [token_payload(token) for token in tokens]


def candidate_payload(candidate: TokenCandidate, price_change_24h: float) -> dict[str, Any]:
    data = CandidateOut.model_validate(candidate).model_dump(by_alias=True, mode="json")
    data["priceChange24h"] = price_change_24h
    return data


def analysis_payload(analysis: TokenAnalysis) -> dict[str, Any]:
    return {**analysis.as_dict(), "token": token_payload(analysis.token)}


def details_payload(details: TokenDetails) -> dict[str, Any]:
    token = token_payload(details.token)
    token.update(
        {
            "priceUsd": details.snapshot.price_usd,
            "marketCap": details.snapshot.market_cap,
            "volume24h": details.snapshot.volume_24h,
            "exchange": details.snapshot.exchange or "Unknown",
        }
    )
    metrics = details.metrics.as_dict()
    return {
        "token": token,
        "metadata": {
            "logo": details.token.image_url,
            "description": details.token.description,
            "website": details.token.website,
            "twitter": details.token.twitter,
            "telegram": details.token.telegram,
        },
        "score": details.score.as_dict(),
        "trading": {
            "priceHistory": details.price_history,
            **{
                key: metrics[key]
                for key in ("priceChange24h", "priceChange7d", "allTimeHigh", "allTimeLow", "volumeChange24h")
            },
        },
        "analytics": {
            key: metrics[key]
            for key in (
                "marketCapRank",
                "liquidityScore",
                "volatilityScore",
                "tradingScore",
                "riskLevel",
                "momentum",
            )
        },
        "insights": details.insights,
        "seed": details.seed,
    }


__all__ = [
    "CandidateOut",
    "TokenOut",
    "analysis_payload",
    "candidate_payload",
    "details_payload",
    "token_payload",
    "tokens_payload",
]
