"""Снапшот токена pump.fun: единственная сущность в базе."""

from __future__ import annotations

from typing import Optional

from sqlmodel import Field

from .base import TimeStampedModel

ENRICHMENT_FIELDS = ("description", "image_url", "website", "twitter", "telegram", "uri")


class Token(TimeStampedModel, table=True):
    __tablename__ = "tokens"

    id: Optional[int] = Field(default=None, primary_key=True)
    address: str = Field(max_length=64, unique=True, index=True)
    name: str = Field(max_length=128)
    symbol: str = Field(max_length=32)
    description: Optional[str] = Field(default=None)
    image_url: Optional[str] = Field(default=None, max_length=512)
    website: Optional[str] = Field(default=None, max_length=512)
    twitter: Optional[str] = Field(default=None, max_length=512)
    telegram: Optional[str] = Field(default=None, max_length=512)
    uri: Optional[str] = Field(default=None, max_length=512)
    price_usd: float = Field(default=0.0, ge=0)
    market_cap: float = Field(default=0.0, ge=0)
    volume_24h: float = Field(default=0.0, ge=0)

    @property
    def has_enrichment(self) -> bool:
        return bool(self.image_url)


__all__ = ["ENRICHMENT_FIELDS", "Token"]
