"""Нормализованные записи, которые источники отдают в слой хранения."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any


@dataclass(slots=True)
class TokenMetadata:
    """Off-chain документ метаданных (картинка, соцсети, описание)."""

    description: str | None = None
    image: str | None = None
    website: str | None = None
    twitter: str | None = None
    telegram: str | None = None

    @classmethod
    def from_document(cls, data: Any) -> "TokenMetadata | None":
        """Разбирает JSON метаданных pump.fun / Metaplex; None, если это не объект."""

        if not isinstance(data, dict):
            return None
        extensions = data.get("extensions") if isinstance(data.get("extensions"), dict) else {}
        return cls(
            description=_text(data.get("description")),
            image=_text(data.get("image") or data.get("logo") or data.get("image_uri")),
            website=_text(data.get("website") or extensions.get("website")),
            twitter=_text(data.get("twitter") or extensions.get("twitter")),
            telegram=_text(data.get("telegram") or extensions.get("telegram")),
        )

    @property
    def is_empty(self) -> bool:
        return not any((self.description, self.image, self.website, self.twitter, self.telegram))


@dataclass(slots=True)
class TokenCandidate:
    """Кандидат на upsert: минимум address/name/symbol, остальное best-effort."""

    address: str
    name: str
    symbol: str
    price_usd: float = 0.0
    market_cap: float = 0.0
    volume_24h: float = 0.0
    description: str | None = None
    image_url: str | None = None
    website: str | None = None
    twitter: str | None = None
    telegram: str | None = None
    uri: str | None = None
    source: str = "unknown"
    raw: dict[str, Any] = field(default_factory=dict, repr=False)

    def validation_error(self) -> str | None:
        """Причина отказа в сохранении или None, если кандидат валиден."""

        for name in ("address", "name", "symbol"):
            value = getattr(self, name)
            if not isinstance(value, str) or not value.strip():
                return f"пустое поле {name}"
        for name in ("price_usd", "market_cap", "volume_24h"):
            value = getattr(self, name)
            if not isinstance(value, (int, float)) or math.isnan(value) or value < 0:
                return f"некорректное значение {name}={value!r}"
        return None

    def apply_metadata(self, metadata: TokenMetadata) -> None:
        self.description = self.description or metadata.description
        self.image_url = self.image_url or metadata.image
        self.website = self.website or metadata.website
        self.twitter = self.twitter or metadata.twitter
        self.telegram = self.telegram or metadata.telegram


def to_float(value: Any, default: float = 0.0) -> float:
    """Аккуратно приводит числа из JSON (строки, None, NaN) к float."""

    if value is None or isinstance(value, bool):
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if math.isnan(number) or math.isinf(number):
        return default
    return number


def _text(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    value = value.replace("\x00", "").strip()
    return value or None


__all__ = ["TokenCandidate", "TokenMetadata", "to_float"]
