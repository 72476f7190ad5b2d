"""Точечные запросы цены и метаданных через Solana gateway Moralis."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from loguru import logger

from .candidates import TokenMetadata, to_float
from .sources import UpstreamClient, UpstreamError


@dataclass(slots=True)
class MoralisPrice:
    usd_price: float
    exchange_name: str | None
    pair_address: str | None


@dataclass(slots=True)
class MoralisTokenInfo:
    name: str | None
    symbol: str | None
    metadata: TokenMetadata
    uri: str | None


class MoralisClient(UpstreamClient):
    name = "moralis"

    def __init__(self, base_url: str, api_key: str | None, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key

    @property
    def enabled(self) -> bool:
        return bool(self._api_key)

    def _headers(self) -> dict[str, str]:
        return {"accept": "application/json", "X-API-Key": self._api_key or ""}

    async def get_price(self, address: str) -> MoralisPrice | None:
        """Цена токена в USD; None, если ключа нет или источник недоступен."""

        if not self.enabled:
            logger.debug("MORALIS_API_KEY не настроен, цену {addr} не запрашиваем", addr=address)
            return None
        try:
            data = await self._get_json(
                f"{self._base_url}/token/mainnet/{address}/price",
                headers=self._headers(),
            )
        except UpstreamError as exc:
            logger.debug("Moralis: цена {addr} недоступна: {error}", addr=address, error=str(exc))
            return None
        if not isinstance(data, dict):
            return None
        return MoralisPrice(
            usd_price=to_float(data.get("usdPrice")),
            exchange_name=data.get("exchangeName"),
            pair_address=data.get("pairAddress"),
        )

    async def get_metadata(self, address: str) -> MoralisTokenInfo | None:
        if not self.enabled:
            return None
        try:
            data = await self._get_json(
                f"{self._base_url}/token/mainnet/{address}/metadata",
                headers=self._headers(),
            )
        except UpstreamError as exc:
            logger.debug("Moralis: метаданные {addr} недоступны: {error}", addr=address, error=str(exc))
            return None
        metadata = TokenMetadata.from_document(data)
        if metadata is None:
            return None
        metaplex = data.get("metaplex") if isinstance(data.get("metaplex"), dict) else {}
        return MoralisTokenInfo(
            name=data.get("name") or None,
            symbol=data.get("symbol") or None,
            metadata=metadata,
            uri=metaplex.get("metadataUri") or None,
        )


__all__ = ["MoralisClient", "MoralisPrice", "MoralisTokenInfo"]
