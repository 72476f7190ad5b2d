"""HTTP-источники списка свежих токенов: pump.fun frontend API и DexScreener.

Каждый источник отдаёт уже нормализованные TokenCandidate; кривые элементы
ответа отбрасываются с debug-логом, сетевые ошибки превращаются в UpstreamError,
чтобы TokenFetcher мог перейти к следующему источнику.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any

import aiohttp
from loguru import logger

from .candidates import TokenCandidate, to_float
from .pricing import BondingCurvePricer


def _mapping(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _sequence(value: Any) -> list[Any]:
    return value if isinstance(value, list) else []


class UpstreamError(RuntimeError):
    """Базовое исключение внешних источников (сеть, HTTP >= 400, мусор в ответе)."""


class RateLimitedError(UpstreamError):
    """Источник ответил 429."""


class UpstreamClient:
    """Общий HTTP-слой: ленивый aiohttp.ClientSession, таймаут, семафор."""

    name = "upstream"

    def __init__(
        self,
        *,
        timeout: float,
        semaphore: asyncio.Semaphore | None = None,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self._timeout = timeout
        self._semaphore = semaphore or asyncio.Semaphore(5)
        self._session = session
        self._owns_session = session is None

    async def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self._timeout)
            )
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()

    async def fetch_latest(self) -> list[TokenCandidate]:
        raise NotImplementedError

    async def _get_json(
        self,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        session = await self._ensure_session()
        try:
            async with self._semaphore:
                async with session.get(
                    url,
                    params=params,
                    headers=headers,
                    timeout=aiohttp.ClientTimeout(total=self._timeout),
                ) as resp:
                    if resp.status == 429:
                        raise RateLimitedError(f"{self.name}: 429 для {url}")
                    if resp.status >= 400:
                        text = await resp.text()
                        raise UpstreamError(f"{self.name}: HTTP {resp.status} для {url}: {text[:200]}")
                    try:
                        return await resp.json(content_type=None)
                    except ValueError as exc:
                        raise UpstreamError(f"{self.name}: ответ не JSON ({url})") from exc
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise UpstreamError(f"{self.name}: запрос {url} упал: {exc!r}") from exc


class PumpFunApiSource(UpstreamClient):
    """Лента монет из frontend API pump.fun."""

    name = "pumpfun"

    def __init__(
        self,
        base_url: str,
        pricer: BondingCurvePricer,
        *,
        limit: int = 50,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self._base_url = base_url.rstrip("/")
        self._pricer = pricer
        self._limit = limit

    async def fetch_latest(self) -> list[TokenCandidate]:
        data = await self._get_json(
            f"{self._base_url}/coins",
            params={
                "offset": 0,
                "limit": self._limit,
                "sort": "created_timestamp",
                "order": "DESC",
                "includeNsfw": "false",
            },
        )
        items = data.get("coins") if isinstance(data, dict) else data
        if not isinstance(items, list):
            raise UpstreamError(f"pumpfun: неожиданная форма ответа {type(data).__name__}")
        candidates: list[TokenCandidate] = []
        for item in items:
            candidate = self.parse_coin(item)
            if candidate is not None:
                candidates.append(candidate)
        return candidates

    def parse_coin(self, item: Any) -> TokenCandidate | None:
        if not isinstance(item, dict):
            logger.debug("pumpfun: пропущен элемент не-объект {item!r}", item=item)
            return None
        address, name, symbol = item.get("mint"), item.get("name"), item.get("symbol")
        if not (address and name and symbol):
            logger.debug("pumpfun: элемент без mint/name/symbol пропущен")
            return None
        price = to_float(item.get("price_usd") or item.get("usd_price"))
        if price <= 0:
            price = self._pricer.price_from_raw_reserves(
                to_float(item.get("virtual_sol_reserves")),
                to_float(item.get("virtual_token_reserves")),
            )
        market_cap = to_float(item.get("usd_market_cap"))
        if market_cap <= 0:
            market_cap = self._pricer.market_cap(price)
        return TokenCandidate(
            address=str(address),
            name=str(name),
            symbol=str(symbol),
            price_usd=price,
            market_cap=market_cap,
            volume_24h=to_float(item.get("volume_24h") or item.get("volume")),
            description=item.get("description") or None,
            image_url=item.get("image_uri") or None,
            website=item.get("website") or None,
            twitter=item.get("twitter") or None,
            telegram=item.get("telegram") or None,
            uri=item.get("metadata_uri") or None,
            source=self.name,
            raw=item,
        )


@dataclass(slots=True)
class DiscoveryFilters:
    """Фильтры для выборки трендовых пар DexScreener."""

    min_volume_24h: float | None = None
    max_volume_24h: float | None = None
    min_price_change_24h: float | None = None
    max_price_change_24h: float | None = None
    min_market_cap: float | None = None
    max_market_cap: float | None = None
    min_price: float | None = None
    max_price: float | None = None
    limit: int = 50

    def matches(self, candidate: TokenCandidate, price_change_24h: float) -> bool:
        checks = (
            (self.min_volume_24h, candidate.volume_24h, False),
            (self.max_volume_24h, candidate.volume_24h, True),
            (self.min_price_change_24h, price_change_24h, False),
            (self.max_price_change_24h, price_change_24h, True),
            (self.min_market_cap, candidate.market_cap, False),
            (self.max_market_cap, candidate.market_cap, True),
            (self.min_price, candidate.price_usd, False),
            (self.max_price, candidate.price_usd, True),
        )
        for bound, value, is_max in checks:
            if bound is None:
                continue
            if is_max and value > bound:
                return False
            if not is_max and value < bound:
                return False
        return True

    def as_dict(self) -> dict[str, Any]:
        return {
            "minVolume24h": self.min_volume_24h,
            "maxVolume24h": self.max_volume_24h,
            "minPriceChange24h": self.min_price_change_24h,
            "maxPriceChange24h": self.max_price_change_24h,
            "minMarketCap": self.min_market_cap,
            "maxMarketCap": self.max_market_cap,
            "minPrice": self.min_price,
            "maxPrice": self.max_price,
            "limit": self.limit,
        }


FILTER_PRESETS: dict[str, DiscoveryFilters] = {
    "trending": DiscoveryFilters(
        min_volume_24h=50_000, min_price_change_24h=10, max_market_cap=100_000_000, limit=25
    ),
    "highVolume": DiscoveryFilters(min_volume_24h=500_000, limit=20),
    "moonshots": DiscoveryFilters(min_price_change_24h=50, min_volume_24h=10_000, limit=15),
    "safeOptions": DiscoveryFilters(
        min_market_cap=1_000_000,
        min_price_change_24h=-20,
        max_price_change_24h=20,
        min_volume_24h=100_000,
        limit=30,
    ),
    "smallCaps": DiscoveryFilters(max_market_cap=10_000_000, min_volume_24h=25_000, limit=40),
}


class DexScreenerSource(UpstreamClient):
    """Пары DexScreener: резервный источник ленты и объёмы за 24 часа."""

    name = "dexscreener"

    def __init__(
        self,
        base_url: str,
        *,
        query: str = "pump",
        limit: int = 50,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self._base_url = base_url.rstrip("/")
        self._query = query
        self._limit = limit

    async def fetch_latest(self) -> list[TokenCandidate]:
        pairs = await self._search(self._query)
        seen: dict[str, TokenCandidate] = {}
        for pair in pairs:
            if pair.get("dexId") not in {"pumpfun", "pumpswap", "raydium"}:
                continue
            candidate = self.parse_pair(pair)
            if candidate is not None and candidate.address not in seen:
                seen[candidate.address] = candidate
        return list(seen.values())[: self._limit]

    async def fetch_pair(self, address: str) -> TokenCandidate | None:
        """Самая ликвидная по объёму пара токена, нормализованная в кандидата."""

        data = await self._get_json(f"{self._base_url}/latest/dex/tokens/{address}")
        pairs = self._pairs(data)
        if not pairs:
            logger.debug("DexScreener: пар для {addr} не найдено", addr=address)
            return None
        best = max(pairs, key=lambda pair: to_float(_mapping(pair.get("volume")).get("h24")))
        return self.parse_pair(best)

    async def fetch_volume_24h(self, address: str) -> float:
        candidate = await self.fetch_pair(address)
        return candidate.volume_24h if candidate else 0.0

    async def discover_trending(
        self,
        filters: DiscoveryFilters | None = None,
    ) -> list[tuple[TokenCandidate, float]]:
        """Пары Solana с наибольшим объёмом и их изменение цены за 24 часа."""

        filters = filters or DiscoveryFilters()
        results: list[tuple[TokenCandidate, float]] = []
        seen: set[str] = set()
        for pair in await self._search("SOL"):
            candidate = self.parse_pair(pair)
            if candidate is None or candidate.address in seen:
                continue
            change = to_float(_mapping(pair.get("priceChange")).get("h24"))
            if not filters.matches(candidate, change):
                continue
            seen.add(candidate.address)
            results.append((candidate, change))
        results.sort(key=lambda item: item[0].volume_24h, reverse=True)
        return results[: filters.limit]

    async def _search(self, query: str) -> list[dict[str, Any]]:
        data = await self._get_json(f"{self._base_url}/latest/dex/search", params={"q": query})
        return [pair for pair in self._pairs(data) if pair.get("chainId") == "solana"]

    @staticmethod
    def _pairs(data: Any) -> list[dict[str, Any]]:
        pairs = data.get("pairs") if isinstance(data, dict) else None
        if not isinstance(pairs, list):
            return []
        return [pair for pair in pairs if isinstance(pair, dict)]

    def parse_pair(self, pair: dict[str, Any]) -> TokenCandidate | None:
        base = _mapping(pair.get("baseToken"))
        address, name, symbol = base.get("address"), base.get("name"), base.get("symbol")
        if not (address and name and symbol):
            logger.debug("DexScreener: пара без baseToken пропущена")
            return None
        info = _mapping(pair.get("info"))
        websites = [_mapping(site).get("url") for site in _sequence(info.get("websites"))]
        socials = {
            _mapping(social).get("type"): _mapping(social).get("url")
            for social in _sequence(info.get("socials"))
        }
        return TokenCandidate(
            address=str(address),
            name=str(name),
            symbol=str(symbol),
            price_usd=to_float(pair.get("priceUsd")),
            market_cap=to_float(pair.get("marketCap") or pair.get("fdv")),
            volume_24h=to_float(_mapping(pair.get("volume")).get("h24")),
            image_url=info.get("imageUrl") or None,
            website=next((url for url in websites if url), None),
            twitter=socials.get("twitter") or None,
            telegram=socials.get("telegram") or None,
            source=self.name,
            raw=pair,
        )


__all__ = [
    "DexScreenerSource",
    "DiscoveryFilters",
    "FILTER_PRESETS",
    "PumpFunApiSource",
    "RateLimitedError",
    "UpstreamClient",
    "UpstreamError",
]
