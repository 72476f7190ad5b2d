"""TokenFetcher: опрос источников по приоритету и точечная загрузка токена."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Sequence

from loguru import logger

from .candidates import TokenCandidate
from .moralis import MoralisClient
from .pricing import BondingCurvePricer
from .sources import DexScreenerSource, UpstreamClient, UpstreamError


@dataclass(slots=True)
class FetchResult:
    """Итог одного цикла: кто отдал данные и почему отвалились остальные."""

    source: str | None
    candidates: list[TokenCandidate] = field(default_factory=list)
    failures: dict[str, str] = field(default_factory=dict)


class TokenFetcher:
    """Перебирает источники в фиксированном порядке до первого непустого ответа."""

    def __init__(
        self,
        sources: Sequence[UpstreamClient],
        *,
        moralis: MoralisClient,
        dexscreener: DexScreenerSource,
        pricer: BondingCurvePricer,
    ) -> None:
        self._sources = list(sources)
        self._moralis = moralis
        self._dexscreener = dexscreener
        self._pricer = pricer

    @property
    def source_names(self) -> list[str]:
        return [source.name for source in self._sources]

    @property
    def dexscreener(self) -> DexScreenerSource:
        return self._dexscreener

    async def fetch_latest(self) -> FetchResult:
        """Кандидаты из первого живого источника; если упали все — пустой результат."""

        failures: dict[str, str] = {}
        for source in self._sources:
            try:
                candidates = await source.fetch_latest()
            except UpstreamError as exc:
                failures[source.name] = str(exc)
                logger.warning(
                    "Источник {source} недоступен: {error}, пробуем следующий",
                    source=source.name,
                    error=str(exc),
                )
                continue
            except Exception as exc:  # noqa: BLE001
                failures[source.name] = repr(exc)
                logger.exception("Источник {source} упал: {error}", source=source.name, error=exc)
                continue
            unique = list({candidate.address: candidate for candidate in candidates}.values())
            if not unique:
                failures[source.name] = "пустой ответ"
                logger.info("Источник {source} вернул 0 токенов, пробуем следующий", source=source.name)
                continue
            logger.info(
                "Источник {source} вернул {count} токенов",
                source=source.name,
                count=len(unique),
            )
            return FetchResult(source=source.name, candidates=unique, failures=failures)
        logger.error(
            "Все источники недоступны ({names}), цикл без новых токенов",
            names=", ".join(failures) or "-",
        )
        return FetchResult(source=None, failures=failures)

    async def fetch_one(self, address: str) -> TokenCandidate | None:
        """Свежий снапшот одного токена: цена/метаданные Moralis + пара DexScreener."""

        price, info, pair = await asyncio.gather(
            self._moralis.get_price(address),
            self._moralis.get_metadata(address),
            self._safe_pair(address),
        )
        name = (info.name if info else None) or (pair.name if pair else None)
        symbol = (info.symbol if info else None) or (pair.symbol if pair else None)
        if not (name and symbol):
            logger.debug("Токен {addr} не найден ни в одном источнике", addr=address)
            return None
        price_usd = (price.usd_price if price else 0.0) or (pair.price_usd if pair else 0.0)
        market_cap = pair.market_cap if pair and pair.market_cap > 0 else self._pricer.market_cap(price_usd)
        candidate = TokenCandidate(
            address=address,
            name=name,
            symbol=symbol,
            price_usd=price_usd,
            market_cap=market_cap,
            volume_24h=pair.volume_24h if pair else 0.0,
            uri=info.uri if info else None,
            source="moralis" if price else "dexscreener",
        )
        if info is not None:
            candidate.apply_metadata(info.metadata)
        if pair is not None:
            candidate.image_url = candidate.image_url or pair.image_url
            candidate.website = candidate.website or pair.website
            candidate.twitter = candidate.twitter or pair.twitter
            candidate.telegram = candidate.telegram or pair.telegram
        if price and price.exchange_name and not candidate.description:
            candidate.description = f"Token from Pump.fun ({price.exchange_name})"
        return candidate

    async def _safe_pair(self, address: str) -> TokenCandidate | None:
        try:
            return await self._dexscreener.fetch_pair(address)
        except UpstreamError as exc:
            logger.debug("DexScreener: пара {addr} недоступна: {error}", addr=address, error=str(exc))
            return None
        except Exception as exc:  # noqa: BLE001
            logger.exception("DexScreener: не удалось разобрать пару {addr}: {error}", addr=address, error=exc)
            return None

    async def close(self) -> None:
        clients: list[UpstreamClient] = [*self._sources, self._moralis, self._dexscreener]
        for client in {id(client): client for client in clients}.values():
            await client.close()


__all__ = ["FetchResult", "TokenFetcher"]
