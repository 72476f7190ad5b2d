"""Обогащение токенов off-chain метаданными по URI (IPFS/Arweave).

Порядок: сам URI, затем зеркала IPFS с тем же CID. На 429 ждём
backoff_base * 2**attempt и повторяем до max_attempts, на прочие ошибки сразу
переходим к следующему зеркалу. Ничего не кидаем наружу: неудача означает,
что токен подберёт фоновая задача повторного обогащения.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable
from urllib.parse import urlsplit

import aiohttp
from loguru import logger

from config.settings import EnrichmentSettings
from .candidates import TokenMetadata
from .sources import RateLimitedError, UpstreamClient, UpstreamError

SleepFunc = Callable[[float], Awaitable[Any]]


def extract_cid(uri: str) -> str | None:
    """CID (с хвостом пути) из ipfs://... или https://host/ipfs/..."""

    if uri.startswith("ipfs://"):
        cid = uri[len("ipfs://"):]
        if cid.startswith("ipfs/"):
            cid = cid[len("ipfs/"):]
        return cid or None
    path = urlsplit(uri).path
    marker = "/ipfs/"
    if marker in path:
        cid = path.split(marker, 1)[1]
        return cid or None
    return None


class MetadataEnricher(UpstreamClient):
    name = "enrichment"

    def __init__(
        self,
        settings: EnrichmentSettings,
        *,
        sleep: SleepFunc = asyncio.sleep,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        super().__init__(
            timeout=settings.request_timeout,
            semaphore=asyncio.Semaphore(settings.max_concurrency),
            session=session,
        )
        self._gateways = [gateway.rstrip("/") + "/" for gateway in settings.gateways]
        self._max_attempts = settings.max_attempts
        self._backoff_base = settings.backoff_base_sec
        self._sleep = sleep

    def candidate_urls(self, uri: str) -> list[str]:
        urls: list[str] = []
        if uri.startswith(("http://", "https://")):
            urls.append(uri)
        cid = extract_cid(uri)
        if cid:
            urls.extend(f"{gateway}{cid}" for gateway in self._gateways)
        # сохраняем порядок, убираем дубли
        return list(dict.fromkeys(urls))

    async def enrich(self, uri: str | None) -> TokenMetadata | None:
        """Метаданные по URI или None, если все зеркала не ответили."""

        if not uri:
            return None
        urls = self.candidate_urls(uri)
        if not urls:
            logger.debug("Enrichment: неподдерживаемый URI {uri}", uri=uri)
            return None
        for url in urls:
            metadata = await self._fetch_with_backoff(url)
            if metadata is not None:
                return metadata
        logger.debug("Enrichment: ни одно зеркало не отдало {uri}", uri=uri)
        return None

    async def _fetch_with_backoff(self, url: str) -> TokenMetadata | None:
        for attempt in range(self._max_attempts):
            try:
                data = await self._get_json(url)
            except RateLimitedError:
                if attempt == self._max_attempts - 1:
                    logger.debug("Enrichment: 429 от {url}, попытки исчерпаны", url=url)
                    break
                delay = self._backoff_base * (2 ** attempt)
                logger.debug(
                    "Enrichment: 429 от {url}, повтор через {delay:.1f}s ({attempt}/{total})",
                    url=url,
                    delay=delay,
                    attempt=attempt + 1,
                    total=self._max_attempts,
                )
                await self._sleep(delay)
                continue
            except UpstreamError as exc:
                logger.debug("Enrichment: {url} недоступен: {error}", url=url, error=str(exc))
                return None
            metadata = TokenMetadata.from_document(data)
            if metadata is None or metadata.is_empty:
                logger.debug("Enrichment: {url} вернул пустой документ", url=url)
                return None
            return metadata
        return None


__all__ = ["MetadataEnricher", "extract_cid"]
