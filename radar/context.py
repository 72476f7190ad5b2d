"""Сборка сервисов MemeRadar с явными зависимостями (без глобального состояния)."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker
from sqlmodel.ext.asyncio.session import AsyncSession

from config.settings import AppSettings, get_settings
from radar.middlewares import create_engine, create_session_maker
from radar.services.pumpfun.enrichment import MetadataEnricher
from radar.services.pumpfun.fetcher import TokenFetcher
from radar.services.pumpfun.moralis import MoralisClient
from radar.services.pumpfun.pricing import BondingCurvePricer
from radar.services.pumpfun.pumpportal import PumpPortalSource
from radar.services.pumpfun.sources import DexScreenerSource, PumpFunApiSource, UpstreamClient
from radar.services.pumpfun.token_service import TokenDataService
from radar.services.scheduler import TokenScheduler
from radar.utils.cache import configure_cache


@dataclass
class AppContext:
    settings: AppSettings
    engine: AsyncEngine
    session_maker: async_sessionmaker[AsyncSession]
    fetcher: TokenFetcher
    enricher: MetadataEnricher
    service: TokenDataService
    scheduler: TokenScheduler

    async def close(self) -> None:
        await self.scheduler.stop()
        await self.fetcher.close()
        await self.enricher.close()
        await self.engine.dispose()
        logger.info("MemeRadar: соединения закрыты")


def build_sources(
    settings: AppSettings,
    pricer: BondingCurvePricer,
    dexscreener: DexScreenerSource,
    semaphore: asyncio.Semaphore,
) -> list[UpstreamClient]:
    upstream = settings.upstream
    available: dict[str, UpstreamClient] = {
        "pumpfun": PumpFunApiSource(
            str(upstream.pumpfun_api_url),
            pricer,
            limit=upstream.page_limit,
            timeout=upstream.request_timeout,
            semaphore=semaphore,
        ),
        "pumpportal": PumpPortalSource(
            str(upstream.pumpportal_ws_url),
            pricer,
            session_timeout=upstream.ws_session_timeout,
            max_tokens=upstream.ws_max_tokens,
            timeout=upstream.request_timeout,
            semaphore=semaphore,
        ),
        "dexscreener": dexscreener,
    }
    return [available[name] for name in dict.fromkeys(upstream.source_order)]


def build_context(settings: AppSettings | None = None) -> AppContext:
    settings = settings or get_settings()
    configure_cache(settings.cache)
    upstream = settings.upstream
    semaphore = asyncio.Semaphore(upstream.max_concurrency)

    engine = create_engine(settings.database)
    session_maker = create_session_maker(engine)
    pricer = BondingCurvePricer(settings.pricing)
    dexscreener = DexScreenerSource(
        str(upstream.dexscreener_url),
        limit=upstream.page_limit,
        timeout=upstream.request_timeout,
        semaphore=semaphore,
    )
    api_key = upstream.moralis_api_key.get_secret_value() if upstream.moralis_api_key else None
    moralis = MoralisClient(
        str(upstream.moralis_base_url),
        api_key,
        timeout=upstream.request_timeout,
        semaphore=semaphore,
    )
    fetcher = TokenFetcher(
        build_sources(settings, pricer, dexscreener, semaphore),
        moralis=moralis,
        dexscreener=dexscreener,
        pricer=pricer,
    )
    enricher = MetadataEnricher(settings.enrichment)
    service = TokenDataService(session_maker, fetcher, enricher, settings)
    scheduler = TokenScheduler(service, settings.scheduler)
    logger.debug(
        "Контекст собран: источники={sources}, moralis={moralis}",
        sources=", ".join(fetcher.source_names),
        moralis="on" if moralis.enabled else "off",
    )
    return AppContext(
        settings=settings,
        engine=engine,
        session_maker=session_maker,
        fetcher=fetcher,
        enricher=enricher,
        service=service,
        scheduler=scheduler,
    )


__all__ = ["AppContext", "build_context", "build_sources"]
