"""Фасад над fetcher/репозиторием/скорингом, которым пользуются HTTP и планировщик."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker
from sqlmodel.ext.asyncio.session import AsyncSession

from config.settings import AppSettings
from radar.models import Token, utcnow
from radar.repositories import (
    CleanupResult,
    TokenPage,
    count_tokens,
    create_token_if_absent,
    delete_stale_tokens,
    get_token_by_address,
    list_filtered_tokens,
    list_missing_enrichment,
    list_recent_tokens,
    list_tokens,
    list_top_by_volume,
    update_enrichment,
    upsert_token,
)
from radar.utils.cache import cached_call, invalidate
from .candidates import TokenCandidate
from .enrichment import MetadataEnricher
from .fetcher import TokenFetcher
from .patterns import PatternAnalyzer, TokenAnalysis
from .scoring import Recommendation, TokenMetrics, TokenScore, TokenScorer, signal_value
from .sources import FILTER_PRESETS, DiscoveryFilters, UpstreamError

ANALYSIS_CACHE_KEY = "radar:analysis:aggregate"
ANALYSIS_SAMPLE_SIZE = 500
PATTERN_SAMPLE_SIZE = 50
TRENDING_VOLUME_USD = 1_000_000
HIGH_VOLUME_USD = 500_000
HIGH_RISK_SCORE = 70


@dataclass(slots=True)
class RefreshResult:
    source: str | None
    fetched: int = 0
    saved: int = 0
    skipped: int = 0
    enriched: int = 0
    failures: dict[str, str] = field(default_factory=dict)
    finished_at: datetime = field(default_factory=utcnow)


@dataclass(slots=True)
class DiscoverResult:
    added: int
    total: int


@dataclass(slots=True)
class TokenSnapshot:
    """Токен с подмешанными живыми значениями; в БД не пишется."""

    address: str
    price_usd: float
    market_cap: float
    volume_24h: float
    created_at: datetime
    exchange: str | None = None


@dataclass(slots=True)
class TokenDetails:
    token: Token
    snapshot: TokenSnapshot
    score: TokenScore
    metrics: TokenMetrics
    price_history: list[dict[str, Any]]
    insights: dict[str, Any]
    seed: int


class TokenDataService:
    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        fetcher: TokenFetcher,
        enricher: MetadataEnricher,
        settings: AppSettings,
        *,
        scorer: TokenScorer | None = None,
        analyzer: PatternAnalyzer | None = None,
    ) -> None:
        self._session_maker = session_maker
        self._fetcher = fetcher
        self._enricher = enricher
        self._settings = settings
        self.scorer = scorer or TokenScorer()
        self.analyzer = analyzer or PatternAnalyzer()

    # ------------------------------------------------------------------ ingest

    async def refresh(self) -> RefreshResult:
        """Один цикл: забрать ленту, сохранить, догрузить метаданные новым."""

        fetched = await self._fetcher.fetch_latest()
        result = RefreshResult(
            source=fetched.source,
            fetched=len(fetched.candidates),
            failures=fetched.failures,
        )
        to_enrich: list[tuple[str, str]] = []
        async with self._session_maker() as session:
            for candidate in fetched.candidates:
                try:
                    token = await upsert_token(session, candidate)
                except SQLAlchemyError as exc:
                    await session.rollback()
                    logger.warning(
                        "Не удалось сохранить {addr}: {error}",
                        addr=candidate.address,
                        error=str(exc),
                    )
                    token = None
                if token is None:
                    result.skipped += 1
                    continue
                result.saved += 1
                if token.uri and not token.image_url:
                    to_enrich.append((token.address, token.uri))

        if to_enrich:
            result.enriched = await self._enrich(to_enrich)
        await invalidate(ANALYSIS_CACHE_KEY)
        logger.info(
            "Обновление завершено: источник={source} получено={fetched} сохранено={saved} "
            "пропущено={skipped} обогащено={enriched}",
            source=result.source or "-",
            fetched=result.fetched,
            saved=result.saved,
            skipped=result.skipped,
            enriched=result.enriched,
        )
        return result

    async def discover(self) -> DiscoverResult:
        """Добавляет seed-токены и трендовые пары DexScreener, существующие не трогает."""

        discovery = self._settings.discovery
        seeds = discovery.seed_tokens
        live = await asyncio.gather(
            *(self._fetch_one_quietly(seed.address) for seed in seeds)
        )
        candidates: list[TokenCandidate] = []
        for seed, fresh in zip(seeds, live):
            candidate = fresh or TokenCandidate(address=seed.address, name=seed.name, symbol=seed.symbol)
            candidate.description = candidate.description or seed.description
            candidate.source = candidate.source if fresh else "seed"
            candidates.append(candidate)

        if discovery.include_trending:
            try:
                trending = await self._fetcher.dexscreener.discover_trending(
                    DiscoveryFilters(limit=discovery.trending_limit)
                )
            except UpstreamError as exc:
                logger.warning("Тренды DexScreener недоступны: {error}", error=str(exc))
                trending = []
            candidates.extend(candidate for candidate, _ in trending)

        added = 0
        async with self._session_maker() as session:
            for candidate in candidates:
                if await create_token_if_absent(session, candidate):
                    added += 1
        if added:
            await invalidate(ANALYSIS_CACHE_KEY)
        logger.info("Discover: добавлено {added} из {total}", added=added, total=len(candidates))
        return DiscoverResult(added=added, total=len(candidates))

    async def cleanup(self, now: datetime | None = None) -> CleanupResult:
        thresholds = self._settings.cleanup
        async with self._session_maker() as session:
            result = await delete_stale_tokens(
                session,
                max_age=timedelta(hours=thresholds.max_age_hours),
                missing_enrichment_age=timedelta(hours=thresholds.missing_enrichment_age_hours),
                zero_market_cap_age=timedelta(hours=thresholds.zero_market_cap_age_hours),
                now=now,
            )
        await invalidate(ANALYSIS_CACHE_KEY)
        logger.info(
            "Очистка: удалено {total} (старые={expired}, без метаданных={missing}, нулевой mcap={zero})",
            total=result.total,
            expired=result.expired,
            missing=result.missing_enrichment,
            zero=result.zero_market_cap,
        )
        return result

    async def reprocess_missing_images(self) -> int:
        async with self._session_maker() as session:
            tokens = await list_missing_enrichment(
                session, limit=self._settings.enrichment.reprocess_batch_size
            )
        pending = [(token.address, token.uri) for token in tokens if token.uri]
        if not pending:
            return 0
        enriched = await self._enrich(pending)
        logger.info(
            "Повторное обогащение: {enriched} из {total}",
            enriched=enriched,
            total=len(pending),
        )
        return enriched

    async def _enrich(self, items: list[tuple[str, str]]) -> int:
        # сеть параллельно (семафор внутри enricher), запись в БД последовательно
        documents = await asyncio.gather(*(self._enricher.enrich(uri) for _, uri in items))
        enriched = 0
        async with self._session_maker() as session:
            for (address, _), metadata in zip(items, documents):
                if metadata is None:
                    continue
                token = await update_enrichment(session, address, metadata)
                if token is not None and token.image_url:
                    enriched += 1
        return enriched

    async def _fetch_one_quietly(self, address: str) -> TokenCandidate | None:
        try:
            return await self._fetcher.fetch_one(address)
        except UpstreamError as exc:
            logger.debug("Живые данные {addr} недоступны: {error}", addr=address, error=str(exc))
            return None

    # ------------------------------------------------------------------- reads

    def clamp_limit(self, limit: int | None) -> int:
        api = self._settings.api
        if not limit or limit < 1:
            return api.default_page_size
        return min(limit, api.max_page_size)

    async def list_tokens(
        self,
        *,
        page: int = 1,
        limit: int | None = None,
        sort_by: str | None = None,
        sort_order: str | None = None,
    ) -> TokenPage:
        async with self._session_maker() as session:
            return await list_tokens(
                session,
                page=max(page, 1),
                limit=self.clamp_limit(limit),
                sort_by=sort_by,
                sort_order=sort_order,
            )

    async def get_token(self, address: str) -> Token | None:
        async with self._session_maker() as session:
            return await get_token_by_address(session, address)

    async def recent_tokens(self, limit: int | None = None) -> list[Token]:
        async with self._session_maker() as session:
            return await list_recent_tokens(session, limit=self.clamp_limit(limit))

    async def top_by_volume(self, limit: int | None = None) -> list[Token]:
        async with self._session_maker() as session:
            return await list_top_by_volume(session, limit=self.clamp_limit(limit))

    async def filter_tokens(
        self,
        *,
        min_price: float | None = None,
        max_price: float | None = None,
        sort_by: str | None = None,
        sort_order: str | None = None,
        limit: int | None = None,
    ) -> list[Token]:
        async with self._session_maker() as session:
            return await list_filtered_tokens(
                session,
                min_price=min_price,
                max_price=max_price,
                sort_by=sort_by,
                sort_order=sort_order,
                limit=self.clamp_limit(limit),
            )

    async def discover_trending(
        self, preset: str | None = None
    ) -> tuple[list[tuple[TokenCandidate, float]], DiscoveryFilters]:
        name = preset or "trending"
        filters = FILTER_PRESETS.get(name)
        if filters is None:
            raise ValueError(f"Неизвестный пресет {name!r}, доступны: {', '.join(FILTER_PRESETS)}")
        return await self._fetcher.dexscreener.discover_trending(filters), filters

    async def get_details(self, address: str, now: datetime | None = None) -> TokenDetails | None:
        """Карточка токена: БД + живые цена/объём (best effort) + скоринг и заглушки."""

        token = await self.get_token(address)
        if token is None:
            return None
        now = now or utcnow()
        live = await self._fetch_one_quietly(address)
        snapshot = TokenSnapshot(
            address=token.address,
            price_usd=(live.price_usd if live else 0.0) or token.price_usd,
            market_cap=(live.market_cap if live else 0.0) or token.market_cap,
            volume_24h=(live.volume_24h if live else 0.0) or token.volume_24h,
            created_at=token.created_at,
            exchange=live.source if live else None,
        )
        seed = self.scorer.seed_for(address, now)
        metrics = self.scorer.simulate_metrics(snapshot, seed)
        score = self.scorer.score(snapshot, now)
        insights = {
            "isNewToken": self.scorer.is_new_listing(snapshot, now),
            "isTrending": snapshot.volume_24h > TRENDING_VOLUME_USD,
            "hasHighVolume": snapshot.volume_24h > HIGH_VOLUME_USD,
            "priceAction": self.scorer.price_action(signal_value(metrics.price_change_24h, 0.0)),
            "recommendation": score.recommendation.value,
        }
        return TokenDetails(
            token=token,
            snapshot=snapshot,
            score=score,
            metrics=metrics,
            price_history=self.scorer.simulate_price_history(snapshot.price_usd, 24, seed, now),
            insights=insights,
            seed=seed,
        )

    async def analyze(self) -> dict[str, Any]:
        return await cached_call(
            ANALYSIS_CACHE_KEY, self._settings.cache.ttl_seconds, self._build_analysis
        )

    async def _build_analysis(self) -> dict[str, Any]:
        now = utcnow()
        async with self._session_maker() as session:
            total = await count_tokens(session)
            page = await list_tokens(
                session, page=1, limit=ANALYSIS_SAMPLE_SIZE, sort_by="volume24h", sort_order="desc"
            )
        tokens = page.items
        scores = [(token, self.scorer.score(token, now)) for token in tokens]
        recommendations = {item.value: 0 for item in Recommendation}
        for _, score in scores:
            recommendations[score.recommendation.value] += 1

        # изменение цены у нас только симулированное, это видно в ответе
        gainers = []
        for token in tokens:
            seed = self.scorer.seed_for(token.address, now)
            change = signal_value(self.scorer.simulate_metrics(token, seed).price_change_24h, 0.0)
            gainers.append((token, change, seed))
        gainers.sort(key=lambda item: item[1], reverse=True)

        return {
            "totalTokens": total,
            "sampleSize": len(tokens),
            "averagePrice": sum(token.price_usd for token in tokens) / len(tokens) if tokens else 0.0,
            "totalVolume24h": sum(token.volume_24h for token in tokens),
            "totalMarketCap": sum(token.market_cap for token in tokens),
            "highRiskCount": sum(1 for _, score in scores if score.risk_score >= HIGH_RISK_SCORE),
            "trending": [
                {"address": token.address, "symbol": token.symbol, "volume24h": token.volume_24h}
                for token in tokens
                if token.volume_24h > TRENDING_VOLUME_USD
            ][:10],
            "topGainers": [
                {
                    "address": token.address,
                    "symbol": token.symbol,
                    "priceChange24h": {"value": change, "simulated": True, "seed": seed},
                }
                for token, change, seed in gainers[:5]
            ],
            "recommendations": recommendations,
            "generatedAt": now.isoformat(),
        }

    # ---------------------------------------------------------------- patterns

    async def analyze_patterns(self, address: str | None = None) -> list[TokenAnalysis]:
        async with self._session_maker() as session:
            if address:
                token = await get_token_by_address(session, address)
                tokens = [token] if token is not None else []
            else:
                tokens = await list_recent_tokens(session, limit=PATTERN_SAMPLE_SIZE)
        analyses = self.analyzer.analyze_many(tokens)
        logger.debug("Анализ паттернов для {count} токенов", count=len(analyses))
        return analyses

    async def analyze_token(self, address: str) -> TokenAnalysis | None:
        analyses = await self.analyze_patterns(address)
        return analyses[0] if analyses else None

    async def high_potential_tokens(self) -> list[TokenAnalysis]:
        return self.analyzer.high_potential(await self.analyze_patterns())

    async def risky_tokens(self) -> list[TokenAnalysis]:
        return self.analyzer.risky(await self.analyze_patterns())


__all__ = [
    "DiscoverResult",
    "RefreshResult",
    "TokenDataService",
    "TokenDetails",
    "TokenSnapshot",
]
