"""Работа с таблицей tokens: upsert, пагинация, очистка устаревших записей."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any, Optional, Sequence

from loguru import logger
from sqlalchemy import delete, func, or_
from sqlalchemy.exc import IntegrityError
from sqlmodel import col, select
from sqlmodel.ext.asyncio.session import AsyncSession

from radar.models import ENRICHMENT_FIELDS, Token, utcnow

if TYPE_CHECKING:
    from radar.services.pumpfun.candidates import TokenCandidate, TokenMetadata

# Внешнее имя (API, camelCase) -> колонка. snake_case тоже принимаем.
SORT_FIELDS: dict[str, str] = {
    "createdAt": "created_at",
    "updatedAt": "updated_at",
    "volume24h": "volume_24h",
    "marketCap": "market_cap",
    "priceUsd": "price_usd",
    "name": "name",
    "symbol": "symbol",
}
SORT_FIELDS.update({column: column for column in list(SORT_FIELDS.values())})
DEFAULT_SORT_FIELD = "created_at"
DEFAULT_SORT_ORDER = "desc"


@dataclass(slots=True)
class TokenPage:
    items: list[Token]
    page: int
    limit: int
    total: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_previous(self) -> bool:
        return self.page > 1

    def pagination(self) -> dict[str, Any]:
        return {
            "page": self.page,
            "limit": self.limit,
            "total": self.total,
            "totalPages": self.total_pages,
            "hasNext": self.has_next,
            "hasPrevious": self.has_previous,
        }


@dataclass(slots=True)
class CleanupResult:
    """Сколько строк удалил каждый предикат очистки."""

    expired: int = 0
    missing_enrichment: int = 0
    zero_market_cap: int = 0
    finished_at: datetime = field(default_factory=utcnow)

    @property
    def total(self) -> int:
        return self.expired + self.missing_enrichment + self.zero_market_cap

    def as_dict(self) -> dict[str, int]:
        return {
            "expired": self.expired,
            "missingEnrichment": self.missing_enrichment,
            "zeroMarketCap": self.zero_market_cap,
            "total": self.total,
        }


def resolve_sort(sort_by: str | None, sort_order: str | None) -> tuple[str, str]:
    """Поле вне allow-list откатывается к createdAt desc."""

    column = SORT_FIELDS.get(sort_by or "")
    if column is None:
        return DEFAULT_SORT_FIELD, DEFAULT_SORT_ORDER
    order = (sort_order or "").lower()
    if order not in {"asc", "desc"}:
        order = DEFAULT_SORT_ORDER
    return column, order


def _order_clause(column: str, order: str):
    attr = col(getattr(Token, column))
    tie_breaker = col(Token.id)
    if order == "asc":
        return attr.asc(), tie_breaker.asc()
    return attr.desc(), tie_breaker.desc()


async def get_token_by_address(session: AsyncSession, address: str) -> Optional[Token]:
    stmt = select(Token).where(Token.address == address)
    result = await session.exec(stmt)
    return result.one_or_none()


async def upsert_token(
    session: AsyncSession,
    candidate: "TokenCandidate",
    *,
    now: datetime | None = None,
) -> Optional[Token]:
    """Создаёт токен или обновляет снапшот существующего.

    Цена/объём/капитализация перезаписываются всегда, поля обогащения только
    если пришло непустое значение. Невалидный кандидат не сохраняется.
    """

    error = candidate.validation_error()
    if error:
        logger.debug(
            "Кандидат {addr} отклонён валидацией: {error}",
            addr=candidate.address or "<empty>",
            error=error,
        )
        return None
    now = now or utcnow()
    token = await get_token_by_address(session, candidate.address)
    if token is None:
        token = _build_token(candidate, now)
        session.add(token)
        try:
            await session.commit()
        except IntegrityError:
            # Параллельный цикл успел вставить тот же адрес: обновляем его строку.
            await session.rollback()
            token = await get_token_by_address(session, candidate.address)
            if token is None:
                raise
            _apply_candidate(token, candidate, now)
            session.add(token)
            await session.commit()
    else:
        _apply_candidate(token, candidate, now)
        session.add(token)
        await session.commit()
    await session.refresh(token)
    return token


async def create_token_if_absent(
    session: AsyncSession,
    candidate: "TokenCandidate",
    *,
    now: datetime | None = None,
) -> bool:
    """Вставляет кандидата только если адрес ещё не встречался."""

    if candidate.validation_error():
        return False
    if await get_token_by_address(session, candidate.address) is not None:
        return False
    session.add(_build_token(candidate, now or utcnow()))
    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        return False
    return True


async def update_enrichment(
    session: AsyncSession,
    address: str,
    metadata: "TokenMetadata",
) -> Optional[Token]:
    token = await get_token_by_address(session, address)
    if token is None:
        return None
    values = {
        "description": metadata.description,
        "image_url": metadata.image,
        "website": metadata.website,
        "twitter": metadata.twitter,
        "telegram": metadata.telegram,
    }
    changed = False
    for name, value in values.items():
        if value and getattr(token, name) != value:
            setattr(token, name, value)
            changed = True
    if not changed:
        return token
    token.touch()
    session.add(token)
    await session.commit()
    await session.refresh(token)
    return token


async def count_tokens(session: AsyncSession) -> int:
    result = await session.exec(select(func.count()).select_from(Token))
    return int(result.one())


async def list_tokens(
    session: AsyncSession,
    *,
    page: int = 1,
    limit: int = 20,
    sort_by: str | None = None,
    sort_order: str | None = None,
) -> TokenPage:
    page = max(page, 1)
    limit = max(limit, 1)
    column, order = resolve_sort(sort_by, sort_order)
    total = await count_tokens(session)
    stmt = (
        select(Token)
        .order_by(*_order_clause(column, order))
        .offset((page - 1) * limit)
        .limit(limit)
    )
    result = await session.exec(stmt)
    return TokenPage(items=list(result.all()), page=page, limit=limit, total=total)


async def list_recent_tokens(session: AsyncSession, limit: int = 50) -> list[Token]:
    stmt = select(Token).order_by(*_order_clause("updated_at", "desc")).limit(limit)
    result = await session.exec(stmt)
    return list(result.all())


async def list_top_by_volume(
    session: AsyncSession,
    *,
    limit: int = 20,
    min_volume: float = 1_000.0,
) -> list[Token]:
    stmt = (
        select(Token)
        .where(Token.volume_24h > min_volume)
        .order_by(col(Token.volume_24h).desc(), col(Token.market_cap).desc())
        .limit(limit)
    )
    result = await session.exec(stmt)
    return list(result.all())


async def list_filtered_tokens(
    session: AsyncSession,
    *,
    min_price: float | None = None,
    max_price: float | None = None,
    sort_by: str | None = None,
    sort_order: str | None = None,
    limit: int = 20,
) -> list[Token]:
    stmt = select(Token)
    if min_price is not None:
        stmt = stmt.where(Token.price_usd >= min_price)
    if max_price is not None:
        stmt = stmt.where(Token.price_usd <= max_price)
    if sort_by is None:
        column, order = "updated_at", "desc"
    else:
        column, order = resolve_sort(sort_by, sort_order)
    stmt = stmt.order_by(*_order_clause(column, order)).limit(limit)
    result = await session.exec(stmt)
    return list(result.all())


async def list_missing_enrichment(session: AsyncSession, limit: int = 25) -> list[Token]:
    """Токены с URI метаданных, но без картинки (кандидаты на повторное обогащение)."""

    stmt = (
        select(Token)
        .where(col(Token.uri).is_not(None), Token.uri != "")
        .where(or_(col(Token.image_url).is_(None), Token.image_url == ""))
        .order_by(col(Token.created_at).desc())
        .limit(limit)
    )
    result = await session.exec(stmt)
    return list(result.all())


async def delete_stale_tokens(
    session: AsyncSession,
    *,
    max_age: timedelta,
    missing_enrichment_age: timedelta,
    zero_market_cap_age: timedelta,
    now: datetime | None = None,
) -> CleanupResult:
    """Удаляет строки по трём предикатам возраста/качества.

    Строка учитывается в первом сработавшем предикате: сначала просто старые,
    затем старые без обогащения, затем с нулевой капитализацией.
    """

    now = now or utcnow()
    expired = await session.execute(delete(Token).where(Token.created_at < now - max_age))
    missing = await session.execute(
        delete(Token).where(
            Token.created_at < now - missing_enrichment_age,
            or_(col(Token.image_url).is_(None), Token.image_url == ""),
        )
    )
    zero_cap = await session.execute(
        delete(Token).where(
            Token.created_at < now - zero_market_cap_age,
            Token.market_cap <= 0,
        )
    )
    await session.commit()
    return CleanupResult(
        expired=max(expired.rowcount or 0, 0),
        missing_enrichment=max(missing.rowcount or 0, 0),
        zero_market_cap=max(zero_cap.rowcount or 0, 0),
        finished_at=now,
    )


def _build_token(candidate: "TokenCandidate", now: datetime) -> Token:
    token = Token(
        address=candidate.address.strip(),
        name=candidate.name.strip(),
        symbol=candidate.symbol.strip(),
        price_usd=float(candidate.price_usd),
        market_cap=float(candidate.market_cap),
        volume_24h=float(candidate.volume_24h),
        created_at=now,
        updated_at=now,
    )
    for name in ENRICHMENT_FIELDS:
        value = getattr(candidate, name)
        if value:
            setattr(token, name, value)
    return token


def _apply_candidate(token: Token, candidate: "TokenCandidate", now: datetime) -> None:
    token.name = candidate.name.strip() or token.name
    token.symbol = candidate.symbol.strip() or token.symbol
    token.price_usd = float(candidate.price_usd)
    token.market_cap = float(candidate.market_cap)
    token.volume_24h = float(candidate.volume_24h)
    for name in ENRICHMENT_FIELDS:
        value = getattr(candidate, name)
        if value:
            setattr(token, name, value)
    token.touch(now)


__all__ = [
    "CleanupResult",
    "SORT_FIELDS",
    "TokenPage",
    "count_tokens",
    "create_token_if_absent",
    "delete_stale_tokens",
    "get_token_by_address",
    "list_filtered_tokens",
    "list_missing_enrichment",
    "list_recent_tokens",
    "list_tokens",
    "list_top_by_volume",
    "resolve_sort",
    "update_enrichment",
    "upsert_token",
]
