"""Настройка aiocache и пара хелперов поверх него."""

from __future__ import annotations

from typing import Any, Awaitable, Callable
from urllib.parse import urlparse

from aiocache import SimpleMemoryCache, caches
from aiocache.base import BaseCache

try:
    from aiocache import RedisCache
except (ImportError, AttributeError):  # pragma: no cover - optional dependency
    RedisCache = None  # type: ignore[assignment]

from config.settings import CacheSettings

_configured = False


def configure_cache(settings: CacheSettings, *, force: bool = False) -> None:
    """Регистрирует алиас default (memory или redis) один раз на процесс."""

    global _configured
    if _configured and not force:
        return

    if settings.backend == "redis":
        if RedisCache is None:
            raise RuntimeError("Для cache.backend=redis установите aiocache[redis]")
        backend: dict[str, Any] = {"cache": RedisCache, **_redis_options(settings.redis_dsn)}
    else:
        backend = {"cache": SimpleMemoryCache}
    caches.set_config({"default": {**backend, "ttl": settings.ttl_seconds}})
    _configured = True


def get_cache(alias: str = "default") -> BaseCache:
    if not _configured:
        configure_cache(CacheSettings())
    return caches.get(alias)


async def cached_call(key: str, ttl: int, factory: Callable[[], Awaitable[Any]]) -> Any:
    """Значение из кеша, иначе результат factory (и кладём его в кеш)."""

    cache = get_cache()
    value = await cache.get(key)
    if value is not None:
        return value
    value = await factory()
    await cache.set(key, value, ttl=ttl)
    return value


async def invalidate(*keys: str) -> None:
    cache = get_cache()
    for key in keys:
        await cache.delete(key)


def _redis_options(dsn: str | None) -> dict[str, Any]:
    if not dsn:
        raise RuntimeError("cache.backend=redis, но cache.redis_dsn не указан")
    parsed = urlparse(dsn)
    if parsed.scheme not in {"redis", "rediss"}:
        raise ValueError(f"Неподдерживаемая схема Redis DSN: {parsed.scheme}")
    path = parsed.path.lstrip("/")
    return {
        "endpoint": parsed.hostname or "localhost",
        "port": parsed.port or 6379,
        "password": parsed.password,
        "db": int(path) if path.isdigit() else 0,
        "ssl": parsed.scheme == "rediss",
    }


__all__ = ["cached_call", "configure_cache", "get_cache", "invalidate"]
