"""Глобальные настройки MemeRadar.

Настройки разделены по доменам (API, база, внешние источники, обогащение,
планировщик, очистка и т.д.), чтобы новые источники данных подключались без
переписывания базового кода. Вся конфигурация загружается из переменных
окружения через Pydantic Settings, у каждой секции есть значения по умолчанию.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import (
    AnyHttpUrl,
    AnyUrl,
    BaseModel,
    Field,
    PositiveFloat,
    PositiveInt,
    SecretStr,
    field_validator,
    model_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parent.parent
ACCESSIBLE_ENV_FILE = BASE_DIR / "config" / "runtime.env"
DEFAULT_ENV_FILE = BASE_DIR / ".env"
ENV_FILE = ACCESSIBLE_ENV_FILE if ACCESSIBLE_ENV_FILE.exists() else DEFAULT_ENV_FILE


class ApiSettings(BaseModel):
    """HTTP API для дашборда."""

    host: str = "0.0.0.0"
    port: int = 3001
    cors_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:3000", "http://127.0.0.1:3000"],
        description="Разрешённые origin фронтенда",
    )
    default_page_size: PositiveInt = 20
    max_page_size: PositiveInt = 100


class CacheSettings(BaseModel):
    """Настройки кешей (aiocache поддерживает memory / redis)."""

    backend: Literal["memory", "redis"] = "memory"
    ttl_seconds: int = 60
    redis_dsn: str | None = None


class DatabaseSettings(BaseModel):
    """SQLModel + aiosqlite (по умолчанию) и готовность к Postgres."""

    dsn: str = Field(
        "sqlite+aiosqlite:///./database/memeradar.db",
        description="Строка подключения SQLAlchemy/SQLModel",
    )
    echo: bool = False


class UpstreamSettings(BaseModel):
    """Внешние источники цен, объёмов и метаданных."""

    moralis_api_key: SecretStr | None = Field(
        None, description="Ключ Moralis для точечных запросов цены/метаданных"
    )
    moralis_base_url: AnyHttpUrl = Field("https://solana-gateway.moralis.io")
    pumpfun_api_url: AnyHttpUrl = Field("https://frontend-api-v3.pump.fun")
    pumpportal_ws_url: AnyUrl = Field("wss://pumpportal.fun/api/data")
    dexscreener_url: AnyHttpUrl = Field("https://api.dexscreener.com")
    source_order: list[Literal["pumpfun", "pumpportal", "dexscreener"]] = Field(
        default_factory=lambda: ["pumpfun", "pumpportal", "dexscreener"],
        description="Порядок опроса источников: следующий пробуем, если предыдущий пуст/упал",
    )
    request_timeout: PositiveFloat = 10.0
    ws_session_timeout: PositiveFloat = 30.0
    ws_max_tokens: PositiveInt = 20
    page_limit: PositiveInt = 50
    max_concurrency: PositiveInt = 5

    @field_validator("moralis_api_key", mode="before")
    @classmethod
    def _empty_str_to_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value


class EnrichmentSettings(BaseModel):
    """Загрузка off-chain метаданных (картинка, соцсети, описание)."""

    gateways: list[str] = Field(
        default_factory=lambda: [
            "https://ipfs.io/ipfs/",
            "https://cloudflare-ipfs.com/ipfs/",
            "https://gateway.pinata.cloud/ipfs/",
            "https://dweb.link/ipfs/",
        ],
        description="Зеркала IPFS в порядке приоритета",
    )
    max_attempts: PositiveInt = 3
    backoff_base_sec: float = 1.0
    request_timeout: PositiveFloat = 5.0
    max_concurrency: PositiveInt = 3
    reprocess_batch_size: PositiveInt = 25


class PricingSettings(BaseModel):
    """Параметры приблизительной оценки цены по резервам bonding curve."""

    sol_reference_price_usd: PositiveFloat = 150.0
    total_supply: PositiveFloat = 1_000_000_000.0
    lamports_per_sol: PositiveInt = 1_000_000_000
    token_decimals: int = 6


class SchedulerSettings(BaseModel):
    """Интервалы фоновых задач."""

    enabled: bool = True
    refresh_interval_sec: PositiveInt = 600
    cleanup_interval_sec: PositiveInt = 86_400
    reprocess_interval_sec: PositiveInt = 1_800
    run_on_startup: bool = True


class CleanupSettings(BaseModel):
    """Пороги удаления устаревших токенов (в часах)."""

    max_age_hours: PositiveFloat = 168.0
    missing_enrichment_age_hours: PositiveFloat = 48.0
    zero_market_cap_age_hours: PositiveFloat = 12.0

    @model_validator(mode="after")
    def _ordered_thresholds(self) -> "CleanupSettings":
        if not (
            self.zero_market_cap_age_hours
            <= self.missing_enrichment_age_hours
            <= self.max_age_hours
        ):
            raise ValueError(
                "Пороги очистки должны идти по возрастанию: "
                "zero_market_cap_age_hours <= missing_enrichment_age_hours <= max_age_hours"
            )
        return self


class SeedToken(BaseModel):
    address: str
    name: str
    symbol: str
    description: str | None = None


class DiscoverySettings(BaseModel):
    """Дополнительный список токенов для ручного расширения базы."""

    include_trending: bool = True
    trending_limit: PositiveInt = 10
    seed_tokens: list[SeedToken] = Field(
        default_factory=lambda: [
            SeedToken(
                address="4k3Dyjzvzp8eMZWUXbBCjEvwSkkk59S5iCNLY3QrkX6R",
                name="Raydium",
                symbol="RAY",
                description="Automated market maker and liquidity provider on Solana",
            ),
            SeedToken(
                address="orcaEKTdK7LKz57vaAYr9QeNsVEPfiu6QeMU1kektZE",
                name="Orca",
                symbol="ORCA",
                description="User-friendly DEX on Solana",
            ),
            SeedToken(
                address="DezXAZ8z7PnrnRJjz3wXBoRgixCa6xjnB7YaB1pPB263",
                name="Bonk",
                symbol="BONK",
            ),
            SeedToken(
                address="HZ1JovNiVvGrGNiiYvEozEVgZ58xaU3RKwX8eACQBCt3",
                name="Pyth Network",
                symbol="PYTH",
            ),
            SeedToken(
                address="9BB6NFEcjBCtnNLFko2FqVQBq8HHM13kCyYcdQbgpump",
                name="PUMP Token",
                symbol="PUMP",
            ),
        ]
    )


class AuthSettings(BaseModel):
    """Проверка bearer JWT внешнего identity-провайдера (legacy маршруты)."""

    jwks_url: AnyHttpUrl | None = None
    audience: str | None = None
    issuer: str | None = None
    algorithms: list[str] = Field(default_factory=lambda: ["ES256", "RS256"])

    @property
    def enabled(self) -> bool:
        return self.jwks_url is not None


class AppSettings(BaseSettings):
    """Главный контейнер настроек MemeRadar."""

    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE),
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    environment: Literal["dev", "prod"] = "dev"
    api: ApiSettings = ApiSettings()
    cache: CacheSettings = CacheSettings()
    database: DatabaseSettings = DatabaseSettings()
    upstream: UpstreamSettings = UpstreamSettings()
    enrichment: EnrichmentSettings = EnrichmentSettings()
    pricing: PricingSettings = PricingSettings()
    scheduler: SchedulerSettings = SchedulerSettings()
    cleanup: CleanupSettings = CleanupSettings()
    discovery: DiscoverySettings = DiscoverySettings()
    auth: AuthSettings = AuthSettings()

    @property
    def is_production(self) -> bool:
        """True, если сервис запущен в продовой среде."""

        return self.environment == "prod"


# Ленивый синглтон (избегаем глобальных переменных в модулях).
_settings: AppSettings | None = None


def get_settings() -> AppSettings:
    """Возвращает единый экземпляр настроек.

    Значения кэшируются, поэтому .env читается ровно один раз за процесс.
    """

    global _settings
    if _settings is None:
        _settings = AppSettings()
    return _settings


__all__ = [
    "ApiSettings",
    "AppSettings",
    "AuthSettings",
    "CacheSettings",
    "CleanupSettings",
    "DatabaseSettings",
    "DiscoverySettings",
    "EnrichmentSettings",
    "PricingSettings",
    "SchedulerSettings",
    "SeedToken",
    "UpstreamSettings",
    "get_settings",
]
