"""Репозитории для работы с БД."""

from .token_repo import (
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
    resolve_sort,
    update_enrichment,
    upsert_token,
)

__all__ = [
    "CleanupResult",
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
