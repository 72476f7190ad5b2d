"""Проверка bearer-токенов внешнего провайдера авторизации (JWKS)."""

from __future__ import annotations

from functools import lru_cache
from typing import Any, Dict

import jwt
from jwt import InvalidTokenError, PyJWKClient, PyJWKClientError

from config.settings import AuthSettings


class AuthNotConfigured(RuntimeError):
    """auth.jwks_url не задан: эндпоинты с авторизацией недоступны."""


@lru_cache(maxsize=4)
def _jwk_client(jwks_url: str) -> PyJWKClient:
    return PyJWKClient(jwks_url, cache_keys=True)


def decode_access_token(token: str, settings: AuthSettings) -> Dict[str, Any]:
    """Валидирует подпись и claims, возвращает payload."""

    if not settings.enabled:
        raise AuthNotConfigured("Авторизация не настроена")
    try:
        signing_key = _jwk_client(str(settings.jwks_url)).get_signing_key_from_jwt(token)
        payload = jwt.decode(
            token,
            signing_key.key,
            algorithms=settings.algorithms,
            audience=settings.audience,
            issuer=settings.issuer,
            options={"verify_aud": settings.audience is not None},
        )
    except (InvalidTokenError, PyJWKClientError) as exc:
        raise ValueError("Недействительный токен доступа") from exc
    return payload


__all__ = ["AuthNotConfigured", "decode_access_token"]
