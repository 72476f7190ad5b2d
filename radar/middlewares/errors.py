"""Глобальный перехват и логирование ошибок HTTP-слоя."""

from __future__ import annotations

from typing import Awaitable, Callable

from fastapi import Request
from fastapi.responses import JSONResponse
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response


class ErrorsMiddleware(BaseHTTPMiddleware):
    """Логирует исключения и отдаёт единый конверт {success: false, error}.

    Клиенты дашборда проверяют флаг success, а не HTTP-статус, поэтому
    необработанные ошибки эндпоинтов не превращаются в 5xx.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        try:
            return await call_next(request)
        except Exception as exc:  # noqa: BLE001
            logger.exception(
                "Ошибка при обработке {method} {path}: {error}",
                method=request.method,
                path=request.url.path,
                error=exc,
            )
            return JSONResponse({"success": False, "error": str(exc) or exc.__class__.__name__})


__all__ = ["ErrorsMiddleware"]
