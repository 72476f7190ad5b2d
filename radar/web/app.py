"""FastAPI backend дашборда MemeRadar."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import Any, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from loguru import logger

from radar.context import AppContext, build_context
from radar.middlewares import ErrorsMiddleware, init_db
from radar.models import utcnow
from radar.services.pumpfun.token_service import TokenDataService
from radar.utils.security import AuthNotConfigured, decode_access_token
from .schemas import (
    analysis_payload,
    candidate_payload,
    details_payload,
    token_payload,
    tokens_payload,
)

bearer_scheme = HTTPBearer(auto_error=False)

NOT_FOUND = {"success": False, "error": "Token not found"}


def get_context(request: Request) -> AppContext:
    return request.app.state.context


def get_service(request: Request) -> TokenDataService:
    return request.app.state.context.service


def create_app(context: AppContext | None = None, *, start_scheduler: bool = True) -> FastAPI:
    context = context or build_context()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await init_db(context.engine)
        if start_scheduler:
            await context.scheduler.start()
        logger.info("MemeRadar API запущен в окружении {env}", env=context.settings.environment)
        yield
        await context.close()

    app = FastAPI(title="MemeRadar API", lifespan=lifespan)
    app.state.context = context
    app.add_middleware(ErrorsMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=context.settings.api.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    _register_token_routes(app)
    _register_analysis_routes(app)
    _register_auth_routes(app)
    return app


def _register_token_routes(app: FastAPI) -> None:
    @app.get("/", response_class=PlainTextResponse)
    async def health() -> str:
        return "MemeRadar API is running"

    @app.get("/token-data")
    async def list_tokens(
        page: int = Query(1),
        limit: Optional[int] = Query(None),
        sort_by: Optional[str] = Query(None, alias="sortBy"),
        sort_order: Optional[str] = Query(None, alias="sortOrder"),
        service: TokenDataService = Depends(get_service),
    ) -> dict[str, Any]:
        result = await service.list_tokens(page=page, limit=limit, sort_by=sort_by, sort_order=sort_order)
        return {"tokens": tokens_payload(result.items), "pagination": result.pagination()}

    @app.get("/token-data/top-volume")
    async def top_volume(
        limit: Optional[int] = Query(None),
        service: TokenDataService = Depends(get_service),
    ) -> dict[str, Any]:
        return {"success": True, "data": tokens_payload(await service.top_by_volume(limit))}

    @app.get("/token-data/filter")
    async def filter_tokens(
        min_price: Optional[float] = Query(None, alias="minPrice"),
        max_price: Optional[float] = Query(None, alias="maxPrice"),
        sort_by: Optional[str] = Query(None, alias="sortBy"),
        sort_order: Optional[str] = Query(None, alias="sortOrder"),
        limit: Optional[int] = Query(None),
        service: TokenDataService = Depends(get_service),
    ) -> dict[str, Any]:
        tokens = await service.filter_tokens(
            min_price=min_price,
            max_price=max_price,
            sort_by=sort_by,
            sort_order=sort_order,
            limit=limit,
        )
        return {"success": True, "data": tokens_payload(tokens)}

    @app.get("/token-data/pumpfun/tokens")
    async def pumpfun_tokens(
        limit: Optional[int] = Query(None),
        service: TokenDataService = Depends(get_service),
    ) -> dict[str, Any]:
        tokens = await service.recent_tokens(limit)
        return {"success": True, "data": tokens_payload(tokens), "count": len(tokens)}

    @app.get("/token-data/pumpfun/analysis")
    @app.get("/token-data/analysis/all")
    async def aggregate_analysis(service: TokenDataService = Depends(get_service)) -> dict[str, Any]:
        return {"success": True, "data": await service.analyze()}

    @app.get("/token-data/discover/trending")
    async def trending(
        preset: Optional[str] = Query(None),
        service: TokenDataService = Depends(get_service),
    ) -> dict[str, Any]:
        items, filters = await service.discover_trending(preset)
        return {
            "success": True,
            "tokens": [candidate_payload(candidate, change) for candidate, change in items],
            "filters": filters.as_dict(),
        }

    @app.post("/token-data/refresh")
    @app.post("/token-data/update")
    @app.post("/token-data/pumpfun/refresh")
    async def refresh(service: TokenDataService = Depends(get_service)) -> dict[str, Any]:
        result = await service.refresh()
        return {
            "success": True,
            "timestamp": result.finished_at.isoformat(),
            "source": result.source,
            "fetched": result.fetched,
            "saved": result.saved,
            "skipped": result.skipped,
            "enriched": result.enriched,
        }

    @app.post("/token-data/discover")
    @app.post("/token-data/expand/popular")
    @app.post("/token-data/pumpfun/discover")
    async def discover(service: TokenDataService = Depends(get_service)) -> dict[str, Any]:
        result = await service.discover()
        return {"success": True, "added": result.added, "total": result.total}

    @app.post("/cleanup")
    async def cleanup(service: TokenDataService = Depends(get_service)) -> dict[str, Any]:
        result = await service.cleanup()
        return {
            "success": True,
            "timestamp": result.finished_at.isoformat(),
            "deleted": result.as_dict(),
        }

    @app.post("/token-data/reprocess-images")
    async def reprocess_images(service: TokenDataService = Depends(get_service)) -> dict[str, Any]:
        return {"success": True, "enriched": await service.reprocess_missing_images()}

    @app.get("/token-data/{address}")
    async def get_token(address: str, service: TokenDataService = Depends(get_service)) -> dict[str, Any]:
        token = await service.get_token(address)
        if token is None:
            return {**NOT_FOUND, "data": None}
        return {"success": True, "data": token_payload(token)}

    @app.get("/token-data/{address}/details")
    async def token_details(address: str, service: TokenDataService = Depends(get_service)) -> dict[str, Any]:
        details = await service.get_details(address)
        if details is None:
            return dict(NOT_FOUND)
        return {"success": True, "data": details_payload(details)}


def _register_analysis_routes(app: FastAPI) -> None:
    @app.get("/analysis/patterns")
    async def patterns(
        address: Optional[str] = Query(None),
        service: TokenDataService = Depends(get_service),
    ) -> dict[str, Any]:
        analyses = await service.analyze_patterns(address)
        return {
            "success": True,
            "data": [analysis_payload(item) for item in analyses],
            "count": len(analyses),
        }

    @app.get("/analysis/high-potential")
    async def high_potential(service: TokenDataService = Depends(get_service)) -> dict[str, Any]:
        analyses = await service.high_potential_tokens()
        return {"success": True, "data": [analysis_payload(item) for item in analyses], "count": len(analyses)}

    @app.get("/analysis/risky")
    async def risky(service: TokenDataService = Depends(get_service)) -> dict[str, Any]:
        analyses = await service.risky_tokens()
        return {"success": True, "data": [analysis_payload(item) for item in analyses], "count": len(analyses)}

    @app.get("/analysis/token/{address}")
    async def analyze_token(address: str, service: TokenDataService = Depends(get_service)) -> dict[str, Any]:
        analysis = await service.analyze_token(address)
        if analysis is None:
            return dict(NOT_FOUND)
        return {"success": True, "data": analysis_payload(analysis)}


def _register_auth_routes(app: FastAPI) -> None:
    @app.get("/profile")
    async def profile(
        credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
        context: AppContext = Depends(get_context),
    ) -> dict[str, Any]:
        auth = context.settings.auth
        if not auth.enabled:
            raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Auth is not configured")
        if credentials is None:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing bearer token")
        try:
            # PyJWKClient ходит за JWKS синхронно (urllib)
            claims = await asyncio.to_thread(decode_access_token, credentials.credentials, auth)
        except AuthNotConfigured as exc:
            raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
        except ValueError as exc:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc)) from exc
        return {"success": True, "user": claims, "checkedAt": utcnow().isoformat()}


__all__ = ["create_app", "get_context", "get_service"]
