"""Подделки aiohttp-сессий и источников для тестов."""

from __future__ import annotations

from types import SimpleNamespace
from typing import Any, Dict, List

import aiohttp

from radar.services.pumpfun.fetcher import FetchResult


class FakeResponse:
    def __init__(self, payload: Any = None, *, status: int = 200, text: str = "", error: Exception | None = None):
        self._payload = payload
        self.status = status
        self._text = text
        self._error = error

    async def __aenter__(self) -> "FakeResponse":
        if self._error is not None:
            raise self._error
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        return None

    async def json(self, content_type: str | None = None) -> Any:
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload

    async def text(self) -> str:
        return self._text


class FakeSession:
    """routes: url -> ответ или список ответов (отдаются по очереди, последний повторяется)."""

    def __init__(self, routes: Dict[str, Any]):
        self._routes = routes
        self.calls: List[Dict[str, Any]] = []
        self.closed = False

    def get(self, url: str, *, params=None, headers=None, timeout=None) -> FakeResponse:
        self.calls.append({"url": url, "params": params or {}, "headers": headers or {}})
        response = self._routes.get(url)
        if response is None:
            return FakeResponse(status=404, text="not found")
        if isinstance(response, list):
            return response.pop(0) if len(response) > 1 else response[0]
        return response

    async def close(self) -> None:
        self.closed = True


class FakeWebSocket:
    def __init__(self, messages: List[Any]):
        self._messages = messages
        self.sent: List[Any] = []

    async def __aenter__(self) -> "FakeWebSocket":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        return None

    async def send_json(self, data: Any) -> None:
        self.sent.append(data)

    def exception(self) -> Exception | None:
        return None

    async def __aiter__(self):
        for message in self._messages:
            yield message


class FakeWsSession:
    def __init__(self, ws: FakeWebSocket | None = None, error: Exception | None = None):
        self.ws = ws
        self._error = error
        self.closed = False
        self.urls: List[str] = []

    def ws_connect(self, url: str, **kwargs: Any) -> FakeWebSocket:
        self.urls.append(url)
        if self._error is not None:
            raise self._error
        return self.ws

    async def close(self) -> None:
        self.closed = True


def text_message(data: str) -> SimpleNamespace:
    return SimpleNamespace(type=aiohttp.WSMsgType.TEXT, data=data)


def close_message() -> SimpleNamespace:
    return SimpleNamespace(type=aiohttp.WSMsgType.CLOSE, data=None)


class FakeDexScreener:
    def __init__(self, trending=None):
        self.trending = trending or []
        self.filters = None

    async def discover_trending(self, filters=None):
        self.filters = filters
        return list(self.trending)[: filters.limit if filters else None]


class FakeFetcher:
    def __init__(self, candidates=None, *, single=None, error: Exception | None = None, trending=None):
        self.candidates = list(candidates or [])
        self.single = dict(single or {})
        self.error = error
        self.dexscreener = FakeDexScreener(trending)
        self.closed = False

    @property
    def source_names(self) -> list[str]:
        return ["fake"]

    async def fetch_latest(self) -> FetchResult:
        if self.error is not None:
            raise self.error
        return FetchResult(source="fake", candidates=list(self.candidates))

    async def fetch_one(self, address: str):
        return self.single.get(address)

    async def close(self) -> None:
        self.closed = True


class FakeEnricher:
    def __init__(self, documents=None):
        self.documents = dict(documents or {})
        self.requested: List[str] = []

    async def enrich(self, uri):
        self.requested.append(uri)
        return self.documents.get(uri)

    async def close(self) -> None:
        return None
