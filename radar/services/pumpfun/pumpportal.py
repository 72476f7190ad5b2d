"""Real-time лента новых токенов PumpPortal через WebSocket.

Сессия короткая: подписываемся на subscribeNewToken, собираем события до
лимита или до таймаута сессии и отдаём то, что успели собрать. Переподключений
нет: следующий цикл планировщика просто откроет новую сессию.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any

import aiohttp
from loguru import logger

from .candidates import TokenCandidate, to_float
from .pricing import BondingCurvePricer
from .sources import UpstreamClient, UpstreamError


class PumpPortalSource(UpstreamClient):
    name = "pumpportal"

    def __init__(
        self,
        ws_url: str,
        pricer: BondingCurvePricer,
        *,
        session_timeout: float = 30.0,
        max_tokens: int = 20,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self._ws_url = ws_url
        self._pricer = pricer
        self._session_timeout = session_timeout
        self._max_tokens = max_tokens

    async def fetch_latest(self) -> list[TokenCandidate]:
        """Собирает новые токены за одну WS-сессию; пустая сессия считается ошибкой."""

        session = await self._ensure_session()
        collected: dict[str, TokenCandidate] = {}
        try:
            await asyncio.wait_for(self._listen(session, collected), timeout=self._session_timeout)
        except asyncio.TimeoutError:
            logger.debug(
                "PumpPortal: сессия закрыта по таймауту {timeout}s, собрано {count}",
                timeout=self._session_timeout,
                count=len(collected),
            )
        except (aiohttp.ClientError, UpstreamError) as exc:
            if not collected:
                raise UpstreamError(f"pumpportal: WS недоступен: {exc!r}") from exc
            logger.warning(
                "PumpPortal: WS оборвался ({error}), отдаём частичный результат {count}",
                error=str(exc),
                count=len(collected),
            )
        if not collected:
            raise UpstreamError(
                f"pumpportal: за {self._session_timeout:.0f}s не пришло ни одного токена"
            )
        return list(collected.values())

    async def _listen(
        self,
        session: aiohttp.ClientSession,
        collected: dict[str, TokenCandidate],
    ) -> None:
        async with session.ws_connect(self._ws_url, heartbeat=20) as ws:
            await ws.send_json({"method": "subscribeNewToken"})
            logger.debug("PumpPortal: подписка subscribeNewToken активирована")
            async for msg in ws:
                if msg.type == aiohttp.WSMsgType.TEXT:
                    candidate = self.parse_message(msg.data)
                    if candidate is not None:
                        collected[candidate.address] = candidate
                    if len(collected) >= self._max_tokens:
                        return
                elif msg.type == aiohttp.WSMsgType.ERROR:
                    raise UpstreamError(f"pumpportal: WS ошибка {ws.exception()}")
                elif msg.type in (aiohttp.WSMsgType.CLOSE, aiohttp.WSMsgType.CLOSED):
                    return

    def parse_message(self, raw: str) -> TokenCandidate | None:
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.debug("PumpPortal: не удалось декодировать сообщение {raw}", raw=raw[:200])
            return None
        if not isinstance(data, dict) or not data.get("mint"):
            # служебные сообщения вида {"message": "Successfully subscribed ..."}
            return None
        name, symbol = data.get("name"), data.get("symbol")
        if not (name and symbol):
            logger.debug("PumpPortal: событие {mint} без name/symbol", mint=data.get("mint"))
            return None
        price = self._pricer.price_from_reserves(
            to_float(data.get("vSolInBondingCurve")),
            to_float(data.get("vTokensInBondingCurve")),
        )
        market_cap = self._pricer.sol_to_usd(to_float(data.get("marketCapSol")))
        if market_cap <= 0:
            market_cap = self._pricer.market_cap(price)
        return TokenCandidate(
            address=str(data["mint"]),
            name=str(name),
            symbol=str(symbol),
            price_usd=price,
            market_cap=market_cap,
            volume_24h=self._pricer.sol_to_usd(to_float(data.get("solAmount"))),
            uri=data.get("uri") or None,
            source=self.name,
            raw=data,
        )


__all__ = ["PumpPortalSource"]
