"""Фоновые периодические задачи: обновление ленты, очистка, повторное обогащение."""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable

from loguru import logger

from config.settings import SchedulerSettings
from radar.services.pumpfun.token_service import TokenDataService

Job = Callable[[], Awaitable[Any]]


class PeriodicTask:
    """Одна asyncio-задача, которая вызывает job раз в interval_sec секунд."""

    def __init__(self, name: str, interval_sec: float, job: Job, *, run_on_start: bool = True) -> None:
        self.name = name
        self._interval = interval_sec
        self._job = job
        self._run_on_start = run_on_start
        self._task: asyncio.Task[None] | None = None
        self._stop = asyncio.Event()
        self.runs = 0
        self.failures = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._task = asyncio.create_task(self._run_loop(), name=f"periodic-{self.name}")
        logger.info("Задача {name} запущена, интервал {interval}s", name=self.name, interval=self._interval)

    async def stop(self) -> None:
        self._stop.set()
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Задача {name} остановлена", name=self.name)

    async def run_once(self) -> Any:
        """Выполняет job; исключение логируется, цикл не падает."""

        self.runs += 1
        try:
            return await self._job()
        except Exception as exc:  # noqa: BLE001
            self.failures += 1
            logger.exception("Задача {name} упала: {error}", name=self.name, error=exc)
            return None

    async def _run_loop(self) -> None:
        if self._run_on_start:
            await self.run_once()
        while not self._stop.is_set():
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=self._interval)
            except asyncio.TimeoutError:
                await self.run_once()


class TokenScheduler:
    """Три независимые задачи поверх TokenDataService; друг друга не ждут."""

    def __init__(self, service: TokenDataService, settings: SchedulerSettings) -> None:
        self._settings = settings
        self.refresh = PeriodicTask(
            "refresh",
            settings.refresh_interval_sec,
            service.refresh,
            run_on_start=settings.run_on_startup,
        )
        self.cleanup = PeriodicTask(
            "cleanup",
            settings.cleanup_interval_sec,
            service.cleanup,
            run_on_start=False,
        )
        self.reprocess = PeriodicTask(
            "reprocess-images",
            settings.reprocess_interval_sec,
            service.reprocess_missing_images,
            run_on_start=False,
        )

    @property
    def tasks(self) -> list[PeriodicTask]:
        return [self.refresh, self.cleanup, self.reprocess]

    async def start(self) -> None:
        if not self._settings.enabled:
            logger.info("Планировщик выключен настройкой scheduler.enabled")
            return
        for task in self.tasks:
            await task.start()

    async def stop(self) -> None:
        for task in self.tasks:
            await task.stop()


__all__ = ["Job", "PeriodicTask", "TokenScheduler"]
