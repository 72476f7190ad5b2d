from __future__ import annotations

import asyncio

from config.settings import SchedulerSettings
from radar.services.scheduler import PeriodicTask, TokenScheduler


def test_run_once_logs_and_swallows_job_errors():
    async def job():
        raise RuntimeError("upstream exploded")

    task = PeriodicTask("boom", 60, job)

    assert asyncio.run(task.run_once()) is None
    assert task.runs == 1
    assert task.failures == 1


def test_loop_keeps_running_after_failures():
    calls = []

    async def job():
        calls.append(len(calls))
        if len(calls) == 1:
            raise RuntimeError("first run fails")

    async def scenario():
        task = PeriodicTask("tick", 0.01, job, run_on_start=True)
        await task.start()
        await asyncio.sleep(0.1)
        running = task.running
        await task.stop()
        return task, running

    task, was_running = asyncio.run(scenario())

    assert was_running
    assert not task.running
    assert len(calls) >= 3
    assert task.failures == 1


def test_stop_prevents_further_runs():
    calls = []

    async def job():
        calls.append(1)

    async def scenario():
        task = PeriodicTask("idle", 3600, job, run_on_start=False)
        await task.start()
        await asyncio.sleep(0.01)
        await task.stop()
        await task.stop()

    asyncio.run(scenario())

    assert calls == []


class _Service:
    def __init__(self):
        self.calls = []

    async def refresh(self):
        self.calls.append("refresh")

    async def cleanup(self):
        self.calls.append("cleanup")

    async def reprocess_missing_images(self):
        self.calls.append("reprocess")


def test_token_scheduler_runs_refresh_on_startup_only():
    service = _Service()
    settings = SchedulerSettings(
        enabled=True,
        refresh_interval_sec=3600,
        cleanup_interval_sec=3600,
        reprocess_interval_sec=3600,
        run_on_startup=True,
    )

    async def scenario():
        scheduler = TokenScheduler(service, settings)
        await scheduler.start()
        await asyncio.sleep(0.02)
        running = [task.running for task in scheduler.tasks]
        await scheduler.stop()
        return running

    assert asyncio.run(scenario()) == [True, True, True]
    assert service.calls == ["refresh"]


def test_disabled_scheduler_starts_nothing():
    service = _Service()

    async def scenario():
        scheduler = TokenScheduler(service, SchedulerSettings(enabled=False))
        await scheduler.start()
        return [task.running for task in scheduler.tasks]

    assert asyncio.run(scenario()) == [False, False, False]
