import asyncio

import pytest
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from puffer_mcp.errors import StrategyImportError
from puffer_mcp.jobs.cache_refresh import JOB_ID, CacheRefreshService
from puffer_mcp.models import Strategy
from puffer_mcp.strategies import StrategyCache


class CountingImporter:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.calls = 0

    async def import_strategies(self):
        self.calls += 1
        if self.fail:
            raise StrategyImportError("down")
        return [Strategy(id=1, name="Vault")]


@pytest.mark.asyncio
async def test_refresh_service_registers_job() -> None:
    """CacheRefreshService should register its recurring job."""
    scheduler = AsyncIOScheduler(event_loop=asyncio.get_running_loop())
    service = CacheRefreshService(StrategyCache(CountingImporter()), scheduler, 10)

    assert service.start() is True
    scheduler.start()

    job = scheduler.get_job(JOB_ID)
    assert job is not None
    assert job.max_instances == 1

    scheduler.shutdown(wait=False)


def test_refresh_service_disabled_with_zero_interval() -> None:
    scheduler = AsyncIOScheduler()
    service = CacheRefreshService(StrategyCache(CountingImporter()), scheduler, 0)

    assert service.start() is False
    assert scheduler.get_jobs() == []


@pytest.mark.asyncio
async def test_refresh_job_updates_cache() -> None:
    importer = CountingImporter()
    cache = StrategyCache(importer)
    service = CacheRefreshService(cache, AsyncIOScheduler(), 5)

    await service._refresh()

    assert importer.calls == 1
    assert [s.name for s in cache.strategies] == ["Vault"]


@pytest.mark.asyncio
async def test_refresh_job_failure_leaves_cache_empty() -> None:
    cache = StrategyCache(CountingImporter(fail=True))
    service = CacheRefreshService(cache, AsyncIOScheduler(), 5)

    await service._refresh()

    assert cache.strategies == []
    assert cache.import_count == 1
