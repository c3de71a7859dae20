"""Tests for the strategy cache refresh policy."""

import asyncio

import pytest

from puffer_mcp.errors import NoStrategyDataError, StrategyImportError
from puffer_mcp.models import Strategy
from puffer_mcp.strategies import StrategyCache, find_strategy


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class FakeImporter:
    """Returns queued results in order; exceptions in the queue are raised."""

    def __init__(self, *results, delay: float = 0.0) -> None:
        self.results = list(results)
        self.delay = delay
        self.calls = 0

    async def import_strategies(self):
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        result = self.results.pop(0) if len(self.results) > 1 else self.results[0]
        if isinstance(result, Exception):
            raise result
        return result


def _strategies(*names):
    return [Strategy(id=index, name=name) for index, name in enumerate(names, 1)]


@pytest.mark.asyncio
async def test_fresh_snapshot_is_served_without_import() -> None:
    clock = FakeClock()
    importer = FakeImporter(_strategies("pufETH Vault"))
    cache = StrategyCache(importer, ttl_seconds=300, clock=clock)

    first = await cache.get_or_refresh()
    clock.now += 120
    second = await cache.get_or_refresh()

    assert first == second
    assert cache.import_count == 1
    assert importer.calls == 1


@pytest.mark.asyncio
async def test_expired_snapshot_triggers_import() -> None:
    clock = FakeClock()
    importer = FakeImporter(_strategies("A"), _strategies("A", "B"))
    cache = StrategyCache(importer, ttl_seconds=300, clock=clock)

    await cache.get_or_refresh()
    clock.now += 301
    refreshed = await cache.get_or_refresh()

    assert [s.name for s in refreshed] == ["A", "B"]
    assert cache.import_count == 2
    assert cache.age() == 0


@pytest.mark.asyncio
async def test_concurrent_callers_share_one_import() -> None:
    importer = FakeImporter(_strategies("A"), delay=0.01)
    cache = StrategyCache(importer, clock=FakeClock())

    results = await asyncio.gather(*(cache.get_or_refresh() for _ in range(5)))

    assert importer.calls == 1
    assert cache.import_count == 1
    assert all(len(result) == 1 for result in results)


@pytest.mark.asyncio
async def test_failed_refresh_keeps_previous_snapshot() -> None:
    clock = FakeClock()
    importer = FakeImporter(_strategies("A"), StrategyImportError("down"))
    cache = StrategyCache(importer, ttl_seconds=60, clock=clock)

    await cache.get_or_refresh()
    refreshed_at = cache.last_refresh
    clock.now += 61

    stale = await cache.get_or_refresh()

    assert [s.name for s in stale] == ["A"]
    assert cache.last_refresh == refreshed_at
    assert cache.import_count == 2


@pytest.mark.asyncio
async def test_unexpected_importer_error_keeps_previous_snapshot() -> None:
    clock = FakeClock()
    importer = FakeImporter(_strategies("A"), RuntimeError("boom"))
    cache = StrategyCache(importer, ttl_seconds=60, clock=clock)

    await cache.get_or_refresh()
    clock.now += 61

    stale = await cache.get_or_refresh()

    assert [s.name for s in stale] == ["A"]
    assert cache.import_count == 2

    # The single-flight slot is released, so the next refresh imports again.
    await cache.refresh()
    assert importer.calls == 3


@pytest.mark.asyncio
async def test_empty_import_keeps_previous_snapshot() -> None:
    clock = FakeClock()
    importer = FakeImporter(_strategies("A"), [])
    cache = StrategyCache(importer, ttl_seconds=60, clock=clock)

    await cache.get_or_refresh()
    clock.now += 61

    assert [s.name for s in await cache.get_or_refresh()] == ["A"]


@pytest.mark.asyncio
async def test_no_data_anywhere_raises() -> None:
    cache = StrategyCache(FakeImporter(StrategyImportError("down")), clock=FakeClock())

    with pytest.raises(NoStrategyDataError):
        await cache.get_or_refresh()
    assert cache.age() is None
    assert cache.is_fresh() is False


@pytest.mark.asyncio
async def test_refresh_can_run_again_after_completion() -> None:
    importer = FakeImporter(_strategies("A"))
    cache = StrategyCache(importer, clock=FakeClock())

    await cache.refresh()
    await cache.refresh()

    assert importer.calls == 2


@pytest.mark.asyncio
async def test_find_by_id_then_name() -> None:
    cache = StrategyCache(
        FakeImporter(
            _strategies(
                "Morpho 7 Vault",
                "Euler",
                "Pendle",
                "Curve",
                "Aave",
                "Balancer",
                "pufETH Vault",
            )
        ),
        clock=FakeClock(),
    )
    await cache.get_or_refresh()

    assert cache.find("7").name == "pufETH Vault"
    assert cache.find(7).name == "pufETH Vault"
    assert cache.find("PUFETH VAULT").id == 7
    assert cache.find("euler borrow").name == "Euler"
    assert cache.find("missing") is None


def test_find_strategy_first_name_match_wins() -> None:
    strategies = _strategies("pufETH Vault", "pufETH Vault Boosted")
    assert find_strategy(strategies, "vault").id == 1
    assert find_strategy(strategies, "99") is None
    assert find_strategy(strategies, "  ") is None
