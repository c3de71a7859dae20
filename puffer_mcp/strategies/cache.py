"""Time-bounded strategy cache with a single in-flight refresh."""

from __future__ import annotations

import asyncio
import time
from typing import Callable, List, Optional, Sequence, Union

from puffer_mcp.errors import NoStrategyDataError, StrategyImportError
from puffer_mcp.models import Strategy
from puffer_mcp.strategies.importer import StrategyImporter
from puffer_mcp.utils.logging import get_logger

logger = get_logger(__name__)


class StrategyCache:
    """Own the latest strategy snapshot and its refresh timestamp.

    Only this object writes the snapshot. Concurrent callers that need a
    refresh share one import task; a failed import keeps the previous
    snapshot in place.
    """

    def __init__(
        self,
        importer: StrategyImporter,
        ttl_seconds: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._importer = importer
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._strategies: List[Strategy] = []
        self._last_refresh: Optional[float] = None
        self._inflight: Optional[asyncio.Task[None]] = None
        self.import_count = 0

    @property
    def strategies(self) -> List[Strategy]:
        return list(self._strategies)

    @property
    def last_refresh(self) -> Optional[float]:
        return self._last_refresh

    def age(self) -> Optional[float]:
        if self._last_refresh is None:
            return None
        return self._clock() - self._last_refresh

    def is_fresh(self) -> bool:
        age = self.age()
        return bool(self._strategies) and age is not None and age < self.ttl_seconds

    async def get_or_refresh(self) -> List[Strategy]:
        """Return the snapshot, importing first when it is stale or empty."""
        if not self.is_fresh():
            await self.refresh()
        if not self._strategies:
            raise NoStrategyDataError("No strategy data available")
        return list(self._strategies)

    async def refresh(self) -> None:
        """Run one import, or join the import that is already running."""
        if self._inflight is None:
            self._inflight = asyncio.create_task(self._run_import())
        task = self._inflight
        await asyncio.shield(task)

    async def _run_import(self) -> None:
        try:
            self.import_count += 1
            try:
                strategies = await self._importer.import_strategies()
            except StrategyImportError as exc:
                logger.warning(
                    "strategy_refresh_failed",
                    error=str(exc),
                    cached=len(self._strategies),
                )
                return
            except Exception:
                logger.error(
                    "strategy_refresh_crashed",
                    cached=len(self._strategies),
                    exc_info=True,
                )
                return

            if not strategies:
                logger.warning("strategy_refresh_empty", cached=len(self._strategies))
                return

            self._strategies = list(strategies)
            self._last_refresh = self._clock()
            logger.info("strategy_cache_refreshed", count=len(self._strategies))
        finally:
            self._inflight = None

    def find(self, identifier: Union[int, str]) -> Optional[Strategy]:
        """Look up by exact numeric id, then by case-insensitive name overlap.

        Name matching accepts the identifier inside the name or the name
        inside the identifier; the first hit in snapshot order wins.
        """
        return find_strategy(self._strategies, identifier)


def find_strategy(
    strategies: Sequence[Strategy], identifier: Union[int, str]
) -> Optional[Strategy]:
    text = str(identifier).strip()
    if not text:
        return None

    if text.isdigit():
        wanted = int(text)
        for strategy in strategies:
            if strategy.id == wanted:
                return strategy

    needle = text.lower()
    for strategy in strategies:
        name = strategy.name.lower()
        if name and (needle in name or name in needle):
            return strategy
    return None


__all__ = ["StrategyCache", "find_strategy"]
