"""Scheduled strategy cache refresh."""

from __future__ import annotations

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from puffer_mcp.strategies.cache import StrategyCache
from puffer_mcp.utils.logging import get_logger

logger = get_logger(__name__)

JOB_ID = "refresh_strategy_cache"


class CacheRefreshService:
    """Keep the strategy cache warm between tool calls."""

    def __init__(
        self,
        cache: StrategyCache,
        scheduler: AsyncIOScheduler,
        interval_minutes: int,
    ) -> None:
        self.cache = cache
        self.scheduler = scheduler
        self.interval_minutes = interval_minutes

    def start(self) -> bool:
        """Register the refresh job; returns False when refreshing is disabled."""
        if self.interval_minutes <= 0:
            logger.info("strategy_refresh_job_disabled")
            return False

        self.scheduler.add_job(
            self._refresh,
            trigger="interval",
            minutes=self.interval_minutes,
            id=JOB_ID,
            max_instances=1,
            coalesce=True,
        )
        logger.info(
            "strategy_refresh_job_started",
            job=JOB_ID,
            interval_minutes=self.interval_minutes,
        )
        return True

    async def _refresh(self) -> None:
        try:
            await self.cache.refresh()
            logger.info("strategy_refresh_job_success", count=len(self.cache.strategies))
        except Exception as exc:
            logger.error("strategy_refresh_job_failed", error=str(exc))
