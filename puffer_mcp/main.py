"""Application entrypoint."""

from __future__ import annotations

import asyncio
import signal
from dataclasses import dataclass
from typing import Optional

import httpx
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from puffer_mcp.config import Settings, load_settings
from puffer_mcp.engine import BridgeEngine
from puffer_mcp.jobs.cache_refresh import CacheRefreshService
from puffer_mcp.mcp_server import MCPServer, open_stdio
from puffer_mcp.registry import load_contract_map
from puffer_mcp.strategies.cache import StrategyCache
from puffer_mcp.strategies.importer import HttpStrategyImporter
from puffer_mcp.tools import ToolRegistry
from puffer_mcp.utils.logging import configure_logging, get_logger

logger = get_logger(__name__)


@dataclass
class Services:
    http: httpx.AsyncClient
    engine: BridgeEngine
    cache: StrategyCache
    tools: ToolRegistry

    async def aclose(self) -> None:
        await self.http.aclose()


def build_services(
    settings: Settings, http_client: Optional[httpx.AsyncClient] = None
) -> Services:
    """Wire the engine, strategy cache and tool registry from settings."""
    http = http_client or httpx.AsyncClient(follow_redirects=True)
    contracts = load_contract_map(settings.contracts_json)
    engine = BridgeEngine.from_settings(settings, contracts, http_client=http)
    importer = HttpStrategyImporter(
        settings.strategy_endpoints,
        timeout=settings.strategy_import_timeout,
        http_client=http,
    )
    cache = StrategyCache(importer, ttl_seconds=settings.strategy_cache_ttl_seconds)
    return Services(
        http=http,
        engine=engine,
        cache=cache,
        tools=ToolRegistry(engine, cache),
    )


async def main() -> None:
    settings = load_settings()
    configure_logging(settings.log_level, settings.log_file)

    services = build_services(settings)
    server = MCPServer(services.tools, name=settings.server_name)

    scheduler = AsyncIOScheduler()
    refresh_service = CacheRefreshService(
        services.cache,
        scheduler,
        settings.strategy_refresh_interval_minutes,
    )
    if refresh_service.start():
        scheduler.start()

    stop_event = asyncio.Event()

    def signal_handler(signum, frame):
        logger.info("shutdown_signal_received", signal=signum)
        stop_event.set()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    reader, write = await open_stdio()
    serve_task = asyncio.create_task(server.serve(reader, write))
    stop_task = asyncio.create_task(stop_event.wait())

    try:
        await asyncio.wait(
            {serve_task, stop_task}, return_when=asyncio.FIRST_COMPLETED
        )
    finally:
        logger.info("server_stopping")
        for task in (serve_task, stop_task):
            if not task.done():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        if scheduler.running:
            scheduler.shutdown(wait=False)
        await services.aclose()


if __name__ == "__main__":
    asyncio.run(main())
