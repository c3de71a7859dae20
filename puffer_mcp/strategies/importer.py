"""Strategy importers: turn remote JSON payloads into Strategy records."""

from __future__ import annotations

import asyncio
from typing import Any, Iterable, List, Mapping, Optional, Protocol, Sequence

import httpx

from puffer_mcp.errors import StrategyImportError
from puffer_mcp.models import Strategy
from puffer_mcp.utils.logging import get_logger

logger = get_logger(__name__)

# First present key wins for each attribute.
FIELD_ALIASES = {
    "name": ("name", "title", "strategyName"),
    "action": ("action", "type", "category"),
    "apr": ("apr", "apy", "yield", "rate"),
    "tvl": ("tvl", "totalValueLocked", "liquidity"),
    "daily_rewards": ("dailyRewards", "rewards", "earnings"),
    "protocol": ("protocol", "platform", "provider"),
}
PAYLOAD_LIST_KEYS = ("strategies", "opportunities", "data")
REQUEST_HEADERS = {
    "Accept": "application/json",
    "Cache-Control": "no-cache",
}


class StrategyImporter(Protocol):
    async def import_strategies(self) -> List[Strategy]:
        """Return a complete snapshot or raise StrategyImportError."""
        ...


def _first(item: Mapping[str, Any], keys: Iterable[str]) -> str:
    for key in keys:
        value = item.get(key)
        if value is not None and value != "":
            return str(value)
    return "Unknown"


def _status(item: Mapping[str, Any]) -> str:
    status = item.get("status")
    if status:
        return str(status)
    if "isActive" in item:
        return "Live" if item["isActive"] else "Past"
    return "Unknown"


def normalize_strategy(item: Mapping[str, Any], strategy_id: int) -> Strategy:
    fields = {attr: _first(item, keys) for attr, keys in FIELD_ALIASES.items()}
    return Strategy(id=strategy_id, status=_status(item), source="api", **fields)


def parse_strategy_payload(data: Any) -> List[Strategy]:
    """Normalise any of the known payload layouts, ids assigned 1-based."""
    items: Sequence[Any] = ()
    if isinstance(data, list):
        items = data
    elif isinstance(data, dict):
        for key in PAYLOAD_LIST_KEYS:
            if isinstance(data.get(key), list):
                items = data[key]
                break
    records = [item for item in items if isinstance(item, dict)]
    return [normalize_strategy(item, index) for index, item in enumerate(records, 1)]


class HttpStrategyImporter:
    """Try JSON endpoints in order and keep the first non-empty snapshot."""

    def __init__(
        self,
        endpoints: Sequence[str],
        timeout: float = 15.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.endpoints = list(endpoints)
        self.timeout = timeout
        self._http = http_client or httpx.AsyncClient(follow_redirects=True)
        self._owns_http = http_client is None

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    async def import_strategies(self) -> List[Strategy]:
        if not self.endpoints:
            raise StrategyImportError("No strategy endpoints configured")

        failures: List[str] = []
        for endpoint in self.endpoints:
            try:
                response = await asyncio.wait_for(
                    self._http.get(
                        endpoint, headers=REQUEST_HEADERS, timeout=self.timeout
                    ),
                    timeout=self.timeout,
                )
                response.raise_for_status()
                payload = response.json()
            except asyncio.TimeoutError:
                logger.info(
                    "strategy_endpoint_failed",
                    endpoint=endpoint,
                    error=f"timed out after {self.timeout}s",
                )
                failures.append(endpoint)
                continue
            except (httpx.HTTPError, ValueError) as exc:
                logger.info("strategy_endpoint_failed", endpoint=endpoint, error=str(exc))
                failures.append(endpoint)
                continue

            strategies = parse_strategy_payload(payload)
            if strategies:
                logger.info(
                    "strategies_imported", endpoint=endpoint, count=len(strategies)
                )
                return strategies
            logger.info("strategy_endpoint_empty", endpoint=endpoint)
            failures.append(endpoint)

        raise StrategyImportError(
            f"No strategy data from {len(failures)} endpoint(s)"
        )


__all__ = [
    "StrategyImporter",
    "HttpStrategyImporter",
    "normalize_strategy",
    "parse_strategy_payload",
]
