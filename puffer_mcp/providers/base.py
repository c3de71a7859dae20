"""Shared HTTP plumbing for bridge provider clients."""

from __future__ import annotations

import asyncio
import uuid
from typing import Any, Dict, Mapping, Optional

import httpx

from puffer_mcp.errors import ProviderUnavailable
from puffer_mcp.models import BridgeProvider
from puffer_mcp.utils.logging import get_logger

logger = get_logger(__name__)

JSON_HEADERS = {
    "Content-Type": "application/json",
    "Accept": "application/json",
}


def map_token(token: str, mapping: Mapping[str, str]) -> str:
    """Translate a token symbol into a provider vocabulary; unknown passes through."""
    return mapping.get(token, token)


def synthetic_id(prefix: str) -> str:
    """Locally generated reference id; callers must flag it as synthetic."""
    return f"{prefix}_{uuid.uuid4().hex[:16]}"


def pick(payload: Mapping[str, Any], key: str, default: str) -> str:
    """Read a response field as a string, defaulting when absent or empty."""
    value = payload.get(key)
    if value is None or value == "":
        return default
    return str(value)


class ProviderClient:
    """Base class: one remote call per operation, each with its own timeout.

    Subclasses turn :class:`ProviderUnavailable` into fallback results; no
    exception raised by :meth:`_request` is meant to leave a public method.
    """

    provider: BridgeProvider

    def __init__(
        self,
        base_url: str,
        testnet_base_url: str,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.testnet_base_url = testnet_base_url.rstrip("/")
        self._http = http_client or httpx.AsyncClient()
        self._owns_http = http_client is None

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    def url_for(self, path: str, testnet: bool = False) -> str:
        base = self.testnet_base_url if testnet else self.base_url
        return f"{base}{path}"

    async def _request(
        self,
        operation: str,
        method: str,
        path: str,
        *,
        timeout: float,
        testnet: bool = False,
        json_body: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        url = self.url_for(path, testnet)
        try:
            # Bound the whole exchange, not each httpx phase.
            response = await asyncio.wait_for(
                self._http.request(
                    method,
                    url,
                    json=json_body,
                    params=params,
                    headers=JSON_HEADERS,
                    timeout=timeout,
                ),
                timeout=timeout,
            )
            response.raise_for_status()
            data = response.json()
        except (asyncio.TimeoutError, httpx.TimeoutException) as exc:
            raise ProviderUnavailable(
                self.provider.value, operation, f"timed out after {timeout}s"
            ) from exc
        except httpx.HTTPStatusError as exc:
            raise ProviderUnavailable(
                self.provider.value,
                operation,
                f"HTTP {exc.response.status_code}",
            ) from exc
        except httpx.HTTPError as exc:
            raise ProviderUnavailable(
                self.provider.value, operation, str(exc) or type(exc).__name__
            ) from exc
        except ValueError as exc:
            raise ProviderUnavailable(
                self.provider.value, operation, f"invalid JSON: {exc}"
            ) from exc

        if not isinstance(data, dict):
            raise ProviderUnavailable(
                self.provider.value, operation, "unexpected response shape"
            )
        return data

    def _log_failure(self, exc: ProviderUnavailable, **context: Any) -> None:
        logger.warning(
            "provider_call_failed",
            provider=exc.provider,
            operation=exc.operation,
            reason=exc.reason,
            **context,
        )
