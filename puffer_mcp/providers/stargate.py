"""Stargate Finance (liquidity-pool) bridge API client."""

from __future__ import annotations

import math
from typing import Any, Dict, Optional

import httpx

from puffer_mcp.errors import ProviderUnavailable
from puffer_mcp.models import BridgeProvider, IntentResult, Quote, RouteLimits
from puffer_mcp.providers.base import ProviderClient, map_token, pick, synthetic_id

STARGATE_ROUTER = "0x8731d54E9D02c286767d56ac03e8037C07e01e98"

# Puffer tokens travel through Stargate's ETH pools.
STARGATE_TOKENS: Dict[str, str] = {
    "pufETH": "ETH",
    "xpufETH": "ETH",
    "ETH": "ETH",
    "WETH": "ETH",
    "USDC": "USDC",
    "USDT": "USDT",
}

_POOLS = {"ETH": 13, "USDC": 1, "USDT": 2}
STARGATE_POOL_IDS: Dict[int, Dict[str, int]] = {
    chain_id: dict(_POOLS) for chain_id in (1, 56, 43114, 137, 42161, 8453)
}
DEFAULT_POOL_ID = 13

QUOTE_FALLBACK = {
    "fee": "0.0005 ETH",
    "estimatedTime": "2-5 minutes",
    "route": "STARGATE_FALLBACK",
    "gasEstimate": "150000",
}
LIMITS_FALLBACK = {
    "minAmount": "0.0001",
    "maxAmount": "50",
    "liquidity": "Unknown",
}
DEFAULT_GAS_LIMIT = "200000"


def pool_id(chain_id: int, pool_token: str) -> int:
    return STARGATE_POOL_IDS.get(chain_id, {}).get(pool_token, DEFAULT_POOL_ID)


class StargateClient(ProviderClient):
    """Quotes, route limits and swap creation against the Stargate API."""

    provider = BridgeProvider.STARGATE

    def __init__(
        self,
        base_url: str = "https://api.stargate.finance",
        testnet_base_url: str = "https://api-testnet.stargate.finance",
        http_client: Optional[httpx.AsyncClient] = None,
        quote_timeout: float = 10.0,
        limits_timeout: float = 8.0,
        swap_timeout: float = 10.0,
    ) -> None:
        super().__init__(base_url, testnet_base_url, http_client)
        self.quote_timeout = quote_timeout
        self.limits_timeout = limits_timeout
        self.swap_timeout = swap_timeout

    @staticmethod
    def map_token(token: str) -> str:
        return map_token(token, STARGATE_TOKENS)

    def _pool_params(
        self, from_chain_id: int, to_chain_id: int, token: str
    ) -> Dict[str, Any]:
        pool_token = self.map_token(token)
        return {
            "srcChainId": str(from_chain_id),
            "dstChainId": str(to_chain_id),
            "srcPoolId": pool_id(from_chain_id, pool_token),
            "dstPoolId": pool_id(to_chain_id, pool_token),
        }

    async def quote(
        self,
        from_chain_id: int,
        to_chain_id: int,
        token: str,
        amount: str,
        testnet: bool = False,
    ) -> Quote:
        params = self._pool_params(from_chain_id, to_chain_id, token)
        params["amount"] = amount
        try:
            data = await self._request(
                "quote",
                "GET",
                "/v1/quote",
                params=params,
                timeout=self.quote_timeout,
                testnet=testnet,
            )
        except ProviderUnavailable as exc:
            self._log_failure(
                exc, origin=from_chain_id, destination=to_chain_id, token=token
            )
            return Quote(
                provider=self.provider,
                success=False,
                fee=QUOTE_FALLBACK["fee"],
                estimated_time=QUOTE_FALLBACK["estimatedTime"],
                route=QUOTE_FALLBACK["route"],
                gas_estimate=QUOTE_FALLBACK["gasEstimate"],
                fallback=dict(QUOTE_FALLBACK),
                error=exc.reason,
            )

        return Quote(
            provider=self.provider,
            success=True,
            fee=pick(data, "eqFee", "0"),
            estimated_time="1-3 minutes",
            route="STARGATE",
            gas_estimate=pick(data, "eqReward", "0"),
            raw=data,
        )

    async def route_limits(
        self,
        from_chain_id: int,
        to_chain_id: int,
        token: str,
        testnet: bool = False,
    ) -> RouteLimits:
        params = self._pool_params(from_chain_id, to_chain_id, token)
        try:
            data = await self._request(
                "route_limits",
                "GET",
                "/v1/limits",
                params=params,
                timeout=self.limits_timeout,
                testnet=testnet,
            )
        except ProviderUnavailable as exc:
            self._log_failure(
                exc, origin=from_chain_id, destination=to_chain_id, token=token
            )
            return RouteLimits(
                provider=self.provider,
                success=False,
                min_amount=LIMITS_FALLBACK["minAmount"],
                max_amount=LIMITS_FALLBACK["maxAmount"],
                liquidity=LIMITS_FALLBACK["liquidity"],
                fallback=dict(LIMITS_FALLBACK),
                error=exc.reason,
            )

        return RouteLimits(
            provider=self.provider,
            success=True,
            min_amount=pick(data, "minAmount", "0.0001"),
            max_amount=pick(data, "maxAmount", "100"),
            liquidity=pick(data, "liquidity", "Available"),
        )

    async def create_swap(
        self,
        from_chain_id: int,
        to_chain_id: int,
        token: str,
        amount: str,
        recipient: Optional[str],
        slippage: float = 1.0,
        testnet: bool = False,
    ) -> IntentResult:
        body = self._pool_params(from_chain_id, to_chain_id, token)
        body["amount"] = amount
        body["to"] = recipient
        try:
            if not math.isfinite(slippage):
                raise ProviderUnavailable(
                    self.provider.value, "create_swap", f"invalid slippage {slippage}"
                )
            body["slippageBps"] = int(round(slippage * 100))
            data = await self._request(
                "create_swap",
                "POST",
                "/v1/swap",
                json_body=body,
                timeout=self.swap_timeout,
                testnet=testnet,
            )
        except ProviderUnavailable as exc:
            self._log_failure(
                exc, origin=from_chain_id, destination=to_chain_id, token=token
            )
            return IntentResult(
                provider=self.provider,
                success=False,
                reference_id=synthetic_id("stargate_fallback"),
                synthetic=True,
                contract_address=STARGATE_ROUTER,
                call_data="0x",
                transaction_data=f"bridge({token}, {amount}, {to_chain_id})",
                gas_limit=DEFAULT_GAS_LIMIT,
                note="Use fallback bridge method - Stargate API unavailable",
                error=exc.reason,
            )

        swap_id = data.get("swapId")
        return IntentResult(
            provider=self.provider,
            success=True,
            reference_id=str(swap_id) if swap_id else synthetic_id("stargate"),
            synthetic=not swap_id,
            contract_address=pick(data, "router", STARGATE_ROUTER),
            call_data=pick(data, "calldata", "0x"),
            transaction_data=pick(
                data, "txData", f"swap({from_chain_id},{to_chain_id},{amount})"
            ),
            value=pick(data, "value", "0"),
            gas_limit=pick(data, "gasLimit", DEFAULT_GAS_LIMIT),
        )
