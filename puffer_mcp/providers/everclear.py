"""Everclear (intent-based) bridge API client."""

from __future__ import annotations

from typing import Dict, Mapping, Optional

import httpx

from puffer_mcp import registry
from puffer_mcp.errors import ProviderUnavailable
from puffer_mcp.models import BridgeProvider, IntentResult, Quote, RouteLimits
from puffer_mcp.providers.base import ProviderClient, map_token, pick, synthetic_id

EVERCLEAR_TOKENS: Dict[str, str] = {
    "pufETH": "pufETH",
    "xpufETH": "xpufETH",
    "ETH": "ETH",
    "WETH": "WETH",
    "USDC": "USDC",
    "USDT": "USDT",
    "wstETH": "wstETH",
}

QUOTE_FALLBACK = {
    "fee": "0.001 ETH",
    "estimatedTime": "3-8 minutes",
    "route": "EVERCLEAR_FALLBACK",
}
LIMITS_FALLBACK = {
    "minAmount": "0.001",
    "maxAmount": "100",
    "liquidity": "Unknown",
}
INTENT_FALLBACK_METHOD = "bridge(address,uint256,uint256)"


class EverclearClient(ProviderClient):
    """Quotes, route limits and intent creation against the Everclear API."""

    provider = BridgeProvider.EVERCLEAR

    def __init__(
        self,
        base_url: str = "https://api.everclear.org",
        testnet_base_url: str = "https://api.testnet.everclear.org",
        http_client: Optional[httpx.AsyncClient] = None,
        quote_timeout: float = 10.0,
        limits_timeout: float = 8.0,
        intent_timeout: float = 15.0,
        contracts: Optional[Mapping[int, Mapping[str, str]]] = None,
    ) -> None:
        super().__init__(base_url, testnet_base_url, http_client)
        self.quote_timeout = quote_timeout
        self.limits_timeout = limits_timeout
        self.intent_timeout = intent_timeout
        self._contracts = contracts if contracts is not None else registry.DEFAULT_CONTRACTS

    @staticmethod
    def map_token(token: str) -> str:
        return map_token(token, EVERCLEAR_TOKENS)

    def _route_body(self, from_chain_id: int, to_chain_id: int, token: str) -> Dict:
        return {
            "origin": str(from_chain_id),
            "destinations": [str(to_chain_id)],
            "inputAsset": self.map_token(token),
        }

    async def quote(
        self,
        from_chain_id: int,
        to_chain_id: int,
        token: str,
        amount: str,
        testnet: bool = False,
    ) -> Quote:
        body = self._route_body(from_chain_id, to_chain_id, token)
        body["amount"] = amount
        body["to"] = registry.ZERO_ADDRESS
        try:
            data = await self._request(
                "quote",
                "POST",
                "/routes/quotes",
                json_body=body,
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
                fallback=dict(QUOTE_FALLBACK),
                error=exc.reason,
            )

        return Quote(
            provider=self.provider,
            success=True,
            fee=pick(data, "fee", "0"),
            estimated_time=pick(data, "estimatedTime", "1-5 minutes"),
            route=pick(data, "route", "EVERCLEAR"),
            raw=data,
        )

    async def route_limits(
        self,
        from_chain_id: int,
        to_chain_id: int,
        token: str,
        testnet: bool = False,
    ) -> RouteLimits:
        body = self._route_body(from_chain_id, to_chain_id, token)
        try:
            data = await self._request(
                "route_limits",
                "POST",
                "/routes/limits",
                json_body=body,
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
            min_amount=pick(data, "minAmount", "0.001"),
            max_amount=pick(data, "maxAmount", "1000"),
            liquidity=pick(data, "liquidity", "Available"),
        )

    async def create_intent(
        self,
        from_chain_id: int,
        to_chain_id: int,
        token: str,
        amount: str,
        recipient: Optional[str],
        testnet: bool = False,
    ) -> IntentResult:
        body = self._route_body(from_chain_id, to_chain_id, token)
        body["amount"] = amount
        if recipient:
            body["to"] = recipient
        fallback_contract = self.fallback_contract(from_chain_id)
        try:
            data = await self._request(
                "create_intent",
                "POST",
                "/intents",
                json_body=body,
                timeout=self.intent_timeout,
                testnet=testnet,
            )
        except ProviderUnavailable as exc:
            self._log_failure(
                exc, origin=from_chain_id, destination=to_chain_id, token=token
            )
            return IntentResult(
                provider=self.provider,
                success=False,
                reference_id=synthetic_id("everclear_fallback"),
                synthetic=True,
                contract_address=fallback_contract,
                call_data="0x",
                transaction_data=f"bridge({token}, {amount}, {to_chain_id})",
                method=INTENT_FALLBACK_METHOD,
                note="Use fallback bridge method - Everclear API unavailable",
                error=exc.reason,
            )

        intent_id = data.get("id")
        return IntentResult(
            provider=self.provider,
            success=True,
            reference_id=str(intent_id) if intent_id else synthetic_id("everclear"),
            synthetic=not intent_id,
            contract_address=pick(data, "contractAddress", fallback_contract),
            call_data=pick(data, "calldata", "0x"),
            transaction_data=pick(data, "txData", pick(data, "calldata", "0x")),
            value=pick(data, "value", "0"),
        )

    def fallback_contract(self, from_chain_id: int) -> str:
        return (
            self._contracts.get(from_chain_id, {}).get("PufferL2Depositor")
            or registry.ZERO_ADDRESS
        )
