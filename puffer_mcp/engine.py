"""Bridge orchestration: resolve, fetch live provider data, compose."""

from __future__ import annotations

import asyncio
import math
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Mapping, Optional

import httpx

from puffer_mcp import registry
from puffer_mcp.composer import InstructionComposer
from puffer_mcp.config import Settings
from puffer_mcp.errors import RouteValidationError
from puffer_mcp.models import (
    BridgeInstruction,
    BridgeProvider,
    LiveProviderData,
    ResolvedRoute,
)
from puffer_mcp.providers import (
    EVERCLEAR_TOKENS,
    STARGATE_TOKENS,
    EverclearClient,
    StargateClient,
)
from puffer_mcp.resolver import RouteResolver
from puffer_mcp.utils.logging import get_logger

logger = get_logger(__name__)

MAX_SLIPPAGE = 50.0


def validate_amount(amount: str) -> str:
    """Return the trimmed amount if it is a positive decimal string."""
    text = (amount or "").strip()
    try:
        value = Decimal(text)
    except InvalidOperation:
        raise RouteValidationError(f"Amount '{amount}' is not a valid number") from None
    if not value.is_finite() or value <= 0:
        raise RouteValidationError(f"Amount must be greater than zero, got '{amount}'")
    return text


def validate_slippage(slippage: float) -> float:
    if not math.isfinite(slippage) or slippage < 0 or slippage > MAX_SLIPPAGE:
        raise RouteValidationError(
            f"Slippage must be between 0 and {MAX_SLIPPAGE:g}%, got {slippage}"
        )
    return float(slippage)


def _status(success: bool, ok: str, failed: str) -> str:
    return ok if success else failed


class BridgeEngine:
    """Entry point tying the resolver, provider clients and composer together.

    Validation always runs before any provider call, so an invalid request
    never costs a network round trip.
    """

    def __init__(
        self,
        everclear: EverclearClient,
        stargate: StargateClient,
        resolver: Optional[RouteResolver] = None,
        composer: Optional[InstructionComposer] = None,
        contracts: Optional[Mapping[int, Mapping[str, str]]] = None,
    ) -> None:
        self.everclear = everclear
        self.stargate = stargate
        self.contracts = contracts if contracts is not None else registry.DEFAULT_CONTRACTS
        self.resolver = resolver or RouteResolver(
            provider_vocabularies={
                BridgeProvider.EVERCLEAR: tuple(EVERCLEAR_TOKENS),
                BridgeProvider.STARGATE: tuple(STARGATE_TOKENS),
            }
        )
        self.composer = composer or InstructionComposer(self.contracts)

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        contracts: Optional[Mapping[int, Mapping[str, str]]] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> "BridgeEngine":
        contracts = contracts if contracts is not None else registry.DEFAULT_CONTRACTS
        everclear = EverclearClient(
            base_url=settings.everclear_api_base,
            testnet_base_url=settings.everclear_testnet_api_base,
            http_client=http_client,
            quote_timeout=settings.everclear_quote_timeout,
            limits_timeout=settings.everclear_limits_timeout,
            intent_timeout=settings.everclear_intent_timeout,
            contracts=contracts,
        )
        stargate = StargateClient(
            base_url=settings.stargate_api_base,
            testnet_base_url=settings.stargate_testnet_api_base,
            http_client=http_client,
            quote_timeout=settings.stargate_quote_timeout,
            limits_timeout=settings.stargate_limits_timeout,
            swap_timeout=settings.stargate_swap_timeout,
        )
        return cls(everclear, stargate, contracts=contracts)

    async def aclose(self) -> None:
        await asyncio.gather(self.everclear.aclose(), self.stargate.aclose())

    async def build_route(
        self,
        from_chain: str,
        to_chain: str,
        token: str,
        amount: str,
        recipient: Optional[str] = None,
        slippage: float = 1.0,
        testnet: bool = False,
    ) -> BridgeInstruction:
        """Resolve a bridge request and compose advisory instructions.

        Live quote and limits are fetched only for intent-based routes; both
        calls run concurrently and either may come back as a fallback.
        """
        route = self.resolver.resolve(from_chain, to_chain, token)
        amount = validate_amount(amount)
        slippage = validate_slippage(slippage)

        live = LiveProviderData()
        if route.provider is BridgeProvider.EVERCLEAR:
            live = await self._everclear_live_data(route, amount, testnet)

        instruction = self.composer.compose(route, amount, slippage, live)
        logger.info(
            "bridge_route_built",
            from_chain=route.from_chain.name,
            to_chain=route.to_chain.name,
            token=route.token,
            provider=instruction.provider,
            template=instruction.template,
            live_quote=bool(live.quote and live.quote.success),
            recipient=bool(recipient),
        )
        return instruction

    async def _everclear_live_data(
        self, route: ResolvedRoute, amount: str, testnet: bool
    ) -> LiveProviderData:
        origin = route.from_chain.chain_id
        destination = route.to_chain.chain_id
        quote, limits = await asyncio.gather(
            self.everclear.quote(
                origin, destination, route.source_symbol, amount, testnet
            ),
            self.everclear.route_limits(
                origin, destination, route.source_symbol, testnet
            ),
        )
        return LiveProviderData(quote=quote, limits=limits)

    async def create_everclear_intent(
        self,
        from_chain: str,
        to_chain: str,
        token: str,
        amount: str,
        recipient: Optional[str],
        testnet: bool = False,
    ) -> Dict[str, Any]:
        route = self.resolver.resolve(
            from_chain, to_chain, token, provider=BridgeProvider.EVERCLEAR
        )
        amount = validate_amount(amount)
        origin = route.from_chain.chain_id
        destination = route.to_chain.chain_id
        asset = route.source_symbol

        quote, intent, limits = await asyncio.gather(
            self.everclear.quote(origin, destination, asset, amount, testnet),
            self.everclear.create_intent(
                origin, destination, asset, amount, recipient, testnet
            ),
            self.everclear.route_limits(origin, destination, asset, testnet),
        )

        reference = intent.reference_id
        if intent.synthetic:
            reference += " (synthetic)"
        first_step = (
            "1. Everclear intent created via API"
            if intent.success
            else "1. Everclear API unavailable, fallback bridge contract returned"
        )
        logger.info(
            "everclear_intent_prepared",
            from_chain=route.from_chain.name,
            to_chain=route.to_chain.name,
            token=asset,
            intent_live=intent.success,
            synthetic=intent.synthetic,
        )
        return {
            "everclearIntent": {
                "fromChain": route.from_chain.name,
                "toChain": route.to_chain.name,
                "token": asset,
                "amount": amount,
                "recipientAddress": recipient,
                "provider": BridgeProvider.EVERCLEAR.display_name,
                "quote": quote.to_dict(),
                "intent": intent.to_dict(),
                "limits": limits.to_dict(),
                "instructions": [
                    first_step,
                    f"2. Approve {asset} for contract: {intent.contract_address}",
                    "3. Execute transaction with provided calldata",
                    f"4. Monitor bridge progress via intent ID: {reference}",
                    f"5. Receive tokens on {route.to_chain.name} "
                    f"({quote.estimated_time})",
                ],
                "apiStatus": {
                    "quote": _status(quote.success, "live", "fallback"),
                    "intent": _status(intent.success, "created", "failed"),
                    "limits": _status(limits.success, "live", "fallback"),
                },
                "network": "testnet" if testnet else "mainnet",
            }
        }

    async def create_stargate_swap(
        self,
        from_chain: str,
        to_chain: str,
        token: str,
        amount: str,
        recipient: Optional[str],
        slippage: float = 1.0,
        testnet: bool = False,
    ) -> Dict[str, Any]:
        route = self.resolver.resolve(
            from_chain, to_chain, token, provider=BridgeProvider.STARGATE
        )
        amount = validate_amount(amount)
        slippage = validate_slippage(slippage)
        origin = route.from_chain.chain_id
        destination = route.to_chain.chain_id
        asset = route.source_symbol

        quote, swap = await asyncio.gather(
            self.stargate.quote(origin, destination, asset, amount, testnet),
            self.stargate.create_swap(
                origin, destination, asset, amount, recipient, slippage, testnet
            ),
        )

        reference = swap.reference_id
        if swap.synthetic:
            reference += " (synthetic)"
        logger.info(
            "stargate_swap_prepared",
            from_chain=route.from_chain.name,
            to_chain=route.to_chain.name,
            token=asset,
            swap_live=swap.success,
            synthetic=swap.synthetic,
        )
        return {
            "stargateSwap": {
                "fromChain": route.from_chain.name,
                "toChain": route.to_chain.name,
                "token": asset,
                "poolToken": self.stargate.map_token(asset),
                "amount": amount,
                "slippage": slippage,
                "recipientAddress": recipient,
                "provider": BridgeProvider.STARGATE.display_name,
                "quote": quote.to_dict(),
                "swap": swap.to_dict(),
                "instructions": [
                    "1. Stargate swap prepared with unified liquidity",
                    f"2. Approve {asset} for Stargate Router: {swap.contract_address}",
                    "3. Execute swap transaction with provided calldata",
                    f"4. Monitor swap progress via ID: {reference}",
                    f"5. Receive tokens on {route.to_chain.name} "
                    f"({quote.estimated_time})",
                ],
                "apiStatus": {
                    "quote": _status(quote.success, "live", "fallback"),
                    "swap": _status(swap.success, "created", "failed"),
                },
                "features": sorted(route.features),
                "network": "testnet" if testnet else "mainnet",
            }
        }

    def bridge_info(self) -> Dict[str, Any]:
        info = registry.describe_registry()
        contracts: Dict[str, Dict[str, str]] = {}
        for chain_id, entries in self.contracts.items():
            chain = registry.chain_by_id(chain_id)
            contracts[chain.name if chain else str(chain_id)] = dict(entries)
        info["contracts"] = contracts
        info["routeContracts"] = [
            {
                "fromChain": from_chain,
                "toChain": "any" if to_chain == "*" else to_chain,
                "contractChainId": chain_id,
                "contract": key,
            }
            for (from_chain, to_chain), (chain_id, key) in registry.ROUTE_CONTRACTS.items()
        ]
        return info


__all__ = ["BridgeEngine", "validate_amount", "validate_slippage"]
