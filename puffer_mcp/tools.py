"""MCP tool definitions: argument models, dispatch and result shaping."""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional, Type, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from puffer_mcp.engine import BridgeEngine
from puffer_mcp.errors import (
    NoStrategyDataError,
    PufferMCPError,
    StrategyNotFoundError,
    UnknownToolError,
)
from puffer_mcp.models import Strategy
from puffer_mcp.strategies.cache import StrategyCache
from puffer_mcp.strategies.deposits import DepositPlanner
from puffer_mcp.utils.logging import bind_context, get_logger

logger = get_logger(__name__)

BRIDGE_DISCLAIMER = (
    "This is a simulation. Always verify bridge contract addresses and "
    "transaction data before executing. Bridge transactions are irreversible."
)
DEPOSIT_DISCLAIMER = (
    "This is a simulation. Always verify contract addresses and transaction "
    "data before executing."
)


class ToolArgs(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class GetStrategiesArgs(ToolArgs):
    include_details: bool = Field(
        default=True,
        alias="includeDetails",
        description="Include APR, TVL and reward fields for every strategy",
    )
    force_refresh: bool = Field(
        default=False,
        alias="forceRefresh",
        description="Import a fresh snapshot even if the cache is still valid",
    )


class StrategyArgs(ToolArgs):
    strategy_id: Union[int, str] = Field(
        alias="strategyId", description="Strategy ID or name"
    )


class DepositArgs(StrategyArgs):
    amount: str = Field(description="Amount to deposit (in ETH or token units)")
    wallet_address: Optional[str] = Field(
        default=None, alias="walletAddress", description="Depositing wallet"
    )
    slippage: float = Field(
        default=1.0,
        ge=0,
        le=50,
        allow_inf_nan=False,
        description="Maximum slippage tolerance in percent",
    )
    gas_limit: Optional[int] = Field(
        default=None, alias="gasLimit", gt=0, description="Gas limit override"
    )


class SimulateArgs(StrategyArgs):
    amount: str = Field(description="Amount to simulate depositing")


class BridgeInfoArgs(ToolArgs):
    include_details: bool = Field(
        default=True,
        alias="includeDetails",
        description="Include per-token route tables and contract addresses",
    )


class ExecuteBridgeArgs(ToolArgs):
    from_chain: str = Field(alias="fromChain", description="Source chain name")
    to_chain: str = Field(alias="toChain", description="Destination chain name")
    token: str = Field(description="Token to bridge (e.g. 'ETH', 'pufETH', 'USDC')")
    amount: str = Field(description="Amount to bridge")
    wallet_address: Optional[str] = Field(
        default=None,
        alias="walletAddress",
        description="Wallet address to receive tokens",
    )
    slippage: float = Field(
        default=1.0,
        ge=0,
        le=50,
        allow_inf_nan=False,
        description="Maximum slippage tolerance in percent",
    )
    testnet: bool = Field(default=False, description="Use provider testnet APIs")


class ProviderBridgeArgs(ToolArgs):
    from_chain: str = Field(alias="fromChain", description="Source chain name")
    to_chain: str = Field(alias="toChain", description="Destination chain name")
    token: str = Field(description="Token to bridge (e.g. 'pufETH', 'xpufETH')")
    amount: str = Field(description="Amount to bridge")
    recipient_address: str = Field(
        alias="recipientAddress", description="Recipient wallet address"
    )
    testnet: bool = Field(default=False, description="Use testnet API")


class StargateSwapArgs(ProviderBridgeArgs):
    slippage: float = Field(
        default=1.0,
        ge=0,
        le=50,
        allow_inf_nan=False,
        description="Maximum slippage tolerance in percent",
    )


@dataclass(frozen=True)
class ToolSpec:
    name: str
    description: str
    args_model: Type[ToolArgs]
    handler: Callable[[Any], Awaitable[Dict[str, Any]]]


def text_result(payload: Any) -> Dict[str, Any]:
    return {
        "content": [{"type": "text", "text": json.dumps(payload, indent=2)}],
    }


def error_result(message: str) -> Dict[str, Any]:
    return {
        "content": [{"type": "text", "text": message}],
        "isError": True,
    }


def _validation_message(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ())) or "arguments"
        parts.append(f"{location}: {error.get('msg')}")
    return "Invalid arguments: " + "; ".join(parts)


class ToolRegistry:
    """Expose the bridge engine and strategy cache as MCP tools."""

    def __init__(
        self,
        engine: BridgeEngine,
        cache: StrategyCache,
        planner: Optional[DepositPlanner] = None,
        now: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self.engine = engine
        self.cache = cache
        self.planner = planner or DepositPlanner()
        self._now = now
        self._tools: Dict[str, ToolSpec] = {}
        for spec in self._build_specs():
            self._tools[spec.name] = spec

    def _build_specs(self) -> List[ToolSpec]:
        return [
            ToolSpec(
                "get_defi_strategies",
                "List Puffer Finance DeFi strategies from the strategy cache",
                GetStrategiesArgs,
                self._get_strategies,
            ),
            ToolSpec(
                "get_strategy_details",
                "Get detailed information about a specific strategy",
                StrategyArgs,
                self._get_strategy_details,
            ),
            ToolSpec(
                "deposit_to_strategy",
                "Prepare deposit instructions for a specific DeFi strategy",
                DepositArgs,
                self._deposit_to_strategy,
            ),
            ToolSpec(
                "simulate_deposit",
                "Simulate a deposit to estimate returns",
                SimulateArgs,
                self._simulate_deposit,
            ),
            ToolSpec(
                "get_bridge_info",
                "Describe supported bridge chains, providers and routes",
                BridgeInfoArgs,
                self._get_bridge_info,
            ),
            ToolSpec(
                "execute_bridge",
                "Prepare bridge transaction instructions between two chains",
                ExecuteBridgeArgs,
                self._execute_bridge,
            ),
            ToolSpec(
                "create_everclear_intent",
                "Create an Everclear bridge intent with real-time API data",
                ProviderBridgeArgs,
                self._create_everclear_intent,
            ),
            ToolSpec(
                "create_stargate_swap",
                "Create a Stargate Finance bridge swap with unified liquidity",
                StargateSwapArgs,
                self._create_stargate_swap,
            ),
        ]

    @property
    def names(self) -> List[str]:
        return list(self._tools)

    def describe(self) -> List[Dict[str, Any]]:
        """Tool listing for ``tools/list``."""
        return [
            {
                "name": spec.name,
                "description": spec.description,
                "inputSchema": spec.args_model.model_json_schema(by_alias=True),
            }
            for spec in self._tools.values()
        ]

    async def call(
        self, name: str, arguments: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """Run a tool and return an MCP ``CallToolResult`` dict.

        Raises :class:`UnknownToolError` for names that are not registered;
        every other failure is reported as an ``isError`` result.
        """
        spec = self._tools.get(name)
        if spec is None:
            raise UnknownToolError(name)

        bind_context(tool=name)
        try:
            args = spec.args_model.model_validate(arguments or {})
        except ValidationError as exc:
            logger.info("tool_arguments_invalid", tool=name, errors=exc.error_count())
            return error_result(_validation_message(exc))

        try:
            payload = await spec.handler(args)
        except PufferMCPError as exc:
            logger.warning("tool_call_rejected", tool=name, error=str(exc))
            return error_result(str(exc))
        except Exception:
            logger.error("tool_call_failed", tool=name, exc_info=True)
            return error_result(f"Internal error while running {name}")

        logger.info("tool_call_completed", tool=name)
        return text_result(payload)

    def _timestamp(self) -> str:
        return self._now().isoformat()

    async def _strategy(self, identifier: Union[int, str]) -> Strategy:
        await self.cache.get_or_refresh()
        strategy = self.cache.find(identifier)
        if strategy is None:
            raise StrategyNotFoundError(identifier)
        return strategy

    async def _get_strategies(self, args: GetStrategiesArgs) -> Dict[str, Any]:
        if args.force_refresh:
            # One import per forced call, even when it fails.
            await self.cache.refresh()
            strategies = self.cache.strategies
            if not strategies:
                raise NoStrategyDataError("No strategy data available")
        else:
            strategies = await self.cache.get_or_refresh()
        if args.include_details:
            records = [strategy.to_dict() for strategy in strategies]
        else:
            records = [
                {"id": s.id, "name": s.name, "status": s.status} for s in strategies
            ]
        return {
            "strategies": records,
            "totalStrategies": len(records),
            "cacheAgeSeconds": round(self.cache.age() or 0.0, 3),
            "timestamp": self._timestamp(),
        }

    async def _get_strategy_details(self, args: StrategyArgs) -> Dict[str, Any]:
        strategy = await self._strategy(args.strategy_id)
        details = self.planner.details(strategy)
        details["lastUpdated"] = self._timestamp()
        return details

    async def _deposit_to_strategy(self, args: DepositArgs) -> Dict[str, Any]:
        strategy = await self._strategy(args.strategy_id)
        plan = self.planner.deposit_instructions(
            strategy, args.amount, args.slippage, args.gas_limit
        )
        return {
            "strategy": strategy.to_dict(),
            "depositInstructions": plan,
            "amount": args.amount,
            "walletAddress": args.wallet_address,
            "estimatedGas": plan["estimatedGas"],
            "contractAddress": plan["contractAddress"],
            "transactionData": plan["transactionData"],
            "warning": DEPOSIT_DISCLAIMER,
            "timestamp": self._timestamp(),
        }

    async def _simulate_deposit(self, args: SimulateArgs) -> Dict[str, Any]:
        strategy = await self._strategy(args.strategy_id)
        simulation = self.planner.simulate(strategy, args.amount)
        simulation["warning"] = DEPOSIT_DISCLAIMER
        simulation["timestamp"] = self._timestamp()
        return simulation

    async def _get_bridge_info(self, args: BridgeInfoArgs) -> Dict[str, Any]:
        info = self.engine.bridge_info()
        if not args.include_details:
            info.pop("routes", None)
            info.pop("contracts", None)
        info["timestamp"] = self._timestamp()
        return info

    async def _execute_bridge(self, args: ExecuteBridgeArgs) -> Dict[str, Any]:
        instruction = await self.engine.build_route(
            args.from_chain,
            args.to_chain,
            args.token,
            args.amount,
            recipient=args.wallet_address,
            slippage=args.slippage,
            testnet=args.testnet,
        )
        return {
            "bridgeTransaction": {
                "fromChain": instruction.from_chain,
                "toChain": instruction.to_chain,
                "token": instruction.token,
                "amount": instruction.amount,
                "slippage": instruction.slippage,
                "destinationAddress": args.wallet_address or "Same wallet",
            },
            "instructions": instruction.to_dict(),
            "estimatedFees": dict(instruction.fees),
            "estimatedTime": instruction.estimated_time,
            "contractAddress": instruction.contract_address,
            "transactionData": instruction.transaction_data,
            "warning": BRIDGE_DISCLAIMER,
            "timestamp": self._timestamp(),
        }

    async def _create_everclear_intent(
        self, args: ProviderBridgeArgs
    ) -> Dict[str, Any]:
        payload = await self.engine.create_everclear_intent(
            args.from_chain,
            args.to_chain,
            args.token,
            args.amount,
            args.recipient_address,
            testnet=args.testnet,
        )
        payload["warning"] = BRIDGE_DISCLAIMER
        payload["timestamp"] = self._timestamp()
        return payload

    async def _create_stargate_swap(self, args: StargateSwapArgs) -> Dict[str, Any]:
        payload = await self.engine.create_stargate_swap(
            args.from_chain,
            args.to_chain,
            args.token,
            args.amount,
            args.recipient_address,
            slippage=args.slippage,
            testnet=args.testnet,
        )
        payload["warning"] = BRIDGE_DISCLAIMER
        payload["timestamp"] = self._timestamp()
        return payload


__all__ = ["ToolRegistry", "ToolSpec", "text_result", "error_result"]
