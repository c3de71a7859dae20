"""Shared value types for routes, provider results and instructions."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, Optional, Tuple


class BridgeProvider(Enum):
    """Bridge providers known to the route registry."""

    EVERCLEAR = "EVERCLEAR"  # intent-based
    STARGATE = "STARGATE"  # liquidity-pool
    CHAINLINK = "CHAINLINK"  # enterprise messaging (CCIP)

    @property
    def display_name(self) -> str:
        return PROVIDER_DISPLAY_NAMES[self]


PROVIDER_DISPLAY_NAMES: Dict[BridgeProvider, str] = {
    BridgeProvider.EVERCLEAR: "Everclear",
    BridgeProvider.STARGATE: "Stargate Finance",
    BridgeProvider.CHAINLINK: "Chainlink CCIP",
}


@dataclass(frozen=True)
class ChainRef:
    """A supported chain and its native gas asset."""

    name: str
    chain_id: int
    native_symbol: str


@dataclass(frozen=True)
class TokenRoute:
    """One provider's presence for a wrapped asset on one chain."""

    token: str
    chain_id: int
    on_chain_symbol: str
    provider: BridgeProvider
    features: FrozenSet[str] = frozenset()


@dataclass(frozen=True)
class ResolvedRoute:
    """Output of the route resolver.

    ``provider`` is ``None`` for generic (non multi-provider) tokens.
    """

    from_chain: ChainRef
    to_chain: ChainRef
    token: str
    source_symbol: str
    destination_symbol: str
    provider: Optional[BridgeProvider] = None
    features: FrozenSet[str] = frozenset()


@dataclass(frozen=True)
class Quote:
    """Provider quote; on failure the fee/time fields hold fallback values."""

    provider: BridgeProvider
    success: bool
    fee: str
    estimated_time: str
    route: str
    gas_estimate: Optional[str] = None
    raw: Optional[Dict[str, Any]] = None
    fallback: Optional[Dict[str, Any]] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "success": self.success,
            "fee": self.fee,
            "estimatedTime": self.estimated_time,
            "route": self.route,
        }
        if self.gas_estimate is not None:
            payload["gasEstimate"] = self.gas_estimate
        if not self.success:
            payload["error"] = self.error
            payload["fallback"] = dict(self.fallback or {})
        return payload


@dataclass(frozen=True)
class RouteLimits:
    provider: BridgeProvider
    success: bool
    min_amount: str
    max_amount: str
    liquidity: str
    fallback: Optional[Dict[str, Any]] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "success": self.success,
            "minAmount": self.min_amount,
            "maxAmount": self.max_amount,
            "liquidity": self.liquidity,
        }
        if not self.success:
            payload["error"] = self.error
        return payload


@dataclass(frozen=True)
class IntentResult:
    """Transaction shape returned by intent creation or swap creation.

    ``synthetic`` marks a reference id generated locally rather than issued
    by the provider.
    """

    provider: BridgeProvider
    success: bool
    reference_id: str
    synthetic: bool
    contract_address: str
    call_data: str
    transaction_data: str
    value: str = "0"
    gas_limit: Optional[str] = None
    method: Optional[str] = None
    note: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        payload = {
            "success": self.success,
            "referenceId": self.reference_id,
            "syntheticReference": self.synthetic,
            "contractAddress": self.contract_address,
            "calldata": self.call_data,
            "transactionData": self.transaction_data,
            "value": self.value,
        }
        for key, value in (
            ("gasLimit", self.gas_limit),
            ("method", self.method),
            ("note", self.note),
            ("error", self.error),
        ):
            if value is not None:
                payload[key] = value
        return payload


@dataclass(frozen=True)
class LiveProviderData:
    """Whatever the provider clients returned for one request.

    Either part may be absent; the composer must not depend on arrival order.
    """

    quote: Optional[Quote] = None
    limits: Optional[RouteLimits] = None


@dataclass(frozen=True)
class BridgeInstruction:
    """Advisory, provider-specific instruction set for one bridge request."""

    from_chain: str
    to_chain: str
    token: str
    amount: str
    slippage: float
    provider: Optional[str]
    template: str
    token_mapping: Dict[str, Dict[str, str]]
    steps: Tuple[str, ...]
    contract_address: Optional[str]
    contract_type: Optional[str]
    transaction_data: str
    fees: Dict[str, str]
    estimated_time: str
    required_approvals: Tuple[str, ...]
    risks: Tuple[str, ...]
    limits: Optional[Dict[str, str]] = None
    provider_data: Optional[Dict[str, Any]] = None
    features: Tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        payload = asdict(self)
        return {
            "fromChain": payload["from_chain"],
            "toChain": payload["to_chain"],
            "token": payload["token"],
            "amount": payload["amount"],
            "slippage": payload["slippage"],
            "bridgeProvider": payload["provider"],
            "template": payload["template"],
            "tokenMapping": payload["token_mapping"],
            "steps": list(payload["steps"]),
            "contractAddress": payload["contract_address"],
            "contractType": payload["contract_type"],
            "transactionData": payload["transaction_data"],
            "fees": payload["fees"],
            "estimatedTime": payload["estimated_time"],
            "requiredApprovals": list(payload["required_approvals"]),
            "risks": list(payload["risks"]),
            "limits": payload["limits"],
            "providerData": payload["provider_data"],
            "features": list(payload["features"]),
        }


@dataclass(frozen=True)
class Strategy:
    """A yield strategy record from one importer generation."""

    id: int
    name: str
    status: str = "Unknown"
    action: str = "Unknown"
    apr: str = "Unknown"
    tvl: str = "Unknown"
    daily_rewards: str = "Unknown"
    protocol: str = "Unknown"
    source: str = "api"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "status": self.status,
            "action": self.action,
            "apr": self.apr,
            "tvl": self.tvl,
            "dailyRewards": self.daily_rewards,
            "protocol": self.protocol,
            "source": self.source,
        }


__all__ = [
    "BridgeProvider",
    "ChainRef",
    "TokenRoute",
    "ResolvedRoute",
    "Quote",
    "RouteLimits",
    "IntentResult",
    "LiveProviderData",
    "BridgeInstruction",
    "Strategy",
]
