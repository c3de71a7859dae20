"""Turn a resolved route plus optional live provider data into instructions.

Templates are plain data checked in a fixed priority order: exact chain
pairs first, then provider-specific templates, then a fully generic one.
The first template that matches is used on its own; templates are never
merged.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, FrozenSet, Mapping, Optional, Sequence, Tuple

from puffer_mcp import registry
from puffer_mcp.errors import ComposerAmbiguityError
from puffer_mcp.models import (
    BridgeInstruction,
    BridgeProvider,
    LiveProviderData,
    ResolvedRoute,
)
from puffer_mcp.utils.logging import get_logger

logger = get_logger(__name__)

BASELINE_RISKS: Tuple[str, ...] = (
    "Bridge smart contract risk",
    "Cross-chain relay failures",
    "Extended confirmation times during network congestion",
    "Potential MEV/front-running on destination chain",
)
ARBITRUM_EXIT_RISK = "7-day withdrawal delay when exiting to Ethereum"
PLACEHOLDER_RISK = (
    "PLACEHOLDER CONTRACT ADDRESS - MUST GET REAL ADDRESS BEFORE EXECUTION"
)


@dataclass(frozen=True)
class InstructionTemplate:
    """Step list, fee kinds and timing for one family of routes.

    ``from_chain`` / ``to_chains`` left empty match any chain, ``provider``
    left as ``None`` matches any provider (including none). ``live_fee_kind``
    names the fee entry that a provider quote overwrites. Step strings are
    ``str.format`` templates over the route fields (see ``_step_fields``).
    """

    name: str
    steps: Tuple[str, ...]
    fees: Tuple[Tuple[str, str], ...]
    estimated_time: str
    from_chain: Optional[str] = None
    to_chains: FrozenSet[str] = frozenset()
    provider: Optional[BridgeProvider] = None
    live_fee_kind: Optional[str] = None
    live_steps: Tuple[str, ...] = ()
    risks: Tuple[str, ...] = ()

    def matches(self, route: ResolvedRoute) -> bool:
        if self.from_chain is not None and self.from_chain != route.from_chain.name:
            return False
        if self.to_chains and route.to_chain.name not in self.to_chains:
            return False
        if self.provider is not None and self.provider is not route.provider:
            return False
        return True


def _pair(
    name: str,
    from_chain: str,
    to_chains: Sequence[str],
    steps: Sequence[str],
    fees: Sequence[Tuple[str, str]],
    estimated_time: str,
    **extra,
) -> InstructionTemplate:
    return InstructionTemplate(
        name=name,
        steps=tuple(steps),
        fees=tuple(fees),
        estimated_time=estimated_time,
        from_chain=from_chain,
        to_chains=frozenset(to_chains),
        **extra,
    )


PAIR_TEMPLATES: Tuple[InstructionTemplate, ...] = (
    _pair(
        "ethereum-base-everclear",
        "Ethereum",
        ["Base"],
        [
            "1. Approve tokens for EVERCLEAR bridge contract",
            "2. Create Everclear intent via API",
            "3. Execute bridge transaction with intent data",
            "4. Receive {destination_token} on {to_chain} ({time})",
        ],
        [("bridgeFee", "~$1-3"), ("everclearFee", "~$0.50")],
        "1-5 minutes",
        provider=BridgeProvider.EVERCLEAR,
        live_fee_kind="everclearFee",
        live_steps=("5. Real-time data from Everclear API",),
    ),
    _pair(
        "ethereum-base-portal",
        "Ethereum",
        ["Base"],
        [
            "1. Approve tokens for Base Portal contract",
            "2. Call depositTransaction() function on Portal",
            "3. Wait for L1 confirmation",
            "4. Wait for L2 relay ({time})",
        ],
        [("bridgeFee", "~$2-8"), ("l2Gas", "~$0.10")],
        "1-5 minutes",
    ),
    _pair(
        "base-ethereum-withdrawal",
        "Base",
        ["Ethereum"],
        [
            "1. Initiate withdrawal on Base L1StandardBridge",
            "2. Wait for challenge period (7 days)",
            "3. Execute withdrawal on Ethereum mainnet",
        ],
        [("withdrawalFee", "~$0.50-2"), ("l1ExecutionGas", "~$10-40")],
        "7 days + L1 confirmation",
        risks=("7-day challenge period before funds are released on Ethereum",),
    ),
    _pair(
        "ethereum-l2-ccip",
        "Ethereum",
        ["Soneium", "Arbitrum", "Berachain"],
        [
            "1. Approve {source_token} for Chainlink CCIP bridge",
            "2. Call ccipSend() function to {to_chain}",
            "3. Wait for Chainlink validation",
            "4. Receive {destination_token} on {to_chain} ({time})",
        ],
        [("bridgeFee", "~$3-12"), ("chainlinkFee", "~$1-5")],
        "5-15 minutes",
        provider=BridgeProvider.CHAINLINK,
    ),
    _pair(
        "ethereum-l2-portal",
        "Ethereum",
        ["Soneium", "Arbitrum", "Berachain"],
        [
            "1. Approve tokens for {to_chain} Portal contract",
            "2. Call depositTransaction() function",
            "3. Wait for L1 confirmation",
            "4. Wait for L2 relay ({time})",
        ],
        [("bridgeFee", "~$1-8"), ("l2Gas", "~$0.05")],
        "1-10 minutes",
    ),
    _pair(
        "ethereum-zircuit-everclear",
        "Ethereum",
        ["Zircuit"],
        [
            "1. Approve {source_token} for EVERCLEAR bridge",
            "2. Call bridge() function to Zircuit",
            "3. Wait for EVERCLEAR validation",
            "4. Receive {destination_token} on Zircuit ({time})",
        ],
        [("bridgeFee", "~$1-5"), ("everclearFee", "~$0.30")],
        "1-10 minutes",
        provider=BridgeProvider.EVERCLEAR,
        live_fee_kind="everclearFee",
    ),
    _pair(
        "ethereum-zircuit-portal",
        "Ethereum",
        ["Zircuit"],
        [
            "1. Approve tokens for Zircuit Portal contract",
            "2. Call depositTransaction() function",
            "3. Wait for L1 confirmation",
            "4. Wait for L2 relay ({time})",
        ],
        [("bridgeFee", "~$1-8"), ("l2Gas", "~$0.03")],
        "1-10 minutes",
    ),
    _pair(
        "ethereum-bnb",
        "Ethereum",
        ["BNB Chain"],
        [
            "1. Approve tokens for BNB Chain bridge",
            "2. Execute cross-chain transfer",
            "3. Wait for validator confirmations",
            "4. Receive tokens on BNB Chain",
        ],
        [("bridgeFee", "~$1-5"), ("gasEstimate", "~$0.20")],
        "3-10 minutes",
    ),
    _pair(
        "ethereum-apechain-everclear",
        "Ethereum",
        ["Apechain"],
        [
            "1. Approve {source_token} for EVERCLEAR bridge",
            "2. Call bridge() function to {to_chain}",
            "3. Wait for EVERCLEAR validation",
            "4. Receive {destination_token} on {to_chain} ({time})",
        ],
        [("bridgeFee", "~$1-8"), ("everclearFee", "~$0.50-1")],
        "3-10 minutes",
        provider=BridgeProvider.EVERCLEAR,
        live_fee_kind="everclearFee",
    ),
    _pair(
        "ethereum-apechain-validators",
        "Ethereum",
        ["Apechain"],
        [
            "1. Approve tokens for {to_chain} bridge",
            "2. Execute cross-chain transaction",
            "3. Wait for validator confirmations",
            "4. Wait for token relay ({time})",
        ],
        [("bridgeFee", "~$1-10"), ("validatorFee", "~$0.20-1")],
        "5-15 minutes",
    ),
)

PROVIDER_TEMPLATES: Tuple[InstructionTemplate, ...] = (
    InstructionTemplate(
        name="everclear",
        steps=(
            "1. Approve {source_token} for EVERCLEAR bridge contract",
            "2. Create Everclear intent via API",
            "3. Execute bridge transaction with intent data",
            "4. Receive {destination_token} on {to_chain} ({time})",
        ),
        fees=(("bridgeFee", "~$1-5"), ("everclearFee", "~$0.50")),
        estimated_time="3-8 minutes",
        provider=BridgeProvider.EVERCLEAR,
        live_fee_kind="everclearFee",
        live_steps=("5. Real-time data from Everclear API",),
    ),
    InstructionTemplate(
        name="stargate",
        steps=(
            "1. Approve {source_token} for the Stargate Router",
            "2. Call swap() on the Stargate Router to {to_chain}",
            "3. Wait for source chain confirmation",
            "4. Receive {destination_token} on {to_chain} ({time})",
        ),
        fees=(("bridgeFee", "~$1-5"), ("stargateFee", "~0.0005 ETH")),
        estimated_time="1-3 minutes",
        provider=BridgeProvider.STARGATE,
        live_fee_kind="stargateFee",
    ),
    InstructionTemplate(
        name="chainlink-ccip",
        steps=(
            "1. Approve {source_token} for Chainlink CCIP bridge",
            "2. Call ccipSend() function to {to_chain}",
            "3. Wait for Chainlink validation",
            "4. Receive {destination_token} on {to_chain} ({time})",
        ),
        fees=(("bridgeFee", "~$3-12"), ("chainlinkFee", "~$1-5")),
        estimated_time="5-15 minutes",
        provider=BridgeProvider.CHAINLINK,
    ),
)

GENERIC_TEMPLATE = InstructionTemplate(
    name="generic",
    steps=(
        "1. Approve tokens for bridge contract",
        "2. Execute bridge transaction",
        "3. Wait for source chain confirmation",
        "4. Wait for destination chain relay",
        "5. Verify tokens in destination wallet",
    ),
    fees=(("bridgeFee", "~$2-20"), ("gasEstimate", "Variable")),
    estimated_time="5-15 minutes",
)

DEFAULT_TEMPLATES: Tuple[InstructionTemplate, ...] = (
    PAIR_TEMPLATES + PROVIDER_TEMPLATES + (GENERIC_TEMPLATE,)
)


class InstructionComposer:
    """Build :class:`BridgeInstruction` objects without any I/O.

    Output depends only on the arguments, so composing the same inputs twice
    yields identical instructions.
    """

    def __init__(
        self,
        contracts: Optional[Mapping[int, Mapping[str, str]]] = None,
        templates: Sequence[InstructionTemplate] = DEFAULT_TEMPLATES,
    ) -> None:
        self._contracts = contracts if contracts is not None else registry.DEFAULT_CONTRACTS
        self._templates = tuple(templates)

    def select_template(self, route: ResolvedRoute) -> InstructionTemplate:
        for template in self._templates:
            if template.matches(route):
                return template
        logger.error(
            "no_instruction_template",
            from_chain=route.from_chain.name,
            to_chain=route.to_chain.name,
            provider=route.provider.value if route.provider else None,
        )
        raise ComposerAmbiguityError(
            f"No instruction template for {route.from_chain.name} -> "
            f"{route.to_chain.name}"
        )

    def compose(
        self,
        route: ResolvedRoute,
        amount: str,
        slippage: float = 1.0,
        live: Optional[LiveProviderData] = None,
    ) -> BridgeInstruction:
        template = self.select_template(route)
        live = live or LiveProviderData()
        quote = live.quote
        limits = live.limits

        estimated_time = template.estimated_time
        if quote is not None and quote.success and quote.estimated_time:
            estimated_time = quote.estimated_time

        fees: Dict[str, str] = dict(template.fees)
        if quote is not None and template.live_fee_kind:
            # Failed quotes still carry the provider's fallback fee.
            fees[template.live_fee_kind] = quote.fee

        fields = _step_fields(route, estimated_time)
        steps = [step.format(**fields) for step in template.steps]
        if quote is not None and quote.success:
            steps.extend(step.format(**fields) for step in template.live_steps)

        contract = self._resolve_contract(route)
        risks = []
        if contract is None:
            risks.append(PLACEHOLDER_RISK)
        risks.extend(BASELINE_RISKS)
        risks.extend(template.risks)
        if "Arbitrum" in (route.from_chain.name, route.to_chain.name):
            risks.append(ARBITRUM_EXIT_RISK)

        provider_data = None
        if quote is not None or limits is not None:
            provider_data = {
                "quote": quote.to_dict() if quote else None,
                "limits": limits.to_dict() if limits else None,
            }

        return BridgeInstruction(
            from_chain=route.from_chain.name,
            to_chain=route.to_chain.name,
            token=route.token,
            amount=amount,
            slippage=slippage,
            provider=route.provider.value if route.provider else None,
            template=template.name,
            token_mapping={
                "from": {"chain": route.from_chain.name, "token": route.source_symbol},
                "to": {"chain": route.to_chain.name, "token": route.destination_symbol},
            },
            steps=tuple(steps),
            contract_address=contract[0] if contract else None,
            contract_type=contract[1] if contract else None,
            transaction_data=_transaction_data(route, amount),
            fees=fees,
            estimated_time=estimated_time,
            required_approvals=_required_approvals(route),
            risks=tuple(risks),
            limits=_limits_dict(live),
            provider_data=provider_data,
            features=tuple(sorted(route.features)),
        )

    def _resolve_contract(self, route: ResolvedRoute) -> Optional[Tuple[str, str]]:
        found = registry.route_contract(
            route.from_chain.name, route.to_chain.name, self._contracts
        )
        if found:
            return found
        return registry.chain_fallback_contract(route.from_chain.chain_id, self._contracts)


def _step_fields(route: ResolvedRoute, estimated_time: str) -> Dict[str, str]:
    return {
        "from_chain": route.from_chain.name,
        "to_chain": route.to_chain.name,
        "token": route.token,
        "source_token": route.source_symbol,
        "destination_token": route.destination_symbol,
        "time": estimated_time,
    }


def _required_approvals(route: ResolvedRoute) -> Tuple[str, ...]:
    if route.source_symbol == route.from_chain.native_symbol:
        return ()
    return (route.source_symbol,)


def _transaction_data(route: ResolvedRoute, amount: str) -> str:
    native = route.from_chain.native_symbol
    if route.source_symbol == native:
        return f'bridge{native}("{route.to_chain.name}", "{amount}")'
    return f'bridgeERC20("{route.source_symbol}", "{amount}", "{route.to_chain.name}")'


def _limits_dict(live: LiveProviderData) -> Optional[Dict[str, str]]:
    limits = live.limits
    if limits is None or not limits.success:
        return None
    return {
        "minAmount": limits.min_amount,
        "maxAmount": limits.max_amount,
        "liquidity": limits.liquidity,
    }


__all__ = [
    "InstructionComposer",
    "InstructionTemplate",
    "DEFAULT_TEMPLATES",
    "BASELINE_RISKS",
    "PLACEHOLDER_RISK",
]
