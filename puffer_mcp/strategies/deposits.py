"""Deposit planning, strategy details and return simulation."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple

from puffer_mcp.errors import PufferMCPError
from puffer_mcp.models import Strategy

SIX_PLACES = Decimal("0.000001")
DAYS_PER_YEAR = Decimal(365)
DEFAULT_GAS_LIMIT = 200000
MINIMUM_DEPOSIT = "0.001"

DEPOSIT_RISKS: Tuple[str, ...] = (
    "Smart contract risk",
    "Impermanent loss (for LP strategies)",
    "Liquidation risk (for borrowing strategies)",
    "Protocol governance risk",
)
PLACEHOLDER_RISK = (
    "PLACEHOLDER CONTRACT ADDRESS - MUST GET REAL ADDRESS BEFORE EXECUTION"
)


class ProtocolKind(Enum):
    CURVE = "Curve"
    UNIFI = "Unifi"
    EULER = "Euler"
    UNISWAP = "Uniswap"
    GENERIC = "Generic"


# Exact, lower-cased protocol names as the strategy feeds publish them.
PROTOCOL_ALIASES: Dict[str, ProtocolKind] = {
    "curve": ProtocolKind.CURVE,
    "curve finance": ProtocolKind.CURVE,
    "unifi": ProtocolKind.UNIFI,
    "unifi vault": ProtocolKind.UNIFI,
    "puffer unifi": ProtocolKind.UNIFI,
    "euler": ProtocolKind.EULER,
    "euler finance": ProtocolKind.EULER,
    "euler v2": ProtocolKind.EULER,
    "uniswap": ProtocolKind.UNISWAP,
    "uniswap v3": ProtocolKind.UNISWAP,
    "uniswap v4": ProtocolKind.UNISWAP,
}


@dataclass(frozen=True)
class ProtocolPlan:
    steps: Tuple[str, ...]
    approvals: Tuple[str, ...]
    call_template: str
    fees: Tuple[Tuple[str, str], ...]
    borrow_call_template: Optional[str] = None


PROTOCOL_PLANS: Dict[ProtocolKind, ProtocolPlan] = {
    ProtocolKind.CURVE: ProtocolPlan(
        steps=(
            "1. Approve tokens for Curve contract",
            "2. Call add_liquidity() function",
            "3. Receive LP tokens",
            "4. Stake LP tokens for rewards",
        ),
        approvals=("pufETH", "wstETH"),
        call_template="add_liquidity([{amount}, 0], 0)",
        fees=(("deposit", "0%"), ("withdraw", "0.04%"), ("performance", "0%")),
    ),
    ProtocolKind.UNIFI: ProtocolPlan(
        steps=(
            "1. Approve pufETH for Unifi Vault",
            "2. Call deposit() function",
            "3. Receive vault shares",
        ),
        approvals=("pufETH",),
        call_template="deposit({amount})",
        fees=(("deposit", "0%"), ("withdraw", "0.1%"), ("performance", "2%")),
    ),
    ProtocolKind.EULER: ProtocolPlan(
        steps=(
            "1. Approve tokens for Euler",
            "2. Call deposit() or borrow() function",
            "3. Monitor liquidation ratio if borrowing",
        ),
        approvals=("pufETH",),
        call_template="deposit({amount})",
        borrow_call_template="borrow({amount})",
        fees=(("deposit", "0%"), ("withdraw", "0%"), ("borrowing", "Variable")),
    ),
    ProtocolKind.UNISWAP: ProtocolPlan(
        steps=(
            "1. Approve tokens for Uniswap",
            "2. Add liquidity to pool",
            "3. Receive LP tokens",
            "4. Stake for additional rewards",
        ),
        approvals=("pufETH", "WETH"),
        call_template="addLiquidity({amount})",
        fees=(("deposit", "0%"), ("withdraw", "0.1%"), ("performance", "0%")),
    ),
    ProtocolKind.GENERIC: ProtocolPlan(
        steps=(
            "1. Approve tokens for protocol",
            "2. Execute deposit transaction",
            "3. Receive strategy tokens/shares",
        ),
        approvals=("pufETH",),
        call_template="deposit({amount})",
        fees=(("deposit", "0%"), ("withdraw", "0.1%"), ("performance", "0%")),
    ),
}


def protocol_kind(strategy: Strategy) -> ProtocolKind:
    """Select the protocol variant by exact alias lookup, never by substring."""
    name = strategy.protocol if strategy.protocol != "Unknown" else strategy.action
    return PROTOCOL_ALIASES.get(name.strip().lower(), ProtocolKind.GENERIC)


def parse_amount(amount: str) -> Decimal:
    try:
        value = Decimal((amount or "").strip())
    except InvalidOperation:
        raise PufferMCPError(f"Amount '{amount}' is not a valid number") from None
    if not value.is_finite() or value <= 0:
        raise PufferMCPError(f"Amount must be greater than zero, got '{amount}'")
    return value


def parse_apr(apr: str) -> Decimal:
    """Return the APR as a fraction ("12.5%" -> 0.125)."""
    text = (apr or "").strip().rstrip("%").strip()
    try:
        value = Decimal(text)
    except InvalidOperation:
        raise PufferMCPError(f"Strategy APR '{apr}' is not numeric") from None
    if not value.is_finite():
        raise PufferMCPError(f"Strategy APR '{apr}' is not numeric")
    return value / 100


def _six(value: Decimal) -> str:
    try:
        rounded = value.quantize(SIX_PLACES, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise PufferMCPError(
            "Amount is too large to simulate; use a smaller deposit"
        ) from None
    return f"{rounded:f}"


def deposit_token(strategy: Strategy) -> str:
    for token in ("WETH", "USDC", "CARROT"):
        if token in strategy.name:
            return token
    return "pufETH"


def lockup_period(strategy: Strategy) -> Optional[str]:
    if "Pendle" in strategy.name:
        return "6 months"
    if "vePUFFER" in strategy.name:
        return "4 years max"
    return None


def strategy_risks(strategy: Strategy) -> List[str]:
    risks = ["Smart contract risk"]
    if "Liquidity" in strategy.action:
        risks.append("Impermanent loss")
    if "Borrow" in strategy.action:
        risks.append("Liquidation risk")
    if strategy.status == "Past":
        risks.append("Strategy discontinued")
    return risks


class DepositPlanner:
    """Advisory deposit data for cached strategies.

    ``contract_addresses`` maps a protocol to the contract users deposit
    into; protocols without an entry get a null address and a placeholder
    risk.
    """

    def __init__(
        self, contract_addresses: Optional[Mapping[ProtocolKind, str]] = None
    ) -> None:
        self._contracts = dict(contract_addresses or {})

    def contract_address(self, strategy: Strategy) -> Optional[str]:
        return self._contracts.get(protocol_kind(strategy))

    def fees(self, strategy: Strategy) -> Dict[str, str]:
        return dict(PROTOCOL_PLANS[protocol_kind(strategy)].fees)

    def deposit_instructions(
        self,
        strategy: Strategy,
        amount: str,
        slippage: float = 1.0,
        gas_limit: Optional[int] = None,
    ) -> Dict[str, Any]:
        parse_amount(amount)
        kind = protocol_kind(strategy)
        plan = PROTOCOL_PLANS[kind]
        call = plan.call_template
        if plan.borrow_call_template and "Borrow" in strategy.action:
            call = plan.borrow_call_template

        contract = self.contract_address(strategy)
        risks = list(DEPOSIT_RISKS)
        if contract is None:
            risks.insert(0, PLACEHOLDER_RISK)

        return {
            "strategy": strategy.name,
            "protocol": kind.value,
            "amount": amount,
            "slippage": slippage,
            "steps": list(plan.steps),
            "contractAddress": contract,
            "transactionData": call.format(amount=amount),
            "estimatedGas": gas_limit or DEFAULT_GAS_LIMIT,
            "requiredApprovals": list(plan.approvals),
            "fees": dict(plan.fees),
            "risks": risks,
        }

    def details(self, strategy: Strategy) -> Dict[str, Any]:
        return {
            "id": strategy.id,
            "name": strategy.name,
            "protocol": protocol_kind(strategy).value,
            "currentAPR": strategy.apr,
            "tvl": strategy.tvl,
            "dailyRewards": strategy.daily_rewards,
            "status": strategy.status,
            "depositToken": deposit_token(strategy),
            "minimumDeposit": MINIMUM_DEPOSIT,
            "fees": self.fees(strategy),
            "lockupPeriod": lockup_period(strategy),
            "risks": strategy_risks(strategy),
            "contractAddress": self.contract_address(strategy),
        }

    def simulate(self, strategy: Strategy, amount: str) -> Dict[str, Any]:
        principal = parse_amount(amount)
        apr = parse_apr(strategy.apr)
        daily_rate = apr / DAYS_PER_YEAR

        def projection(rate: Decimal) -> Dict[str, str]:
            return {
                "earnings": _six(principal * rate),
                "total": _six(principal * (1 + rate)),
            }

        return {
            "strategy": strategy.name,
            "depositAmount": amount,
            "currentAPR": strategy.apr,
            "projections": {
                "daily": projection(daily_rate),
                "weekly": projection(daily_rate * 7),
                "monthly": projection(daily_rate * 30),
                "yearly": projection(apr),
            },
            "fees": self.fees(strategy),
            "risks": strategy_risks(strategy),
        }


__all__ = [
    "DepositPlanner",
    "ProtocolKind",
    "PROTOCOL_ALIASES",
    "protocol_kind",
    "parse_apr",
]
