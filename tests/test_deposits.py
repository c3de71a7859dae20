"""Tests for deposit planning, strategy details and simulation."""

import pytest

from puffer_mcp.errors import PufferMCPError
from puffer_mcp.models import Strategy
from puffer_mcp.strategies import DepositPlanner, ProtocolKind
from puffer_mcp.strategies.deposits import PLACEHOLDER_RISK, protocol_kind


@pytest.fixture
def planner() -> DepositPlanner:
    return DepositPlanner()


@pytest.mark.parametrize(
    "protocol, expected",
    [
        ("Curve", ProtocolKind.CURVE),
        ("euler v2", ProtocolKind.EULER),
        ("Uniswap V3", ProtocolKind.UNISWAP),
        ("Curvey Finance", ProtocolKind.GENERIC),
        ("SuperEuler", ProtocolKind.GENERIC),
    ],
)
def test_protocol_kind_uses_exact_aliases(protocol, expected) -> None:
    assert protocol_kind(Strategy(id=1, name="x", protocol=protocol)) is expected


def test_protocol_kind_falls_back_to_action() -> None:
    strategy = Strategy(id=1, name="x", action="Unifi Vault")
    assert protocol_kind(strategy) is ProtocolKind.UNIFI


def test_deposit_instructions_without_contract_flag_placeholder(planner) -> None:
    strategy = Strategy(id=1, name="Curve pool", protocol="Curve")

    plan = planner.deposit_instructions(strategy, "2.5")

    assert plan["protocol"] == "Curve"
    assert plan["contractAddress"] is None
    assert plan["risks"][0] == PLACEHOLDER_RISK
    assert plan["transactionData"] == "add_liquidity([2.5, 0], 0)"
    assert plan["requiredApprovals"] == ["pufETH", "wstETH"]
    assert plan["estimatedGas"] == 200000


def test_deposit_instructions_with_configured_contract() -> None:
    planner = DepositPlanner({ProtocolKind.EULER: "0xeuler"})
    strategy = Strategy(id=2, name="Euler", protocol="Euler", action="Borrow pufETH")

    plan = planner.deposit_instructions(strategy, "1", gas_limit=350000)

    assert plan["contractAddress"] == "0xeuler"
    assert PLACEHOLDER_RISK not in plan["risks"]
    assert plan["transactionData"] == "borrow(1)"
    assert plan["estimatedGas"] == 350000


def test_deposit_instructions_reject_bad_amount(planner) -> None:
    with pytest.raises(PufferMCPError):
        planner.deposit_instructions(Strategy(id=1, name="x"), "-1")


def test_details_lockup_and_risks(planner) -> None:
    strategy = Strategy(
        id=4,
        name="Pendle pufETH WETH",
        action="Provide Liquidity",
        status="Past",
        apr="8%",
    )

    details = planner.details(strategy)

    assert details["lockupPeriod"] == "6 months"
    assert details["depositToken"] == "WETH"
    assert details["risks"] == [
        "Smart contract risk",
        "Impermanent loss",
        "Strategy discontinued",
    ]
    assert details["protocol"] == "Generic"


def test_details_without_lockup(planner) -> None:
    assert planner.details(Strategy(id=1, name="Curve"))["lockupPeriod"] is None


def test_simulate_projects_returns(planner) -> None:
    strategy = Strategy(id=1, name="Vault", apr="36.5%")

    result = planner.simulate(strategy, "10")

    projections = result["projections"]
    assert projections["daily"] == {"earnings": "0.010000", "total": "10.010000"}
    assert projections["weekly"] == {"earnings": "0.070000", "total": "10.070000"}
    assert projections["monthly"] == {"earnings": "0.300000", "total": "10.300000"}
    assert projections["yearly"] == {"earnings": "3.650000", "total": "13.650000"}


def test_simulate_rejects_non_numeric_apr(planner) -> None:
    with pytest.raises(PufferMCPError, match="APR"):
        planner.simulate(Strategy(id=1, name="Vault", apr="Unknown"), "1")


@pytest.mark.parametrize("amount", ["1e30", "1e40"])
def test_simulate_rejects_amount_beyond_decimal_precision(planner, amount) -> None:
    with pytest.raises(PufferMCPError, match="too large"):
        planner.simulate(Strategy(id=1, name="Vault", apr="5%"), amount)
