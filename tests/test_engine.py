"""End-to-end tests for the bridge engine with mocked provider APIs."""

import json

import httpx
import pytest

from puffer_mcp import registry
from puffer_mcp.config import Settings
from puffer_mcp.engine import BridgeEngine, validate_amount, validate_slippage
from puffer_mcp.errors import RouteValidationError
from puffer_mcp.providers import EverclearClient, StargateClient


class CountingTransport:
    """Route mock responses by URL path and count every request."""

    def __init__(self, routes=None) -> None:
        self.routes = routes or {}
        self.calls = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        responder = self.routes.get(request.url.path)
        if responder is None:
            return httpx.Response(404)
        return responder(request)


def _engine(transport: CountingTransport) -> BridgeEngine:
    http = httpx.AsyncClient(transport=httpx.MockTransport(transport))
    return BridgeEngine(
        everclear=EverclearClient(http_client=http),
        stargate=StargateClient(http_client=http),
    )


def _timeout(request: httpx.Request) -> httpx.Response:
    raise httpx.ReadTimeout("timed out", request=request)


@pytest.mark.asyncio
async def test_quote_timeout_still_yields_instructions() -> None:
    transport = CountingTransport(
        {
            "/routes/quotes": _timeout,
            "/routes/limits": lambda r: httpx.Response(
                200, json={"minAmount": "0.01", "maxAmount": "250"}
            ),
        }
    )
    engine = _engine(transport)

    instruction = await engine.build_route("Ethereum", "Base", "xpufETH", "1.5")

    assert instruction.provider == "EVERCLEAR"
    assert instruction.steps
    assert instruction.fees["everclearFee"] == "0.001 ETH"
    assert instruction.contract_address == registry.DEFAULT_CONTRACTS[8453]["portal"]
    assert instruction.limits == {
        "minAmount": "0.01",
        "maxAmount": "250",
        "liquidity": "Available",
    }
    assert sorted(call.url.path for call in transport.calls) == [
        "/routes/limits",
        "/routes/quotes",
    ]


@pytest.mark.asyncio
async def test_same_chain_issues_no_http_calls() -> None:
    transport = CountingTransport()
    engine = _engine(transport)

    with pytest.raises(RouteValidationError, match="same chain"):
        await engine.build_route("Base", "Base", "xpufETH", "1")
    with pytest.raises(RouteValidationError, match="same chain"):
        await engine.create_everclear_intent("Base", "Base", "xpufETH", "1", "0xme")

    assert transport.calls == []


@pytest.mark.asyncio
async def test_invalid_amount_issues_no_http_calls() -> None:
    transport = CountingTransport()
    engine = _engine(transport)

    with pytest.raises(RouteValidationError, match="not a valid number"):
        await engine.build_route("Ethereum", "Base", "xpufETH", "lots")
    with pytest.raises(RouteValidationError, match="greater than zero"):
        await engine.create_stargate_swap("Ethereum", "Base", "ETH", "0", "0xme")

    assert transport.calls == []


@pytest.mark.asyncio
async def test_slippage_out_of_range() -> None:
    engine = _engine(CountingTransport())
    with pytest.raises(RouteValidationError, match="Slippage"):
        await engine.build_route("Ethereum", "Base", "USDC", "1", slippage=75)


@pytest.mark.asyncio
@pytest.mark.parametrize("slippage", [float("nan"), float("inf"), -0.1])
async def test_invalid_slippage_rejected_before_any_call(slippage) -> None:
    transport = CountingTransport()
    engine = _engine(transport)

    with pytest.raises(RouteValidationError, match="Slippage"):
        await engine.build_route("Ethereum", "Base", "USDC", "1", slippage=slippage)
    with pytest.raises(RouteValidationError, match="Slippage"):
        await engine.create_stargate_swap(
            "Ethereum", "Arbitrum", "pufETH", "1", "0xme", slippage=slippage
        )
    assert transport.calls == []


@pytest.mark.asyncio
async def test_non_everclear_route_skips_live_data() -> None:
    transport = CountingTransport()
    engine = _engine(transport)

    instruction = await engine.build_route("Ethereum", "Arbitrum", "pufETH", "2")

    assert instruction.provider == "STARGATE"
    assert instruction.provider_data is None
    assert transport.calls == []


@pytest.mark.asyncio
async def test_create_everclear_intent_reports_api_status() -> None:
    transport = CountingTransport(
        {
            "/routes/quotes": lambda r: httpx.Response(
                200, json={"fee": "0.0003", "estimatedTime": "4 minutes"}
            ),
            "/intents": lambda r: httpx.Response(500),
            "/routes/limits": _timeout,
        }
    )
    engine = _engine(transport)

    payload = await engine.create_everclear_intent(
        "Ethereum", "Base", "xpufETH", "1", "0xrecipient"
    )

    intent = payload["everclearIntent"]
    assert intent["apiStatus"] == {
        "quote": "live",
        "intent": "failed",
        "limits": "fallback",
    }
    assert intent["intent"]["syntheticReference"] is True
    assert intent["intent"]["contractAddress"] == registry.DEFAULT_CONTRACTS[1]["PufferL2Depositor"]
    assert intent["instructions"][-1] == "5. Receive tokens on Base (4 minutes)"
    assert "(synthetic)" in intent["instructions"][3]
    assert len(transport.calls) == 3
    intent_call = next(c for c in transport.calls if c.url.path == "/intents")
    assert json.loads(intent_call.content)["inputAsset"] == "pufETH"


@pytest.mark.asyncio
async def test_create_everclear_intent_rejects_unserved_route() -> None:
    transport = CountingTransport()
    engine = _engine(transport)
    with pytest.raises(RouteValidationError):
        await engine.create_everclear_intent("Avalanche", "Base", "pufETH", "1", "0xme")
    assert transport.calls == []


@pytest.mark.asyncio
async def test_create_stargate_swap_uses_pool_token() -> None:
    transport = CountingTransport(
        {
            "/v1/quote": lambda r: httpx.Response(200, json={"eqFee": "0.0001"}),
            "/v1/swap": lambda r: httpx.Response(200, json={"swapId": "sw-9"}),
        }
    )
    engine = _engine(transport)

    payload = await engine.create_stargate_swap(
        "Ethereum", "Arbitrum", "pufETH", "1", "0xme", slippage=0.3
    )

    swap = payload["stargateSwap"]
    assert swap["poolToken"] == "ETH"
    assert swap["swap"]["referenceId"] == "sw-9"
    assert swap["apiStatus"] == {"quote": "live", "swap": "created"}
    assert swap["slippage"] == 0.3
    assert len(transport.calls) == 2


def test_bridge_info_includes_contracts() -> None:
    engine = _engine(CountingTransport())
    info = engine.bridge_info()
    assert info["contracts"]["Base"]["portal"] == registry.DEFAULT_CONTRACTS[8453]["portal"]
    assert {"fromChain": "Ethereum", "toChain": "any", "contractChainId": 1, "contract": "PufferL2Depositor"} in info["routeContracts"]


def test_from_settings_applies_timeouts_and_urls() -> None:
    settings = Settings(
        EVERCLEAR_API_BASE="https://everclear.test",
        STARGATE_QUOTE_TIMEOUT=3,
    )
    engine = BridgeEngine.from_settings(settings)
    assert engine.everclear.base_url == "https://everclear.test"
    assert engine.stargate.quote_timeout == 3


def test_validate_amount_trims() -> None:
    assert validate_amount(" 1.25 ") == "1.25"
    with pytest.raises(RouteValidationError):
        validate_amount("NaN")


def test_validate_slippage_bounds() -> None:
    assert validate_slippage(50) == 50.0
    with pytest.raises(RouteValidationError):
        validate_slippage(float("nan"))
