"""Tests for the Everclear and Stargate provider clients."""

import asyncio
import json
import time

import httpx
import pytest

from puffer_mcp import registry
from puffer_mcp.models import BridgeProvider
from puffer_mcp.providers import EverclearClient, StargateClient
from puffer_mcp.providers.stargate import STARGATE_ROUTER


class Recorder:
    """MockTransport handler that records requests and replays a response."""

    def __init__(self, responder) -> None:
        self.responder = responder
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.responder(request)


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def _timeout(request: httpx.Request) -> httpx.Response:
    raise httpx.ReadTimeout("timed out", request=request)


@pytest.mark.asyncio
async def test_everclear_quote_success() -> None:
    recorder = Recorder(
        lambda request: httpx.Response(
            200, json={"fee": "0.0004", "estimatedTime": "2 minutes"}
        )
    )
    client = EverclearClient(http_client=_client(recorder))

    quote = await client.quote(1, 8453, "xpufETH", "1.5")

    assert quote.success is True
    assert quote.fee == "0.0004"
    assert quote.estimated_time == "2 minutes"
    assert quote.route == "EVERCLEAR"
    request = recorder.requests[0]
    assert request.method == "POST"
    assert str(request.url) == "https://api.everclear.org/routes/quotes"
    body = json.loads(request.content)
    assert body == {
        "origin": "1",
        "destinations": ["8453"],
        "inputAsset": "xpufETH",
        "amount": "1.5",
        "to": registry.ZERO_ADDRESS,
    }


@pytest.mark.asyncio
async def test_everclear_quote_missing_fee_defaults_to_zero() -> None:
    client = EverclearClient(
        http_client=_client(lambda request: httpx.Response(200, json={}))
    )
    quote = await client.quote(1, 8453, "pufETH", "1")
    assert quote.success is True
    assert quote.fee == "0"
    assert quote.estimated_time == "1-5 minutes"


@pytest.mark.asyncio
async def test_everclear_quote_timeout_returns_fallback() -> None:
    recorder = Recorder(_timeout)
    client = EverclearClient(http_client=_client(recorder), quote_timeout=0.5)

    quote = await client.quote(1, 8453, "xpufETH", "1.5")

    assert quote.success is False
    assert quote.fee == "0.001 ETH"
    assert quote.estimated_time == "3-8 minutes"
    assert quote.fallback == {
        "fee": "0.001 ETH",
        "estimatedTime": "3-8 minutes",
        "route": "EVERCLEAR_FALLBACK",
    }
    assert "timed out" in quote.error
    assert len(recorder.requests) == 1


async def _trickle(reader, writer) -> None:
    """Answer with headers at once, then one body byte every 100ms."""
    await reader.readuntil(b"\r\n\r\n")
    writer.write(
        b"HTTP/1.1 200 OK\r\n"
        b"Content-Type: application/json\r\n"
        b"Content-Length: 64\r\n\r\n"
    )
    try:
        for _ in range(20):
            writer.write(b" ")
            await writer.drain()
            await asyncio.sleep(0.1)
    except ConnectionError:
        pass
    finally:
        writer.close()


@pytest.mark.asyncio
async def test_everclear_quote_timeout_bounds_slow_body() -> None:
    server = await asyncio.start_server(_trickle, "127.0.0.1", 0)
    port = server.sockets[0].getsockname()[1]
    http = httpx.AsyncClient(trust_env=False)
    client = EverclearClient(
        base_url=f"http://127.0.0.1:{port}", http_client=http, quote_timeout=0.3
    )

    started = time.monotonic()
    try:
        quote = await client.quote(1, 8453, "xpufETH", "1.5")
        elapsed = time.monotonic() - started
    finally:
        await http.aclose()
        server.close()
        await server.wait_closed()

    assert elapsed < 1.5
    assert quote.success is False
    assert "timed out" in quote.error


@pytest.mark.asyncio
async def test_everclear_limits_non_2xx_returns_fallback() -> None:
    client = EverclearClient(
        http_client=_client(lambda request: httpx.Response(503, text="busy"))
    )

    limits = await client.route_limits(1, 8453, "pufETH")

    assert limits.success is False
    assert limits.error == "HTTP 503"
    assert (limits.min_amount, limits.max_amount, limits.liquidity) == (
        "0.001",
        "100",
        "Unknown",
    )


@pytest.mark.asyncio
async def test_everclear_invalid_json_returns_fallback() -> None:
    client = EverclearClient(
        http_client=_client(lambda request: httpx.Response(200, text="<html>"))
    )
    limits = await client.route_limits(1, 8453, "pufETH")
    assert limits.success is False
    assert limits.error.startswith("invalid JSON")


@pytest.mark.asyncio
async def test_everclear_testnet_base_url() -> None:
    recorder = Recorder(lambda request: httpx.Response(200, json={}))
    client = EverclearClient(http_client=_client(recorder))

    await client.route_limits(1, 8453, "pufETH", testnet=True)

    assert str(recorder.requests[0].url) == "https://api.testnet.everclear.org/routes/limits"


@pytest.mark.asyncio
async def test_everclear_intent_success() -> None:
    recorder = Recorder(
        lambda request: httpx.Response(
            200,
            json={
                "id": "intent-42",
                "contractAddress": "0xfeed",
                "calldata": "0xabcdef",
                "value": "0",
            },
        )
    )
    client = EverclearClient(http_client=_client(recorder))

    intent = await client.create_intent(1, 8453, "pufETH", "2", "0xrecipient")

    assert intent.success is True
    assert intent.reference_id == "intent-42"
    assert intent.synthetic is False
    assert intent.contract_address == "0xfeed"
    assert intent.transaction_data == "0xabcdef"
    assert json.loads(recorder.requests[0].content)["to"] == "0xrecipient"


@pytest.mark.asyncio
async def test_everclear_intent_failure_is_synthetic() -> None:
    client = EverclearClient(
        http_client=_client(lambda request: httpx.Response(500))
    )

    intent = await client.create_intent(1, 8453, "pufETH", "2", "0xrecipient")

    assert intent.success is False
    assert intent.synthetic is True
    assert intent.reference_id.startswith("everclear_fallback_")
    assert intent.contract_address == registry.DEFAULT_CONTRACTS[1]["PufferL2Depositor"]
    assert intent.method == "bridge(address,uint256,uint256)"
    assert intent.to_dict()["syntheticReference"] is True


@pytest.mark.asyncio
async def test_everclear_intent_fallback_without_depositor_uses_zero_address() -> None:
    client = EverclearClient(
        http_client=_client(lambda request: httpx.Response(500))
    )
    intent = await client.create_intent(8453, 1, "xpufETH", "2", None)
    assert intent.contract_address == registry.ZERO_ADDRESS


@pytest.mark.asyncio
async def test_stargate_quote_maps_pool_ids() -> None:
    recorder = Recorder(
        lambda request: httpx.Response(200, json={"eqFee": "0.0002", "eqReward": "12"})
    )
    client = StargateClient(http_client=_client(recorder))

    quote = await client.quote(1, 42161, "pufETH", "3")

    assert quote.provider is BridgeProvider.STARGATE
    assert quote.success is True
    assert quote.fee == "0.0002"
    assert quote.gas_estimate == "12"
    assert quote.estimated_time == "1-3 minutes"
    params = recorder.requests[0].url.params
    assert recorder.requests[0].url.path == "/v1/quote"
    assert params["srcChainId"] == "1"
    assert params["dstChainId"] == "42161"
    assert params["srcPoolId"] == "13"
    assert params["dstPoolId"] == "13"
    assert params["amount"] == "3"


@pytest.mark.asyncio
async def test_stargate_quote_connect_error_fallback() -> None:
    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    client = StargateClient(http_client=_client(refuse))

    quote = await client.quote(1, 42161, "USDC", "3")

    assert quote.success is False
    assert quote.fee == "0.0005 ETH"
    assert quote.gas_estimate == "150000"
    assert quote.to_dict()["fallback"]["route"] == "STARGATE_FALLBACK"


@pytest.mark.asyncio
async def test_stargate_limits_fallback() -> None:
    client = StargateClient(http_client=_client(_timeout))
    limits = await client.route_limits(1, 8453, "ETH")
    assert limits.success is False
    assert limits.max_amount == "50"


@pytest.mark.asyncio
async def test_stargate_swap_sends_slippage_in_bps() -> None:
    recorder = Recorder(lambda request: httpx.Response(200, json={"swapId": "sw-1"}))
    client = StargateClient(http_client=_client(recorder))

    swap = await client.create_swap(1, 8453, "USDC", "10", "0xme", slippage=0.5)

    body = json.loads(recorder.requests[0].content)
    assert body["slippageBps"] == 50
    assert body["srcPoolId"] == 1
    assert body["to"] == "0xme"
    assert swap.reference_id == "sw-1"
    assert swap.synthetic is False
    assert swap.contract_address == STARGATE_ROUTER
    assert swap.gas_limit == "200000"


@pytest.mark.asyncio
async def test_stargate_swap_rejects_nan_slippage_without_request() -> None:
    recorder = Recorder(lambda request: httpx.Response(200, json={"swapId": "sw-1"}))
    client = StargateClient(http_client=_client(recorder))

    swap = await client.create_swap(
        1, 8453, "USDC", "10", "0xme", slippage=float("nan")
    )

    assert swap.success is False
    assert swap.synthetic is True
    assert "invalid slippage" in swap.error
    assert recorder.requests == []


@pytest.mark.asyncio
async def test_stargate_swap_missing_id_is_synthetic() -> None:
    client = StargateClient(
        http_client=_client(lambda request: httpx.Response(200, json={}))
    )
    swap = await client.create_swap(1, 8453, "ETH", "1", "0xme")
    assert swap.success is True
    assert swap.synthetic is True
    assert swap.reference_id.startswith("stargate_")


def test_token_vocabularies_pass_unknown_through() -> None:
    assert StargateClient.map_token("xpufETH") == "ETH"
    assert StargateClient.map_token("DAI") == "DAI"
    assert EverclearClient.map_token("pufETH") == "pufETH"
    assert EverclearClient.map_token("DAI") == "DAI"
