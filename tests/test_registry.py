"""Tests for the static chain / route registry."""

import json

import pytest

from puffer_mcp import registry
from puffer_mcp.models import BridgeProvider


class TestFindChain:
    """Tests for chain name lookup."""

    def test_exact_name(self) -> None:
        assert registry.find_chain("Base").chain_id == 8453

    def test_case_insensitive(self) -> None:
        assert registry.find_chain("bnb chain").chain_id == 56

    def test_alias(self) -> None:
        """'bsc' and 'mainnet' are accepted aliases."""
        assert registry.find_chain("bsc").name == "BNB Chain"
        assert registry.find_chain("Mainnet").name == "Ethereum"

    def test_unknown_returns_none(self) -> None:
        assert registry.find_chain("Solana") is None
        assert registry.find_chain("") is None


def test_chain_names_and_ids_are_unique():
    names = [chain.name for chain in registry.CHAINS]
    ids = [chain.chain_id for chain in registry.CHAINS]
    assert len(names) == len(set(names))
    assert len(ids) == len(set(ids))


def test_chain_tokens_include_native_asset_first():
    tokens = registry.chain_tokens(56)
    assert tokens[0] == "BNB"
    assert "USDT" in tokens
    assert "xpufETH" not in tokens


def test_provider_chain_ids_follow_route_tables():
    assert registry.provider_chain_ids(BridgeProvider.CHAINLINK) == [1, 1868, 42161, 80094]
    assert 33139 in registry.provider_chain_ids(BridgeProvider.EVERCLEAR)
    assert 33139 not in registry.provider_chain_ids(BridgeProvider.STARGATE)


def test_route_contract_prefers_pair_entry():
    address, key = registry.route_contract("Ethereum", "Base", registry.DEFAULT_CONTRACTS)
    assert key == "portal"
    assert address == registry.DEFAULT_CONTRACTS[8453]["portal"]


def test_route_contract_uses_wildcard_from_ethereum():
    address, key = registry.route_contract(
        "Ethereum", "Apechain", registry.DEFAULT_CONTRACTS
    )
    assert key == "PufferL2Depositor"
    assert address == registry.DEFAULT_CONTRACTS[1]["PufferL2Depositor"]


def test_route_contract_missing_pair():
    assert registry.route_contract("Arbitrum", "Base", registry.DEFAULT_CONTRACTS) is None


def test_chain_fallback_contract_order():
    """Portal wins over l1StandardBridge, multicall3 is the last resort."""
    assert registry.chain_fallback_contract(1868, registry.DEFAULT_CONTRACTS)[1] == "portal"
    assert registry.chain_fallback_contract(42161, registry.DEFAULT_CONTRACTS)[1] == "multicall3"
    assert registry.chain_fallback_contract(43114, registry.DEFAULT_CONTRACTS) is None


def test_load_contract_map_defaults():
    assert registry.load_contract_map() is registry.DEFAULT_CONTRACTS


def test_load_contract_map_from_file(tmp_path):
    path = tmp_path / "contracts.json"
    path.write_text(json.dumps({"8453": {"portal": "0xabc"}}), encoding="utf-8")

    contracts = registry.load_contract_map(path)

    assert contracts == {8453: {"portal": "0xabc"}}


def test_load_contract_map_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        registry.load_contract_map(tmp_path / "missing.json")


def test_describe_registry_lists_every_chain():
    info = registry.describe_registry()
    assert [c["name"] for c in info["supportedChains"]] == registry.chain_names()
    assert info["multiProviderTokens"] == ["pufETH", "xpufETH"]
    assert info["providers"]["STARGATE"]["name"] == "Stargate Finance"
