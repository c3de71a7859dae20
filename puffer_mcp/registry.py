"""Static chain, contract, token and bridge-route registry."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Tuple

from puffer_mcp.models import BridgeProvider, ChainRef, TokenRoute

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

CHAINS: Tuple[ChainRef, ...] = (
    ChainRef("Ethereum", 1, "ETH"),
    ChainRef("Base", 8453, "ETH"),
    ChainRef("Arbitrum", 42161, "ETH"),
    ChainRef("Apechain", 33139, "APE"),
    ChainRef("BNB Chain", 56, "BNB"),
    ChainRef("Berachain", 80094, "BERA"),
    ChainRef("Soneium", 1868, "ETH"),
    ChainRef("Zircuit", 48900, "ETH"),
    ChainRef("Holesky", 17000, "ETH"),
    ChainRef("Avalanche", 43114, "AVAX"),
    ChainRef("Polygon", 137, "POL"),
)

# Aliases for matching user input (lowercase)
CHAIN_ALIASES: Dict[str, str] = {
    "mainnet": "Ethereum",
    "eth": "Ethereum",
    "ethereum mainnet": "Ethereum",
    "arbitrum one": "Arbitrum",
    "arb": "Arbitrum",
    "ape chain": "Apechain",
    "bnb": "BNB Chain",
    "bsc": "BNB Chain",
    "bnb smart chain": "BNB Chain",
    "avax": "Avalanche",
    "matic": "Polygon",
}

# Puffer and rollup contract addresses by chain id
DEFAULT_CONTRACTS: Dict[int, Dict[str, str]] = {
    1: {
        "PufferVault": "0xD9A442856C234a39a81a089C06451EBAa4306a72",
        "PufferDepositor": "0x4aa799c5dfc01ee7d790e3bf1a7c2257ce1dceff",
        "PufferL2Depositor": "0x3436E0B85cd929929F5802e792CFE282166E0259",
        "PufLocker": "0x48e8dE138C246c14248C94d2D616a2F9eb4590D2",
        "L1RewardManager": "0x157788cc028Ac6405bD406f2D1e0A8A22b3cf17b",
        "PufferWithdrawalManager": "0xDdA0483184E75a5579ef9635ED14BacCf9d50283",
        "NucleusAtomicQueue": "0x228c44bb4885c6633f4b6c83f14622f37d5112e5",
        "CarrotStaker": "0x99c599227c65132822f0290d9e5b4b0430d6c0d6",
        "Distributor": "0x3Ef3D8bA38EBe18DB133cEc108f4D14CE00Dd9Ae",
    },
    8453: {
        "L2RewardManager": "0xF9Dd335bF363b2E4ecFe3c94A86EBD7Dd3Dcf0e7",
        "portal": "0x49048044D57e1C92A77f79988d21Fa8fAF74E97e",
        "l1StandardBridge": "0x3154Cf16ccdb4C6d922629664174b904d80F2C35",
        "disputeGameFactory": "0x43edB88C4B80fDD2AdFF2412A7BebF9dF42cB40e",
        "l2OutputOracle": "0x56315b90c40730925ec5485cf004d835058518A0",
    },
    42161: {
        "multicall3": "0xca11bde05977b3631167028862be2a173976ca11",
    },
    33139: {
        "multicall3": "0xcA11bde05977b3631167028862bE2a173976CA11",
    },
    56: {
        "multicall3": "0xca11bde05977b3631167028862be2a173976ca11",
    },
    80094: {
        "multicall3": "0xcA11bde05977b3631167028862bE2a173976CA11",
        "ensRegistry": "0x5b22280886a2f5e09a49bea7e320eab0e5320e28",
        "ensUniversalResolver": "0xddfb18888a9466688235887dec2a10c4f5effee9",
    },
    1868: {
        "disputeGameFactory": "0x512a3d2c7a43bd9261d2b8e8c9c70d4bd4d503c0",
        "portal": "0x88e529a6ccd302c948689cd5156c83d4614fae92",
        "l1StandardBridge": "0xeb9bf100225c214efc3e7c651ebbadcf85177607",
        "multicall3": "0xcA11bde05977b3631167028862bE2a173976CA11",
    },
    48900: {
        "multicall3": "0xcA11bde05977b3631167028862bE2a173976CA11",
        "l2OutputOracle": "0x92Ef6Af472b39F1b363da45E35530c24619245A4",
        "portal": "0x17bfAfA932d2e23Bd9B909Fd5B4D2e2a27043fb1",
        "l1StandardBridge": "0x386B76D9cA5F5Fb150B6BFB35CF5379B22B26dd8",
    },
    17000: {
        "PufferVault": "0x9196830bB4c05504E0A8475A0aD566AceEB6BeC9",
        "PufferDepositor": "0x824AC05aeb86A0aD770b8acDe0906d2d4a6c4A8c",
        "PufferL2Depositor": "0x0af6998e4828ad8ef8f79a9288d0a861890f791d",
        "PufLocker": "0xa58983ad0899a452b7420bc57228e329d7ba92b6",
        "L1RewardManager": "0x10f970bcb84B82B82a65eBCbF45F26dD26D69F12",
        "L2RewardManager": "0x58C046794f69A8830b0BE737022a45b4acd01dE5",
        "PufferWithdrawalManager": "0x5A3E1069B66800c0ecbc91bd81b1AE4D1804DBc4",
    },
}

TOKEN_ADDRESSES: Dict[int, Dict[str, str]] = {
    1: {
        "pufETH": "0xd9a442856c234a39a81a089c06451ebaa4306a72",
        "PUFFER": "0x4d1c297d39c5c1277964d0e3f8aa901493664530",
        "WETH": "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2",
        "USDC": "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48",
        "USDT": "0xdAC17F958D2ee523a2206206994597C13D831ec7",
        "wstETH": "0x7f39C581F595B53c5cb19bD0b3f8dA6c935E2Ca0",
    },
    8453: {
        "xpufETH": "0x23da5f2d509cb43a59d43c108a43edf34510eff1",
        "WETH": "0x4200000000000000000000000000000000000006",
        "USDC": "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913",
    },
    42161: {
        "pufETH": "0xd9a442856c234a39a81a089c06451ebaa4306a72",
        "WETH": "0x82aF49447D8a07e3bd95BD0d56f35241523fBab1",
        "USDC": "0xaf88d065e77c8cC2239327C5EDb3A432268e5831",
    },
    56: {
        "xpufETH": "0x23da5f2d509cb43a59d43c108a43edf34510eff1",
        "WBNB": "0xbb4CdB9CBd36B01bD1cBaEBF2De08d9173bc095c",
        "USDT": "0x55d398326f99059fF775485246999027B3197955",
    },
    33139: {
        "xpufETH": "0x23da5f2d509cb43a59d43c108a43edf34510eff1",
    },
    1868: {
        "pufETH": "0xd9a442856c234a39a81a089c06451ebaa4306a72",
    },
    48900: {
        "xpufETH": "0x23da5f2d509cb43a59d43c108a43edf34510eff1",
    },
    80094: {
        "pufETH": "0xd9a442856c234a39a81a089c06451ebaa4306a72",
    },
}

_STARGATE = frozenset({"fast", "unified_liquidity"})
_EVERCLEAR = frozenset({"intent_based", "low_cost"})
_CHAINLINK = frozenset({"secure", "enterprise"})


def _routes(
    token: str, entries: List[Tuple[int, str, BridgeProvider]]
) -> Tuple[TokenRoute, ...]:
    features = {
        BridgeProvider.STARGATE: _STARGATE,
        BridgeProvider.EVERCLEAR: _EVERCLEAR,
        BridgeProvider.CHAINLINK: _CHAINLINK,
    }
    return tuple(
        TokenRoute(token, chain_id, symbol, provider, features[provider])
        for chain_id, symbol, provider in entries
    )


# Declaration order is provider priority: the first entry for a chain wins.
BRIDGE_ROUTES: Dict[str, Tuple[TokenRoute, ...]] = {
    "pufETH": _routes(
        "pufETH",
        [
            (1, "pufETH", BridgeProvider.STARGATE),
            (8453, "xpufETH", BridgeProvider.STARGATE),
            (42161, "pufETH", BridgeProvider.STARGATE),
            (56, "xpufETH", BridgeProvider.STARGATE),
            (43114, "pufETH", BridgeProvider.STARGATE),
            (137, "pufETH", BridgeProvider.STARGATE),
            (1, "pufETH", BridgeProvider.EVERCLEAR),
            (8453, "xpufETH", BridgeProvider.EVERCLEAR),
            (56, "xpufETH", BridgeProvider.EVERCLEAR),
            (33139, "xpufETH", BridgeProvider.EVERCLEAR),
            (48900, "xpufETH", BridgeProvider.EVERCLEAR),
            (1, "pufETH", BridgeProvider.CHAINLINK),
            (1868, "pufETH", BridgeProvider.CHAINLINK),
            (42161, "pufETH", BridgeProvider.CHAINLINK),
            (80094, "pufETH", BridgeProvider.CHAINLINK),
        ],
    ),
    # xpufETH is Everclear's xERC20 representation, so Everclear leads here.
    "xpufETH": _routes(
        "xpufETH",
        [
            (1, "pufETH", BridgeProvider.EVERCLEAR),
            (8453, "xpufETH", BridgeProvider.EVERCLEAR),
            (56, "xpufETH", BridgeProvider.EVERCLEAR),
            (33139, "xpufETH", BridgeProvider.EVERCLEAR),
            (48900, "xpufETH", BridgeProvider.EVERCLEAR),
            (1, "pufETH", BridgeProvider.STARGATE),
            (8453, "xpufETH", BridgeProvider.STARGATE),
            (42161, "pufETH", BridgeProvider.STARGATE),
            (56, "xpufETH", BridgeProvider.STARGATE),
            (43114, "pufETH", BridgeProvider.STARGATE),
            (137, "pufETH", BridgeProvider.STARGATE),
        ],
    ),
}

MULTI_PROVIDER_TOKENS: Tuple[str, ...] = tuple(BRIDGE_ROUTES)

# (from chain name, to chain name or "*") -> (chain id, contract key)
ROUTE_CONTRACTS: Dict[Tuple[str, str], Tuple[int, str]] = {
    ("Ethereum", "Base"): (8453, "portal"),
    ("Base", "Ethereum"): (8453, "l1StandardBridge"),
    ("Ethereum", "Soneium"): (1868, "portal"),
    ("Ethereum", "Zircuit"): (48900, "portal"),
    ("Ethereum", "*"): (1, "PufferL2Depositor"),
}

# Per-chain fallback lookup order when no route-specific contract exists
CHAIN_FALLBACK_CONTRACT_KEYS: Tuple[str, ...] = (
    "portal",
    "l1StandardBridge",
    "multicall3",
)

_CHAINS_BY_NAME: Dict[str, ChainRef] = {chain.name.lower(): chain for chain in CHAINS}
_CHAINS_BY_ID: Dict[int, ChainRef] = {chain.chain_id: chain for chain in CHAINS}


def load_contract_map(path: Optional[Path] = None) -> Dict[int, Dict[str, str]]:
    """Load contract addresses from a JSON file or fall back to defaults."""
    if path is None:
        return DEFAULT_CONTRACTS

    if not path.exists():
        raise FileNotFoundError(f"Contract configuration not found: {path}")

    with path.open("r", encoding="utf-8") as handle:
        data = json.load(handle)

    contracts: Dict[int, Dict[str, str]] = {}
    for chain_id, entries in data.items():
        contracts[int(chain_id)] = {}
        for key, address in entries.items():
            contracts[int(chain_id)][key] = address

    return contracts


def find_chain(name: str) -> Optional[ChainRef]:
    """Match a human-readable chain name (case-insensitive, aliases allowed)."""
    if not name:
        return None
    key = name.strip().lower()
    chain = _CHAINS_BY_NAME.get(key)
    if chain:
        return chain
    alias = CHAIN_ALIASES.get(key)
    return _CHAINS_BY_NAME.get(alias.lower()) if alias else None


def chain_by_id(chain_id: int) -> Optional[ChainRef]:
    return _CHAINS_BY_ID.get(chain_id)


def chain_names() -> List[str]:
    return [chain.name for chain in CHAINS]


def chain_tokens(chain_id: int) -> List[str]:
    """Tokens a chain supports for generic bridging: gas asset + known tokens."""
    chain = chain_by_id(chain_id)
    tokens: List[str] = [chain.native_symbol] if chain else []
    for symbol in TOKEN_ADDRESSES.get(chain_id, {}):
        if symbol not in tokens and symbol not in MULTI_PROVIDER_TOKENS:
            tokens.append(symbol)
    return tokens


def match_chain_token(chain_id: int, token: str) -> Optional[str]:
    """Return the chain's spelling of ``token`` if generic bridging supports it."""
    lowered = token.strip().lower()
    for symbol in chain_tokens(chain_id):
        if symbol.lower() == lowered:
            return symbol
    return None


def provider_chain_ids(provider: BridgeProvider) -> List[int]:
    """Chains a provider serves, in first-seen registry order."""
    seen: List[int] = []
    for routes in BRIDGE_ROUTES.values():
        for route in routes:
            if route.provider is provider and route.chain_id not in seen:
                seen.append(route.chain_id)
    return seen


def route_contract(
    from_chain: str,
    to_chain: str,
    contracts: Mapping[int, Mapping[str, str]],
) -> Optional[Tuple[str, str]]:
    """Return (address, contract key) of a route-specific static contract."""
    for key in ((from_chain, to_chain), (from_chain, "*")):
        entry = ROUTE_CONTRACTS.get(key)
        if not entry:
            continue
        chain_id, contract_key = entry
        address = contracts.get(chain_id, {}).get(contract_key)
        if address:
            return address, contract_key
    return None


def chain_fallback_contract(
    chain_id: int, contracts: Mapping[int, Mapping[str, str]]
) -> Optional[Tuple[str, str]]:
    """Return the first generic bridge-ish contract configured on a chain."""
    entries = contracts.get(chain_id, {})
    for contract_key in CHAIN_FALLBACK_CONTRACT_KEYS:
        address = entries.get(contract_key)
        if address:
            return address, contract_key
    return None


def describe_registry() -> Dict[str, object]:
    """Summarise the registry for the bridge info tool."""
    return {
        "supportedChains": [
            {
                "name": chain.name,
                "chainId": chain.chain_id,
                "nativeAsset": chain.native_symbol,
                "tokens": chain_tokens(chain.chain_id),
            }
            for chain in CHAINS
        ],
        "multiProviderTokens": list(MULTI_PROVIDER_TOKENS),
        "providers": {
            provider.value: {
                "name": provider.display_name,
                "chains": [
                    chain_by_id(chain_id).name
                    for chain_id in provider_chain_ids(provider)
                    if chain_by_id(chain_id)
                ],
            }
            for provider in BridgeProvider
        },
        "routes": {
            token: [
                {
                    "chain": chain_by_id(route.chain_id).name
                    if chain_by_id(route.chain_id)
                    else str(route.chain_id),
                    "tokenOnChain": route.on_chain_symbol,
                    "provider": route.provider.value,
                    "features": sorted(route.features),
                }
                for route in routes
            ]
            for token, routes in BRIDGE_ROUTES.items()
        },
    }
