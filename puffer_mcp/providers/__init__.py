from puffer_mcp.providers.base import ProviderClient
from puffer_mcp.providers.everclear import EVERCLEAR_TOKENS, EverclearClient
from puffer_mcp.providers.stargate import STARGATE_TOKENS, StargateClient

__all__ = [
    "ProviderClient",
    "EverclearClient",
    "StargateClient",
    "EVERCLEAR_TOKENS",
    "STARGATE_TOKENS",
]
