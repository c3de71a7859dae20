from puffer_mcp.strategies.cache import StrategyCache, find_strategy
from puffer_mcp.strategies.deposits import DepositPlanner, ProtocolKind
from puffer_mcp.strategies.importer import (
    HttpStrategyImporter,
    StrategyImporter,
    parse_strategy_payload,
)

__all__ = [
    "StrategyCache",
    "find_strategy",
    "DepositPlanner",
    "ProtocolKind",
    "HttpStrategyImporter",
    "StrategyImporter",
    "parse_strategy_payload",
]
