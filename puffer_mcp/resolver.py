"""Resolve human-readable bridge requests against the route registry."""

from __future__ import annotations

from typing import Callable, Dict, Optional, Sequence

from puffer_mcp import registry
from puffer_mcp.errors import RouteValidationError
from puffer_mcp.models import BridgeProvider, ChainRef, ResolvedRoute, TokenRoute
from puffer_mcp.utils.logging import get_logger

logger = get_logger(__name__)


class RouteResolver:
    """Pick the provider and on-chain symbols for a (from, to, token) triple.

    Provider selection for multi-provider tokens uses only the source-side
    registry entry; the destination entry contributes its on-chain symbol.
    A forced provider needs its own entry on both chains.
    """

    def __init__(
        self,
        routes: Optional[Dict[str, Sequence[TokenRoute]]] = None,
        chain_lookup: Callable[[str], Optional[ChainRef]] = registry.find_chain,
        provider_vocabularies: Optional[Dict[BridgeProvider, Sequence[str]]] = None,
    ) -> None:
        self._routes = routes if routes is not None else registry.BRIDGE_ROUTES
        self._chain_lookup = chain_lookup
        self._vocabularies = provider_vocabularies or {}

    def resolve(
        self,
        from_chain: str,
        to_chain: str,
        token: str,
        provider: Optional[BridgeProvider] = None,
    ) -> ResolvedRoute:
        """Return the resolved route or raise :class:`RouteValidationError`."""
        source = self._chain_lookup(from_chain)
        destination = self._chain_lookup(to_chain)
        errors = []
        if source is None:
            errors.append(
                f"Source chain '{from_chain}' not supported. "
                f"Available: {', '.join(registry.chain_names())}"
            )
        if destination is None:
            errors.append(
                f"Destination chain '{to_chain}' not supported. "
                f"Available: {', '.join(registry.chain_names())}"
            )
        if errors:
            raise RouteValidationError(errors)

        if source.chain_id == destination.chain_id:
            raise RouteValidationError("Cannot bridge to the same chain")

        if not token or not token.strip():
            raise RouteValidationError("Token symbol is required")

        canonical = self._multi_provider_symbol(token)
        if canonical is not None:
            route = self._resolve_multi_provider(
                source, destination, canonical, provider
            )
        else:
            route = self._resolve_generic(source, destination, token, provider)

        logger.debug(
            "route_resolved",
            from_chain=route.from_chain.name,
            to_chain=route.to_chain.name,
            token=route.token,
            provider=route.provider.value if route.provider else None,
        )
        return route

    def _multi_provider_symbol(self, token: str) -> Optional[str]:
        lowered = token.strip().lower()
        for symbol in self._routes:
            if symbol.lower() == lowered:
                return symbol
        return None

    def _resolve_multi_provider(
        self,
        source: ChainRef,
        destination: ChainRef,
        token: str,
        provider: Optional[BridgeProvider],
    ) -> ResolvedRoute:
        entries = self._routes[token]
        source_entry = next(
            (
                entry
                for entry in entries
                if entry.chain_id == source.chain_id
                and (provider is None or entry.provider is provider)
            ),
            None,
        )
        # A forced provider must serve both ends.
        destination_entry = next(
            (
                entry
                for entry in entries
                if entry.chain_id == destination.chain_id
                and (provider is None or entry.provider is provider)
            ),
            None,
        )

        if source_entry is None or destination_entry is None:
            via = f" via {provider.display_name}" if provider else ""
            raise RouteValidationError(
                f"{token} cannot be bridged from {source.name} to "
                f"{destination.name}{via}"
            )

        return ResolvedRoute(
            from_chain=source,
            to_chain=destination,
            token=token,
            source_symbol=source_entry.on_chain_symbol,
            destination_symbol=destination_entry.on_chain_symbol,
            provider=source_entry.provider,
            features=source_entry.features,
        )

    def _resolve_generic(
        self,
        source: ChainRef,
        destination: ChainRef,
        token: str,
        provider: Optional[BridgeProvider],
    ) -> ResolvedRoute:
        source_symbol = registry.match_chain_token(source.chain_id, token)
        destination_symbol = registry.match_chain_token(destination.chain_id, token)
        if source_symbol is None or destination_symbol is None:
            supported = sorted(
                set(registry.chain_tokens(source.chain_id))
                & set(registry.chain_tokens(destination.chain_id))
            )
            supported = list(self._routes) + supported
            raise RouteValidationError(
                f"Token '{token}' not supported from {source.name} to "
                f"{destination.name}. Available: {', '.join(supported)}"
            )

        if provider is not None:
            self._check_provider_support(provider, source, destination, source_symbol)

        return ResolvedRoute(
            from_chain=source,
            to_chain=destination,
            token=source_symbol,
            source_symbol=source_symbol,
            destination_symbol=destination_symbol,
            provider=provider,
        )

    def _check_provider_support(
        self,
        provider: BridgeProvider,
        source: ChainRef,
        destination: ChainRef,
        token: str,
    ) -> None:
        errors = []
        served = registry.provider_chain_ids(provider)
        for chain in (source, destination):
            if chain.chain_id not in served:
                errors.append(f"{chain.name} not supported by {provider.display_name}")
        vocabulary = self._vocabularies.get(provider)
        if vocabulary is not None and token not in vocabulary:
            errors.append(f"{token} not supported by {provider.display_name}")
        if errors:
            raise RouteValidationError(errors)
