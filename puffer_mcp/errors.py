"""Exception hierarchy shared by the bridge engine and the strategy tools."""

from __future__ import annotations

from typing import Iterable, List


class PufferMCPError(Exception):
    """Base class for every domain error raised by this package."""


class RouteValidationError(PufferMCPError):
    """A bridge request that can never succeed as given.

    Raised before any network call; the reasons are user-correctable.
    """

    def __init__(self, reasons: Iterable[str] | str) -> None:
        if isinstance(reasons, str):
            reasons = [reasons]
        self.reasons: List[str] = list(reasons)
        super().__init__("; ".join(self.reasons))


class ProviderUnavailable(PufferMCPError):
    """A provider HTTP call failed, timed out or returned a non-2xx status.

    Provider clients convert this into a fallback result and never let it
    escape their public methods.
    """

    def __init__(self, provider: str, operation: str, reason: str) -> None:
        self.provider = provider
        self.operation = operation
        self.reason = reason
        super().__init__(f"{provider} {operation} failed: {reason}")


class ComposerAmbiguityError(PufferMCPError):
    """No instruction template matched a resolved route."""


class StrategyImportError(PufferMCPError):
    """The external strategy importer could not produce a snapshot."""


class NoStrategyDataError(PufferMCPError):
    """A refresh failed and there is no earlier snapshot to serve."""


class StrategyNotFoundError(PufferMCPError):
    """No cached strategy matched the requested id or name."""

    def __init__(self, identifier: object) -> None:
        self.identifier = identifier
        super().__init__(f"Strategy not found: {identifier}")


class UnknownToolError(PufferMCPError):
    """A tools/call named a tool the registry does not expose."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Unknown tool: {name}")


__all__ = [
    "PufferMCPError",
    "RouteValidationError",
    "ProviderUnavailable",
    "ComposerAmbiguityError",
    "StrategyImportError",
    "NoStrategyDataError",
    "StrategyNotFoundError",
    "UnknownToolError",
]
