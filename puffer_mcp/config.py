"""Application configuration management."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Annotated, Any, List, Optional

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

DEFAULT_STRATEGY_ENDPOINTS = [
    "https://app.puffer.fi/api/defi/opportunities",
    "https://api.puffer.fi/v1/defi",
    "https://app.puffer.fi/api/opportunities",
    "https://puffer.fi/api/defi",
    "https://app.puffer.fi/api/v1/strategies",
]


class Settings(BaseSettings):
    """Runtime configuration loaded from environment or `.env`."""

    model_config = SettingsConfigDict(
        env_file=(".env",),
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    server_name: str = Field(default="puffer-finance-mcp", alias="MCP_SERVER_NAME")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_file: Optional[Path] = Field(default=None, alias="LOG_FILE")

    everclear_api_base: str = Field(
        default="https://api.everclear.org",
        alias="EVERCLEAR_API_BASE",
    )
    everclear_testnet_api_base: str = Field(
        default="https://api.testnet.everclear.org",
        alias="EVERCLEAR_TESTNET_API_BASE",
    )
    stargate_api_base: str = Field(
        default="https://api.stargate.finance",
        alias="STARGATE_API_BASE",
    )
    stargate_testnet_api_base: str = Field(
        default="https://api-testnet.stargate.finance",
        alias="STARGATE_TESTNET_API_BASE",
    )

    everclear_quote_timeout: float = Field(
        default=10.0, alias="EVERCLEAR_QUOTE_TIMEOUT", gt=0, le=60
    )
    everclear_intent_timeout: float = Field(
        default=15.0, alias="EVERCLEAR_INTENT_TIMEOUT", gt=0, le=60
    )
    everclear_limits_timeout: float = Field(
        default=8.0, alias="EVERCLEAR_LIMITS_TIMEOUT", gt=0, le=60
    )
    stargate_quote_timeout: float = Field(
        default=10.0, alias="STARGATE_QUOTE_TIMEOUT", gt=0, le=60
    )
    stargate_swap_timeout: float = Field(
        default=10.0, alias="STARGATE_SWAP_TIMEOUT", gt=0, le=60
    )
    stargate_limits_timeout: float = Field(
        default=8.0, alias="STARGATE_LIMITS_TIMEOUT", gt=0, le=60
    )

    strategy_cache_ttl_seconds: float = Field(
        default=300.0,
        alias="STRATEGY_CACHE_TTL_SECONDS",
        gt=0,
    )
    strategy_endpoints: Annotated[List[str], NoDecode] = Field(
        default_factory=lambda: list(DEFAULT_STRATEGY_ENDPOINTS),
        alias="STRATEGY_ENDPOINTS",
    )
    strategy_import_timeout: float = Field(
        default=15.0, alias="STRATEGY_IMPORT_TIMEOUT", gt=0, le=120
    )
    strategy_refresh_interval_minutes: int = Field(
        default=0,
        alias="STRATEGY_REFRESH_INTERVAL_MINUTES",
        ge=0,
        le=1440,
    )

    contracts_json: Optional[Path] = Field(default=None, alias="CONTRACTS_JSON")

    @field_validator("strategy_endpoints", mode="before")
    @classmethod
    def _parse_endpoints(cls, value: Any) -> List[str]:
        if value in (None, "", []):
            return []
        if isinstance(value, str):
            return [part.strip() for part in value.split(",") if part.strip()]
        if isinstance(value, (list, tuple)):
            return [str(v).strip() for v in value if str(v).strip()]
        return [str(value)]


@lru_cache(maxsize=1)
def load_settings() -> Settings:
    """Return cached Settings instance, raising a helpful message on failure."""
    try:
        return Settings()
    except (
        ValidationError
    ) as exc:  # pragma: no cover - configuration failure visible on boot
        raise RuntimeError(f"Invalid configuration: {exc}") from exc


__all__ = ["Settings", "load_settings"]
