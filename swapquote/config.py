import os

from pathlib import Path
from typing import Any, List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


BASE_DIR = Path(__file__).resolve().parents[1]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    def model_post_init(self, __context: Any) -> None:
        """Honour the bare CHAIN_ID variable used by local fork tooling."""

        super().model_post_init(__context)

        if not os.getenv("DEFAULT_CHAIN_ID"):
            legacy = os.getenv("CHAIN_ID")
            if legacy and legacy.strip().isdigit():
                object.__setattr__(self, "default_chain_id", int(legacy.strip()))

    # Server Settings
    host: str = Field(default="127.0.0.1", description="Server host")
    port: int = Field(default=8000, description="Server port")
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(
        default="auto",
        description="Log renderer: json, console, or auto (console at DEBUG, json otherwise)",
    )
    quote_log_level: Optional[str] = Field(
        default=None,
        description="Level for per-request quote_phase events; defaults to log_level",
    )

    # Chain
    default_chain_id: int = Field(default=1, description="Chain used when a request omits chain_id")

    # Quote Orchestration
    source_timeout_seconds: float = Field(
        default=5.0,
        description="Default per-source timeout applied to every quote task",
    )
    default_slippage_bps: int = Field(
        default=50,
        description="Slippage tolerance used when the caller does not pass one (0.5%)",
    )
    max_slippage_bps: int = Field(
        default=5000,
        description="Upper bound accepted by the HTTP surface for slippage tolerance",
    )
    default_deadline_seconds: int = Field(
        default=1200,
        description="Deadline offset used for swap plans (20 minutes)",
    )
    strict_quotes: bool = Field(
        default=False,
        description="Raise instead of returning a simulated quote when every live source fails",
    )
    enable_simulation_fallback: bool = Field(
        default=True,
        description="Serve canned simulation values when no live source answers",
    )
    enabled_sources: List[str] = Field(
        default_factory=list,
        description="Allow-list of source names; empty means every configured source",
    )

    # Aggregator Providers
    enable_zerox: bool = Field(default=True, description="Enable 0x swap API source")
    zerox_base_url: str = Field(default="https://api.0x.org", description="Base URL for the 0x swap API")
    zerox_api_key: str = Field(default="", description="0x API key")

    enable_oneinch: bool = Field(default=True, description="Enable 1inch aggregation source")
    oneinch_base_url: str = Field(
        default="https://api.1inch.dev/swap/v5.2",
        description="Base URL for the 1inch swap API",
    )
    oneinch_api_key: str = Field(default="", description="1inch API key")

    enable_kyberswap: bool = Field(default=True, description="Enable KyberSwap aggregator source")
    kyberswap_base_url: str = Field(
        default="https://aggregator-api.kyberswap.com",
        description="Base URL for the KyberSwap aggregator API",
    )
    kyberswap_client_id: str = Field(default="swapquote", description="x-client-id header sent to KyberSwap")

    enable_uniswap_routing: bool = Field(default=True, description="Enable Uniswap routing API source")
    uniswap_routing_base_url: str = Field(
        default="https://api.uniswap.org/v1",
        description="Base URL for the Uniswap routing API",
    )

    @property
    def source_allow_list(self) -> Optional[set[str]]:
        if not self.enabled_sources:
            return None
        return {name.strip().lower() for name in self.enabled_sources if name.strip()}

    @property
    def aggregator_toggles(self) -> dict[str, bool]:
        return {
            "0x": self.enable_zerox,
            "1inch": self.enable_oneinch,
            "kyberswap": self.enable_kyberswap,
            "uniswap-api": self.enable_uniswap_routing,
        }


# Global settings instance
settings = Settings()
