"""Configuration management.

Loads from TOML config files + environment variables.
Uses pydantic-settings for validation and env var overriding.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings


# ---------------------------------------------------------------------------
# Sub-configs
# ---------------------------------------------------------------------------

class CacheConfig(BaseModel):
    trades_ttl_ms: int = 300_000  # 5 min
    macro_ttl_ms: int = 3_600_000  # 1 hour
    prices_ttl_ms: int = 300_000  # 5 min


class GatewayConfig(BaseModel):
    worker_url: str = "http://localhost:8787/"
    trades_db: str = ""
    token_env: str = "JOURNAL_NOTION_TOKEN"  # Name of env var holding the token
    timeout_seconds: float = 14.0
    max_pages: int = 30

    @property
    def token(self) -> str:
        return os.environ.get(self.token_env, "")


class SimulationConfig(BaseModel):
    run_count: int = 500
    ruin_floor_r: float = -20.0
    dynamic_ruin: bool = False  # Use the win-rate based floor instead
    percentiles: list[float] = Field(
        default_factory=lambda: [0.10, 0.25, 0.50, 0.75, 0.90]
    )
    max_display_paths: int = 60
    seed: int | None = None

    @field_validator("percentiles")
    @classmethod
    def _check_percentiles(cls, value: list[float]) -> list[float]:
        for p in value:
            if not 0.0 <= p <= 1.0:
                raise ValueError(f"percentile {p} outside [0, 1]")
        return sorted(value)

    @field_validator("ruin_floor_r")
    @classmethod
    def _check_floor(cls, value: float) -> float:
        if value >= 0:
            raise ValueError("ruin_floor_r must be negative")
        return value


class MacroConfig(BaseModel):
    series: list[str] = Field(
        default_factory=lambda: [
            "CPIAUCSL",
            "CPILFESL",
            "PAYEMS",
            "UNRATE",
            "A191RL1Q225SBEA",
            "FEDFUNDS",
        ]
    )
    api_key_env: str = "JOURNAL_FRED_KEY"

    @property
    def api_key(self) -> str:
        return os.environ.get(self.api_key_env, "")


class PriceConfig(BaseModel):
    symbols: list[str] = Field(
        default_factory=lambda: ["EURUSD", "GBPUSD", "DXY", "XAUUSD"]
    )
    td_key_env: str = "JOURNAL_TWELVEDATA_KEY"

    @property
    def td_key(self) -> str:
        return os.environ.get(self.td_key_env, "")

    @property
    def source(self) -> str:
        """Live feed when a key is configured, else the free hourly one."""
        return "twelvedata" if self.td_key else "exchangerate"


class ObservabilityConfig(BaseModel):
    log_level: str = "INFO"
    log_format: str = "console"  # "json" or "console"


# ---------------------------------------------------------------------------
# Top-level settings
# ---------------------------------------------------------------------------

class Settings(BaseSettings):
    """Top-level application settings.

    Loaded from TOML config files, overridden by environment variables.
    """

    cache: CacheConfig = Field(default_factory=CacheConfig)
    gateway: GatewayConfig = Field(default_factory=GatewayConfig)
    simulation: SimulationConfig = Field(default_factory=SimulationConfig)
    macro: MacroConfig = Field(default_factory=MacroConfig)
    prices: PriceConfig = Field(default_factory=PriceConfig)
    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)

    model_config = {"env_prefix": "JOURNAL_", "env_nested_delimiter": "__"}


def load_settings(
    config_path: str | Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> Settings:
    """Load settings from TOML file + env vars.

    Args:
        config_path: Path to TOML config file (optional).
        overrides: Dict of overrides to apply on top.
    """
    from .errors import ConfigError

    data: dict[str, Any] = {}

    if config_path:
        path = Path(config_path)
        if not path.exists():
            raise ConfigError(f"Config file not found: {path}")
        import tomli

        with open(path, "rb") as f:
            try:
                data = tomli.load(f)
            except tomli.TOMLDecodeError as exc:
                raise ConfigError(f"Invalid TOML in {path}: {exc}") from exc

    if overrides:
        data.update(overrides)

    return Settings(**data)
