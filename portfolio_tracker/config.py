"""Configuration constants for the portfolio tracker."""

import os
from dataclasses import dataclass, field
from pathlib import Path

API_KEY_ENV = "ALPHA_VANTAGE_API_KEY"
STORE_PATH_ENV = "PORTFOLIO_TRACKER_STORE"
LOG_LEVEL_ENV = "PORTFOLIO_TRACKER_LOG_LEVEL"


@dataclass(frozen=True)
class AlphaVantageConfig:
    """Configuration for the Alpha Vantage quote provider."""

    BASE_URL: str = "https://www.alphavantage.co/query"
    FUNCTION: str = "TIME_SERIES_INTRADAY"
    INTERVAL: str = "5min"
    REQUEST_TIMEOUT_S: float = 10.0
    USER_AGENT: str = "Mozilla/5.0"


@dataclass(frozen=True)
class StorageConfig:
    """Configuration for the local key-value store."""

    PORTFOLIO_KEY: str = "portfolio"
    DEFAULT_PATH: Path = field(
        default_factory=lambda: Path.home() / ".portfolio_tracker.json"
    )


@dataclass(frozen=True)
class Settings:
    """Runtime settings resolved from the environment."""

    api_key: str | None
    store_path: Path
    log_level: str = "WARNING"

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> "Settings":
        env = os.environ if environ is None else environ
        store_path = env.get(STORE_PATH_ENV)
        return cls(
            api_key=env.get(API_KEY_ENV) or None,
            store_path=Path(store_path).expanduser()
            if store_path
            else StorageConfig().DEFAULT_PATH,
            log_level=env.get(LOG_LEVEL_ENV, "WARNING").upper(),
        )
