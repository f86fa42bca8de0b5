# sigma/config.py
from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()  # charge .env


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    data_source: str = "yahoo"  # "yahoo" or the base URL of a running proxy
    default_ticker: str = "SPY"
    default_period: str = "daily"
    default_threshold: float = 2.0
    default_sigma_mode: str = "rolling"
    default_window: int = 60
    history_years: int = 3
    search_debounce: float = 0.3  # seconds
    request_timeout: float = 10.0
    history_cache_seconds: int = 300
    search_cache_seconds: int = 3600
    log_level: str = "INFO"
    debug: bool = False
    port: int = 8050

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            data_source=os.getenv("SIGMA_DATA_SOURCE", cls.data_source),
            default_ticker=os.getenv("SIGMA_DEFAULT_TICKER", cls.default_ticker).upper(),
            default_period=os.getenv("SIGMA_DEFAULT_PERIOD", cls.default_period),
            default_threshold=float(os.getenv("SIGMA_DEFAULT_THRESHOLD", cls.default_threshold)),
            default_sigma_mode=os.getenv("SIGMA_DEFAULT_MODE", cls.default_sigma_mode),
            default_window=int(os.getenv("SIGMA_DEFAULT_WINDOW", cls.default_window)),
            history_years=int(os.getenv("SIGMA_HISTORY_YEARS", cls.history_years)),
            search_debounce=float(os.getenv("SIGMA_SEARCH_DEBOUNCE", cls.search_debounce)),
            request_timeout=float(os.getenv("SIGMA_REQUEST_TIMEOUT", cls.request_timeout)),
            log_level=os.getenv("SIGMA_LOG_LEVEL", cls.log_level),
            debug=_env_bool("SIGMA_DEBUG", cls.debug),
            port=int(os.getenv("PORT", cls.port)),
        )


settings = Settings.from_env()
