# sigma/models.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

import pandas as pd

PERIODS = ("daily", "weekly", "monthly")
SIGMA_MODES = ("full", "rolling")


def empty_frame(*columns: str) -> pd.DataFrame:
    """Empty frame with a `date` DatetimeIndex and float columns."""
    index = pd.DatetimeIndex([], name="date")
    return pd.DataFrame({c: pd.Series(dtype=float, index=index) for c in columns}, index=index)


@dataclass(frozen=True)
class PriceHistory:
    ticker: str
    currency: str
    exchange: str
    name: str
    prices: pd.DataFrame  # index: date, columns: ['close']

    @property
    def first_date(self) -> Optional[pd.Timestamp]:
        return None if self.prices.empty else self.prices.index[0]

    @property
    def last_date(self) -> Optional[pd.Timestamp]:
        return None if self.prices.empty else self.prices.index[-1]

    def to_payload(self) -> dict:
        """Shape used by the /api/history endpoint and the page store."""
        return {
            "ticker": self.ticker,
            "currency": self.currency,
            "exchange": self.exchange,
            "name": self.name,
            "prices": [
                {"date": d.strftime("%Y-%m-%d"), "close": float(c)}
                for d, c in self.prices["close"].items()
            ],
        }


@dataclass(frozen=True)
class StatsResult:
    mean: float
    std: float
    data: pd.DataFrame  # index: date, columns: ['ret', 'z'] (+ 'local_mean', 'local_std' when rolling)


@dataclass(frozen=True)
class SignalSummary:
    count: int
    pct: float  # 0-100, one decimal

    @property
    def pct_label(self) -> str:
        return f"{self.pct:.1f}"


@dataclass(frozen=True)
class TickerMatch:
    symbol: str
    name: str
    type: str
    exchange: str

    def to_dict(self) -> dict:
        return {"symbol": self.symbol, "name": self.name, "type": self.type, "exchange": self.exchange}


@dataclass(frozen=True)
class ChartConfig:
    """Everything the deviation chart depends on besides the price history."""
    ticker: str
    period: str = "daily"
    threshold: float = 2.0
    sigma_mode: str = "rolling"
    window: int = 60
    start_date: Optional[str] = None
    end_date: Optional[str] = None

    def __post_init__(self):
        if self.period not in PERIODS:
            raise ValueError(f"Unknown period {self.period!r}, expected one of {PERIODS}")
        if self.sigma_mode not in SIGMA_MODES:
            raise ValueError(f"Unknown sigma mode {self.sigma_mode!r}, expected one of {SIGMA_MODES}")
        if int(self.window) < 1:
            raise ValueError("Rolling window must be a positive integer")
        if not float(self.threshold) > 0:
            raise ValueError("Threshold must be positive")


@dataclass(frozen=True)
class ChartView:
    config: ChartConfig
    stats: StatsResult
    data: pd.DataFrame  # stats.data restricted to the date range
    summary: SignalSummary
    clipped: int
    signals: pd.DataFrame = field(repr=False)

    @property
    def is_empty(self) -> bool:
        return self.data.empty
