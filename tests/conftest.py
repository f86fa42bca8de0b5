"""Shared fixtures: synthetic price and return frames, fake data provider."""

from __future__ import annotations

from typing import List, Optional

import pandas as pd
import pytest

from sigma.data_loader import MarketDataProvider
from sigma.errors import DataFetchError
from sigma.models import PriceHistory, TickerMatch


def make_prices(closes, start: str = "2024-01-01") -> pd.DataFrame:
    index = pd.bdate_range(start, periods=len(closes), name="date")
    return pd.DataFrame({"close": [float(c) for c in closes]}, index=index)


def make_returns(values, start: str = "2024-01-02") -> pd.DataFrame:
    index = pd.bdate_range(start, periods=len(values), name="date")
    return pd.DataFrame({"ret": [float(v) for v in values]}, index=index)


def make_history(closes, ticker: str = "SPY", start: str = "2024-01-01") -> PriceHistory:
    return PriceHistory(
        ticker=ticker,
        currency="USD",
        exchange="NYSEArca",
        name="SPDR S&P 500 ETF Trust",
        prices=make_prices(closes, start),
    )


class FakeProvider(MarketDataProvider):
    """In-memory provider; records calls and can be told to fail."""

    def __init__(self, histories=None, matches: Optional[List[TickerMatch]] = None, error: Optional[DataFetchError] = None):
        self.histories = histories or {}
        self.matches = matches or []
        self.error = error
        self.calls = []

    def get_price_history(self, ticker, period1=None, period2=None, interval="1d"):
        self.calls.append(("history", ticker, period1, period2, interval))
        if self.error is not None:
            raise self.error
        return self.histories[ticker]

    def search(self, query, limit=8):
        self.calls.append(("search", query))
        if self.error is not None:
            raise self.error
        return self.matches[:limit]


@pytest.fixture
def sample_prices() -> pd.DataFrame:
    return make_prices([100, 102, 101, 105, 90])


@pytest.fixture
def fake_provider() -> FakeProvider:
    return FakeProvider(
        histories={"SPY": make_history([100, 102, 101, 105, 90])},
        matches=[
            TickerMatch(symbol="SPY", name="SPDR S&P 500", type="ETF", exchange="NYSEArca"),
            TickerMatch(symbol="SPYG", name="SPDR Portfolio S&P 500 Growth", type="ETF", exchange="NYSEArca"),
        ],
    )
