# sigma/returns.py
from __future__ import annotations

import pandas as pd

from .models import empty_frame

# trading-day approximations, not calendar based
PERIOD_STEPS = {"daily": 1, "weekly": 5, "monthly": 21}


def period_step(period: str) -> int:
    try:
        return PERIOD_STEPS[period]
    except KeyError:
        raise ValueError(f"Unknown period {period!r}, expected one of {tuple(PERIOD_STEPS)}") from None


def compute_returns(prices: pd.DataFrame, period: str = "daily") -> pd.DataFrame:
    """
    Fixed-step returns over a date-indexed 'close' column.

      ret[k] = close[i] / close[i - step] - 1   for i = step, 2*step, ...

    Each return is dated at the later endpoint. A series of `step` points
    or fewer yields an empty frame.
    """
    step = period_step(period)
    if len(prices) <= step:
        return empty_frame("ret")

    close = prices["close"].astype(float)
    sampled = close.iloc[::step]
    prev = sampled.shift(1)

    df = pd.DataFrame({"ret": ((sampled - prev) / prev).iloc[1:]})
    df.index.name = "date"
    return df
