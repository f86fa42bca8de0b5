# sigma/signals.py
from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Tuple

import pandas as pd

from .models import SignalSummary

# fixed display ceiling of the deviation chart, in sigmas
MAX_SIGMA_SCALE = 5.0

RANGE_PRESETS = {"3M": 3, "6M": 6, "1Y": 12, "2Y": 24, "All": None}


def _bound(value) -> Optional[pd.Timestamp]:
    if value is None or value == "":
        return None
    return pd.Timestamp(value).normalize()


def filter_range(data: pd.DataFrame, start_date=None, end_date=None) -> pd.DataFrame:
    """Rows with start_date <= date <= end_date; the input itself if a bound is missing."""
    start, end = _bound(start_date), _bound(end_date)
    if start is None or end is None:
        return data
    mask = (data.index >= start) & (data.index <= end)
    return data.loc[mask]


def _is_signal(data: pd.DataFrame, threshold: float) -> pd.Series:
    return data["z"].abs() >= float(threshold)


def count_signals(data: pd.DataFrame, threshold: float) -> SignalSummary:
    count = int(_is_signal(data, threshold).sum()) if len(data) else 0
    pct = 0.0
    if len(data):
        # half-up, so 0.25% shows as 0.3
        share = Decimal(count) * 100 / Decimal(len(data))
        pct = float(share.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))
    return SignalSummary(count=count, pct=pct)


def list_signals(data: pd.DataFrame, threshold: float) -> pd.DataFrame:
    """Signals only, largest |z| first. Ties keep their original order."""
    signals = data.loc[_is_signal(data, threshold)]
    return signals.sort_values("z", key=lambda z: z.abs(), ascending=False, kind="mergesort")


def count_clipped(data: pd.DataFrame, scale: float = MAX_SIGMA_SCALE) -> int:
    """Bars taller than the chart's scale; they are drawn truncated."""
    if data.empty:
        return 0
    return int((data["z"].abs() > float(scale)).sum())


def preset_range(first, last, months: Optional[int]) -> Tuple[str, str]:
    """
    (start, end) for a range button, as YYYY-MM-DD strings.

    The end is always the last available date; the start goes back
    `months` calendar months and is clamped to the first date.
    `months=None` selects the whole history.
    """
    first, last = pd.Timestamp(first), pd.Timestamp(last)
    start = first if months is None else max(first, last - pd.DateOffset(months=int(months)))
    return start.strftime("%Y-%m-%d"), last.strftime("%Y-%m-%d")
