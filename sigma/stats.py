# sigma/stats.py
from __future__ import annotations

import math

import numpy as np
import pandas as pd

from .models import StatsResult, empty_frame


def safe_divide(numerator, denominator):
    """
    numerator / denominator, with 0 wherever the denominator is 0.

    Accepts scalars or Series. Every normalizer goes through here so that
    a zero standard deviation always maps to a zero z-score.
    """
    if isinstance(denominator, pd.Series):
        zero = denominator == 0
        out = numerator / denominator.mask(zero)
        return out.mask(zero, 0.0)

    if denominator == 0:
        if isinstance(numerator, pd.Series):
            return pd.Series(0.0, index=numerator.index, name=numerator.name)
        return 0.0
    return numerator / denominator


def sample_std(values: pd.Series, mean: float) -> float:
    """Sample std with divisor (n-1), falling back to 1 for a single value."""
    n = len(values)
    if n == 0 or values.max() == values.min():
        return 0.0
    variance = float(((values - mean) ** 2).sum()) / (n - 1 if n > 1 else 1)
    return math.sqrt(variance)


# ---------------------------------------------------------------------------
# Full sample
# ---------------------------------------------------------------------------
def compute_stats_full_sample(returns: pd.DataFrame) -> StatsResult:
    """One mean and std over the whole return series."""
    if returns.empty:
        return StatsResult(mean=0.0, std=0.0, data=empty_frame("ret", "z"))

    ret = returns["ret"].astype(float)
    mean = float(ret.mean())
    std = sample_std(ret, mean)

    df = pd.DataFrame({"ret": ret, "z": safe_divide(ret - mean, std)})
    return StatsResult(mean=mean, std=std, data=df)


# ---------------------------------------------------------------------------
# Rolling window
# ---------------------------------------------------------------------------
def compute_stats_rolling(returns: pd.DataFrame, window_size: int) -> StatsResult:
    """
    Position-dependent mean/std for each return.

      - i <  window_size: expanding window returns[0..i], current point included
      - i >= window_size: the window_size points before i, current point excluded

    The result's mean/std are the averages of the per-point local values,
    a descriptive summary only.
    """
    window_size = int(window_size)
    if window_size < 1:
        raise ValueError("window_size must be a positive integer")

    if returns.empty:
        return StatsResult(mean=0.0, std=0.0, data=empty_frame("ret", "z", "local_mean", "local_std"))

    ret = returns["ret"].astype(float)
    warm_up = pd.Series(np.arange(len(ret)) < window_size, index=ret.index)

    expanding = ret.expanding()
    prior = ret.shift(1).rolling(window_size)  # [i - window_size, i)

    local_mean = expanding.mean().where(warm_up, prior.mean())
    local_std = expanding.std(ddof=1).where(warm_up, prior.std(ddof=1))
    spread = (expanding.max() - expanding.min()).where(warm_up, prior.max() - prior.min())

    # a single-point window has no spread, constant windows have none either
    local_std = local_std.fillna(0.0).mask(spread == 0, 0.0)

    df = pd.DataFrame(
        {
            "ret": ret,
            "z": safe_divide(ret - local_mean, local_std),
            "local_mean": local_mean,
            "local_std": local_std,
        }
    )
    return StatsResult(mean=float(local_mean.mean()), std=float(local_std.mean()), data=df)


def compute_stats(returns: pd.DataFrame, sigma_mode: str = "rolling", window_size: int = 60) -> StatsResult:
    if sigma_mode == "rolling":
        return compute_stats_rolling(returns, window_size)
    if sigma_mode == "full":
        return compute_stats_full_sample(returns)
    raise ValueError(f"Unknown sigma mode {sigma_mode!r}")
