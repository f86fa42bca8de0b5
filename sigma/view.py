# sigma/view.py
from __future__ import annotations

import pandas as pd

from .models import ChartConfig, ChartView
from .returns import compute_returns
from .signals import MAX_SIGMA_SCALE, count_clipped, count_signals, filter_range, list_signals
from .stats import compute_stats


def compute_view(prices: pd.DataFrame, config: ChartConfig) -> ChartView:
    """
    One full recomputation pass for a chart configuration:
    returns -> z-scores (full or rolling) -> date range -> signal aggregates.

    Stats are computed over the whole history, then filtered, so a rolling
    window near the start of the range still sees the earlier data.
    """
    returns = compute_returns(prices, config.period)
    stats = compute_stats(returns, config.sigma_mode, config.window)
    data = filter_range(stats.data, config.start_date, config.end_date)

    return ChartView(
        config=config,
        stats=stats,
        data=data,
        summary=count_signals(data, config.threshold),
        clipped=count_clipped(data, MAX_SIGMA_SCALE),
        signals=list_signals(data, config.threshold),
    )
