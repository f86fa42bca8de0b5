# sigma/charts.py
from __future__ import annotations

import numpy as np
import pandas as pd
import plotly.graph_objs as go

from .models import ChartView
from .signals import MAX_SIGMA_SCALE

GREEN = "0, 200, 83"
RED = "255, 23, 68"
ORANGE = "255, 145, 0"
BACKGROUND = "#0b0b14"
GRID = "#151522"
MARGIN = dict(l=56, r=16, t=40, b=72)


def format_date(date, period: str) -> str:
    d = pd.Timestamp(date)
    if period == "monthly":
        return d.strftime("%b '%y")
    return f"{d.strftime('%b')} {d.day}"


def label_interval(count: int) -> int:
    """Show a date label every n-th bar."""
    if count <= 20:
        return 1
    if count <= 50:
        return 5
    if count <= 100:
        return 10
    if count <= 200:
        return 20
    return int(np.ceil(count / 15))


def _rgba(rgb: str, alpha: float) -> str:
    return f"rgba({rgb}, {alpha})"


def empty_figure(title: str) -> go.Figure:
    fig = go.Figure()
    fig.update_layout(
        title=title,
        margin=MARGIN,
        paper_bgcolor=BACKGROUND,
        plot_bgcolor=BACKGROUND,
        font=dict(color="#888"),
        xaxis=dict(visible=False),
        yaxis=dict(visible=False),
    )
    return fig


def build_deviation_figure(view: ChartView) -> go.Figure:
    """
    Centered bar chart of z-scores on a fixed ±5σ scale.

    Bars beyond the threshold are drawn solid, the rest faded. Bars beyond
    the scale are truncated and flagged with ▲ / ▼.
    """
    data = view.data
    config = view.config
    if data.empty:
        return empty_figure("No data in range")

    threshold = float(config.threshold)
    z = data["z"].astype(float)
    is_signal = z.abs() >= threshold
    is_pos = z >= 0
    shown = z.clip(-MAX_SIGMA_SCALE, MAX_SIGMA_SCALE)

    x = [d.strftime("%Y-%m-%d") for d in data.index]
    colors = [
        _rgba(GREEN if pos else RED, 0.9 if sig else 0.45)
        for pos, sig in zip(is_pos, is_signal)
    ]

    rolling = "local_mean" in data.columns
    custom = np.column_stack(
        [
            data["ret"].values * 100,
            z.values,
            (data["local_mean"].values * 100) if rolling else np.zeros(len(data)),
            (data["local_std"].values * 100) if rolling else np.zeros(len(data)),
        ]
    )
    hover = "<b>%{x}</b><br>Return: %{customdata[0]:+.2f}%<br>Z: %{customdata[1]:+.2f}σ"
    if rolling:
        hover += "<br>Local μ: %{customdata[2]:+.3f}%<br>Local σ: %{customdata[3]:.3f}%"

    fig = go.Figure()
    fig.add_trace(
        go.Bar(
            x=x,
            y=shown,
            marker=dict(color=colors, line=dict(width=0)),
            customdata=custom,
            hovertemplate=hover + "<extra></extra>",
            name="z-score",
        )
    )

    clipped = z.abs() > MAX_SIGMA_SCALE
    if clipped.any():
        fig.add_trace(
            go.Scatter(
                x=[xi for xi, c in zip(x, clipped) if c],
                y=np.where(is_pos[clipped], MAX_SIGMA_SCALE + 0.25, -MAX_SIGMA_SCALE - 0.25),
                mode="text",
                text=["▲" if p else "▼" for p in is_pos[clipped]],
                textfont=dict(color=[_rgba(GREEN if p else RED, 1) for p in is_pos[clipped]], size=10),
                hoverinfo="skip",
                showlegend=False,
            )
        )

    # threshold bands and lines
    fig.add_hrect(y0=0, y1=threshold, fillcolor=_rgba(GREEN, 0.03), line_width=0, layer="below")
    fig.add_hrect(y0=-threshold, y1=0, fillcolor=_rgba(RED, 0.03), line_width=0, layer="below")
    for level in (threshold, -threshold):
        fig.add_hline(y=level, line=dict(color=_rgba(ORANGE, 0.4), width=1, dash="dash"))
    fig.add_hline(y=0, line=dict(color="#3a3a4a", width=1.5))

    step = label_interval(len(x))
    levels = list(range(-int(MAX_SIGMA_SCALE), int(MAX_SIGMA_SCALE) + 1))

    fig.add_annotation(
        text=config.ticker,
        xref="paper",
        yref="paper",
        x=0.99,
        y=0.98,
        showarrow=False,
        font=dict(size=56, color="#13131f"),
        xanchor="right",
        yanchor="top",
    )
    fig.update_layout(
        margin=MARGIN,
        paper_bgcolor=BACKGROUND,
        plot_bgcolor=BACKGROUND,
        font=dict(color="#999", family="JetBrains Mono, monospace", size=10),
        bargap=0.2,
        showlegend=False,
        hovermode="closest",
        xaxis=dict(
            type="category",
            tickmode="array",
            tickvals=x[::step],
            ticktext=[format_date(d, config.period) for d in x[::step]],
            showgrid=False,
        ),
        yaxis=dict(
            range=[-MAX_SIGMA_SCALE - 0.5, MAX_SIGMA_SCALE + 0.5],
            tickmode="array",
            tickvals=levels,
            ticktext=[f"+{v}σ" if v > 0 else ("0" if v == 0 else f"{v}σ") for v in levels],
            gridcolor=GRID,
            zeroline=False,
        ),
    )
    return fig
