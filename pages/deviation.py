# pages/deviation.py
from __future__ import annotations

import uuid

from dash import ctx, dcc, html, Input, Output, State, no_update
from dash.exceptions import PreventUpdate

from sigma.charts import build_deviation_figure, empty_figure
from sigma.concurrency import LatestRequestGate
from sigma.config import Settings, settings as default_settings
from sigma.data_loader import MarketDataProvider, parse_price_payload
from sigma.errors import DataFetchError
from sigma.log import get_logger
from sigma.models import ChartConfig, ChartView
from sigma.signals import RANGE_PRESETS, preset_range
from sigma.view import compute_view

logger = get_logger("pages.deviation")

PERIODS = [
    {"label": "D", "value": "daily", "full": "Daily"},
    {"label": "W", "value": "weekly", "full": "Weekly"},
    {"label": "M", "value": "monthly", "full": "Monthly"},
]
SIGMA_MODES = [
    {"label": "Full Sample", "value": "full"},
    {"label": "Rolling Window", "value": "rolling"},
]
ROLLING_WINDOWS = [20, 60, 120, 252]

LABEL_STYLE = {
    "fontSize": "10px",
    "letterSpacing": "2px",
    "color": "#6b7280",
    "textTransform": "uppercase",
    "marginBottom": "4px",
}
PANEL_STYLE = {
    "backgroundColor": "#0b0b14",
    "border": "1px solid #151522",
    "borderRadius": "10px",
    "padding": "40px",
    "textAlign": "center",
}


def _control(label, child, **kwargs):
    return html.Div([html.Div(label, style=LABEL_STYLE), child], **kwargs)


def _preset_id(key: str) -> str:
    return f"sig-preset-{key}"


# -------------------------------------------------------------------
# Layout
# -------------------------------------------------------------------
def layout(settings: Settings = default_settings):
    """Page layout for the deviation monitor."""
    ticker = settings.default_ticker
    return html.Div(
        [
            # one id per browser tab, used to drop stale loads and searches
            dcc.Store(id="sig-session", data=uuid.uuid4().hex),
            dcc.Store(id="sig-history"),
            dcc.Store(id="sig-error"),

            # Header
            html.Div(
                style={
                    "display": "flex",
                    "justifyContent": "space-between",
                    "alignItems": "flex-start",
                    "flexWrap": "wrap",
                    "gap": "16px",
                    "marginBottom": "20px",
                },
                children=[
                    html.Div(
                        [
                            html.Div("Statistical Deviation Monitor", style=LABEL_STYLE),
                            html.H2("σ Tracker", style={"margin": "0"}),
                            html.Div(id="sig-title", style={"fontSize": "13px", "color": "#6b7280"}),
                        ]
                    ),
                    html.Div(id="sig-stats", style={"display": "flex", "gap": "28px"}),
                ],
            ),

            # Controls row 1
            html.Div(
                style={"display": "flex", "gap": "16px", "marginBottom": "12px", "flexWrap": "wrap", "alignItems": "flex-end"},
                children=[
                    _control(
                        "Ticker",
                        dcc.Dropdown(
                            id="sig-ticker",
                            options=[{"label": ticker, "value": ticker}],
                            value=ticker,
                            clearable=False,
                            searchable=True,
                            style={"width": "260px"},
                        ),
                    ),
                    _control(
                        "Timeframe",
                        dcc.RadioItems(
                            id="sig-period",
                            options=[{"label": p["label"], "value": p["value"]} for p in PERIODS],
                            value=settings.default_period,
                            inline=True,
                        ),
                    ),
                    _control(
                        "Threshold (σ)",
                        dcc.Slider(
                            id="sig-threshold",
                            min=1,
                            max=5,
                            step=0.1,
                            value=settings.default_threshold,
                            marks={i: f"{i}σ" for i in range(1, 6)},
                            tooltip={"placement": "bottom"},
                        ),
                        style={"width": "220px"},
                    ),
                    _control(
                        "σ Calculation",
                        dcc.RadioItems(
                            id="sig-mode",
                            options=SIGMA_MODES,
                            value=settings.default_sigma_mode,
                            inline=True,
                        ),
                    ),
                    _control(
                        "Window (periods)",
                        dcc.RadioItems(
                            id="sig-window",
                            options=[{"label": str(w), "value": w} for w in ROLLING_WINDOWS],
                            value=settings.default_window,
                            inline=True,
                        ),
                        id="sig-window-box",
                    ),
                ],
            ),

            # Controls row 2
            html.Div(
                style={"display": "flex", "gap": "16px", "marginBottom": "16px", "flexWrap": "wrap", "alignItems": "flex-end"},
                children=[
                    _control(
                        "From / To",
                        dcc.DatePickerRange(id="sig-range", display_format="YYYY-MM-DD"),
                    ),
                    _control(
                        "Range",
                        html.Div(
                            [
                                html.Button(key, id=_preset_id(key), n_clicks=0, style={"fontSize": "11px"})
                                for key in RANGE_PRESETS
                            ],
                            style={"display": "flex", "gap": "2px"},
                        ),
                    ),
                    html.Div(
                        id="sig-mode-desc",
                        style={"fontSize": "11px", "color": "#6b7280", "maxWidth": "340px", "lineHeight": "1.4"},
                    ),
                ],
            ),

            # Chart
            dcc.Loading(
                [
                    html.Div(id="sig-message"),
                    dcc.Graph(id="sig-graph", style={"height": "480px"}),
                ]
            ),
            html.Div(id="sig-clipped", style={"fontSize": "11px", "color": "#6b7280", "marginTop": "6px"}),

            # Signal list
            html.Div(id="sig-signals", style={"marginTop": "20px"}),
        ]
    )


# -------------------------------------------------------------------
# Helpers
# -------------------------------------------------------------------
def config_from_controls(ticker, period, threshold, sigma_mode, window, start_date, end_date) -> ChartConfig:
    """Snapshot of every control, as one immutable value."""
    return ChartConfig(
        ticker=ticker or "",
        period=period or "daily",
        threshold=float(threshold if threshold is not None else 2.0),
        sigma_mode=sigma_mode or "rolling",
        window=int(window or 60),
        start_date=(start_date or "")[:10] or None,
        end_date=(end_date or "")[:10] or None,
    )


def mode_description(config: ChartConfig) -> str:
    if config.sigma_mode == "rolling":
        return (
            f"Each bar measured against the prior {config.window} periods. "
            "Sudden moves after calm periods register as larger deviations."
        )
    return "Each bar measured against the mean & std dev of the entire selected range."


def _stat(label, value, color=None):
    return html.Div(
        [
            html.Div(label, style=LABEL_STYLE),
            html.Div(value, style={"fontSize": "18px", "fontWeight": 700, "color": color or "inherit"}),
        ],
        style={"textAlign": "right"},
    )


def stats_children(view: ChartView):
    config = view.config
    mean, std = view.stats.mean, view.stats.std
    period_name = next(p["full"] for p in PERIODS if p["value"] == config.period)
    return [
        _stat(f"μ Return ({period_name})", f"{mean * 100:+.3f}%", "#00c853" if mean >= 0 else "#ff1744"),
        _stat("Avg σ" if config.sigma_mode == "rolling" else "σ", f"{std * 100:.3f}%"),
        _stat(
            f"≥{config.threshold:g}σ Signals",
            [
                str(view.summary.count),
                html.Span(f" ({view.summary.pct_label}%)", style={"fontSize": "11px", "color": "#6b7280"}),
            ],
            "#ff9100",
        ),
    ]


def signals_table(view: ChartView):
    """Signals sorted by |z|, largest first."""
    if view.signals.empty:
        return html.P(f"No moves beyond {view.config.threshold:g}σ in this range.")

    rolling = "local_mean" in view.signals.columns
    cell_style = {
        "padding": "6px 10px",
        "textAlign": "center",
        "fontSize": "13px",
    }

    headers = ["Date", "Return", "Z-Score"] + (["Local μ", "Local σ"] if rolling else [])
    header = html.Tr([html.Th(h, style=cell_style) for h in headers])

    rows = []
    for date, row in view.signals.iterrows():
        color = "#16a34a" if row["ret"] >= 0 else "#dc2626"
        cells = [
            html.Td(date.strftime("%Y-%m-%d"), style=cell_style),
            html.Td(f"{row['ret'] * 100:+.2f}%", style={**cell_style, "color": color}),
            html.Td(f"{row['z']:+.2f}σ", style={**cell_style, "color": color}),
        ]
        if rolling:
            cells += [
                html.Td(f"{row['local_mean'] * 100:+.3f}%", style=cell_style),
                html.Td(f"{row['local_std'] * 100:.3f}%", style=cell_style),
            ]
        rows.append(html.Tr(cells))

    return html.Div(
        [
            html.H4(f"Signals ({view.summary.count})", style={"marginBottom": "8px"}),
            html.Table(
                [html.Thead(header), html.Tbody(rows)],
                style={"borderCollapse": "collapse", "width": "100%"},
            ),
        ]
    )


def search_options(matches, query, current):
    """Dropdown options: the typed symbol, the current one, then search matches."""
    options, seen = [], set()

    def add(value, label):
        if value and value not in seen:
            seen.add(value)
            options.append({"label": label, "value": value})

    if query:
        add(query.upper(), query.upper())
    if current:
        add(current, current)
    for m in matches:
        add(m.symbol, f"{m.symbol} · {m.name} · {m.type}")
    return options


# -------------------------------------------------------------------
# Callbacks
# -------------------------------------------------------------------
def register_callbacks(
    app,
    data_provider: MarketDataProvider,
    settings: Settings = default_settings,
    gate: LatestRequestGate | None = None,
):
    """
    Register the Dash callbacks for the deviation page.

    data_provider is shared at app level. `gate` drops results of loads and
    searches that were superseded by a newer one from the same tab.
    """
    gate = gate or LatestRequestGate()

    @app.callback(
        Output("sig-ticker", "options"),
        Input("sig-ticker", "search_value"),
        State("sig-ticker", "value"),
        State("sig-session", "data"),
        prevent_initial_call=True,
    )
    def search_tickers(query, current, session):
        if not query:
            raise PreventUpdate

        def run():
            try:
                return data_provider.search(query)
            except DataFetchError:
                return []

        latest, matches = gate.run_latest(f"{session}:search", run, quiet_period=settings.search_debounce)
        if not latest:
            return no_update
        return search_options(matches, query, current)

    @app.callback(
        [
            Output("sig-history", "data"),
            Output("sig-error", "data"),
        ],
        Input("sig-ticker", "value"),
        State("sig-session", "data"),
    )
    def load_ticker(ticker, session):
        if not ticker:
            raise PreventUpdate
        ticker = ticker.strip().upper()

        def run():
            try:
                return data_provider.get_price_history(ticker), None
            except DataFetchError as exc:
                logger.error("Load failed for %s: %s", ticker, exc)
                return None, exc.user_message

        latest, result = gate.run_latest(f"{session}:load", run)
        if not latest:
            raise PreventUpdate

        history, error = result
        if history is None:
            return None, error
        return history.to_payload(), None

    @app.callback(
        [
            Output("sig-range", "start_date"),
            Output("sig-range", "end_date"),
            Output("sig-range", "min_date_allowed"),
            Output("sig-range", "max_date_allowed"),
        ],
        [Input("sig-history", "data")] + [Input(_preset_id(key), "n_clicks") for key in RANGE_PRESETS],
    )
    def update_range(payload, *_clicks):
        if not payload or not payload.get("prices"):
            return None, None, None, None

        first = payload["prices"][0]["date"]
        last = payload["prices"][-1]["date"]
        months = None
        trigger = ctx.triggered_id
        for key, value in RANGE_PRESETS.items():
            if trigger == _preset_id(key):
                months = value
        start, end = preset_range(first, last, months)
        return start, end, first, last

    @app.callback(
        [
            Output("sig-graph", "figure"),
            Output("sig-stats", "children"),
            Output("sig-title", "children"),
            Output("sig-message", "children"),
            Output("sig-clipped", "children"),
            Output("sig-signals", "children"),
            Output("sig-mode-desc", "children"),
            Output("sig-window-box", "style"),
        ],
        [
            Input("sig-history", "data"),
            Input("sig-error", "data"),
            Input("sig-period", "value"),
            Input("sig-threshold", "value"),
            Input("sig-mode", "value"),
            Input("sig-window", "value"),
            Input("sig-range", "start_date"),
            Input("sig-range", "end_date"),
        ],
    )
    def render(payload, error, period, threshold, sigma_mode, window, start_date, end_date):
        history = parse_price_payload(payload) if payload else None
        config = config_from_controls(
            history.ticker if history else "",
            period,
            threshold,
            sigma_mode,
            window,
            start_date,
            end_date,
        )
        window_style = {} if config.sigma_mode == "rolling" else {"display": "none"}
        description = mode_description(config)

        if error or history is None:
            message = html.Div(error or "Pick a ticker to start.", style={**PANEL_STYLE, "color": "#ff5252"})
            return empty_figure(""), [], "", message, "", html.Div(), description, window_style

        title = f"{history.name} · {history.exchange}" if history.exchange else history.name
        view = compute_view(history.prices, config)

        if view.is_empty:
            message = html.Div("No data in range.", style={**PANEL_STYLE, "color": "#6b7280"})
            return empty_figure("No data in range"), stats_children(view), title, message, "", html.Div(), description, window_style

        clipped = f"{view.clipped} bar(s) beyond ±5σ are truncated (▲ / ▼)." if view.clipped else ""
        return (
            build_deviation_figure(view),
            stats_children(view),
            title,
            None,
            clipped,
            signals_table(view),
            description,
            window_style,
        )
