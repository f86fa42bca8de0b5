from dash import Dash, dcc, html, Input, Output

from sigma.api import register_api_routes
from sigma.config import Settings, settings
from sigma.data_loader import MarketDataProvider, ProxyDataProvider, YahooDataProvider, get_data_provider
from sigma.log import get_logger, setup_logging

# import page modules
from pages import deviation, methodology

logger = get_logger("app")

NAV_LINK_STYLE = {
    "display": "block",
    "padding": "8px 10px",
    "borderRadius": "10px",
    "color": "white",
    "textDecoration": "none",
    "fontSize": "16px",
    "fontWeight": 500,
}


# -------------------------------------------------------------------
# Global layout: sidebar + main content
# -------------------------------------------------------------------
def build_layout():
    return html.Div(
        style={
            "display": "flex",
            "minHeight": "100vh",
            "fontFamily": "'JetBrains Mono', system-ui, monospace",
            "backgroundColor": "#08080c",
            "color": "#d4d0c8",
        },
        children=[
            dcc.Location(id="url"),
            # Sidebar
            html.Div(
                style={
                    "width": "220px",
                    "background": "linear-gradient(180deg, #0f172a, #1e293b)",
                    "color": "white",
                    "padding": "24px 16px",
                    "display": "flex",
                    "flexDirection": "column",
                    "gap": "16px",
                },
                children=[
                    html.Div(
                        [
                            html.Div("σ", style={"fontSize": "26px"}),
                            html.H2(
                                "σ Tracker",
                                style={
                                    "fontSize": "26px",
                                    "marginBottom": "0",
                                    "marginTop": "6px",
                                },
                            ),
                            html.Div(
                                "Statistical deviation monitor",
                                style={"fontSize": "12px", "color": "#9ca3af"},
                            ),
                        ]
                    ),
                    html.Hr(style={"borderColor": "#4b5563"}),
                    html.Div(
                        [
                            dcc.Link("📉  Deviations", href="/", style=NAV_LINK_STYLE),
                            dcc.Link("📚  Methodology", href="/methodology", style=NAV_LINK_STYLE),
                        ]
                    ),
                ],
            ),
            # Main content
            html.Div(
                id="page-content",
                style={
                    "flex": "1",
                    "padding": "28px 32px",
                    "maxWidth": "1400px",
                    "margin": "0 auto",
                },
            ),
        ],
    )


def create_app(app_settings: Settings = settings, data_provider: MarketDataProvider | None = None) -> Dash:
    setup_logging(app_settings.log_level)
    data_provider = data_provider or get_data_provider(app_settings)

    app = Dash(__name__, suppress_callback_exceptions=True, title="σ Tracker")
    app.layout = build_layout

    # -------------------------------------------------------------------
    # Routing callback
    # -------------------------------------------------------------------
    @app.callback(Output("page-content", "children"), Input("url", "pathname"))
    def display_page(pathname):
        if pathname in ("/", None, "/deviations"):
            return deviation.layout(app_settings)
        elif pathname == "/methodology":
            return methodology.layout()
        else:
            return html.Div([html.H2("404 - Page not found")])

    deviation.register_callbacks(app, data_provider, app_settings)

    # JSON proxy for browsers and other clients; it must never call itself
    upstream = data_provider
    if isinstance(data_provider, ProxyDataProvider):
        upstream = YahooDataProvider(history_years=app_settings.history_years)
    register_api_routes(
        app.server,
        upstream,
        history_cache_seconds=app_settings.history_cache_seconds,
        search_cache_seconds=app_settings.search_cache_seconds,
    )
    logger.info("σ Tracker ready (data source: %s)", app_settings.data_source)
    return app


app = create_app()
server = app.server  # for gunicorn

# -------------------------------------------------------------------
# Run local
# -------------------------------------------------------------------
if __name__ == "__main__":
    app.run(debug=settings.debug, port=settings.port)
