# sigma/api.py
from __future__ import annotations

from flask import Flask, jsonify, request

from .data_loader import MarketDataProvider
from .errors import DataFetchError
from .log import get_logger

logger = get_logger("api")


def _error(message: str, status: int):
    return jsonify({"error": message}), status


def _int_arg(name: str):
    value = request.args.get(name)
    if value in (None, ""):
        return None
    return int(value)


def register_api_routes(
    server: Flask,
    data_provider: MarketDataProvider,
    history_cache_seconds: int = 300,
    search_cache_seconds: int = 3600,
):
    """
    JSON pass-through to the market data provider, mounted on the Flask
    server behind Dash:

      GET /api/history/<ticker>?period1=&period2=&interval=
      GET /api/search/<query>
    """

    @server.route("/api/history/", defaults={"ticker": ""})
    @server.route("/api/history/<path:ticker>")
    def api_history(ticker):
        if not ticker:
            return _error("Missing ticker", 400)

        try:
            period1, period2 = _int_arg("period1"), _int_arg("period2")
        except ValueError:
            return _error("period1 and period2 must be unix timestamps", 400)

        try:
            history = data_provider.get_price_history(
                ticker,
                period1=period1,
                period2=period2,
                interval=request.args.get("interval") or "1d",
            )
        except DataFetchError as exc:
            logger.error("History request for %s failed: %s", ticker, exc)
            return _error(exc.reason, exc.status_code)

        resp = jsonify(history.to_payload())
        resp.headers["Cache-Control"] = f"s-maxage={history_cache_seconds}"
        return resp

    @server.route("/api/search/", defaults={"query": ""})
    @server.route("/api/search/<path:query>")
    def api_search(query):
        if not query:
            return _error("Missing query", 400)

        try:
            matches = data_provider.search(query)
        except DataFetchError as exc:
            logger.error("Search for %r failed: %s", query, exc)
            return _error("Search failed", 500)

        resp = jsonify([m.to_dict() for m in matches])
        resp.headers["Cache-Control"] = f"s-maxage={search_cache_seconds}"
        return resp

    return server
