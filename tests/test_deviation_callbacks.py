"""Tests for the deviation page's load and search callbacks.

The callbacks are looked up in the Dash callback map and called directly,
with a fake provider in place of Yahoo.
"""

from __future__ import annotations

import pytest
from dash import Dash, no_update
from dash.exceptions import PreventUpdate

from pages import deviation
from sigma.concurrency import LatestRequestGate
from sigma.config import Settings
from sigma.errors import TickerNotFoundError

from tests.conftest import FakeProvider

SESSION = "tab-1"


def get_callback(app, output_id):
    """The undecorated callback function whose outputs include output_id."""
    for key, entry in app.callback_map.items():
        if output_id in key:
            return entry["callback"].__wrapped__
    raise KeyError(output_id)


def make_app(provider, gate=None):
    app = Dash(__name__, suppress_callback_exceptions=True)
    deviation.register_callbacks(app, provider, Settings(search_debounce=0), gate=gate)
    return app


class SupersedingProvider(FakeProvider):
    """Starts a newer request for the same tab while serving the current one."""

    def __init__(self, gate, **kwargs):
        super().__init__(**kwargs)
        self.gate = gate

    def get_price_history(self, ticker, period1=None, period2=None, interval="1d"):
        self.gate.begin(f"{SESSION}:load")
        return super().get_price_history(ticker, period1, period2, interval)

    def search(self, query, limit=8):
        self.gate.begin(f"{SESSION}:search")
        return super().search(query, limit)


class TestLoadTicker:
    def test_publishes_payload(self, fake_provider):
        load = get_callback(make_app(fake_provider), "sig-history.data")

        payload, error = load(" spy ", SESSION)

        assert error is None
        assert payload["ticker"] == "SPY"
        assert len(payload["prices"]) == 5
        assert fake_provider.calls[0][:2] == ("history", "SPY")

    def test_error_clears_history(self):
        provider = FakeProvider(error=TickerNotFoundError("NOPE"))
        load = get_callback(make_app(provider), "sig-history.data")

        assert load("nope", SESSION) == (None, 'Could not load "NOPE". Check the ticker and try again.')

    def test_empty_ticker(self, fake_provider):
        load = get_callback(make_app(fake_provider), "sig-history.data")

        with pytest.raises(PreventUpdate):
            load(None, SESSION)
        assert fake_provider.calls == []

    def test_superseded_load_does_not_update(self, fake_provider):
        gate = LatestRequestGate()
        provider = SupersedingProvider(gate, histories=fake_provider.histories)
        load = get_callback(make_app(provider, gate), "sig-history.data")

        with pytest.raises(PreventUpdate):
            load("SPY", SESSION)


class TestSearchTickers:
    def test_options_from_matches(self, fake_provider):
        search = get_callback(make_app(fake_provider), "sig-ticker.options")

        options = search("spy", None, SESSION)

        assert [o["value"] for o in options] == ["SPY", "SPYG"]
        assert options[1]["label"] == "SPYG · SPDR Portfolio S&P 500 Growth · ETF"

    def test_failed_search_keeps_typed_symbol(self):
        provider = FakeProvider(error=TickerNotFoundError("ZZZ"))
        search = get_callback(make_app(provider), "sig-ticker.options")

        assert search("zzz", "SPY", SESSION) == [
            {"label": "ZZZ", "value": "ZZZ"},
            {"label": "SPY", "value": "SPY"},
        ]

    def test_empty_query(self, fake_provider):
        search = get_callback(make_app(fake_provider), "sig-ticker.options")

        with pytest.raises(PreventUpdate):
            search("", None, SESSION)

    def test_superseded_search_does_not_update(self, fake_provider):
        gate = LatestRequestGate()
        provider = SupersedingProvider(gate, matches=fake_provider.matches)
        search = get_callback(make_app(provider, gate), "sig-ticker.options")

        assert search("spy", None, SESSION) is no_update
