# sigma/data_loader.py
from __future__ import annotations

from typing import Any, Dict, List, Optional
from urllib.parse import quote

import pandas as pd
import requests
import yfinance as yf
from yfinance.exceptions import YFRateLimitError

from .config import Settings
from .errors import DataFetchError, TickerNotFoundError, UpstreamStatusError
from .log import get_logger
from .models import PriceHistory, TickerMatch, empty_frame

logger = get_logger("data_loader")

SEARCH_LIMIT = 8
DEFAULT_INTERVAL = "1d"


# -------------------------------------------------------------------
# Normalization
# -------------------------------------------------------------------
def clean_prices(raw: pd.DataFrame, ticker: str = "") -> pd.DataFrame:
    """
    Turn a frame with 'date' and 'close' columns into the canonical price frame:
    date-indexed, ascending, unique dates, strictly positive float closes.
    """
    if raw is None or raw.empty or not {"date", "close"}.issubset(raw.columns):
        return empty_frame("close")

    df = pd.DataFrame(
        {
            "date": pd.to_datetime(raw["date"], errors="coerce"),
            "close": pd.to_numeric(raw["close"], errors="coerce"),
        }
    )
    valid = df["date"].notna() & df["close"].notna() & (df["close"] > 0)
    dropped = int((~valid).sum())
    if dropped:
        logger.warning("Dropped %d invalid price rows for %s", dropped, ticker or "<unknown>")

    df = df.loc[valid]
    dates = pd.DatetimeIndex(df["date"])
    if dates.tz is not None:
        dates = dates.tz_localize(None)

    out = pd.DataFrame({"close": df["close"].astype(float).values}, index=dates.normalize())
    out.index.name = "date"
    out = out.sort_index(kind="mergesort")
    return out[~out.index.duplicated(keep="last")]


def parse_price_payload(payload: Dict[str, Any], ticker: Optional[str] = None) -> PriceHistory:
    """Build a PriceHistory from the /api/history JSON shape."""
    if not isinstance(payload, dict):
        raise DataFetchError(ticker or "", "Malformed history payload")

    symbol = payload.get("ticker") or ticker or ""
    raw = pd.DataFrame(payload.get("prices") or [], columns=["date", "close"])
    return PriceHistory(
        ticker=symbol,
        currency=payload.get("currency") or "USD",
        exchange=payload.get("exchange") or "",
        name=payload.get("name") or symbol,
        prices=clean_prices(raw, symbol),
    )


def default_window(years: int = 3, now: Optional[pd.Timestamp] = None) -> tuple[int, int]:
    """(period1, period2) in unix seconds covering the trailing `years`."""
    now = pd.Timestamp.now(tz="UTC") if now is None else pd.Timestamp(now)
    period2 = int(now.timestamp())
    period1 = period2 - years * 365 * 24 * 60 * 60
    return period1, period2


# -------------------------------------------------------------------
# Providers
# -------------------------------------------------------------------
class MarketDataProvider:
    """Abstract base class for market data providers."""
    def get_price_history(
        self,
        ticker: str,
        period1: Optional[int] = None,
        period2: Optional[int] = None,
        interval: str = DEFAULT_INTERVAL,
    ) -> PriceHistory:
        raise NotImplementedError

    def search(self, query: str, limit: int = SEARCH_LIMIT) -> List[TickerMatch]:
        raise NotImplementedError


class YahooDataProvider(MarketDataProvider):
    def __init__(self, history_years: int = 3):
        self.history_years = int(history_years)

    # --------------------------- Prices ---------------------------
    def get_price_history(self, ticker, period1=None, period2=None, interval=DEFAULT_INTERVAL):
        if not ticker:
            raise DataFetchError("", "Missing ticker", status_code=400)

        default_p1, default_p2 = default_window(self.history_years)
        start = pd.Timestamp(int(period1 or default_p1), unit="s")
        end = pd.Timestamp(int(period2 or default_p2), unit="s")

        t = yf.Ticker(ticker)
        try:
            data = t.history(
                start=start,
                end=end,
                interval=interval or DEFAULT_INTERVAL,
                auto_adjust=False,
                actions=False,
            )
        except YFRateLimitError as exc:
            logger.error("Yahoo Finance rate limit hit for %s", ticker)
            raise UpstreamStatusError(ticker, 429) from exc
        except Exception as exc:
            logger.error("Yahoo Finance fetch error for %s: %s", ticker, exc)
            raise DataFetchError(ticker, "Failed to fetch data from Yahoo Finance") from exc

        meta = getattr(t, "history_metadata", None) or {}

        # yfinance can return an empty DataFrame without raising
        if data is None or data.empty or "Close" not in data.columns:
            logger.warning("No data returned for %s between %s and %s", ticker, start.date(), end.date())
            # a known symbol, or an explicit range, with no bars is an empty history
            if not meta.get("symbol") and period1 is None and period2 is None:
                raise TickerNotFoundError(ticker)
            raw = None
        else:
            raw = pd.DataFrame({"date": data.index, "close": data["Close"].values})

        symbol = meta.get("symbol") or ticker

        return PriceHistory(
            ticker=symbol,
            currency=meta.get("currency") or "USD",
            exchange=meta.get("exchangeName") or "",
            name=meta.get("shortName") or meta.get("longName") or symbol,
            prices=clean_prices(raw, symbol),
        )

    # --------------------------- Search ---------------------------
    def search(self, query, limit=SEARCH_LIMIT):
        if not query:
            return []
        try:
            quotes = yf.Search(query, max_results=limit, news_count=0).quotes or []
        except YFRateLimitError as exc:
            logger.error("Yahoo Finance rate limit hit searching %r", query)
            raise UpstreamStatusError(query, 429) from exc
        except Exception as exc:
            logger.error("Yahoo Finance search error for %r: %s", query, exc)
            raise DataFetchError(query, "Search failed") from exc

        return [quote_to_match(q) for q in quotes[:limit] if q.get("symbol")]


def quote_to_match(q: Dict[str, Any]) -> TickerMatch:
    symbol = q.get("symbol", "")
    return TickerMatch(
        symbol=symbol,
        name=q.get("shortname") or q.get("longname") or symbol,
        type=q.get("quoteType") or q.get("type") or "",
        exchange=q.get("exchDisp") or q.get("exchange") or "",
    )


class ProxyDataProvider(MarketDataProvider):
    """Reads from a running /api proxy instead of calling Yahoo directly."""

    def __init__(self, base_url: str, timeout: float = 10.0, session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def _get(self, path: str, params: Optional[dict] = None, name: str = ""):
        try:
            resp = self.session.get(f"{self.base_url}{path}", params=params, timeout=self.timeout)
        except requests.RequestException as exc:
            logger.error("Proxy request %s failed: %s", path, exc)
            raise DataFetchError(name, "Proxy unreachable") from exc

        if resp.status_code == 404:
            raise TickerNotFoundError(name)
        if not resp.ok:
            raise UpstreamStatusError(name, resp.status_code)
        try:
            return resp.json()
        except ValueError as exc:
            raise DataFetchError(name, "Malformed proxy response") from exc

    def get_price_history(self, ticker, period1=None, period2=None, interval=DEFAULT_INTERVAL):
        if not ticker:
            raise DataFetchError("", "Missing ticker", status_code=400)
        params = {k: v for k, v in (("period1", period1), ("period2", period2), ("interval", interval)) if v}
        payload = self._get(f"/api/history/{quote(ticker, safe='')}", params, name=ticker)
        return parse_price_payload(payload, ticker)

    def search(self, query, limit=SEARCH_LIMIT):
        if not query:
            return []
        payload = self._get(f"/api/search/{quote(query, safe='')}", name=query)
        if not isinstance(payload, list):
            raise DataFetchError(query, "Malformed search response")
        return [
            TickerMatch(
                symbol=q.get("symbol", ""),
                name=q.get("name") or q.get("symbol", ""),
                type=q.get("type") or "",
                exchange=q.get("exchange") or "",
            )
            for q in payload[:limit]
            if q.get("symbol")
        ]


def get_data_provider(settings: Settings) -> MarketDataProvider:
    source = (settings.data_source or "yahoo").strip()
    if source.lower() == "yahoo":
        return YahooDataProvider(history_years=settings.history_years)
    return ProxyDataProvider(source, timeout=settings.request_timeout)
