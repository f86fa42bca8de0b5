# sigma/errors.py
from __future__ import annotations


class DataFetchError(Exception):
    """Price history or search could not be fetched. No partial data is kept."""

    status_code: int = 500

    def __init__(self, ticker: str, reason: str = "Failed to fetch data", status_code: int | None = None):
        self.ticker = ticker
        self.reason = reason
        if status_code is not None:
            self.status_code = status_code
        super().__init__(f"{ticker}: {reason}")

    @property
    def user_message(self) -> str:
        return f'Could not load "{self.ticker}". Check the ticker and try again.'


class UpstreamStatusError(DataFetchError):
    """Upstream replied with a non-success HTTP status."""

    def __init__(self, ticker: str, status_code: int):
        super().__init__(ticker, f"Upstream returned {status_code}", status_code=status_code)


class TickerNotFoundError(DataFetchError):
    status_code = 404

    def __init__(self, ticker: str):
        super().__init__(ticker, "Ticker not found or no data available")
