"""
Market data errors raised by the upstream adapters.
"""

from __future__ import annotations

from typing import Optional


class MarketDataError(RuntimeError):
    def __init__(
        self,
        message: str,
        *,
        symbol: Optional[str] = None,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.symbol = symbol
        self.status_code = status_code


class SymbolNotFoundError(MarketDataError):
    """Upstream has no data for the requested ticker / scheme code."""


class UpstreamFetchError(MarketDataError):
    """Transport, HTTP or payload failure while fetching one symbol."""


class BatchProcessingError(MarketDataError):
    """A whole batch fetch raised instead of reporting per-symbol failures."""

    def __init__(self, message: str, *, keys=None) -> None:
        super().__init__(message)
        self.keys = list(keys or [])
