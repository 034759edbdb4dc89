"""
Market data source protocols for type hints.
"""

from __future__ import annotations

from typing import Dict, List, Protocol

from app.domain.models import FetchResult, FundNav, StockQuote


class StockQuoteSource(Protocol):
    async def fetch_one(self, ticker: str) -> StockQuote:
        ...

    async def fetch_many(self, tickers: List[str]) -> FetchResult[StockQuote]:
        ...

    async def get_market_indices(self) -> List[Dict]:
        ...


class FundNavSource(Protocol):
    async def fetch_one(self, scheme_code: str) -> FundNav:
        ...

    async def fetch_many(self, scheme_codes: List[str]) -> FetchResult[FundNav]:
        ...
