"""
Yahoo Finance Chart Provider
Daily quotes and price history for NSE-listed stocks via the public v8 chart API
"""

from __future__ import annotations

import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Optional

import httpx

from app.config import settings
from app.domain.models import Exchange, FetchResult, PricePoint, StockQuote
from app.infrastructure.market_data.batch import fetch_best_effort
from app.infrastructure.market_data.errors import SymbolNotFoundError, UpstreamFetchError
from app.utils.time import epoch_to_ist_date, now_ist_naive

logger = logging.getLogger(__name__)


def _dec(value: Any, places: str = "0.01") -> Decimal:
    return Decimal(str(value)).quantize(Decimal(places), rounding=ROUND_HALF_UP)


def _optional_dec(value: Any) -> Optional[Decimal]:
    if value is None:
        return None
    return _dec(value)


def _last_present(values: List[Any], offset: int = 0) -> Optional[Any]:
    present = [v for v in values if v is not None]
    if len(present) <= offset:
        return None
    return present[-1 - offset]


class YahooChartProvider:
    """
    Stock quotes for Indian equities

    Tickers are NSE symbols ("IDEA"); the ".NS" suffix is added unless the
    ticker already carries an exchange suffix ("IDEA.BO").
    """

    HEADERS = {
        "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36",
        "Accept": "application/json",
    }

    INDICES = [
        {"symbol": "^NSEI", "name": "NIFTY 50"},
        {"symbol": "^BSESN", "name": "BSE SENSEX"},
        {"symbol": "^NSEBANK", "name": "NIFTY BANK"},
        {"symbol": "^CNXIT", "name": "NIFTY IT"},
    ]

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        history_cap: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or settings.YAHOO_CHART_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.STOCK_FETCH_TIMEOUT_SECONDS
        self.history_cap = history_cap if history_cap is not None else settings.PRICE_HISTORY_CAP
        self._transport = transport
        self.session: Optional[httpx.AsyncClient] = None

    def _get_session(self) -> httpx.AsyncClient:
        if self.session is None:
            self.session = httpx.AsyncClient(
                headers=self.HEADERS,
                timeout=self.timeout,
                follow_redirects=True,
                transport=self._transport,
            )
        return self.session

    async def close(self) -> None:
        """Close HTTP session"""
        if self.session:
            await self.session.aclose()
            self.session = None

    @staticmethod
    def format_ticker(ticker: str) -> str:
        ticker = ticker.strip().upper()
        return ticker if "." in ticker else f"{ticker}.NS"

    async def _request_chart(self, symbol: str, range_: str, ticker: str) -> Dict[str, Any]:
        url = f"{self.base_url}/{symbol}"
        try:
            response = await self._get_session().get(url, params={"interval": "1d", "range": range_})
        except httpx.HTTPError as exc:
            raise UpstreamFetchError(f"Failed to fetch data for {ticker}: {exc}", symbol=ticker) from exc

        if response.status_code == 404:
            raise SymbolNotFoundError(f"No chart data for {ticker}", symbol=ticker, status_code=404)
        if response.status_code != 200:
            raise UpstreamFetchError(
                f"Chart API returned {response.status_code} for {ticker}",
                symbol=ticker,
                status_code=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise UpstreamFetchError(f"Invalid chart payload for {ticker}", symbol=ticker) from exc

        results = ((payload or {}).get("chart") or {}).get("result") or []
        if not results:
            raise SymbolNotFoundError(f"No chart data for {ticker}", symbol=ticker)
        return results[0]

    async def fetch_one(self, ticker: str) -> StockQuote:
        """
        Fetch the latest quote plus one year of daily bars for a ticker

        Raises:
            SymbolNotFoundError: upstream knows nothing about the ticker
            UpstreamFetchError: any other failure
        """
        symbol = self.format_ticker(ticker)
        logger.debug("Fetching stock data for: %s", symbol)
        data = await self._request_chart(symbol, "1y", ticker)

        try:
            return self._parse_chart(ticker, data)
        except (KeyError, IndexError, TypeError, ArithmeticError) as exc:
            raise UpstreamFetchError(f"Malformed chart data for {ticker}: {exc}", symbol=ticker) from exc

    def _parse_chart(self, ticker: str, data: Dict[str, Any]) -> StockQuote:
        meta = data.get("meta") or {}
        quotes = ((data.get("indicators") or {}).get("quote") or [{}])[0] or {}
        closes = quotes.get("close") or []
        volumes = quotes.get("volume") or []

        current = meta.get("regularMarketPrice") or _last_present(closes)
        previous = meta.get("previousClose") or _last_present(closes, offset=1)
        if not current or not previous:
            raise UpstreamFetchError(f"Incomplete quote for {ticker}", symbol=ticker)

        current_price = _dec(current)
        previous_close = _dec(previous)
        change = Decimal(str(current)) - Decimal(str(previous))
        change_pct = change / Decimal(str(previous)) * 100

        return StockQuote(
            ticker=ticker.strip().upper(),
            name=meta.get("longName") or meta.get("shortName") or ticker.upper(),
            exchange=Exchange.BSE if self.format_ticker(ticker).endswith(".BO") else Exchange.NSE,
            current_price=current_price,
            previous_close=previous_close,
            day_change=_dec(change),
            day_change_percent=_dec(change_pct),
            volume=int(_last_present(volumes) or 0),
            high_52_week=_optional_dec(meta.get("fiftyTwoWeekHigh")),
            low_52_week=_optional_dec(meta.get("fiftyTwoWeekLow")),
            market_cap=_optional_dec(meta.get("marketCap")),
            last_updated=now_ist_naive(),
            price_history=self._format_price_history(data.get("timestamp") or [], quotes),
        )

    def _format_price_history(self, timestamps: List[int], quotes: Dict[str, Any]) -> List[PricePoint]:
        opens = quotes.get("open") or []
        highs = quotes.get("high") or []
        lows = quotes.get("low") or []
        closes = quotes.get("close") or []
        volumes = quotes.get("volume") or []

        def at(values: List[Any], i: int) -> Any:
            return values[i] if i < len(values) else None

        history: List[PricePoint] = []
        for i, ts in enumerate(timestamps):
            open_, close = at(opens, i), at(closes, i)
            if not open_ or not close:
                continue
            high, low = at(highs, i), at(lows, i)
            history.append(
                PricePoint(
                    date=epoch_to_ist_date(ts),
                    open=Decimal(str(open_)),
                    high=Decimal(str(high)) if high is not None else None,
                    low=Decimal(str(low)) if low is not None else None,
                    close=Decimal(str(close)),
                    volume=int(at(volumes, i) or 0),
                )
            )

        if self.history_cap <= 0:
            return []
        return history[-self.history_cap:]

    async def fetch_many(self, tickers: List[str]) -> FetchResult[StockQuote]:
        return await fetch_best_effort(
            [t.strip().upper() for t in tickers if t and t.strip()],
            self.fetch_one,
            "stocks",
        )

    async def get_market_indices(self) -> List[Dict]:
        """NIFTY / SENSEX style index levels; indices that fail are omitted."""
        indices: List[Dict] = []
        for index in self.INDICES:
            try:
                data = await self._request_chart(index["symbol"], "5d", index["name"])
                meta = data.get("meta") or {}
                current = Decimal(str(meta["regularMarketPrice"]))
                previous = Decimal(str(meta.get("previousClose") or meta["chartPreviousClose"]))
                change = current - previous
                indices.append({
                    "name": index["name"],
                    "symbol": index["symbol"],
                    "value": float(_dec(current)),
                    "change": float(_dec(change)),
                    "change_percent": float(_dec(change / previous * 100)),
                    "last_updated": now_ist_naive().isoformat(),
                })
            except (UpstreamFetchError, SymbolNotFoundError, KeyError, TypeError, ArithmeticError) as exc:
                logger.warning("Failed to fetch data for %s: %s", index["name"], exc)
        return indices
