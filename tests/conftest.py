from datetime import date, datetime
from decimal import Decimal
from typing import AsyncGenerator, Dict, List, Optional

import pytest
from fastapi import FastAPI
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.api.routes import health, market, mutual_funds, realtime, stocks, sync
from app.domain.models import (
    Exchange, FetchResult, FundCategory, FundNav, NavPoint, PricePoint, StockQuote,
)
from app.infrastructure.calendar.nse_calendar import NSECalendar
from app.infrastructure.db.database import Base
from app.infrastructure.db.store import MarketDataStore
from app.infrastructure.market_data.batch import fetch_best_effort
from app.infrastructure.market_data.errors import SymbolNotFoundError
from app.realtime.broadcast import RealtimeBroadcastService


def build_quote(
    ticker: str,
    price: str = "12.50",
    previous: str = "12.00",
    name: Optional[str] = None,
    history: Optional[List[PricePoint]] = None,
    volume: int = 1000,
) -> StockQuote:
    current = Decimal(price)
    prev = Decimal(previous)
    change = current - prev
    return StockQuote(
        ticker=ticker,
        name=name or f"{ticker} Limited",
        exchange=Exchange.NSE,
        current_price=current,
        previous_close=prev,
        day_change=change,
        day_change_percent=(change / prev * 100).quantize(Decimal("0.01")),
        volume=volume,
        high_52_week=Decimal("20.00"),
        low_52_week=Decimal("8.00"),
        market_cap=None,
        last_updated=datetime(2024, 3, 5, 10, 30),
        price_history=history or [],
    )


def build_fund(
    scheme_code: str,
    nav: str = "45.1234",
    previous: str = "45.0000",
    history: Optional[List[NavPoint]] = None,
) -> FundNav:
    current = Decimal(nav)
    prev = Decimal(previous)
    return FundNav(
        scheme_code=scheme_code,
        scheme_name=f"Test Flexi Cap Fund {scheme_code} - Growth",
        fund_house="Test Mutual Fund",
        category=FundCategory.EQUITY,
        sub_category="Multi Cap",
        nav=current,
        previous_nav=prev,
        nav_change=current - prev,
        nav_change_percent=((current - prev) / prev * 100).quantize(Decimal("0.01")),
        nav_date=date(2024, 3, 5),
        last_updated=datetime(2024, 3, 5, 18, 0),
        nav_history=history or [],
    )


class FakeStockSource:
    """In-memory stock source; unknown tickers raise like the real adapter."""

    def __init__(self, quotes: Optional[Dict[str, StockQuote]] = None):
        self.quotes: Dict[str, StockQuote] = dict(quotes or {})
        self.fetch_many_calls: List[List[str]] = []
        self.fetch_one_calls: List[str] = []

    async def fetch_one(self, ticker: str) -> StockQuote:
        self.fetch_one_calls.append(ticker)
        if ticker not in self.quotes:
            raise SymbolNotFoundError(f"No chart data for {ticker}", symbol=ticker)
        return self.quotes[ticker]

    async def fetch_many(self, tickers: List[str]) -> FetchResult[StockQuote]:
        self.fetch_many_calls.append(list(tickers))
        return await fetch_best_effort(tickers, self.fetch_one, "stocks")

    async def get_market_indices(self) -> List[Dict]:
        return [{
            "name": "NIFTY 50",
            "symbol": "^NSEI",
            "value": 22000.5,
            "change": 110.25,
            "change_percent": 0.5,
            "last_updated": "2024-03-05T15:30:00",
        }]


class FakeFundSource:
    def __init__(self, funds: Optional[Dict[str, FundNav]] = None):
        self.funds: Dict[str, FundNav] = dict(funds or {})
        self.fetch_many_calls: List[List[str]] = []

    async def fetch_one(self, scheme_code: str) -> FundNav:
        if scheme_code not in self.funds:
            raise SymbolNotFoundError(f"Unknown scheme {scheme_code}", symbol=scheme_code)
        return self.funds[scheme_code]

    async def fetch_many(self, scheme_codes: List[str]) -> FetchResult[FundNav]:
        self.fetch_many_calls.append(list(scheme_codes))
        return await fetch_best_effort(scheme_codes, self.fetch_one, "mutual funds")


@pytest.fixture()
def make_quote():
    return build_quote


@pytest.fixture()
def make_fund():
    return build_fund


@pytest.fixture()
def stock_source() -> FakeStockSource:
    return FakeStockSource()


@pytest.fixture()
def fund_source() -> FakeFundSource:
    return FakeFundSource()


@pytest.fixture()
async def db_engine(tmp_path):
    db_path = tmp_path / "test.db"
    engine = create_async_engine(f"sqlite+aiosqlite:///{db_path}", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture()
def session_factory(db_engine) -> async_sessionmaker:
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture()
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture()
def store(session_factory) -> MarketDataStore:
    return MarketDataStore(
        session_factory,
        price_history_cap=90,
        nav_history_cap=365,
        penny_threshold=50,
    )


@pytest.fixture()
async def app(store, stock_source) -> FastAPI:
    app = FastAPI()
    app.include_router(health.router, tags=["Health"])
    app.include_router(stocks.router, prefix="/api/v1/stocks", tags=["Stocks"])
    app.include_router(mutual_funds.router, prefix="/api/v1/mutual-funds", tags=["Mutual Funds"])
    app.include_router(market.router, prefix="/api/v1/market", tags=["Market"])
    app.include_router(sync.router, prefix="/api/v1/sync", tags=["Sync"])
    app.include_router(realtime.router, prefix="/api/v1/realtime", tags=["Realtime"])

    app.state.store = store
    app.state.stock_source = stock_source
    app.state.calendar = NSECalendar(holidays=[])
    app.state.sync_service = None
    app.state.broadcast_service = RealtimeBroadcastService(stock_source, store, poll_interval=30, heartbeat_interval=30)
    return app


@pytest.fixture()
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
