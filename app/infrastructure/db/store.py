"""
Market Data Store
Session-per-operation facade over the stock and mutual fund repositories,
used by the sync jobs, the realtime broadcaster and the HTTP API.
"""

import logging
from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.config import settings
from app.domain.models import FundNav, StockQuote
from app.domain.services.history import NAV_VALUE_KEY, period_return
from app.infrastructure.db.models import MutualFundModel, StockModel
from app.infrastructure.db.repositories.mutual_fund_repository import MutualFundRepository
from app.infrastructure.db.repositories.stock_repository import StockRepository

logger = logging.getLogger(__name__)


class MarketDataStore:
    """
    Persistent record store.

    Writes only ever update existing rows, except `add_stock` and `add_fund`.
    A snapshot for an unknown ticker or scheme code is logged and dropped.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        price_history_cap: Optional[int] = None,
        nav_history_cap: Optional[int] = None,
        penny_threshold: Optional[float] = None,
    ):
        self.session_factory = session_factory
        self.price_history_cap = (
            price_history_cap if price_history_cap is not None else settings.PRICE_HISTORY_CAP
        )
        self.nav_history_cap = (
            nav_history_cap if nav_history_cap is not None else settings.NAV_HISTORY_CAP
        )
        threshold = penny_threshold if penny_threshold is not None else settings.PENNY_STOCK_THRESHOLD
        self.penny_threshold = Decimal(str(threshold))

    def _stocks(self, session: AsyncSession) -> StockRepository:
        return StockRepository(session, penny_threshold=self.penny_threshold)

    # ------------------------------------------------------------------
    # Sync side
    # ------------------------------------------------------------------

    async def list_active_stock_tickers(self) -> List[str]:
        async with self.session_factory() as session:
            return await self._stocks(session).list_active_tickers()

    async def list_active_scheme_codes(self) -> List[str]:
        async with self.session_factory() as session:
            return await MutualFundRepository(session).list_active_scheme_codes()

    async def upsert_stock(self, quote: StockQuote) -> bool:
        """Overwrite scalars and merge price history. False if the ticker is unknown."""
        async with self.session_factory() as session:
            repo = self._stocks(session)
            stock = await repo.get_by_ticker(quote.ticker)
            if stock is None:
                logger.warning("Stock not found in database: %s", quote.ticker)
                return False
            repo.apply_snapshot(stock, quote, self.price_history_cap)
            await session.commit()
        logger.debug("Updated stock %s at %s", quote.ticker, quote.current_price)
        return True

    async def update_stock_quote(self, quote: StockQuote) -> bool:
        """Overwrite intraday scalars only; history is left untouched."""
        async with self.session_factory() as session:
            repo = self._stocks(session)
            stock = await repo.get_by_ticker(quote.ticker)
            if stock is None:
                logger.warning("Stock not found in database: %s", quote.ticker)
                return False
            repo.apply_quote(stock, quote)
            await session.commit()
        return True

    async def upsert_fund(self, fund: FundNav) -> bool:
        """Overwrite scalars and merge NAV history. False if the scheme is unknown."""
        async with self.session_factory() as session:
            repo = MutualFundRepository(session)
            record = await repo.get_by_scheme_code(fund.scheme_code)
            if record is None:
                logger.warning("Mutual fund not found in database: %s", fund.scheme_code)
                return False
            repo.apply_snapshot(record, fund, self.nav_history_cap)
            await session.commit()
        logger.debug("Updated mutual fund %s at NAV %s", fund.scheme_code, fund.nav)
        return True

    async def stock_exists(self, ticker: str) -> bool:
        async with self.session_factory() as session:
            return await self._stocks(session).exists(ticker)

    async def add_stock(self, quote: StockQuote, sector: str, industry: str) -> StockModel:
        async with self.session_factory() as session:
            stock = await self._stocks(session).create(
                quote, sector, industry, self.price_history_cap
            )
            await session.commit()
        logger.info("Added new stock %s (%s / %s)", quote.ticker, sector, industry)
        return stock

    async def fund_exists(self, scheme_code: str) -> bool:
        async with self.session_factory() as session:
            return await MutualFundRepository(session).get_by_scheme_code(scheme_code) is not None

    async def add_fund(self, fund: FundNav) -> MutualFundModel:
        async with self.session_factory() as session:
            record = await MutualFundRepository(session).create(fund, self.nav_history_cap)
            await session.commit()
        logger.info("Added new mutual fund %s", fund.scheme_code)
        return record

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    async def list_stocks(
        self,
        penny_only: bool = False,
        sector: Optional[str] = None,
        limit: int = 50,
    ) -> List[StockModel]:
        async with self.session_factory() as session:
            return await self._stocks(session).list_stocks(
                penny_only=penny_only, sector=sector, limit=limit
            )

    async def get_stock(self, ticker: str) -> Optional[StockModel]:
        async with self.session_factory() as session:
            return await self._stocks(session).get_by_ticker(ticker)

    async def list_funds(
        self,
        category: Optional[str] = None,
        fund_house: Optional[str] = None,
        limit: int = 50,
    ) -> List[MutualFundModel]:
        async with self.session_factory() as session:
            return await MutualFundRepository(session).list_funds(
                category=category, fund_house=fund_house, limit=limit
            )

    async def get_fund(self, scheme_code: str) -> Optional[MutualFundModel]:
        async with self.session_factory() as session:
            return await MutualFundRepository(session).get_by_scheme_code(scheme_code)

    async def list_sectors(self) -> List[str]:
        async with self.session_factory() as session:
            return await self._stocks(session).list_sectors()

    async def list_movers(self, gainers: bool = True, limit: int = 10) -> List[StockModel]:
        async with self.session_factory() as session:
            return await self._stocks(session).list_movers(gainers=gainers, limit=limit)

    async def search_stocks(self, text: str, limit: int = 10) -> List[StockModel]:
        async with self.session_factory() as session:
            return await self._stocks(session).search(text, limit=limit)

    async def list_fund_categories(self) -> List[str]:
        async with self.session_factory() as session:
            return await MutualFundRepository(session).list_categories()

    async def list_fund_houses(self) -> List[str]:
        async with self.session_factory() as session:
            return await MutualFundRepository(session).list_fund_houses()

    async def search_funds(self, text: str, limit: int = 10) -> List[MutualFundModel]:
        async with self.session_factory() as session:
            return await MutualFundRepository(session).search(text, limit=limit)

    async def top_performers(self, days: int, limit: int = 10) -> List[Tuple[MutualFundModel, float]]:
        """Funds ranked by NAV return over `days`; funds without enough history are left out."""
        async with self.session_factory() as session:
            funds = await MutualFundRepository(session).list_active()

        ranked = []
        for fund in funds:
            change = period_return(fund.nav_history or [], days, NAV_VALUE_KEY)
            if change is not None:
                ranked.append((fund, change))
        ranked.sort(key=lambda item: item[1], reverse=True)
        return ranked[:limit]
