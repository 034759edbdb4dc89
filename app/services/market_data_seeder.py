"""
Market Data Seeder
Creates the initial stock and mutual fund records that the sync jobs then
keep current. Records that already exist are refreshed instead.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Optional

from app.config import settings
from app.infrastructure.db.store import MarketDataStore
from app.infrastructure.market_data.types import FundNavSource, StockQuoteSource
from app.services.penny_stock_discovery import guess_industry, guess_sector

logger = logging.getLogger(__name__)


@dataclass
class SeedReport:
    added: List[str] = field(default_factory=list)
    updated: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)


class MarketDataSeeder:
    """Fetches every seed key one at a time, pausing between upstream calls."""

    def __init__(
        self,
        stock_source: StockQuoteSource,
        fund_source: FundNavSource,
        store: MarketDataStore,
        tickers: Optional[List[str]] = None,
        scheme_codes: Optional[List[str]] = None,
        stock_delay_seconds: Optional[float] = None,
        fund_delay_seconds: Optional[float] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.stock_source = stock_source
        self.fund_source = fund_source
        self.store = store
        self.tickers = list(tickers if tickers is not None else settings.SEED_STOCK_TICKERS)
        self.scheme_codes = list(scheme_codes if scheme_codes is not None else settings.SEED_SCHEME_CODES)
        self.stock_delay_seconds = (
            stock_delay_seconds if stock_delay_seconds is not None else settings.SEED_STOCK_DELAY_SECONDS
        )
        self.fund_delay_seconds = (
            fund_delay_seconds if fund_delay_seconds is not None else settings.SEED_FUND_DELAY_SECONDS
        )
        self._sleep = sleep

    async def seed_stocks(self) -> SeedReport:
        report = SeedReport()
        logger.info("🌱 Seeding %d stocks", len(self.tickers))

        for index, ticker in enumerate(self.tickers):
            if index > 0 and self.stock_delay_seconds > 0:
                await self._sleep(self.stock_delay_seconds)
            ticker = ticker.strip().upper()
            try:
                quote = await self.stock_source.fetch_one(ticker)
                if await self.store.stock_exists(quote.ticker):
                    await self.store.upsert_stock(quote)
                    report.updated.append(quote.ticker)
                    continue
                await self.store.add_stock(
                    quote,
                    sector=guess_sector(quote.name),
                    industry=guess_industry(quote.name),
                )
                report.added.append(quote.ticker)
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                logger.error("❌ Error seeding stock %s: %s", ticker, exc)
                report.failed.append(ticker)

        logger.info(
            "✅ Stock seeding completed: %d added, %d updated, %d failed",
            len(report.added), len(report.updated), len(report.failed),
        )
        return report

    async def seed_mutual_funds(self) -> SeedReport:
        report = SeedReport()
        logger.info("🌱 Seeding %d mutual funds", len(self.scheme_codes))

        for index, scheme_code in enumerate(self.scheme_codes):
            if index > 0 and self.fund_delay_seconds > 0:
                await self._sleep(self.fund_delay_seconds)
            scheme_code = str(scheme_code).strip()
            try:
                fund = await self.fund_source.fetch_one(scheme_code)
                if await self.store.fund_exists(fund.scheme_code):
                    await self.store.upsert_fund(fund)
                    report.updated.append(fund.scheme_code)
                    continue
                await self.store.add_fund(fund)
                report.added.append(fund.scheme_code)
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                logger.error("❌ Error seeding mutual fund %s: %s", scheme_code, exc)
                report.failed.append(scheme_code)

        logger.info(
            "✅ Mutual fund seeding completed: %d added, %d updated, %d failed",
            len(report.added), len(report.updated), len(report.failed),
        )
        return report
