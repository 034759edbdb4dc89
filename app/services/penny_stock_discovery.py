"""
Penny Stock Discovery
Probes a candidate ticker list and starts tracking the ones trading at or
below the penny threshold.
"""

import asyncio
import logging
import re
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Awaitable, Callable, List, Optional

from app.config import settings
from app.infrastructure.db.store import MarketDataStore
from app.infrastructure.market_data.types import StockQuoteSource

logger = logging.getLogger(__name__)

_SECTOR_KEYWORDS = [
    ("Banking", ("bank", "financial")),
    ("Power", ("power", "energy")),
    ("Metal", ("steel", "metal")),
    ("Telecommunications", ("telecom", "communication")),
    ("Pharmaceuticals", ("pharma", "healthcare")),
    ("Automobile", ("auto", "motor")),
    ("Information Technology", ("software",)),
]

_INDUSTRY_KEYWORDS = [
    ("Private Banking", ("private bank", "pvt bank")),
    ("Public Banking", ("public bank", "govt bank")),
    ("Thermal Power", ("thermal power",)),
    ("Renewable Energy", ("renewable", "solar")),
]

# "IT" only as a standalone word, so "Limited" does not match
_IT_WORD = re.compile(r"\bit\b")


def guess_sector(company_name: str) -> str:
    name = (company_name or "").lower()
    for sector, keywords in _SECTOR_KEYWORDS:
        if any(k in name for k in keywords):
            return sector
    if _IT_WORD.search(name):
        return "Information Technology"
    return "Others"


def guess_industry(company_name: str) -> str:
    name = (company_name or "").lower()
    for industry, keywords in _INDUSTRY_KEYWORDS:
        if any(k in name for k in keywords):
            return industry
    return "Diversified"


@dataclass
class DiscoveryReport:
    probed: int = 0
    added: List[str] = field(default_factory=list)
    already_tracked: List[str] = field(default_factory=list)
    above_threshold: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)


class PennyStockDiscovery:
    """Sequential probe, one candidate at a time with a pause between requests."""

    def __init__(
        self,
        source: StockQuoteSource,
        store: MarketDataStore,
        candidates: Optional[List[str]] = None,
        threshold: Optional[float] = None,
        delay_seconds: Optional[float] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.source = source
        self.store = store
        self.candidates = list(candidates if candidates is not None else settings.DISCOVERY_CANDIDATES)
        self.threshold = Decimal(str(threshold if threshold is not None else settings.PENNY_STOCK_THRESHOLD))
        self.delay_seconds = delay_seconds if delay_seconds is not None else settings.DISCOVERY_DELAY_SECONDS
        self._sleep = sleep

    async def run(self) -> DiscoveryReport:
        report = DiscoveryReport()
        logger.info("🔍 Starting penny stocks discovery over %d candidates", len(self.candidates))

        for index, ticker in enumerate(self.candidates):
            if index > 0 and self.delay_seconds > 0:
                await self._sleep(self.delay_seconds)
            report.probed += 1
            await self._probe(ticker.strip().upper(), report)

        logger.info(
            "✅ Penny stocks discovery completed: %d added, %d already tracked, %d failed",
            len(report.added), len(report.already_tracked), len(report.failed),
        )
        return report

    async def _probe(self, ticker: str, report: DiscoveryReport) -> None:
        try:
            quote = await self.source.fetch_one(ticker)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.warning("Could not fetch data for potential penny stock %s: %s", ticker, exc)
            report.failed.append(ticker)
            return

        if quote.current_price > self.threshold:
            report.above_threshold.append(ticker)
            return

        try:
            if await self.store.stock_exists(quote.ticker):
                report.already_tracked.append(ticker)
                return
            await self.store.add_stock(
                quote,
                sector=guess_sector(quote.name),
                industry=guess_industry(quote.name),
            )
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.error("❌ Error adding penny stock %s: %s", ticker, exc, exc_info=True)
            report.failed.append(ticker)
            return

        logger.info("💰 Added new penny stock: %s - %s", quote.ticker, quote.name)
        report.added.append(ticker)
