import argparse
import asyncio
import logging
import sys
from pathlib import Path

# Add app to path
sys.path.append(str(Path(__file__).resolve().parents[1]))

from app.config import settings
from app.core.logging import setup_logging
from app.infrastructure.db.database import async_session_factory, close_db, init_db
from app.infrastructure.db.store import MarketDataStore
from app.infrastructure.market_data.mfapi_provider import MfApiProvider
from app.infrastructure.market_data.yahoo_chart_provider import YahooChartProvider
from app.services.market_data_seeder import MarketDataSeeder

logger = logging.getLogger(__name__)


async def main(only=None, tickers=None, scheme_codes=None):
    await init_db()
    stock_source = YahooChartProvider()
    fund_source = MfApiProvider()
    seeder = MarketDataSeeder(
        stock_source,
        fund_source,
        MarketDataStore(async_session_factory),
        tickers=tickers,
        scheme_codes=scheme_codes,
    )
    try:
        if only in (None, "stocks"):
            await seeder.seed_stocks()
        if only in (None, "funds"):
            await seeder.seed_mutual_funds()
    finally:
        await stock_source.close()
        await fund_source.close()
        await close_db()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed tracked stocks and mutual funds")
    parser.add_argument("--only", type=str, default=None, choices=["stocks", "funds"], help="Seed one kind only")
    parser.add_argument("--tickers", type=str, default=None, help="Comma-separated NSE tickers")
    parser.add_argument("--schemes", type=str, default=None, help="Comma-separated AMFI scheme codes")

    args = parser.parse_args()
    setup_logging(settings.LOG_LEVEL)

    tickers = [t.strip() for t in args.tickers.split(",")] if args.tickers else None
    scheme_codes = [s.strip() for s in args.schemes.split(",")] if args.schemes else None
    asyncio.run(main(args.only, tickers, scheme_codes))
