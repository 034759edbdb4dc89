"""
FastAPI Main Application
Market data API, background sync scheduler and realtime price feed in one process
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import settings
from app.core.logging import setup_logging
from app.infrastructure.calendar.nse_calendar import NSECalendar
from app.infrastructure.db.database import async_session_factory, close_db, init_db
from app.infrastructure.db.store import MarketDataStore
from app.infrastructure.market_data.mfapi_provider import MfApiProvider
from app.infrastructure.market_data.yahoo_chart_provider import YahooChartProvider
from app.realtime.broadcast import RealtimeBroadcastService
from app.scheduler.data_sync import DataSyncService

setup_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan manager
    Handles startup and shutdown of all services
    """
    # ===================
    # STARTUP
    # ===================
    logger.info("=" * 60)
    logger.info("🚀 Starting Stock Info India - All Services")
    logger.info("=" * 60)

    logger.info("📊 Step 1/4: Initializing database...")
    await init_db()
    logger.info("✅ Database initialized")

    logger.info("🏗️  Step 2/4: Initializing market data sources...")
    stock_source = YahooChartProvider()
    fund_source = MfApiProvider()
    store = MarketDataStore(async_session_factory)
    calendar = NSECalendar()
    app.state.stock_source = stock_source
    app.state.fund_source = fund_source
    app.state.store = store
    app.state.calendar = calendar
    logger.info("✅ Market data sources initialized")

    logger.info("📅 Step 3/4: Starting data sync scheduler...")
    sync_service = None
    if settings.SCHEDULER_ENABLED:
        try:
            sync_service = DataSyncService(stock_source, fund_source, store, calendar=calendar)
            sync_service.init_cron_jobs()
            logger.info("✅ Scheduler started successfully")
        except Exception as e:
            logger.error(f"❌ Failed to start scheduler: {e}")
            sync_service = None
    else:
        logger.info("⏰ Scheduler disabled")
    app.state.sync_service = sync_service

    logger.info("⚡ Step 4/4: Initializing realtime feed...")
    broadcast_service = RealtimeBroadcastService(stock_source, store)
    broadcast_service.initialize(app, settings.WS_PATH)
    app.state.broadcast_service = broadcast_service

    logger.info("=" * 60)
    logger.info("🎯 All Services Running:")
    logger.info(f"   ✅ API Server: http://{settings.API_HOST}:{settings.API_PORT}")
    logger.info(f"   ✅ WebSocket: ws://{settings.API_HOST}:{settings.API_PORT}{settings.WS_PATH}")
    logger.info(f"   ✅ Scheduler: {'Enabled' if sync_service else 'Disabled'}")
    logger.info("=" * 60)

    yield

    # ===================
    # SHUTDOWN
    # ===================
    logger.info("🛑 Shutting down Stock Info India...")

    await broadcast_service.stop_realtime_updates()

    if sync_service:
        sync_service.stop_cron_jobs()
        logger.info("✅ Scheduler stopped")

    await stock_source.close()
    await fund_source.close()

    logger.info("📊 Closing database connections...")
    await close_db()
    logger.info("👋 Shutdown complete")


# Create FastAPI app
app = FastAPI(
    title="Stock Info India - Penny Stocks & Mutual Funds",
    description="NSE penny stock and AMFI mutual fund tracker with a realtime price feed",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
async def root():
    return {
        "message": "🇮🇳 Stock Info India",
        "version": "1.0.0",
        "websocket": settings.WS_PATH,
        "docs": "/docs",
    }


# Import and include routers
from app.api.routes import health, market, mutual_funds, realtime, stocks, sync  # noqa: E402

app.include_router(health.router, tags=["Health"])
app.include_router(stocks.router, prefix="/api/v1/stocks", tags=["Stocks"])
app.include_router(mutual_funds.router, prefix="/api/v1/mutual-funds", tags=["Mutual Funds"])
app.include_router(market.router, prefix="/api/v1/market", tags=["Market"])
app.include_router(sync.router, prefix="/api/v1/sync", tags=["Sync"])
app.include_router(realtime.router, prefix="/api/v1/realtime", tags=["Realtime"])


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("app.main:app", host=settings.API_HOST, port=settings.API_PORT, reload=settings.DEBUG)
