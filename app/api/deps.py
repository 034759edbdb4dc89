"""
Request-scoped access to the runtimes created in the application lifespan.
"""

from typing import Optional

from fastapi import HTTPException, Request

from app.infrastructure.calendar.nse_calendar import NSECalendar
from app.infrastructure.db.store import MarketDataStore
from app.infrastructure.market_data.types import StockQuoteSource
from app.realtime.broadcast import RealtimeBroadcastService
from app.scheduler.data_sync import DataSyncService


def get_store(request: Request) -> MarketDataStore:
    return request.app.state.store


def get_calendar(request: Request) -> NSECalendar:
    calendar = getattr(request.app.state, "calendar", None)
    return calendar or NSECalendar()


def get_stock_source(request: Request) -> StockQuoteSource:
    return request.app.state.stock_source


def get_sync_service(request: Request) -> DataSyncService:
    sync_service: Optional[DataSyncService] = getattr(request.app.state, "sync_service", None)
    if sync_service is None:
        raise HTTPException(status_code=503, detail="Data sync is disabled")
    return sync_service


def get_broadcast_service(request: Request) -> RealtimeBroadcastService:
    return request.app.state.broadcast_service
