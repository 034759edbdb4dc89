"""
Market routes - session status and headline indices.
"""

from fastapi import APIRouter, Depends

from app.api.deps import get_calendar, get_stock_source
from app.domain.schemas.market import MarketStatusSchema
from app.infrastructure.calendar.nse_calendar import NSECalendar
from app.infrastructure.market_data.types import StockQuoteSource
from app.utils.time import now_ist, to_iso

router = APIRouter()


@router.get("/status", response_model=MarketStatusSchema)
async def market_status(calendar: NSECalendar = Depends(get_calendar)):
    now = now_ist()
    return MarketStatusSchema(
        is_open=calendar.is_market_open(now),
        is_trading_day=calendar.is_trading_day(now.date()),
        market_open=calendar.market_open.strftime("%H:%M"),
        market_close=calendar.market_close.strftime("%H:%M"),
        next_trading_day=calendar.get_next_trading_day(now.date()),
        checked_at=to_iso(now),
    )


@router.get("/indices")
async def market_indices(source: StockQuoteSource = Depends(get_stock_source)):
    indices = await source.get_market_indices()
    return {"indices": indices, "count": len(indices)}
