"""
Stock routes - tracked stocks and their daily price history.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from app.api.deps import get_store
from app.domain.schemas.market import StockHistorySchema, StockSchema
from app.infrastructure.db.store import MarketDataStore

router = APIRouter()

MIN_SEARCH_LENGTH = 2


@router.get("", response_model=List[StockSchema])
async def list_stocks(
    penny_only: bool = Query(False, description="Only stocks at or below the penny threshold"),
    sector: Optional[str] = Query(None),
    limit: int = Query(50, ge=1, le=500),
    store: MarketDataStore = Depends(get_store),
):
    stocks = await store.list_stocks(penny_only=penny_only, sector=sector, limit=limit)
    return [StockSchema.from_model(s) for s in stocks]


@router.get("/sectors")
async def list_sectors(store: MarketDataStore = Depends(get_store)):
    sectors = await store.list_sectors()
    return {"sectors": sectors, "count": len(sectors)}


@router.get("/gainers", response_model=List[StockSchema])
async def top_gainers(
    limit: int = Query(10, ge=1, le=100),
    store: MarketDataStore = Depends(get_store),
):
    stocks = await store.list_movers(gainers=True, limit=limit)
    return [StockSchema.from_model(s) for s in stocks]


@router.get("/losers", response_model=List[StockSchema])
async def top_losers(
    limit: int = Query(10, ge=1, le=100),
    store: MarketDataStore = Depends(get_store),
):
    stocks = await store.list_movers(gainers=False, limit=limit)
    return [StockSchema.from_model(s) for s in stocks]


@router.get("/search/{query}", response_model=List[StockSchema])
async def search_stocks(
    query: str,
    limit: int = Query(10, ge=1, le=100),
    store: MarketDataStore = Depends(get_store),
):
    """Match ticker, company name or sector."""
    query = query.strip()
    if len(query) < MIN_SEARCH_LENGTH:
        raise HTTPException(
            status_code=400,
            detail=f"Search query must be at least {MIN_SEARCH_LENGTH} characters",
        )
    stocks = await store.search_stocks(query, limit=limit)
    return [StockSchema.from_model(s) for s in stocks]


@router.get("/{ticker}", response_model=StockSchema)
async def get_stock(ticker: str, store: MarketDataStore = Depends(get_store)):
    stock = await store.get_stock(ticker)
    if stock is None:
        raise HTTPException(status_code=404, detail=f"Stock {ticker.upper()} not found")
    return StockSchema.from_model(stock)


@router.get("/{ticker}/history", response_model=StockHistorySchema)
async def get_stock_history(
    ticker: str,
    days: int = Query(30, ge=1, le=365),
    store: MarketDataStore = Depends(get_store),
):
    """Newest `days` daily bars, oldest first."""
    stock = await store.get_stock(ticker)
    if stock is None:
        raise HTTPException(status_code=404, detail=f"Stock {ticker.upper()} not found")
    history = list(stock.price_history or [])[-days:]
    return StockHistorySchema(ticker=stock.ticker, days=len(history), history=history)
