"""
Mutual fund routes.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from app.api.deps import get_store
from app.api.routes.stocks import MIN_SEARCH_LENGTH
from app.domain.schemas.market import FundPerformanceSchema, MutualFundSchema, TopPerformersSchema
from app.infrastructure.db.store import MarketDataStore

router = APIRouter()

# Calendar days of NAV history behind each performance period
PERFORMANCE_PERIODS = {
    "1Month": 30,
    "3Month": 91,
    "6Month": 182,
    "1Year": 365,
}


@router.get("", response_model=List[MutualFundSchema], response_model_exclude_none=True)
async def list_mutual_funds(
    category: Optional[str] = Query(None, description="Equity, Debt, Hybrid, Index or Other"),
    fund_house: Optional[str] = Query(None),
    limit: int = Query(50, ge=1, le=500),
    store: MarketDataStore = Depends(get_store),
):
    funds = await store.list_funds(category=category, fund_house=fund_house, limit=limit)
    return [MutualFundSchema.from_model(f) for f in funds]


@router.get("/categories")
async def list_categories(store: MarketDataStore = Depends(get_store)):
    categories = await store.list_fund_categories()
    return {"categories": categories, "count": len(categories)}


@router.get("/fund-houses")
async def list_fund_houses(store: MarketDataStore = Depends(get_store)):
    fund_houses = await store.list_fund_houses()
    return {"fund_houses": fund_houses, "count": len(fund_houses)}


@router.get("/top-performers", response_model=TopPerformersSchema)
async def top_performers(
    period: str = Query("1Year", description="1Month, 3Month, 6Month or 1Year"),
    limit: int = Query(10, ge=1, le=100),
    store: MarketDataStore = Depends(get_store),
):
    """Funds ranked by NAV return over the period, computed from stored NAV history."""
    days = PERFORMANCE_PERIODS.get(period)
    if days is None:
        raise HTTPException(
            status_code=400,
            detail=f"Unsupported period {period}; use one of {', '.join(PERFORMANCE_PERIODS)}",
        )
    ranked = await store.top_performers(days, limit=limit)
    funds = [
        FundPerformanceSchema(
            scheme_code=fund.scheme_code,
            scheme_name=fund.scheme_name,
            fund_house=fund.fund_house,
            category=fund.category,
            nav=float(fund.nav),
            return_percent=change,
        )
        for fund, change in ranked
    ]
    return TopPerformersSchema(period=period, count=len(funds), funds=funds)


@router.get("/search/{query}", response_model=List[MutualFundSchema], response_model_exclude_none=True)
async def search_mutual_funds(
    query: str,
    limit: int = Query(10, ge=1, le=100),
    store: MarketDataStore = Depends(get_store),
):
    """Match scheme name, fund house or category."""
    query = query.strip()
    if len(query) < MIN_SEARCH_LENGTH:
        raise HTTPException(
            status_code=400,
            detail=f"Search query must be at least {MIN_SEARCH_LENGTH} characters",
        )
    funds = await store.search_funds(query, limit=limit)
    return [MutualFundSchema.from_model(f) for f in funds]


@router.get("/{scheme_code}", response_model=MutualFundSchema)
async def get_mutual_fund(scheme_code: str, store: MarketDataStore = Depends(get_store)):
    fund = await store.get_fund(scheme_code)
    if fund is None:
        raise HTTPException(status_code=404, detail=f"Mutual fund {scheme_code} not found")
    return MutualFundSchema.from_model(fund, include_history=True)
