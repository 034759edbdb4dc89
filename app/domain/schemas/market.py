from datetime import date
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from app.infrastructure.db.models import MutualFundModel, StockModel
from app.utils.time import to_iso


def _f(value) -> Optional[float]:
    return float(value) if value is not None else None


class StockSchema(BaseModel):
    ticker: str
    name: str
    exchange: str
    sector: str
    industry: str
    current_price: float
    previous_close: float
    day_change: float
    day_change_percent: float
    volume: int
    high_52_week: Optional[float] = None
    low_52_week: Optional[float] = None
    market_cap: Optional[float] = None
    is_penny_stock: bool
    last_updated: Optional[str] = None

    @classmethod
    def from_model(cls, model: StockModel) -> "StockSchema":
        return cls(
            ticker=model.ticker,
            name=model.name,
            exchange=model.exchange,
            sector=model.sector,
            industry=model.industry,
            current_price=float(model.current_price),
            previous_close=float(model.previous_close),
            day_change=float(model.day_change or 0),
            day_change_percent=float(model.day_change_percent or 0),
            volume=int(model.volume or 0),
            high_52_week=_f(model.high_52_week),
            low_52_week=_f(model.low_52_week),
            market_cap=_f(model.market_cap),
            is_penny_stock=bool(model.is_penny_stock),
            last_updated=to_iso(model.last_updated),
        )


class StockHistorySchema(BaseModel):
    ticker: str
    days: int
    history: List[Dict[str, Any]]


class MutualFundSchema(BaseModel):
    scheme_code: str
    scheme_name: str
    fund_house: str
    category: str
    sub_category: str
    nav: float
    previous_nav: float
    nav_change: float
    nav_change_percent: float
    nav_date: date
    nav_date_estimated: bool
    last_updated: Optional[str] = None
    nav_history: Optional[List[Dict[str, Any]]] = None

    @classmethod
    def from_model(cls, model: MutualFundModel, include_history: bool = False) -> "MutualFundSchema":
        return cls(
            scheme_code=model.scheme_code,
            scheme_name=model.scheme_name,
            fund_house=model.fund_house,
            category=model.category,
            sub_category=model.sub_category,
            nav=float(model.nav),
            previous_nav=float(model.previous_nav),
            nav_change=float(model.nav_change or 0),
            nav_change_percent=float(model.nav_change_percent or 0),
            nav_date=model.nav_date,
            nav_date_estimated=bool(model.nav_date_estimated),
            last_updated=to_iso(model.last_updated),
            nav_history=list(model.nav_history or []) if include_history else None,
        )


class MarketStatusSchema(BaseModel):
    is_open: bool
    is_trading_day: bool
    market_open: str
    market_close: str
    next_trading_day: date
    checked_at: str


class FundPerformanceSchema(BaseModel):
    scheme_code: str
    scheme_name: str
    fund_house: str
    category: str
    nav: float
    return_percent: float


class TopPerformersSchema(BaseModel):
    period: str
    count: int
    funds: List[FundPerformanceSchema]
