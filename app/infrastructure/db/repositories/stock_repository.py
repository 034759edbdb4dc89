"""
Stock Repository
Lookup and price writes for tracked stocks
"""

from decimal import Decimal
from typing import List, Optional

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.domain.models import StockQuote
from app.domain.services.history import PRICE_VALUE_KEY, merge_history, price_point_to_entry
from app.infrastructure.db.models import StockModel
from app.utils.time import now_ist_naive


class StockRepository:
    """Repository for stock market records"""

    def __init__(self, session: AsyncSession, penny_threshold: Decimal = Decimal("50")):
        self.session = session
        self.penny_threshold = penny_threshold

    async def get_by_ticker(self, ticker: str) -> Optional[StockModel]:
        result = await self.session.execute(
            select(StockModel).where(StockModel.ticker == ticker.upper())
        )
        return result.scalar_one_or_none()

    async def exists(self, ticker: str) -> bool:
        result = await self.session.execute(
            select(StockModel.id).where(StockModel.ticker == ticker.upper())
        )
        return result.first() is not None

    async def list_active_tickers(self) -> List[str]:
        result = await self.session.execute(
            select(StockModel.ticker)
            .where(StockModel.is_active.is_(True))
            .order_by(StockModel.ticker)
        )
        return list(result.scalars().all())

    async def list_stocks(
        self,
        penny_only: bool = False,
        sector: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[StockModel]:
        query = select(StockModel).where(StockModel.is_active.is_(True))
        if penny_only:
            query = query.where(StockModel.is_penny_stock.is_(True))
        if sector:
            query = query.where(StockModel.sector == sector)
        query = query.order_by(StockModel.ticker).offset(offset).limit(limit)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def list_sectors(self) -> List[str]:
        result = await self.session.execute(
            select(StockModel.sector)
            .where(StockModel.is_active.is_(True))
            .distinct()
            .order_by(StockModel.sector)
        )
        return list(result.scalars().all())

    async def list_movers(self, gainers: bool = True, limit: int = 10) -> List[StockModel]:
        """Top gainers (positive day change, largest first) or losers (negative, smallest first)."""
        query = select(StockModel).where(StockModel.is_active.is_(True))
        if gainers:
            query = query.where(StockModel.day_change_percent > 0).order_by(
                StockModel.day_change_percent.desc()
            )
        else:
            query = query.where(StockModel.day_change_percent < 0).order_by(
                StockModel.day_change_percent.asc()
            )
        result = await self.session.execute(query.limit(limit))
        return list(result.scalars().all())

    async def search(self, text: str, limit: int = 10) -> List[StockModel]:
        """Case-insensitive substring match on ticker, name or sector."""
        query = (
            select(StockModel)
            .where(StockModel.is_active.is_(True))
            .where(or_(
                StockModel.ticker.icontains(text, autoescape=True),
                StockModel.name.icontains(text, autoescape=True),
                StockModel.sector.icontains(text, autoescape=True),
            ))
            .order_by(StockModel.market_cap.desc().nulls_last(), StockModel.ticker)
            .limit(limit)
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    def apply_quote(self, model: StockModel, quote: StockQuote) -> None:
        """Overwrite the intraday scalar fields."""
        model.current_price = quote.current_price
        model.previous_close = quote.previous_close
        model.day_change = quote.day_change
        model.day_change_percent = quote.day_change_percent
        model.volume = quote.volume
        model.is_penny_stock = quote.current_price <= self.penny_threshold
        model.last_updated = now_ist_naive()

    def apply_snapshot(self, model: StockModel, quote: StockQuote, history_cap: int) -> None:
        """Overwrite all scalar fields and merge the daily bars into history."""
        self.apply_quote(model, quote)
        model.high_52_week = quote.high_52_week
        model.low_52_week = quote.low_52_week
        model.market_cap = quote.market_cap
        # Assign a new list so the JSON column is flagged dirty
        model.price_history = merge_history(
            model.price_history or [],
            [price_point_to_entry(p) for p in quote.price_history],
            history_cap,
            PRICE_VALUE_KEY,
        )

    async def create(
        self,
        quote: StockQuote,
        sector: str,
        industry: str,
        history_cap: int,
    ) -> StockModel:
        model = StockModel(
            ticker=quote.ticker.upper(),
            name=quote.name,
            exchange=quote.exchange.value,
            sector=sector,
            industry=industry,
            is_active=True,
            created_at=now_ist_naive(),
            price_history=[],
        )
        self.apply_snapshot(model, quote, history_cap)
        self.session.add(model)
        await self.session.flush()
        return model
