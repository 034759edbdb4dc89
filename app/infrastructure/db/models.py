"""
Database Models (SQLAlchemy ORM)
Market records keyed by ticker / scheme code. Rows are deactivated, never deleted.
"""

from sqlalchemy import (
    Column, Integer, String, Numeric, Date, DateTime,
    Boolean, BigInteger, Index, JSON
)

from app.infrastructure.db.database import Base
from app.utils.time import now_ist_naive


class StockModel(Base):
    """Tracked NSE/BSE stock with bounded daily price history"""
    __tablename__ = "stocks"

    id = Column(Integer, primary_key=True, autoincrement=True)
    ticker = Column(String(32), nullable=False, unique=True, index=True)
    name = Column(String(255), nullable=False)
    exchange = Column(String(8), nullable=False, default="NSE")
    sector = Column(String(100), nullable=False, default="Others")
    industry = Column(String(100), nullable=False, default="Diversified")

    current_price = Column(Numeric(14, 2), nullable=False)
    previous_close = Column(Numeric(14, 2), nullable=False)
    day_change = Column(Numeric(14, 2), nullable=False, default=0)
    day_change_percent = Column(Numeric(8, 2), nullable=False, default=0)
    volume = Column(BigInteger, nullable=False, default=0)
    high_52_week = Column(Numeric(14, 2), nullable=True)
    low_52_week = Column(Numeric(14, 2), nullable=True)
    market_cap = Column(Numeric(20, 2), nullable=True)

    # [{date, open, high, low, close, volume}] ascending by date
    price_history = Column(JSON, nullable=False, default=list)

    is_active = Column(Boolean, nullable=False, default=True)
    is_penny_stock = Column(Boolean, nullable=False, default=False, index=True)
    last_updated = Column(DateTime, nullable=False, default=now_ist_naive)
    created_at = Column(DateTime, nullable=False, default=now_ist_naive)

    __table_args__ = (
        Index("ix_stocks_active_sector", "is_active", "sector"),
    )


class MutualFundModel(Base):
    """Tracked mutual fund scheme with bounded NAV history"""
    __tablename__ = "mutual_funds"

    id = Column(Integer, primary_key=True, autoincrement=True)
    scheme_code = Column(String(32), nullable=False, unique=True, index=True)
    scheme_name = Column(String(255), nullable=False)
    fund_house = Column(String(255), nullable=False)
    category = Column(String(20), nullable=False, default="Other", index=True)
    sub_category = Column(String(50), nullable=False, default="Diversified")

    nav = Column(Numeric(14, 4), nullable=False)
    previous_nav = Column(Numeric(14, 4), nullable=False)
    nav_change = Column(Numeric(14, 4), nullable=False, default=0)
    nav_change_percent = Column(Numeric(8, 2), nullable=False, default=0)
    nav_date = Column(Date, nullable=False)
    nav_date_estimated = Column(Boolean, nullable=False, default=False)

    # [{date, nav}] ascending by date
    nav_history = Column(JSON, nullable=False, default=list)

    is_active = Column(Boolean, nullable=False, default=True)
    last_updated = Column(DateTime, nullable=False, default=now_ist_naive)
    created_at = Column(DateTime, nullable=False, default=now_ist_naive)
