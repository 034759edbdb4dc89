"""
Domain Models - Market records
Normalized snapshots produced by the upstream adapters and consumed by the store
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Dict, Generic, List, Optional, TypeVar


class Exchange(str, Enum):
    NSE = "NSE"
    BSE = "BSE"


class FundCategory(str, Enum):
    EQUITY = "Equity"
    DEBT = "Debt"
    HYBRID = "Hybrid"
    INDEX = "Index"
    OTHER = "Other"


class SyncKind(str, Enum):
    """Kinds of background synchronization sharing the run guard"""
    STOCKS = "stocks"
    MUTUAL_FUNDS = "mutual_funds"
    DISCOVERY = "discovery"


@dataclass(frozen=True)
class PricePoint:
    """One daily OHLCV bar of a stock"""
    date: date
    close: Decimal
    open: Optional[Decimal] = None
    high: Optional[Decimal] = None
    low: Optional[Decimal] = None
    volume: int = 0


@dataclass(frozen=True)
class NavPoint:
    """One published NAV of a mutual fund scheme"""
    date: date
    nav: Decimal


@dataclass
class StockQuote:
    """Stock snapshot as fetched from the exchange data source"""
    ticker: str
    name: str
    exchange: Exchange
    current_price: Decimal
    previous_close: Decimal
    day_change: Decimal
    day_change_percent: Decimal
    volume: int
    high_52_week: Optional[Decimal]
    low_52_week: Optional[Decimal]
    market_cap: Optional[Decimal]
    last_updated: datetime
    price_history: List[PricePoint] = field(default_factory=list)

    @property
    def key(self) -> str:
        return self.ticker


@dataclass
class FundNav:
    """Mutual fund snapshot as fetched from the AMFI data source"""
    scheme_code: str
    scheme_name: str
    fund_house: str
    category: FundCategory
    sub_category: str
    nav: Decimal
    previous_nav: Decimal
    nav_change: Decimal
    nav_change_percent: Decimal
    nav_date: date
    last_updated: datetime
    nav_date_estimated: bool = False
    nav_history: List[NavPoint] = field(default_factory=list)

    @property
    def key(self) -> str:
        return self.scheme_code


RecordT = TypeVar("RecordT")


@dataclass
class FetchResult(Generic[RecordT]):
    """
    Outcome of a best-effort batch fetch.

    `fetched` keeps the order of the requested keys; keys that failed are
    listed in `skipped` with the reason instead of failing the batch.
    """
    fetched: List[RecordT] = field(default_factory=list)
    skipped: Dict[str, str] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.fetched)

    def __iter__(self):
        return iter(self.fetched)
