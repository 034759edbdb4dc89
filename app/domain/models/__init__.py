"""
Domain Models Package
Export all domain entities
"""

from .market import (
    # Enums
    Exchange,
    FundCategory,
    SyncKind,

    # Entities
    FetchResult,
    FundNav,
    NavPoint,
    PricePoint,
    StockQuote,
)

__all__ = [
    # Enums
    "Exchange",
    "FundCategory",
    "SyncKind",

    # Entities
    "FetchResult",
    "FundNav",
    "NavPoint",
    "PricePoint",
    "StockQuote",
]
