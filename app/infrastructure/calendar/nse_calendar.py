"""
NSE Trading Calendar
Trading days, exchange holidays and the cash-market session window
"""

from datetime import date, datetime, time, timedelta
from typing import Iterable, Optional, Set
import logging

from app.config import settings
from app.utils.time import IST

logger = logging.getLogger(__name__)


NSE_HOLIDAYS = {
    date(2025, 2, 26),  # Mahashivratri
    date(2025, 3, 14),  # Holi
    date(2025, 3, 31),  # Id-Ul-Fitr
    date(2025, 4, 10),  # Mahavir Jayanti
    date(2025, 4, 14),  # Dr. Ambedkar Jayanti
    date(2025, 4, 18),  # Good Friday
    date(2025, 5, 1),   # Maharashtra Day
    date(2025, 8, 15),  # Independence Day
    date(2025, 8, 27),  # Ganesh Chaturthi
    date(2025, 10, 2),  # Gandhi Jayanti
    date(2025, 10, 21), # Diwali - Laxmi Pujan
    date(2025, 10, 22), # Diwali - Balipratipada
    date(2025, 11, 5),  # Gurunanak Jayanti
    date(2025, 12, 25), # Christmas
    date(2026, 1, 26),  # Republic Day
    date(2026, 4, 14),  # Dr. Ambedkar Jayanti
    date(2026, 5, 1),   # Maharashtra Day
    date(2026, 10, 2),  # Gandhi Jayanti
    date(2026, 12, 25), # Christmas
}


class NSECalendar:
    """
    NSE (National Stock Exchange of India) Trading Calendar

    Holidays are a static table; extra dates can be registered at runtime.
    """

    def __init__(
        self,
        market_open: Optional[time] = None,
        market_close: Optional[time] = None,
        holidays: Optional[Iterable[date]] = None,
    ):
        self.market_open = market_open or time(settings.MARKET_OPEN_HOUR, settings.MARKET_OPEN_MINUTE)
        self.market_close = market_close or time(settings.MARKET_CLOSE_HOUR, settings.MARKET_CLOSE_MINUTE)
        self._holidays: Set[date] = set(NSE_HOLIDAYS if holidays is None else holidays)

    def is_trading_day(self, check_date: date) -> bool:
        """
        Check if a date is a trading day

        Args:
            check_date: Date to check

        Returns:
            True if trading day, False otherwise
        """
        if check_date.weekday() >= 5:  # Saturday=5, Sunday=6
            return False
        return check_date not in self._holidays

    def is_market_open(self, check_time: datetime) -> bool:
        """
        Check if the cash market session is running at a given instant

        Naive datetimes are read as IST. Both session bounds are inclusive.
        """
        if check_time.tzinfo is None:
            check_time = check_time.replace(tzinfo=IST)
        local = check_time.astimezone(IST)

        if not self.is_trading_day(local.date()):
            return False

        current = local.time().replace(second=0, microsecond=0)
        return self.market_open <= current <= self.market_close

    def get_next_trading_day(self, from_date: date) -> date:
        next_day = from_date + timedelta(days=1)

        while not self.is_trading_day(next_day):
            next_day += timedelta(days=1)

            # Safety check (max 30 days ahead)
            if (next_day - from_date).days > 30:
                raise ValueError("Could not find trading day within 30 days")

        return next_day

    def add_holiday(self, holiday_date: date, description: str = "") -> None:
        """Register an ad hoc exchange closure."""
        logger.info("Registering NSE holiday %s %s", holiday_date, description)
        self._holidays.add(holiday_date)

    def get_holidays(self) -> Set[date]:
        return set(self._holidays)
