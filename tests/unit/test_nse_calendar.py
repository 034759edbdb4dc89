from datetime import date, datetime, timezone

import pytest

from app.infrastructure.calendar.nse_calendar import NSECalendar
from app.utils.time import IST


@pytest.fixture()
def calendar():
    return NSECalendar(holidays=[date(2024, 3, 25)])


class TestMarketHours:
    """Cash session: trading weekdays, 09:15 to 15:30 IST inclusive"""

    @pytest.mark.parametrize(
        "hour, minute, expected",
        [
            (9, 14, False),
            (9, 15, True),
            (12, 0, True),
            (15, 30, True),
            (15, 31, False),
        ],
    )
    def test_session_bounds(self, calendar, hour, minute, expected):
        # Tuesday
        assert calendar.is_market_open(datetime(2024, 3, 5, hour, minute, tzinfo=IST)) is expected

    def test_last_second_of_close_minute_is_open(self, calendar):
        assert calendar.is_market_open(datetime(2024, 3, 5, 15, 30, 59, tzinfo=IST))

    def test_weekend_is_closed(self, calendar):
        assert not calendar.is_market_open(datetime(2024, 3, 9, 11, 0, tzinfo=IST))

    def test_holiday_is_closed(self, calendar):
        assert not calendar.is_market_open(datetime(2024, 3, 25, 11, 0, tzinfo=IST))

    def test_naive_time_is_read_as_ist(self, calendar):
        assert calendar.is_market_open(datetime(2024, 3, 5, 9, 15))

    def test_aware_time_is_converted_to_ist(self, calendar):
        # 04:00 UTC is 09:30 IST
        assert calendar.is_market_open(datetime(2024, 3, 5, 4, 0, tzinfo=timezone.utc))
        # 11:00 UTC is 16:30 IST
        assert not calendar.is_market_open(datetime(2024, 3, 5, 11, 0, tzinfo=timezone.utc))


def test_next_trading_day_skips_weekend_and_holiday(calendar):
    # Friday 22 Mar -> Monday 25 Mar is a holiday -> Tuesday 26 Mar
    assert calendar.get_next_trading_day(date(2024, 3, 22)) == date(2024, 3, 26)


def test_add_holiday(calendar):
    calendar.add_holiday(date(2024, 3, 6), "ad hoc closure")
    assert not calendar.is_trading_day(date(2024, 3, 6))
    assert date(2024, 3, 6) in calendar.get_holidays()
