"""Upstream date parsing (Indian exchange and AMFI formats)."""

import re
from datetime import date, datetime
from typing import Optional

_DMY_NUMERIC = re.compile(r"^(\d{1,2})-(\d{1,2})-(\d{4})$")
_DMY_MONTH_NAME = re.compile(r"^\d{1,2}-[A-Za-z]{3}-\d{4}$")


def parse_market_date(value: object) -> Optional[date]:
    """
    Parse a date coming from an upstream feed.

    Accepted, in order:
        DD-MM-YYYY   (AMFI / mfapi, e.g. "05-03-2024" -> 2024-03-05)
        DD-Mon-YYYY  (NSE, e.g. "05-Mar-2024")
        ISO date or datetime

    Returns None when nothing matches instead of guessing a date.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    text = str(value).strip()
    if not text:
        return None

    match = _DMY_NUMERIC.match(text)
    if match:
        day, month, year = (int(part) for part in match.groups())
        if not 1900 <= year <= 2100:
            return None
        try:
            return date(year, month, day)
        except ValueError:
            return None

    if _DMY_MONTH_NAME.match(text):
        try:
            return datetime.strptime(text, "%d-%b-%Y").date()
        except ValueError:
            return None

    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        return None
