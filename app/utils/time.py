"""Time utilities (IST)."""

from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

IST = ZoneInfo("Asia/Kolkata")


def now_ist() -> datetime:
    """Current time as a timezone-aware IST datetime."""
    return datetime.now(IST)


def now_ist_naive() -> datetime:
    """
    Current time in IST, returned as naive datetime for DB storage.
    """
    return now_ist().replace(tzinfo=None)


def today_ist() -> date:
    return now_ist().date()


def epoch_to_ist_date(seconds: float) -> date:
    """Calendar date (IST) of a unix timestamp in seconds."""
    return datetime.fromtimestamp(seconds, tz=timezone.utc).astimezone(IST).date()


def epoch_millis() -> int:
    return int(datetime.now(tz=timezone.utc).timestamp() * 1000)


def to_iso(dt: datetime | None) -> str | None:
    """ISO string for API payloads; naive values are DB timestamps in IST."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=IST)
    return dt.isoformat()
