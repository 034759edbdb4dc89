"""
History merge rules for bounded price / NAV sequences.

Sequences are stored as JSON lists of dicts ordered by date ascending. Every
write goes through `merge_history`, which guarantees:

* no point with an unparseable date or a non-positive / non-numeric value,
* at most one point per date (the incoming point wins),
* at most `cap` points, the newest dates retained.
"""

from __future__ import annotations

import math
from datetime import date, timedelta
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Optional

from app.domain.models import NavPoint, PricePoint
from app.utils.dates import parse_market_date

PRICE_VALUE_KEY = "close"
NAV_VALUE_KEY = "nav"

HistoryEntry = Dict[str, Any]


def _to_positive_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(Decimal(str(value)))
    except (InvalidOperation, ValueError):
        return None
    if not math.isfinite(number) or number <= 0:
        return None
    return number


def _to_optional_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(Decimal(str(value)))
    except (InvalidOperation, ValueError):
        return None
    return number if math.isfinite(number) else None


def normalize_entry(entry: Any, value_key: str) -> Optional[HistoryEntry]:
    """Return the storable form of one history entry, or None if invalid."""
    if not isinstance(entry, dict):
        return None

    point_date = parse_market_date(entry.get("date"))
    if point_date is None:
        return None

    value = _to_positive_float(entry.get(value_key))
    if value is None:
        return None

    normalized: HistoryEntry = {"date": point_date.isoformat(), value_key: value}
    for extra_key, extra_value in entry.items():
        if extra_key in ("date", value_key):
            continue
        if extra_key == "volume":
            volume = _to_optional_float(extra_value)
            normalized["volume"] = int(volume) if volume is not None and volume > 0 else 0
        else:
            normalized[extra_key] = _to_optional_float(extra_value)
    return normalized


def sanitize_history(entries: Iterable[Any], value_key: str) -> List[HistoryEntry]:
    """Drop invalid entries, keeping input order and duplicates."""
    cleaned: List[HistoryEntry] = []
    for entry in entries or []:
        normalized = normalize_entry(entry, value_key)
        if normalized is not None:
            cleaned.append(normalized)
    return cleaned


def merge_history(
    existing: Iterable[Any],
    incoming: Iterable[Any],
    cap: int,
    value_key: str,
) -> List[HistoryEntry]:
    """
    Append `incoming` to `existing` and truncate to the newest `cap` points.

    Idempotent: merging the same `incoming` twice yields the same sequence.
    """
    by_date: Dict[str, HistoryEntry] = {}
    for entry in sanitize_history(existing, value_key) + sanitize_history(incoming, value_key):
        by_date[entry["date"]] = entry

    ordered = [by_date[key] for key in sorted(by_date)]
    if cap <= 0:
        return []
    return ordered[-cap:]


def price_point_to_entry(point: PricePoint) -> HistoryEntry:
    return {
        "date": point.date.isoformat(),
        "open": point.open,
        "high": point.high,
        "low": point.low,
        "close": point.close,
        "volume": point.volume,
    }


def nav_point_to_entry(point: NavPoint) -> HistoryEntry:
    return {"date": point.date.isoformat(), "nav": point.nav}


def entry_date(entry: HistoryEntry) -> date:
    return date.fromisoformat(entry["date"])


def period_return(entries: Iterable[Any], days: int, value_key: str) -> Optional[float]:
    """
    Percent change over the last `days` calendar days of a stored sequence.

    Measured from the newest point on or before (latest date - days) to the
    latest point. None when the sequence does not reach that far back.
    """
    points = sanitize_history(entries, value_key)
    if not points:
        return None
    points.sort(key=lambda entry: entry["date"])
    latest = points[-1]
    cutoff = entry_date(latest) - timedelta(days=days)

    base = None
    for entry in points:
        if entry_date(entry) > cutoff:
            break
        base = entry
    if base is None:
        return None
    return round((latest[value_key] - base[value_key]) / base[value_key] * 100, 2)
