"""
Best-effort concurrent fetch shared by the upstream adapters.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, List, TypeVar

from app.domain.models import FetchResult

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT")


async def fetch_best_effort(
    keys: List[str],
    fetch_one: Callable[[str], Awaitable[RecordT]],
    label: str,
) -> FetchResult[RecordT]:
    """
    Fetch every key concurrently. Failures are recorded in `skipped` and
    never retried or raised.
    """
    result: FetchResult[RecordT] = FetchResult()
    unique_keys = list(dict.fromkeys(keys))
    if not unique_keys:
        return result

    logger.info("Fetching data for %d %s", len(unique_keys), label)
    outcomes = await asyncio.gather(
        *(fetch_one(key) for key in unique_keys),
        return_exceptions=True,
    )

    for key, outcome in zip(unique_keys, outcomes):
        if isinstance(outcome, asyncio.CancelledError):
            raise outcome
        if isinstance(outcome, Exception):
            logger.warning("Failed to fetch data for %s %s: %s", label, key, outcome)
            result.skipped[key] = str(outcome) or type(outcome).__name__
            continue
        result.fetched.append(outcome)

    return result
