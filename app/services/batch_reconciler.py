"""
Batch Reconciler
Walks a key list in fixed-size chunks: fetch each chunk from upstream, write
every fetched record, pause between chunks to stay under upstream rate limits.
"""

import asyncio
import logging
import math
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List

from app.domain.models import FetchResult
from app.infrastructure.market_data.errors import BatchProcessingError

logger = logging.getLogger(__name__)

Fetcher = Callable[[List[str]], Awaitable[FetchResult]]
Writer = Callable[[Any], Awaitable[Any]]


@dataclass
class ReconcileReport:
    total_keys: int = 0
    batches: int = 0
    fetched: int = 0
    written: int = 0
    skipped: Dict[str, str] = field(default_factory=dict)
    failed_batches: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_keys": self.total_keys,
            "batches": self.batches,
            "fetched": self.fetched,
            "written": self.written,
            "skipped": dict(self.skipped),
            "failed_batches": self.failed_batches,
        }


def chunk_keys(keys: List[str], batch_size: int) -> List[List[str]]:
    if batch_size < 1:
        raise ValueError(f"batch_size must be >= 1, got {batch_size}")
    return [keys[i:i + batch_size] for i in range(0, len(keys), batch_size)]


class BatchReconciler:
    """
    Reconciles stored records against an upstream source.

    `fetcher` is a `fetch_many`-style coroutine; `writer` persists one record.
    A writer returning False counts as not written (unknown key).
    """

    def __init__(
        self,
        fetcher: Fetcher,
        writer: Writer,
        label: str,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.fetcher = fetcher
        self.writer = writer
        self.label = label
        self._sleep = sleep

    async def reconcile(
        self,
        keys: List[str],
        batch_size: int,
        inter_batch_delay: float,
    ) -> ReconcileReport:
        chunks = chunk_keys(list(keys), batch_size)
        report = ReconcileReport(total_keys=len(keys))
        expected = math.ceil(len(keys) / batch_size) if keys else 0
        logger.info(
            "🔄 Reconciling %d %s in %d batches of %d",
            len(keys), self.label, expected, batch_size,
        )

        for index, chunk in enumerate(chunks):
            if index > 0 and inter_batch_delay > 0:
                await self._sleep(inter_batch_delay)
            report.batches += 1
            await self._process_chunk(index, chunk, report)

        logger.info(
            "✅ %s reconcile done: %d/%d written, %d skipped, %d failed batches",
            self.label.capitalize(),
            report.written,
            report.total_keys,
            len(report.skipped),
            report.failed_batches,
        )
        return report

    async def _process_chunk(self, index: int, chunk: List[str], report: ReconcileReport) -> None:
        try:
            result = await self.fetcher(chunk)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            error = BatchProcessingError(
                f"Batch {index + 1} of {self.label} failed: {exc}", keys=chunk
            )
            logger.error("❌ %s", error, exc_info=True)
            report.failed_batches += 1
            return

        report.fetched += len(result.fetched)
        report.skipped.update(result.skipped)

        for record in result.fetched:
            key = getattr(record, "key", repr(record))
            try:
                written = await self.writer(record)
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                logger.error("❌ Failed to write %s %s: %s", self.label, key, exc, exc_info=True)
                report.skipped[key] = f"write failed: {exc}"
                continue
            if written is False:
                report.skipped[key] = "not found in database"
                continue
            report.written += 1
