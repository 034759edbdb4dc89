"""
Data Sync Service
Cron-driven synchronization of tracked stocks and mutual funds against
their upstream sources, plus the weekly penny stock discovery.
"""

import logging
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, Optional

import pytz
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from app.config import settings
from app.domain.models import SyncKind
from app.infrastructure.calendar.nse_calendar import NSECalendar
from app.infrastructure.db.store import MarketDataStore
from app.infrastructure.market_data.types import FundNavSource, StockQuoteSource
from app.scheduler.run_state import SyncRunState
from app.services.batch_reconciler import BatchReconciler, ReconcileReport
from app.services.penny_stock_discovery import PennyStockDiscovery
from app.utils.time import now_ist, to_iso

logger = logging.getLogger(__name__)

STOCK_SYNC_JOB_ID = "stock_sync"
FUND_SYNC_JOB_ID = "mutual_fund_sync"
DISCOVERY_JOB_ID = "penny_stock_discovery"


def _report_dict(report: Optional[ReconcileReport]) -> Optional[Dict[str, Any]]:
    return report.to_dict() if report is not None else None

class DataSyncService:
    """
    Background sync orchestrator.

    Stock, mutual fund and discovery runs share one single-flight guard:
    a trigger that fires while any run is active is logged and dropped.
    """

    def __init__(
        self,
        stock_source: StockQuoteSource,
        fund_source: FundNavSource,
        store: MarketDataStore,
        calendar: Optional[NSECalendar] = None,
        scheduler: Optional[AsyncIOScheduler] = None,
        discovery: Optional[PennyStockDiscovery] = None,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
    ):
        self.stock_source = stock_source
        self.fund_source = fund_source
        self.store = store
        self.calendar = calendar or NSECalendar()
        self.timezone = pytz.timezone(settings.TIMEZONE)
        self.scheduler = scheduler or AsyncIOScheduler(timezone=self.timezone)

        reconciler_kwargs = {"sleep": sleep} if sleep is not None else {}
        self.stock_reconciler = BatchReconciler(
            stock_source.fetch_many, store.upsert_stock, "stocks", **reconciler_kwargs
        )
        self.fund_reconciler = BatchReconciler(
            fund_source.fetch_many, store.upsert_fund, "mutual funds", **reconciler_kwargs
        )
        self.discovery = discovery or PennyStockDiscovery(stock_source, store, **reconciler_kwargs)

        self._run_state = SyncRunState()
        self._jobs_initialized = False

        self.last_stock_sync: Optional[datetime] = None
        self.last_mutual_fund_sync: Optional[datetime] = None
        self.last_discovery_sync: Optional[datetime] = None
        self.last_stock_report: Optional[ReconcileReport] = None
        self.last_mutual_fund_report: Optional[ReconcileReport] = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def init_cron_jobs(self) -> None:
        """Register the cron jobs and start the scheduler. Safe to call twice."""
        if self._jobs_initialized:
            logger.info("Cron jobs already initialized")
            return

        logger.info("🚀 Initializing data sync cron jobs...")
        self._add_job(self._scheduled_stock_sync, settings.STOCK_SYNC_CRON, STOCK_SYNC_JOB_ID, "Stock Price Sync")
        self._add_job(self.sync_mutual_fund_data, settings.FUND_SYNC_CRON, FUND_SYNC_JOB_ID, "Mutual Fund NAV Sync")
        self._add_job(self.discover_penny_stocks, settings.DISCOVERY_CRON, DISCOVERY_JOB_ID, "Penny Stock Discovery")

        if not self.scheduler.running:
            self.scheduler.start()
        self._jobs_initialized = True

        logger.info("📅 Scheduled Jobs:")
        for job in self.scheduler.get_jobs():
            logger.info("  • %s - Next run: %s", job.name, getattr(job, "next_run_time", None))

    def _add_job(self, func, crontab: str, job_id: str, name: str) -> None:
        self.scheduler.add_job(
            func,
            CronTrigger.from_crontab(crontab, timezone=self.timezone),
            id=job_id,
            name=name,
            replace_existing=True,
            coalesce=True,
            max_instances=1,
        )

    def stop_cron_jobs(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("🛑 Data sync cron jobs stopped")
        self._jobs_initialized = False

    # ------------------------------------------------------------------
    # Guarded routines
    # ------------------------------------------------------------------

    async def _run_exclusive(
        self,
        kind: SyncKind,
        routine: Callable[[], Awaitable[Any]],
        last_sync_attr: str,
    ) -> bool:
        if not self._run_state.try_acquire(kind):
            logger.warning(
                "⏭️  Skipping %s sync: %s sync already in progress",
                kind.value,
                self._run_state.active.value,
            )
            return False

        try:
            await routine()
        except Exception as exc:
            logger.error("❌ %s sync failed: %s", kind.value, exc, exc_info=True)
        else:
            setattr(self, last_sync_attr, now_ist())
        finally:
            self._run_state.release()
        return True

    async def _scheduled_stock_sync(self) -> None:
        if not self.calendar.is_market_open(now_ist()):
            logger.debug("Market closed, skipping scheduled stock sync")
            return
        await self.sync_stock_data()

    async def sync_stock_data(self) -> bool:
        return await self._run_exclusive(SyncKind.STOCKS, self._sync_stocks, "last_stock_sync")

    async def sync_mutual_fund_data(self) -> bool:
        return await self._run_exclusive(
            SyncKind.MUTUAL_FUNDS, self._sync_mutual_funds, "last_mutual_fund_sync"
        )

    async def discover_penny_stocks(self) -> bool:
        return await self._run_exclusive(SyncKind.DISCOVERY, self.discovery.run, "last_discovery_sync")

    async def force_sync_stocks(self) -> bool:
        """Run a stock sync now, outside market hours too."""
        return await self.sync_stock_data()

    async def force_sync_mutual_funds(self) -> bool:
        return await self.sync_mutual_fund_data()

    async def _sync_stocks(self) -> None:
        logger.info("🔄 Starting stock data sync...")
        tickers = await self.store.list_active_stock_tickers()
        if not tickers:
            logger.info("No active stocks to sync")
            return
        self.last_stock_report = await self.stock_reconciler.reconcile(
            tickers,
            settings.STOCK_SYNC_BATCH_SIZE,
            settings.STOCK_SYNC_BATCH_DELAY_SECONDS,
        )

    async def _sync_mutual_funds(self) -> None:
        logger.info("🔄 Starting mutual fund data sync...")
        scheme_codes = await self.store.list_active_scheme_codes()
        if not scheme_codes:
            logger.info("No active mutual funds to sync")
            return
        self.last_mutual_fund_report = await self.fund_reconciler.reconcile(
            scheme_codes,
            settings.FUND_SYNC_BATCH_SIZE,
            settings.FUND_SYNC_BATCH_DELAY_SECONDS,
        )

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def get_sync_status(self) -> Dict[str, Any]:
        active = self._run_state.active
        return {
            "is_running": self._run_state.is_running,
            "active_sync": active.value if active else None,
            "last_stock_sync": to_iso(self.last_stock_sync),
            "last_mutual_fund_sync": to_iso(self.last_mutual_fund_sync),
            "last_discovery_sync": to_iso(self.last_discovery_sync),
            "last_stock_report": _report_dict(self.last_stock_report),
            "last_mutual_fund_report": _report_dict(self.last_mutual_fund_report),
            "jobs": [
                {
                    "id": job.id,
                    "name": job.name,
                    "next_run_time": to_iso(getattr(job, "next_run_time", None)),
                }
                for job in self.scheduler.get_jobs()
            ],
        }
