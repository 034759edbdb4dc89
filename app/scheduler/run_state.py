"""
Single-flight guard shared by every background sync.

All syncs run on the scheduler's event loop, so check-and-set between two
awaits is atomic and no lock is needed.
"""

from datetime import datetime
from typing import Optional

from app.domain.models import SyncKind
from app.utils.time import now_ist


class SyncRunState:
    def __init__(self) -> None:
        self._active: Optional[SyncKind] = None
        self._started_at: Optional[datetime] = None

    @property
    def is_running(self) -> bool:
        return self._active is not None

    @property
    def active(self) -> Optional[SyncKind]:
        return self._active

    @property
    def started_at(self) -> Optional[datetime]:
        return self._started_at

    def try_acquire(self, kind: SyncKind) -> bool:
        if self._active is not None:
            return False
        self._active = kind
        self._started_at = now_ist()
        return True

    def release(self) -> None:
        self._active = None
        self._started_at = None
