"""
Named recurring callbacks sharing one start/stop lifecycle.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, Optional

logger = logging.getLogger(__name__)

Callback = Callable[[], Awaitable[None]]


@dataclass
class _Schedule:
    interval: float
    callback: Callback


class RecurringTasks:
    def __init__(self, sleep: Callable[[float], Awaitable[None]] = asyncio.sleep):
        self._schedules: Dict[str, _Schedule] = {}
        self._tasks: Dict[str, asyncio.Task] = {}
        self._sleep = sleep

    def add(self, name: str, interval: float, callback: Callback) -> None:
        if interval <= 0:
            raise ValueError(f"interval for {name} must be positive, got {interval}")
        self._schedules[name] = _Schedule(interval=interval, callback=callback)

    def start(self, name: Optional[str] = None) -> None:
        """Start one callback, or every registered one. Running callbacks are left alone."""
        names = [name] if name is not None else list(self._schedules)
        for key in names:
            if key not in self._schedules:
                raise KeyError(f"Unknown recurring task: {key}")
            if self.is_running(key):
                continue
            self._tasks[key] = asyncio.create_task(self._run(key), name=f"recurring:{key}")

    def is_running(self, name: Optional[str] = None) -> bool:
        if name is not None:
            task = self._tasks.get(name)
            return task is not None and not task.done()
        return any(not task.done() for task in self._tasks.values())

    async def stop(self) -> None:
        tasks = list(self._tasks.values())
        self._tasks.clear()
        for task in tasks:
            task.cancel()
        for task in tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass

    async def _run(self, name: str) -> None:
        schedule = self._schedules[name]
        while True:
            await self._sleep(schedule.interval)
            await self._invoke(name)

    async def _invoke(self, name: str) -> None:
        try:
            await self._schedules[name].callback()
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.error("Recurring task %s failed: %s", name, exc, exc_info=True)
