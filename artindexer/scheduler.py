"""
SCHEDULER

Timer primitives for the background tasks:
- PeriodicTask: run, wait the interval, run again. The next run is only
  scheduled once the previous one finished, so a slow upstream can never
  stack up concurrent runs.
- DailyTrigger: fires once per UTC day at a fixed hour/minute.
"""

import asyncio
import logging
from datetime import date, datetime, timezone
from typing import Awaitable, Callable, Dict, Optional

logger = logging.getLogger(__name__)


class PeriodicTask:
    """
    Self-rescheduling background loop.

    Usage:
        task = PeriodicTask("index-rebuild", builder.rebuild, 60 * 60)
        asyncio.create_task(task.run(), name="index-rebuild")
    """

    def __init__(self, name: str, callback: Callable[[], Awaitable], interval_seconds: float,
                 run_immediately: bool = True, error_backoff_seconds: float = None):
        if interval_seconds <= 0:
            raise ValueError(f"interval_seconds must be positive, got {interval_seconds}")
        self.name = name
        self.callback = callback
        self.interval_seconds = interval_seconds
        self.run_immediately = run_immediately
        self.error_backoff_seconds = error_backoff_seconds or interval_seconds

        self.is_running = False
        self.runs = 0
        self.failures = 0
        self.last_run: Optional[datetime] = None

    async def run_once(self) -> bool:
        """Run the callback once. Returns False if it raised."""
        self.last_run = datetime.now(timezone.utc)
        self.runs += 1
        try:
            await self.callback()
            return True
        except Exception as e:
            self.failures += 1
            logger.exception(f"[SCHEDULER] {self.name} failed: {e}")
            return False

    async def run(self):
        self.is_running = True
        logger.info(f"[SCHEDULER] {self.name} started (every {self.interval_seconds:.0f}s)")

        if not self.run_immediately:
            await asyncio.sleep(self.interval_seconds)

        while self.is_running:
            ok = await self.run_once()
            if not self.is_running:
                break
            await asyncio.sleep(self.interval_seconds if ok else self.error_backoff_seconds)

    def stop(self):
        self.is_running = False

    def get_stats(self) -> Dict:
        return {
            'name': self.name,
            'runs': self.runs,
            'failures': self.failures,
            'last_run': self.last_run.isoformat() if self.last_run else None,
            'interval_seconds': self.interval_seconds,
        }


class DailyTrigger:
    """Due once per UTC day when the clock reads hour:minute."""

    def __init__(self, hour: int, minute: int = 0):
        if not (0 <= hour < 24 and 0 <= minute < 60):
            raise ValueError(f"invalid trigger time {hour}:{minute}")
        self.hour = hour
        self.minute = minute
        self.last_fired: Optional[date] = None

    @classmethod
    def parse(cls, text: str) -> 'DailyTrigger':
        """Build from "HH:MM"."""
        hour, _, minute = text.strip().partition(':')
        return cls(int(hour), int(minute or 0))

    def due(self, now: datetime) -> bool:
        if now.tzinfo is not None:
            now = now.astimezone(timezone.utc)
        if (now.hour, now.minute) != (self.hour, self.minute):
            return False
        if self.last_fired == now.date():
            return False
        self.last_fired = now.date()
        return True

    def __repr__(self) -> str:
        return f"DailyTrigger({self.hour:02d}:{self.minute:02d} UTC)"
