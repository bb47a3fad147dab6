"""
DAILY ROUTINES

Once-a-day posts driven off the published index:
- BirthdayRoutine: projects whose launch anniversary is today
- RandomArtRoutine: a batch of random tokens from one random project

Both check their DailyTrigger twice a minute.
"""

import logging
import random
from datetime import datetime, timezone
from typing import List

from .models import ProjectRecord
from .scheduler import DailyTrigger, PeriodicTask

logger = logging.getLogger(__name__)

# Under a minute so the trigger minute is never stepped over
CHECK_INTERVAL_SECONDS = 30


class _DailyRoutine:
    name = "daily-routine"

    def __init__(self, builder, notifier, trigger: DailyTrigger):
        self.builder = builder
        self.notifier = notifier
        self.trigger = trigger
        self._task = None

    async def check(self, now: datetime):
        raise NotImplementedError

    async def _tick(self):
        await self.check(datetime.now(timezone.utc))

    async def run(self):
        self._task = PeriodicTask(self.name, self._tick, CHECK_INTERVAL_SECONDS)
        await self._task.run()

    def stop(self):
        if self._task:
            self._task.stop()


class BirthdayRoutine(_DailyRoutine):
    """Announces project anniversaries (projects launched today are skipped)."""

    name = "birthday-routine"

    async def check(self, now: datetime) -> List[ProjectRecord]:
        if not self.trigger.due(now):
            return []

        now = now.astimezone(timezone.utc) if now.tzinfo else now
        month_day = f"{now.month:02d}-{now.day:02d}"
        celebrating = [
            r for r in self.builder.birthdays_on(month_day)
            if r.created_at is not None and r.created_at.year != now.year
        ]
        logger.info(f"[BIRTHDAY] {len(celebrating)} project birthday(s) on {month_day}")

        announced = []
        for record in celebrating:
            years = now.year - record.created_at.year
            try:
                if await self.notifier.send_birthday(record, years):
                    announced.append(record)
            except Exception as e:
                logger.error(f"[BIRTHDAY] Failed to announce {record.name}: {e}")
        return announced


class RandomArtRoutine(_DailyRoutine):
    """Posts `amount` random tokens of one randomly sampled qualifying project."""

    name = "random-art-routine"

    def __init__(self, builder, notifier, trigger: DailyTrigger, amount: int = 10,
                 rng: random.Random = None):
        super().__init__(builder, notifier, trigger)
        self.amount = amount
        self.rng = rng or random.Random()

    async def check(self, now: datetime) -> List[int]:
        if not self.trigger.due(now):
            return []

        record = self.builder.sample_qualifying()
        if record is None:
            logger.info("[RANDOM] No qualifying project found, skipping today's random art")
            return []

        posted = []
        for _ in range(self.amount):
            token_id = record.random_token_id(self.rng)
            try:
                if await self.notifier.send_project_token(record, token_id):
                    posted.append(token_id)
            except Exception as e:
                logger.error(f"[RANDOM] Failed to post token {token_id}: {e}")
        logger.info(f"[RANDOM] Posted {len(posted)} random token(s) from {record.name}")
        return posted
