import asyncio
import unittest
from datetime import datetime, timedelta, timezone

from artindexer.scheduler import DailyTrigger, PeriodicTask


class TestDailyTrigger(unittest.TestCase):

    def test_parse(self):
        trigger = DailyTrigger.parse("14:05")
        self.assertEqual((trigger.hour, trigger.minute), (14, 5))
        with self.assertRaises(ValueError):
            DailyTrigger.parse("25:00")

    def test_fires_once_per_day(self):
        trigger = DailyTrigger(12, 0)
        noon = datetime(2024, 3, 1, 12, 0, 10, tzinfo=timezone.utc)

        self.assertFalse(trigger.due(noon - timedelta(minutes=1)))
        self.assertTrue(trigger.due(noon))
        self.assertFalse(trigger.due(noon + timedelta(seconds=30)))
        self.assertTrue(trigger.due(noon + timedelta(days=1)))

    def test_compares_in_utc(self):
        trigger = DailyTrigger(12, 0)
        est = timezone(timedelta(hours=-5))
        self.assertTrue(trigger.due(datetime(2024, 3, 1, 7, 0, tzinfo=est)))


class TestPeriodicTask(unittest.IsolatedAsyncioTestCase):

    async def test_run_once_counts_failures(self):
        async def broken():
            raise RuntimeError("nope")

        task = PeriodicTask("broken", broken, 60)
        self.assertFalse(await task.run_once())
        self.assertEqual(task.get_stats()['failures'], 1)

    async def test_runs_never_overlap(self):
        active = []
        overlaps = []
        runs = []

        async def slow():
            if active:
                overlaps.append(True)
            active.append(True)
            await asyncio.sleep(0.02)
            active.pop()
            runs.append(True)
            if len(runs) == 3:
                task.stop()

        task = PeriodicTask("slow", slow, 0.001)
        await asyncio.wait_for(task.run(), timeout=2)

        self.assertEqual(len(runs), 3)
        self.assertEqual(overlaps, [])

    def test_interval_must_be_positive(self):
        async def noop():
            return None

        with self.assertRaises(ValueError):
            PeriodicTask("noop", noop, 0)


if __name__ == '__main__':
    unittest.main()
