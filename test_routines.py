import random
import unittest
from datetime import datetime, timezone

from artindexer.index_builder import ProjectIndexBuilder
from artindexer.models import ProjectRecord, TOKENS_PER_PROJECT
from artindexer.routines import BirthdayRoutine, RandomArtRoutine
from artindexer.sampler import BoundedRandomSampler
from artindexer.scheduler import DailyTrigger


def make_record(name, number, invocations=5, active=True):
    return ProjectRecord(source_id='0xabc', project_number=number, name=name,
                         contract='0xabc', invocations=invocations, active=active)


class StaticSource:
    def __init__(self, records, birthdays):
        self.records = records
        self.birthdays = birthdays

    async def fetch_projects(self, source_id):
        return list(self.records)

    async def fetch_birthdays(self):
        return dict(self.birthdays)


class RecordingNotifier:
    def __init__(self, fail_names=()):
        self.birthdays = []
        self.tokens = []
        self.fail_names = set(fail_names)

    async def send_birthday(self, record, years):
        if record.name in self.fail_names:
            return False
        self.birthdays.append((record.name, years))
        return True

    async def send_project_token(self, record, token_id):
        self.tokens.append((record.name, token_id))
        return True


class TestDailyRoutines(unittest.IsolatedAsyncioTestCase):

    async def asyncSetUp(self):
        records = [
            make_record("Chromie Squiggle", 0, invocations=9000),
            make_record("Launched Today", 1),
            make_record("Fidenza", 78, invocations=999),
        ]
        birthdays = {
            '0xabc-0': "2020-11-27T17:00:00Z",
            '0xabc-1': "2024-11-27T12:00:00Z",
            '0xabc-78': "2021-06-11T17:00:00Z",
        }
        self.builder = ProjectIndexBuilder(
            StaticSource(records, birthdays), ['0xabc'],
            sampler=BoundedRandomSampler(50, rng=random.Random(2)),
        )
        await self.builder.rebuild()
        self.now = datetime(2024, 11, 27, 14, 0, 30, tzinfo=timezone.utc)

    async def test_birthday_skips_projects_launched_this_year(self):
        notifier = RecordingNotifier()
        routine = BirthdayRoutine(self.builder, notifier, DailyTrigger(14, 0))

        announced = await routine.check(self.now)

        self.assertEqual([r.name for r in announced], ["Chromie Squiggle"])
        self.assertEqual(notifier.birthdays, [("Chromie Squiggle", 4)])

    async def test_birthday_runs_once_per_day(self):
        notifier = RecordingNotifier()
        routine = BirthdayRoutine(self.builder, notifier, DailyTrigger(14, 0))

        await routine.check(self.now)
        self.assertEqual(await routine.check(self.now), [])
        self.assertEqual(len(notifier.birthdays), 1)

    async def test_birthday_not_due(self):
        routine = BirthdayRoutine(self.builder, RecordingNotifier(), DailyTrigger(9, 30))
        self.assertEqual(await routine.check(self.now), [])

    async def test_failed_announcement_not_reported(self):
        notifier = RecordingNotifier(fail_names={"Chromie Squiggle"})
        routine = BirthdayRoutine(self.builder, notifier, DailyTrigger(14, 0))
        self.assertEqual(await routine.check(self.now), [])

    async def test_random_art_posts_amount_tokens_of_one_project(self):
        notifier = RecordingNotifier()
        routine = RandomArtRoutine(self.builder, notifier, DailyTrigger(14, 0), amount=4,
                                   rng=random.Random(9))

        posted = await routine.check(self.now)

        self.assertEqual(len(posted), 4)
        self.assertEqual(len({name for name, _ in notifier.tokens}), 1)
        name = notifier.tokens[0][0]
        record = self.builder.lookup(name)
        for token_id in posted:
            self.assertEqual(token_id // TOKENS_PER_PROJECT, record.project_number)
            self.assertLess(token_id % TOKENS_PER_PROJECT, record.invocations)

    async def test_random_art_with_empty_index(self):
        empty = ProjectIndexBuilder(StaticSource([], {}), [])
        routine = RandomArtRoutine(empty, RecordingNotifier(), DailyTrigger(14, 0))
        self.assertEqual(await routine.check(self.now), [])


if __name__ == '__main__':
    unittest.main()
