import random
import unittest

from artindexer.models import ProjectRecord
from artindexer.project_index import build_snapshot
from artindexer.sampler import BoundedRandomSampler, is_multi_edition_active


def make_record(name, number, invocations=5, active=True):
    return ProjectRecord(source_id='0xabc', project_number=number, name=name,
                         contract='0xabc', invocations=invocations, active=active)


class TestBoundedRandomSampler(unittest.TestCase):

    def test_default_predicate(self):
        self.assertTrue(is_multi_edition_active(make_record("A", 0, invocations=2)))
        self.assertFalse(is_multi_edition_active(make_record("B", 1, invocations=1)))
        self.assertFalse(is_multi_edition_active(make_record("C", 2, active=False)))

    def test_gives_up_after_exactly_max_attempts(self):
        snapshot = build_snapshot([make_record(f"Closed {i}", i, active=False) for i in range(20)])
        sampler = BoundedRandomSampler(10, rng=random.Random(3))

        self.assertIsNone(sampler.sample(snapshot))
        self.assertEqual(sampler.last_attempts, 10)

    def test_empty_index(self):
        sampler = BoundedRandomSampler()
        self.assertIsNone(sampler.sample(build_snapshot([])))
        self.assertEqual(sampler.last_attempts, 0)

    def test_all_qualifying_returns_on_first_draw(self):
        snapshot = build_snapshot([make_record(f"Open {i}", i) for i in range(5)])
        sampler = BoundedRandomSampler(10, rng=random.Random(11))

        record = sampler.sample(snapshot)
        self.assertIn(record, list(snapshot.projects.values()))
        self.assertEqual(sampler.last_attempts, 1)

    def test_custom_predicate_and_plain_mapping(self):
        records = {"a": make_record("A", 0), "b": make_record("B", 1)}
        sampler = BoundedRandomSampler(10, rng=random.Random(5))
        self.assertIsNone(sampler.sample(records, lambda r: r.project_number == 99))
        self.assertEqual(sampler.last_attempts, 10)

    def test_max_attempts_must_be_positive(self):
        with self.assertRaises(ValueError):
            BoundedRandomSampler(0)


if __name__ == '__main__':
    unittest.main()
