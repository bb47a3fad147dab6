import unittest
from datetime import datetime, timezone

from artindexer.models import ProjectRecord, parse_timestamp, to_epoch_ms
from artindexer.errors import MalformedRecord
from artindexer.project_index import build_snapshot, deburr, normalize_project_key


def make_record(name, number=0, source='0xabc', invocations=5, active=True):
    return ProjectRecord(source_id=source, project_number=number, name=name,
                         contract=source, invocations=invocations, active=active)


class TestProjectKeys(unittest.TestCase):

    def test_normalize_examples(self):
        self.assertEqual(normalize_project_key("Fidenza"), "fidenza")
        self.assertEqual(normalize_project_key("Ringers #2"), "ringers2")
        self.assertEqual(normalize_project_key("!!!"), "!!!")
        self.assertEqual(normalize_project_key("! ! !"), "!!!")

    def test_diacritics_are_stripped(self):
        self.assertEqual(deburr("Élévation"), "Elevation")
        self.assertEqual(normalize_project_key("Élévation"), "elevation")
        self.assertEqual(normalize_project_key("Ærø Straße"), "aerostrasse")

    def test_normalize_is_idempotent(self):
        for name in ["Chromie Squiggle", "Ringers #2", "!!!", "Élévation", "  ", "#?"]:
            key = normalize_project_key(name)
            self.assertEqual(normalize_project_key(key), key)


class TestTimestamps(unittest.TestCase):

    def test_iso_with_z(self):
        parsed = parse_timestamp("2021-06-11T17:00:00Z")
        self.assertEqual(parsed, datetime(2021, 6, 11, 17, 0, tzinfo=timezone.utc))

    def test_naive_iso_is_utc(self):
        self.assertEqual(parse_timestamp("2021-06-11T17:00:00").tzinfo, timezone.utc)

    def test_epoch_seconds_and_millis(self):
        self.assertEqual(parse_timestamp(1_600_000_000), parse_timestamp(1_600_000_000_000))
        self.assertEqual(to_epoch_ms(parse_timestamp("1600000000000")), 1_600_000_000_000)

    def test_rejects_garbage(self):
        for value in [None, "", "yesterday", True, float('nan'), {}]:
            with self.assertRaises(ValueError):
                parse_timestamp(value)


class TestProjectRecord(unittest.TestCase):

    def test_from_subgraph(self):
        record = ProjectRecord.from_subgraph({
            "projectId": "78", "name": "Fidenza", "invocations": "999",
            "active": True, "contract": {"id": "0xA7D8D9EF8D8CE8992DF33D8B8CF4AEBABD5BD270"},
        }, "0xa7d8d9ef8d8ce8992df33d8b8cf4aebabd5bd270")
        self.assertEqual(record.project_number, 78)
        self.assertEqual(record.invocations, 999)
        self.assertEqual(record.contract, "0xa7d8d9ef8d8ce8992df33d8b8cf4aebabd5bd270")
        self.assertEqual(record.birthday_key, "0xa7d8d9ef8d8ce8992df33d8b8cf4aebabd5bd270-78")
        self.assertEqual(record.token_id(12), 78_000_012)

    def test_from_subgraph_supply_and_curation(self):
        record = ProjectRecord.from_subgraph({
            "projectId": "13", "name": "Ringers", "invocations": "1000", "active": False,
            "maxInvocations": "1000", "curationStatus": "curated",
            "contract": {"id": "0x059edd72cd353df5106d2b9cc5ab83a52287ac3a"},
        }, "0x059edd72cd353df5106d2b9cc5ab83a52287ac3a")
        self.assertEqual(record.max_invocations, 1000)
        self.assertEqual(record.curation_status, "curated")

        bare = ProjectRecord.from_subgraph({"projectId": "1", "name": "Bare", "invocations": "5",
                                            "contract": {"id": "0x1"}, "curationStatus": ""}, "0x1")
        self.assertIsNone(bare.max_invocations)
        self.assertIsNone(bare.curation_status)

    def test_from_subgraph_missing_field(self):
        with self.assertRaises(MalformedRecord):
            ProjectRecord.from_subgraph({"name": "No number", "contract": {"id": "0x1"}}, "0x1")
        with self.assertRaises(MalformedRecord):
            ProjectRecord.from_subgraph("not a dict", "0x1")


class TestBuildSnapshot(unittest.TestCase):

    def test_birthdays_grouped_by_month_day(self):
        a = make_record("Alpha", 0)
        b = make_record("Beta", 1)
        c = make_record("Gamma", 2)
        snapshot = build_snapshot([a, b, c], {
            "0xabc-0": "2021-06-11T17:00:00Z",
            "0xabc-2": "2022-06-11T09:00:00Z",
        })

        self.assertEqual(len(snapshot), 3)
        self.assertEqual([r.name for r in snapshot.birthdays_on("06-11")], ["Alpha", "Gamma"])
        self.assertEqual(snapshot.birthdays_on("01-01"), [])
        self.assertIsNone(snapshot.lookup("beta").created_at)

    def test_later_record_wins_collision(self):
        first = make_record("Same Name", 0, source='0x1')
        second = make_record("same-name", 7, source='0x2')
        snapshot = build_snapshot([first, second])
        self.assertEqual(snapshot.lookup("samename").identity, ('0x2', 7))

    def test_unparseable_birthday_is_absent(self):
        snapshot = build_snapshot([make_record("Alpha", 0)], {"0xabc-0": "not a date"})
        self.assertIsNone(snapshot.lookup("alpha").created_at)
        self.assertEqual(dict(snapshot.birthdays), {})

    def test_snapshot_is_read_only(self):
        snapshot = build_snapshot([make_record("Alpha", 0)])
        with self.assertRaises(TypeError):
            snapshot.projects["beta"] = make_record("Beta", 1)


if __name__ == '__main__':
    unittest.main()
