import random
import unittest

from artindexer.models import ProjectRecord
from artindexer.query_handler import USAGE_HINT, ProjectQueryHandler


def make_record(name, number, invocations=5, active=True):
    return ProjectRecord(source_id='0xabc', project_number=number, name=name,
                         contract='0xabc', invocations=invocations, active=active)


FIDENZA = make_record("Fidenza", 78, invocations=999)
RINGERS = make_record("Ringers", 13, invocations=1000)


class FakeBuilder:
    """Read surface of ProjectIndexBuilder over a fixed dict."""

    def __init__(self):
        self.projects = {"fidenza": FIDENZA, "ringers": RINGERS}
        self.open_sampled = 0

    def lookup(self, key):
        return self.projects.get(key)

    def sample_qualifying(self):
        return RINGERS

    async def sample_open_project(self):
        self.open_sampled += 1
        return FIDENZA


class TestProjectQueryHandler(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.builder = FakeBuilder()
        self.handler = ProjectQueryHandler(self.builder, rng=random.Random(4))

    async def test_specific_token(self):
        result = await self.handler.handle("#12 Fidenza")
        self.assertIs(result.record, FIDENZA)
        self.assertEqual(result.token_id, 78_000_012)
        self.assertFalse(result.details)

    async def test_random_token_of_named_project(self):
        result = await self.handler.handle("#? ringers")
        self.assertIs(result.record, RINGERS)
        self.assertEqual(result.token_id // 1_000_000, 13)

    async def test_random_project(self):
        result = await self.handler.handle("#?")
        self.assertIs(result.record, RINGERS)

    async def test_open_project(self):
        result = await self.handler.handle("#? open")
        self.assertIs(result.record, FIDENZA)
        self.assertEqual(self.builder.open_sampled, 1)

    async def test_details_flag(self):
        result = await self.handler.handle("#1 fidenza?details")
        self.assertTrue(result.details)
        self.assertEqual(result.token_id, 78_000_001)

    async def test_out_of_range_token(self):
        result = await self.handler.handle("#5000 fidenza")
        self.assertIs(result.record, FIDENZA)
        self.assertIsNone(result.token_id)
        self.assertIn("Invalid token number", result.message)

    async def test_bare_hash_returns_usage(self):
        result = await self.handler.handle("#")
        self.assertEqual(result.message, USAGE_HINT)

    async def test_name_falls_back_to_other_families(self):
        collab = FakeBuilder()
        collab.projects = {"lux": make_record("Lux", 2, invocations=30)}
        handler = ProjectQueryHandler(self.builder, rng=random.Random(4), fallbacks=[collab])

        self.assertEqual((await handler.handle("#1 lux")).token_id, 2_000_001)
        self.assertIs((await handler.handle("#1 fidenza")).record, FIDENZA)
        self.assertIsNone(await handler.handle("#1 unknown"))

    async def test_non_query_and_unknown_project(self):
        self.assertIsNone(await self.handler.handle("gm"))
        self.assertIsNone(await self.handler.handle("#3 no such project"))


if __name__ == '__main__':
    unittest.main()
