import unittest

from artindexer.errors import SourceUnavailable
from artindexer.paginator import PaginatedFetcher


class FakePages:
    """Serves `total` integers in pages, optionally failing on one call."""

    def __init__(self, total, fail_on_call=None):
        self.total = total
        self.fail_on_call = fail_on_call
        self.calls = []

    async def __call__(self, source_id, first, skip):
        self.calls.append((source_id, first, skip))
        if self.fail_on_call is not None and len(self.calls) == self.fail_on_call:
            raise ConnectionError("boom")
        return list(range(skip, min(skip + first, self.total)))


class TestPaginatedFetcher(unittest.IsolatedAsyncioTestCase):

    async def test_three_pages(self):
        pages = FakePages(2500)
        records = await PaginatedFetcher(1000).fetch_all(pages, "0xabc")

        self.assertEqual(len(records), 2500)
        self.assertEqual(records, list(range(2500)))
        self.assertEqual([c[2] for c in pages.calls], [0, 1000, 2000])

    async def test_exact_multiple_needs_trailing_empty_page(self):
        pages = FakePages(2000)
        records = await PaginatedFetcher(1000).fetch_all(pages, "0xabc")
        self.assertEqual(len(records), 2000)
        self.assertEqual(len(pages.calls), 3)

    async def test_empty_source(self):
        pages = FakePages(0)
        self.assertEqual(await PaginatedFetcher(1000).fetch_all(pages, "0xabc"), [])
        self.assertEqual(len(pages.calls), 1)

    async def test_page_failure_raises_source_unavailable(self):
        pages = FakePages(2500, fail_on_call=2)
        with self.assertRaises(SourceUnavailable) as ctx:
            await PaginatedFetcher(1000).fetch_all(pages, "0xabc")
        self.assertEqual(ctx.exception.source_id, "0xabc")

    def test_page_size_must_be_positive(self):
        with self.assertRaises(ValueError):
            PaginatedFetcher(0)


if __name__ == '__main__':
    unittest.main()
