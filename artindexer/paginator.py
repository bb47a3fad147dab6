"""
PAGINATED FETCHER

Cursor-style (first/skip) retrieval of a complete record set from a single
remote source. A short page means the source has no more data.
"""

import logging
from typing import Awaitable, Callable, List

from .errors import SourceUnavailable

logger = logging.getLogger(__name__)

# Subgraph hard limit for `first`
DEFAULT_PAGE_SIZE = 1000

PageFetch = Callable[[str, int, int], Awaitable[List]]


class PaginatedFetcher:
    """
    Walks a paginated source from offset 0 until a short page comes back.

    Usage:
        fetcher = PaginatedFetcher(page_size=1000)
        projects = await fetcher.fetch_all(source.fetch_project_page, contract_id)
    """

    def __init__(self, page_size: int = DEFAULT_PAGE_SIZE):
        if page_size <= 0:
            raise ValueError(f"page_size must be positive, got {page_size}")
        self.page_size = page_size

    async def fetch_all(self, fetch_page: PageFetch, source_id: str) -> List:
        """
        Fetch every page for one source.

        Args:
            fetch_page: async callable (source_id, first, skip) -> list of records
            source_id: Source identifier passed through to fetch_page

        Returns:
            Concatenation of all pages (empty list if the source has no records)

        Raises:
            SourceUnavailable: any page request failed
        """
        records: List = []
        pages = 0
        while True:
            try:
                page = await fetch_page(source_id, self.page_size, len(records))
            except SourceUnavailable:
                raise
            except Exception as e:
                raise SourceUnavailable(source_id, f"page {pages} failed: {e}", e) from e

            if page is None:
                raise SourceUnavailable(source_id, f"page {pages} returned no data")

            records.extend(page)
            pages += 1
            if len(page) < self.page_size:
                break

        logger.debug(f"[PAGINATOR] {source_id}: {len(records)} records in {pages} page(s)")
        return records
