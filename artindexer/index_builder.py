"""
PROJECT INDEX BUILDER

Periodically re-fetches every configured project source plus the birthday
map, builds a fresh ProjectIndexSnapshot and publishes it with a single
attribute assignment.

Guarantees:
- Readers always see the last fully built snapshot (never a partial one)
- A failing source abandons the cycle; the old snapshot stays published
- At most one rebuild in flight; ticks that arrive mid-rebuild are skipped
"""

import asyncio
import logging
from itertools import chain
from typing import Dict, List, Optional, Sequence

from .errors import SourceUnavailable
from .models import ProjectRecord
from .project_index import ProjectIndexSnapshot, build_snapshot, normalize_project_key
from .sampler import BoundedRandomSampler, Predicate, is_multi_edition_active
from .scheduler import PeriodicTask

logger = logging.getLogger(__name__)


class ProjectIndexBuilder:
    """
    Owns one published (projects, birthdays) snapshot.

    Several builders can coexist (one per contract family, chat, ...); none
    of their state is module-global.

    Usage:
        builder = ProjectIndexBuilder(source, core_contracts, config)
        asyncio.create_task(builder.run(), name="index-builder")
        ...
        record = builder.lookup("Fidenza")
    """

    def __init__(self, source, source_ids: Sequence[str], config: Dict = None,
                 sampler: BoundedRandomSampler = None):
        """
        Args:
            source: Collaborator with async fetch_projects(source_id),
                fetch_birthdays() and (optionally) fetch_open_projects(source_id)
            source_ids: Sources to aggregate on every rebuild
            config: Builder config dict (refresh_interval_minutes, sample_retry_limit)
            sampler: Random sampler override (tests inject a seeded one)
        """
        self.config = config or {}
        self.source = source
        self.source_ids = list(source_ids)

        self.refresh_interval_minutes = self.config.get('refresh_interval_minutes', 60)
        self.sampler = sampler or BoundedRandomSampler(self.config.get('sample_retry_limit', 10))

        self._snapshot = ProjectIndexSnapshot.empty()
        self._rebuilding = False
        self._task: Optional[PeriodicTask] = None

        self.stats = {
            'rebuilds_completed': 0,
            'rebuilds_failed': 0,
            'rebuilds_skipped': 0,
            'last_project_count': 0,
        }

    @property
    def snapshot(self) -> ProjectIndexSnapshot:
        return self._snapshot

    @property
    def is_rebuilding(self) -> bool:
        return self._rebuilding

    # ------------------------------------------------------------------
    # Rebuild
    # ------------------------------------------------------------------

    async def rebuild(self) -> bool:
        """
        Run one rebuild cycle.

        Returns:
            True if a new snapshot was published, False if the cycle was
            skipped (already rebuilding) or abandoned (source failure)
        """
        if self._rebuilding:
            self.stats['rebuilds_skipped'] += 1
            logger.info("[INDEXER] Rebuild already in flight, skipping tick")
            return False

        self._rebuilding = True
        try:
            snapshot = await self._build()
        except SourceUnavailable as e:
            self.stats['rebuilds_failed'] += 1
            logger.error(f"[INDEXER] Rebuild abandoned, keeping previous index ({len(self._snapshot)} projects): {e}")
            return False
        except Exception as e:
            self.stats['rebuilds_failed'] += 1
            logger.exception(f"[INDEXER] Unexpected rebuild failure, keeping previous index: {e}")
            return False
        finally:
            self._rebuilding = False

        self._snapshot = snapshot
        self.stats['rebuilds_completed'] += 1
        self.stats['last_project_count'] = len(snapshot)
        logger.info(f"[INDEXER] ✅ Published {len(snapshot)} projects, "
                    f"{sum(len(v) for v in snapshot.birthdays.values())} with birthdays")
        return True

    async def _build(self) -> ProjectIndexSnapshot:
        per_source = await self._gather_all(self.source.fetch_projects)
        birthdays = await self.source.fetch_birthdays()

        for source_id, records in zip(self.source_ids, per_source):
            logger.debug(f"[INDEXER] {source_id}: {len(records)} projects")

        return build_snapshot(chain.from_iterable(per_source), birthdays)

    async def _gather_all(self, fetch) -> List[List[ProjectRecord]]:
        """Fetch from every source in parallel; the first failure (in source order) is raised."""
        results = await asyncio.gather(
            *(fetch(source_id) for source_id in self.source_ids),
            return_exceptions=True,
        )
        for source_id, result in zip(self.source_ids, results):
            if isinstance(result, SourceUnavailable):
                raise result
            if isinstance(result, Exception):
                raise SourceUnavailable(source_id, str(result), result) from result
        return results

    async def run(self):
        """Rebuild at startup, then every refresh_interval_minutes."""
        self._task = PeriodicTask(
            "index-rebuild",
            self.rebuild,
            self.refresh_interval_minutes * 60,
        )
        await self._task.run()

    def stop(self):
        if self._task:
            self._task.stop()

    # ------------------------------------------------------------------
    # Read surface
    # ------------------------------------------------------------------

    def lookup(self, name_or_key: str) -> Optional[ProjectRecord]:
        """Project for a display name or an already normalized key."""
        return self._snapshot.lookup(normalize_project_key(name_or_key))

    def birthdays_on(self, month_day: str) -> List[ProjectRecord]:
        """Projects created on "MM-DD" (any year)."""
        return self._snapshot.birthdays_on(month_day)

    def sample_qualifying(self, predicate: Predicate = None) -> Optional[ProjectRecord]:
        return self.sampler.sample(self._snapshot, predicate or is_multi_edition_active)

    async def sample_open_project(self, predicate: Predicate = None) -> Optional[ProjectRecord]:
        """
        Random project that is currently open for minting.

        The open list comes straight from the source; the returned record is
        the one published in the index.
        """
        try:
            open_projects = list(chain.from_iterable(await self._gather_all(self.source.fetch_open_projects)))
        except SourceUnavailable as e:
            logger.warning(f"[INDEXER] Could not fetch open projects: {e}")
            return None

        snapshot = self._snapshot
        candidates = {}
        for record in open_projects:
            key = normalize_project_key(record.name)
            published = snapshot.lookup(key)
            if published is not None:
                candidates[key] = published
        return self.sampler.sample(candidates, predicate or is_multi_edition_active)

    def get_stats(self) -> Dict:
        return {
            **self.stats,
            'published_projects': len(self._snapshot),
            'rebuilding': self._rebuilding,
            'sources': list(self.source_ids),
        }


async def build_family_builders(source, config: Dict = None) -> Dict[str, ProjectIndexBuilder]:
    """
    One builder per contract family: "core", "collaborations" and "pbab".

    Collaboration and PBAB builders are optional (config flags
    index_collaborations / index_pbab). PBAB contracts are discovered from
    the subgraph as every contract outside the core and collaboration sets;
    when discovery fails the PBAB family is left out and the others still run.
    """
    config = config or {}
    core = list(config.get('core_contracts', []))
    collaborations = list(config.get('collaboration_contracts', []))

    builders = {'core': ProjectIndexBuilder(source, core, config)}

    if config.get('index_collaborations', True) and collaborations:
        builders['collaborations'] = ProjectIndexBuilder(source, collaborations, config)

    if config.get('index_pbab', False):
        try:
            pbab = await source.fetch_pbab_contracts(core + collaborations)
        except SourceUnavailable as e:
            logger.warning(f"[INDEXER] PBAB contract discovery failed, PBAB family disabled: {e}")
            pbab = []
        if pbab:
            logger.info(f"[INDEXER] Indexing {len(pbab)} PBAB contracts")
            builders['pbab'] = ProjectIndexBuilder(source, pbab, config)

    return builders
