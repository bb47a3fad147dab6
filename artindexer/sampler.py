"""
BOUNDED RANDOM SAMPLER

Picks a random project that satisfies a predicate with a fixed number of
random draws instead of scanning the whole index. Giving up after the
bound is expected behaviour, even when a qualifying project exists.
"""

import logging
import random
from typing import Callable, Mapping, Optional, Union

from .models import ProjectRecord
from .project_index import ProjectIndexSnapshot

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 10

Predicate = Callable[[ProjectRecord], bool]


def is_multi_edition_active(record: ProjectRecord) -> bool:
    """Default qualification: more than one edition minted and still active."""
    return record.invocations > 1 and record.active


class BoundedRandomSampler:

    def __init__(self, max_attempts: int = DEFAULT_MAX_ATTEMPTS, rng: random.Random = None):
        if max_attempts <= 0:
            raise ValueError(f"max_attempts must be positive, got {max_attempts}")
        self.max_attempts = max_attempts
        self.rng = rng or random.Random()
        self.last_attempts = 0

    def sample(self, index: Union[ProjectIndexSnapshot, Mapping[str, ProjectRecord]],
               predicate: Predicate = None) -> Optional[ProjectRecord]:
        """
        Args:
            index: Published snapshot (or any key -> record mapping)
            predicate: Qualification test, defaults to is_multi_edition_active

        Returns:
            A qualifying record, or None once max_attempts draws missed
        """
        predicate = predicate or is_multi_edition_active
        projects = index.projects if isinstance(index, ProjectIndexSnapshot) else index
        keys = list(projects.keys())

        self.last_attempts = 0
        if not keys:
            return None

        while self.last_attempts < self.max_attempts:
            self.last_attempts += 1
            record = projects.get(self.rng.choice(keys))
            if record is not None and predicate(record):
                return record

        logger.debug(f"[SAMPLER] No qualifying project after {self.last_attempts} attempts")
        return None
