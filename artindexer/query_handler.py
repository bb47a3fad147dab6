"""
PROJECT QUERY HANDLER

Parses chat messages of the form

    #<token number|?> [project name][?details]

    "#?"              random token of a random qualifying project
    "#? open"         random token of a random project still minting
    "#12 fidenza"     token 12 of Fidenza
    "#? ringers"      random Ringers token

and resolves them against the published index.
"""

import logging
import random
from dataclasses import dataclass
from typing import Optional

from .models import ProjectRecord
from .project_index import normalize_project_key

logger = logging.getLogger(__name__)

USAGE_HINT = "Invalid format, enter # followed by the piece number of interest."
RANDOM_KEY = '#?'
OPEN_KEY = 'open'
DETAILS_FLAG = '?details'


@dataclass(frozen=True)
class ProjectQueryResult:
    record: Optional[ProjectRecord] = None
    token_id: Optional[int] = None
    details: bool = False
    message: str = ''


class ProjectQueryHandler:

    def __init__(self, builder, rng: random.Random = None, fallbacks=()):
        """
        Args:
            builder: ProjectIndexBuilder answering random and open queries
            fallbacks: Builders of other contract families, asked in order
                when a name is not in `builder`
        """
        self.builder = builder
        self.fallbacks = list(fallbacks)
        self.rng = rng or random.Random()

    async def handle(self, content: str) -> Optional[ProjectQueryResult]:
        """
        Returns:
            ProjectQueryResult to reply with, or None when the message is not
            a query or names no known project
        """
        content = (content or '').strip()
        if not content.startswith('#'):
            return None
        if len(content) <= 1:
            return ProjectQueryResult(message=USAGE_HINT)

        head, sep, rest = content.partition(' ')
        project_text = rest if sep else content
        details = DETAILS_FLAG in project_text
        project_key = normalize_project_key(project_text.replace(DETAILS_FLAG, ''))

        if project_key == RANDOM_KEY:
            record = self.builder.sample_qualifying()
        elif project_key == OPEN_KEY:
            record = await self.builder.sample_open_project()
        else:
            logger.info(f"[QUERY] Searching for project {project_key}")
            record = self._lookup(project_key)

        if record is None:
            return None

        token_id = self._token_id(record, head[1:])
        if token_id is None:
            return ProjectQueryResult(record=record, details=details,
                                      message=f"Invalid token number for {record.name}.")
        return ProjectQueryResult(record=record, token_id=token_id, details=details)

    def _lookup(self, project_key: str) -> Optional[ProjectRecord]:
        for builder in [self.builder, *self.fallbacks]:
            record = builder.lookup(project_key)
            if record is not None:
                return record
        return None

    def _token_id(self, record: ProjectRecord, number_text: str) -> Optional[int]:
        if number_text in ('', '?'):
            return record.random_token_id(self.rng)
        try:
            invocation = int(number_text)
        except ValueError:
            return None
        if invocation < 0 or invocation >= max(record.invocations, 1):
            return None
        return record.token_id(invocation)
