"""
PROJECT INDEX

Key normalization plus the immutable (projects, birthdays) snapshot that the
index builder publishes. A snapshot is never modified after build_snapshot()
returns; readers holding an old one keep a consistent view.
"""

import logging
import re
import unicodedata
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from .models import ProjectRecord, parse_timestamp

logger = logging.getLogger(__name__)

# Latin letters NFKD does not decompose
_DEBURR_EXTRA = str.maketrans({
    'Æ': 'Ae', 'æ': 'ae', 'Ø': 'O', 'ø': 'o', 'ß': 'ss', 'Þ': 'Th', 'þ': 'th',
    'Ð': 'D', 'ð': 'd', 'Đ': 'D', 'đ': 'd', 'Ħ': 'H', 'ħ': 'h', 'ı': 'i',
    'Ĳ': 'IJ', 'ĳ': 'ij', 'ĸ': 'k', 'Ŀ': 'L', 'ŀ': 'l', 'Ł': 'L', 'ł': 'l',
    'Œ': 'Oe', 'œ': 'oe', 'Ŧ': 'T', 'ŧ': 't', 'ſ': 's',
})

_NON_ALNUM = re.compile(r'[^a-z0-9]')
_WHITESPACE = re.compile(r'\s+')


def deburr(text: str) -> str:
    """Strip diacritics: "Élévation" -> "Elevation"."""
    decomposed = unicodedata.normalize('NFKD', text.translate(_DEBURR_EXTRA))
    return ''.join(ch for ch in decomposed if not unicodedata.combining(ch))


def normalize_project_key(name: str) -> str:
    """
    Lookup key for a project name.

    "Fidenza" -> "fidenza", "Ringers #2" -> "ringers2". Names with no
    alphanumeric characters at all keep their symbols (whitespace removed)
    so they still get a non-empty key: "!!!" -> "!!!".
    """
    lowered = deburr(name).lower()
    key = _NON_ALNUM.sub('', lowered)
    if key == '':
        return _WHITESPACE.sub('', lowered)
    return key


@dataclass(frozen=True)
class ProjectIndexSnapshot:
    """Published project index and birthday index from one rebuild cycle."""
    projects: Mapping[str, ProjectRecord] = field(default_factory=lambda: MappingProxyType({}))
    birthdays: Mapping[str, Tuple[ProjectRecord, ...]] = field(default_factory=lambda: MappingProxyType({}))

    @classmethod
    def empty(cls) -> 'ProjectIndexSnapshot':
        return cls()

    def __len__(self) -> int:
        return len(self.projects)

    def keys(self) -> List[str]:
        return list(self.projects.keys())

    def lookup(self, key: str) -> Optional[ProjectRecord]:
        return self.projects.get(key)

    def birthdays_on(self, month_day: str) -> List[ProjectRecord]:
        return list(self.birthdays.get(month_day, ()))


def build_snapshot(records: Iterable[ProjectRecord], birthdays: Dict[str, str] = None) -> ProjectIndexSnapshot:
    """
    Build a fresh snapshot from one pass over the fetched records.

    Args:
        records: Project records in discovery order
        birthdays: {"contract-projectNumber": ISO8601 creation time}

    Returns:
        Immutable ProjectIndexSnapshot. Later records win key collisions.
    """
    birthdays = birthdays or {}
    projects: Dict[str, ProjectRecord] = {}
    by_day: Dict[str, List[ProjectRecord]] = {}

    for record in records:
        raw_bday = birthdays.get(record.birthday_key)
        if raw_bday:
            try:
                record = record.with_birthday(parse_timestamp(raw_bday))
            except ValueError:
                logger.warning(f"[INDEX] Unparseable start time {raw_bday!r} for {record.birthday_key}")

        key = normalize_project_key(record.name)
        if key in projects and projects[key].identity != record.identity:
            logger.debug(f"[INDEX] Key collision on '{key}': {projects[key].identity} replaced by {record.identity}")
        projects[key] = record

        if record.month_day:
            by_day.setdefault(record.month_day, []).append(record)

    return ProjectIndexSnapshot(
        projects=MappingProxyType(projects),
        birthdays=MappingProxyType({day: tuple(recs) for day, recs in by_day.items()}),
    )
