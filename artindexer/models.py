"""
PROJECT MODELS

Typed records mapped from the raw GraphQL / REST payloads at the boundary.
Nothing deeper in the indexer touches a raw dict field by name.
"""

import math
import random
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Dict, Optional, Tuple

from .errors import MalformedRecord

# Art Blocks token ids are project_number * 1_000_000 + invocation
TOKENS_PER_PROJECT = 1_000_000

# Epoch values at or above this are milliseconds, below it seconds
_EPOCH_MS_THRESHOLD = 1e12


def parse_timestamp(value) -> datetime:
    """
    Parse an ISO8601 string or an epoch number into an aware datetime.

    Naive ISO strings are taken as UTC. An explicit offset is kept as-is so
    the calendar date of the original string survives. Epoch values >= 1e12
    are milliseconds, smaller ones are seconds.

    Raises:
        ValueError: value is missing or not a recognisable timestamp
    """
    if value is None or isinstance(value, bool):
        raise ValueError(f"not a timestamp: {value!r}")

    if isinstance(value, (int, float)):
        return _from_epoch(float(value))

    if isinstance(value, str):
        text = value.strip()
        if not text:
            raise ValueError("empty timestamp")
        try:
            return _from_epoch(float(text))
        except ValueError:
            pass
        if text.endswith('Z'):
            text = text[:-1] + '+00:00'
        parsed = datetime.fromisoformat(text)
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed

    raise ValueError(f"not a timestamp: {value!r}")


def _from_epoch(number: float) -> datetime:
    if not math.isfinite(number) or number < 0:
        raise ValueError(f"invalid epoch value: {number}")
    seconds = number / 1000 if number >= _EPOCH_MS_THRESHOLD else number
    try:
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    except (OverflowError, OSError) as e:
        raise ValueError(f"epoch value out of range: {number}") from e


def to_epoch_ms(moment: datetime) -> int:
    """Epoch milliseconds for an aware (or UTC-naive) datetime."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return int(moment.timestamp() * 1000)


@dataclass(frozen=True)
class ProjectRecord:
    """
    One generative-art project as published in the index.

    Identity is (source_id, project_number). Records are never mutated;
    each rebuild cycle constructs new ones.
    """
    source_id: str
    project_number: int
    name: str
    contract: str
    invocations: int
    active: bool
    created_at: Optional[datetime] = None
    max_invocations: Optional[int] = None
    curation_status: Optional[str] = None

    @property
    def identity(self) -> Tuple[str, int]:
        return (self.source_id, self.project_number)

    @property
    def birthday_key(self) -> str:
        """Key used by the metadata backend: "contract-projectNumber"."""
        return f"{self.contract}-{self.project_number}"

    @property
    def month_day(self) -> Optional[str]:
        if self.created_at is None:
            return None
        return f"{self.created_at.month:02d}-{self.created_at.day:02d}"

    def with_birthday(self, created_at: Optional[datetime]) -> 'ProjectRecord':
        return replace(self, created_at=created_at)

    def token_id(self, invocation: int) -> int:
        return self.project_number * TOKENS_PER_PROJECT + invocation

    def random_token_id(self, rng: random.Random = None) -> int:
        rng = rng or random
        invocation = rng.randrange(self.invocations) if self.invocations > 0 else 0
        return self.token_id(invocation)

    @classmethod
    def from_subgraph(cls, raw: Dict, source_id: str) -> 'ProjectRecord':
        """
        Map a subgraph project entry onto a ProjectRecord.

        Expected shape:
            {"projectId": "0", "name": "Chromie Squiggle", "invocations": "9000",
             "maxInvocations": "10000", "curationStatus": "curated",
             "active": true, "contract": {"id": "0x..."}}

        Raises:
            MalformedRecord: a required field is missing or unparseable
        """
        if not isinstance(raw, dict):
            raise MalformedRecord(source_id, f"project entry is not an object: {raw!r}")

        try:
            project_number = int(raw['projectId'])
            name = raw['name']
            contract = (raw.get('contract') or {})['id']
            invocations = int(raw.get('invocations') or 0)
            max_invocations = raw.get('maxInvocations')
            max_invocations = int(max_invocations) if max_invocations is not None else None
        except (KeyError, TypeError, ValueError) as e:
            raise MalformedRecord(source_id, f"bad project entry {raw!r}", e)

        if not isinstance(name, str) or not isinstance(contract, str):
            raise MalformedRecord(source_id, f"bad project entry {raw!r}")

        return cls(
            source_id=source_id,
            project_number=project_number,
            name=name,
            contract=contract.lower(),
            invocations=invocations,
            active=bool(raw.get('active', False)),
            max_invocations=max_invocations,
            curation_status=raw.get('curationStatus') or None,
        )
