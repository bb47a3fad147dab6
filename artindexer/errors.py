"""
Error kinds raised inside the indexer core.

None of these ever reach an interactive caller: background loops log them
and the affected operation hands back an empty result.
"""

from typing import Optional


class ArtIndexerError(Exception):
    """Base class for indexer errors."""


class SourceUnavailable(ArtIndexerError):
    """
    A single upstream source failed to respond (or answered garbage).

    Fatal for the rebuild cycle it happened in; the previously published
    index stays in place and the next scheduled tick retries.
    """

    def __init__(self, source_id: str, message: str = "", cause: Optional[BaseException] = None):
        self.source_id = source_id
        self.cause = cause
        detail = message or (str(cause) if cause else "source unavailable")
        super().__init__(f"[{source_id}] {detail}")


class GraphQLError(SourceUnavailable):
    """GraphQL endpoint returned an HTTP error or an `errors` payload."""


class MalformedRecord(SourceUnavailable):
    """A project record from a source is missing a required field."""


class MalformedEvent(ArtIndexerError):
    """An event batch entry (or the batch itself) has no parseable timestamp."""


class SinkDeliveryFailed(ArtIndexerError):
    """Forwarding a deduplicated event to the notification sink failed."""
