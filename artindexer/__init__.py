"""
ART INDEXER MODULE

In-memory index of Art Blocks projects plus a deduplicated listing feed.

Architecture:
  Subgraph / Hasura                    Reservoir asks API
        ↓                                     ↓
  PAGINATED FETCHER                    EVENT DEDUP POLLER (watermark)
        ↓                                     ↓
  PROJECT INDEX BUILDER                LISTING HANDLER (ENS cache)
  (atomic snapshot swap)                      ↓
        ↓                              TELEGRAM NOTIFIER
  lookup / birthdays_on / sample
        ↓
  QUERY HANDLER, DAILY ROUTINES
"""

from .errors import (
    ArtIndexerError,
    SourceUnavailable,
    GraphQLError,
    MalformedRecord,
    MalformedEvent,
    SinkDeliveryFailed,
)
from .models import ProjectRecord, parse_timestamp, to_epoch_ms
from .paginator import PaginatedFetcher
from .name_cache import NameResolutionCache, EnsLookup, OpenSeaNameLookup, name_or_address
from .project_index import ProjectIndexSnapshot, build_snapshot, normalize_project_key
from .sampler import BoundedRandomSampler, is_multi_edition_active
from .scheduler import PeriodicTask, DailyTrigger
from .subgraph_client import GraphQLClient
from .project_source import ArtBlocksProjectSource
from .index_builder import ProjectIndexBuilder, build_family_builders
from .event_poller import EventDedupPoller
from .reservoir import ReservoirListPoller, ListingHandler, Listing, TokenMetadataClient
from .routines import BirthdayRoutine, RandomArtRoutine
from .query_handler import ProjectQueryHandler, ProjectQueryResult

__all__ = [
    'ArtIndexerError',
    'SourceUnavailable',
    'GraphQLError',
    'MalformedRecord',
    'MalformedEvent',
    'SinkDeliveryFailed',
    'ProjectRecord',
    'parse_timestamp',
    'to_epoch_ms',
    'PaginatedFetcher',
    'NameResolutionCache',
    'EnsLookup',
    'OpenSeaNameLookup',
    'name_or_address',
    'ProjectIndexSnapshot',
    'build_snapshot',
    'normalize_project_key',
    'BoundedRandomSampler',
    'is_multi_edition_active',
    'PeriodicTask',
    'DailyTrigger',
    'GraphQLClient',
    'ArtBlocksProjectSource',
    'ProjectIndexBuilder',
    'build_family_builders',
    'EventDedupPoller',
    'ReservoirListPoller',
    'ListingHandler',
    'Listing',
    'TokenMetadataClient',
    'BirthdayRoutine',
    'RandomArtRoutine',
    'ProjectQueryHandler',
    'ProjectQueryResult',
]
