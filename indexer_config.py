"""
ART INDEXER CONFIGURATION

Runtime knobs for the project index, the listing poller and the daily
routines. Values come from config.py (environment / .env) so a deployment
only ever edits .env and contracts.yaml.
"""

from config import (
    METADATA_REFRESH_INTERVAL_MINUTES,
    RESERVOIR_POLL_INTERVAL_MS,
    PROJECTS_PAGE_SIZE,
    SAMPLE_RETRY_LIMIT,
    INDEX_COLLABORATIONS,
    INDEX_PBAB,
    REQUEST_TIMEOUT_SECONDS,
    RANDOM_ART_AMOUNT,
    RANDOM_ART_TIME,
    BIRTHDAY_CHECK_TIME,
    RESERVOIR_LIST_ENDPOINT,
    RESERVOIR_API_KEY,
    BAN_ADDRESSES,
    get_core_contracts,
    get_collaboration_contracts,
)

ART_INDEXER_CONFIG = {
    'enabled': True,

    # ================================================================
    # PROJECT INDEX
    # ================================================================
    'index': {
        'refresh_interval_minutes': METADATA_REFRESH_INTERVAL_MINUTES,
        'page_size': PROJECTS_PAGE_SIZE,
        'sample_retry_limit': SAMPLE_RETRY_LIMIT,
        'request_timeout_seconds': REQUEST_TIMEOUT_SECONDS,
        'core_contracts': get_core_contracts(),
        'collaboration_contracts': get_collaboration_contracts(),
        'index_collaborations': INDEX_COLLABORATIONS,
        'index_pbab': INDEX_PBAB,
    },

    # ================================================================
    # LISTING POLLER (Reservoir)
    # ================================================================
    'listings': {
        'enabled': True,
        'api_endpoint': RESERVOIR_LIST_ENDPOINT,
        'api_key': RESERVOIR_API_KEY,
        'refresh_rate_ms': RESERVOIR_POLL_INTERVAL_MS,
        'events_key': 'orders',
        'timestamp_key': 'createdAt',
        'request_timeout_seconds': REQUEST_TIMEOUT_SECONDS,
        'banned_addresses': sorted(BAN_ADDRESSES),
    },

    # ================================================================
    # DAILY ROUTINES (UTC)
    # ================================================================
    'routines': {
        'random_art': {
            'enabled': True,
            'time': RANDOM_ART_TIME,
            'amount': RANDOM_ART_AMOUNT,
        },
        'birthday': {
            'enabled': True,
            'time': BIRTHDAY_CHECK_TIME,
        },
    },
}


def get_indexer_config():
    """Get the art indexer configuration."""
    return ART_INDEXER_CONFIG


def is_indexer_enabled():
    return ART_INDEXER_CONFIG.get('enabled', False)
