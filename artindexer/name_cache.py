"""
NAME RESOLUTION CACHE

Runtime cache in front of address -> human name lookups (ENS, OpenSea).

Cache semantics:
- cached ""      -> looked up, nothing registered (never asked again)
- key absent     -> not attempted yet
- lookup raised  -> "" returned, NOT cached, next call retries
"""

import asyncio
import logging
from typing import Callable, Dict, Optional

import requests
from web3 import Web3

from .utils import is_async_callable, short_address

logger = logging.getLogger(__name__)


class NameResolutionCache:
    """
    Memoizing address -> name resolver.

    No lock on purpose: two concurrent misses for the same address both hit
    the remote lookup and both write the same value.
    """

    def __init__(self, lookup: Callable, label: str = "ENS"):
        """
        Args:
            lookup: callable(address) -> name or None. Coroutine functions are
                awaited, plain callables run in a worker thread.
            label: Tag used in log lines
        """
        self.lookup = lookup
        self.label = label
        self._names: Dict[str, str] = {}

        self.hits = 0
        self.misses = 0
        self.failures = 0

    @staticmethod
    def _key(address: str) -> str:
        return address.lower()

    def __contains__(self, address: str) -> bool:
        return self._key(address) in self._names

    def cached(self, address: str) -> Optional[str]:
        """Cached name for an address, or None if it was never resolved."""
        return self._names.get(self._key(address))

    async def resolve(self, address: str) -> str:
        key = self._key(address)
        if key in self._names:
            self.hits += 1
            return self._names[key]

        self.misses += 1
        try:
            if is_async_callable(self.lookup):
                name = await self.lookup(address)
            else:
                name = await asyncio.to_thread(self.lookup, address)
        except Exception as e:
            self.failures += 1
            logger.warning(f"[{self.label}] Lookup failed for {short_address(address)}: {e}")
            return ''

        name = name or ''
        self._names[key] = name
        return name

    def clear(self):
        self._names.clear()

    def get_stats(self) -> Dict:
        return {
            'label': self.label,
            'size': len(self._names),
            'hits': self.hits,
            'misses': self.misses,
            'failures': self.failures,
        }


class EnsLookup:
    """Reverse ENS lookup through a web3 provider (blocking; run in a thread)."""

    def __init__(self, w3: Web3):
        self.w3 = w3

    @classmethod
    def from_rpc_url(cls, rpc_url: str) -> 'EnsLookup':
        return cls(Web3(Web3.HTTPProvider(rpc_url)))

    def __call__(self, address: str) -> Optional[str]:
        return self.w3.ens.name(Web3.to_checksum_address(address))


class OpenSeaNameLookup:
    """
    OpenSea account username lookup (blocking; run in a thread).

    A `detail` field in the response body means OpenSea refused the request
    (usually rate limiting), so it raises instead of returning "".
    """

    BASE_URL = "https://api.opensea.io/api/v2/accounts"

    def __init__(self, api_key: str = '', timeout: float = 5.0):
        self.api_key = api_key
        self.timeout = timeout

    def __call__(self, address: str) -> str:
        headers = {'Accept': 'application/json'}
        if self.api_key:
            headers['X-API-KEY'] = self.api_key

        resp = requests.get(f"{self.BASE_URL}/{address}", headers=headers, timeout=self.timeout)

        if resp.status_code == 404:
            return ''
        body = resp.json()
        if isinstance(body, dict) and body.get('detail'):
            raise RuntimeError(body['detail'])
        if resp.status_code != 200:
            raise RuntimeError(f"OpenSea HTTP {resp.status_code}")
        return body.get('username') or ''


async def name_or_address(cache: NameResolutionCache, address: str) -> str:
    """Resolved name for an address, falling back to the address itself."""
    name = await cache.resolve(address)
    return name if name else address
