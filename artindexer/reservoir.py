"""
RESERVOIR LISTINGS

Reservoir asks endpoint wired into the EventDedupPoller, plus the sink that
turns a raw order into a Telegram listing alert:

  order -> Listing -> ban check -> seller name (ENS cache)
        -> Art Blocks token metadata -> marketplace URL -> notifier

API reference: https://docs.reservoir.tools/reference/getordersasksv4
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, Optional

import aiohttp

from .errors import MalformedEvent, SinkDeliveryFailed
from .event_poller import EventDedupPoller
from .name_cache import NameResolutionCache, name_or_address
from .utils import short_address

logger = logging.getLogger(__name__)

ARTBLOCKS_TOKEN_API = "https://token.artblocks.io"


class ReservoirListPoller(EventDedupPoller):
    """EventDedupPoller preconfigured for Reservoir `orders` / `createdAt` batches."""

    TAG = "RESERVOIR"

    def __init__(self, api_endpoint: str, refresh_rate_ms: int, sink: Callable,
                 api_key: str = '', contract: str = '', config: Dict = None, clock=None):
        config = {'events_key': 'orders', 'timestamp_key': 'createdAt', **(config or {})}
        headers = {'accept': '*/*'}
        if api_key:
            headers['x-api-key'] = api_key
        super().__init__(api_endpoint, refresh_rate_ms, sink, headers=headers, config=config, clock=clock)
        self.contract = contract


@dataclass(frozen=True)
class Listing:
    """One ask order, reduced to the fields the alert needs."""
    contract: str
    token_id: str
    price: float
    maker: str
    platform: str

    @classmethod
    def from_reservoir_order(cls, order: Dict) -> 'Listing':
        """
        Raises:
            MalformedEvent: tokenSetId, price or maker missing
        """
        try:
            # tokenSetId looks like "token:<contract>:<tokenId>"
            _, contract, token_id = order['tokenSetId'].split(':')
            price = order['price']
            if isinstance(price, dict):
                price = price['amount']['decimal']
            price = float(price)
            maker = order['maker']
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise MalformedEvent(f"unusable Reservoir order: {e}") from e
        if not isinstance(maker, str) or not maker:
            raise MalformedEvent(f"Reservoir order without maker: {order.get('id')}")

        platform = ((order.get('source') or {}).get('name') or 'unknown')
        return cls(
            contract=(order.get('contract') or contract).lower(),
            token_id=token_id,
            price=price,
            maker=maker,
            platform=platform,
        )


def marketplace_url(platform: str, contract: str, token_id: str, fallback: str = '') -> str:
    """Listing URL on the marketplace the order came from."""
    platform = (platform or '').lower()
    if platform == 'opensea':
        return f"https://opensea.io/assets/ethereum/{contract}/{token_id}"
    if platform == 'looksrare':
        return f"https://looksrare.org/collections/{contract}/{token_id}"
    if platform == 'x2y2':
        return f"https://x2y2.io/eth/{contract}/{token_id}"
    return fallback


class TokenMetadataClient:
    """Art Blocks token API (image, names, external URL) over aiohttp."""

    def __init__(self, base_url: str = ARTBLOCKS_TOKEN_API, timeout_seconds: float = 10):
        self.base_url = base_url.rstrip('/')
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self.session: Optional[aiohttp.ClientSession] = None

    async def _ensure_session(self):
        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession(timeout=self.timeout)

    async def close(self):
        if self.session:
            await self.session.close()
            self.session = None

    def token_url(self, token_id: str, contract: str = '') -> str:
        if contract:
            return f"{self.base_url}/{contract}/{token_id}"
        return f"{self.base_url}/{token_id}"

    async def fetch(self, token_id: str, contract: str = '') -> Dict:
        await self._ensure_session()
        url = self.token_url(token_id, contract)
        try:
            async with self.session.get(url) as response:
                if response.status != 200:
                    raise SinkDeliveryFailed(f"token metadata HTTP {response.status}: {url}")
                return await response.json(content_type=None)
        except (asyncio.TimeoutError, aiohttp.ClientError, ValueError) as e:
            raise SinkDeliveryFailed(f"token metadata request failed for {url}: {e}") from e


class ListingHandler:
    """
    Sink for ReservoirListPoller.

    Returns False for orders that are intentionally not announced (banned
    maker, notifier disabled, token outside an Art Blocks collection); raises
    SinkDeliveryFailed when the alert could not be delivered.
    """

    def __init__(self, notifier, names: NameResolutionCache, token_api: TokenMetadataClient,
                 banned_addresses: Iterable[str] = (), contract: str = ''):
        self.notifier = notifier
        self.names = names
        self.token_api = token_api
        self.banned_addresses = {a.lower() for a in banned_addresses}
        self.contract = contract

    async def __call__(self, order: Dict) -> bool:
        listing = Listing.from_reservoir_order(order)

        if listing.maker.lower() in self.banned_addresses:
            logger.info(f"[RESERVOIR] Skipping listing from banned maker {short_address(listing.maker)}")
            return False

        if not getattr(self.notifier, 'enabled', True):
            logger.info(f"[RESERVOIR] Token {listing.token_id} LIST @ {listing.price} ETH "
                        f"({listing.platform}) by {short_address(listing.maker)}, notifier disabled")
            return False

        seller_text = await name_or_address(self.names, listing.maker)
        metadata = await self.token_api.fetch(listing.token_id, self.contract)

        if not metadata.get('collection_name'):
            logger.debug(f"[RESERVOIR] Token {listing.token_id} has no collection, not announced")
            return False

        url = marketplace_url(listing.platform, listing.contract, listing.token_id,
                              metadata.get('external_url', ''))
        logger.info(f"[RESERVOIR] {metadata.get('name')} LIST @ {listing.price} ETH ({listing.platform})")

        delivered = await self.notifier.send_listing(listing, metadata, seller_text, url)
        if not delivered:
            raise SinkDeliveryFailed(f"listing alert for token {listing.token_id} not delivered")
        return True
