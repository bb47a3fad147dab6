"""
EVENT DEDUP POLLER

Turns a stateless "recent events" API into an exactly-once notification
stream using a timestamp high-water mark.

Per poll cycle:
  fetch batch -> forward events newer than the pre-cycle watermark
              -> advance watermark to the batch maximum (once, at the end)

The watermark starts at "now" so the first poll does not replay the
endpoint's backlog. It lives in process memory only.
"""

import asyncio
import logging
import time
from typing import Callable, Dict, List, Optional

import aiohttp

from .errors import MalformedEvent, SinkDeliveryFailed, SourceUnavailable
from .models import parse_timestamp, to_epoch_ms
from .scheduler import PeriodicTask
from .utils import is_async_callable

logger = logging.getLogger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


class EventDedupPoller:
    """
    Polls one endpoint on a fixed interval and forwards new events to a sink.

    Config keys:
        events_key: Batch field holding the event list (default "events")
        timestamp_key: Event field holding its timestamp (default "timestamp")
        request_timeout_seconds: Per-request timeout (default 10)
        params: Extra query parameters for the GET
    """

    TAG = "POLLER"

    def __init__(self, api_endpoint: str, refresh_rate_ms: int, sink: Callable,
                 headers: Dict = None, config: Dict = None, clock: Callable[[], float] = None):
        """
        Args:
            api_endpoint: URL polled every cycle
            refresh_rate_ms: Poll interval in milliseconds
            sink: Receives each forwarded raw event; sync or async
            headers: Request headers (API keys)
            config: Poller config dict
            clock: Returns "now" in epoch ms (tests pin it)
        """
        if refresh_rate_ms <= 0:
            raise ValueError(f"refresh_rate_ms must be positive, got {refresh_rate_ms}")
        self.config = config or {}
        self.api_endpoint = api_endpoint
        self.refresh_rate_ms = refresh_rate_ms
        self.sink = sink
        self.headers = headers or {}
        self.clock = clock or _now_ms

        self.events_key = self.config.get('events_key', 'events')
        self.timestamp_key = self.config.get('timestamp_key', 'timestamp')
        self.params = self.config.get('params')
        self.timeout = aiohttp.ClientTimeout(total=self.config.get('request_timeout_seconds', 10))

        self.watermark = int(self.clock())
        self.session: Optional[aiohttp.ClientSession] = None
        self._task: Optional[PeriodicTask] = None

        self.stats = {
            'polls': 0,
            'fetch_failures': 0,
            'events_seen': 0,
            'events_forwarded': 0,
            'malformed_events': 0,
            'sink_failures': 0,
        }

    async def _ensure_session(self):
        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession(timeout=self.timeout)

    async def close(self):
        if self.session:
            await self.session.close()
            self.session = None

    async def fetch_batch(self) -> Dict:
        """
        GET the endpoint once.

        Raises:
            SourceUnavailable: timeout, transport error, HTTP != 200 or bad JSON
        """
        await self._ensure_session()
        try:
            async with self.session.get(self.api_endpoint, headers=self.headers, params=self.params) as response:
                if response.status != 200:
                    raise SourceUnavailable(self.api_endpoint, f"HTTP {response.status}")
                return await response.json(content_type=None)
        except SourceUnavailable:
            raise
        except asyncio.TimeoutError as e:
            raise SourceUnavailable(self.api_endpoint, "request timed out", e) from e
        except (aiohttp.ClientError, ValueError) as e:
            raise SourceUnavailable(self.api_endpoint, str(e), e) from e

    async def poll_once(self) -> List[Dict]:
        """One full poll cycle. Returns the events forwarded this cycle."""
        self.stats['polls'] += 1
        try:
            data = await self.fetch_batch()
        except SourceUnavailable as e:
            self.stats['fetch_failures'] += 1
            logger.warning(f"[{self.TAG}] Poll failed, watermark unchanged: {e}")
            return []
        return await self.handle_api_response(data)

    def _event_time_ms(self, event) -> int:
        if not isinstance(event, dict):
            raise MalformedEvent(f"event is not an object: {event!r}"[:200])
        try:
            return to_epoch_ms(parse_timestamp(event.get(self.timestamp_key)))
        except ValueError as e:
            raise MalformedEvent(f"no parseable '{self.timestamp_key}' in event: {e}") from e

    async def handle_api_response(self, data) -> List[Dict]:
        """
        Forward only events strictly newer than the watermark.

        Every comparison in this batch uses the watermark as it was before
        the batch started; it is advanced once after the whole batch was
        scanned.
        """
        events = data.get(self.events_key) if isinstance(data, dict) else None
        if not isinstance(events, list):
            self.stats['malformed_events'] += 1
            logger.warning(f"[{self.TAG}] {MalformedEvent(f'response has no {self.events_key!r} list')}")
            return []

        watermark = self.watermark
        batch_max = watermark
        forwarded = []

        for event in events:
            self.stats['events_seen'] += 1
            try:
                event_time = self._event_time_ms(event)
            except MalformedEvent as e:
                self.stats['malformed_events'] += 1
                logger.warning(f"[{self.TAG}] Skipping event: {e}")
                continue

            if event_time > watermark:
                await self._forward(event)
                forwarded.append(event)

            if event_time > batch_max:
                batch_max = event_time

        if batch_max > self.watermark:
            self.watermark = batch_max

        if forwarded:
            self.stats['events_forwarded'] += len(forwarded)
            logger.info(f"[{self.TAG}] Forwarded {len(forwarded)}/{len(events)} events, watermark={self.watermark}")
        return forwarded

    async def _forward(self, event: Dict):
        """Hand one event to the sink. Failures are logged and the event counts as consumed."""
        try:
            if is_async_callable(self.sink):
                await self.sink(event)
            else:
                self.sink(event)
        except Exception as e:
            self.stats['sink_failures'] += 1
            failure = e if isinstance(e, SinkDeliveryFailed) else SinkDeliveryFailed(str(e))
            logger.error(f"[{self.TAG}] Sink delivery failed, event dropped: {failure}")

    async def run(self):
        """Poll forever; the next poll starts only after the previous one ended."""
        self._task = PeriodicTask(
            f"{self.TAG.lower()}-poll",
            self.poll_once,
            self.refresh_rate_ms / 1000,
        )
        try:
            await self._task.run()
        finally:
            await self.close()

    def stop(self):
        if self._task:
            self._task.stop()

    def get_stats(self) -> Dict:
        return {
            **self.stats,
            'endpoint': self.api_endpoint,
            'watermark': self.watermark,
        }
