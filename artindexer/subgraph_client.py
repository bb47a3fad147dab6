"""
GRAPHQL CLIENT

Minimal aiohttp GraphQL transport used for both the Art Blocks subgraph and
the Hasura metadata endpoint. Every failure surfaces as GraphQLError so the
paginator can classify it as an unavailable source.
"""

import asyncio
import logging
from datetime import datetime
from typing import Dict, Optional

import aiohttp

from .errors import GraphQLError

logger = logging.getLogger(__name__)


class GraphQLClient:
    """
    Async GraphQL-over-HTTP client.

    Usage:
        client = GraphQLClient(SUBGRAPH_API_URL)
        data = await client.query(CONTRACT_PROJECTS, {'id': contract, 'first': 1000, 'skip': 0})
        await client.close()
    """

    def __init__(self, url: str, headers: Dict = None, timeout_seconds: float = 30, name: str = None):
        """
        Args:
            url: GraphQL endpoint
            headers: Extra request headers (auth secrets, etc.)
            timeout_seconds: Total timeout per request
            name: Short tag used in errors and logs
        """
        self.url = url
        self.headers = {'Content-Type': 'application/json', **(headers or {})}
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self.name = name or 'graphql'
        self.session: Optional[aiohttp.ClientSession] = None

        self.request_count = 0
        self.error_count = 0
        self.last_request_time: Optional[datetime] = None

    async def _ensure_session(self):
        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession(timeout=self.timeout)

    async def close(self):
        if self.session:
            await self.session.close()
            self.session = None

    async def query(self, document: str, variables: Dict = None) -> Dict:
        """
        Execute a query and return its `data` object.

        Raises:
            GraphQLError: HTTP error, timeout, non-JSON body or GraphQL errors
        """
        await self._ensure_session()
        payload = {'query': document, 'variables': variables or {}}

        self.request_count += 1
        self.last_request_time = datetime.now()
        try:
            async with self.session.post(self.url, json=payload, headers=self.headers) as response:
                if response.status != 200:
                    text = await response.text()
                    raise GraphQLError(self.name, f"HTTP {response.status}: {text[:200]}")
                body = await response.json(content_type=None)
        except GraphQLError:
            self.error_count += 1
            raise
        except asyncio.TimeoutError as e:
            self.error_count += 1
            raise GraphQLError(self.name, "request timed out", e) from e
        except (aiohttp.ClientError, ValueError) as e:
            self.error_count += 1
            raise GraphQLError(self.name, f"request error: {e}", e) from e

        if not isinstance(body, dict):
            self.error_count += 1
            raise GraphQLError(self.name, f"unexpected response body: {body!r}"[:200])
        if body.get('errors'):
            self.error_count += 1
            raise GraphQLError(self.name, f"query errors: {body['errors']}"[:300])
        data = body.get('data')
        if not isinstance(data, dict):
            self.error_count += 1
            raise GraphQLError(self.name, "response has no data")
        return data

    def get_stats(self) -> Dict:
        return {
            'name': self.name,
            'request_count': self.request_count,
            'error_count': self.error_count,
            'last_request': self.last_request_time.isoformat() if self.last_request_time else None,
        }
