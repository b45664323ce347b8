"""News source contract and shared HTTP plumbing."""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

import httpx

from news_aggregator.models.schemas import Article

logger = logging.getLogger(__name__)

# Upper bound, in seconds, on a single availability probe.
HEALTH_CHECK_TIMEOUT = 5.0


class SourceError(Exception):
    """Raised when a news source cannot complete a request."""

    pass


@runtime_checkable
class NewsSource(Protocol):
    """Capabilities every news source must provide to the aggregator."""

    source_name: str

    async def fetch_articles(
        self,
        category: Optional[str] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> List[Article]:
        """Fetch the latest articles, optionally restricted to a category."""
        ...

    async def search_articles(
        self,
        query: str,
        limit: int = 20,
        offset: int = 0,
    ) -> List[Article]:
        """Search for articles matching ``query``."""
        ...

    async def get_categories(self) -> List[str]:
        """List the categories this source supports (may be empty)."""
        ...

    async def is_available(self) -> bool:
        """Report whether the source is reachable. Never raises."""
        ...


class BaseNewsSource(ABC):
    """Abstract base class for HTTP-backed news sources."""

    source_name: str = "base"

    def __init__(self, timeout: int = 30):
        """Initialize the source with a request timeout."""
        self.timeout = timeout
        self._client: Optional[httpx.AsyncClient] = None

    async def get_client(self) -> httpx.AsyncClient:
        """Get or create an HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                follow_redirects=True,
                headers={
                    "User-Agent": "news-aggregator/1.0",
                    "Accept": "application/json, application/rss+xml, application/atom+xml, "
                    "application/xml;q=0.9, */*;q=0.8",
                },
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    @abstractmethod
    async def fetch_articles(
        self,
        category: Optional[str] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> List[Article]:
        """
        Fetch the latest articles from this source.

        Args:
            category: Optional category filter (e.g. "technology").
            limit: Maximum number of articles to return.
            offset: Number of articles to skip.

        Returns:
            Articles parsed from the provider response.

        Raises:
            SourceError: If the request fails as a whole.
        """
        pass

    @abstractmethod
    async def search_articles(
        self,
        query: str,
        limit: int = 20,
        offset: int = 0,
    ) -> List[Article]:
        """
        Search this source for articles matching a query.

        Raises:
            SourceError: If the request fails as a whole.
        """
        pass

    @abstractmethod
    async def get_categories(self) -> List[str]:
        """Return the categories this source supports."""
        pass

    @abstractmethod
    async def is_available(self) -> bool:
        """Check whether the source is currently reachable."""
        pass

    async def _probe(self, url: str, params: Optional[Dict[str, Any]] = None) -> bool:
        """GET ``url`` within the health-check budget; True only on HTTP 200."""
        try:
            client = await self.get_client()
            response = await asyncio.wait_for(
                client.get(url, params=params),
                timeout=HEALTH_CHECK_TIMEOUT,
            )
            return response.status_code == 200
        except Exception as e:
            logger.debug(f"Availability probe failed for {self.source_name}: {e}")
            return False


def paginate(items: List[Any], limit: int, offset: int) -> List[Any]:
    """Slice ``items`` to ``[offset, offset + limit)``, clamped to its length."""
    if limit <= 0:
        return []
    offset = max(offset, 0)
    return items[offset:offset + limit]
