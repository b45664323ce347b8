"""NewsAPI.org news source."""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

import httpx
from pydantic import ValidationError

from news_aggregator.models.schemas import Article, make_article_id
from news_aggregator.sources.base import BaseNewsSource, SourceError

logger = logging.getLogger(__name__)

NEWSAPI_BASE_URL = "https://newsapi.org/v2"

# NewsAPI rejects page sizes above this
MAX_PAGE_SIZE = 100

# Placeholder NewsAPI returns for articles pulled by the publisher
REMOVED_MARKER = "[Removed]"


class NewsAPISource(BaseNewsSource):
    """
    Fetch articles from NewsAPI.org.

    Category requests go to ``/top-headlines``; everything else, including
    search, goes to ``/everything``. NewsAPI only provides descriptions and
    truncated content, not full article bodies.
    """

    source_name = "NewsAPI.org"

    CATEGORIES = [
        "business",
        "entertainment",
        "general",
        "health",
        "science",
        "sports",
        "technology",
    ]

    def __init__(self, api_key: Optional[str], timeout: int = 30, base_url: str = NEWSAPI_BASE_URL):
        """
        Initialize the NewsAPI source.

        Args:
            api_key: NewsAPI API key.
            timeout: Request timeout in seconds.
            base_url: API root, overridable for testing.
        """
        super().__init__(timeout)
        if not api_key:
            raise ValueError("NewsAPISource requires an API key")
        self._api_key = api_key
        self.base_url = base_url.rstrip("/")

    async def fetch_articles(
        self,
        category: Optional[str] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> List[Article]:
        """Fetch top headlines for a category, or the latest news overall."""
        page_size, page = self._page_params(limit, offset)
        params: Dict[str, Any] = {"pageSize": page_size, "page": page}

        if category:
            endpoint = "top-headlines"
            params["category"] = category
        else:
            # /everything requires a query
            endpoint = "everything"
            params["q"] = "news"

        return await self._get_articles(endpoint, params)

    async def search_articles(
        self,
        query: str,
        limit: int = 20,
        offset: int = 0,
    ) -> List[Article]:
        """Search all NewsAPI articles, newest first."""
        page_size, page = self._page_params(limit, offset)
        params = {
            "q": query,
            "pageSize": page_size,
            "page": page,
            "sortBy": "publishedAt",
        }
        return await self._get_articles("everything", params)

    async def get_categories(self) -> List[str]:
        """Categories accepted by the top-headlines endpoint."""
        return list(self.CATEGORIES)

    async def is_available(self) -> bool:
        """Check that the API answers a minimal headline request."""
        return await self._probe(
            f"{self.base_url}/top-headlines",
            params={"apiKey": self._api_key, "pageSize": 1, "category": "general"},
        )

    def _page_params(self, limit: int, offset: int) -> Tuple[int, int]:
        page_size = max(1, min(limit, MAX_PAGE_SIZE))
        page = max(offset, 0) // page_size + 1
        return page_size, page

    async def _get_articles(self, endpoint: str, params: Dict[str, Any]) -> List[Article]:
        """Call an endpoint and parse its ``articles`` array."""
        url = f"{self.base_url}/{endpoint}"
        logger.debug(f"Requesting NewsAPI {endpoint} with {params}")

        try:
            client = await self.get_client()
            response = await client.get(url, params={**params, "apiKey": self._api_key})
        except httpx.HTTPError as e:
            raise SourceError(f"NewsAPI request failed: {e}") from e

        if response.status_code != 200:
            raise SourceError(
                f"NewsAPI returned status {response.status_code} for {endpoint}"
            )

        try:
            data = response.json()
        except ValueError as e:
            raise SourceError(f"NewsAPI returned invalid JSON: {e}") from e

        if data.get("status") == "error":
            raise SourceError(
                f"NewsAPI error {data.get('code', 'unknown')}: {data.get('message', '')}"
            )

        articles = []
        for raw in data.get("articles") or []:
            article = self._parse_article(raw)
            if article is not None:
                articles.append(article)

        logger.info(f"NewsAPI {endpoint} returned {len(articles)} articles")
        return articles

    def _parse_article(self, raw: Dict[str, Any]) -> Optional[Article]:
        """
        Convert a NewsAPI article object to an Article.

        Returns None for items missing url, title or publishedAt, items
        with an unparseable date, and removed-article placeholders.
        """
        if not isinstance(raw, dict):
            return None

        url = (raw.get("url") or "").strip()
        title = (raw.get("title") or "").strip()
        published = raw.get("publishedAt")

        if not url or not title or not published:
            logger.debug(f"Skipping NewsAPI item with missing fields: {url or title}")
            return None
        if title == REMOVED_MARKER:
            return None

        try:
            published_at = datetime.fromisoformat(published.replace("Z", "+00:00"))
        except (AttributeError, ValueError):
            logger.debug(f"Skipping NewsAPI item with bad date {published!r}: {url}")
            return None

        source = raw.get("source") or {}
        source_name = source.get("name") if isinstance(source, dict) else None

        try:
            return Article(
                id=make_article_id(url),
                title=title,
                description=raw.get("description"),
                content=raw.get("content"),
                url=url,
                image_url=raw.get("urlToImage"),
                published_at=published_at,
                source_name=source_name or self.source_name,
                author=raw.get("author"),
            )
        except ValidationError as e:
            logger.debug(f"Skipping malformed NewsAPI item {url}: {e}")
            return None
