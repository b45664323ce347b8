"""RSS 2.0 / Atom feed news source."""

import asyncio
import logging
import re
from datetime import datetime, timezone
from typing import Any, List, Optional, Sequence

import feedparser
import httpx
from pydantic import ValidationError

from news_aggregator.models.schemas import Article, make_article_id
from news_aggregator.sources.base import BaseNewsSource, SourceError, paginate

logger = logging.getLogger(__name__)

# How many articles a search scans before filtering
SEARCH_SCAN_LIMIT = 1000

_IMAGE_EXTENSION = re.compile(r"\.(jpg|jpeg|png|gif|webp)(\?|#|$)", re.IGNORECASE)


class RSSSource(BaseNewsSource):
    """
    Aggregate one or more RSS/Atom feeds as a single news source.

    Feeds are fetched concurrently. A feed that fails is logged and
    skipped; the call only fails when every feed fails.
    """

    def __init__(
        self,
        feed_urls: Sequence[str],
        display_name: str = "RSS Feed",
        timeout: int = 30,
    ):
        """
        Initialize the RSS source.

        Args:
            feed_urls: RSS or Atom feed URLs to read.
            display_name: Name reported as this source's identity.
            timeout: Request timeout in seconds.
        """
        super().__init__(timeout)
        self.feed_urls = list(feed_urls)
        self.display_name = display_name

    @property
    def source_name(self) -> str:
        return self.display_name

    async def fetch_articles(
        self,
        category: Optional[str] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> List[Article]:
        """
        Fetch every feed and return one page of articles, newest first.

        ``category`` is accepted for interface compatibility and ignored;
        feeds carry no standard taxonomy.
        """
        if not self.feed_urls:
            return []

        results = await asyncio.gather(
            *(self._fetch_from_feed(feed_url) for feed_url in self.feed_urls),
            return_exceptions=True,
        )

        articles: List[Article] = []
        failures = 0
        for feed_url, result in zip(self.feed_urls, results):
            if isinstance(result, Exception):
                failures += 1
                logger.warning(f"Failed to fetch feed {feed_url}: {result}")
                continue
            if isinstance(result, BaseException):
                raise result
            articles.extend(result)

        if failures == len(self.feed_urls):
            raise SourceError(f"All {failures} feeds failed for {self.display_name}")

        articles.sort(key=lambda article: article.published_at, reverse=True)
        return paginate(articles, limit, offset)

    async def search_articles(
        self,
        query: str,
        limit: int = 20,
        offset: int = 0,
    ) -> List[Article]:
        """Filter recent feed articles by title or description."""
        articles = await self.fetch_articles(limit=SEARCH_SCAN_LIMIT)
        needle = query.lower()

        matches = [
            article
            for article in articles
            if needle in article.title.lower()
            or (article.description is not None and needle in article.description.lower())
        ]
        return paginate(matches, limit, offset)

    async def get_categories(self) -> List[str]:
        """Feeds have no standard categories."""
        return []

    async def is_available(self) -> bool:
        """Check whether the first configured feed is reachable."""
        if not self.feed_urls:
            return False
        return await self._probe(self.feed_urls[0])

    async def _fetch_from_feed(self, feed_url: str) -> List[Article]:
        """
        Download and parse a single feed.

        Raises:
            SourceError: On HTTP failure or an unparseable feed.
        """
        logger.info(f"Fetching feed: {feed_url}")

        try:
            client = await self.get_client()
            response = await client.get(feed_url)
        except httpx.HTTPError as e:
            raise SourceError(f"Feed request failed for {feed_url}: {e}") from e

        if response.status_code != 200:
            raise SourceError(
                f"Failed to fetch feed (status {response.status_code}): {feed_url}"
            )

        feed = feedparser.parse(response.text)
        if feed.bozo and not feed.entries:
            raise SourceError(f"Invalid RSS/Atom feed: {feed_url}")

        feed_title = (feed.feed.get("title") or "").strip() or self.display_name
        articles = []
        for entry in feed.entries:
            article = self._parse_entry(entry, feed_title)
            if article is not None:
                articles.append(article)
        return articles

    def _parse_entry(self, entry: Any, feed_title: str) -> Optional[Article]:
        """Convert a feed entry to an Article, or None if it is unusable."""
        url = (entry.get("link") or "").strip()
        title = (entry.get("title") or "").strip()
        if not url or not title:
            logger.debug(f"Skipping feed entry without link or title in {feed_title}")
            return None

        summary = entry.get("summary")
        content = summary
        if entry.get("content"):
            content = entry.content[0].get("value") or summary

        categories = [
            tag.get("term") for tag in entry.get("tags") or [] if tag.get("term")
        ]

        try:
            return Article(
                id=make_article_id(url),
                title=title,
                description=summary,
                content=content,
                url=url,
                image_url=self._get_image_url(entry),
                published_at=self._parse_date(entry),
                source_name=feed_title,
                author=entry.get("author"),
                categories=categories,
            )
        except ValidationError as e:
            logger.debug(f"Skipping malformed feed entry {url}: {e}")
            return None

    def _parse_date(self, entry: Any) -> datetime:
        """Publication time in UTC, falling back to now."""
        for field in ("published_parsed", "updated_parsed"):
            parsed = entry.get(field)
            if parsed:
                try:
                    return datetime(*parsed[:6], tzinfo=timezone.utc)
                except (TypeError, ValueError):
                    continue
        return datetime.now(timezone.utc)

    def _get_image_url(self, entry: Any) -> Optional[str]:
        """Find a lead image in media tags or enclosures."""
        for field in ("media_content", "media_thumbnail"):
            for media in entry.get(field) or []:
                if media.get("url"):
                    return media["url"]

        for enclosure in entry.get("enclosures") or []:
            href = enclosure.get("href") or enclosure.get("url")
            if not href:
                continue
            if (enclosure.get("type") or "").startswith("image/") or _IMAGE_EXTENSION.search(href):
                return href

        return None
