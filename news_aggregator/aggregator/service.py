"""Concurrent multi-source aggregation with deduplication.

``NewsAggregator`` fans each request out to every registered source at
once, waits for all of them, drops the contributions of sources that
failed, merges duplicate stories and serves one sorted page.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Dict, Iterable, List, Optional, Sequence

from news_aggregator.aggregator.deduplicator import Deduplicator
from news_aggregator.config import Settings, get_settings
from news_aggregator.models.schemas import Article, DeduplicationStrategy
from news_aggregator.sources.base import (
    HEALTH_CHECK_TIMEOUT,
    NewsSource,
    paginate,
)
from news_aggregator.sources.newsapi import NewsAPISource
from news_aggregator.sources.rss import RSSSource

logger = logging.getLogger(__name__)


class AggregationError(Exception):
    """Raised when the aggregator is configured incorrectly."""

    pass


class NewsAggregator:
    """
    Aggregates articles from multiple news sources.

    Every fetch or search queries all sources concurrently. A source that
    raises contributes nothing to that call; the others still count.
    Results are merged with the configured deduplication strategy, then
    sorted newest first and paginated.
    """

    def __init__(
        self,
        sources: Sequence[NewsSource],
        deduplication_strategy: DeduplicationStrategy = DeduplicationStrategy.URL,
    ):
        """
        Initialize the aggregator.

        Args:
            sources: News sources to query.
            deduplication_strategy: How duplicate stories are merged.

        Raises:
            AggregationError: If no sources are given, a source does not
                provide the source interface, or the strategy is unknown.
        """
        self.sources: List[NewsSource] = list(sources)
        if not self.sources:
            raise AggregationError("At least one news source is required")

        for source in self.sources:
            if not isinstance(source, NewsSource):
                raise AggregationError(
                    f"{type(source).__name__} does not implement the news source interface"
                )

        names = [source.source_name for source in self.sources]
        if len(set(names)) != len(names):
            logger.warning(f"Duplicate source names registered: {names}")

        try:
            self.deduplicator = Deduplicator(deduplication_strategy)
        except ValueError as e:
            raise AggregationError(f"Unknown deduplication strategy: {deduplication_strategy}") from e

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "NewsAggregator":
        """
        Build an aggregator from application settings.

        Raises:
            AggregationError: If no source is configured.
        """
        settings = settings or get_settings()
        sources: List[NewsSource] = []

        if settings.has_newsapi:
            sources.append(
                NewsAPISource(settings.newsapi_key, timeout=settings.request_timeout)
            )
        if settings.has_rss:
            sources.append(
                RSSSource(
                    settings.rss_feed_urls,
                    display_name=settings.rss_display_name,
                    timeout=settings.request_timeout,
                )
            )

        if not sources:
            raise AggregationError(
                "No news sources configured. Set NEWSAPI_KEY or RSS_FEED_URLS."
            )

        return cls(sources, deduplication_strategy=settings.deduplication_strategy)

    @property
    def deduplication_strategy(self) -> DeduplicationStrategy:
        return self.deduplicator.strategy

    async def close(self) -> None:
        """Close HTTP clients held by the sources."""
        closers = [
            source.close() for source in self.sources if callable(getattr(source, "close", None))
        ]
        if closers:
            await asyncio.gather(*closers)

    async def fetch_articles(
        self,
        category: Optional[str] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> List[Article]:
        """
        Fetch from all sources, deduplicate, and return one page.

        Args:
            category: Optional category passed through to every source.
            limit: Page size.
            offset: Number of merged articles to skip.

        Returns:
            Merged articles, newest first. Empty when ``offset`` is past
            the end.
        """
        # Each source must supply enough to fill the requested page
        window = max(offset, 0) + max(limit, 0)
        articles = await self._gather_articles(
            "fetch",
            lambda source: source.fetch_articles(category=category, limit=window, offset=0),
        )
        return self._merge_and_page(articles, limit, offset)

    async def search_articles(
        self,
        query: str,
        limit: int = 20,
        offset: int = 0,
    ) -> List[Article]:
        """Search all sources, deduplicate, and return one page."""
        if not query or not query.strip():
            logger.warning("Empty search query, returning no results")
            return []

        window = max(offset, 0) + max(limit, 0)
        articles = await self._gather_articles(
            "search",
            lambda source: source.search_articles(query=query, limit=window, offset=0),
        )
        return self._merge_and_page(articles, limit, offset)

    async def get_categories(self) -> List[str]:
        """Union of every source's categories, sorted."""
        results = await asyncio.gather(
            *(source.get_categories() for source in self.sources),
            return_exceptions=True,
        )

        categories = set()
        for source, result in zip(self.sources, results):
            if isinstance(result, Exception):
                logger.error(f"Error getting categories from {source.source_name}: {result}")
                continue
            if isinstance(result, BaseException):
                raise result
            categories.update(result)

        return sorted(categories)

    async def check_sources_health(self) -> Dict[str, bool]:
        """Probe every source concurrently; any failure reads as unavailable."""

        async def probe(source: NewsSource) -> bool:
            try:
                return bool(
                    await asyncio.wait_for(source.is_available(), timeout=HEALTH_CHECK_TIMEOUT)
                )
            except Exception as e:
                logger.warning(f"Health check failed for {source.source_name}: {e!r}")
                return False

        statuses = await asyncio.gather(*(probe(source) for source in self.sources))
        return {source.source_name: status for source, status in zip(self.sources, statuses)}

    @staticmethod
    def get_most_repeated(articles: Iterable[Article], min_sources: int = 2) -> List[Article]:
        """Articles reported by at least ``min_sources`` sources, most reported first."""
        repeated = [article for article in articles if article.source_count >= min_sources]
        repeated.sort(key=lambda article: article.source_count, reverse=True)
        return repeated

    @staticmethod
    def get_unique_articles(articles: Iterable[Article]) -> List[Article]:
        """Articles reported by exactly one source."""
        return [article for article in articles if article.source_count == 1]

    @staticmethod
    def get_articles_by_source_count(
        articles: Iterable[Article],
        min_sources: int = 1,
        max_sources: Optional[int] = None,
    ) -> List[Article]:
        """Articles whose source count lies in ``[min_sources, max_sources]``."""
        return [
            article
            for article in articles
            if article.source_count >= min_sources
            and (max_sources is None or article.source_count <= max_sources)
        ]

    @staticmethod
    def get_articles_from_source(articles: Iterable[Article], source_name: str) -> List[Article]:
        """Articles that ``source_name`` helped report."""
        return [article for article in articles if source_name in article.source_names]

    async def _gather_articles(
        self,
        operation: str,
        call: Callable[[NewsSource], Awaitable[List[Article]]],
    ) -> List[Article]:
        """Run ``call`` against every source at once and flatten the successes."""
        results = await asyncio.gather(
            *(call(source) for source in self.sources),
            return_exceptions=True,
        )

        articles: List[Article] = []
        failed = 0
        for source, result in zip(self.sources, results):
            if isinstance(result, Exception):
                failed += 1
                logger.error(f"Error during {operation} from {source.source_name}: {result}")
                continue
            if isinstance(result, BaseException):
                raise result
            articles.extend(result)

        logger.info(
            f"Collected {len(articles)} articles from "
            f"{len(self.sources) - failed}/{len(self.sources)} sources ({operation})"
        )
        return articles

    def _merge_and_page(self, articles: List[Article], limit: int, offset: int) -> List[Article]:
        merged = self.deduplicator.deduplicate(articles)
        # Stable sort: equal timestamps keep merge order
        merged.sort(key=lambda article: article.published_at, reverse=True)
        logger.info(f"Deduplicated {len(articles)} articles into {len(merged)}")
        return paginate(merged, limit, offset)
