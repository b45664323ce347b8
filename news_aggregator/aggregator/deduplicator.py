"""Merge duplicate reports of the same story.

Four strategies are available: exact normalized URL, exact normalized
title, fuzzy title similarity, and a combined pass (URL, then title
similarity). Every strategy merges through ``Article.merge`` so source
provenance stays a true set.
"""

import logging
from typing import Callable, Dict, Iterable, List
from urllib.parse import urlsplit

from news_aggregator.aggregator.similarity import (
    SIMILARITY_THRESHOLD,
    normalize_title,
    similarity,
)
from news_aggregator.models.schemas import Article, DeduplicationStrategy

logger = logging.getLogger(__name__)


def normalize_url(url: str) -> str:
    """
    Reduce a URL to ``scheme://host/path`` in lower case.

    Query string, fragment, port and credentials are dropped. Input
    without a host keeps only its scheme and path. Unparseable input is
    lower-cased as-is.
    """
    url = url.strip()
    try:
        parts = urlsplit(url)
        host = parts.hostname or ""
    except ValueError:
        return url.lower()

    if not parts.netloc or not host:
        if not parts.scheme:
            return parts.path.lower()
        return f"{parts.scheme}:{parts.path}".lower()

    if ":" in host:
        host = f"[{host}]"

    return f"{parts.scheme}://{host}{parts.path}".lower()


def _merge_by_key(articles: Iterable[Article], key: Callable[[Article], str]) -> List[Article]:
    """Group articles on ``key`` in first-seen order and merge each group."""
    merged: Dict[str, Article] = {}
    for article in articles:
        group_key = key(article)
        existing = merged.get(group_key)
        merged[group_key] = existing.merge(article) if existing is not None else article
    return list(merged.values())


def deduplicate_by_url(articles: Iterable[Article]) -> List[Article]:
    """Merge articles that share a normalized URL."""
    return _merge_by_key(articles, lambda article: normalize_url(article.url))


def deduplicate_by_title(articles: Iterable[Article]) -> List[Article]:
    """Merge articles whose titles match after normalization."""
    return _merge_by_key(articles, lambda article: normalize_title(article.title))


def deduplicate_by_title_similarity(
    articles: Iterable[Article],
    threshold: float = SIMILARITY_THRESHOLD,
) -> List[Article]:
    """
    Cluster articles with near-identical titles.

    Greedy and single-pass: each article is merged into the first
    representative it exceeds ``threshold`` against, otherwise it becomes
    a new representative. Results depend on input order.
    """
    representatives: List[Article] = []

    for article in articles:
        for index, existing in enumerate(representatives):
            if similarity(article.title, existing.title) > threshold:
                representatives[index] = existing.merge(article)
                break
        else:
            representatives.append(article)

    return representatives


def deduplicate_combined(articles: Iterable[Article]) -> List[Article]:
    """Merge exact URL duplicates, then near-identical titles."""
    return deduplicate_by_title_similarity(deduplicate_by_url(articles))


class Deduplicator:
    """Apply one deduplication strategy, fixed at construction."""

    _STRATEGIES: Dict[DeduplicationStrategy, Callable[[Iterable[Article]], List[Article]]] = {
        DeduplicationStrategy.URL: deduplicate_by_url,
        DeduplicationStrategy.TITLE: deduplicate_by_title,
        DeduplicationStrategy.TITLE_SIMILARITY: deduplicate_by_title_similarity,
        DeduplicationStrategy.COMBINED: deduplicate_combined,
    }

    def __init__(self, strategy: DeduplicationStrategy = DeduplicationStrategy.URL):
        """
        Initialize the deduplicator.

        Args:
            strategy: Strategy to apply, or its string value.

        Raises:
            ValueError: If the strategy is not recognized.
        """
        self.strategy = DeduplicationStrategy(strategy)
        self._apply = self._STRATEGIES[self.strategy]

    def deduplicate(self, articles: Iterable[Article]) -> List[Article]:
        """Return the merged articles, in first-seen order."""
        articles = list(articles)
        merged = self._apply(articles)
        if len(merged) != len(articles):
            logger.debug(
                f"Deduplication ({self.strategy.value}) merged "
                f"{len(articles)} articles into {len(merged)}"
            )
        return merged
