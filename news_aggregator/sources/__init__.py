"""News sources that feed the aggregator."""

from .base import HEALTH_CHECK_TIMEOUT, BaseNewsSource, NewsSource, SourceError
from .newsapi import NewsAPISource
from .rss import RSSSource

__all__ = [
    "BaseNewsSource",
    "HEALTH_CHECK_TIMEOUT",
    "NewsAPISource",
    "NewsSource",
    "RSSSource",
    "SourceError",
]
