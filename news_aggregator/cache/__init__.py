"""Local cache module for aggregated article snapshots."""

from news_aggregator.cache.cache import ArticleCache, Snapshot

__all__ = ["ArticleCache", "Snapshot"]
