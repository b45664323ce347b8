"""News aggregation and deduplication module.

This module fans requests out to news sources and merges duplicate
stories by URL, title, or title similarity.
"""

from news_aggregator.aggregator.deduplicator import Deduplicator, normalize_url
from news_aggregator.aggregator.service import AggregationError, NewsAggregator
from news_aggregator.aggregator.similarity import (
    SIMILARITY_THRESHOLD,
    levenshtein_distance,
    normalize_title,
    similarity,
)

__all__ = [
    "AggregationError",
    "Deduplicator",
    "NewsAggregator",
    "SIMILARITY_THRESHOLD",
    "levenshtein_distance",
    "normalize_title",
    "normalize_url",
    "similarity",
]
