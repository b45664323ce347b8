"""Multi-source news aggregation with story deduplication."""

from news_aggregator.aggregator.service import AggregationError, NewsAggregator
from news_aggregator.config import Settings, get_settings
from news_aggregator.models.schemas import Article, DeduplicationStrategy

__all__ = [
    "AggregationError",
    "Article",
    "DeduplicationStrategy",
    "NewsAggregator",
    "Settings",
    "get_settings",
]
