"""Pydantic models for structured data."""

from .schemas import Article, DeduplicationStrategy, make_article_id

__all__ = [
    "Article",
    "DeduplicationStrategy",
    "make_article_id",
]
