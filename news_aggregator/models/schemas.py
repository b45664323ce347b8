"""Pydantic models for the canonical article record."""

import hashlib
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional
from urllib.parse import urlsplit

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationInfo,
    computed_field,
    field_validator,
)
from pydantic.alias_generators import to_camel


class DeduplicationStrategy(str, Enum):
    """Policies for collapsing duplicate reports of the same story."""

    URL = "url"
    TITLE = "title"
    TITLE_SIMILARITY = "title_similarity"
    COMBINED = "combined"


def make_article_id(url: str) -> str:
    """
    Derive a stable article id from its URL.

    The id is the URL host followed by a digest of the full URL, so the
    same story fetched twice from the same source keeps its id across
    processes.
    """
    try:
        host = urlsplit(url).hostname or ""
    except ValueError:
        host = ""
    digest = hashlib.sha1(url.encode("utf-8")).hexdigest()[:16]
    return f"{host}-{digest}" if host else digest


class Article(BaseModel):
    """A news article reported by one or more sources."""

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )

    id: str = Field(min_length=1, description="Stable identifier derived from the URL")
    title: str = Field(min_length=1, description="Headline")
    description: Optional[str] = Field(default=None, description="Short summary")
    content: Optional[str] = Field(default=None, description="Body text, possibly truncated")
    url: str = Field(min_length=1, description="Canonical article URL")
    image_url: Optional[str] = Field(default=None, description="Lead image URL")
    published_at: datetime = Field(description="Publication time (UTC)")
    source_name: str = Field(min_length=1, description="Source that produced this instance")
    author: Optional[str] = Field(default=None, description="Byline")
    categories: List[str] = Field(default_factory=list, description="Provider categories")
    source_names: List[str] = Field(
        default_factory=list,
        validate_default=True,
        description="Distinct sources that reported this story",
    )

    @field_validator("published_at")
    @classmethod
    def _ensure_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    @field_validator("categories", mode="before")
    @classmethod
    def _none_categories(cls, value: Any) -> Any:
        return [] if value is None else value

    @field_validator("source_names", mode="before")
    @classmethod
    def _none_source_names(cls, value: Any) -> Any:
        return [] if value is None else value

    @field_validator("source_names")
    @classmethod
    def _unique_source_names(cls, value: List[str], info: ValidationInfo) -> List[str]:
        if not value:
            source_name = info.data.get("source_name")
            value = [source_name] if source_name else []
        # Set semantics, first-seen order
        return list(dict.fromkeys(value))

    @computed_field  # type: ignore[prop-decorator]
    @property
    def source_count(self) -> int:
        """Number of distinct sources that reported this story."""
        return len(self.source_names)

    def merge(self, other: "Article") -> "Article":
        """
        Fold another report of the same story into this one.

        Display fields are kept from ``self``; provenance becomes the set
        union of both ``source_names``. Neither article is modified.
        """
        merged = list(dict.fromkeys([*self.source_names, *other.source_names]))
        if merged == self.source_names:
            return self
        return self.model_copy(update={"source_names": merged})

    def to_json_dict(self) -> Dict[str, Any]:
        """Serialize to the camelCase JSON representation."""
        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def from_json_dict(cls, data: Dict[str, Any]) -> "Article":
        """Build an article from its JSON representation."""
        # sourceCount is derived from sourceNames
        payload = {key: value for key, value in data.items() if key != "sourceCount"}
        return cls.model_validate(payload)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Article):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    def __repr__(self) -> str:
        return f"Article(id={self.id!r}, title={self.title!r}, source_name={self.source_name!r})"
