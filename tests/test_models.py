"""Tests for the Article model."""

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from news_aggregator.models.schemas import Article, make_article_id


PUBLISHED = datetime(2025, 12, 12, 10, 0, tzinfo=timezone.utc)


def make_article(**overrides):
    """Build an article with sensible defaults."""
    data = {
        "id": "example.com-1",
        "title": "Flutter 3.0 Released",
        "url": "https://example.com/flutter",
        "published_at": PUBLISHED,
        "source_name": "A",
    }
    data.update(overrides)
    return Article(**data)


class TestArticleConstruction:
    """Tests for building articles."""

    def test_defaults(self):
        """Optional fields default to empty and provenance to the producing source."""
        article = make_article()
        assert article.description is None
        assert article.content is None
        assert article.image_url is None
        assert article.author is None
        assert article.categories == []
        assert article.source_names == ["A"]
        assert article.source_count == 1

    def test_duplicate_source_names_collapse(self):
        """Source names behave like a set, keeping first-seen order."""
        article = make_article(source_names=["B", "A", "B", "A"])
        assert article.source_names == ["B", "A"]
        assert article.source_count == 2

    @pytest.mark.parametrize("field", ["title", "url", "id", "source_name"])
    def test_required_fields_must_be_non_empty(self, field):
        """Empty required strings are rejected."""
        with pytest.raises(ValidationError):
            make_article(**{field: ""})

    def test_naive_datetime_is_treated_as_utc(self):
        """Naive timestamps are assumed to be UTC."""
        article = make_article(published_at=datetime(2025, 1, 1, 12, 0))
        assert article.published_at == datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)

    def test_aware_datetime_is_converted_to_utc(self):
        """Offsets are normalized so mixed providers compare correctly."""
        plus_two = timezone(timedelta(hours=2))
        article = make_article(published_at=datetime(2025, 1, 1, 14, 0, tzinfo=plus_two))
        assert article.published_at.tzinfo == timezone.utc
        assert article.published_at.hour == 12

    def test_article_is_immutable(self):
        """Articles are frozen value objects."""
        article = make_article()
        with pytest.raises(ValidationError):
            article.title = "Changed"


class TestArticleIdentity:
    """Tests for id-based equality."""

    def test_equal_ids_are_equal(self):
        """Equality ignores everything except id."""
        a = make_article(title="One", source_name="A")
        b = make_article(title="Two", source_name="B")
        assert a == b
        assert hash(a) == hash(b)
        assert len({a, b}) == 1

    def test_different_ids_are_not_equal(self):
        """Same content under different ids is two entities."""
        a = make_article(id="x-1")
        b = make_article(id="x-2")
        assert a != b

    def test_not_equal_to_other_types(self):
        """Comparing to a non-article is not equality."""
        assert make_article() != "example.com-1"

    def test_make_article_id_is_stable(self):
        """The same URL always yields the same id."""
        url = "https://www.example.com/news/story?id=7"
        assert make_article_id(url) == make_article_id(url)
        assert make_article_id(url).startswith("www.example.com-")

    def test_make_article_id_differs_by_url(self):
        """Different URLs, including query strings, get different ids."""
        assert make_article_id("https://x.com/a?x=1") != make_article_id("https://x.com/a?y=2")

    def test_make_article_id_without_host(self):
        """URLs without a host still get a digest id."""
        article_id = make_article_id("not a url")
        assert article_id
        assert "-" not in article_id


class TestArticleMerge:
    """Tests for merging provenance."""

    def test_merge_unions_sources(self):
        """Merging adds the other article's sources."""
        a = make_article(source_name="A")
        b = make_article(id="other", title="Other title", source_name="B")
        merged = a.merge(b)
        assert merged.source_names == ["A", "B"]
        assert merged.source_count == 2

    def test_merge_keeps_display_fields(self):
        """The accumulator's title, url and id survive the merge."""
        a = make_article(source_name="A")
        b = make_article(id="other", title="Other", url="https://other.com/x", source_name="B")
        merged = a.merge(b)
        assert merged.id == a.id
        assert merged.title == a.title
        assert merged.url == a.url
        assert merged.source_name == "A"

    def test_merge_does_not_mutate(self):
        """Both inputs are left untouched."""
        a = make_article(source_name="A")
        b = make_article(id="other", source_name="B")
        a.merge(b)
        assert a.source_names == ["A"]
        assert b.source_names == ["B"]

    def test_remerging_same_source_does_not_inflate(self):
        """Repeated merges of one source keep the count at the set size."""
        a = make_article(source_name="A")
        again = make_article(id="dup", source_name="A")
        b = make_article(id="b", source_name="B")

        merged = a.merge(again).merge(b).merge(again).merge(b)
        assert merged.source_names == ["A", "B"]
        assert merged.source_count == 2

    def test_provenance_stays_distinct_over_many_merges(self):
        """source_count always equals the number of distinct names."""
        merged = make_article(source_name="S0")
        for i in range(20):
            other = make_article(id=f"id-{i}", source_name=f"S{i % 7}")
            merged = merged.merge(other)
            assert merged.source_count == len(merged.source_names)
            assert len(set(merged.source_names)) == len(merged.source_names)
        assert merged.source_count == 7


class TestArticleJson:
    """Tests for the JSON representation."""

    def test_to_json_dict_uses_camel_case(self):
        """Wire keys are camelCase and the timestamp is ISO-8601."""
        article = make_article(image_url="https://example.com/a.jpg", categories=["tech"])
        data = article.to_json_dict()
        assert set(data) == {
            "id", "title", "description", "content", "url", "imageUrl",
            "publishedAt", "sourceName", "author", "categories",
            "sourceCount", "sourceNames",
        }
        assert data["imageUrl"] == "https://example.com/a.jpg"
        assert data["sourceCount"] == 1
        assert data["sourceNames"] == ["A"]
        assert datetime.fromisoformat(data["publishedAt"].replace("Z", "+00:00")) == PUBLISHED

    def test_round_trip(self):
        """Encoding then decoding reproduces the same article."""
        original = make_article(
            description="desc",
            content="body",
            image_url="https://example.com/a.jpg",
            author="Reporter",
            categories=["tech", "mobile"],
            source_names=["A", "B"],
        )
        decoded = Article.from_json_dict(original.to_json_dict())
        assert decoded == original
        assert decoded.model_dump() == original.model_dump()

    def test_decode_defaults_provenance(self):
        """Missing sourceNames/sourceCount default to the single source."""
        decoded = Article.from_json_dict({
            "id": "x-1",
            "title": "Title",
            "url": "https://x.com/1",
            "publishedAt": "2025-12-12T10:00:00Z",
            "sourceName": "Feed",
        })
        assert decoded.source_names == ["Feed"]
        assert decoded.source_count == 1
        assert decoded.categories == []
        assert decoded.description is None

    def test_decode_ignores_inconsistent_source_count(self):
        """sourceCount is always derived from sourceNames."""
        decoded = Article.from_json_dict({
            "id": "x-1",
            "title": "Title",
            "url": "https://x.com/1",
            "publishedAt": "2025-12-12T10:00:00Z",
            "sourceName": "A",
            "sourceCount": 5,
            "sourceNames": ["A", "B"],
        })
        assert decoded.source_count == 2

    def test_decode_null_lists(self):
        """Explicit nulls for list fields decode to defaults."""
        decoded = Article.from_json_dict({
            "id": "x-1",
            "title": "Title",
            "url": "https://x.com/1",
            "publishedAt": "2025-12-12T10:00:00Z",
            "sourceName": "A",
            "categories": None,
            "sourceNames": None,
        })
        assert decoded.categories == []
        assert decoded.source_names == ["A"]

    def test_decode_missing_required_field_fails(self):
        """A record without a title cannot be decoded."""
        with pytest.raises(ValidationError):
            Article.from_json_dict({
                "id": "x-1",
                "url": "https://x.com/1",
                "publishedAt": "2025-12-12T10:00:00Z",
                "sourceName": "A",
            })
