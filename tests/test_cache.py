"""Tests for the article snapshot cache.

This test suite covers:
- Cache initialization and directory creation
- Saving, loading, listing and deleting snapshots
- FIFO eviction past the snapshot limit
- Edge cases: missing snapshots, corrupted files, invalid cached articles
"""

import json
import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from news_aggregator.cache.cache import (
    CACHE_FILENAME,
    CURRENT_SCHEMA_VERSION,
    ArticleCache,
)
from news_aggregator.models.schemas import Article, DeduplicationStrategy, make_article_id


# =============================================================================
# Test Fixtures
# =============================================================================


@pytest.fixture
def temp_cache_dir():
    """Create a temporary directory for cache testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir) / "cache"


@pytest.fixture
def cache(temp_cache_dir):
    return ArticleCache(cache_dir=temp_cache_dir, max_snapshots=3)


@pytest.fixture
def sample_articles():
    """Two articles, one of them merged from two sources."""
    base_time = datetime(2025, 12, 12, 12, 0, tzinfo=timezone.utc)
    first = Article(
        id=make_article_id("https://example.com/one"),
        title="First story",
        url="https://example.com/one",
        published_at=base_time,
        source_name="Source A",
        categories=["technology"],
    ).merge(
        Article(
            id=make_article_id("https://example.com/one"),
            title="First story",
            url="https://example.com/one",
            published_at=base_time,
            source_name="Source B",
        )
    )
    second = Article(
        id=make_article_id("https://example.com/two"),
        title="Second story",
        description="Details",
        url="https://example.com/two",
        published_at=base_time - timedelta(hours=1),
        source_name="Source B",
    )
    return [first, second]


# =============================================================================
# Initialization
# =============================================================================


class TestCacheInit:
    """Tests for cache construction."""

    def test_creates_directory(self, temp_cache_dir):
        """The cache directory is created on demand."""
        assert not temp_cache_dir.exists()
        ArticleCache(cache_dir=temp_cache_dir)
        assert temp_cache_dir.is_dir()

    def test_empty_cache(self, cache):
        """A fresh cache has no snapshots."""
        assert cache.list_snapshots() == []
        assert cache.load_snapshot("latest") is None


# =============================================================================
# Save / Load
# =============================================================================


class TestSaveAndLoad:
    """Tests for snapshot round trips."""

    def test_save_and_load(self, cache, sample_articles):
        """Saved articles come back equal, provenance included."""
        assert cache.save_snapshot("latest", sample_articles, DeduplicationStrategy.URL) is True

        loaded = cache.load_snapshot("latest")

        assert loaded == sample_articles
        assert loaded[0].source_names == ["Source A", "Source B"]
        assert loaded[0].source_count == 2
        assert loaded[0].categories == ["technology"]
        assert loaded[1].description == "Details"

    def test_snapshot_metadata(self, cache, sample_articles):
        """Snapshots record their strategy and article count."""
        cache.save_snapshot("latest", sample_articles, DeduplicationStrategy.COMBINED)

        snapshot = cache.get_snapshot("latest")

        assert snapshot.strategy == DeduplicationStrategy.COMBINED
        assert snapshot.article_count == 2
        assert snapshot.timestamp.tzinfo is not None

    def test_file_uses_camel_case(self, cache, temp_cache_dir, sample_articles):
        """Articles are stored in their JSON representation."""
        cache.save_snapshot("latest", sample_articles)

        data = json.loads((temp_cache_dir / CACHE_FILENAME).read_text())

        assert data["version"] == CURRENT_SCHEMA_VERSION
        stored = data["snapshots"][0]["articles"][0]
        assert stored["sourceName"] == "Source A"
        assert stored["sourceNames"] == ["Source A", "Source B"]
        assert stored["sourceCount"] == 2

    def test_same_name_replaces(self, cache, sample_articles):
        """Saving under an existing name replaces that snapshot."""
        cache.save_snapshot("latest", sample_articles)
        cache.save_snapshot("latest", sample_articles[:1])

        assert len(cache.list_snapshots()) == 1
        assert len(cache.load_snapshot("latest")) == 1

    def test_empty_snapshot(self, cache):
        """An empty result is still a snapshot."""
        cache.save_snapshot("nothing", [])
        assert cache.load_snapshot("nothing") == []

    def test_persists_across_instances(self, temp_cache_dir, sample_articles):
        """A second cache over the same directory sees saved snapshots."""
        ArticleCache(cache_dir=temp_cache_dir).save_snapshot("latest", sample_articles)
        assert ArticleCache(cache_dir=temp_cache_dir).load_snapshot("latest") == sample_articles


# =============================================================================
# Eviction / Deletion
# =============================================================================


class TestEvictionAndDeletion:
    """Tests for FIFO eviction, delete and clear."""

    def test_fifo_eviction(self, cache, sample_articles):
        """The oldest snapshots are dropped past the limit."""
        for name in ["one", "two", "three", "four"]:
            cache.save_snapshot(name, sample_articles)

        names = [s.name for s in cache.list_snapshots()]

        assert len(names) == 3
        assert "one" not in names
        assert names[0] == "four"

    def test_resave_refreshes_position(self, cache, sample_articles):
        """Re-saving a name makes it the newest."""
        for name in ["one", "two", "three"]:
            cache.save_snapshot(name, sample_articles)
        cache.save_snapshot("one", sample_articles)
        cache.save_snapshot("four", sample_articles)

        names = {s.name for s in cache.list_snapshots()}

        assert names == {"one", "three", "four"}

    def test_delete(self, cache, sample_articles):
        """Deleting removes only the named snapshot."""
        cache.save_snapshot("keep", sample_articles)
        cache.save_snapshot("drop", sample_articles)

        assert cache.delete_snapshot("drop") is True
        assert cache.load_snapshot("drop") is None
        assert cache.load_snapshot("keep") is not None

    def test_delete_missing(self, cache):
        """Deleting an unknown snapshot reports False."""
        assert cache.delete_snapshot("ghost") is False

    def test_clear(self, cache, sample_articles):
        """Clearing removes every snapshot."""
        cache.save_snapshot("one", sample_articles)
        cache.save_snapshot("two", sample_articles)

        assert cache.clear() is True
        assert cache.list_snapshots() == []


# =============================================================================
# Corruption Handling
# =============================================================================


class TestCorruption:
    """Tests for damaged cache files."""

    def test_corrupt_file_backed_up(self, cache, temp_cache_dir):
        """Invalid JSON is moved aside and the cache starts empty."""
        cache_file = temp_cache_dir / CACHE_FILENAME
        cache_file.write_text("{not valid json")

        assert cache.list_snapshots() == []
        assert (temp_cache_dir / f"{CACHE_FILENAME}.corrupt").exists()

    def test_unexpected_structure_backed_up(self, cache, temp_cache_dir):
        """A JSON file that isn't an object is treated as corrupt."""
        (temp_cache_dir / CACHE_FILENAME).write_text("[1, 2, 3]")

        assert cache.list_snapshots() == []
        assert (temp_cache_dir / f"{CACHE_FILENAME}.corrupt").exists()

    @pytest.mark.parametrize(
        "payload",
        [
            {"version": "1", "snapshots": 5},
            {"version": 1, "snapshots": {"latest": []}},
            {"version": None, "snapshots": []},
            {"version": 1, "snapshots": None},
        ],
    )
    def test_wrong_field_types_backed_up(self, cache, temp_cache_dir, payload):
        """Valid JSON with mistyped top-level fields is treated as corrupt."""
        (temp_cache_dir / CACHE_FILENAME).write_text(json.dumps(payload))

        assert cache.list_snapshots() == []
        assert cache.load_snapshot("latest") is None
        assert (temp_cache_dir / f"{CACHE_FILENAME}.corrupt").exists()

    def test_save_after_corruption(self, cache, temp_cache_dir, sample_articles):
        """A corrupt cache can be written over."""
        (temp_cache_dir / CACHE_FILENAME).write_text("garbage")

        assert cache.save_snapshot("latest", sample_articles) is True
        assert cache.load_snapshot("latest") == sample_articles

    def test_invalid_snapshot_skipped(self, cache, temp_cache_dir, sample_articles):
        """A snapshot that fails validation is dropped, the rest survive."""
        cache.save_snapshot("good", sample_articles)
        cache_file = temp_cache_dir / CACHE_FILENAME
        data = json.loads(cache_file.read_text())
        data["snapshots"].append({"name": "bad", "timestamp": "not a date"})
        cache_file.write_text(json.dumps(data))

        assert [s.name for s in cache.list_snapshots()] == ["good"]

    def test_invalid_article_skipped(self, cache, temp_cache_dir, sample_articles):
        """A cached article that fails validation is dropped on load."""
        cache.save_snapshot("latest", sample_articles)
        cache_file = temp_cache_dir / CACHE_FILENAME
        data = json.loads(cache_file.read_text())
        data["snapshots"][0]["articles"][0]["title"] = ""
        cache_file.write_text(json.dumps(data))

        loaded = cache.load_snapshot("latest")

        assert [a.url for a in loaded] == ["https://example.com/two"]
