"""Local cache for aggregated article snapshots.

Provides file-based JSON storage for named snapshots of merged articles:
- Process-safe file access via filelock
- Schema versioning for future migrations
- FIFO eviction when exceeding max snapshots
- Graceful degradation on file system errors
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from filelock import FileLock
from pydantic import BaseModel, Field, ValidationError

from news_aggregator.models.schemas import Article, DeduplicationStrategy

logger = logging.getLogger(__name__)

# Default constants
DEFAULT_MAX_SNAPSHOTS = 20
CACHE_FILENAME = "articles.json"
CURRENT_SCHEMA_VERSION = 1


class Snapshot(BaseModel):
    """A named, stored result of one aggregation call."""

    name: str = Field(description="Snapshot name, unique within the cache")
    timestamp: datetime = Field(description="When the snapshot was saved")
    strategy: Optional[DeduplicationStrategy] = Field(
        default=None, description="Deduplication strategy that produced the articles"
    )
    articles: List[Dict[str, Any]] = Field(
        default_factory=list, description="Articles in their JSON representation"
    )

    @property
    def article_count(self) -> int:
        return len(self.articles)


class CacheData(BaseModel):
    """Schema for the cache file."""

    version: int = Field(default=CURRENT_SCHEMA_VERSION, description="Schema version")
    snapshots: List[Snapshot] = Field(default_factory=list, description="Stored snapshots")


class ArticleCache:
    """File-based cache of aggregated article snapshots.

    Stores snapshots in ~/.news_aggregator/cache/articles.json by default.
    Uses filelock for process-safe concurrent access.
    """

    def __init__(
        self,
        cache_dir: Optional[Path] = None,
        max_snapshots: int = DEFAULT_MAX_SNAPSHOTS,
    ):
        """Initialize the cache.

        Args:
            cache_dir: Directory to store cache files. Defaults to ~/.news_aggregator/cache
            max_snapshots: Maximum number of snapshots to keep. Oldest are evicted first.
        """
        self.cache_dir = Path(cache_dir) if cache_dir else self._get_default_cache_dir()
        self.max_snapshots = max_snapshots
        self._cache_file = self.cache_dir / CACHE_FILENAME
        self._lock_file = self.cache_dir / f"{CACHE_FILENAME}.lock"
        self._writable = True

        self._ensure_directory()

    @staticmethod
    def _get_default_cache_dir() -> Path:
        """Get the default cache directory path."""
        return Path.home() / ".news_aggregator" / "cache"

    def _ensure_directory(self) -> None:
        """Create cache directory if it doesn't exist."""
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.warning(f"Cannot create cache directory {self.cache_dir}: {e}")
            self._writable = False

    def _get_lock(self) -> FileLock:
        return FileLock(str(self._lock_file), timeout=10)

    def _load_unlocked(self) -> CacheData:
        """Load cache data without acquiring the lock."""
        if not self._cache_file.exists():
            return CacheData()

        try:
            with open(self._cache_file, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            logger.warning(f"Cache file corrupted: {e}")
            self._backup_corrupt_file()
            return CacheData()
        except OSError as e:
            logger.warning(f"Error reading cache: {e}")
            return CacheData()

        if (
            not isinstance(data, dict)
            or not isinstance(data.get("version", 0), int)
            or not isinstance(data.get("snapshots", []), list)
        ):
            logger.warning("Cache file has unexpected structure")
            self._backup_corrupt_file()
            return CacheData()

        return self._parse(data)

    def _save_unlocked(self, cache_data: CacheData) -> bool:
        """Save cache data without acquiring the lock.

        Returns:
            True if save succeeded, False otherwise
        """
        if not self._writable:
            return False

        try:
            with open(self._cache_file, "w", encoding="utf-8") as f:
                json.dump(cache_data.model_dump(mode="json"), f, indent=2)
            return True
        except OSError as e:
            logger.warning(f"Cannot write to cache file: {e}")
            self._writable = False
            return False

    def _parse(self, data: Dict[str, Any]) -> CacheData:
        """Validate raw cache data, skipping snapshots that don't parse."""
        version = data.get("version", 0)
        if version > CURRENT_SCHEMA_VERSION:
            logger.warning(
                f"Cache schema version {version} is newer than supported "
                f"({CURRENT_SCHEMA_VERSION}); reading what is compatible"
            )

        snapshots = []
        for snapshot_data in data.get("snapshots", []):
            try:
                snapshots.append(Snapshot.model_validate(snapshot_data))
            except ValidationError as e:
                logger.warning(f"Skipping invalid snapshot: {e}")
                continue

        return CacheData(version=CURRENT_SCHEMA_VERSION, snapshots=snapshots)

    def _backup_corrupt_file(self) -> None:
        """Back up a corrupted cache file."""
        if self._cache_file.exists():
            backup_path = self._cache_file.with_suffix(".json.corrupt")
            try:
                self._cache_file.replace(backup_path)
                logger.info(f"Backed up corrupt cache to {backup_path}")
            except OSError as e:
                logger.warning(f"Could not back up corrupt cache: {e}")

    def save_snapshot(
        self,
        name: str,
        articles: List[Article],
        strategy: Optional[DeduplicationStrategy] = None,
    ) -> bool:
        """Store articles under ``name``, replacing any snapshot with that name.

        Enforces max_snapshots via FIFO eviction.

        Returns:
            True if save succeeded, False otherwise
        """
        if not self._writable:
            return False

        snapshot = Snapshot(
            name=name,
            timestamp=datetime.now(timezone.utc),
            strategy=strategy,
            articles=[article.to_json_dict() for article in articles],
        )

        try:
            with self._get_lock():
                cache_data = self._load_unlocked()
                # Stored newest first
                snapshots = [snapshot] + [s for s in cache_data.snapshots if s.name != name]
                cache_data.snapshots = snapshots[: self.max_snapshots]

                return self._save_unlocked(cache_data)
        except OSError as e:
            logger.warning(f"Error saving snapshot {name}: {e}")
            return False

    def load_snapshot(self, name: str) -> Optional[List[Article]]:
        """Load the articles stored under ``name``.

        Articles that no longer validate are skipped.

        Returns:
            The articles, or None if no such snapshot exists.
        """
        snapshot = self.get_snapshot(name)
        if snapshot is None:
            return None

        articles = []
        for article_data in snapshot.articles:
            try:
                articles.append(Article.from_json_dict(article_data))
            except ValidationError as e:
                logger.warning(f"Skipping invalid cached article in {name}: {e}")
        return articles

    def get_snapshot(self, name: str) -> Optional[Snapshot]:
        """Get snapshot metadata and raw articles by name."""
        for snapshot in self.list_snapshots():
            if snapshot.name == name:
                return snapshot
        return None

    def list_snapshots(self) -> List[Snapshot]:
        """All snapshots, newest first."""
        try:
            with self._get_lock():
                snapshots = self._load_unlocked().snapshots
        except OSError as e:
            logger.warning(f"Error loading cache: {e}")
            return []

        snapshots.sort(key=lambda s: s.timestamp, reverse=True)
        return snapshots

    def delete_snapshot(self, name: str) -> bool:
        """Remove a snapshot.

        Returns:
            True if a snapshot was removed and the cache saved.
        """
        if not self._writable:
            return False

        try:
            with self._get_lock():
                cache_data = self._load_unlocked()
                remaining = [s for s in cache_data.snapshots if s.name != name]
                if len(remaining) == len(cache_data.snapshots):
                    return False
                cache_data.snapshots = remaining
                return self._save_unlocked(cache_data)
        except OSError as e:
            logger.warning(f"Error deleting snapshot {name}: {e}")
            return False

    def clear(self) -> bool:
        """Remove all snapshots.

        Returns:
            True if clear succeeded, False otherwise
        """
        if not self._writable:
            return False

        try:
            with self._get_lock():
                return self._save_unlocked(CacheData())
        except OSError as e:
            logger.warning(f"Error clearing cache: {e}")
            return False
