"""
Disk-backed adapter built on diskcache.

Each pool lives in its own directory under the configured cache directory.
Values are stored together with their expiration so expired items are still
returned (as misses) until they are overwritten or deleted.
"""

import logging
import re
import sqlite3
from pathlib import Path
from typing import Iterable, Optional, Union

import diskcache

from cachepool.adapters.base import AbstractAdapter
from cachepool.config.settings import settings
from cachepool.exceptions import InvalidArgument, ItemNotFound, PersistenceError
from cachepool.item import CacheItem

logger = logging.getLogger(__name__)

# diskcache spills large values into two-level hex subdirectories ("3f/a0/...")
_DISKCACHE_SUBDIR = re.compile(r"[0-9a-f]{2}")

_MISSING = object()


class FilesystemAdapter(AbstractAdapter):
    """Pool stored in ``<directory>/<pool_name>`` through a diskcache.Cache."""

    def __init__(self, pool_name: str, directory: Optional[Union[str, Path]] = None):
        if not pool_name or pool_name in (".", "..") or "/" in pool_name or "\\" in pool_name:
            raise InvalidArgument(f"Invalid pool name for filesystem adapter: '{pool_name}'")

        self.pool_name = pool_name
        self.directory = Path(directory or settings.cache_dir) / pool_name
        self.directory.mkdir(parents=True, exist_ok=True)
        self._cache = diskcache.Cache(directory=str(self.directory))
        logger.info(f"Initialized disk cache pool '{pool_name}' at {self.directory}")

    def _read(self, key: str):
        try:
            return self._cache.get(key, default=_MISSING)
        except (OSError, sqlite3.Error) as e:
            raise PersistenceError(f"Disk cache read failed for '{key}': {e}") from e

    def get_item(self, key: str) -> CacheItem:
        record = self._read(key)
        if record is _MISSING:
            raise ItemNotFound(key)
        value, expiration = record
        return CacheItem(key, value, expiration)

    def has_item(self, key: str) -> bool:
        try:
            return key in self._cache
        except (OSError, sqlite3.Error) as e:
            raise PersistenceError(f"Disk cache lookup failed for '{key}': {e}") from e

    def _foreign_subdirectories(self) -> list:
        return [
            entry.name
            for entry in self.directory.iterdir()
            if entry.is_dir() and not _DISKCACHE_SUBDIR.fullmatch(entry.name)
        ]

    def clear(self) -> bool:
        """Empty the pool. Refuses when the pool directory holds unexpected subdirectories."""
        foreign = self._foreign_subdirectories()
        if foreign:
            logger.warning(
                f"Refusing to clear disk cache pool '{self.pool_name}': unexpected subdirectories {foreign}"
            )
            return False
        try:
            removed = self._cache.clear()
        except (OSError, sqlite3.Error) as e:
            logger.warning(f"Disk cache clear error for pool '{self.pool_name}': {e}")
            return False
        logger.info(f"Cleared {removed} item(s) from disk cache pool '{self.pool_name}'")
        return True

    def delete_item(self, key: str) -> bool:
        try:
            return bool(self._cache.delete(key))
        except (OSError, sqlite3.Error) as e:
            logger.warning(f"Disk cache delete error for '{key}': {e}")
            return False

    def save(self, item: CacheItem) -> bool:
        expiration = self.expiration_of(item)
        try:
            return bool(self._cache.set(item.get_key(), (item.value, expiration)))
        except Exception as e:
            logger.warning(f"Disk cache set error for '{item.get_key()}': {e}")
            return False

    def save_items(self, items: Iterable[CacheItem]) -> bool:
        """Store the batch in one diskcache transaction; any failure rolls it back."""
        batch = self.ensure_items(items)
        try:
            with self._cache.transact():
                for item in batch:
                    self._cache.set(item.get_key(), (item.value, self.expiration_of(item)))
        except Exception as e:
            logger.warning(
                f"Disk cache batch of {len(batch)} item(s) rolled back in pool '{self.pool_name}': {e}"
            )
            return False
        return True

    def close(self) -> None:
        self._cache.close()

    def __len__(self) -> int:
        return len(self._cache)
