"""
In-memory adapter.

Wraps a mapping-like store, a plain dict unless a bound is requested. Items
only leave the store through delete or clear; passing ``max_items`` (or
setting ``memory_max_items``) opts into a cachetools LRUCache that evicts.
The adapter adds a threading lock so each call is atomic from this wrapper's
perspective.
"""

import copy
import logging
import threading
from typing import Iterable, MutableMapping, Optional

from cachetools import LRUCache

from cachepool.adapters.base import AbstractAdapter
from cachepool.config.settings import settings
from cachepool.exceptions import ItemNotFound
from cachepool.item import CacheItem

logger = logging.getLogger(__name__)


class MemoryAdapter(AbstractAdapter):
    """Process-local adapter. Items are copied on the way in and out."""

    def __init__(self, cache_impl: Optional[MutableMapping] = None, max_items: Optional[int] = None):
        """
        Args:
            cache_impl: mapping supporting get, __setitem__, __delitem__ and clear.
                Defaults to an unbounded dict.
            max_items: opt-in LRU bound (settings.memory_max_items); ignored with cache_impl
        """
        if cache_impl is None:
            max_items = max_items or settings.memory_max_items
            cache_impl = LRUCache(maxsize=max_items) if max_items else {}
        self._cache = cache_impl
        self._lock = threading.RLock()
        logger.info(f"Initialized memory cache adapter ({type(cache_impl).__name__})")

    def get_item(self, key: str) -> CacheItem:
        with self._lock:
            item = self._cache.get(key)
        if item is None:
            raise ItemNotFound(key)
        return copy.copy(item)

    def has_item(self, key: str) -> bool:
        with self._lock:
            return key in self._cache

    def clear(self) -> bool:
        with self._lock:
            self._cache.clear()
        logger.info("Memory cache adapter cleared")
        return True

    def delete_item(self, key: str) -> bool:
        with self._lock:
            if key not in self._cache:
                return False
            del self._cache[key]
        return True

    def save(self, item: CacheItem) -> bool:
        item = self.ensure_items([item])[0]
        with self._lock:
            self._cache[item.get_key()] = copy.copy(item)
        logger.debug(f"Memory cache stored '{item.get_key()}'")
        return True

    def save_items(self, items: Iterable[CacheItem]) -> bool:
        # Validate the whole batch first so a bad member stores nothing
        batch = self.ensure_items(items)
        with self._lock:
            for item in batch:
                self._cache[item.get_key()] = copy.copy(item)
        return True

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)
