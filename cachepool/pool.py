"""
Cache item pool: key validation in front of one adapter, plus deferred writes.

Deferred saves are buffered in memory and written in one ``save_items`` call by
``commit()``. A failed commit latches the pool: the queue is kept, further
``save_deferred`` calls are refused, and the latch is released by a successful
retry of ``commit()``, by ``reset_commit_failure()`` or by ``discard_deferred()``.

Pools hold no lock. Share one pool between threads only with external
synchronization.
"""

import logging
from typing import Iterable, List, Optional, Tuple

from cachepool.adapters.base import AdapterInterface
from cachepool.collection import CacheItemCollection
from cachepool.exceptions import InvalidArgument, ItemNotFound
from cachepool.item import CacheItem
from cachepool.key_validator import validate_key
from cachepool.metrics import CacheMetrics

logger = logging.getLogger(__name__)


def _require_item(item: CacheItem) -> CacheItem:
    if not isinstance(item, CacheItem):
        raise InvalidArgument(f"Expected a CacheItem, got {type(item).__name__}")
    return item


class CacheItemPool:
    """Facade over one AdapterInterface implementation."""

    def __init__(self, adapter: AdapterInterface, metrics: Optional[CacheMetrics] = None):
        if not isinstance(adapter, AdapterInterface):
            raise InvalidArgument(
                f"CacheItemPool requires an AdapterInterface, got {type(adapter).__name__}"
            )
        self.adapter = adapter
        self.metrics = metrics or CacheMetrics(getattr(adapter, "pool_name", "default"))
        self._deferred_items: List[CacheItem] = []
        self._commit_failed = False

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_item(self, key: str) -> CacheItem:
        """
        Return the item stored under key.

        Raises:
            InvalidArgument: malformed key (the adapter is not called)
            ItemNotFound: key absent from the backend
        """
        validate_key(key)
        try:
            item = self.adapter.get_item(key)
        except ItemNotFound:
            self.metrics.record_miss()
            raise
        if item.is_hit():
            self.metrics.record_hit()
        else:
            self.metrics.record_miss()
        return item

    def get_items(self, keys: Iterable[str] = ()) -> CacheItemCollection:
        """Return the items found for keys; missing keys are simply absent."""
        keys = list(keys)
        for key in keys:
            validate_key(key)
        return self.adapter.get_items(keys)

    def has_item(self, key: str) -> bool:
        validate_key(key)
        return self.adapter.has_item(key)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def clear(self) -> bool:
        return self.adapter.clear()

    def delete_item(self, key: str) -> bool:
        validate_key(key)
        return self.adapter.delete_item(key)

    def delete_items(self, keys: Iterable[str]) -> bool:
        keys = list(keys)
        for key in keys:
            validate_key(key)
        return self.adapter.delete_items(keys)

    def save(self, item: CacheItem) -> bool:
        return self.adapter.save(_require_item(item))

    # ------------------------------------------------------------------
    # Deferred writes
    # ------------------------------------------------------------------

    @property
    def deferred_items(self) -> Tuple[CacheItem, ...]:
        """Snapshot of the deferred queue in insertion order."""
        return tuple(self._deferred_items)

    @property
    def is_commit_failed(self) -> bool:
        return self._commit_failed

    def save_deferred(self, item: CacheItem) -> bool:
        """Queue item for the next commit. Refused (False) while a failed commit is latched."""
        _require_item(item)
        if self._commit_failed:
            self.metrics.record_rejected_deferred()
            logger.debug(f"Deferred save of '{item.get_key()}' refused: previous commit failed")
            return False

        self._deferred_items.append(item)
        self.metrics.record_deferred()
        return True

    def commit(self) -> bool:
        """
        Persist every deferred item with one adapter.save_items call.

        Returns:
            True and empties the queue on success; False, keeping the queue and
            latching the pool, on failure
        """
        pending = len(self._deferred_items)
        succeeded = bool(self.adapter.save_items(CacheItemCollection(self._deferred_items)))
        self.metrics.record_commit(succeeded)

        if succeeded:
            self._deferred_items = []
            self._commit_failed = False
            logger.debug(f"Committed {pending} deferred item(s)")
        else:
            self._commit_failed = True
            logger.warning(
                f"Commit of {pending} deferred item(s) failed; deferred saves are blocked until recovery"
            )
        return succeeded

    def reset_commit_failure(self) -> None:
        """Release the failed-commit latch. Queued items are kept for the next commit."""
        if self._commit_failed:
            logger.info("Failed-commit latch released")
        self._commit_failed = False

    def discard_deferred(self) -> int:
        """Drop every queued item and release the latch. Returns how many were dropped."""
        dropped = len(self._deferred_items)
        self._deferred_items = []
        self._commit_failed = False
        if dropped:
            logger.info(f"Discarded {dropped} deferred item(s)")
        return dropped

    def __enter__(self) -> "CacheItemPool":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if exc_type is None and self._deferred_items:
            self.commit()
        return False
