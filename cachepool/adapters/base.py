"""
Adapter contract every storage backend implements, plus shared helpers.

Keys reaching an adapter are assumed to be validated already by the pool.
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Iterable

from cachepool.collection import CacheItemCollection
from cachepool.exceptions import InvalidArgument, ItemNotFound
from cachepool.item import CacheItem, to_utc

logger = logging.getLogger(__name__)


class AdapterInterface(ABC):
    """Capability contract consumed by CacheItemPool."""

    @abstractmethod
    def get_item(self, key: str) -> CacheItem:
        """
        Return the stored item for key.

        Raises:
            ItemNotFound: if the key is absent
        """

    @abstractmethod
    def get_items(self, keys: Iterable[str] = ()) -> CacheItemCollection:
        """Return the items found for keys. Missing keys are skipped silently."""

    @abstractmethod
    def has_item(self, key: str) -> bool:
        """Existence check that agrees with get_item."""

    @abstractmethod
    def clear(self) -> bool:
        """Remove every item of this adapter's pool."""

    @abstractmethod
    def delete_item(self, key: str) -> bool:
        """
        Delete one item.

        Returns:
            True if something was removed, False if the key was absent
        """

    @abstractmethod
    def delete_items(self, keys: Iterable[str]) -> bool:
        """True only if every deletion succeeded. May be non-atomic."""

    @abstractmethod
    def save(self, item: CacheItem) -> bool:
        """Upsert one item by key."""

    @abstractmethod
    def save_items(self, items: Iterable[CacheItem]) -> bool:
        """
        Upsert a batch of items.

        Transactional backends roll the whole batch back when one item fails
        and return False.
        """


class AbstractAdapter(AdapterInterface):
    """Helpers and non-atomic default batch operations for concrete adapters."""

    def create_collection(self, items: Iterable[CacheItem] = ()) -> CacheItemCollection:
        return CacheItemCollection(items)

    @staticmethod
    def expiration_of(item: CacheItem) -> datetime:
        """UTC expiration of an item, read through its public accessor."""
        if not isinstance(item, CacheItem):
            raise InvalidArgument(
                f"Expected a CacheItem, got {type(item).__name__}"
            )
        return to_utc(item.get_expiration())

    @staticmethod
    def ensure_items(items: Iterable[CacheItem]) -> list:
        """Materialize a batch, rejecting anything that is not a CacheItem."""
        batch = list(items)
        for item in batch:
            if not isinstance(item, CacheItem):
                raise InvalidArgument(
                    f"All items must be CacheItem instances, got {type(item).__name__}"
                )
        return batch

    def get_items(self, keys: Iterable[str] = ()) -> CacheItemCollection:
        collection = self.create_collection()
        for key in keys:
            try:
                collection.add(self.get_item(key))
            except ItemNotFound:
                continue
        return collection

    def delete_items(self, keys: Iterable[str]) -> bool:
        # Not transaction-safe: every key is attempted, absent ones only flip the result
        ok = True
        for key in dict.fromkeys(keys):
            ok = self.delete_item(key) and ok
        return ok

    def save_items(self, items: Iterable[CacheItem]) -> bool:
        # Not transaction-safe: items saved before a failure stay saved
        for item in self.ensure_items(items):
            if not self.save(item):
                logger.warning(f"{type(self).__name__}: failed to save '{item.get_key()}', batch aborted")
                return False
        return True
