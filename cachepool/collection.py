"""Ordered, keyed container of cache items used for batch reads and writes."""

from typing import Dict, Iterable, Iterator, List

from cachepool.exceptions import InvalidArgument, ItemNotFound
from cachepool.item import CacheItem


class CacheItemCollection:
    """
    Cache items indexed by key, iterated in insertion order.

    Adding an item whose key is already present replaces the stored item but
    keeps its original position.
    """

    def __init__(self, items: Iterable[CacheItem] = ()):
        self._items: Dict[str, CacheItem] = {}
        for item in items:
            self.add(item)

    def add(self, item: CacheItem) -> None:
        if not isinstance(item, CacheItem):
            raise InvalidArgument(
                f"Collection members must be CacheItem instances, got {type(item).__name__}"
            )
        self._items[item.get_key()] = item

    def has(self, key: str) -> bool:
        return key in self._items

    def get(self, key: str) -> CacheItem:
        try:
            return self._items[key]
        except KeyError:
            raise ItemNotFound(key, f"The key '{key}' is not available in the collection") from None

    def delete(self, key: str) -> bool:
        """Remove an item by key. Returns False when the key was absent."""
        return self._items.pop(key, None) is not None

    def keys(self) -> List[str]:
        return list(self._items)

    def __iter__(self) -> Iterator[CacheItem]:
        return iter(list(self._items.values()))

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and key in self._items

    def __repr__(self) -> str:
        return f"CacheItemCollection(keys={self.keys()!r})"
