"""
Memcached-backed adapter.

Works with a pymemcache-style client (get/get_many/set/set_many/delete/incr/add).
Memcached cannot list keys, so each pool carries a generation counter that is
part of every stored key; clear() bumps the counter and older entries become
unreachable until the server evicts them. A missing counter is reseeded from
the wall clock in nanoseconds, never from a fixed value, so an evicted counter
cannot bring back generations that were already cleared.
"""

import logging
import pickle
import time
from typing import Any, Dict, Iterable, Optional

from cachepool.adapters.base import AbstractAdapter
from cachepool.collection import CacheItemCollection
from cachepool.config.settings import settings
from cachepool.exceptions import InvalidArgument, ItemNotFound, PersistenceError
from cachepool.item import CacheItem
from cachepool.key_validator import validate_namespace

logger = logging.getLogger(__name__)

GENERATION_SUFFIX = "generation"


def _default_client():
    try:
        from pymemcache.client.base import Client
    except Exception as e:
        raise RuntimeError("pymemcache package not installed") from e
    return Client(
        (settings.memcache_host, settings.memcache_port),
        timeout=settings.memcache_timeout,
    )


def _new_generation() -> bytes:
    return str(time.time_ns()).encode()


def validate_pool_name(pool_name: str, separator: str) -> None:
    """Memcached keys may not contain whitespace or control characters."""
    validate_namespace(pool_name, separator)
    for char in pool_name + separator:
        if char.isspace() or ord(char) < 32 or ord(char) == 127:
            raise InvalidArgument(
                f"{pool_name!r} is invalid, it contains an invalid character {char!r}"
            )


class MemcacheAdapter(AbstractAdapter):
    """One cache pool stored in memcached under a generation-scoped prefix."""

    def __init__(self, pool_name: str, client: Any = None, separator: Optional[str] = None):
        self.separator = separator if separator is not None else settings.key_separator
        validate_pool_name(pool_name, self.separator)
        self.pool_name = pool_name
        self._client = client if client is not None else _default_client()
        logger.info(f"Initialized memcache pool '{pool_name}'")

    @property
    def _generation_key(self) -> str:
        return f"{self.pool_name}{self.separator}{GENERATION_SUFFIX}"

    def _generation(self) -> int:
        raw = self._client.get(self._generation_key)
        if raw is None:
            seed = _new_generation()
            # add() keeps a value written concurrently by another process
            self._client.add(self._generation_key, seed, noreply=False)
            raw = self._client.get(self._generation_key) or seed
        return int(raw)

    def _prefix(self) -> str:
        return f"{self.pool_name}{self.separator}{self._generation()}{self.separator}"

    def _encode(self, item: CacheItem) -> bytes:
        return pickle.dumps((item.value, self.expiration_of(item)))

    @staticmethod
    def _decode(key: str, raw: bytes) -> CacheItem:
        value, expiration = pickle.loads(raw)
        return CacheItem(key, value, expiration)

    def get_item(self, key: str) -> CacheItem:
        try:
            raw = self._client.get(self._prefix() + key)
        except Exception as e:
            raise PersistenceError(f"Memcache read failed for '{key}': {e}") from e
        if raw is None:
            raise ItemNotFound(key)
        return self._decode(key, raw)

    def get_items(self, keys: Iterable[str] = ()) -> CacheItemCollection:
        keys = list(keys)
        collection = self.create_collection()
        if not keys:
            return collection
        try:
            prefix = self._prefix()
            found: Dict[Any, bytes] = self._client.get_many([prefix + key for key in keys])
        except Exception as e:
            raise PersistenceError(f"Memcache batch read failed: {e}") from e
        for key in keys:
            raw = found.get(prefix + key)
            if raw is None:
                # pymemcache may hand keys back as bytes
                raw = found.get((prefix + key).encode())
            if raw is not None:
                collection.add(self._decode(key, raw))
        return collection

    def has_item(self, key: str) -> bool:
        try:
            return self._client.get(self._prefix() + key) is not None
        except Exception as e:
            raise PersistenceError(f"Memcache lookup failed for '{key}': {e}") from e

    def clear(self) -> bool:
        try:
            generation = self._client.incr(self._generation_key, 1, noreply=False)
            if generation is None:
                self._client.set(self._generation_key, _new_generation(), noreply=False)
        except Exception as e:
            logger.warning(f"Memcache clear error for pool '{self.pool_name}': {e}")
            return False
        logger.info(f"Memcache pool '{self.pool_name}' moved to a new generation")
        return True

    def delete_item(self, key: str) -> bool:
        try:
            return bool(self._client.delete(self._prefix() + key, noreply=False))
        except Exception as e:
            logger.warning(f"Memcache delete error for '{key}': {e}")
            return False

    def delete_items(self, keys: Iterable[str]) -> bool:
        """Delete every key under one generation lookup. True only when every key existed."""
        unique = list(dict.fromkeys(keys))
        if not unique:
            return True
        try:
            prefix = self._prefix()
        except Exception as e:
            logger.warning(f"Memcache delete error for {unique}: {e}")
            return False
        deleted = 0
        for key in unique:
            try:
                if self._client.delete(prefix + key, noreply=False):
                    deleted += 1
            except Exception as e:
                logger.warning(f"Memcache delete error for '{key}': {e}")
        return deleted == len(unique)

    def save(self, item: CacheItem) -> bool:
        try:
            payload = self._encode(item)
            return bool(self._client.set(self._prefix() + item.get_key(), payload, noreply=False))
        except Exception as e:
            logger.warning(f"Memcache set error for '{item.get_key()}': {e}")
            return False

    def save_items(self, items: Iterable[CacheItem]) -> bool:
        """Store the batch with set_many. Not atomic: keys that succeed stay written."""
        batch = self.ensure_items(items)
        if not batch:
            return True
        try:
            prefix = self._prefix()
            failed = self._client.set_many(
                {prefix + item.get_key(): self._encode(item) for item in batch}, noreply=False
            )
        except Exception as e:
            logger.warning(f"Memcache batch save error in pool '{self.pool_name}': {e}")
            return False
        if failed:
            logger.warning(f"Memcache failed to store {len(failed)} of {len(batch)} item(s)")
        return not failed
