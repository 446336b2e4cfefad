"""
Redis-backed adapter.

Stores each item under ``<pool><separator><key>`` as a pickled
``(value, expiration)`` pair. Batch saves go through a MULTI/EXEC pipeline.
"""

import logging
import pickle
import re
from typing import Iterable, List, Optional

import redis
from redis.exceptions import RedisError

from cachepool.adapters.base import AbstractAdapter
from cachepool.collection import CacheItemCollection
from cachepool.config.settings import settings
from cachepool.exceptions import ItemNotFound, PersistenceError
from cachepool.item import CacheItem
from cachepool.key_validator import validate_namespace

logger = logging.getLogger(__name__)

_GLOB_SPECIALS = re.compile(r"([*?\[\]\\])")


class RedisAdapter(AbstractAdapter):
    """One cache pool stored in a Redis keyspace prefix."""

    def __init__(self, pool_name: str, client: Optional["redis.Redis"] = None, separator: Optional[str] = None):
        """
        Args:
            pool_name: prefix shared by every key of this pool; may not contain separator characters
            client: redis.Redis instance; built from settings.redis_url when omitted
            separator: text between pool name and key (settings.key_separator), without key characters
        """
        self.separator = separator if separator is not None else settings.key_separator
        validate_namespace(pool_name, self.separator)
        self.pool_name = pool_name
        self._client = client if client is not None else redis.from_url(settings.redis_url)
        logger.info(f"Initialized Redis cache pool '{pool_name}'")

    def _normalize_key(self, key: str) -> str:
        return f"{self.pool_name}{self.separator}{key}"

    def _normalize_keys(self, keys: Iterable[str]) -> List[str]:
        return [self._normalize_key(key) for key in keys]

    def _encode(self, item: CacheItem) -> bytes:
        return pickle.dumps((item.value, self.expiration_of(item)))

    @staticmethod
    def _decode(key: str, raw: bytes) -> CacheItem:
        value, expiration = pickle.loads(raw)
        return CacheItem(key, value, expiration)

    def get_item(self, key: str) -> CacheItem:
        try:
            raw = self._client.get(self._normalize_key(key))
        except RedisError as e:
            raise PersistenceError(f"Redis read failed for '{key}': {e}") from e
        if raw is None:
            raise ItemNotFound(key)
        return self._decode(key, raw)

    def get_items(self, keys: Iterable[str] = ()) -> CacheItemCollection:
        keys = list(keys)
        collection = self.create_collection()
        if not keys:
            return collection
        try:
            values = self._client.mget(self._normalize_keys(keys))
        except RedisError as e:
            raise PersistenceError(f"Redis batch read failed: {e}") from e
        for key, raw in zip(keys, values):
            if raw is not None:
                collection.add(self._decode(key, raw))
        return collection

    def has_item(self, key: str) -> bool:
        try:
            return self._client.exists(self._normalize_key(key)) > 0
        except RedisError as e:
            raise PersistenceError(f"Redis lookup failed for '{key}': {e}") from e

    def clear(self) -> bool:
        pattern = _GLOB_SPECIALS.sub(r"\\\1", self._normalize_key("")) + "*"
        try:
            keys = list(self._client.scan_iter(match=pattern))
            if keys:
                self._client.delete(*keys)
        except RedisError as e:
            logger.warning(f"Redis clear error for pool '{self.pool_name}': {e}")
            return False
        logger.info(f"Cleared {len(keys)} key(s) from Redis cache pool '{self.pool_name}'")
        return True

    def delete_item(self, key: str) -> bool:
        try:
            return self._client.delete(self._normalize_key(key)) > 0
        except RedisError as e:
            logger.warning(f"Redis delete error for '{key}': {e}")
            return False

    def delete_items(self, keys: Iterable[str]) -> bool:
        """Delete keys with one DEL. True only when every key existed."""
        unique = list(dict.fromkeys(keys))
        if not unique:
            return True
        try:
            deleted = self._client.delete(*self._normalize_keys(unique))
        except RedisError as e:
            logger.warning(f"Redis delete error for {unique}: {e}")
            return False
        return deleted == len(unique)

    def save(self, item: CacheItem) -> bool:
        try:
            payload = self._encode(item)
            return bool(self._client.set(self._normalize_key(item.get_key()), payload))
        except (RedisError, pickle.PicklingError, AttributeError, TypeError) as e:
            logger.warning(f"Redis set error for '{item.get_key()}': {e}")
            return False

    def save_items(self, items: Iterable[CacheItem]) -> bool:
        """Queue every SET in a transactional pipeline; nothing is written unless all succeed."""
        batch = self.ensure_items(items)
        if not batch:
            return True
        pipe = self._client.pipeline(transaction=True)
        try:
            for item in batch:
                pipe.set(self._normalize_key(item.get_key()), self._encode(item))
            results = pipe.execute()
        except (RedisError, pickle.PicklingError, AttributeError, TypeError) as e:
            pipe.reset()
            logger.warning(
                f"Redis batch of {len(batch)} item(s) discarded in pool '{self.pool_name}': {e}"
            )
            return False
        return all(bool(result) for result in results)
