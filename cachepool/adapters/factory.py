"""Build adapters and pools from settings."""

import logging
from typing import Optional

from cachepool.adapters.base import AdapterInterface
from cachepool.config.settings import SUPPORTED_BACKENDS, settings
from cachepool.exceptions import InvalidArgument

logger = logging.getLogger(__name__)


def create_adapter(backend: Optional[str] = None, pool_name: Optional[str] = None, **options) -> AdapterInterface:
    """
    Instantiate the adapter for a backend name.

    Args:
        backend: memory, filesystem, sql, redis or memcache (settings.cache_backend)
        pool_name: pool namespace (settings.default_pool_name); unused by memory
        **options: extra keyword arguments for the adapter constructor

    Raises:
        InvalidArgument: unknown backend name
    """
    name = (backend or settings.cache_backend).strip().lower()
    pool_name = pool_name or settings.default_pool_name

    # Backends import lazily so unused client libraries are never loaded
    if name == "memory":
        from cachepool.adapters.memory import MemoryAdapter
        adapter = MemoryAdapter(**options)
    elif name == "filesystem":
        from cachepool.adapters.filesystem import FilesystemAdapter
        adapter = FilesystemAdapter(pool_name, **options)
    elif name == "sql":
        from cachepool.adapters.sql import SqlAdapter
        adapter = SqlAdapter(pool_name, **options)
    elif name == "redis":
        from cachepool.adapters.redis_adapter import RedisAdapter
        adapter = RedisAdapter(pool_name, **options)
    elif name == "memcache":
        from cachepool.adapters.memcache import MemcacheAdapter
        adapter = MemcacheAdapter(pool_name, **options)
    else:
        raise InvalidArgument(
            f"Unsupported cache backend '{backend}'. Expected one of: {', '.join(SUPPORTED_BACKENDS)}"
        )

    logger.info(f"Created {name} cache adapter for pool '{pool_name}'")
    return adapter


def create_pool(backend: Optional[str] = None, pool_name: Optional[str] = None, **options):
    """Create a CacheItemPool over a freshly built adapter."""
    from cachepool.pool import CacheItemPool

    return CacheItemPool(create_adapter(backend, pool_name, **options))
