"""Error kinds raised by the cache pool library."""


class CacheError(Exception):
    """Base class for every error raised by cachepool."""


class InvalidArgument(CacheError, ValueError):
    """Malformed key, unsupported expiration value or wrong argument type."""


class ItemNotFound(CacheError, KeyError):
    """Raised by single-item lookups when the key is absent from the backend."""

    def __init__(self, key: str = "", message: str = ""):
        self.key = key
        super().__init__(message or f"Cache item '{key}' not found")

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the plain message
        return str(self.args[0]) if self.args else ""


class PersistenceError(CacheError):
    """Backend I/O failure (disk, network, SQL)."""
