"""
Cache item value holder.

A CacheItem is a mutable builder: ``set``, ``expires_at`` and ``expires_after``
update the instance in place and return it so calls can be chained. Hit state is
never stored; it is computed against the clock on every call.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Optional, Union

from cachepool.exceptions import InvalidArgument
from cachepool.key_validator import validate_key


def utcnow() -> datetime:
    """Current instant as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def to_utc(moment: datetime) -> datetime:
    """Normalize a datetime to aware UTC. Naive values are taken to be UTC."""
    if moment.tzinfo is None or moment.tzinfo.utcoffset(moment) is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


class CacheItem:
    """A key, its value and the instant after which the value stops being a hit."""

    DEFAULT_EXPIRATION = timedelta(weeks=1)

    def __init__(self, key: str, value: Any = None, expiration: Optional[datetime] = None):
        validate_key(key)
        self._key = key
        self._value = value
        self._expiration = self._default_expiration()
        self.expires_at(expiration)

    def _default_expiration(self) -> datetime:
        return utcnow() + self.DEFAULT_EXPIRATION

    @property
    def key(self) -> str:
        return self._key

    @property
    def value(self) -> Any:
        """Raw stored value, returned even when the item is expired."""
        return self._value

    @property
    def expiration(self) -> datetime:
        return self._expiration

    def get_key(self) -> str:
        return self._key

    def get_expiration(self) -> datetime:
        """Absolute UTC expiration. Adapters persist this next to the value."""
        return self._expiration

    def get(self) -> Any:
        """Return the value while the item is a hit, otherwise None."""
        if self.is_hit():
            return self._value
        return None

    def is_hit(self) -> bool:
        return self._expiration >= utcnow()

    def set(self, value: Any) -> "CacheItem":
        self._value = value
        return self

    def expires_at(self, expiration: Optional[datetime] = None) -> "CacheItem":
        """
        Set an absolute expiration.

        Args:
            expiration: datetime (naive values are read as UTC) or None to
                restore the default lifetime

        Raises:
            InvalidArgument: for any other type, including durations and integers
        """
        if expiration is None:
            self._expiration = self._default_expiration()
        elif isinstance(expiration, datetime):
            self._expiration = to_utc(expiration)
        else:
            raise InvalidArgument(
                f"Invalid expiration for cache item '{self._key}': expected datetime or None, "
                f"got {type(expiration).__name__}"
            )
        return self

    def expires_after(self, duration: Union[int, timedelta, None] = None) -> "CacheItem":
        """
        Set expiration relative to now.

        Args:
            duration: seconds as int, a timedelta, or None to restore the default lifetime

        Raises:
            InvalidArgument: for absolute times, floats, booleans and other types
        """
        if duration is None:
            self._expiration = self._default_expiration()
        elif isinstance(duration, timedelta):
            self._expiration = utcnow() + duration
        elif isinstance(duration, int) and not isinstance(duration, bool):
            self._expiration = utcnow() + timedelta(seconds=duration)
        else:
            raise InvalidArgument(
                f"Invalid duration for cache item '{self._key}': expected int seconds, timedelta or None, "
                f"got {type(duration).__name__}"
            )
        return self

    def __repr__(self) -> str:
        return (
            f"CacheItem(key={self._key!r}, expiration={self._expiration.isoformat()}, "
            f"hit={self.is_hit()})"
        )
