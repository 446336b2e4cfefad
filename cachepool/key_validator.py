"""Key format shared by cache items and pools."""

import re

from cachepool.exceptions import InvalidArgument

MAX_KEY_LENGTH = 64

_KEY_PATTERN = re.compile(r"[A-Za-z0-9._]+")
KEY_CHARACTER = re.compile(r"[A-Za-z0-9._]")


def validate_key(key: str) -> None:
    """Raise InvalidArgument unless key is 1-64 characters of ``A-Z a-z 0-9 . _``."""
    if not isinstance(key, str):
        raise InvalidArgument(f"Cache keys must be strings, got {type(key).__name__}")

    if len(key) == 0 or len(key) > MAX_KEY_LENGTH:
        raise InvalidArgument(
            f"The key '{key}' must be length from 1 up to {MAX_KEY_LENGTH} characters"
        )

    if _KEY_PATTERN.fullmatch(key) is None:
        raise InvalidArgument(
            f"The key '{key}' contains invalid characters. Supported characters are A-Z a-z 0-9 _ and ."
        )


def is_valid_key(key: str) -> bool:
    try:
        validate_key(key)
    except InvalidArgument:
        return False
    return True


def validate_namespace(pool_name: str, separator: str) -> None:
    """
    Check a pool name and the separator placed between it and item keys.

    The separator may not use key characters and the pool name may not use
    separator characters, so ``<pool><separator><key>`` never collides across pools.
    """
    if not isinstance(separator, str) or not separator:
        raise InvalidArgument("The pool separator must be a non-empty string")
    if KEY_CHARACTER.search(separator):
        raise InvalidArgument(
            f"The pool separator {separator!r} may not contain key characters A-Z a-z 0-9 _ or ."
        )
    if not isinstance(pool_name, str) or not pool_name:
        raise InvalidArgument("A pool name is required")
    clashing = sorted(set(pool_name) & set(separator))
    if clashing:
        raise InvalidArgument(
            f"The pool name '{pool_name}' contains the separator character(s) {''.join(clashing)!r}"
        )
