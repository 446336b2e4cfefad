import pytest
from pydantic import ValidationError

from cachepool.config.settings import Settings


def test_defaults():
    s = Settings()
    assert s.cache_backend == "memory"
    assert s.key_separator == ":"
    assert s.memory_max_items is None
    assert s.sql_expiration_format == "%Y-%m-%d %H:%M:%S"


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("CACHEPOOL_CACHE_BACKEND", " Redis ")
    monkeypatch.setenv("CACHEPOOL_REDIS_URL", "redis://example:6379/3")
    monkeypatch.setenv("CACHEPOOL_MEMORY_MAX_ITEMS", "50")
    s = Settings()
    assert s.cache_backend == "redis"
    assert s.redis_url == "redis://example:6379/3"
    assert s.memory_max_items == 50


def test_unknown_backend_rejected(monkeypatch):
    monkeypatch.setenv("CACHEPOOL_CACHE_BACKEND", "cassandra")
    with pytest.raises(ValidationError):
        Settings()


def test_non_positive_memory_size_rejected():
    with pytest.raises(ValidationError):
        Settings(memory_max_items=0)


@pytest.mark.parametrize("separator", ["", ".", "_", "a", "9"])
def test_separator_with_key_characters_rejected(separator):
    with pytest.raises(ValidationError):
        Settings(key_separator=separator)
