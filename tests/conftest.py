import logging
from datetime import datetime, timedelta, timezone

import pytest

LOG = logging.getLogger("tests.conftest")

FROZEN_NOW = datetime(2024, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def frozen_now(monkeypatch):
    """Pin the item clock so expiration arithmetic is deterministic."""
    monkeypatch.setattr("cachepool.item.utcnow", lambda: FROZEN_NOW)
    return FROZEN_NOW


@pytest.fixture
def clock(monkeypatch):
    """Movable clock: call ``clock.advance(seconds=...)`` to move time forward."""

    class _Clock:
        def __init__(self):
            self.now = FROZEN_NOW

        def advance(self, **delta):
            self.now = self.now + timedelta(**delta)
            return self.now

    c = _Clock()
    monkeypatch.setattr("cachepool.item.utcnow", lambda: c.now)
    return c


@pytest.fixture(autouse=True)
def isolated_storage(tmp_path, monkeypatch):
    """Keep disk and SQLite backends inside the per-test temp directory."""
    from cachepool.config.settings import settings as cache_settings

    monkeypatch.setattr(cache_settings, "cache_dir", str(tmp_path / "cache"))
    monkeypatch.setattr(cache_settings, "sql_db_path", str(tmp_path / "cache.db"))
    LOG.debug(f"Test storage isolated under {tmp_path}")
    yield tmp_path


class FakeRedis:
    """Dict-backed stand-in for the subset of redis.Redis the adapter uses."""

    def __init__(self):
        self.store = {}
        self.fail_next_execute = False

    def get(self, key):
        return self.store.get(key)

    def mget(self, keys):
        return [self.store.get(key) for key in keys]

    def set(self, key, value):
        self.store[key] = value
        return True

    def exists(self, *keys):
        return sum(1 for key in keys if key in self.store)

    def delete(self, *keys):
        removed = 0
        for key in keys:
            if self.store.pop(key, None) is not None:
                removed += 1
        return removed

    def scan_iter(self, match="*"):
        import fnmatch
        return iter([key for key in list(self.store) if fnmatch.fnmatchcase(key, match)])

    def pipeline(self, transaction=True):
        return FakePipeline(self)


class FakePipeline:
    def __init__(self, client):
        self.client = client
        self.commands = []

    def set(self, key, value):
        self.commands.append((key, value))
        return self

    def execute(self):
        from redis.exceptions import ResponseError

        if self.client.fail_next_execute:
            self.client.fail_next_execute = False
            self.commands = []
            raise ResponseError("EXECABORT Transaction discarded")
        results = [self.client.set(key, value) for key, value in self.commands]
        self.commands = []
        return results

    def reset(self):
        self.commands = []


class FakeMemcache:
    """Dict-backed stand-in for a pymemcache client."""

    def __init__(self):
        self.store = {}
        self.fail_keys = set()

    def get(self, key):
        return self.store.get(key)

    def get_many(self, keys):
        return {key: self.store[key] for key in keys if key in self.store}

    def set(self, key, value, expire=0, noreply=None):
        self.store[key] = value
        return True

    def set_many(self, values, expire=0, noreply=None):
        failed = []
        for key, value in values.items():
            if any(key.endswith(":" + bad) for bad in self.fail_keys):
                failed.append(key)
                continue
            self.store[key] = value
        return failed

    def add(self, key, value, expire=0, noreply=None):
        if key in self.store:
            return False
        self.store[key] = value
        return True

    def delete(self, key, noreply=None):
        return self.store.pop(key, None) is not None

    def incr(self, key, value, noreply=False):
        if key not in self.store:
            return None
        new_value = int(self.store[key]) + value
        self.store[key] = str(new_value).encode()
        return new_value


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def fake_memcache():
    return FakeMemcache()


@pytest.fixture(params=["memory", "filesystem", "sql", "redis", "memcache"])
def make_adapter(request, tmp_path, fake_redis, fake_memcache):
    """Build adapters of one backend for any pool name, sharing the same storage."""
    from cachepool.adapters.factory import create_adapter

    backend = request.param
    options = {}
    if backend == "filesystem":
        options = {"directory": tmp_path / "fs"}
    elif backend == "sql":
        options = {"db_path": tmp_path / "contract.db"}
    elif backend == "redis":
        options = {"client": fake_redis}
    elif backend == "memcache":
        options = {"client": fake_memcache}

    created = []

    def make(pool_name):
        adapter = create_adapter(backend, pool_name, **options)
        created.append(adapter)
        return adapter

    yield make
    for adapter in created:
        close = getattr(adapter, "close", None)
        if close is not None:
            close()


@pytest.fixture
def any_adapter(make_adapter):
    """Every shipped backend, built against local or fake storage."""
    return make_adapter("contract")
