import pytest
from cachetools import TTLCache

from cachepool.adapters.memory import MemoryAdapter
from cachepool.exceptions import InvalidArgument
from cachepool.item import CacheItem


def test_default_store_never_evicts():
    adapter = MemoryAdapter()
    keys = [f"k{i}" for i in range(20000)]
    assert adapter.save_items([CacheItem(key, i) for i, key in enumerate(keys)]) is True
    assert adapter.save(CacheItem("one_more", -1)) is True

    assert all(adapter.has_item(key) for key in keys)
    assert adapter.get_item("k0").get() == 0
    assert len(adapter) == 20001


def test_configured_bound_opts_into_lru(monkeypatch):
    monkeypatch.setattr("cachepool.adapters.memory.settings.memory_max_items", 1)
    adapter = MemoryAdapter()
    adapter.save(CacheItem("a", 1))
    adapter.save(CacheItem("b", 2))
    assert not adapter.has_item("a")
    assert adapter.has_item("b")


def test_max_items_opts_into_lru_eviction():
    adapter = MemoryAdapter(max_items=2)
    adapter.save(CacheItem("a", 1))
    adapter.save(CacheItem("b", 2))
    adapter.get_item("a")
    adapter.save(CacheItem("c", 3))

    # "b" was least recently used
    assert adapter.has_item("a")
    assert not adapter.has_item("b")
    assert adapter.has_item("c")
    assert len(adapter) == 2


def test_accepts_custom_mapping():
    store = TTLCache(maxsize=10, ttl=60)
    adapter = MemoryAdapter(cache_impl=store)
    adapter.save(CacheItem("k", "v"))
    assert "k" in store
    assert adapter.get_item("k").get() == "v"


def test_returned_item_is_a_copy():
    adapter = MemoryAdapter()
    adapter.save(CacheItem("k", "v"))
    adapter.get_item("k").set("mutated")
    assert adapter.get_item("k").get() == "v"


def test_save_items_with_bad_member_stores_nothing():
    adapter = MemoryAdapter()
    with pytest.raises(InvalidArgument):
        adapter.save_items([CacheItem("a", 1), object()])
    assert not adapter.has_item("a")
