import pytest

from cachepool.collection import CacheItemCollection
from cachepool.exceptions import InvalidArgument, ItemNotFound
from cachepool.item import CacheItem


def test_iteration_follows_insertion_order():
    items = [CacheItem("b", 1), CacheItem("a", 2), CacheItem("c", 3)]
    collection = CacheItemCollection(items)
    assert [item.get_key() for item in collection] == ["b", "a", "c"]
    assert collection.keys() == ["b", "a", "c"]
    assert len(collection) == 3


def test_adding_same_key_replaces_in_place():
    collection = CacheItemCollection([CacheItem("a", 1), CacheItem("b", 2)])
    collection.add(CacheItem("a", 99))
    assert collection.keys() == ["a", "b"]
    assert collection.get("a").get() == 99
    assert len(collection) == 2


def test_get_missing_key_raises_item_not_found():
    collection = CacheItemCollection()
    with pytest.raises(ItemNotFound):
        collection.get("missing")


def test_has_contains_and_delete():
    collection = CacheItemCollection([CacheItem("a", 1)])
    assert collection.has("a")
    assert "a" in collection
    assert 42 not in collection
    assert collection.delete("a") is True
    assert collection.delete("a") is False
    assert not collection


def test_rejects_non_cache_items():
    with pytest.raises(InvalidArgument):
        CacheItemCollection(["not an item"])
    with pytest.raises(InvalidArgument):
        CacheItemCollection().add({"key": "a"})
