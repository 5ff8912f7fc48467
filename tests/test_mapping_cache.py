# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Tests for BidirectionalMappingCache."""

import threading

from mapper_links.mapping_cache import BidirectionalMappingCache
from mapper_links.models import MappingEntry


def assert_bijective(cache: BidirectionalMappingCache) -> None:
    forward = cache.snapshot()
    reverse = cache.reverse_snapshot()
    assert len(forward) == len(reverse)
    for interface, statement in forward.items():
        assert reverse[statement] == interface


class TestBidirectionalMappingCache:
    """Tests for the two-way cache."""

    def test_put_and_get_both_directions(self):
        cache = BidirectionalMappingCache()
        cache.put(MappingEntry("/p/UserMapper.java", "/p/UserMapper.xml"))

        assert cache.get("/p/UserMapper.java") == "/p/UserMapper.xml"
        assert cache.get_reverse("/p/UserMapper.xml") == "/p/UserMapper.java"
        assert len(cache) == 1
        assert "/p/UserMapper.xml" in cache

    def test_repairing_interface_drops_old_statement(self):
        cache = BidirectionalMappingCache()
        cache.put(MappingEntry("/p/UserMapper.java", "/p/old/UserMapper.xml"))
        cache.put(MappingEntry("/p/UserMapper.java", "/p/new/UserMapper.xml"))

        assert cache.get_reverse("/p/old/UserMapper.xml") is None
        assert cache.get("/p/UserMapper.java") == "/p/new/UserMapper.xml"
        assert_bijective(cache)

    def test_repairing_statement_drops_old_interface(self):
        cache = BidirectionalMappingCache()
        cache.put(MappingEntry("/p/a/UserMapper.java", "/p/UserMapper.xml"))
        cache.put(MappingEntry("/p/b/UserMapper.java", "/p/UserMapper.xml"))

        assert cache.get("/p/a/UserMapper.java") is None
        assert cache.get_reverse("/p/UserMapper.xml") == "/p/b/UserMapper.java"
        assert_bijective(cache)

    def test_remove_from_either_side(self):
        cache = BidirectionalMappingCache()
        cache.put(MappingEntry("/p/UserMapper.java", "/p/UserMapper.xml"))
        cache.put(MappingEntry("/p/OrderMapper.java", "/p/OrderMapper.xml"))

        removed = cache.remove("/p/UserMapper.xml")
        assert removed == MappingEntry("/p/UserMapper.java", "/p/UserMapper.xml")
        assert cache.get("/p/UserMapper.java") is None

        removed = cache.remove("/p/OrderMapper.java")
        assert removed == MappingEntry("/p/OrderMapper.java", "/p/OrderMapper.xml")
        assert cache.get_reverse("/p/OrderMapper.xml") is None
        assert len(cache) == 0

    def test_remove_unknown_path(self):
        assert BidirectionalMappingCache().remove("/p/Nothing.xml") is None

    def test_clear(self):
        cache = BidirectionalMappingCache()
        cache.put(MappingEntry("/p/UserMapper.java", "/p/UserMapper.xml"))

        cache.clear()

        assert cache.snapshot() == {}
        assert cache.reverse_snapshot() == {}

    def test_snapshot_is_a_copy(self):
        cache = BidirectionalMappingCache()
        cache.put(MappingEntry("/p/UserMapper.java", "/p/UserMapper.xml"))

        cache.snapshot()["/p/Other.java"] = "/p/Other.xml"

        assert len(cache) == 1

    def test_concurrent_puts_stay_bijective(self):
        cache = BidirectionalMappingCache()

        def writer(offset):
            for i in range(200):
                # Overlapping statement paths force replacements across threads
                cache.put(MappingEntry(f"/p/I{offset}_{i}.java", f"/p/S{i % 50}.xml"))
                if i % 7 == 0:
                    cache.remove(f"/p/S{(i + offset) % 50}.xml")

        threads = [threading.Thread(target=writer, args=(n,)) for n in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert_bijective(cache)
