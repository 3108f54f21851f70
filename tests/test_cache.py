import pytest

from cacheproxy.cache import Cache, CacheEntry, CacheMode, create_cache, mark_cached


def _hosts(cache):
    return [entry.host for entry in cache]


def test_create_cache_zero_size_disables_caching():
    assert create_cache("FIFO", 0) is None


def test_create_cache_sets_mode_and_size():
    cache = create_cache("LRU", 3)
    assert cache.mode is CacheMode.LRU
    assert cache.size == 3
    assert len(cache) == 0


def test_invalid_mode_rejected():
    with pytest.raises(ValueError):
        Cache("RANDOM", 2)


def test_invalid_size_rejected():
    with pytest.raises(ValueError):
        Cache("FIFO", 0)


def test_miss_inserts_at_front():
    cache = Cache("FIFO", 3)
    cache.miss("a", "x", 1, b"ra")
    cache.miss("b", "x", 1, b"rb")
    assert _hosts(cache) == ["b", "a"]


def test_find_matches_all_fields():
    cache = Cache("FIFO", 3)
    cache.miss("a", "x", 1, b"ra")
    cache.miss("a", "y", 1, b"ry")
    assert cache.find("a", "y", 1).response == b"ry"
    assert cache.find("a", "x", 1).response == b"ra"
    assert cache.find("a", "x", 2) is None
    assert cache.find("b", "x", 1) is None


def test_fifo_evicts_oldest_and_hit_keeps_order():
    cache = Cache("FIFO", 2)
    cache.miss("a", "u", 80, b"ra")
    cache.miss("b", "u", 80, b"rb")
    assert cache.hit(cache.find("a", "u", 80)) == b"ra"
    cache.miss("c", "u", 80, b"rc")
    assert _hosts(cache) == ["c", "b"]
    assert cache.find("a", "u", 80) is None


def test_lru_hit_moves_to_front_and_protects_from_eviction():
    cache = Cache("LRU", 2)
    cache.miss("a", "u", 80, b"ra")
    cache.miss("b", "u", 80, b"rb")
    assert cache.hit(cache.find("a", "u", 80)) == b"ra"
    assert _hosts(cache) == ["a", "b"]
    cache.miss("c", "u", 80, b"rc")
    assert _hosts(cache) == ["c", "a"]


def test_lru_hit_on_middle_entry():
    cache = Cache("LRU", 5)
    for host in "abc":
        cache.miss(host, "u", 1, host.encode())
    cache.hit(cache.find("b", "u", 1))
    assert _hosts(cache) == ["b", "c", "a"]


def test_hit_on_none_returns_none():
    assert Cache("LRU", 1).hit(None) is None


def test_length_never_exceeds_size():
    cache = Cache("FIFO", 3)
    for index in range(10):
        cache.miss(f"h{index}", "u", index, b"r")
        assert len(cache) <= 3
    assert len(cache) == 3


def test_describe_empty():
    assert Cache("FIFO", 1).describe() == "Empty List\n"


def test_describe_lists_entries_head_to_tail():
    cache = Cache("FIFO", 3)
    cache.miss("first", "p", 8080, b"r")
    cache.miss("second", "q", 9090, b"r")
    text = cache.describe()
    assert "Length: 2" in text
    assert "[Index 0] host: second, uri: q, port: 9090\tprev: NULL, next: first" in text
    assert "[Head] host: second, uri q, port 9090" in text
    assert "[Tail] host: first, uri p, port 8080" in text


def test_mark_cached_inserts_header_after_status_line():
    entry = CacheEntry("h", "u", 1, b"HTTP/1.1 200 OK\r\nContent-Length: 5\r\n\r\nhello")
    mark_cached(entry)
    assert entry.response == b"HTTP/1.1 200 OK\r\nCached: True\r\nContent-Length: 5\r\n\r\nhello"
    assert entry.hit is True


def test_mark_cached_only_once():
    entry = CacheEntry("h", "u", 1, b"HTTP/1.1 200 OK\r\nContent-Length: 2\r\n\r\nhi")
    mark_cached(entry)
    once = entry.response
    mark_cached(entry)
    assert entry.response == once
    assert once.count(b"Cached: True") == 1


def test_mark_cached_truncates_body_to_content_length():
    entry = CacheEntry("h", "u", 1, b"HTTP/1.1 200 OK\r\nContent-Length: 2\r\n\r\nhello")
    mark_cached(entry)
    assert entry.response.endswith(b"\r\n\r\nhe")


def test_mark_cached_without_content_length_is_noop():
    original = b"HTTP/1.1 200 OK\r\nServer: x\r\n\r\nbody"
    entry = CacheEntry("h", "u", 1, original)
    mark_cached(entry)
    assert entry.response == original
    assert entry.hit is False