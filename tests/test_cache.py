from cache import TTLCache


def test_entry_is_fresh_within_ttl(clock):
    cache = TTLCache(ttl=60, clock=clock)
    cache.set("k", "v")
    clock.advance(59)
    assert cache.get("k") == "v"


def test_entry_expires_after_ttl(clock):
    cache = TTLCache(ttl=60, clock=clock)
    cache.set("k", "v")
    clock.advance(61)
    assert cache.get("k") is None
    # evicted on read
    assert len(cache) == 0


def test_boundary_is_inclusive(clock):
    cache = TTLCache(ttl=60, clock=clock)
    cache.set("k", "v")
    clock.advance(60)
    assert cache.get("k") == "v"


def test_per_read_ttl_override(clock):
    cache = TTLCache(ttl=60, clock=clock)
    cache.set("k", "v")
    clock.advance(30)
    assert cache.get("k", ttl=10) is None
    cache.set("k", "v")
    clock.advance(90)
    assert cache.get("k", ttl=120) == "v"


def test_rewrite_refreshes_timestamp(clock):
    cache = TTLCache(ttl=60, clock=clock)
    cache.set("k", "old")
    clock.advance(50)
    cache.set("k", "new")
    clock.advance(50)
    assert cache.get("k") == "new"


def test_contains_and_clear(clock):
    cache = TTLCache(ttl=60, clock=clock)
    assert "k" not in cache
    cache.set("k", [1])
    assert "k" in cache
    cache.clear()
    assert "k" not in cache
