import time

from backend.services.cache_manager import CacheManager


def test_get_returns_value_within_ttl(cache, clock):
    cache.set("metrics_7d_biz1", {"revenue": 100}, 60)
    clock.advance(59)
    assert cache.get("metrics_7d_biz1") == {"revenue": 100}


def test_expired_entry_is_absent_and_evicted_on_read(cache, clock):
    cache.set("metrics_7d_biz1", {"revenue": 100}, 1)
    misses_before = cache.misses

    clock.advance(1.1)
    assert cache.size() == 1
    assert cache.get("metrics_7d_biz1") is None
    assert cache.misses == misses_before + 1
    assert cache.size() == 0


def test_expiry_with_real_clock():
    cache = CacheManager()
    cache.set("metrics_7d_biz1", {"revenue": 100}, 1)
    time.sleep(1.1)
    assert cache.get("metrics_7d_biz1") is None
    assert cache.misses == 1


def test_set_overwrites_value_and_expiry(cache, clock):
    cache.set("k", "old", 1)
    cache.set("k", "new", 100)
    clock.advance(50)
    assert cache.get("k") == "new"
    assert cache.size() == 1


def test_delete_and_clear(cache):
    cache.set("a", 1)
    cache.set("b", 2)
    cache.delete("a")
    cache.delete("missing")
    assert list(cache.keys()) == ["b"]

    cache.get("b")
    cache.clear()
    assert cache.size() == 0
    # Counters survive a clear
    assert cache.hits == 1


def test_keys_includes_expired_until_swept(cache, clock):
    cache.set("short", 1, 1)
    cache.set("long", 2, 100)
    clock.advance(5)

    keys = cache.keys()
    assert sorted(keys) == ["long", "short"]
    assert sorted(keys) == ["long", "short"]


def test_delete_while_iterating_keys(cache):
    for key in ["metrics_7d_biz1", "charts_7d_all_biz1", "metrics_7d_biz2"]:
        cache.set(key, 1)

    for key in cache.keys():
        if key.endswith("biz1"):
            cache.delete(key)

    assert cache.keys() == ["metrics_7d_biz2"]


def test_cleanup_sweeps_only_expired(cache, clock):
    cache.set("short", 1, 1)
    cache.set("long", 2, 100)
    clock.advance(5)

    assert cache.cleanup() == 1
    assert list(cache.keys()) == ["long"]
    # Sweeping does not touch the counters
    assert cache.hits == 0 and cache.misses == 0


def test_hit_rate(cache):
    assert cache.get_hit_rate() == 0

    cache.set("k", "v")
    cache.get("k")
    cache.get("k")
    cache.get("missing")
    assert cache.get_hit_rate() == "66.67"


def test_clear_by_pattern_removes_keys_containing_substring(cache):
    for key in ["metrics_7d_foo", "foo", "charts_7d_all_bar", "platforms_foobar_1", "fo_o"]:
        cache.set(key, 1)

    removed = cache.clear_by_pattern("*foo*")

    assert removed == 3
    assert sorted(cache.keys()) == ["charts_7d_all_bar", "fo_o"]


def test_clear_by_pattern_treats_regex_characters_literally(cache):
    cache.set("metrics_7d_shop.com", 1)
    cache.set("metrics_7d_shopXcom", 2)
    cache.set("metrics_(7d)", 3)

    cache.clear_by_pattern("*shop.com*")
    cache.clear_by_pattern("*(7d)*")

    assert list(cache.keys()) == ["metrics_7d_shopXcom"]


def test_clear_by_pattern_matches_whole_key(cache):
    cache.set("metrics_7d_default", 1)
    cache.set("charts_7d_all_default", 2)

    cache.clear_by_pattern("metrics_*")

    assert list(cache.keys()) == ["charts_7d_all_default"]
