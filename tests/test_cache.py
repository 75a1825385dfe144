"""Stats cache expiry and invalidation."""
from datetime import date

from drinklog.cache import StatsCache, cache_key
from drinklog.models import DateRange


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


RANGE = DateRange(date(2024, 1, 15), date(2024, 1, 21))


def test_cache_key_includes_record_count():
    assert cache_key("general", "week", RANGE, 3) != cache_key("general", "week", RANGE, 4)
    assert cache_key("general", "week", RANGE, 3) == cache_key("general", "week", RANGE, 3)


def test_entries_expire_after_ttl():
    clock = FakeClock()
    cache = StatsCache(ttl_seconds=60, clock=clock)
    cache.set("k", {"total": 1})
    clock.now += 59
    assert cache.get("k") == {"total": 1}
    clock.now += 2
    assert cache.get("k") is None
    assert len(cache) == 0


def test_get_or_compute_only_computes_once():
    cache = StatsCache(clock=FakeClock())
    calls = []

    def compute():
        calls.append(1)
        return {"total": len(calls)}

    assert cache.get_or_compute("k", compute) == {"total": 1}
    assert cache.get_or_compute("k", compute) == {"total": 1}
    assert len(calls) == 1


def test_invalidate_drops_everything():
    cache = StatsCache(clock=FakeClock())
    cache.set("a", 1)
    cache.set("b", 2)
    cache.invalidate()
    assert len(cache) == 0
    assert cache.get("a") is None
