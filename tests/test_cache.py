from __future__ import annotations

from boardflow.cache import TTLCache, digest_key


class FakeClock:
    def __init__(self) -> None:
        self.now = 100.0

    def __call__(self) -> float:
        return self.now


def test_entries_expire_after_ttl() -> None:
    clock = FakeClock()
    cache: TTLCache[int] = TTLCache(60.0, clock=clock)
    cache.set("point", 3)

    clock.now += 59.0
    assert cache.get("point") == 3

    clock.now += 1.0
    assert cache.get("point") is None
    assert "point" not in cache
    assert len(cache) == 0


def test_oldest_entry_evicted_when_full() -> None:
    cache: TTLCache[str] = TTLCache(60.0, max_size=2, clock=FakeClock())
    cache.set("a", "first")
    cache.set("b", "second")
    cache.set("a", "refreshed")
    cache.set("c", "third")

    assert cache.get("b") is None
    assert cache.get("a") == "refreshed"
    assert cache.get("c") == "third"


def test_invalidate_and_clear() -> None:
    cache: TTLCache[int] = TTLCache(60.0, clock=FakeClock())
    cache.set("a", 1)
    cache.set("b", 2)

    cache.invalidate("a")
    assert cache.get("a") is None
    assert cache.get("b") == 2

    cache.clear()
    assert len(cache) == 0


def test_digest_key_depends_on_every_part() -> None:
    corpus = ["Use tabs for navigation", "Keep the palette muted"]

    assert digest_key("point", corpus) == digest_key("point", list(corpus))
    assert digest_key("point", corpus) != digest_key("point", corpus[:1])
    assert digest_key("point", corpus) != digest_key("other point", corpus)
