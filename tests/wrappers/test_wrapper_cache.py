from modgate.wrappers.wrapper_cache import WrapperCache


class TickClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def test_get_or_create_builds_once():
    cache = WrapperCache("things", TickClock())
    built = []

    def factory():
        built.append(object())
        return built[-1]

    first = cache.get_or_create("a", factory)
    second = cache.get_or_create("a", factory)

    assert first is second
    assert len(built) == 1
    assert "a" in cache
    assert len(cache) == 1


def test_evict_returns_wrapper():
    cache = WrapperCache("things", TickClock())
    wrapper = cache.get_or_create("a", object)

    assert cache.evict("a") is wrapper
    assert cache.evict("a") is None
    assert cache.get("a") is None


def test_evict_idle_respects_access_and_pins():
    clock = TickClock()
    cache = WrapperCache("things", clock)
    cache.get_or_create("old", object)
    cache.get_or_create("pinned", object)
    cache.get_or_create("touched", object)

    clock.now = 100.0
    cache.get("touched")
    clock.now = 150.0

    evicted = cache.evict_idle(60.0, pinned=lambda key: key == "pinned")

    assert evicted == 1
    assert "old" not in cache
    assert "pinned" in cache
    assert "touched" in cache


def test_values_does_not_refresh_access():
    clock = TickClock()
    cache = WrapperCache("things", clock)
    cache.get_or_create("a", object)

    clock.now = 100.0
    cache.values()

    assert cache.evict_idle(10.0) == 1

