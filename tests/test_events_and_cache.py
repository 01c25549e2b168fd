from localmatch.core.cache import LocationCache, LocationStore
from localmatch.core.events import EventEmitter
from localmatch.domain.models import Coordinates, Location


def _location(ts: int, source: str = "device") -> Location:
    return Location(
        coordinates=Coordinates(latitude=1.0, longitude=2.0),
        timestamp_millis=ts,
        source=source,
    )


def test_emitter_dispatches_in_registration_order():
    emitter: EventEmitter[int] = EventEmitter("test")
    calls = []
    emitter.subscribe(lambda v: calls.append(("a", v)))
    emitter.subscribe(lambda v: calls.append(("b", v)))
    emitter.emit(1)
    emitter.emit(2)
    assert calls == [("a", 1), ("b", 1), ("a", 2), ("b", 2)]
    assert len(emitter) == 2


def test_emitter_isolates_failing_listener():
    emitter: EventEmitter[str] = EventEmitter("test")
    calls = []

    def broken(_):
        raise RuntimeError("boom")

    emitter.subscribe(broken)
    emitter.subscribe(calls.append)
    emitter.emit("x")
    assert calls == ["x"]


def test_emitter_listener_can_unsubscribe_itself_during_dispatch():
    emitter: EventEmitter[str] = EventEmitter("test")
    calls = []
    holder = {}

    def once(value):
        calls.append(value)
        holder["unsubscribe"]()

    holder["unsubscribe"] = emitter.subscribe(once)
    emitter.emit("first")
    emitter.emit("second")
    assert calls == ["first"]
    assert len(emitter) == 0


def test_cache_ttl_is_checked_on_read():
    cache = LocationCache(expiry_millis=1_000)
    loc = _location(ts=10_000)
    cache.put(loc, now_millis=10_000)

    assert cache.get(10_500) == loc
    assert cache.get(11_000) == loc
    assert cache.get(11_001) is None
    # The entry itself is kept; only reads treat it as stale.
    assert cache.peek().location == loc


def test_cache_put_replaces_whole_entry():
    cache = LocationCache(expiry_millis=1_000)
    first = cache.put(_location(ts=0), now_millis=0)
    second = cache.put(_location(ts=500, source="network"), now_millis=500)
    assert cache.peek() is second
    assert first.location.source == "device"
    cache.clear()
    assert cache.peek() is None


def test_store_round_trips_and_clears(tmp_path):
    store = LocationStore(tmp_path / "nested")
    assert store.load() is None

    loc = _location(ts=123)
    store.save(loc)
    assert store.load() == loc
    assert not store.path.with_suffix(".tmp").exists()

    store.clear()
    store.clear()
    assert not store.path.exists()


def test_store_ignores_invalid_payload(tmp_path):
    store = LocationStore(tmp_path)
    store.path.write_text('{"coordinates": {"latitude": 999, "longitude": 0}}', encoding="utf-8")
    assert store.load() is None
