"""
Tests for usim.state (session-scoped UI state store).
"""

import threading

from usim.state import UIStateStore


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class TestUIStateStore:
    def test_store_and_get_are_isolated_copies(self):
        store = UIStateStore()
        ui = {"1": {"type": "label", "text": "a"}}
        store.store("dashboard", "s1", ui, parent="main")

        ui["1"]["text"] = "mutated"
        loaded = store.get("dashboard", "s1")
        assert loaded == {"1": {"type": "label", "text": "a"}}

        loaded["1"]["text"] = "changed again"
        assert store.get("dashboard", "s1")["1"]["text"] == "a"

    def test_sessions_are_separate(self):
        store = UIStateStore()
        store.store("dashboard", "s1", {"1": {"type": "label"}})
        assert store.get("dashboard", "s2") is None

    def test_empty_ui_not_stored(self):
        store = UIStateStore()
        assert store.store("dashboard", "s1", {}) is False
        assert store.get("dashboard", "s1") is None

    def test_entries_expire(self):
        clock = FakeClock()
        store = UIStateStore(ttl_seconds=10, clock=clock)
        store.store("dashboard", "s1", {"1": {"type": "label"}})

        clock.now += 5
        assert store.get("dashboard", "s1") is not None
        clock.now += 6
        assert store.get("dashboard", "s1") is None

    def test_root_components_track_parent(self):
        store = UIStateStore()
        store.store("dashboard", "s1", {"1": {"type": "container"}}, parent="main")
        store.store("demo/button-demo", "s1", {"2": {"type": "container"}}, parent="modal")
        store.store("admin/reports", "s1", {"3": {"type": "container"}}, parent="main")

        assert store.root_components("s1") == {"main": "admin/reports", "modal": "demo/button-demo"}
        assert store.root_components("other") == {}

    def test_clear(self):
        store = UIStateStore()
        store.store("dashboard", "s1", {"1": {"type": "label"}})
        assert store.clear("dashboard", "s1") is True
        assert store.clear("dashboard", "s1") is False

    def test_key_value_helpers(self):
        store = UIStateStore()
        store.store_key_value("modal_caller", "s1", {"screen": "dashboard"})
        assert store.get_key_value("modal_caller", "s1") == {"screen": "dashboard"}
        assert store.clear_key_value("modal_caller", "s1") is True
        assert store.get_key_value("modal_caller", "s1") is None

    def test_cleanup_expired(self):
        clock = FakeClock()
        store = UIStateStore(ttl_seconds=10, clock=clock)
        store.store("a", "s1", {"1": {"type": "label"}})
        store.store_key_value("k", "s1", 1)
        clock.now += 11
        store.store("b", "s1", {"1": {"type": "label"}})

        assert store.cleanup_expired() == 2
        assert store.get("b", "s1") is not None

    def test_concurrent_writers(self):
        store = UIStateStore()

        def writer(n: int) -> None:
            for i in range(50):
                store.store(f"screen-{n}", "s1", {str(i): {"type": "label"}}, parent=f"p{n}")

        threads = [threading.Thread(target=writer, args=(n,)) for n in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(store.root_components("s1")) == 8
        assert store.get("screen-3", "s1") == {"49": {"type": "label"}}


class TestEviction:
    def test_cleanup_drops_roots_of_expired_sessions(self):
        clock = FakeClock()
        store = UIStateStore(ttl_seconds=10, clock=clock, cleanup_every=0)
        for n in range(50):
            store.store("dashboard", f"session-{n}", {"1": {"type": "container"}}, parent="main")
        assert store.stats() == {"entries": 50, "sessions": 50}

        clock.now += 11
        assert store.cleanup_expired() == 50
        assert store.stats() == {"entries": 0, "sessions": 0}

    def test_cleanup_keeps_live_sessions(self):
        clock = FakeClock()
        store = UIStateStore(ttl_seconds=10, clock=clock, cleanup_every=0)
        store.store("dashboard", "old", {"1": {"type": "container"}}, parent="main")
        clock.now += 8
        store.store("dashboard", "fresh", {"1": {"type": "container"}}, parent="main")
        clock.now += 5

        store.cleanup_expired()

        assert store.root_components("old") == {}
        assert store.root_components("fresh") == {"main": "dashboard"}
        assert store.stats() == {"entries": 1, "sessions": 1}

    def test_writes_trigger_sweep(self):
        clock = FakeClock()
        store = UIStateStore(ttl_seconds=10, clock=clock, cleanup_every=3)
        store.store("dashboard", "s1", {"1": {"type": "container"}}, parent="main")
        store.store("dashboard", "s2", {"1": {"type": "container"}}, parent="main")
        clock.now += 11

        store.store("dashboard", "s3", {"1": {"type": "container"}}, parent="main")

        assert store.stats() == {"entries": 1, "sessions": 1}

    def test_cleared_screen_leaves_root_map(self):
        store = UIStateStore()
        store.store("dashboard", "s1", {"1": {"type": "container"}}, parent="main")
        store.clear("dashboard", "s1")
        assert store.root_components("s1") == {}
