"""Tests for the pending login state store."""

# pylint: disable=protected-access

from __future__ import annotations

import time

from shanraq.auth.state import PendingState, PendingStateStore, generate_state


class TestGenerateState:
    """Tests for state generation."""

    def test_unique_and_urlsafe(self) -> None:
        """Generated states are distinct URL-safe strings."""
        states = {generate_state() for _ in range(100)}
        assert len(states) == 100
        assert all(s.replace("-", "").replace("_", "").isalnum() for s in states)


class TestPendingStateStore:
    """Tests for PendingStateStore."""

    def test_put_and_pop(self) -> None:
        """A stored state is returned once with its provider."""
        store = PendingStateStore()
        store.put("s1", "demo")
        assert "s1" in store

        pending = store.pop("s1")
        assert isinstance(pending, PendingState)
        assert pending.provider == "demo"
        assert store.pop("s1") is None
        assert "s1" not in store

    def test_pop_unknown(self) -> None:
        """Unknown states yield None."""
        assert PendingStateStore().pop("missing") is None

    def test_expired_states_are_dropped(self) -> None:
        """States older than max_age are evicted."""
        store = PendingStateStore(max_age=60)
        store._store["old"] = PendingState(provider="demo", created_at=time.time() - 120)
        store.put("new", "demo")

        assert store.pop("old") is None
        assert len(store) == 1

    def test_capacity_evicts_oldest(self) -> None:
        """At capacity the oldest state makes room for the new one."""
        store = PendingStateStore(max_pending=2)
        now = time.time()
        store._store["a"] = PendingState(provider="demo", created_at=now - 2)
        store._store["b"] = PendingState(provider="demo", created_at=now - 1)

        store.put("c", "demo")

        assert "a" not in store
        assert "b" in store
        assert "c" in store
        assert len(store) == 2

    def test_cleanup_counts_removed(self) -> None:
        """cleanup reports how many expired states it removed."""
        store = PendingStateStore(max_age=60)
        store._store["x"] = PendingState(provider="demo", created_at=time.time() - 61)
        store._store["y"] = PendingState(provider="demo", created_at=time.time())
        assert store.cleanup() == 1
        assert len(store) == 1
