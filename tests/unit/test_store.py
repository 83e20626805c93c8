"""Tests for the progress snapshot store."""

from __future__ import annotations

import threading

from reviewload.metrics.models import ProgressSnapshot
from reviewload.metrics.store import ProgressStore


def _snap(elapsed: float) -> ProgressSnapshot:
    return ProgressSnapshot(
        timestamp=elapsed,
        elapsed_seconds=elapsed,
        target_callers=1,
        active_callers=1,
    )


class TestProgressStore:
    def test_empty(self):
        store = ProgressStore()
        assert len(store) == 0
        assert store.get_latest() is None
        assert store.get_all() == []

    def test_append_and_latest(self):
        store = ProgressStore()
        store.append(_snap(0.0))
        store.append(_snap(1.0))
        assert len(store) == 2
        latest = store.get_latest()
        assert latest is not None
        assert latest.elapsed_seconds == 1.0

    def test_get_all_returns_copy(self):
        store = ProgressStore()
        store.append(_snap(0.0))
        snapshots = store.get_all()
        snapshots.clear()
        assert len(store) == 1

    def test_concurrent_appends(self):
        store = ProgressStore()

        def _writer() -> None:
            for i in range(200):
                store.append(_snap(float(i)))

        threads = [threading.Thread(target=_writer) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(store) == 800
