"""Thread-safe in-memory time-series of load-phase progress snapshots."""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from reviewload.metrics.models import ProgressSnapshot


class ProgressStore:
    """Thread-safe storage for a time-series of ``ProgressSnapshot`` objects.

    The session appends one snapshot per tick; the runner and the CLI live
    display read them.  A ``threading.Lock`` protects concurrent access.
    """

    def __init__(self) -> None:
        self._snapshots: list[ProgressSnapshot] = []
        self._lock = threading.Lock()

    def append(self, snapshot: ProgressSnapshot) -> None:
        with self._lock:
            self._snapshots.append(snapshot)

    def get_all(self) -> list[ProgressSnapshot]:
        """Return a copy of all stored snapshots in chronological order."""
        with self._lock:
            return list(self._snapshots)

    def get_latest(self) -> ProgressSnapshot | None:
        """Return the most recent snapshot, or None if the store is empty."""
        with self._lock:
            if not self._snapshots:
                return None
            return self._snapshots[-1]

    def __len__(self) -> int:
        with self._lock:
            return len(self._snapshots)
