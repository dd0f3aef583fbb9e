# backend/app/services/runtime_metrics.py
from __future__ import annotations

import threading


class _EngineCounters:
    """Process-local counters exposed on /api/metrics (scores submitted, sweeps run, rebuilds)."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._counts: dict[str, int] = {}

    def inc(self, name: str, n: int = 1) -> None:
        with self._lock:
            self._counts[name] = int(self._counts.get(name, 0)) + int(n)

    def get(self, name: str) -> int:
        with self._lock:
            return int(self._counts.get(name, 0))

    def snapshot(self) -> dict[str, int]:
        with self._lock:
            return dict(sorted(self._counts.items()))

    def reset(self) -> None:
        with self._lock:
            self._counts.clear()


METRICS = _EngineCounters()
