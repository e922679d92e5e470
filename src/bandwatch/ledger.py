"""Per-prefix byte accounting shared by the ingest loop and the reporter.

Both maps live behind one lock so a flush is atomic with respect to
concurrent `add` calls: every byte lands either in the flushed snapshot or
in the next window, never in both and never in neither.
"""
from __future__ import annotations

import dataclasses
import threading
import time
import typing as t
from collections import defaultdict


@dataclasses.dataclass
class Flush:
    delta: dict[str, int]
    totals: dict[str, int]
    # seconds since the previous flush (or since the ledger was created)
    elapsed: float


class Ledger:
    def __init__(self, clock: t.Callable[[], float] = time.monotonic):
        self._lock = threading.Lock()
        self._delta: dict[str, int] = defaultdict(int)
        self._totals: dict[str, int] = defaultdict(int)
        self._clock = clock
        self._last_flush = clock()

    def add(self, key: str, length: int) -> None:
        with self._lock:
            self._delta[key] += length

    def flush_and_merge(self) -> Flush:
        """Drain the delta map into the cumulative totals.

        Returns the drained deltas, a copy of the merged totals, and the
        elapsed time of the window that just closed.
        """
        with self._lock:
            delta = dict(self._delta)
            self._delta = defaultdict(int)
            for k, v in delta.items():
                self._totals[k] += v
            totals = dict(self._totals)
            now = self._clock()
            elapsed = now - self._last_flush
            self._last_flush = now
        return Flush(delta=delta, totals=totals, elapsed=elapsed)

    def totals(self) -> dict[str, int]:
        with self._lock:
            return dict(self._totals)
