"""Report ordering flag, toggled from the keyboard and read by the reporter."""
from __future__ import annotations

import enum
import threading


class SortMode(enum.Enum):
    BY_TOTAL = "total"
    BY_DELTA = "delta"


class SortModeControl:
    # separate from the ledger lock: a keypress never waits on ingestion
    def __init__(self, initial: SortMode = SortMode.BY_TOTAL):
        self._lock = threading.Lock()
        self._mode = initial

    def get(self) -> SortMode:
        with self._lock:
            return self._mode

    def toggle(self) -> SortMode:
        with self._lock:
            self._mode = SortMode.BY_DELTA if self._mode is SortMode.BY_TOTAL else SortMode.BY_TOTAL
            return self._mode
