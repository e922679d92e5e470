"""Periodic top-N report over the ledger.

Each cycle drains the ledger, ranks every prefix seen so far by total or by
the just-drained delta, and prints one line per selected prefix:

    93.184.216.0/24[United States California Los Angeles] (active, 2): 1.2 MiB (40 KiB/s)

Ties are ordered by prefix key so repeated runs print identical reports.
"""
from __future__ import annotations

import logging
import math
import sys
import time
import typing as t

from .connections import active_connection_index
from .geo import GeoLookup
from .ledger import Ledger
from .prefix import prefix_address
from .sort_mode import SortMode, SortModeControl

log = logging.getLogger("bandwatch.report")

REPORT_INTERVAL = 5.0

BOLD_START = "\u001b[1m"
BOLD_END = "\u001b[22m"

_IEC_UNITS = ["B", "KiB", "MiB", "GiB", "TiB", "PiB", "EiB"]


def human_bytes(n: int) -> str:
    """Format a byte count with 1024-based units: '9 B', '300 B', '1.5 KiB'."""
    n = int(n)
    if n < 10:
        return f"{n} B"
    e = min(int(math.floor(math.log(n, 1024))), len(_IEC_UNITS) - 1)
    # guard float log rounding just below a power of 1024
    if e + 1 < len(_IEC_UNITS) and n >= 1024 ** (e + 1):
        e += 1
    val = math.floor(n / 1024 ** e * 10 + 0.5) / 10
    if val < 10:
        return f"{val:.1f} {_IEC_UNITS[e]}"
    return f"{val:.0f} {_IEC_UNITS[e]}"


def rank_keys(totals: dict[str, int], delta: dict[str, int], mode: SortMode, top: int) -> list[str]:
    """Return at most `top` keys of `totals`, largest first under `mode`."""
    if mode is SortMode.BY_DELTA:
        ordered = sorted(totals, key=lambda k: (-delta.get(k, 0), k))
    else:
        ordered = sorted(totals, key=lambda k: (-totals[k], k))
    return ordered[:max(0, top)]


def format_line(key: str, total: int, rate: int, location: str = "", active: int = 0) -> str:
    connection = ""
    if active:
        connection = f"{BOLD_START} (active, {active}){BOLD_END}"
    return f"{key}[{location}]{connection}: {human_bytes(total)} ({human_bytes(rate)}/s)"


class Reporter:
    def __init__(
        self,
        ledger: Ledger,
        sort_control: SortModeControl,
        top: int = 10,
        geo: t.Optional[GeoLookup] = None,
        netstat: bool = True,
        out: t.Optional[t.TextIO] = None,
        interval: float = REPORT_INTERVAL,
        probe: t.Callable[[], t.Mapping[str, int]] = active_connection_index,
    ):
        self.ledger = ledger
        self.sort_control = sort_control
        self.top = top
        self.geo = geo
        self.netstat = netstat
        self.out = out
        self.interval = interval
        self.probe = probe

    def _location(self, key: str) -> str:
        if self.geo is None:
            return ""
        rec = self.geo.lookup(prefix_address(key))
        return rec.label() if rec else ""

    def build_lines(self) -> list[str]:
        """Run one report cycle and return its lines (without the separator)."""
        active: t.Mapping[str, int] = {}
        if self.netstat:
            active = self.probe()

        flush = self.ledger.flush_and_merge()
        mode = self.sort_control.get()
        seconds = max(1, int(flush.elapsed))

        lines = []
        for key in rank_keys(flush.totals, flush.delta, mode, self.top):
            rate = flush.delta.get(key, 0) // seconds
            lines.append(format_line(key, flush.totals[key], rate, self._location(key), active.get(key, 0)))
        return lines

    def report_once(self) -> list[str]:
        lines = self.build_lines()
        out = self.out or sys.stdout
        for line in lines:
            print(line, file=out)
        print(file=out, flush=True)
        return lines

    def run(self) -> None:
        """Report every `interval` seconds, forever."""
        while True:
            time.sleep(self.interval)
            try:
                self.report_once()
            except Exception:
                log.exception("report cycle failed")
