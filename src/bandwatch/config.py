"""Startup configuration for a monitor run."""
from __future__ import annotations

import dataclasses
import typing as t

from .report import REPORT_INTERVAL
from .sort_mode import SortMode


@dataclasses.dataclass
class MonitorConfig:
    interface: str = "eth0"
    top: int = 10
    inbound: bool = False
    netstat: bool = True
    sort_by_delta: bool = False
    geo_db_path: str = ""
    interval: float = REPORT_INTERVAL
    pcap_file: t.Optional[str] = None
    bpf_filter: t.Optional[str] = None
    # identity overrides, mainly for replaying captures taken elsewhere
    local_ips: tuple = ()
    local_mac: t.Optional[str] = None

    def __post_init__(self):
        if int(self.top) < 1:
            raise ValueError(f"top must be at least 1, got {self.top}")
        if float(self.interval) <= 0:
            raise ValueError(f"interval must be positive, got {self.interval}")
        self.local_ips = tuple(self.local_ips or ())

    @property
    def initial_sort_mode(self) -> SortMode:
        return SortMode.BY_DELTA if self.sort_by_delta else SortMode.BY_TOTAL

    @property
    def direction_label(self) -> str:
        return "inbound" if self.inbound else "outbound"
