"""Monitor wiring: identity, capture, ingest loop, reporter and key reader.

Live mode runs three activities: the ingest loop on the calling thread, the
reporter and the keyboard reader on daemon threads. They share only the
ledger and the sort-mode control. Replay mode ingests the whole file and
prints a single report at the end.
"""
from __future__ import annotations

import logging
import threading
import time
import typing as t

from .config import MonitorConfig
from .flow import DecodedPacket
from .geo import GeoLookup
from .identity import LocalIdentity, resolve_identity
from .keyboard import run_key_reader
from .ledger import Ledger
from .live_capture import capture_packets
from .live_ingest import IngestCounters, feed_packets
from .report import Reporter
from .sort_mode import SortModeControl

log = logging.getLogger("bandwatch.monitor")


class Monitor:
    def __init__(
        self,
        config: MonitorConfig,
        out: t.Optional[t.TextIO] = None,
        clock: t.Callable[[], float] = time.monotonic,
        probe: t.Optional[t.Callable[[], t.Mapping[str, int]]] = None,
    ) -> None:
        self.config = config
        self.out = out
        self.ledger = Ledger(clock=clock)
        self.sort_control = SortModeControl(config.initial_sort_mode)
        self.identity: t.Optional[LocalIdentity] = None
        self.geo: t.Optional[GeoLookup] = None
        self.counters = IngestCounters()
        self._probe = probe

    def resolve_identity(self) -> LocalIdentity:
        cfg = self.config
        if cfg.local_ips or cfg.local_mac:
            identity = LocalIdentity.from_values(cfg.local_mac, cfg.local_ips)
        else:
            identity = resolve_identity(cfg.interface)
        if identity.link_address:
            log.info("MAC: %s", identity.link_address)
        for ip in sorted(identity.local_ips, key=lambda a: (a.version, a)):
            log.info("IP: %s", ip)
        self.identity = identity
        return identity

    def build_reporter(self) -> Reporter:
        kwargs = {}
        if self._probe is not None:
            kwargs["probe"] = self._probe
        return Reporter(
            self.ledger,
            self.sort_control,
            top=self.config.top,
            geo=self.geo,
            netstat=self.config.netstat,
            out=self.out,
            interval=self.config.interval,
            **kwargs,
        )

    def open_capture(self) -> t.Iterator[DecodedPacket]:
        cfg = self.config
        return capture_packets(interface=cfg.interface, pcap_file=cfg.pcap_file, bpf_filter=cfg.bpf_filter)

    def run(self, packets: t.Optional[t.Iterable[DecodedPacket]] = None) -> IngestCounters:
        """Run until the capture source ends.

        Raises InterfaceNotFound, PermissionError or CaptureError; all are
        fatal to the run and left to the caller to report.
        """
        identity = self.identity or self.resolve_identity()
        self.geo = GeoLookup.open(self.config.geo_db_path)
        reporter = self.build_reporter()
        source = packets if packets is not None else self.open_capture()
        log.info("Reporting %s traffic, top %d", self.config.direction_label, self.config.top)

        if self.config.pcap_file:
            feed_packets(source, identity, self.ledger, inbound=self.config.inbound, counters=self.counters)
            reporter.report_once()
            return self.counters

        threading.Thread(target=reporter.run, name="bandwatch-report", daemon=True).start()
        threading.Thread(target=run_key_reader, args=(self.sort_control,), name="bandwatch-keys", daemon=True).start()
        print("Starting...", file=self.out, flush=True)
        return feed_packets(source, identity, self.ledger, inbound=self.config.inbound, counters=self.counters)
