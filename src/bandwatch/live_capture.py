"""Capture sources: live sniffing and deterministic pcap replay.

`capture_packets()` yields DecodedPacket objects from either source.

Design notes:
- Replay mode (`pcap_file`) is deterministic and ends at end of file.
- Live mode (`interface`) uses scapy's AsyncSniffer and runs until the
  sniffer stops. A stopped sniffer is an error: it is raised as
  CaptureError (PermissionError passes through unchanged) and never retried.
- Frames are decoded with dpkt in both modes so live and replayed traffic
  go through the same parser.
"""
from __future__ import annotations

import logging
import queue
import typing as t

from .flow import DecodedPacket
from .ingest import iter_packets
from .packet import LINKTYPE_ETHERNET, LINKTYPE_LINUX_SLL, LINKTYPE_NULL, LINKTYPE_RAW, parse_raw

log = logging.getLogger("bandwatch.live_capture")

# outermost scapy layer -> pcap link type of its raw bytes
_SCAPY_LINKTYPES = {
    "Ether": LINKTYPE_ETHERNET,
    "CookedLinux": LINKTYPE_LINUX_SLL,
    "Loopback": LINKTYPE_NULL,
    "IP": LINKTYPE_RAW,
    "IPv6": LINKTYPE_RAW,
}


class CaptureError(RuntimeError):
    """The capture source failed or stopped producing packets."""


def replay_pcap(pcap_file: str, max_packets: t.Optional[int] = None) -> t.Iterator[DecodedPacket]:
    idx = 0
    for ts, raw, linktype in iter_packets(pcap_file):
        pkt = parse_raw(ts, raw, linktype)
        if pkt is None:
            continue
        yield pkt
        idx += 1
        if max_packets is not None and idx >= int(max_packets):
            break


def _stop_sniffer(sniffer) -> t.Optional[Exception]:
    """Stop a running sniffer; scapy re-raises the capture thread's error here."""
    if not getattr(sniffer, "running", False):
        return None
    try:
        sniffer.stop()
    except Exception as e:
        log.debug("sniffer stop failed: %s", e)
        return e
    return None


def _sniff_live(interface: str, bpf_filter: t.Optional[str], max_packets: t.Optional[int]) -> t.Iterator[DecodedPacket]:
    try:
        from scapy.all import AsyncSniffer
    except ImportError as e:
        raise CaptureError("scapy not available for live sniffing") from e

    frames: queue.Queue = queue.Queue()

    def _prn(pkt):
        linktype = _SCAPY_LINKTYPES.get(type(pkt).__name__)
        if linktype is None:
            return
        frames.put((float(getattr(pkt, "time", 0.0)), bytes(pkt), linktype))

    try:
        sniffer = AsyncSniffer(iface=interface, filter=bpf_filter, prn=_prn, store=False)
        sniffer.start()
    except PermissionError:
        raise
    except Exception as e:
        raise CaptureError(f"capture on {interface} failed to start: {e}") from e

    produced = 0
    current_linktype = None
    stop_err = None
    try:
        while True:
            try:
                ts, raw, linktype = frames.get(timeout=0.5)
            except queue.Empty:
                if sniffer.thread is None or not sniffer.thread.is_alive():
                    break
                continue
            if linktype != current_linktype:
                log.info("Capture link type: %d", linktype)
                current_linktype = linktype
            pkt = parse_raw(ts, raw, linktype)
            if pkt is None:
                continue
            yield pkt
            produced += 1
            if max_packets is not None and produced >= int(max_packets):
                return
    finally:
        stop_err = _stop_sniffer(sniffer)

    err = getattr(sniffer, "exception", None) or stop_err
    if isinstance(err, PermissionError):
        raise err
    if err is not None:
        raise CaptureError(f"capture on {interface} failed: {err}") from err
    raise CaptureError(f"capture on {interface} stopped")


def capture_packets(
    interface: t.Optional[str] = None,
    pcap_file: t.Optional[str] = None,
    bpf_filter: t.Optional[str] = None,
    max_packets: t.Optional[int] = None,
) -> t.Iterator[DecodedPacket]:
    """Yield decoded packets from a pcap replay or a live interface.

    `pcap_file` takes precedence over `interface`.
    """
    if pcap_file:
        log.info("Replaying capture file %s", pcap_file)
        yield from replay_pcap(pcap_file, max_packets=max_packets)
        return
    if not interface:
        raise CaptureError("no interface or pcap_file provided for capture")
    log.info("Capturing on %s%s", interface, f" (filter: {bpf_filter})" if bpf_filter else "")
    yield from _sniff_live(interface, bpf_filter, max_packets)
