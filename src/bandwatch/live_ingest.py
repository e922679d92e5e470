"""Ingest loop: classify decoded packets and fold their sizes into the ledger.

Packets are dropped without logging when they cannot be attributed to a
remote prefix (no network layer, zero length, unparsable address); that is
expected noise on any real interface.
"""
from __future__ import annotations

import dataclasses
import logging
import typing as t

from .direction import Direction, classify
from .flow import DecodedPacket
from .identity import LocalIdentity
from .ledger import Ledger
from .prefix import prefix_key

log = logging.getLogger("bandwatch.live_ingest")

# Added to the IP-declared length to approximate link framing and the IPv6
# fixed header. Not protocol-exact; kept constant across link types.
LENGTH_OVERHEAD = 40


@dataclasses.dataclass
class IngestCounters:
    seen: int = 0
    accounted: int = 0
    bytes: int = 0


def packet_size(pkt: DecodedPacket) -> int:
    if not pkt.ip_length:
        return 0
    return pkt.ip_length + LENGTH_OVERHEAD


def account_packet(pkt: DecodedPacket, identity: LocalIdentity, ledger: Ledger, inbound: bool = False) -> int:
    """Attribute one packet to its remote prefix.

    Returns the number of bytes added to the ledger (0 when dropped).
    """
    if pkt.network_flow is None:
        return 0
    outbound = classify(identity, pkt.link_flow, pkt.network_flow) is Direction.OUTBOUND
    if outbound == inbound:
        return 0
    size = packet_size(pkt)
    if size == 0:
        return 0
    remote = pkt.network_flow.src if inbound else pkt.network_flow.dst
    try:
        key = prefix_key(remote)
    except ValueError:
        return 0
    ledger.add(key, size)
    return size


def feed_packets(
    packets: t.Iterable[DecodedPacket],
    identity: LocalIdentity,
    ledger: Ledger,
    inbound: bool = False,
    counters: t.Optional[IngestCounters] = None,
) -> IngestCounters:
    """Consume `packets` until the source is exhausted.

    Errors raised by the source propagate to the caller unchanged.
    """
    counters = counters if counters is not None else IngestCounters()
    for pkt in packets:
        counters.seen += 1
        size = account_packet(pkt, identity, ledger, inbound=inbound)
        if size:
            counters.accounted += 1
            counters.bytes += size
    log.debug("Ingest finished: %d packets seen, %d accounted, %d bytes", counters.seen, counters.accounted, counters.bytes)
    return counters
