"""Packet decoding helpers: convert raw frames into DecodedPacket."""
from __future__ import annotations

import socket
import typing as t

import dpkt

from .flow import DecodedPacket, Flow, format_mac

# pcap link-layer header types (www.tcpdump.org/linktypes.html)
LINKTYPE_NULL = 0
LINKTYPE_ETHERNET = 1
LINKTYPE_RAW = 101
LINKTYPE_LOOP = 108
LINKTYPE_LINUX_SLL = 113
# DLT_RAW as written by some BSD/OpenBSD libpcap builds
_DLT_RAW_ALIASES = (12, 14)


def _split_link(linktype: int, raw: bytes):
    """Return (link_flow, l3); l3 is a dpkt IP/IP6 object, raw bytes or None."""
    if linktype == LINKTYPE_ETHERNET:
        eth = dpkt.ethernet.Ethernet(raw)
        src = format_mac(getattr(eth, "src", None))
        dst = format_mac(getattr(eth, "dst", None))
        link = Flow(src=src, dst=dst) if src and dst else None
        # dpkt leaves undecodable or non-IP payloads as bytes
        return link, eth.data if isinstance(eth.data, (dpkt.ip.IP, dpkt.ip6.IP6)) else None
    if linktype == LINKTYPE_LINUX_SLL:
        sll = dpkt.sll.SLL(raw)
        # cooked capture records a single (sender) address
        hlen = sll.hlen
        src = format_mac(sll.hdr[:hlen]) if hlen == 6 else None
        l3 = sll.data if isinstance(sll.data, (dpkt.ip.IP, dpkt.ip6.IP6)) else None
        return (Flow(src=src, dst="") if src else None), l3
    if linktype in (LINKTYPE_NULL, LINKTYPE_LOOP):
        return None, dpkt.loopback.Loopback(raw).data
    if linktype == LINKTYPE_RAW or linktype in _DLT_RAW_ALIASES:
        return None, raw
    raise ValueError(f"unsupported link type {linktype}")


def _decode_ip(l3) -> t.Optional[t.Union[dpkt.ip.IP, dpkt.ip6.IP6]]:
    if isinstance(l3, (dpkt.ip.IP, dpkt.ip6.IP6)):
        return l3
    if not isinstance(l3, (bytes, bytearray)) or not l3:
        return None
    version = l3[0] >> 4
    if version == 4:
        return dpkt.ip.IP(bytes(l3))
    if version == 6:
        return dpkt.ip6.IP6(bytes(l3))
    return None


def parse_raw(ts: float, raw: bytes, linktype: int = LINKTYPE_ETHERNET) -> t.Optional[DecodedPacket]:
    """Decode a captured frame and return a DecodedPacket or None.

    Frames that fail to decode at the link layer yield None. A frame whose
    link layer decodes but which carries no IP packet yields a DecodedPacket
    without a network flow.
    """
    try:
        link_flow, l3 = _split_link(linktype, raw)
    except (dpkt.UnpackError, ValueError):
        return None

    try:
        ip = _decode_ip(l3)
    except dpkt.UnpackError:
        ip = None
    if ip is None:
        return DecodedPacket(ts=ts, link_flow=link_flow, network_flow=None)

    if isinstance(ip, dpkt.ip.IP):
        try:
            src_ip = socket.inet_ntoa(ip.src)
            dst_ip = socket.inet_ntoa(ip.dst)
        except OSError:
            return DecodedPacket(ts=ts, link_flow=link_flow, network_flow=None)
        return DecodedPacket(ts=ts, link_flow=link_flow, network_flow=Flow(src=src_ip, dst=dst_ip), ip_version=4, ip_length=int(ip.len))

    try:
        src_ip = socket.inet_ntop(socket.AF_INET6, ip.src)
        dst_ip = socket.inet_ntop(socket.AF_INET6, ip.dst)
    except (OSError, ValueError):
        return DecodedPacket(ts=ts, link_flow=link_flow, network_flow=None)
    return DecodedPacket(ts=ts, link_flow=link_flow, network_flow=Flow(src=src_ip, dst=dst_ip), ip_version=6, ip_length=int(ip.plen))
