"""Decoded packet model shared by the capture sources and the ingest loop.

Only the fields the aggregation engine consumes are kept: link-layer and
network-layer address pairs plus the IP-declared length.
"""
from __future__ import annotations

import dataclasses
import typing as t


@dataclasses.dataclass(frozen=True)
class Flow:
    """A (source, destination) address pair at one layer."""

    src: str
    dst: str


@dataclasses.dataclass
class DecodedPacket:
    ts: float
    link_flow: t.Optional[Flow]
    network_flow: t.Optional[Flow]
    ip_version: t.Optional[int] = None
    # IPv4: header total length; IPv6: payload length
    ip_length: int = 0


def format_mac(raw: t.Optional[bytes]) -> t.Optional[str]:
    """Return lowercase colon-separated MAC text for 6 raw bytes."""
    if not raw or len(raw) != 6:
        return None
    return ":".join(f"{b:02x}" for b in raw)


def normalize_mac(text: t.Optional[str]) -> t.Optional[str]:
    if not text:
        return None
    parts = text.replace("-", ":").lower().split(":")
    if len(parts) != 6:
        return None
    try:
        return ":".join(f"{int(p, 16):02x}" for p in parts)
    except ValueError:
        return None
