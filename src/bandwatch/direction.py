"""Outbound/inbound inference from packet addressing."""
from __future__ import annotations

import enum
import ipaddress
import typing as t

from .flow import Flow, normalize_mac
from .identity import LocalIdentity


class Direction(enum.Enum):
    OUTBOUND = "outbound"
    INBOUND = "inbound"
    UNKNOWN = "unknown"


def classify(identity: LocalIdentity, link_flow: t.Optional[Flow], network_flow: t.Optional[Flow]) -> Direction:
    """Decide packet direction relative to the local interface.

    The link layer wins when both the local MAC and a link flow are known;
    otherwise the network source is compared against the local IPs.
    """
    if identity.link_address and link_flow is not None:
        if normalize_mac(link_flow.src) == identity.link_address:
            return Direction.OUTBOUND
        return Direction.INBOUND
    if identity.local_ips and network_flow is not None:
        try:
            src = ipaddress.ip_address(network_flow.src)
        except ValueError:
            return Direction.INBOUND
        if src in identity.local_ips:
            return Direction.OUTBOUND
        return Direction.INBOUND
    return Direction.UNKNOWN
