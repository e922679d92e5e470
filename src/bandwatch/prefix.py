"""Prefix bucketing: the aggregation key for a remote address."""
from __future__ import annotations

import ipaddress
import typing as t

IPV4_PREFIX_LEN = 24
IPV6_PREFIX_LEN = 48

AddressLike = t.Union[str, ipaddress.IPv4Address, ipaddress.IPv6Address]


def prefix_key(ip: AddressLike) -> str:
    """Return the canonical /24 (IPv4) or /48 (IPv6) network for `ip`.

    Raises ValueError if `ip` is not a valid address.
    """
    addr = ip if isinstance(ip, (ipaddress.IPv4Address, ipaddress.IPv6Address)) else ipaddress.ip_address(ip)
    plen = IPV4_PREFIX_LEN if addr.version == 4 else IPV6_PREFIX_LEN
    return str(ipaddress.ip_network((addr, plen), strict=False))


def prefix_address(key: str) -> str:
    """Address part of a prefix key, e.g. '8.8.8.0' for '8.8.8.0/24'."""
    return key.split("/", 1)[0]
