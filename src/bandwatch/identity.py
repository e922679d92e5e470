"""Local interface identity: link address and bound IPs."""
from __future__ import annotations

import dataclasses
import ipaddress
import logging
import socket
import typing as t

import psutil

from .flow import normalize_mac

log = logging.getLogger("bandwatch.identity")


class InterfaceNotFound(LookupError):
    """No host interface has the requested name."""


@dataclasses.dataclass(frozen=True)
class LocalIdentity:
    link_address: t.Optional[str] = None
    local_ips: frozenset = frozenset()

    @classmethod
    def from_values(cls, mac: t.Optional[str] = None, ips: t.Iterable[str] = ()) -> "LocalIdentity":
        parsed = set()
        for ip in ips:
            parsed.add(ipaddress.ip_address(ip.split("%", 1)[0]))
        link_address = normalize_mac(mac)
        if mac and link_address is None:
            raise ValueError(f"invalid MAC address: {mac!r}")
        return cls(link_address=link_address, local_ips=frozenset(parsed))


def resolve_identity(ifname: str) -> LocalIdentity:
    """Build the LocalIdentity for `ifname` from the host interface table.

    Raises InterfaceNotFound when no interface matches. Addresses that do not
    parse are logged and skipped.
    """
    table = psutil.net_if_addrs()
    if ifname not in table:
        raise InterfaceNotFound(f"interface not found: {ifname}")

    mac = None
    ips = set()
    for addr in table[ifname]:
        if addr.family == psutil.AF_LINK:
            mac = normalize_mac(addr.address) or mac
            continue
        if addr.family not in (socket.AF_INET, socket.AF_INET6):
            continue
        text = (addr.address or "").split("%", 1)[0]
        try:
            ips.add(ipaddress.ip_address(text))
        except ValueError:
            log.warning("Error getting address for interface %s: %r", ifname, addr.address)
            continue

    # loopback and tunnel devices report an all-zero hardware address
    if mac == "00:00:00:00:00:00":
        mac = None
    return LocalIdentity(link_address=mac, local_ips=frozenset(ips))
