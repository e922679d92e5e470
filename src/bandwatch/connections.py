"""Active-connection probe: established TCP peers bucketed by prefix."""
from __future__ import annotations

import logging
import typing as t
from collections import Counter

import psutil

from .prefix import prefix_key

log = logging.getLogger("bandwatch.connections")

# queried separately so one failing family does not hide the other
TCP_KINDS = ("tcp4", "tcp6")


def established_remote_ips(kind: str) -> list[str]:
    """Remote IPs of ESTABLISHED sockets of one psutil connection kind."""
    out = []
    for conn in psutil.net_connections(kind=kind):
        if conn.status != psutil.CONN_ESTABLISHED or not conn.raddr:
            continue
        out.append(conn.raddr.ip)
    return out


def active_connection_index(kinds: t.Iterable[str] = TCP_KINDS) -> Counter:
    """Map prefix key -> number of established connections in that prefix.

    A failing query is logged and contributes nothing.
    """
    index: Counter = Counter()
    for kind in kinds:
        try:
            remotes = established_remote_ips(kind)
        except (psutil.Error, OSError) as e:
            log.warning("netstat error (%s): %s", kind, e)
            continue
        for ip in remotes:
            try:
                index[prefix_key(ip.split("%", 1)[0])] += 1
            except ValueError:
                continue
    return index
