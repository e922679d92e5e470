"""PCAP and PCAPNG streaming readers.

Yields (timestamp, raw_frame, linktype) so frames can be decoded with the
link layer the capture was recorded with.
"""
from __future__ import annotations

import logging
import os
import typing as t

import dpkt
import dpkt.pcapng

log = logging.getLogger("bandwatch.ingest")


def _open_reader(fh, ext: str):
    # extension only decides which reader is tried first
    readers = [dpkt.pcap.Reader, dpkt.pcapng.Reader]
    if ext == ".pcapng":
        readers.reverse()
    last_err: t.Optional[Exception] = None
    for reader in readers:
        fh.seek(0)
        try:
            return reader(fh)
        except (ValueError, dpkt.UnpackError) as e:
            last_err = e
    raise RuntimeError(f"no suitable reader for capture file: {last_err}")


def iter_packets(path: str) -> t.Iterator[t.Tuple[float, bytes, int]]:
    """Yield (ts, raw_bytes, linktype) for packets in a pcap or pcapng file.

    Streaming: the file is never loaded into memory as a whole.
    """
    if not os.path.exists(path):
        raise RuntimeError(f"pcap file not found: {path}")
    ext = os.path.splitext(path)[1].lower()
    with open(path, "rb") as fh:
        rdr = _open_reader(fh, ext)
        linktype = rdr.datalink()
        log.info("Capture link type: %d", linktype)
        try:
            for ts, buf in rdr:
                yield float(ts), bytes(buf), linktype
        except dpkt.UnpackError as e:
            # a file cut off mid-record ends the replay
            log.warning("Truncated capture file %s: %s", path, e)
