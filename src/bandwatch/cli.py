"""Command line entry point for bandwatch."""
from __future__ import annotations

import argparse
import json
import logging
import sys

from .logging_config import setup_logging
from . import __version__

USAGE_NOTE = "Press 's' (lowercase) to change sort order"


def _doctor_checks(interface: str | None = None, geo_db: str | None = None):
    """Run environment checks and return (exit_code, report_dict)."""
    import os
    import socket

    import psutil

    from .geo import GeoLookup

    report = {"python": sys.version.splitlines()[0], "version": __version__, "checks": []}
    py_ok = sys.version_info >= (3, 10)
    report["checks"].append({"name": "python_version", "ok": py_ok, "detail": sys.version})

    # live capture permission (can we open a packet socket?)
    live_ok = True
    live_detail = "ok"
    try:
        family = getattr(socket, "AF_PACKET", socket.AF_INET)
        proto = socket.htons(0x0003) if family != socket.AF_INET else socket.IPPROTO_TCP
        s = socket.socket(family, socket.SOCK_RAW, proto)
        s.close()
    except PermissionError:
        live_ok = False
        live_detail = "permission denied for raw socket"
    except OSError as e:
        live_ok = False
        live_detail = f"raw socket check failed: {e}"
    report["checks"].append({"name": "live_capture_permission", "ok": live_ok, "detail": live_detail})

    if interface:
        try:
            names = sorted(psutil.net_if_addrs().keys())
            if_ok = interface in names
            if_detail = interface if if_ok else f"missing: {interface} (have: {', '.join(names)})"
        except (psutil.Error, OSError) as e:
            if_ok = False
            if_detail = str(e)
        report["checks"].append({"name": "interface", "ok": if_ok, "detail": if_detail})
    else:
        if_ok = True

    # geo database is optional: a failure is reported but does not change the exit code
    if geo_db:
        geo = GeoLookup.open(geo_db) if os.path.exists(geo_db) else None
        geo_detail = geo_db if geo else f"unreadable or missing: {geo_db}"
        if geo:
            geo.close()
        report["checks"].append({"name": "geo_db", "ok": geo is not None, "detail": geo_detail})

    # 0 success, 1 interface missing, 3 live permission failure, 10 internal
    if not py_ok:
        code = 10
    elif not if_ok:
        code = 1
    elif not live_ok:
        code = 3
    else:
        code = 0
    return code, report


def build_parser():
    p = argparse.ArgumentParser(
        prog="bandwatch",
        description="Live top-N bandwidth usage by remote address prefix",
        epilog=USAGE_NOTE,
    )
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    p.add_argument("--log", default="INFO", help="Log level")
    sub = p.add_subparsers(dest="cmd")

    w = sub.add_parser("watch", help="Monitor an interface and print periodic top-N reports", epilog=USAGE_NOTE)
    w.add_argument("-i", "--interface", default="eth0", help="Interface to listen on (default: eth0)")
    w.add_argument("--top", type=int, default=10, help="Number of top values to show (default: 10)")
    w.add_argument("--no-netstat", action="store_true", help="Do not detect active connections")
    w.add_argument("--inbound", action="store_true", help="Show inbound traffic instead of outbound")
    w.add_argument("--sort-delta", action="store_true", help="Sort by delta instead of total")
    w.add_argument("--geo-db", default="", metavar="FILE", help="MaxMind city database for location annotations (default: none)")
    w.add_argument("--pcap-file", metavar="FILE", help="Replay a pcap/pcapng file instead of capturing live")
    w.add_argument("--filter", dest="bpf_filter", metavar="BPF", help="BPF filter applied to live capture")
    w.add_argument("--local-ip", action="append", default=[], metavar="IP", help="Treat IP as local (repeatable); skips interface lookup")
    w.add_argument("--local-mac", metavar="MAC", help="Treat MAC as the local link address; skips interface lookup")
    w.add_argument("--interval", type=float, default=5.0, help=argparse.SUPPRESS)

    d = sub.add_parser("doctor", help="Run environment checks and exit with a machine-friendly code")
    d.add_argument("--json", action="store_true", help="Emit JSON report instead of human summary")
    d.add_argument("-i", "--interface", help="Interface that must exist")
    d.add_argument("--geo-db", metavar="FILE", help="Geo database to validate")
    return p, {"watch": w, "doctor": d}


def _config_from_args(args):
    from .config import MonitorConfig

    return MonitorConfig(
        interface=args.interface,
        top=args.top,
        inbound=args.inbound,
        netstat=not args.no_netstat,
        sort_by_delta=args.sort_delta,
        geo_db_path=args.geo_db or "",
        interval=args.interval,
        pcap_file=args.pcap_file,
        bpf_filter=args.bpf_filter,
        local_ips=tuple(args.local_ip or ()),
        local_mac=args.local_mac,
    )


def _watch(args, log) -> int:
    from .identity import InterfaceNotFound
    from .live_capture import CaptureError
    from .monitor import Monitor

    try:
        config = _config_from_args(args)
        mon = Monitor(config)
        mon.resolve_identity()
    except (ValueError, InterfaceNotFound) as e:
        log.error("%s", e)
        return 1

    try:
        counters = mon.run()
    except KeyboardInterrupt:
        return 0
    except PermissionError as e:
        log.error("Permission denied opening capture (run as root or grant CAP_NET_RAW): %s", e)
        return 3
    except (CaptureError, RuntimeError, OSError) as e:
        log.error("Capture failed: %s", e)
        return 2
    log.info("Processed %d packets, accounted %d (%d bytes)", counters.seen, counters.accounted, counters.bytes)
    return 0


def main(argv=None):
    parser, _subparsers = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.log)
    log = logging.getLogger("bandwatch.cli")

    if args.cmd == "watch":
        return _watch(args, log)

    if args.cmd == "doctor":
        try:
            code, report = _doctor_checks(args.interface, args.geo_db)
        except Exception:
            log.exception("doctor checks failed unexpectedly")
            return 10
        if args.json:
            print(json.dumps(report, sort_keys=True, separators=(",", ":")))
        else:
            print(f"bandwatch doctor: {report['python']}")
            for c in report["checks"]:
                print(f"  {c['name']:<26} {'OK' if c['ok'] else 'FAIL'}  {c['detail']}")
        return code

    parser.print_help()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
