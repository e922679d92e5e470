import json
from types import SimpleNamespace

import psutil

from bandwatch.cli import build_parser, main
from tests.utils_frames import LOCAL_IP, LOCAL_MAC
from tests.utils_sniffer import scripted_sniffer


def test_watch_replay_prints_report(outbound_pcap, capsys):
    code = main(["watch", "--pcap-file", outbound_pcap, "--local-mac", LOCAL_MAC, "--no-netstat"])
    assert code == 0
    out = capsys.readouterr().out
    lines = out.splitlines()
    assert lines[0].startswith("93.184.216.0/24[]: 300 B (")
    assert lines[1].startswith("8.8.8.0/24[]: 50 B (")
    assert lines[2] == ""


def test_watch_replay_is_repeatable(outbound_pcap, capsys):
    argv = ["watch", "--pcap-file", outbound_pcap, "--local-mac", LOCAL_MAC, "--no-netstat", "--sort-delta"]
    main(argv)
    out1 = capsys.readouterr().out
    main(argv)
    out2 = capsys.readouterr().out
    assert out1.split("\n\n")[0].count("/24") == 2
    # rates depend on wall time; totals and ordering do not
    strip = lambda s: [l.split(" (")[0] for l in s.splitlines()]
    assert strip(out1) == strip(out2)


def test_watch_unknown_interface_exits_1(monkeypatch):
    monkeypatch.setattr(psutil, "net_if_addrs", lambda: {"lo": []})
    assert main(["watch", "-i", "nope0"]) == 1


def test_watch_invalid_top_exits_1(outbound_pcap):
    assert main(["watch", "--pcap-file", outbound_pcap, "--local-mac", LOCAL_MAC, "--top", "0"]) == 1


def test_watch_missing_pcap_exits_2(tmp_path):
    assert main(["watch", "--pcap-file", str(tmp_path / "nope.pcap"), "--local-mac", LOCAL_MAC]) == 2


def test_help_mentions_sort_key():
    parser, subparsers = build_parser()
    assert "Press 's'" in subparsers["watch"].format_help()


def test_doctor_json(monkeypatch, capsys):
    monkeypatch.setattr(psutil, "net_if_addrs", lambda: {"eth0": []})
    code = main(["doctor", "--json", "-i", "eth0"])
    report = json.loads(capsys.readouterr().out)
    names = [c["name"] for c in report["checks"]]
    assert names[:3] == ["python_version", "live_capture_permission", "interface"]
    assert code in (0, 3)


def test_doctor_missing_interface(monkeypatch, capsys):
    monkeypatch.setattr(psutil, "net_if_addrs", lambda: {"eth0": []})
    assert main(["doctor", "-i", "wlan7"]) == 1
    assert "FAIL" in capsys.readouterr().out


def test_watch_invalid_local_mac_exits_1(outbound_pcap):
    assert main(["watch", "--pcap-file", outbound_pcap, "--local-mac", "not-a-mac", "--no-netstat"]) == 1


class _IdleThread:
    def __init__(self, target=None, args=(), name=None, daemon=None):
        self.name = name

    def start(self):
        pass


def test_watch_live_capture_failure_exits_2(monkeypatch):
    sniffer_cls, _ = scripted_sniffer(thread_error=ValueError("Interface 'nope0' not found !"))
    monkeypatch.setattr("scapy.all.AsyncSniffer", sniffer_cls)
    monkeypatch.setattr("bandwatch.monitor.threading", SimpleNamespace(Thread=_IdleThread))
    assert main(["watch", "-i", "nope0", "--local-ip", LOCAL_IP, "--no-netstat"]) == 2


def test_watch_live_permission_denied_exits_3(monkeypatch):
    sniffer_cls, _ = scripted_sniffer(thread_error=PermissionError(1, "Operation not permitted"))
    monkeypatch.setattr("scapy.all.AsyncSniffer", sniffer_cls)
    monkeypatch.setattr("bandwatch.monitor.threading", SimpleNamespace(Thread=_IdleThread))
    assert main(["watch", "-i", "eth0", "--local-ip", LOCAL_IP, "--no-netstat"]) == 3
