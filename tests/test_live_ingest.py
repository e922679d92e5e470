from bandwatch.flow import DecodedPacket, Flow
from bandwatch.identity import LocalIdentity
from bandwatch.ledger import Ledger
from bandwatch.live_ingest import LENGTH_OVERHEAD, account_packet, feed_packets, packet_size
from bandwatch.report import Reporter
from bandwatch.sort_mode import SortModeControl

LOCAL = LocalIdentity.from_values(None, ["10.0.0.5"])


def _pkt(src, dst, size, link=None):
    return DecodedPacket(ts=0.0, link_flow=link, network_flow=Flow(src=src, dst=dst), ip_version=4 if ":" not in src else 6, ip_length=size - LENGTH_OVERHEAD)


def test_packet_size_adds_fixed_overhead():
    assert packet_size(_pkt("10.0.0.5", "8.8.8.8", 100)) == 100
    assert packet_size(DecodedPacket(ts=0.0, link_flow=None, network_flow=Flow("a", "b"), ip_length=0)) == 0


def test_outbound_keyed_by_destination():
    led = Ledger()
    assert account_packet(_pkt("10.0.0.5", "93.184.216.34", 100), LOCAL, led) == 100
    assert account_packet(_pkt("8.8.8.8", "10.0.0.5", 70), LOCAL, led) == 0
    assert led.flush_and_merge().delta == {"93.184.216.0/24": 100}


def test_inbound_keyed_by_source():
    led = Ledger()
    assert account_packet(_pkt("8.8.8.8", "10.0.0.5", 70), LOCAL, led, inbound=True) == 70
    assert account_packet(_pkt("10.0.0.5", "93.184.216.34", 100), LOCAL, led, inbound=True) == 0
    assert led.flush_and_merge().delta == {"8.8.8.0/24": 70}


def test_unknown_direction_counts_as_inbound():
    led = Ledger()
    nobody = LocalIdentity()
    assert account_packet(_pkt("8.8.8.8", "10.0.0.5", 70), nobody, led) == 0
    assert account_packet(_pkt("8.8.8.8", "10.0.0.5", 70), nobody, led, inbound=True) == 70


def test_noise_is_dropped():
    led = Ledger()
    no_net = DecodedPacket(ts=0.0, link_flow=None, network_flow=None)
    bad_ip = _pkt("10.0.0.5", "not-an-ip", 100)
    zero = DecodedPacket(ts=0.0, link_flow=None, network_flow=Flow("10.0.0.5", "8.8.8.8"), ip_version=4, ip_length=0)
    counters = feed_packets([no_net, bad_ip, zero], LOCAL, led)
    assert counters.seen == 3
    assert counters.accounted == 0
    assert led.flush_and_merge().delta == {}


def test_end_to_end_three_packets_two_prefixes(clock):
    led = Ledger(clock=clock)
    packets = [
        _pkt("10.0.0.5", "93.184.216.34", 100),
        _pkt("10.0.0.5", "93.184.216.200", 200),
        _pkt("10.0.0.5", "8.8.8.8", 50),
    ]
    counters = feed_packets(packets, LOCAL, led)
    assert counters.accounted == 3
    assert counters.bytes == 350

    clock.advance(5)
    rep = Reporter(led, SortModeControl(), top=10, netstat=False)
    lines = rep.build_lines()
    assert lines == [
        "93.184.216.0/24[]: 300 B (60 B/s)",
        "8.8.8.0/24[]: 50 B (10 B/s)",
    ]


def test_ipv6_outbound():
    led = Ledger()
    ident = LocalIdentity.from_values(None, ["2001:db8::5"])
    account_packet(_pkt("2001:db8::5", "2001:db8:abcd:1::9", 90), ident, led)
    assert led.flush_and_merge().delta == {"2001:db8:abcd::/48": 90}
