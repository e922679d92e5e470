import pytest

from tests.utils_frames import GATEWAY_MAC, LOCAL_IP, LOCAL_MAC, bare_ipv4, ether, udp_ipv4, write_pcap


@pytest.fixture
def outbound_pcap(tmp_path):
    """Three outbound packets sized 100, 200 and 50 bytes after overhead."""
    frames = [
        ether(LOCAL_MAC, GATEWAY_MAC, udp_ipv4(LOCAL_IP, "93.184.216.34", 100 - 40 - 28)),
        ether(LOCAL_MAC, GATEWAY_MAC, udp_ipv4(LOCAL_IP, "93.184.216.200", 200 - 40 - 28)),
        ether(LOCAL_MAC, GATEWAY_MAC, bare_ipv4(LOCAL_IP, "8.8.8.8", 50 - 40)),
        # reply traffic, ignored when reporting outbound
        ether(GATEWAY_MAC, LOCAL_MAC, udp_ipv4("8.8.8.8", LOCAL_IP, 500)),
    ]
    return write_pcap(tmp_path / "outbound.pcap", frames)


class FakeClock:
    def __init__(self, start=1000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()
