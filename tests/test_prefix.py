import ipaddress

import pytest

from bandwatch.prefix import prefix_address, prefix_key


def test_ipv4_masked_to_24_and_stable():
    k1 = prefix_key("93.184.216.34")
    k2 = prefix_key("93.184.216.34")
    assert k1 == k2 == "93.184.216.0/24"
    assert prefix_key("93.184.216.200") == k1
    assert prefix_key("93.184.217.1") != k1


def test_ipv6_masked_to_48():
    key = prefix_key("2001:db8:1234:5678::1")
    assert key == "2001:db8:1234::/48"
    assert ipaddress.ip_network(key).prefixlen == 48
    assert prefix_key("2001:db8:1234:ffff::2") == key


def test_accepts_address_objects():
    assert prefix_key(ipaddress.ip_address("8.8.8.8")) == "8.8.8.0/24"


@pytest.mark.parametrize("bad", ["", "not-an-ip", "300.1.1.1", "1.2.3"])
def test_malformed_address_raises(bad):
    with pytest.raises(ValueError):
        prefix_key(bad)


def test_prefix_address():
    assert prefix_address("8.8.8.0/24") == "8.8.8.0"
    assert prefix_address("2001:db8:1234::/48") == "2001:db8:1234::"
