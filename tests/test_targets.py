import ipaddress

import pytest

from net_scanner.errors import InvalidFormat, InvalidRange
from net_scanner.targets import expand_range


def test_cidr_30_excludes_network_and_broadcast():
    assert expand_range("192.168.1.0/30") == ("192.168.1.1", "192.168.1.2")


def test_cidr_24_is_ascending_host_range():
    hosts = expand_range("10.1.2.0/24")
    assert len(hosts) == 254
    assert hosts[0] == "10.1.2.1"
    assert hosts[-1] == "10.1.2.254"
    values = [int(ipaddress.IPv4Address(h)) for h in hosts]
    assert values == sorted(set(values))


@pytest.mark.parametrize("prefix", range(16, 31))
def test_cidr_host_count(prefix):
    hosts = expand_range(f"172.16.0.0/{prefix}")
    assert len(hosts) == 2 ** (32 - prefix) - 2


def test_cidr_host_bits_are_ignored():
    assert expand_range("10.0.0.7/30") == ("10.0.0.5", "10.0.0.6")


def test_cidr_31_keeps_both_addresses():
    assert expand_range("10.0.0.4/31") == ("10.0.0.4", "10.0.0.5")


def test_cidr_32_is_the_single_address():
    assert expand_range("10.0.0.9/32") == ("10.0.0.9",)


def test_start_end_is_inclusive():
    assert expand_range("10.0.0.1-10.0.0.3") == ("10.0.0.1", "10.0.0.2", "10.0.0.3")


def test_start_end_crosses_octet_boundary():
    hosts = expand_range("10.0.0.254-10.0.1.1")
    assert hosts == ("10.0.0.254", "10.0.0.255", "10.0.1.0", "10.0.1.1")


def test_start_equals_end():
    assert expand_range(" 192.168.5.5-192.168.5.5 ") == ("192.168.5.5",)


def test_start_after_end_is_invalid_range():
    with pytest.raises(InvalidRange):
        expand_range("10.0.0.9-10.0.0.1")


def test_single_address():
    assert expand_range("192.168.1.10") == ("192.168.1.10",)


@pytest.mark.parametrize(
    "spec",
    ["not-an-ip", "10.0.0.1/33", "192.168.1.0/40", "256.1.1.1/24", "", "10.0.0.1-", "10.0.0/24", "10.0.0.1/-1"],
)
def test_bad_syntax_is_invalid_format(spec):
    with pytest.raises(InvalidFormat):
        expand_range(spec)


def test_prefix_out_of_range_message():
    with pytest.raises(InvalidFormat, match="prefix out of range"):
        expand_range("192.168.1.0/40")


def test_invalid_format_names_expected_patterns():
    with pytest.raises(InvalidFormat, match="A.B.C.D/N"):
        expand_range("not-an-ip")


def test_errors_are_value_errors():
    with pytest.raises(ValueError):
        expand_range("garbage")


def test_whole_address_space_is_lazy():
    hosts = expand_range("0.0.0.0/0")
    assert len(hosts) == 2 ** 32 - 2
    assert hosts[0] == "0.0.0.1"
    assert hosts[-1] == "255.255.255.254"
    assert "10.20.30.40" in hosts
    assert "255.255.255.255" not in hosts


def test_slash_8_indexing_and_slicing():
    hosts = expand_range("10.0.0.0/8")
    assert len(hosts) == 2 ** 24 - 2
    assert hosts[255] == "10.0.1.0"
    assert hosts[:3] == ("10.0.0.1", "10.0.0.2", "10.0.0.3")
    assert list(hosts[-2:]) == ["10.255.255.253", "10.255.255.254"]


def test_iteration_matches_indexing():
    hosts = expand_range("192.168.0.250-192.168.1.2")
    assert list(hosts) == [hosts[i] for i in range(len(hosts))]
    assert "not-an-ip" not in hosts
