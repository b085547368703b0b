import socket
from collections import namedtuple
from unittest.mock import patch

import psutil
import pytest

from acid.address import (
    AF_INET,
    AF_INET6,
    AF_UNSPEC,
    Address,
    IPAddress,
    IPv4Address,
    IPv6Address,
    UnixAddress,
    UnknownAddress,
    get_interface_addresses,
    get_interface_addresses_for,
    lookup,
    lookup_any,
    lookup_any_ip_address,
)

NicAddr = namedtuple("NicAddr", "family address netmask broadcast ptp")


def _info(family, sockaddr):
    return (family, socket.SOCK_STREAM, 6, "", sockaddr)


def test_ipaddress_create_numeric_ipv4():
    address = IPAddress.create("127.0.0.1", 80)
    assert isinstance(address, IPv4Address)
    assert str(address) == "127.0.0.1:80"


def test_ipaddress_create_failure_returns_none():
    with patch("socket.getaddrinfo", side_effect=socket.gaierror(-2, "unknown")):
        assert IPAddress.create("no.such.host", 80) is None


def test_ipaddress_create_sets_port_on_ipv6():
    with patch("socket.getaddrinfo", return_value=[_info(socket.AF_INET6, ("::1", 0, 0, 0))]):
        address = IPAddress.create("localhost", 443)
    assert str(address) == "[::1]:443"


def test_ipv4_create_and_str():
    address = IPv4Address.create("192.168.1.100", 8080)
    assert str(address) == "192.168.1.100:8080"
    assert address.ip == 0xC0A80164
    assert address.port == 8080


def test_ipv4_create_invalid():
    assert IPv4Address.create("300.1.1.1") is None
    assert IPv4Address.create("not an ip") is None


def test_ipv4_from_int():
    assert str(IPv4Address(0x7F000001, 80)) == "127.0.0.1:80"
    assert str(IPv4Address()) == "0.0.0.0:0"


def test_ipv4_port_wraps_to_16_bits():
    address = IPv4Address(0, 0)
    address.port = 70000
    assert address.port == 4464


def test_ipv4_broadcast_network_subnet():
    address = IPv4Address.create("192.168.1.100", 8080)
    assert str(address.broadcast_address(24)) == "192.168.1.255:8080"
    assert str(address.network_address(24)) == "192.168.1.0:8080"
    assert str(address.subnet_mask(24)) == "255.255.255.0:0"
    assert str(address.subnet_mask(16)) == "255.255.0.0:0"


def test_ipv4_prefix_zero_and_32():
    address = IPv4Address.create("10.1.2.3", 1)
    assert str(address.broadcast_address(0)) == "255.255.255.255:1"
    assert str(address.network_address(0)) == "0.0.0.0:1"
    assert str(address.network_address(32)) == "10.1.2.3:1"
    assert str(address.subnet_mask(32)) == "255.255.255.255:0"


def test_ipv4_prefix_too_long():
    address = IPv4Address.create("10.1.2.3")
    assert address.broadcast_address(33) is None
    assert address.network_address(33) is None


def test_ipv4_bytes_layout():
    data = IPv4Address(0x7F000001, 80).to_bytes()
    assert len(data) == 16
    assert data[2:8] == bytes([0, 80, 127, 0, 0, 1])
    assert data[8:] == bytes(8)


def test_ipv6_str_forms():
    assert str(IPv6Address.create("::1", 80)) == "[::1]:80"
    assert str(IPv6Address.create("fe80::1")) == "[fe80::1]:0"
    assert str(IPv6Address()) == "[::]:0"
    assert str(IPv6Address.create("1:2:3:4:5:6:7:8", 9)) == "[1:2:3:4:5:6:7:8]:9"
    assert str(IPv6Address.create("1::")) == "[1::]:0"


def test_ipv6_create_invalid():
    assert IPv6Address.create("1.2.3.4") is None
    assert IPv6Address.create("gggg::") is None


def test_ipv6_wrong_length_raises():
    with pytest.raises(ValueError):
        IPv6Address(b"\x00" * 4)


def test_ipv6_broadcast_network_subnet():
    address = IPv6Address.create("fe80::1234")
    assert str(address.network_address(64)) == "[fe80::]:0"
    assert str(address.broadcast_address(64)) == "[fe80::ffff:ffff:ffff:ffff]:0"
    assert str(address.subnet_mask(64)) == "[ffff:ffff:ffff:ffff::]:0"
    assert str(address.subnet_mask(68)) == "[ffff:ffff:ffff:ffff:f000::]:0"


def test_ipv6_full_prefix():
    address = IPv6Address.create("fe80::1234", 5)
    assert address.broadcast_address(128) == address
    assert str(address.subnet_mask(128)) == "[ffff:ffff:ffff:ffff:ffff:ffff:ffff:ffff]:0"
    assert address.subnet_mask(129) is None


def test_ipv6_bytes_layout():
    data = IPv6Address.create("::1", 80).to_bytes()
    assert len(data) == 28
    assert data[2:4] == bytes([0, 80])
    assert data[8:24] == bytes(15) + b"\x01"


def test_unix_address():
    address = UnixAddress("/tmp/sock")
    assert str(address) == "/tmp/sock"
    assert address.to_sockaddr() == "/tmp/sock"
    assert address.length == 2 + len("/tmp/sock") + 1
    assert len(address.to_bytes()) == address.length


def test_unix_abstract_address():
    address = UnixAddress("\0name")
    assert str(address) == "\\0name"
    assert address.to_sockaddr() == b"\0name"
    assert address.length == 2 + 5


def test_unix_default_length():
    assert UnixAddress().length == 109
    assert str(UnixAddress()) == ""


def test_unix_path_too_long():
    with pytest.raises(ValueError):
        UnixAddress("x" * 108)
    assert UnixAddress("x" * 107).length == 110


def test_unknown_address():
    address = UnknownAddress(99)
    assert str(address) == "[ UnknownAddress family=99 ]"
    assert len(address.to_bytes()) == 16
    with pytest.raises(ValueError):
        address.to_sockaddr()


def test_from_sockaddr_round_trip():
    v4 = IPv4Address.create("10.0.0.1", 5)
    assert Address.from_sockaddr(AF_INET, v4.to_sockaddr()) == v4
    v6 = IPv6Address.create("fe80::1", 7)
    assert Address.from_sockaddr(AF_INET6, v6.to_sockaddr()) == v6
    assert str(Address.from_sockaddr(99, None)) == "[ UnknownAddress family=99 ]"


def test_equality_and_hash():
    a = IPv4Address.create("10.0.0.1", 5)
    b = IPv4Address(0x0A000001, 5)
    assert a == b
    assert hash(a) == hash(b)
    assert a != IPv4Address(0x0A000001, 6)
    assert len({a, b}) == 1


def test_ordering():
    low = IPv4Address(1)
    high = IPv4Address(2)
    assert low < high
    assert not high < low
    assert IPv4Address(9, 1) < IPv4Address(1, 2)
    assert IPv4Address(0xFFFFFFFF, 65535) < IPv6Address()
    assert sorted([high, low]) == [low, high]


def test_lookup_host_and_port():
    result = lookup("127.0.0.1:80", AF_INET, socket.SOCK_STREAM)
    assert [str(a) for a in result] == ["127.0.0.1:80"]


def test_lookup_splits_bracketed_ipv6():
    infos = [_info(socket.AF_INET6, ("::1", 8080, 0, 0))]
    with patch("socket.getaddrinfo", return_value=infos) as resolver:
        result = lookup("[::1]:8080", AF_INET6)
    resolver.assert_called_once_with("::1", "8080", AF_INET6, 0, 0)
    assert [str(a) for a in result] == ["[::1]:8080"]


def test_lookup_plain_host_has_no_service():
    with patch("socket.getaddrinfo", return_value=[]) as resolver:
        assert lookup("example.com") == []
    resolver.assert_called_once_with("example.com", None, AF_INET, 0, 0)


def test_lookup_failure():
    with patch("socket.getaddrinfo", side_effect=socket.gaierror(-2, "unknown")):
        assert lookup("no.such.host") == []
        assert lookup_any("no.such.host") is None
        assert lookup_any_ip_address("no.such.host") is None


def test_lookup_any_ip_address_skips_non_ip():
    infos = [_info(99, b""), _info(socket.AF_INET, ("10.0.0.2", 21))]
    with patch("socket.getaddrinfo", return_value=infos):
        assert str(lookup_any("x")) == "[ UnknownAddress family=99 ]"
        assert str(lookup_any_ip_address("x")) == "10.0.0.2:21"


def _fake_interfaces():
    return {
        "lo": [
            NicAddr(socket.AF_INET, "127.0.0.1", "255.0.0.0", None, None),
            NicAddr(socket.AF_INET6, "::1", "ffff:ffff:ffff:ffff:ffff:ffff:ffff:ffff", None, None),
        ],
        "eth0": [
            NicAddr(psutil.AF_LINK, "00:00:00:00:00:00", None, None, None),
            NicAddr(socket.AF_INET, "192.168.0.5", "255.255.255.0", None, None),
            NicAddr(socket.AF_INET6, "fe80::1%eth0", "ffff:ffff:ffff:ffff::", None, None),
        ],
    }


def test_get_interface_addresses_ipv6():
    with patch("psutil.net_if_addrs", return_value=_fake_interfaces()):
        result = get_interface_addresses(AF_INET6)
    assert [(name, str(a), p) for name, a, p in result] == [
        ("eth0", "[fe80::1]:0", 64),
        ("lo", "[::1]:0", 128),
    ]


def test_get_interface_addresses_all_families():
    with patch("psutil.net_if_addrs", return_value=_fake_interfaces()):
        result = get_interface_addresses(AF_UNSPEC)
    assert [(name, str(a), p) for name, a, p in result] == [
        ("eth0", "192.168.0.5:0", 24),
        ("eth0", "[fe80::1]:0", 64),
        ("lo", "127.0.0.1:0", 8),
        ("lo", "[::1]:0", 128),
    ]


def test_get_interface_addresses_for_named():
    with patch("psutil.net_if_addrs", return_value=_fake_interfaces()):
        result = get_interface_addresses_for("lo", AF_INET)
        missing = get_interface_addresses_for("wlan9", AF_INET)
    assert [(str(a), p) for a, p in result] == [("127.0.0.1:0", 8)]
    assert missing == []


def test_get_interface_addresses_for_wildcard():
    result = get_interface_addresses_for("*", AF_UNSPEC)
    assert [(str(a), p) for a, p in result] == [("0.0.0.0:0", 0), ("[::]:0", 0)]
    assert [(str(a), p) for a, p in get_interface_addresses_for("", AF_INET6)] == [("[::]:0", 0)]