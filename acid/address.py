"""Network addresses: IPv4, IPv6, Unix-domain and unknown families."""

from __future__ import annotations

import os
import socket
import struct
from abc import ABC, abstractmethod
from typing import Any, Optional, Union

import psutil

__all__ = [
    "AF_INET",
    "AF_INET6",
    "AF_UNIX",
    "AF_UNSPEC",
    "Address",
    "IPAddress",
    "IPv4Address",
    "IPv6Address",
    "UnixAddress",
    "UnknownAddress",
    "lookup",
    "lookup_any",
    "lookup_any_ip_address",
    "get_interface_addresses",
    "get_interface_addresses_for",
]

AF_INET = int(socket.AF_INET)
AF_INET6 = int(socket.AF_INET6)
AF_UNIX = int(getattr(socket, "AF_UNIX", 1))
AF_UNSPEC = int(socket.AF_UNSPEC)

_UNIX_PATH_OFFSET = 2
_UNIX_PATH_SIZE = 108
_UNIX_MAX_PATH_LEN = _UNIX_PATH_SIZE - 1


def _family_bytes(family: int) -> bytes:
    return struct.pack("=H", family)


def _host_mask32(prefix_len: int) -> int:
    """Mask covering the host bits of a 32-bit address."""
    return (1 << (32 - prefix_len)) - 1


def _host_mask8(bits: int) -> int:
    """Mask covering the low ``8 - bits`` bits of one byte."""
    return ((1 << (8 - bits)) - 1) & 0xFF


def _ipv4_to_int(text: str) -> int:
    return int.from_bytes(socket.inet_pton(socket.AF_INET, text), "big")


def _count_bits(data: bytes) -> int:
    return sum(bin(byte).count("1") for byte in data)


class Address(ABC):
    """A socket address that can be ordered and compared byte-wise."""

    family: int

    @classmethod
    def from_sockaddr(cls, family: int, sockaddr: Any) -> "Address":
        """Build an address from a family and a ``socket``-module address."""
        family = int(family)
        if family == AF_INET:
            host, port = sockaddr[0], sockaddr[1]
            return IPv4Address(_ipv4_to_int(host), port)
        if family == AF_INET6:
            host, port = sockaddr[0], sockaddr[1]
            ip = socket.inet_pton(socket.AF_INET6, host.split("%", 1)[0])
            address = IPv6Address(ip, port)
            if len(sockaddr) > 2:
                address.flowinfo = sockaddr[2]
            if len(sockaddr) > 3:
                address.scope_id = sockaddr[3]
            return address
        if family == AF_UNIX:
            address = UnixAddress(sockaddr)
            if not sockaddr:
                address._length = _UNIX_PATH_OFFSET
            return address
        return UnknownAddress(family)

    @abstractmethod
    def to_sockaddr(self) -> Any:
        """The address in the form the ``socket`` module takes."""

    @abstractmethod
    def to_bytes(self) -> bytes:
        """The raw ``sockaddr`` structure, as long as its length."""

    @abstractmethod
    def __str__(self) -> str:
        ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}({str(self)!r})"

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Address):
            return NotImplemented
        mine, theirs = self.to_bytes(), other.to_bytes()
        common = min(len(mine), len(theirs))
        if mine[:common] != theirs[:common]:
            return mine[:common] < theirs[:common]
        return len(mine) < len(theirs)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Address):
            return NotImplemented
        return self.to_bytes() == other.to_bytes()

    def __hash__(self) -> int:
        return hash(self.to_bytes())


class IPAddress(Address):
    """An address with a host part and a port."""

    _port: int = 0

    @classmethod
    def create(cls, host: str, port: int = 0) -> Optional["IPAddress"]:
        """Resolve ``host`` (name or literal) to its first IP address."""
        try:
            infos = socket.getaddrinfo(host, None, socket.AF_UNSPEC)
        except (OSError, UnicodeError):
            return None
        if not infos:
            return None
        family, _, _, _, sockaddr = infos[0]
        address = Address.from_sockaddr(family, sockaddr)
        if not isinstance(address, IPAddress):
            return None
        address.port = port
        return address

    @property
    def port(self) -> int:
        return self._port

    @port.setter
    def port(self, value: int) -> None:
        self._port = int(value) & 0xFFFF

    @abstractmethod
    def broadcast_address(self, prefix_len: int) -> Optional["IPAddress"]:
        """The address with every host bit set."""

    @abstractmethod
    def network_address(self, prefix_len: int) -> Optional["IPAddress"]:
        """The address with every host bit cleared."""

    @abstractmethod
    def subnet_mask(self, prefix_len: int) -> Optional["IPAddress"]:
        """The netmask for ``prefix_len`` as an address."""


class IPv4Address(IPAddress):
    """An IPv4 address; ``ip`` is the 32-bit value in host order."""

    family = AF_INET

    def __init__(self, ip: int = 0, port: int = 0) -> None:
        self.ip = int(ip) & 0xFFFFFFFF
        self.port = port

    @classmethod
    def create(cls, ip: str, port: int = 0) -> Optional["IPv4Address"]:
        """Parse a dotted-quad literal; None if it is not one."""
        try:
            value = _ipv4_to_int(ip)
        except (OSError, ValueError, TypeError):
            return None
        return cls(value, port)

    def to_sockaddr(self) -> tuple[str, int]:
        return socket.inet_ntop(socket.AF_INET, self.ip.to_bytes(4, "big")), self.port

    def to_bytes(self) -> bytes:
        return _family_bytes(AF_INET) + struct.pack("!HI", self.port, self.ip) + bytes(8)

    def __str__(self) -> str:
        ip = self.ip
        return f"{(ip >> 24) & 0xFF}.{(ip >> 16) & 0xFF}.{(ip >> 8) & 0xFF}.{ip & 0xFF}:{self.port}"

    def broadcast_address(self, prefix_len: int) -> Optional["IPv4Address"]:
        if prefix_len > 32:
            return None
        return IPv4Address(self.ip | _host_mask32(prefix_len), self.port)

    def network_address(self, prefix_len: int) -> Optional["IPv4Address"]:
        if prefix_len > 32:
            return None
        return IPv4Address(self.ip & ~_host_mask32(prefix_len), self.port)

    def subnet_mask(self, prefix_len: int) -> Optional["IPv4Address"]:
        if prefix_len > 32:
            return None
        return IPv4Address(~_host_mask32(prefix_len) & 0xFFFFFFFF)


class IPv6Address(IPAddress):
    """An IPv6 address held as its 16 bytes in network order."""

    family = AF_INET6

    def __init__(self, ip: bytes = bytes(16), port: int = 0) -> None:
        ip = bytes(ip)
        if len(ip) != 16:
            raise ValueError(f"an IPv6 address is 16 bytes, not {len(ip)}")
        self.ip = ip
        self.port = port
        self.flowinfo = 0
        self.scope_id = 0

    @classmethod
    def create(cls, ip: str, port: int = 0) -> Optional["IPv6Address"]:
        """Parse an IPv6 literal; None if it is not one."""
        try:
            value = socket.inet_pton(socket.AF_INET6, ip)
        except (OSError, ValueError, TypeError):
            return None
        return cls(value, port)

    def _copy_with(self, ip: bytes) -> "IPv6Address":
        address = IPv6Address(ip, self.port)
        address.flowinfo = self.flowinfo
        address.scope_id = self.scope_id
        return address

    def to_sockaddr(self) -> tuple[str, int, int, int]:
        return socket.inet_ntop(socket.AF_INET6, self.ip), self.port, self.flowinfo, self.scope_id

    def to_bytes(self) -> bytes:
        return (
            _family_bytes(AF_INET6)
            + struct.pack("!HI", self.port, self.flowinfo & 0xFFFFFFFF)
            + self.ip
            + struct.pack("=I", self.scope_id & 0xFFFFFFFF)
        )

    def __str__(self) -> str:
        groups = struct.unpack("!8H", self.ip)
        parts = ["["]
        used_zeros = False
        for i, group in enumerate(groups):
            if group == 0 and not used_zeros:
                continue
            if i and groups[i - 1] == 0 and not used_zeros:
                parts.append(":")
                used_zeros = True
            if i:
                parts.append(":")
            parts.append(f"{group:x}")
        if not used_zeros and groups[7] == 0:
            parts.append("::")
        parts.append(f"]:{self.port}")
        return "".join(parts)

    def broadcast_address(self, prefix_len: int) -> Optional["IPv6Address"]:
        if prefix_len > 128:
            return None
        data = bytearray(self.ip)
        index = prefix_len // 8
        if index < 16:
            data[index] |= _host_mask8(prefix_len % 8)
            data[index + 1:] = b"\xff" * (15 - index)
        return self._copy_with(bytes(data))

    def network_address(self, prefix_len: int) -> Optional["IPv6Address"]:
        if prefix_len > 128:
            return None
        data = bytearray(self.ip)
        index = prefix_len // 8
        if index < 16:
            data[index] &= ~_host_mask8(prefix_len % 8) & 0xFF
            data[index + 1:] = bytes(15 - index)
        return self._copy_with(bytes(data))

    def subnet_mask(self, prefix_len: int) -> Optional["IPv6Address"]:
        if prefix_len > 128:
            return None
        data = bytearray(16)
        index = prefix_len // 8
        data[:index] = b"\xff" * index
        if index < 16:
            data[index] = ~_host_mask8(prefix_len % 8) & 0xFF
        return IPv6Address(bytes(data))


class UnixAddress(Address):
    """A Unix-domain socket path; a leading NUL marks an abstract name."""

    family = AF_UNIX

    def __init__(self, path: Union[str, bytes, None] = None) -> None:
        if path is None:
            self._path = b""
            self._length = _UNIX_PATH_OFFSET + _UNIX_MAX_PATH_LEN
            return
        raw = os.fsencode(path) if isinstance(path, str) else bytes(path)
        length = len(raw) + 1
        if raw and raw[0] == 0:
            length -= 1
        if length > _UNIX_PATH_SIZE:
            raise ValueError("path too long")
        self._path = raw
        self._length = length + _UNIX_PATH_OFFSET

    @property
    def path(self) -> bytes:
        return self._path

    @property
    def length(self) -> int:
        """Length of the ``sockaddr_un`` structure in use."""
        return self._length

    def _is_abstract(self) -> bool:
        return self._length > _UNIX_PATH_OFFSET and self._path[:1] == b"\0"

    def to_sockaddr(self) -> Union[str, bytes]:
        if self._is_abstract():
            return self._path
        return os.fsdecode(self._path.split(b"\0", 1)[0])

    def to_bytes(self) -> bytes:
        padded = self._path.ljust(_UNIX_PATH_SIZE, b"\0")[:_UNIX_PATH_SIZE]
        return (_family_bytes(AF_UNIX) + padded)[: self._length]

    def __str__(self) -> str:
        if self._is_abstract():
            name = self._path[1 : self._length - _UNIX_PATH_OFFSET]
            return "\\0" + name.decode("utf-8", errors="replace")
        return os.fsdecode(self._path.split(b"\0", 1)[0])


class UnknownAddress(Address):
    """An address of a family this module does not understand."""

    def __init__(self, family: int) -> None:
        self.family = int(family)

    def to_sockaddr(self) -> Any:
        raise ValueError(f"address family {self.family} has no socket form")

    def to_bytes(self) -> bytes:
        return _family_bytes(self.family & 0xFFFF) + bytes(14)

    def __str__(self) -> str:
        return f"[ UnknownAddress family={self.family} ]"


def _split_host(host: str) -> tuple[str, Optional[str]]:
    node = ""
    service: Optional[str] = None
    if host.startswith("["):
        end = host.find("]", 1)
        if end != -1:
            if host[end + 1 : end + 2] == ":":
                service = host[end + 2 :]
            node = host[1:end]
    if not node:
        colon = host.find(":")
        if colon != -1 and host.find(":", colon + 1) == -1:
            node = host[:colon]
            service = host[colon + 1 :]
    if not node:
        node = host
    return node, service


def lookup(
    host: str, family: int = AF_INET, type: int = 0, protocol: int = 0
) -> list[Address]:
    """Resolve ``host``, optionally ``host:port`` or ``[v6]:port``.

    Returns every address found, or an empty list if resolution fails.
    """
    node, service = _split_host(host)
    try:
        infos = socket.getaddrinfo(node, service, family, type, protocol)
    except (OSError, UnicodeError):
        return []
    return [Address.from_sockaddr(fam, sockaddr) for fam, _, _, _, sockaddr in infos]


def lookup_any(
    host: str, family: int = AF_INET, type: int = 0, protocol: int = 0
) -> Optional[Address]:
    """The first address ``host`` resolves to, or None."""
    results = lookup(host, family, type, protocol)
    return results[0] if results else None


def lookup_any_ip_address(
    host: str, family: int = AF_INET, type: int = 0, protocol: int = 0
) -> Optional[IPAddress]:
    """The first IP address ``host`` resolves to, or None."""
    for address in lookup(host, family, type, protocol):
        if isinstance(address, IPAddress):
            return address
    return None


def _netmask_bits(family: int, netmask: Optional[str]) -> int:
    if not netmask:
        return 0
    try:
        return _count_bits(socket.inet_pton(family, netmask.split("/", 1)[0]))
    except (OSError, ValueError):
        return 0


def get_interface_addresses(family: int = AF_INET) -> list[tuple[str, Address, int]]:
    """Every local ``(interface, address, prefix_len)``, ordered by interface.

    ``AF_UNSPEC`` selects both IPv4 and IPv6.
    """
    try:
        table = psutil.net_if_addrs()
    except OSError:
        return []
    result: list[tuple[str, Address, int]] = []
    for name in sorted(table):
        for entry in table[name]:
            entry_family = int(entry.family)
            if family != AF_UNSPEC and entry_family != family:
                continue
            try:
                if entry_family == AF_INET:
                    address: Address = IPv4Address(_ipv4_to_int(entry.address))
                elif entry_family == AF_INET6:
                    host = entry.address.split("%", 1)[0]
                    address = IPv6Address(socket.inet_pton(socket.AF_INET6, host))
                else:
                    continue
            except (OSError, ValueError):
                continue
            result.append((name, address, _netmask_bits(entry_family, entry.netmask)))
    return result


def get_interface_addresses_for(
    iface: str, family: int = AF_INET
) -> list[tuple[Address, int]]:
    """The ``(address, prefix_len)`` pairs of one interface.

    An empty name or ``"*"`` means any interface: the wildcard addresses
    of the requested families, with prefix length 0.
    """
    if not iface or iface == "*":
        result: list[tuple[Address, int]] = []
        if family in (AF_INET, AF_UNSPEC):
            result.append((IPv4Address(), 0))
        if family in (AF_INET6, AF_UNSPEC):
            result.append((IPv6Address(), 0))
        return result
    return [
        (address, prefix)
        for name, address, prefix in get_interface_addresses(family)
        if name == iface
    ]