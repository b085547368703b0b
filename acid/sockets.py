"""Sockets that remember their family, type and endpoint addresses."""

from __future__ import annotations

import errno
import socket
import struct
from typing import Any, Callable, Optional, Sequence, Union

from .address import AF_INET, AF_INET6, AF_UNIX, Address, UnknownAddress

__all__ = ["Socket"]

Buffer = Union[bytes, bytearray, memoryview]


def _timeval(ms: int) -> bytes:
    return struct.pack("ll", ms // 1000, ms % 1000 * 1000)


class Socket:
    """A socket created lazily on first bind or connect.

    Addresses are :class:`~acid.address.Address` objects. Failures raise
    :class:`OSError`; a family that does not match the socket's raises
    :class:`ValueError`.
    """

    TCP = int(socket.SOCK_STREAM)
    UDP = int(socket.SOCK_DGRAM)
    IPV4 = AF_INET
    IPV6 = AF_INET6
    UNIX = AF_UNIX

    def __init__(self, family: int, type: int, protocol: int = 0) -> None:
        self.family = int(family)
        self.type = int(type)
        self.protocol = int(protocol)
        self._sock: Optional[socket.socket] = None
        self._connected = False
        self._local: Optional[Address] = None
        self._remote: Optional[Address] = None
        self._send_timeout: Optional[int] = None
        self._recv_timeout: Optional[int] = None

    # -- factories -----------------------------------------------------

    @classmethod
    def create_tcp(cls, address: Address) -> "Socket":
        """A TCP socket of the same family as ``address``."""
        return cls(address.family, cls.TCP, 0)

    @classmethod
    def create_udp(cls, address: Address) -> "Socket":
        """A UDP socket of the same family as ``address``."""
        return cls(address.family, cls.UDP, 0)

    @classmethod
    def create_tcp_socket(cls) -> "Socket":
        return cls(cls.IPV4, cls.TCP, 0)

    @classmethod
    def create_udp_socket(cls) -> "Socket":
        return cls(cls.IPV4, cls.UDP, 0)

    @classmethod
    def create_tcp_socket6(cls) -> "Socket":
        return cls(cls.IPV6, cls.TCP, 0)

    @classmethod
    def create_udp_socket6(cls) -> "Socket":
        return cls(cls.IPV6, cls.UDP, 0)

    @classmethod
    def create_unix_tcp_socket(cls) -> "Socket":
        return cls(cls.UNIX, cls.TCP, 0)

    @classmethod
    def create_unix_udp_socket(cls) -> "Socket":
        return cls(cls.UNIX, cls.UDP, 0)

    # -- state ---------------------------------------------------------

    @property
    def fd(self) -> int:
        """The descriptor, or -1 when no socket exists."""
        return self._sock.fileno() if self._sock is not None else -1

    @property
    def is_valid(self) -> bool:
        return self._sock is not None

    @property
    def is_connected(self) -> bool:
        return self._connected

    @property
    def send_timeout(self) -> Optional[int]:
        """Send timeout in milliseconds, None if never set."""
        return self._send_timeout

    @send_timeout.setter
    def send_timeout(self, ms: int) -> None:
        self._send_timeout = int(ms)
        if self._sock is not None:
            self._apply_timeout(socket.SO_SNDTIMEO, self._send_timeout)

    @property
    def recv_timeout(self) -> Optional[int]:
        """Receive timeout in milliseconds, None if never set."""
        return self._recv_timeout

    @recv_timeout.setter
    def recv_timeout(self, ms: int) -> None:
        self._recv_timeout = int(ms)
        if self._sock is not None:
            self._apply_timeout(socket.SO_RCVTIMEO, self._recv_timeout)

    @property
    def local_address(self) -> Address:
        """The bound address; an unknown address if it cannot be read."""
        if self._local is not None:
            return self._local
        address = self._query_address(lambda s: s.getsockname())
        if address is not None:
            self._local = address
            return address
        return UnknownAddress(self.family)

    @property
    def remote_address(self) -> Address:
        """The peer address; an unknown address if there is no peer."""
        if self._remote is not None:
            return self._remote
        address = self._query_address(lambda s: s.getpeername())
        if address is not None:
            self._remote = address
            return address
        return UnknownAddress(self.family)

    # -- options -------------------------------------------------------

    def get_option(self, level: int, option: int, buflen: int = 0) -> Union[int, bytes]:
        """Read a socket option: an int, or ``buflen`` raw bytes."""
        sock = self._require_socket()
        if buflen:
            return sock.getsockopt(level, option, buflen)
        return sock.getsockopt(level, option)

    def set_option(self, level: int, option: int, value: Union[int, Buffer]) -> None:
        """Set a socket option from an int or raw bytes."""
        self._require_socket().setsockopt(level, option, value)

    def get_error(self) -> int:
        """The pending socket error, or -1 if it cannot be read."""
        try:
            return int(self.get_option(socket.SOL_SOCKET, socket.SO_ERROR))
        except OSError:
            return -1

    # -- connection ----------------------------------------------------

    def accept(self) -> "Socket":
        """Wait for a connection and return it as a connected socket."""
        conn, _ = self._require_socket().accept()
        client = Socket(self.family, self.type, self.protocol)
        client._adopt(conn)
        return client

    def bind(self, address: Address) -> None:
        """Bind to ``address``, creating the socket if needed."""
        self._ensure_socket()
        self._check_family(address, "bind")
        self._sock.bind(address.to_sockaddr())
        self._local = None
        _ = self.local_address

    def connect(self, address: Address, timeout_ms: Optional[int] = None) -> None:
        """Connect to ``address``; the socket is closed if that fails."""
        self._ensure_socket()
        self._check_family(address, "connect")
        try:
            if timeout_ms is None:
                self._sock.connect(address.to_sockaddr())
            else:
                self._sock.settimeout(timeout_ms / 1000)
                try:
                    self._sock.connect(address.to_sockaddr())
                finally:
                    if self._sock is not None:
                        self._sock.settimeout(None)
        except OSError:
            self.close()
            raise
        self._connected = True
        _ = self.local_address
        _ = self.remote_address

    def listen(self, backlog: int = socket.SOMAXCONN) -> None:
        """Start accepting connections."""
        self._require_socket().listen(backlog)

    def close(self) -> None:
        """Close the socket; closing twice is harmless."""
        self._connected = False
        if self._sock is not None:
            self._sock.close()
            self._sock = None

    def __enter__(self) -> "Socket":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    # -- data ----------------------------------------------------------

    def send(self, data: Union[Buffer, Sequence[Buffer]], flags: int = 0) -> int:
        """Send bytes, or a sequence of buffers in one call."""
        sock = self._require_connected()
        if isinstance(data, (list, tuple)):
            return sock.sendmsg(list(data), [], flags)
        return sock.send(data, flags)

    def send_to(
        self, data: Union[Buffer, Sequence[Buffer]], to: Address, flags: int = 0
    ) -> int:
        """Send bytes, or a sequence of buffers, to ``to``."""
        sock = self._require_connected()
        if isinstance(data, (list, tuple)):
            return sock.sendmsg(list(data), [], flags, to.to_sockaddr())
        return sock.sendto(data, flags, to.to_sockaddr())

    def recv(self, length: int, flags: int = 0) -> bytes:
        """Receive up to ``length`` bytes; empty when the peer has closed."""
        return self._require_connected().recv(length, flags)

    def recv_from(self, length: int, flags: int = 0) -> tuple[bytes, Address]:
        """Receive up to ``length`` bytes and the sender's address."""
        data, sender = self._require_connected().recvfrom(length, flags)
        return data, Address.from_sockaddr(self.family, sender)

    # -- text ----------------------------------------------------------

    def __str__(self) -> str:
        text = (
            f"[socket sock={self.fd} isConnected={int(self._connected)}"
            f" family={self.family} type={self.type} protocol={self.protocol}"
        )
        if self._local is not None:
            text += f" localAddress={self._local}"
        if self._remote is not None:
            text += f" remoteAddress={self._remote}"
        return text + "]"

    def __repr__(self) -> str:
        return f"Socket({str(self)!r})"

    # -- internals -----------------------------------------------------

    def _require_socket(self) -> socket.socket:
        if self._sock is None:
            raise OSError(errno.EBADF, "socket has not been created")
        return self._sock

    def _require_connected(self) -> socket.socket:
        if not self._connected or self._sock is None:
            raise OSError(errno.ENOTCONN, "socket is not connected")
        return self._sock

    def _check_family(self, address: Address, action: str) -> None:
        if address.family != self.family:
            raise ValueError(
                f"{action}: socket family {self.family} does not match "
                f"address family {address.family} ({address})"
            )

    def _ensure_socket(self) -> None:
        if self._sock is None:
            self._sock = socket.socket(self.family, self.type, self.protocol)
            self._init_socket()

    def _adopt(self, sock: socket.socket) -> None:
        self._sock = sock
        self._connected = True
        self._init_socket()
        _ = self.local_address
        _ = self.remote_address

    def _init_socket(self) -> None:
        self._sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        if self.type == self.TCP:
            try:
                self._sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
            except OSError:
                pass
        if self._send_timeout is not None:
            self._apply_timeout(socket.SO_SNDTIMEO, self._send_timeout)
        if self._recv_timeout is not None:
            self._apply_timeout(socket.SO_RCVTIMEO, self._recv_timeout)

    def _apply_timeout(self, option: int, ms: int) -> None:
        self._sock.setsockopt(socket.SOL_SOCKET, option, _timeval(ms))

    def _query_address(
        self, getter: Callable[[socket.socket], Any]
    ) -> Optional[Address]:
        if self._sock is None:
            return None
        try:
            sockaddr = getter(self._sock)
        except OSError:
            return None
        return Address.from_sockaddr(self.family, sockaddr)