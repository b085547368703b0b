"""URI parsing and formatting for http, https, ftp, file, magnet and similar schemes."""

from __future__ import annotations

import re
import string
from typing import Optional

from .address import IPAddress, lookup_any_ip_address

__all__ = ["Uri"]

# RFC 3986 unreserved and reserved characters, plus '%' for escapes.
_VALID = frozenset(string.ascii_letters + string.digits + "-_.~!*'();:@&=+$,/?#[]%")
_DIGITS = frozenset(string.digits)
_ULONG_MAX = 2**64 - 1
_UNSIGNED_PREFIX = re.compile(r"[ \t\n\v\f\r]*([+-]?)([0-9]+)")

_DEFAULT_PORTS = {"http": 80, "ws": 80, "https": 443, "wss": 443}


def _valid(char: Optional[str]) -> bool:
    return char is not None and char in _VALID


def _parse_unsigned(text: str) -> Optional[int]:
    """Read a leading unsigned number as a 32-bit port; None if there is none."""
    match = _UNSIGNED_PREFIX.match(text)
    if match is None:
        return None
    value = int(match.group(2))
    if value > _ULONG_MAX:
        return None
    if match.group(1) == "-":
        value = -value % (_ULONG_MAX + 1)
    return value & 0xFFFFFFFF


class _Reject(Exception):
    """The text ended where more characters were required."""


class _Parser:
    """Reads a URI one character at a time, filling in its parts."""

    def __init__(self, text: str) -> None:
        self.text = text
        self.pos = 0
        self.scheme = ""
        self.userinfo = ""
        self.host = ""
        self.path = ""
        self.query = ""
        self.fragment = ""
        self.port = 0

    @property
    def cur(self) -> Optional[str]:
        return self.text[self.pos] if self.pos < len(self.text) else None

    def advance(self) -> bool:
        """Move to the next character; True if the text has ended."""
        self.pos += 1
        return self.cur is None

    def step(self) -> None:
        """Move to the next character, which must exist."""
        if self.advance():
            raise _Reject

    def set_port(self, text: str) -> bool:
        port = _parse_unsigned(text)
        if port is None:
            return False
        self.port = port
        return True

    def parse(self) -> bool:
        buff = ""
        while self.cur not in (":", "?", "#", "/") and _valid(self.cur):
            buff += self.cur
            if self.advance():
                self.host = buff
                return True
        if self.cur == "/":
            self.host = buff
            return self._path_onwards()
        self.step()
        if self.cur in _DIGITS:
            self.host = buff
            return self._port_onwards()

        self.scheme = buff
        if self.cur == "/":
            self.step()
            if self.cur != "/":
                return False
            self.step()
            if self.cur != "/":
                outcome = self._authority()
                if outcome is not None:
                    return outcome
            if self.cur == "/":
                return self._path_onwards()
        return self._query_onwards()

    def _authority(self) -> Optional[bool]:
        """Parse ``[userinfo@]host[:port]``; None means go on to the path."""
        buff = ""
        port_idx = 0
        while self.cur not in ("@", "/") and _valid(self.cur):
            buff += self.cur
            if self.cur == ":" and not port_idx:
                port_idx = len(buff)
            if self.advance():
                if port_idx:
                    self.host = buff[: port_idx - 1]
                    return self.set_port(buff[port_idx:])
                self.host = buff
                return True
        if not buff or not _valid(self.cur):
            return False

        if self.cur == "@":
            self.userinfo = buff
            buff = ""
            self.step()
            while self.cur not in (":", "/") and _valid(self.cur):
                buff += self.cur
                if self.advance():
                    self.host = buff
                    return True
            if not buff or not _valid(self.cur):
                return False
            self.host = buff
            if self.cur == ":":
                self.step()
                return self._port_onwards()
            return None

        if port_idx:
            self.host = buff[: port_idx - 1]
            if not self.set_port(buff[port_idx:]):
                return False
        else:
            self.host = buff
        return None

    def _port_onwards(self) -> bool:
        buff = ""
        while self.cur in _DIGITS:
            buff += self.cur
            if self.advance():
                return self.set_port(buff)
        if self.cur != "/" or not buff:
            return False
        if not self.set_port(buff):
            return False
        return self._path_onwards()

    def _path_onwards(self) -> bool:
        buff = "/"
        if self.advance():
            self.path = buff
            return True
        while self.cur not in ("?", "#") and _valid(self.cur):
            buff += self.cur
            if self.advance():
                self.path = buff
                return True
            if not _valid(self.cur):
                return False
        self.path = buff
        return self._query_onwards()

    def _query_onwards(self) -> bool:
        if self.cur == "?":
            buff = ""
            self.step()
            while self.cur != "#" and _valid(self.cur):
                buff += self.cur
                if self.advance():
                    self.query = buff
                    return True
                if not _valid(self.cur):
                    return False
            self.query = buff
        if self.cur == "#":
            buff = ""
            self.step()
            while _valid(self.cur):
                buff += self.cur
                if self.advance():
                    self.fragment = buff
                    return True
                if not _valid(self.cur):
                    return False
            self.fragment = buff
        return False


class Uri:
    """A URI split into ``scheme://userinfo@host:port/path?query#fragment``."""

    def __init__(
        self,
        scheme: str = "",
        userinfo: str = "",
        host: str = "",
        path: str = "",
        query: str = "",
        fragment: str = "",
        port: int = 0,
    ) -> None:
        self.scheme = scheme
        self.userinfo = userinfo
        self.host = host
        self._path = path
        self.query = query
        self.fragment = fragment
        self._port = port

    @classmethod
    def create(cls, text: str) -> Optional["Uri"]:
        """Parse ``text``; None if it is empty or not a valid URI."""
        if not text:
            return None
        parser = _Parser(text)
        try:
            accepted = parser.parse()
        except _Reject:
            return None
        if not accepted:
            return None
        return cls(
            scheme=parser.scheme,
            userinfo=parser.userinfo,
            host=parser.host,
            path=parser.path,
            query=parser.query,
            fragment=parser.fragment,
            port=parser.port,
        )

    @property
    def path(self) -> str:
        """The path; ``"/"`` when empty, except for magnet links."""
        if self.scheme == "magnet":
            return self._path
        return self._path or "/"

    @path.setter
    def path(self, value: str) -> None:
        self._path = value

    @property
    def port(self) -> int:
        """The explicit port, else the scheme's default, else 0."""
        if self._port:
            return self._port
        return _DEFAULT_PORTS.get(self.scheme, 0)

    def _is_default_port(self) -> bool:
        if self._port == 0:
            return True
        default = _DEFAULT_PORTS.get(self.scheme)
        return default is not None and self._port == default

    def create_address(self) -> Optional[IPAddress]:
        """Resolve the host to an IP address carrying this URI's port."""
        address = lookup_any_ip_address(self.host)
        if address is not None:
            address.port = self.port
        return address

    def __str__(self) -> str:
        parts = [self.scheme]
        if self.scheme:
            parts.append(":")
            if self.scheme != "magnet":
                parts.append("//")
        if self.userinfo:
            parts.append(self.userinfo + "@")
        parts.append(self.host)
        if not self._is_default_port():
            parts.append(f":{self._port}")
        parts.append(self.path)
        if self.query:
            parts.append("?" + self.query)
        if self.fragment:
            parts.append("#" + self.fragment)
        return "".join(parts)

    def __repr__(self) -> str:
        return f"Uri({str(self)!r})"