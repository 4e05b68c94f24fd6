"""IPv4 socket addresses and name resolution."""

from __future__ import annotations

import socket
from typing import Tuple, Union

from sponge.util import TaggedError

SockAddr = Union[Tuple, str, bytes]

_EAI_FAMILY = getattr(socket, "EAI_FAMILY", -6)


def _lookup(node: str, service: str, flags: int) -> Tuple[int, SockAddr]:
    try:
        results = socket.getaddrinfo(node, service, socket.AF_INET, 0, 0, flags)
    except socket.gaierror as exc:
        raise TaggedError(f"getaddrinfo({node}, {service})", exc.errno, exc.strerror) from exc
    if not results:
        raise RuntimeError("getaddrinfo returned successfully but with no results")
    family, _type, _proto, _canonname, sockaddr = results[0]
    return family, sockaddr


def _infer_family(sockaddr: SockAddr) -> int:
    if isinstance(sockaddr, (str, bytes)):
        return socket.AF_UNIX
    if isinstance(sockaddr, tuple) and sockaddr:
        if len(sockaddr) == 4 or ":" in str(sockaddr[0]):
            return socket.AF_INET6
        if len(sockaddr) == 2:
            return socket.AF_INET
    raise TypeError(f"unsupported socket address: {sockaddr!r}")


class Address:
    """A socket address: an IPv4 address and port, or whatever a socket reports."""

    __slots__ = ("_family", "_sockaddr")

    def __init__(self, ip: str, port: int = 0) -> None:
        """Build from a dotted-quad string and a numeric port, without resolving names."""
        if not 0 <= port <= 0xFFFF:
            raise ValueError(f"port out of range: {port}")
        flags = socket.AI_NUMERICHOST | socket.AI_NUMERICSERV
        self._family, self._sockaddr = _lookup(ip, str(port), flags)

    @classmethod
    def _from_parts(cls, family: int, sockaddr: SockAddr) -> Address:
        address = cls.__new__(cls)
        address._family = family
        address._sockaddr = sockaddr
        return address

    @classmethod
    def resolve(cls, hostname: str, service: str) -> Address:
        """Resolve a host name and a service name (or numeric strings)."""
        family, sockaddr = _lookup(hostname, service, getattr(socket, "AI_ALL", 0))
        return cls._from_parts(family, sockaddr)

    @classmethod
    def from_sockaddr(cls, sockaddr: SockAddr) -> Address:
        """Wrap an address as returned by the socket module."""
        return cls._from_parts(_infer_family(sockaddr), sockaddr)

    @classmethod
    def from_ipv4_numeric(cls, ip_address: int) -> Address:
        """Build an address (port 0) from a 32-bit host-order IPv4 number."""
        if not 0 <= ip_address <= 0xFFFFFFFF:
            raise ValueError(f"not a 32-bit address: {ip_address}")
        ip = socket.inet_ntoa(ip_address.to_bytes(4, "big"))
        return cls._from_parts(socket.AF_INET, (ip, 0))

    @property
    def family(self) -> int:
        return self._family

    def ip_port(self) -> Tuple[str, int]:
        """The numeric IP string and the port."""
        if self._family not in (socket.AF_INET, socket.AF_INET6):
            raise TaggedError("getnameinfo", _EAI_FAMILY, "ai_family not supported")
        try:
            host, port = socket.getnameinfo(
                self._sockaddr, socket.NI_NUMERICHOST | socket.NI_NUMERICSERV
            )
        except socket.gaierror as exc:
            raise TaggedError("getnameinfo", exc.errno, exc.strerror) from exc
        return host, int(port)

    def ip(self) -> str:
        return self.ip_port()[0]

    def port(self) -> int:
        return self.ip_port()[1]

    def ipv4_numeric(self) -> int:
        """The IPv4 address as a host-order integer."""
        if self._family != socket.AF_INET:
            raise ValueError("ipv4_numeric called on non-IPV4 address")
        return int.from_bytes(socket.inet_aton(self._sockaddr[0]), "big")

    def sockaddr(self) -> SockAddr:
        """The address in the form the socket module expects."""
        return self._sockaddr

    def __str__(self) -> str:
        ip, port = self.ip_port()
        return f"{ip}:{port}"

    def __repr__(self) -> str:
        return f"Address({self._sockaddr!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Address):
            return NotImplemented
        return self._family == other._family and self._sockaddr == other._sockaddr

    def __hash__(self) -> int:
        return hash((self._family, self._sockaddr))