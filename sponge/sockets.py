"""Network sockets built on reference-counted file descriptors."""

from __future__ import annotations

import contextlib
import socket
from dataclasses import dataclass
from typing import Iterator, Optional, Union

from sponge.address import Address
from sponge.buffer import Buffer, BufferList, BufferViewList, BytesLike
from sponge.file_descriptor import FileDescriptor
from sponge.util import system_call

Payload = Union[BytesLike, Buffer, BufferList, BufferViewList]
FdSource = Union[int, FileDescriptor]

_MSG_TRUNC = getattr(socket, "MSG_TRUNC", 0)


def _as_views(payload: Payload) -> BufferViewList:
    if isinstance(payload, BufferViewList):
        return payload
    return BufferViewList(payload)


class Socket(FileDescriptor):
    """Base class for network sockets; normally used through a subclass."""

    def __init__(self, domain: int, sock_type: int, fd: Optional[FdSource] = None) -> None:
        """Open a new socket, or adopt ``fd`` after checking its domain and type."""
        if fd is None:
            sock = system_call("socket", socket.socket, domain, sock_type)
            super().__init__(sock.detach())
            return
        super().__init__(fd)
        with self._borrowed() as sock:
            if sock.family != domain:
                raise RuntimeError("socket domain mismatch")
            if sock.type != sock_type:
                raise RuntimeError("socket type mismatch")

    @contextlib.contextmanager
    def _borrowed(self) -> Iterator[socket.socket]:
        """A socket object over our descriptor that does not close it."""
        sock = system_call("socket", socket.socket, -1, -1, -1, self.fd_num())
        try:
            yield sock
        finally:
            sock.detach()

    def _setsockopt(self, level: int, option: int, value: Union[int, bytes]) -> None:
        with self._borrowed() as sock:
            system_call("setsockopt", sock.setsockopt, level, option, value)

    def bind(self, address: Address) -> None:
        """Bind to a local address, usually before listen/accept."""
        with self._borrowed() as sock:
            system_call("bind", sock.bind, address.sockaddr())

    def connect(self, address: Address) -> None:
        """Connect to a peer address."""
        with self._borrowed() as sock:
            system_call("connect", sock.connect, address.sockaddr())

    def shutdown(self, how: int) -> None:
        """Shut down reading, writing or both (SHUT_RD, SHUT_WR, SHUT_RDWR)."""
        with self._borrowed() as sock:
            system_call("shutdown", sock.shutdown, how)
        if how == socket.SHUT_RD:
            self._register_read()
        elif how == socket.SHUT_WR:
            self._register_write()
        elif how == socket.SHUT_RDWR:
            self._register_read()
            self._register_write()
        else:
            raise RuntimeError("Socket::shutdown() called with invalid `how`")

    def local_address(self) -> Address:
        """The address this socket is bound to."""
        with self._borrowed() as sock:
            return Address.from_sockaddr(system_call("getsockname", sock.getsockname))

    def peer_address(self) -> Address:
        """The address of the connected peer."""
        with self._borrowed() as sock:
            return Address.from_sockaddr(system_call("getpeername", sock.getpeername))

    def set_reuseaddr(self) -> None:
        """Allow the local address to be reused sooner (SO_REUSEADDR)."""
        self._setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)


@dataclass
class ReceivedDatagram:
    """A datagram payload and the address it came from."""

    source_address: Address
    payload: bytes


class UDPSocket(Socket):
    """An IPv4 UDP socket."""

    def __init__(self, fd: Optional[FdSource] = None) -> None:
        super().__init__(socket.AF_INET, socket.SOCK_DGRAM, fd)

    def recv(self, mtu: int = 65536) -> ReceivedDatagram:
        """Receive one datagram; raises if it is larger than ``mtu``."""
        buf = bytearray(mtu)
        with self._borrowed() as sock:
            length, source = system_call("recvfrom", sock.recvfrom_into, buf, mtu, _MSG_TRUNC)
        if length > mtu:
            raise RuntimeError("recvfrom (oversized datagram)")
        self._register_read()
        return ReceivedDatagram(Address.from_sockaddr(source), bytes(buf[:length]))

    def _sendmsg(self, payload: Payload, destination: Optional[Address]) -> None:
        views = _as_views(payload)
        with self._borrowed() as sock:
            if destination is None:
                sent = system_call("sendmsg", sock.sendmsg, views.as_memoryviews())
            else:
                sent = system_call(
                    "sendmsg", sock.sendmsg, views.as_memoryviews(), [], 0, destination.sockaddr()
                )
        if sent != len(views):
            raise RuntimeError("datagram payload too big for sendmsg()")
        self._register_write()

    def sendto(self, destination: Address, payload: Payload) -> None:
        """Send a datagram to ``destination``."""
        self._sendmsg(payload, destination)

    def send(self, payload: Payload) -> None:
        """Send a datagram to the connected peer."""
        self._sendmsg(payload, None)


class TCPSocket(Socket):
    """An IPv4 TCP socket."""

    def __init__(self, fd: Optional[FdSource] = None) -> None:
        super().__init__(socket.AF_INET, socket.SOCK_STREAM, fd)

    def listen(self, backlog: int = 16) -> None:
        """Start listening for incoming connections."""
        with self._borrowed() as sock:
            system_call("listen", sock.listen, backlog)

    def accept(self) -> TCPSocket:
        """Wait for and return a new connection."""
        self._register_read()
        with self._borrowed() as sock:
            conn, _peer = system_call("accept", sock.accept)
        return TCPSocket(FileDescriptor(conn.detach()))


class LocalStreamSocket(Socket):
    """A Unix-domain stream socket adopted from an existing descriptor."""

    def __init__(self, fd: FdSource) -> None:
        super().__init__(socket.AF_UNIX, socket.SOCK_STREAM, fd)