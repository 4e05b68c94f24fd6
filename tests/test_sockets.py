import errno
import os
import socket

import pytest

from sponge.address import Address
from sponge.buffer import BufferList
from sponge.file_descriptor import FileDescriptor
from sponge.sockets import LocalStreamSocket, TCPSocket, UDPSocket
from sponge.util import UnixError

LOCALHOST = "127.0.0.1"


def _udp_pair():
    rx = UDPSocket()
    rx.bind(Address(LOCALHOST, 0))
    tx = UDPSocket()
    tx.bind(Address(LOCALHOST, 0))
    return rx, tx


def _tcp_connection():
    server = TCPSocket()
    server.set_reuseaddr()
    server.bind(Address(LOCALHOST, 0))
    server.listen()
    client = TCPSocket()
    client.connect(server.local_address())
    conn = server.accept()
    return server, client, conn


def test_udp_bind_local_address():
    rx, _tx = _udp_pair()
    addr = rx.local_address()
    assert addr.ip() == LOCALHOST
    assert addr.port() > 0


def test_udp_sendto_and_recv():
    rx, tx = _udp_pair()
    tx.sendto(rx.local_address(), b"ping")
    dgram = rx.recv()
    assert dgram.payload == b"ping"
    assert dgram.source_address == tx.local_address()
    assert rx.read_count() == 1
    assert tx.write_count() == 1


def test_udp_connected_send_of_buffer_list():
    rx, tx = _udp_pair()
    tx.connect(rx.local_address())
    payload = BufferList(b"head")
    payload.append(b"body")
    tx.send(payload)
    assert rx.recv().payload == b"headbody"
    assert tx.peer_address() == rx.local_address()


def test_udp_oversized_datagram():
    rx, tx = _udp_pair()
    tx.sendto(rx.local_address(), b"0123456789")
    with pytest.raises(RuntimeError, match="oversized"):
        rx.recv(4)


def test_tcp_connect_accept_and_transfer():
    server, client, conn = _tcp_connection()
    assert server.read_count() == 1
    assert conn.peer_address() == client.local_address()
    assert client.peer_address() == server.local_address()
    client.write(b"hello")
    assert conn.read(5) == b"hello"


def test_tcp_shutdown_write_gives_peer_eof():
    _server, client, conn = _tcp_connection()
    before = client.write_count()
    client.shutdown(socket.SHUT_WR)
    assert client.write_count() == before + 1
    assert conn.read(16) == b""
    assert conn.eof() is True


def test_shutdown_rdwr_counts_both():
    _server, client, _conn = _tcp_connection()
    reads, writes = client.read_count(), client.write_count()
    client.shutdown(socket.SHUT_RDWR)
    assert (client.read_count(), client.write_count()) == (reads + 1, writes + 1)


def test_shutdown_invalid_how():
    _server, client, _conn = _tcp_connection()
    with pytest.raises(UnixError):
        client.shutdown(99)


def test_peer_address_unconnected():
    sock = TCPSocket()
    with pytest.raises(UnixError) as info:
        sock.peer_address()
    assert info.value.errno == errno.ENOTCONN


def test_set_reuseaddr():
    sock = TCPSocket()
    sock.set_reuseaddr()
    probe = socket.socket(fileno=os.dup(sock.fd_num()))
    try:
        assert probe.getsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR) == 1
    finally:
        probe.close()


def test_local_stream_socket_from_socketpair():
    a, b = socket.socketpair(socket.AF_UNIX, socket.SOCK_STREAM)
    left = LocalStreamSocket(FileDescriptor(a.detach()))
    right = LocalStreamSocket(b.detach())
    left.write(b"local")
    assert right.read(16) == b"local"


def test_domain_mismatch():
    tcp = TCPSocket()
    with pytest.raises(RuntimeError, match="domain mismatch"):
        LocalStreamSocket(FileDescriptor(os.dup(tcp.fd_num())))


def test_type_mismatch():
    tcp = TCPSocket()
    with pytest.raises(RuntimeError, match="type mismatch"):
        UDPSocket(FileDescriptor(os.dup(tcp.fd_num())))