import os
import select
import socket

import pytest

from sponge.eventloop import Direction, EventLoop, Result
from sponge.file_descriptor import FileDescriptor


def _pipe():
    r, w = os.pipe()
    return FileDescriptor(r), FileDescriptor(w)


def test_direction_from_poll_flags_drives_loop():
    assert Direction(select.POLLIN) is Direction.IN
    assert Direction(select.POLLOUT) is Direction.OUT

    r, w = _pipe()
    got = []
    loop = EventLoop()
    loop.add_rule(r, Direction(select.POLLIN), lambda: got.append(r.read(16)))
    w.write(b"z")
    assert loop.wait_next_event(1000) is Result.SUCCESS
    assert got == [b"z"]


def test_no_rules_exits():
    assert EventLoop().wait_next_event(0) is Result.EXIT


def test_timeout_when_nothing_ready():
    r, w = _pipe()
    loop = EventLoop()
    loop.add_rule(r, Direction.IN, lambda: r.read(16))
    assert loop.wait_next_event(0) is Result.TIMEOUT


def test_readable_callback_runs():
    r, w = _pipe()
    received = []
    loop = EventLoop()
    loop.add_rule(r, Direction.IN, lambda: received.append(r.read(1024)))
    w.write(b"hello")
    assert loop.wait_next_event(1000) is Result.SUCCESS
    assert received == [b"hello"]
    assert r.read_count() == 1


def test_uninterested_rules_exit():
    r, w = _pipe()
    loop = EventLoop()
    loop.add_rule(r, Direction.IN, lambda: r.read(16), interest=lambda: False)
    w.write(b"x")
    assert loop.wait_next_event(0) is Result.EXIT


def test_busy_wait_detected():
    r, w = _pipe()
    loop = EventLoop()
    loop.add_rule(r, Direction.IN, lambda: None)
    w.write(b"x")
    with pytest.raises(RuntimeError, match="busy wait"):
        loop.wait_next_event(1000)


def test_no_busy_wait_when_interest_ends():
    r, w = _pipe()
    interested = [True]
    calls = []

    def callback():
        calls.append(1)
        interested[0] = False

    loop = EventLoop()
    loop.add_rule(r, Direction.IN, callback, interest=lambda: interested[0])
    w.write(b"x")
    assert loop.wait_next_event(1000) is Result.SUCCESS
    assert calls == [1]
    assert loop.wait_next_event(0) is Result.EXIT


def test_writable_callback_runs():
    r, w = _pipe()
    loop = EventLoop()
    loop.add_rule(w, Direction.OUT, lambda: w.write(b"out"))
    assert loop.wait_next_event(1000) is Result.SUCCESS
    assert r.read(16) == b"out"
    assert w.write_count() == 1


def test_eof_cancels_rule():
    r, w = _pipe()
    chunks = []
    cancelled = []
    loop = EventLoop()
    loop.add_rule(r, Direction.IN, lambda: chunks.append(r.read(1024)), cancel=lambda: cancelled.append(True))
    w.write(b"data")
    w.close()
    results = []
    for _ in range(5):
        result = loop.wait_next_event(1000)
        results.append(result)
        if result is Result.EXIT:
            break
    assert results[-1] is Result.EXIT
    assert b"".join(chunks) == b"data"
    assert cancelled == [True]


def test_closed_fd_cancels_rule():
    r, w = _pipe()
    cancelled = []
    loop = EventLoop()
    loop.add_rule(r, Direction.IN, lambda: r.read(16), cancel=lambda: cancelled.append(True))
    r.close()
    assert loop.wait_next_event(0) is Result.EXIT
    assert cancelled == [True]


def test_two_rules_on_one_descriptor():
    a, b = socket.socketpair()
    fa = FileDescriptor(a.detach())
    fb = FileDescriptor(b.detach())
    fb.write(b"in")
    got = []
    loop = EventLoop()
    loop.add_rule(fa, Direction.IN, lambda: got.append(fa.read(16)))
    loop.add_rule(fa, Direction.OUT, lambda: fa.write(b"back"))
    assert loop.wait_next_event(1000) is Result.SUCCESS
    assert got == [b"in"]
    assert fb.read(16) == b"back"