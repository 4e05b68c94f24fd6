import errno
import gc
import os

import pytest

from sponge.buffer import BufferList
from sponge.file_descriptor import FileDescriptor
from sponge.util import UnixError


@pytest.fixture
def pipe():
    r, w = os.pipe()
    reader, writer = FileDescriptor(r), FileDescriptor(w)
    yield reader, writer
    for fd in (reader, writer):
        if not fd.closed():
            fd.close()


def test_write_then_read(pipe):
    reader, writer = pipe
    assert writer.write(b"hello") == 5
    assert reader.read() == b"hello"
    assert writer.write_count() == 1
    assert reader.read_count() == 1


def test_read_limit(pipe):
    reader, writer = pipe
    writer.write(b"abcdef")
    assert reader.read(2) == b"ab"
    assert reader.read(10) == b"cdef"


def test_eof_after_writer_closes(pipe):
    reader, writer = pipe
    writer.write(b"x")
    writer.close()
    assert reader.read() == b"x"
    assert not reader.eof()
    assert reader.read() == b""
    assert reader.eof()


def test_zero_limit_does_not_set_eof(pipe):
    reader, writer = pipe
    writer.close()
    assert reader.read(0) == b""
    assert not reader.eof()


def test_write_buffer_list(pipe):
    reader, writer = pipe
    chunks = BufferList(b"head")
    chunks.append(BufferList(b"payload"))
    assert writer.write(chunks) == len(b"headpayload")
    assert reader.read() == b"headpayload"


def test_duplicate_shares_state(pipe):
    reader, writer = pipe
    dup = writer.duplicate()
    dup.write(b"a")
    assert writer.write_count() == 1
    assert dup.fd_num() == writer.fd_num()
    dup.close()
    assert writer.closed()
    assert writer.eof()


def test_negative_fd_rejected():
    with pytest.raises(ValueError):
        FileDescriptor(-1)


def test_nonblocking_empty_read_raises(pipe):
    reader, _writer = pipe
    reader.set_blocking(False)
    with pytest.raises(UnixError) as info:
        reader.read()
    assert info.value.errno == errno.EAGAIN
    assert info.value.attempt == "read"


def test_double_close_raises(pipe):
    reader, _writer = pipe
    reader.close()
    with pytest.raises(UnixError) as info:
        reader.close()
    assert info.value.errno == errno.EBADF


def test_context_manager_closes():
    r, w = os.pipe()
    os.close(w)
    with FileDescriptor(r) as fd:
        assert fd.fd_num() == r
    assert fd.closed()
    with pytest.raises(OSError):
        os.fstat(r)


def test_last_handle_closes_on_collection():
    r, w = os.pipe()
    os.close(w)
    fd = FileDescriptor(r)
    del fd
    gc.collect()
    with pytest.raises(OSError):
        os.fstat(r)


def test_take_over_handle(pipe):
    reader, writer = pipe
    other = FileDescriptor(writer)
    other.write(b"z")
    assert writer.write_count() == 1
    assert reader.read() == b"z"