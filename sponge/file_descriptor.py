"""Reference-counted file descriptor handles that count reads and writes."""

from __future__ import annotations

import os
import sys
from typing import Optional, Union

from sponge.buffer import Buffer, BufferList, BufferViewList, BytesLike
from sponge.util import system_call

_MAX_READ = 1024 * 1024

Writable = Union[BytesLike, Buffer, BufferList, BufferViewList]


class _FDWrapper:
    """The kernel descriptor itself, shared by all duplicates."""

    __slots__ = ("fd", "eof", "closed", "read_count", "write_count")

    def __init__(self, fd: int) -> None:
        if fd < 0:
            raise ValueError(f"invalid fd number:{fd}")
        self.fd = fd
        self.eof = False
        self.closed = False
        self.read_count = 0
        self.write_count = 0

    def close(self) -> None:
        system_call("close", os.close, self.fd)
        self.eof = self.closed = True

    def __del__(self) -> None:
        if getattr(self, "closed", True):
            return
        try:
            self.close()
        except Exception as exc:  # never raise from a finaliser
            print(f"Exception destructing FDWrapper: {exc}", file=sys.stderr)


class FileDescriptor:
    """A handle on a file descriptor, closed when the last duplicate goes away.

    Tracks EOF and the number of reads and writes, which the event loop uses
    to detect busy waiting.
    """

    def __init__(self, fd: Union[int, FileDescriptor]) -> None:
        """Wrap a descriptor number, or take over another FileDescriptor's handle."""
        if isinstance(fd, FileDescriptor):
            self._internal = fd._internal
        else:
            self._internal = _FDWrapper(fd)

    def _register_read(self) -> None:
        self._internal.read_count += 1

    def _register_write(self) -> None:
        self._internal.write_count += 1

    def duplicate(self) -> FileDescriptor:
        """Another handle sharing the same descriptor and counters."""
        dup = FileDescriptor.__new__(FileDescriptor)
        dup._internal = self._internal
        return dup

    def read(self, limit: Optional[int] = None) -> bytes:
        """Read up to ``limit`` bytes (at most 1 MiB per call)."""
        size = _MAX_READ if limit is None else min(_MAX_READ, limit)
        data = system_call("read", os.read, self.fd_num(), size)
        if size > 0 and not data:
            self._internal.eof = True
        if len(data) > size:
            raise RuntimeError("read() read more than requested")
        self._register_read()
        return data

    def write(self, data: Writable, write_all: bool = True) -> int:
        """Write ``data``; if ``write_all``, keep going until all is written."""
        if isinstance(data, BufferViewList):
            data = b"".join(data.as_memoryviews())
        buffer = BufferViewList(data)
        total = 0
        while True:
            written = system_call("writev", os.writev, self.fd_num(), buffer.as_memoryviews())
            if written == 0 and len(buffer):
                raise RuntimeError("write returned 0 given non-empty input buffer")
            if written > len(buffer):
                raise RuntimeError("write wrote more than length of input buffer")
            self._register_write()
            buffer.remove_prefix(written)
            total += written
            if not (write_all and len(buffer)):
                return total

    def close(self) -> None:
        """Close the underlying descriptor."""
        self._internal.close()

    def set_blocking(self, blocking: bool) -> None:
        system_call("fcntl", os.set_blocking, self.fd_num(), blocking)

    def fd_num(self) -> int:
        return self._internal.fd

    def eof(self) -> bool:
        return self._internal.eof

    def closed(self) -> bool:
        return self._internal.closed

    def read_count(self) -> int:
        return self._internal.read_count

    def write_count(self) -> int:
        return self._internal.write_count

    def __enter__(self) -> FileDescriptor:
        return self

    def __exit__(self, *args: object) -> None:
        if not self.closed():
            self.close()