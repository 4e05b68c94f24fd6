"""Shared byte buffers that can discard bytes from the front without copying."""

from __future__ import annotations

import copy
from collections import deque
from typing import Deque, List, Tuple, Union

BytesLike = Union[bytes, bytearray, memoryview]


class Buffer:
    """A shared, read-only byte string that can drop bytes from its front.

    Copies made with :func:`copy.copy` share the underlying storage but keep
    their own starting offset.
    """

    __slots__ = ("_storage", "_offset")

    def __init__(self, data: BytesLike = b"") -> None:
        self._storage = bytes(data)
        self._offset = 0

    def _view(self) -> memoryview:
        return memoryview(self._storage)[self._offset:]

    def __copy__(self) -> Buffer:
        clone = Buffer.__new__(Buffer)
        clone._storage = self._storage
        clone._offset = self._offset
        return clone

    def __bytes__(self) -> bytes:
        return self._storage[self._offset:]

    def __len__(self) -> int:
        return len(self._storage) - self._offset

    def __getitem__(self, key):
        if isinstance(key, slice):
            return bytes(self._view()[key])
        return self._view()[key]

    def __repr__(self) -> str:
        return f"Buffer({bytes(self)!r})"

    def at(self, n: int) -> int:
        """Return the byte at position ``n``."""
        if not 0 <= n < len(self):
            raise IndexError("Buffer.at")
        return self._storage[self._offset + n]

    def copy(self) -> bytes:
        """Return the contents as a new bytes object."""
        return bytes(self)

    def remove_prefix(self, n: int) -> None:
        """Discard the first ``n`` bytes."""
        if n < 0 or n > len(self):
            raise IndexError("Buffer.remove_prefix")
        self._offset += n
        if self._storage and self._offset == len(self._storage):
            self._storage = b""
            self._offset = 0


class BufferList:
    """A discontiguous byte string made of several Buffers.

    Lets headers be prepended to a payload without copying the payload.
    """

    def __init__(self, data: Union[Buffer, BytesLike, None] = None) -> None:
        self._buffers: Deque[Buffer] = deque()
        if data is None:
            return
        if isinstance(data, Buffer):
            self._buffers.append(copy.copy(data))
        else:
            self._buffers.append(Buffer(data))

    def buffers(self) -> Tuple[Buffer, ...]:
        """The Buffers making up this list, in order."""
        return tuple(copy.copy(buf) for buf in self._buffers)

    def append(self, other: Union[BufferList, Buffer, BytesLike]) -> None:
        """Append the Buffers of another BufferList (or a single buffer)."""
        if not isinstance(other, BufferList):
            other = BufferList(other)
        self._buffers.extend(copy.copy(buf) for buf in other._buffers)

    def to_buffer(self) -> Buffer:
        """Return the contents as one Buffer; fails unless contiguous."""
        if not self._buffers:
            return Buffer()
        if len(self._buffers) == 1:
            return copy.copy(self._buffers[0])
        raise ValueError(
            "BufferList: please use concatenate() to combine a multi-Buffer BufferList into one Buffer"
        )

    def remove_prefix(self, n: int) -> None:
        """Discard the first ``n`` bytes across the Buffers."""
        while n > 0:
            if not self._buffers:
                raise IndexError("BufferList.remove_prefix")
            front = self._buffers[0]
            if n < len(front):
                front.remove_prefix(n)
                n = 0
            else:
                n -= len(front)
                self._buffers.popleft()

    def __len__(self) -> int:
        return sum(len(buf) for buf in self._buffers)

    def concatenate(self) -> bytes:
        """Return all bytes joined into a single bytes object."""
        return b"".join(bytes(buf) for buf in self._buffers)


class BufferViewList:
    """A non-owning view of a possibly discontiguous byte string."""

    def __init__(self, data: Union[BufferList, Buffer, BytesLike]) -> None:
        self._views: Deque[memoryview]
        if isinstance(data, BufferList):
            self._views = deque(buf._view() for buf in data._buffers)
        elif isinstance(data, Buffer):
            self._views = deque([data._view()])
        else:
            self._views = deque([memoryview(data).cast("B")])

    def remove_prefix(self, n: int) -> None:
        """Discard the first ``n`` bytes across the views."""
        while n > 0:
            if not self._views:
                raise IndexError("BufferViewList.remove_prefix")
            front = self._views[0]
            if n < len(front):
                self._views[0] = front[n:]
                n = 0
            else:
                n -= len(front)
                self._views.popleft()

    def __len__(self) -> int:
        return sum(len(view) for view in self._views)

    def as_memoryviews(self) -> List[memoryview]:
        """The views as a list, suitable for ``os.writev`` or ``socket.sendmsg``."""
        return list(self._views)