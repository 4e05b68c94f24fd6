"""Error types, system-call checking, timing, checksums and hex dumps."""

from __future__ import annotations

import functools
import os
import random
import sys
import time
from typing import Any, Callable, Optional, TextIO, Union

BytesLike = Union[bytes, bytearray, memoryview]


class TaggedError(OSError):
    """An OSError that also names what was being attempted."""

    def __init__(self, attempt: str, code: int, message: str) -> None:
        super().__init__(code, message)
        self.attempt = attempt

    def __str__(self) -> str:
        return f"{self.attempt}: {self.strerror}"


class UnixError(TaggedError):
    """A failed system call and its errno."""

    def __init__(self, attempt: str, code: int) -> None:
        super().__init__(attempt, code, os.strerror(code))


def system_call(attempt: str, func: Callable[..., Any], *args: Any, ignore_errno: Optional[int] = None) -> Any:
    """Call ``func(*args)``, turning OSError into UnixError.

    If the failure's errno equals ``ignore_errno``, None is returned instead.
    """
    try:
        return func(*args)
    except OSError as exc:
        if exc.errno is None:
            raise
        if ignore_errno is not None and exc.errno == ignore_errno:
            return None
        raise UnixError(attempt, exc.errno) from exc


def get_random_generator() -> random.Random:
    """A Mersenne Twister generator seeded with a full state of OS entropy."""
    seed = int.from_bytes(os.urandom(624 * 4), "little")
    return random.Random(seed)


@functools.lru_cache(maxsize=None)
def _program_start_ns() -> int:
    return time.monotonic_ns()


def timestamp_ms() -> int:
    """Milliseconds elapsed since the first call to this function."""
    start = _program_start_ns()
    return (time.monotonic_ns() - start) // 1_000_000


class InternetChecksum:
    """The Internet (ones'-complement) checksum, returned in host order.

    Summing a packet that carries a correct checksum yields 0.
    """

    def __init__(self, initial_sum: int = 0) -> None:
        self._sum = initial_sum & 0xFFFFFFFF
        self._parity = False

    def add(self, data: BytesLike) -> None:
        data = bytes(data)
        if self._parity and data:
            self._sum += data[0]
            data = data[1:]
            self._parity = False
        self._sum += sum(data[0::2]) << 8
        self._sum += sum(data[1::2])
        self._sum &= 0xFFFFFFFF
        if len(data) % 2:
            self._parity = True

    def value(self) -> int:
        ret = self._sum
        while ret > 0xFFFF:
            ret = (ret >> 16) + (ret & 0xFFFF)
        return ~ret & 0xFFFF


def _printable(byte: int) -> str:
    return chr(byte) if 0x20 <= byte < 0x7F else "."


def format_hexdump(data: BytesLike, indent: int = 0) -> str:
    """Render bytes as a hex dump, 16 bytes per line."""
    data = bytes(data)
    indent_string = " " * indent
    parts = []
    chars: list = []
    printed = 0
    for byte in data:
        if printed & 0xF == 0:
            if printed:
                parts.append("    " + "".join(chars) + "\n")
                chars = []
            parts.append(f"{indent_string}{printed:08x}:    ")
        elif printed & 1 == 0:
            parts.append(" ")
        parts.append(f"{byte:02x}")
        chars.append(_printable(byte))
        printed += 1
    remainder = (16 - (printed & 0xF)) % 16
    parts.append(" " * (2 * remainder + remainder // 2 + 4))
    parts.append("".join(chars) or " ")
    parts.append("\n\n")
    return "".join(parts)


def hexdump(data: BytesLike, indent: int = 0, file: Optional[TextIO] = None) -> None:
    """Write a hex dump of ``data`` to ``file`` (standard output by default)."""
    out = sys.stdout if file is None else file
    out.write(format_hexdump(data, indent))
    out.flush()