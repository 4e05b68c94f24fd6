"""Network-byte-order integer parsing and serialisation."""

from __future__ import annotations

import copy
import enum
from typing import Union

from sponge.buffer import Buffer, BytesLike


class ParseResult(enum.Enum):
    """Outcome of parsing a datagram, segment, frame or ARP message."""

    NO_ERROR = 0
    BAD_CHECKSUM = 1
    PACKET_TOO_SHORT = 2
    WRONG_IP_VERSION = 3
    HEADER_TOO_SHORT = 4
    TRUNCATED_PACKET = 5
    UNSUPPORTED = 6


_NAMES = {
    ParseResult.NO_ERROR: "NoError",
    ParseResult.BAD_CHECKSUM: "BadChecksum",
    ParseResult.PACKET_TOO_SHORT: "PacketTooShort",
    ParseResult.WRONG_IP_VERSION: "WrongIPVersion",
    ParseResult.HEADER_TOO_SHORT: "HeaderTooShort",
    ParseResult.TRUNCATED_PACKET: "TruncatedPacket",
    ParseResult.UNSUPPORTED: "Unsupported",
}


def as_string(result: ParseResult) -> str:
    """Human-readable name of a ParseResult."""
    return _NAMES[result]


class NetParser:
    """Reads big-endian integers from the front of a Buffer.

    Once an error is recorded, further reads return 0 and consume nothing.
    """

    def __init__(self, buffer: Union[Buffer, BytesLike]) -> None:
        self._buffer = copy.copy(buffer) if isinstance(buffer, Buffer) else Buffer(buffer)
        self._error = ParseResult.NO_ERROR

    def buffer(self) -> Buffer:
        """The bytes not yet consumed."""
        return copy.copy(self._buffer)

    def get_error(self) -> ParseResult:
        return self._error

    def set_error(self, result: ParseResult) -> None:
        self._error = result

    def error(self) -> bool:
        """True if an error has been recorded."""
        return self._error is not ParseResult.NO_ERROR

    def _check_size(self, size: int) -> None:
        if size > len(self._buffer):
            self._error = ParseResult.PACKET_TOO_SHORT

    def _parse_int(self, size: int) -> int:
        self._check_size(size)
        if self.error():
            return 0
        value = int.from_bytes(self._buffer[:size], "big")
        self._buffer.remove_prefix(size)
        return value

    def u32(self) -> int:
        return self._parse_int(4)

    def u16(self) -> int:
        return self._parse_int(2)

    def u8(self) -> int:
        return self._parse_int(1)

    def remove_prefix(self, n: int) -> None:
        """Skip ``n`` bytes, recording an error if there are not enough."""
        self._check_size(n)
        if self.error():
            return
        self._buffer.remove_prefix(n)


def pack_u32(value: int) -> bytes:
    """Encode the low 32 bits of ``value`` in network byte order."""
    return (value & 0xFFFFFFFF).to_bytes(4, "big")


def pack_u16(value: int) -> bytes:
    """Encode the low 16 bits of ``value`` in network byte order."""
    return (value & 0xFFFF).to_bytes(2, "big")


def pack_u8(value: int) -> bytes:
    """Encode the low 8 bits of ``value``."""
    return (value & 0xFF).to_bytes(1, "big")