"""Buffers, wire-format parsing, checksums, addresses, descriptors, sockets, TUN/TAP and a poll-based event loop."""

__version__ = "0.1.0"