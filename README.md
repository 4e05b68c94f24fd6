# sponge

Building blocks for user-space networking programs on POSIX systems. It is a library and installs no command-line tools.

## What is included

| Module | Contents |
| --- | --- |
| `sponge.buffer` | `Buffer`: a read-only byte string that can drop leading bytes without copying. `BufferList`: a sequence of `Buffer`s that can hold a packet made of several headers and a payload. `BufferViewList`: a non-owning set of `memoryview`s, for use with `os.writev` or `socket.sendmsg`. |
| `sponge.parser` | `NetParser` reads big-endian `u8`, `u16` and `u32` values from a buffer and records a `ParseResult` when data runs out. `pack_u8`, `pack_u16` and `pack_u32` encode values. `as_string` gives the name of a `ParseResult`. |
| `sponge.util` | `InternetChecksum`, `system_call` (turns `OSError` into `UnixError`), `TaggedError`, `UnixError`, `timestamp_ms`, `get_random_generator`, `format_hexdump` and `hexdump`. |
| `sponge.address` | `Address`: an IPv4 address and port, with `Address.resolve` for names, `Address.from_ipv4_numeric`, `Address.from_sockaddr`, `ip_port`, `ip`, `port`, `ipv4_numeric` and `sockaddr`. |
| `sponge.file_descriptor` | `FileDescriptor`: a handle shared between duplicates. It tracks EOF and closed state, counts reads and writes, and works as a context manager. |
| `sponge.tun` | `TunTapFD`, `TunFD` and `TapFD` open existing persistent Linux TUN/TAP devices. |
| `sponge.eventloop` | `EventLoop`, with `Direction` (`IN`, `OUT`) and `Result` (`SUCCESS`, `TIMEOUT`, `EXIT`): a `poll`-based loop that runs callbacks when descriptors are ready. |
| `sponge.sockets` | `Socket`, `UDPSocket` (with `ReceivedDatagram`), `TCPSocket` and `LocalStreamSocket`, all of them `FileDescriptor`s. |

## Installation

```
pip install .
```

You need Python 3.10 or later. The package has no third-party dependencies. Sockets and the event loop need a POSIX system with `select.poll`. TUN/TAP needs Linux and a device created beforehand, for example with `ip tuntap add`.

## Examples

Compute an Internet checksum:

```python
from sponge.util import InternetChecksum

cksum = InternetChecksum()
cksum.add(b"\x45\x00\x00\x1c")
print(hex(cksum.value()))
```

Parse integers in network byte order:

```python
from sponge.buffer import Buffer
from sponge.parser import NetParser, ParseResult, as_string, pack_u16, pack_u32

parser = NetParser(Buffer(pack_u16(0x1234) + pack_u32(7)))
assert parser.u16() == 0x1234
assert parser.u32() == 7
assert parser.u8() == 0          # no bytes left
assert parser.get_error() is ParseResult.PACKET_TOO_SHORT
print(as_string(parser.get_error()))   # PacketTooShort
```

After a parser has recorded an error, later reads return 0 and consume nothing.

Work with addresses:

```python
from sponge.address import Address

addr = Address("127.0.0.1", 8080)
print(addr)                  # 127.0.0.1:8080
print(addr.ipv4_numeric())   # 2130706433
assert Address.from_ipv4_numeric(0x7F000001).ip() == "127.0.0.1"
```

Send a UDP datagram to yourself and receive it through the event loop:

```python
from sponge.address import Address
from sponge.eventloop import Direction, EventLoop, Result
from sponge.sockets import UDPSocket

receiver = UDPSocket()
receiver.bind(Address("127.0.0.1", 0))
sender = UDPSocket()
sender.sendto(receiver.local_address(), b"hello")

received = []
loop = EventLoop()
loop.add_rule(
    receiver,
    Direction.IN,
    lambda: received.append(receiver.recv().payload),
    interest=lambda: not received,
)
while loop.wait_next_event(1000) is not Result.EXIT:
    pass
print(received)   # [b'hello']
```

`wait_next_event` returns `Result.EXIT` when no rule is interested any more, and `Result.TIMEOUT` when nothing became ready in time. Each callback must read from or write to its descriptor. If a callback does neither and the rule's interest callback still returns true, `wait_next_event` raises `RuntimeError` instead of spinning in a busy loop. A rule is cancelled, and its `cancel` callback runs, when its descriptor is closed, reaches EOF while being read, or hangs up.

## What it does not do

The package has no TCP protocol machinery of its own: no segment types, no sender or receiver state machine, no connection handling. `TCPSocket` uses the operating system's TCP. TUN/TAP devices give you the raw descriptor and nothing else. Reading and writing IP datagrams or Ethernet frames on them is up to you.