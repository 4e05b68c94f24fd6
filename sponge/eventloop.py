"""Waits for events on file descriptors and runs the matching callbacks."""

from __future__ import annotations

import enum
import select
from dataclasses import dataclass
from typing import Callable, Dict, List, Tuple

from sponge.file_descriptor import FileDescriptor
from sponge.util import UnixError

Callback = Callable[[], None]
Interest = Callable[[], bool]


class Direction(enum.IntEnum):
    """Whether a rule waits for its descriptor to be readable or writable."""

    IN = select.POLLIN
    OUT = select.POLLOUT


class Result(enum.Enum):
    """Outcome of one call to :meth:`EventLoop.wait_next_event`."""

    SUCCESS = enum.auto()
    TIMEOUT = enum.auto()
    EXIT = enum.auto()


@dataclass(eq=False)
class _Rule:
    fd: FileDescriptor
    direction: Direction
    callback: Callback
    interest: Interest
    cancel: Callback

    def service_count(self) -> int:
        """How often the descriptor has been read or written, per the direction."""
        if self.direction is Direction.IN:
            return self.fd.read_count()
        return self.fd.write_count()


def _always() -> bool:
    return True


def _nothing() -> None:
    return None


class EventLoop:
    """Polls registered descriptors and calls back when they become ready.

    A rule is cancelled (and its ``cancel`` callback run) when its descriptor
    is closed, reaches EOF while being read, or hangs up.  Every callback must
    read or write its descriptor, or its interest must turn false; otherwise a
    busy wait is reported.
    """

    def __init__(self) -> None:
        self._rules: List[_Rule] = []

    def add_rule(
        self,
        fd: FileDescriptor,
        direction: Direction,
        callback: Callback,
        interest: Interest = _always,
        cancel: Callback = _nothing,
    ) -> None:
        """Call ``callback`` whenever ``fd`` is ready in ``direction`` and ``interest()`` holds."""
        self._rules.append(_Rule(fd.duplicate(), Direction(direction), callback, interest, cancel))

    def _drop(self, rule: _Rule) -> None:
        rule.cancel()
        if rule in self._rules:
            self._rules.remove(rule)

    def wait_next_event(self, timeout_ms: int) -> Result:
        """Poll once (``timeout_ms`` < 0 waits forever) and service ready descriptors."""
        polled: List[Tuple[_Rule, int, int]] = []
        for rule in list(self._rules):
            if (rule.direction is Direction.IN and rule.fd.eof()) or rule.fd.closed():
                self._drop(rule)
                continue
            events = int(rule.direction) if rule.interest() else 0
            polled.append((rule, rule.fd.fd_num(), events))

        if not any(events for _, _, events in polled):
            return Result.EXIT

        masks: Dict[int, int] = {}
        for _, fd_num, events in polled:
            masks[fd_num] = masks.get(fd_num, 0) | events
        poller = select.poll()
        for fd_num, mask in masks.items():
            poller.register(fd_num, mask)

        try:
            ready = dict(poller.poll(timeout_ms))
        except InterruptedError:
            return Result.EXIT
        except OSError as exc:
            raise UnixError("poll", exc.errno) from exc

        if not ready:
            return Result.TIMEOUT

        for rule, fd_num, events in polled:
            revents = ready.get(fd_num, 0)
            if revents & (select.POLLERR | select.POLLNVAL):
                raise RuntimeError("EventLoop: error on polled file descriptor")

            poll_ready = bool(revents & events)
            poll_hup = bool(revents & select.POLLHUP)
            if poll_hup and events and not poll_ready:
                # only a hangup: nothing more will ever be read or written
                self._drop(rule)
                continue

            if poll_ready:
                count_before = rule.service_count()
                rule.callback()
                if count_before == rule.service_count() and rule.interest():
                    raise RuntimeError(
                        "EventLoop: busy wait detected: callback did not read/write fd and is still interested"
                    )

        return Result.SUCCESS