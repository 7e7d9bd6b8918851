"""
Intcode I/O Ports
==================
Input sources and output sinks that an IntcodeMachine reads from and
writes to.

Port hierarchy:
  InputPort            — abstract source (pull)
  OutputPort           — abstract sink (push)
  ├─ Channel           — thread-safe FIFO, both ends; links two machines
  └─ Collector         — records every value pushed (single-machine runs)

A Channel has one sending side and one receiving side.  The sender calls
close_send() when it halts (end of stream); the receiver calls close_recv()
when it aborts.  A pull on a drained channel whose sender is gone raises
PortError("pull from terminated source"); a push into a channel whose
receiver is gone raises PortError("push to terminated sink").

There are no timeouts.  A pull waits forever if the sending machine never
halts, so a ring containing a stage that never halts deadlocks.
"""

from __future__ import annotations

import abc
import threading
from collections import deque
from typing import Optional

from errors import PortError


# ══════════════════════════════════════════════════════════════════════
#  Abstract ports
# ══════════════════════════════════════════════════════════════════════

class InputPort(abc.ABC):
    """Source of input values for the INPUT instruction."""

    @abc.abstractmethod
    def pull(self) -> int:
        """Block until a value is available and return it."""
        ...

    @abc.abstractmethod
    def close_recv(self):
        """The receiving machine is gone; further pushes must fail."""
        ...


class OutputPort(abc.ABC):
    """Sink for values written by the OUTPUT instruction."""

    @abc.abstractmethod
    def push(self, value: int):
        """Deliver *value*.  Raises PortError if the sink is terminated."""
        ...

    @abc.abstractmethod
    def close_send(self):
        """The sending machine has finished; no more values will arrive."""
        ...


# ══════════════════════════════════════════════════════════════════════
#  Channel — blocking FIFO between two machines
# ══════════════════════════════════════════════════════════════════════

class Channel(InputPort, OutputPort):
    """Unbounded FIFO guarded by a condition variable.

    Values are delivered in push order, each to exactly one pull.  Pushes
    never block; pulls block until a value arrives or the channel is
    closed.
    """

    def __init__(self, name: str = ""):
        self.name = name
        self._buffer: deque[int] = deque()
        self._cond = threading.Condition()
        self._send_closed = False
        self._recv_closed = False
        self.last_value: Optional[int] = None   # last value ever pushed
        self.sent = 0

    @classmethod
    def of(cls, *values: int, name: str = "") -> "Channel":
        """A finite stream: pre-filled with *values*, sender already closed."""
        ch = cls(name)
        ch.feed(*values)
        ch.close_send()
        return ch

    # -- sending side --

    def push(self, value: int):
        with self._cond:
            if self._recv_closed or self._send_closed:
                raise PortError(f"push to terminated sink{self._label()}")
            self._buffer.append(value)
            self.last_value = value
            self.sent += 1
            self._cond.notify()

    def feed(self, *values: int):
        """Push several values in order."""
        for v in values:
            self.push(v)

    def close_send(self):
        with self._cond:
            self._send_closed = True
            self._cond.notify_all()

    # -- receiving side --

    def pull(self) -> int:
        with self._cond:
            while not self._buffer:
                if self._send_closed or self._recv_closed:
                    raise PortError(f"pull from terminated source{self._label()}")
                self._cond.wait()
            return self._buffer.popleft()

    def close_recv(self):
        with self._cond:
            self._recv_closed = True
            self._cond.notify_all()

    def drain(self) -> list[int]:
        """Remove and return every buffered value without blocking."""
        with self._cond:
            values = list(self._buffer)
            self._buffer.clear()
            return values

    # -- state --

    @property
    def pending(self) -> int:
        with self._cond:
            return len(self._buffer)

    @property
    def closed(self) -> bool:
        return self._send_closed or self._recv_closed

    def _label(self) -> str:
        return f" ({self.name})" if self.name else ""

    def __repr__(self) -> str:
        return (f"Channel({self.name!r}, pending={self.pending}, "
                f"sent={self.sent}, closed={self.closed})")


# ══════════════════════════════════════════════════════════════════════
#  Collector — record everything
# ══════════════════════════════════════════════════════════════════════

class Collector(OutputPort):
    """Output sink that keeps the full emitted sequence in ``values``."""

    def __init__(self):
        self.values: list[int] = []
        self._closed = False

    def push(self, value: int):
        if self._closed:
            raise PortError("push to terminated sink")
        self.values.append(value)

    def close_send(self):
        self._closed = True

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def last_value(self) -> Optional[int]:
        return self.values[-1] if self.values else None
