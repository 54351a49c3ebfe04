from __future__ import annotations

from abc import ABC, abstractmethod

from opconsole.interfaces.stream_listener import StreamListener

#: Close code for a normal, operator-requested closure.
NORMAL_CLOSURE = 1000


class StreamTransport(ABC):
    """
    Abstract receive-only duplex stream (WebSocket, test doubles, etc.).

    Contract:
      - open(listener) starts connecting and returns immediately; progress is
        reported through the listener callbacks, possibly from another thread.
      - open() may raise TransportOpenError when the attempt cannot even start.
      - close(code, reason) requests a graceful close; the listener's
        on_close fires once the stream is actually down.
      - A transport instance is single-use: one open() per instance.
    """

    @abstractmethod
    def open(self, listener: StreamListener) -> None: ...

    @abstractmethod
    def close(self, code: int = NORMAL_CLOSURE, reason: str = "") -> None: ...

    @abstractmethod
    def is_open(self) -> bool: ...
