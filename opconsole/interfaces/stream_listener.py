# opconsole/interfaces/stream_listener.py
from __future__ import annotations

from typing import Optional, Protocol


class StreamListener(Protocol):
    """
    Receiver of low-level stream events.

    A transport calls on_close exactly once per open(), whatever the cause
    (graceful close, remote closure, failed handshake).
    """
    def on_open(self) -> None: ...
    def on_message(self, text: str) -> None: ...
    def on_error(self, error: BaseException) -> None: ...
    def on_close(self, code: Optional[int], reason: Optional[str]) -> None: ...
