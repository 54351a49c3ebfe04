# opconsole/runtime/state.py
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ConnectionState(str, Enum):
    """
    Lifecycle of the single log stream.

    This is the only thing deciding whether control commands are meaningful:
    start/stop/command are valid while CONNECTED, even though the control
    channel is a separate transport that works regardless.
    """
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    DISCONNECTING = "disconnecting"

    @property
    def label(self) -> str:
        return self.value.capitalize()

    @property
    def tone(self) -> "StatusTone":
        return STATUS_TONES[self]


class StatusTone(str, Enum):
    OK = "ok"
    PENDING = "pending"
    DOWN = "down"


# One entry per state; transitional states are never confused with DISCONNECTED.
STATUS_TONES = {
    ConnectionState.CONNECTED: StatusTone.OK,
    ConnectionState.CONNECTING: StatusTone.PENDING,
    ConnectionState.DISCONNECTING: StatusTone.PENDING,
    ConnectionState.DISCONNECTED: StatusTone.DOWN,
}


@dataclass(frozen=True)
class ConsoleStatus:
    """
    A snapshot of the console status, safe to share across threads.
    """
    state: ConnectionState
    stream_url: str
    entries: int
    has_stream: bool
    last_error: Optional[str] = None

    @property
    def can_dispatch(self) -> bool:
        return self.state is ConnectionState.CONNECTED
