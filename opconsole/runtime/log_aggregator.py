# opconsole/runtime/log_aggregator.py
"""
Append-only, arrival-ordered console log.

Entries are never reordered, deduplicated or evicted; the sequence lives for
one connection attempt and is cleared by reset() when the next one starts.
Classification is derived from the message text on demand and never touches
the stored entry.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable, List, Optional, Tuple

from opconsole.runtime.fanout import Fanout

ERROR_MARKER = "[ERR]:"
COMMAND_MARKER = "[CMD]:"
INFO_MARKER = "[INFO]:"
OK_MARKER = "[OK]:"

TIME_FORMAT = "%H:%M:%S"


class Category(str, Enum):
    ERROR = "error"
    COMMAND = "command"
    INFO = "info"
    DATA = "data"


@dataclass(frozen=True)
class LogEntry:
    timestamp: datetime  # local append time, the remote side sends none
    message: str

    @property
    def time_label(self) -> str:
        return self.timestamp.strftime(TIME_FORMAT)

    def render(self) -> str:
        return f"[{self.time_label}] {self.message}"


# Precedence matters: locally synthesized error/command annotations win over
# whatever markers a remote payload may happen to contain.
_PRECEDENCE: Tuple[Tuple[str, Category], ...] = (
    (ERROR_MARKER, Category.ERROR),
    (COMMAND_MARKER, Category.COMMAND),
    (INFO_MARKER, Category.INFO),
)


def classify(entry: LogEntry) -> Category:
    message = entry.message
    for marker, category in _PRECEDENCE:
        if marker in message:
            return category
    return Category.DATA


EntryListener = Callable[[LogEntry], None]


class LogAggregator:
    """
    Thread-safe ordered log of console entries.

    Writers are the connection manager (stream thread) and the command
    dispatcher (caller threads); all mutations are serialized by one lock, so
    the stored order is exactly the order in which append() was entered.
    Listeners see entries in that same order but are called after the lock
    is released, so a listener may read other console state freely.
    """

    def __init__(
        self,
        *,
        clock: Callable[[], datetime] = datetime.now,
        logger: Optional[logging.Logger] = None,
    ):
        self._clock = clock
        self._log = logger or logging.getLogger(__name__)
        self._lock = threading.RLock()

        self._entries: List[LogEntry] = []
        self._fanout: Fanout[LogEntry] = Fanout("LOG", logger=self._log)
        self._last_ts: Optional[datetime] = None

        # Monotonic counters for polling readers; they survive reset().
        self._seq = 0
        self._base_seq = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    @property
    def cursor(self) -> int:
        with self._lock:
            return self._seq

    def append(self, message: str) -> LogEntry:
        with self._lock:
            ts = self._clock()
            # wall clock may step backwards; stored timestamps may not
            if self._last_ts is not None and ts < self._last_ts:
                ts = self._last_ts
            self._last_ts = ts

            entry = LogEntry(timestamp=ts, message=str(message))
            self._entries.append(entry)
            self._seq += 1
            self._fanout.post(entry)

        self._fanout.drain()
        return entry

    def reset(self) -> None:
        with self._lock:
            dropped = len(self._entries)
            self._entries.clear()
            self._base_seq = self._seq
        self._log.debug("LOG_RESET dropped=%d", dropped)

    def entries(self) -> List[LogEntry]:
        with self._lock:
            return list(self._entries)

    def messages(self) -> List[str]:
        with self._lock:
            return [e.message for e in self._entries]

    def entries_since(self, cursor: int) -> Tuple[List[LogEntry], int]:
        """
        Return entries appended after `cursor` and the cursor to use next.

        A cursor older than the last reset() yields the whole current
        sequence, so a reader never misses the start of a new session.
        """
        with self._lock:
            offset = max(0, int(cursor) - self._base_seq)
            return self._entries[offset:], self._seq

    def subscribe(self, cb: EntryListener) -> Callable[[], None]:
        return self._fanout.subscribe(cb)
