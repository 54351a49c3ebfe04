# opconsole/runtime/fanout.py
from __future__ import annotations

import logging
import threading
from collections import deque
from typing import Callable, Deque, Generic, List, Optional, TypeVar

T = TypeVar("T")


class Fanout(Generic[T]):
    """
    Ordered callback delivery that never runs a subscriber under a lock.

    post() queues an item; drain() delivers queued items in post order. Only
    one thread drains at a time: a thread that finds a drain in progress
    leaves its items to that thread and returns. Subscribers may therefore
    take other locks (or post again) without risking a lock-order inversion.
    """

    def __init__(self, name: str, *, logger: Optional[logging.Logger] = None):
        self._name = name
        self._log = logger or logging.getLogger(__name__)
        self._lock = threading.Lock()
        self._subs: List[Callable[[T], None]] = []
        self._pending: Deque[T] = deque()
        self._draining = False

    def subscribe(self, cb: Callable[[T], None]) -> Callable[[], None]:
        with self._lock:
            self._subs.append(cb)

        def _unsubscribe() -> None:
            with self._lock:
                if cb in self._subs:
                    self._subs.remove(cb)

        return _unsubscribe

    def post(self, item: T) -> None:
        with self._lock:
            self._pending.append(item)

    def drain(self) -> None:
        with self._lock:
            if self._draining:
                return
            self._draining = True
        try:
            while True:
                with self._lock:
                    if not self._pending:
                        self._draining = False
                        return
                    item = self._pending.popleft()
                    subs = list(self._subs)
                for cb in subs:
                    try:
                        cb(item)
                    except Exception:
                        self._log.exception("%s_CALLBACK_ERROR", self._name)
        except BaseException:
            with self._lock:
                self._draining = False
            raise

    def publish(self, item: T) -> None:
        self.post(item)
        self.drain()
