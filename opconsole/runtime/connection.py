# opconsole/runtime/connection.py
from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import Callable, Optional

from opconsole.core.errors import ConsoleError
from opconsole.runtime.fanout import Fanout
from opconsole.runtime.log_aggregator import ERROR_MARKER, INFO_MARKER, LogAggregator
from opconsole.runtime.state import ConnectionState, ConsoleStatus
from opconsole.transport.base import NORMAL_CLOSURE, StreamTransport
from opconsole.transport.errors import TransportError

MSG_CONNECTING = f"{INFO_MARKER} Connecting..."
MSG_ESTABLISHED = f"{INFO_MARKER} Connection established"
MSG_ALREADY_CONNECTED = f"{INFO_MARKER} Already connected."
MSG_CONNECT_IN_PROGRESS = f"{INFO_MARKER} Connection change already in progress."
MSG_DISCONNECTING = f"{INFO_MARKER} Disconnecting..."
MSG_CLOSED = f"{INFO_MARKER} Connection closed"
MSG_STREAM_FAILED = f"{ERROR_MARKER} Stream connection failed."

CLOSE_REASON = "Manual disconnection."

TransportFactory = Callable[[], StreamTransport]
StateListener = Callable[[ConnectionState], None]
Action = Callable[[], None]


class StreamEvent(str, Enum):
    CONNECT = "connect"
    OPENED = "opened"
    MESSAGE = "message"
    ERROR = "error"
    DISCONNECT = "disconnect"
    CLOSED = "closed"


class _StreamBinding:
    """
    Listener handed to one transport instance.

    Tags every callback with the stream it came from so late events of a
    replaced stream can be told apart from the current one.
    """

    def __init__(self, manager: "ConnectionManager", stream: StreamTransport):
        self._manager = manager
        self.stream = stream

    def on_open(self) -> None:
        self._manager._dispatch(StreamEvent.OPENED, stream=self.stream)

    def on_message(self, text: str) -> None:
        self._manager._dispatch(StreamEvent.MESSAGE, stream=self.stream, payload=text)

    def on_error(self, error: BaseException) -> None:
        self._manager._dispatch(StreamEvent.ERROR, stream=self.stream, payload=error)

    def on_close(self, code: Optional[int], reason: Optional[str]) -> None:
        self._manager._dispatch(StreamEvent.CLOSED, stream=self.stream, payload=code)


class ConnectionManager:
    """
    Owns the single live log stream and its four-state lifecycle.

    Every input (operator call or stream callback) goes through _dispatch(),
    which runs the transition function under a lock, then delivers state
    changes and performs the resulting transport action (open/close) outside
    of it. Stream failures
    never raise to the caller: they become log entries and drive the close
    path. There is no automatic reconnect.
    """

    def __init__(
        self,
        *,
        transport_factory: TransportFactory,
        aggregator: LogAggregator,
        stream_url: str = "",
        logger: Optional[logging.Logger] = None,
    ):
        self._factory = transport_factory
        self._logs = aggregator
        self._stream_url = stream_url
        self._log = logger or logging.getLogger(__name__)

        self._lock = threading.RLock()
        self._state = ConnectionState.DISCONNECTED
        self._stream: Optional[StreamTransport] = None
        self._close_on_open = False
        self._last_error: Optional[str] = None

        self._state_fanout: Fanout[ConnectionState] = Fanout("STATE", logger=self._log)

    # --- state ---

    @property
    def state(self) -> ConnectionState:
        with self._lock:
            return self._state

    @property
    def is_connected(self) -> bool:
        return self.state is ConnectionState.CONNECTED

    def status(self) -> ConsoleStatus:
        entries = len(self._logs)
        with self._lock:
            return ConsoleStatus(
                state=self._state,
                stream_url=self._stream_url,
                entries=entries,
                has_stream=self._stream is not None,
                last_error=self._last_error,
            )

    def subscribe_state(self, cb: StateListener) -> Callable[[], None]:
        return self._state_fanout.subscribe(cb)

    # --- operator entry points (non-blocking) ---

    def connect(self) -> None:
        self._dispatch(StreamEvent.CONNECT)

    def disconnect(self) -> None:
        self._dispatch(StreamEvent.DISCONNECT)

    # --- transition machinery ---

    def _dispatch(
        self,
        event: StreamEvent,
        *,
        stream: Optional[StreamTransport] = None,
        payload: object = None,
    ) -> None:
        with self._lock:
            if stream is not None and stream is not self._stream:
                self._log.debug("STALE_STREAM_EVENT event=%s", event.value)
                return
            action = self._transition(event, payload)

        self._state_fanout.drain()
        if action is not None:
            action()

    def _transition(self, event: StreamEvent, payload: object) -> Optional[Action]:
        """
        Apply one event to the state machine. Caller holds the lock.

        Returns the transport side effect to run once the lock is released.
        """
        state = self._state
        S = ConnectionState

        if event is StreamEvent.CONNECT:
            if state is S.CONNECTED:
                self._logs.append(MSG_ALREADY_CONNECTED)
                return None
            if state is not S.DISCONNECTED:
                self._logs.append(MSG_CONNECT_IN_PROGRESS)
                return None
            self._logs.reset()
            self._logs.append(MSG_CONNECTING)
            self._last_error = None
            self._close_on_open = False
            self._set_state(S.CONNECTING)
            return self._open_stream

        if event is StreamEvent.OPENED:
            if state is S.CONNECTING:
                self._logs.append(MSG_ESTABLISHED)
                self._set_state(S.CONNECTED)
                return None
            if state is S.DISCONNECTING and self._close_on_open:
                # disconnect() arrived while the handshake was in flight
                self._close_on_open = False
                return self._close_stream
            return None

        if event is StreamEvent.MESSAGE:
            if state in (S.CONNECTED, S.DISCONNECTING):
                self._logs.append(str(payload))
            else:
                self._log.debug("FRAME_DROPPED state=%s", state.value)
            return None

        if event is StreamEvent.ERROR:
            if state is S.DISCONNECTED:
                return None
            detail = str(payload) if payload is not None else ""
            self._last_error = detail or "stream error"
            self._logs.append(f"{MSG_STREAM_FAILED} {detail}".rstrip())
            return self._close_stream

        if event is StreamEvent.DISCONNECT:
            if state is S.DISCONNECTING:
                return None
            self._logs.append(MSG_DISCONNECTING)
            self._set_state(S.DISCONNECTING)
            stream = self._stream
            if stream is None:
                # nothing to close; finish the close path right here
                return self._finish_without_stream
            if not stream.is_open():
                self._close_on_open = True
                return None
            return self._close_stream

        if event is StreamEvent.CLOSED:
            if state is S.DISCONNECTED:
                return None
            self._logs.append(MSG_CLOSED)
            self._stream = None
            self._close_on_open = False
            self._set_state(S.DISCONNECTED)
            self._log.info("STREAM_RELEASED code=%s", payload)
            return None

        raise ValueError(f"Unknown stream event {event!r}")

    def _set_state(self, new_state: ConnectionState) -> None:
        old = self._state
        if old is new_state:
            return
        self._state = new_state
        self._log.info("STATE %s -> %s", old.value, new_state.value)
        # delivered by _dispatch once the lock is released
        self._state_fanout.post(new_state)

    # --- transport side effects (run without the lock) ---

    def _open_stream(self) -> None:
        try:
            stream = self._factory()
        except ConsoleError as e:
            self._log.warning("STREAM_CREATE_FAILED err=%s", e)
            self._fail_without_stream(e)
            return
        except Exception as e:
            self._log.exception("STREAM_CREATE_FAILED url=%s", self._stream_url)
            self._fail_without_stream(e)
            return

        binding = _StreamBinding(self, stream)
        with self._lock:
            if self._state is not ConnectionState.CONNECTING or self._stream is not None:
                return
            self._stream = stream

        try:
            stream.open(binding)
        except TransportError as e:
            self._log.warning("STREAM_OPEN_FAILED url=%s err=%s", self._stream_url, e)
            self._abandon(stream, e)
        except Exception as e:
            self._log.exception("STREAM_OPEN_FAILED url=%s", self._stream_url)
            self._abandon(stream, e)

    def _abandon(self, stream: StreamTransport, error: BaseException) -> None:
        self._dispatch(StreamEvent.ERROR, stream=stream, payload=error)
        # a transport that failed to start never reports on_close itself
        self._dispatch(StreamEvent.CLOSED, stream=stream)

    def _close_stream(self) -> None:
        with self._lock:
            stream = self._stream
        if stream is None:
            return
        try:
            stream.close(NORMAL_CLOSURE, CLOSE_REASON)
        except TransportError as e:
            self._log.warning("STREAM_CLOSE_FAILED err=%s", e)
            self._dispatch(StreamEvent.CLOSED, stream=stream)
        except Exception:
            self._log.exception("STREAM_CLOSE_FAILED url=%s", self._stream_url)
            self._dispatch(StreamEvent.CLOSED, stream=stream)

    def _fail_without_stream(self, error: BaseException) -> None:
        with self._lock:
            if self._stream is not None:
                return
            self._transition(StreamEvent.ERROR, error)
            self._transition(StreamEvent.CLOSED, None)
        self._state_fanout.drain()

    def _finish_without_stream(self) -> None:
        with self._lock:
            if self._stream is None:
                self._transition(StreamEvent.CLOSED, None)
        self._state_fanout.drain()
