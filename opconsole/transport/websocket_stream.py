# opconsole/transport/websocket_stream.py
from __future__ import annotations

import logging
import threading
from typing import Optional

import websocket
from websocket import WebSocketException

from opconsole.interfaces.stream_listener import StreamListener

from .base import NORMAL_CLOSURE, StreamTransport
from .errors import TransportOpenError, TransportReuseError

CLOSE_TIMEOUT_S = 3.0


class WebSocketTransport(StreamTransport):
    """
    Receive-only WebSocket stream implemented via websocket-client.

    run_forever() is driven by a daemon thread; every listener callback is
    delivered from that thread. on_close is guaranteed to fire exactly once,
    even when the handshake fails before the socket ever opens.

    close() never blocks: on an open socket it only sends the close frame and
    lets the reader thread finish the handshake, so frames the peer sent
    before its close reply are still delivered. A peer that does not answer
    within close_timeout_s has its socket shut down, and anything it had in
    flight is lost.
    """

    def __init__(
        self,
        url: str,
        *,
        close_timeout_s: float = CLOSE_TIMEOUT_S,
        logger: Optional[logging.Logger] = None,
    ):
        self.url = url
        self.close_timeout_s = float(close_timeout_s)
        self._log = logger or logging.getLogger(__name__)

        self._app: Optional[websocket.WebSocketApp] = None
        self._worker: Optional[threading.Thread] = None
        self._listener: Optional[StreamListener] = None
        self._deadline: Optional[threading.Timer] = None

        self._lock = threading.Lock()
        self._opened = False
        self._closed = False

    def open(self, listener: StreamListener) -> None:
        with self._lock:
            if self._app is not None:
                raise TransportReuseError("WebSocketTransport instances are single-use")
            self._listener = listener

            try:
                self._app = websocket.WebSocketApp(
                    self.url,
                    on_open=self._handle_open,
                    on_message=self._handle_message,
                    on_error=self._handle_error,
                    on_close=self._handle_close,
                )
            except (ValueError, WebSocketException) as e:
                self._listener = None
                raise TransportOpenError(f"Cannot create WebSocket for {self.url}: {e}") from None

            self._worker = threading.Thread(
                target=self._run,
                daemon=True,
                name="stream-rx",
            )

        self._log.info("STREAM_OPEN url=%s", self.url)
        self._worker.start()

    def close(self, code: int = NORMAL_CLOSURE, reason: str = "") -> None:
        app = self._app
        if app is None:
            return
        self._log.info("STREAM_CLOSE_REQUEST url=%s code=%d", self.url, code)
        payload = reason.encode("utf-8")
        sock = getattr(app, "sock", None)
        try:
            if sock is not None and self.is_open():
                sock.send_close(status=code, reason=payload)
                self._arm_deadline(app, code, payload)
            else:
                self._shutdown(app, code, payload)
        except Exception:
            # run_forever() notices the dead socket and still reports on_close
            self._log.exception("STREAM_CLOSE_FAILED url=%s", self.url)

    def _arm_deadline(self, app, code: int, payload: bytes) -> None:
        with self._lock:
            if self._closed or self._deadline is not None:
                return
            timer = threading.Timer(self.close_timeout_s, self._on_deadline, args=(app, code, payload))
            timer.daemon = True
            self._deadline = timer
        timer.start()

    def _on_deadline(self, app, code: int, payload: bytes) -> None:
        with self._lock:
            if self._closed:
                return
        self._log.warning("STREAM_CLOSE_TIMEOUT url=%s after=%.1fs", self.url, self.close_timeout_s)
        try:
            self._shutdown(app, code, payload)
        except Exception:
            self._log.exception("STREAM_CLOSE_FAILED url=%s", self.url)

    @staticmethod
    def _shutdown(app, code: int, payload: bytes) -> None:
        # timeout=0: send the close frame and drop the socket without waiting
        app.close(status=code, reason=payload, timeout=0)

    def is_open(self) -> bool:
        with self._lock:
            return self._opened and not self._closed

    def _run(self) -> None:
        app = self._app
        try:
            if app is not None:
                app.run_forever()
        except Exception as e:
            self._log.exception("STREAM_RUN_FAILED url=%s", self.url)
            self._handle_error(app, e)
        finally:
            self._handle_close(app, None, None)

    # --- websocket-client callbacks (ws argument is the WebSocketApp) ---

    def _handle_open(self, _ws) -> None:
        with self._lock:
            if self._closed:
                return
            self._opened = True
            listener = self._listener
        if listener is not None:
            listener.on_open()

    def _handle_message(self, _ws, message) -> None:
        if isinstance(message, (bytes, bytearray)):
            message = bytes(message).decode("utf-8", errors="replace")
        with self._lock:
            if self._closed:
                return
            listener = self._listener
        if listener is not None:
            listener.on_message(message)

    def _handle_error(self, _ws, error) -> None:
        with self._lock:
            if self._closed:
                return
            listener = self._listener
        self._log.warning("STREAM_ERROR url=%s err=%s", self.url, error)
        if listener is not None:
            listener.on_error(error)

    def _handle_close(self, _ws, code, reason) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            listener = self._listener
            deadline, self._deadline = self._deadline, None
        if deadline is not None:
            deadline.cancel()
        if isinstance(reason, (bytes, bytearray)):
            reason = bytes(reason).decode("utf-8", errors="replace")
        self._log.info("STREAM_CLOSED url=%s code=%s", self.url, code)
        if listener is not None:
            listener.on_close(code, reason)
