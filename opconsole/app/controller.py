from __future__ import annotations

import logging
from typing import Callable, Optional

import requests

from opconsole.app.config import ConsoleConfig
from opconsole.control.dispatcher import CommandDispatcher, CommandResult
from opconsole.runtime.connection import ConnectionManager
from opconsole.runtime.log_aggregator import EntryListener, LogAggregator
from opconsole.runtime.state import ConnectionState, ConsoleStatus
from opconsole.transport.factory import StreamFactory
from opconsole.transport.registry import StreamDriverRegistry


class ConsoleController:
    """
    App-level controller for one operator console.

    Owns exactly one aggregator / connection manager / dispatcher trio; two
    controllers never share state. Presentation code talks to this class and
    reads the log through it, never through the stream.
    """

    def __init__(
        self,
        config: ConsoleConfig,
        *,
        drivers: Optional[StreamDriverRegistry] = None,
        http_session: Optional[requests.Session] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._config = config
        self._log = logger or logging.getLogger(__name__)

        self._logs = LogAggregator(logger=self._log)

        factory = StreamFactory(
            config.stream_driver,
            config.stream_url,
            drivers=drivers,
        )
        self._connection = ConnectionManager(
            transport_factory=factory,
            aggregator=self._logs,
            stream_url=config.stream_url,
            logger=self._log,
        )
        self._dispatcher = CommandDispatcher(
            config.control_url,
            self._logs,
            timeout_s=config.request_timeout_s,
            session=http_session,
            logger=self._log,
        )

    @property
    def config(self) -> ConsoleConfig:
        return self._config

    @property
    def logs(self) -> LogAggregator:
        return self._logs

    @property
    def connection(self) -> ConnectionManager:
        return self._connection

    @property
    def dispatcher(self) -> CommandDispatcher:
        return self._dispatcher

    @property
    def state(self) -> ConnectionState:
        return self._connection.state

    @property
    def can_dispatch(self) -> bool:
        return self._connection.is_connected

    def status(self) -> ConsoleStatus:
        return self._connection.status()

    def subscribe_logs(self, cb: EntryListener) -> Callable[[], None]:
        return self._logs.subscribe(cb)

    def subscribe_state(self, cb: Callable[[ConnectionState], None]) -> Callable[[], None]:
        return self._connection.subscribe_state(cb)

    # --- stream lifecycle ---

    def connect(self) -> None:
        self._connection.connect()

    def disconnect(self) -> None:
        self._connection.disconnect()

    # --- control commands, gated on the stream being up ---

    def start_process(self) -> Optional[CommandResult]:
        if not self._gate("start"):
            return None
        return self._dispatcher.start()

    def stop_process(self) -> Optional[CommandResult]:
        if not self._gate("stop"):
            return None
        return self._dispatcher.stop()

    def send_command(self, text: str) -> Optional[CommandResult]:
        if not self._gate("command"):
            return None
        return self._dispatcher.send_command(text)

    def close(self) -> None:
        if self._connection.state is ConnectionState.CONNECTED:
            self._connection.disconnect()
        try:
            self._dispatcher.close()
        except Exception:
            self._log.exception("DISPATCHER_CLOSE_ERROR")

    def __enter__(self) -> "ConsoleController":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _gate(self, op: str) -> bool:
        if self._connection.is_connected:
            return True
        self._log.info("COMMAND_BLOCKED op=%s state=%s", op, self._connection.state.value)
        return False
