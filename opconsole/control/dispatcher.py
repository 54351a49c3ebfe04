# opconsole/control/dispatcher.py
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional
from urllib.parse import urlsplit

import requests

from opconsole.runtime.log_aggregator import (
    COMMAND_MARKER,
    ERROR_MARKER,
    INFO_MARKER,
    OK_MARKER,
    LogAggregator,
)

DEFAULT_TIMEOUT_S = 5.0
UNREACHABLE_MESSAGE = "Cannot reach control endpoint"


class ControlEndpoint(str, Enum):
    START = "start"
    STOP = "stop"
    COMMAND = "command"

    @property
    def path(self) -> str:
        return f"/{self.value}"


@dataclass(frozen=True)
class CommandRequest:
    endpoint: ControlEndpoint
    payload: Optional[str] = None

    def json_body(self) -> Optional[Dict[str, str]]:
        if self.endpoint is ControlEndpoint.COMMAND:
            return {"command": self.payload or ""}
        return None


class CommandOutcome(str, Enum):
    OK = "ok"                    # 2xx
    REJECTED = "rejected"        # reachable, non-2xx
    UNREACHABLE = "unreachable"  # no response at all (refused, DNS, timeout)
    INVALID = "invalid"          # refused locally, nothing was sent


@dataclass(frozen=True)
class CommandResult:
    outcome: CommandOutcome
    body: str = ""
    status_code: Optional[int] = None

    @property
    def ok(self) -> bool:
        return self.outcome is CommandOutcome.OK


class CommandDispatcher:
    """
    One-shot request/response operations against the control endpoint.

    Holds no state between calls: every call is a single POST with a bounded
    timeout and no retry; the operator repeats the action to retry.

    Protocol invariant: start/stop/command are only meaningful while the log
    stream is CONNECTED. The dispatcher does not check this itself (the two
    channels are independent transports and a request sent while the stream
    is down is still delivered); the caller owning the connection state is
    responsible for the gate (see ConsoleController).

    Calls may overlap from several threads; each result is appended to the
    log when its response arrives, so result order follows arrival order.
    requests.Session is not documented as thread-safe, so unless a session
    is injected each calling thread gets its own. An injected session is
    shared by every caller as-is.
    """

    def __init__(
        self,
        base_url: str,
        aggregator: LogAggregator,
        *,
        timeout_s: float = DEFAULT_TIMEOUT_S,
        session: Optional[requests.Session] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout_s = float(timeout_s)
        self._logs = aggregator
        self._shared = session
        self._local = threading.local()
        self._owned: List[requests.Session] = []
        self._owned_lock = threading.Lock()
        self._log = logger or logging.getLogger(__name__)

    def url_for(self, endpoint: ControlEndpoint) -> str:
        return f"{self.base_url}{endpoint.path}"

    def start(self) -> CommandResult:
        req = CommandRequest(ControlEndpoint.START)
        return self._send(req, f"{INFO_MARKER} Sending start command {self._display_path(req)}...")

    def stop(self) -> CommandResult:
        req = CommandRequest(ControlEndpoint.STOP)
        return self._send(req, f"{INFO_MARKER} Sending stop command {self._display_path(req)}...")

    def send_command(self, text: str) -> CommandResult:
        command = (text or "").strip()
        if not command:
            # incomplete operator input, not a fault: no request, no entry
            return CommandResult(CommandOutcome.INVALID)
        return self._send(CommandRequest(ControlEndpoint.COMMAND, command), f"{COMMAND_MARKER} {command}")

    def close(self) -> None:
        if self._shared is not None:
            self._shared.close()
        with self._owned_lock:
            owned, self._owned = self._owned, []
            self._local = threading.local()
        for s in owned:
            s.close()

    def _session(self) -> requests.Session:
        if self._shared is not None:
            return self._shared
        s = getattr(self._local, "session", None)
        if s is None:
            s = requests.Session()
            self._local.session = s
            with self._owned_lock:
                self._owned.append(s)
        return s

    def _display_path(self, req: CommandRequest) -> str:
        return urlsplit(self.url_for(req.endpoint)).path or req.endpoint.path

    def _send(self, req: CommandRequest, preflight: str) -> CommandResult:
        url = self.url_for(req.endpoint)
        self._logs.append(preflight)
        self._log.info("COMMAND_SEND endpoint=%s url=%s", req.endpoint.value, url)

        kwargs: Dict[str, Any] = {"timeout": self.timeout_s}
        body = req.json_body()
        if body is not None:
            kwargs["json"] = body

        try:
            resp = self._session().post(url, **kwargs)
            text = resp.text
        except requests.RequestException as e:
            self._log.warning("COMMAND_UNREACHABLE endpoint=%s url=%s err=%s", req.endpoint.value, url, e)
            self._logs.append(f"{ERROR_MARKER} {UNREACHABLE_MESSAGE}")
            return CommandResult(CommandOutcome.UNREACHABLE, body=UNREACHABLE_MESSAGE)

        if 200 <= resp.status_code < 300:
            self._log.info("COMMAND_OK endpoint=%s status=%d", req.endpoint.value, resp.status_code)
            self._logs.append(f"{OK_MARKER} {text}")
            return CommandResult(CommandOutcome.OK, body=text, status_code=resp.status_code)

        self._log.warning("COMMAND_REJECTED endpoint=%s status=%d", req.endpoint.value, resp.status_code)
        self._logs.append(f"{ERROR_MARKER} {text}")
        return CommandResult(CommandOutcome.REJECTED, body=text, status_code=resp.status_code)
