# opconsole/cli/commands.py
from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable

from opconsole.runtime.log_aggregator import Category, LogEntry, classify
from opconsole.runtime.state import ConsoleStatus

Printer = Callable[[str], None]

WAITING_FOR_LOGS = "Waiting for logs..."

HELP = """\
Commands:
  /connect      open the log stream
  /disconnect   close the log stream
  /start        start the remote process
  /stop         stop the remote process
  /status       show connection status
  /logs         reprint the current log
  /help         show this help
  /quit         leave the console
Any other line is sent to the remote process as a command."""

_TAGS = {
    Category.ERROR: "E",
    Category.COMMAND: ">",
    Category.INFO: "i",
    Category.DATA: " ",
}


# ---------------- Logging ----------------

DIAG_FORMAT = "%(asctime)s [%(levelname)s] %(threadName)s %(name)s: %(message)s"


def configure_file_logging(log_path: Path, level: int = logging.INFO) -> logging.Handler:
    """
    Send diagnostics to `log_path`, separate from the operator log on screen.

    The stream reader thread logs too, so records carry the thread name.
    Calling this again for the same file returns the handler already attached.
    """
    root = logging.getLogger()
    log_path.parent.mkdir(parents=True, exist_ok=True)
    target = str(log_path.resolve())

    existing = next(
        (h for h in root.handlers if isinstance(h, logging.FileHandler) and h.baseFilename == target),
        None,
    )
    if existing is not None:
        return existing

    handler = logging.FileHandler(target, encoding="utf-8", delay=True)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(DIAG_FORMAT))
    root.addHandler(handler)
    if root.getEffectiveLevel() > level:
        root.setLevel(level)
    return handler


# ---------------- Rendering ----------------

def format_entry(entry: LogEntry) -> str:
    return f"{_TAGS[classify(entry)]} {entry.render()}"


class PrintEntrySink:
    """Print every appended log entry."""
    def __init__(self, out: Printer = print):
        self._out = out

    def __call__(self, entry: LogEntry) -> None:
        self._out(format_entry(entry))


def print_status(st: ConsoleStatus, out: Printer = print) -> None:
    out(f"Stream:  {st.state.label} ({st.state.tone.value})")
    out(f"URL:     {st.stream_url or '-'}")
    out(f"Entries: {st.entries}")
    out(f"Control: {'enabled' if st.can_dispatch else 'disabled (not connected)'}")
    if st.last_error:
        out(f"Err:     {st.last_error}")


def print_logs(entries: list[LogEntry], out: Printer = print) -> None:
    if not entries:
        out(WAITING_FOR_LOGS)
        return
    for e in entries:
        out(format_entry(e))
