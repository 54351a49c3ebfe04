# opconsole/cli/shell.py
"""
Interactive shell for the operator console.

- Prints every log entry as it is appended (stream frames arrive on the
  stream thread and are printed from there).
- Reads operator input; slash commands drive the console, anything else is
  sent to the remote process as a free-text command.
"""

from __future__ import annotations

from typing import Callable

from opconsole.app.controller import ConsoleController
from opconsole.cli.commands import HELP, PrintEntrySink, Printer, print_logs, print_status

Reader = Callable[[str], str]

PROMPT = "> "


def handle_line(controller: ConsoleController, line: str, out: Printer = print) -> bool:
    """
    Handle one line of operator input. Returns False when the shell should exit.
    """
    text = line.strip()
    if not text:
        return True

    if not text.startswith("/"):
        if not controller.can_dispatch:
            out(f"Not connected ({controller.state.label}); use /connect first.")
            return True
        controller.send_command(text)
        return True

    cmd = text[1:].split(maxsplit=1)[0].lower() if len(text) > 1 else ""

    if cmd in ("quit", "exit"):
        return False
    if cmd == "help":
        out(HELP)
    elif cmd == "connect":
        controller.connect()
    elif cmd == "disconnect":
        controller.disconnect()
    elif cmd in ("start", "stop"):
        if not controller.can_dispatch:
            out(f"Not connected ({controller.state.label}); use /connect first.")
        elif cmd == "start":
            controller.start_process()
        else:
            controller.stop_process()
    elif cmd == "status":
        print_status(controller.status(), out)
    elif cmd == "logs":
        print_logs(controller.logs.entries(), out)
    else:
        out(f"Unknown command '/{cmd}'. Type /help.")
    return True


def run_shell(
    controller: ConsoleController,
    *,
    autoconnect: bool = False,
    read: Reader = input,
    out: Printer = print,
) -> int:
    unsubscribe = controller.subscribe_logs(PrintEntrySink(out))
    try:
        out("Operator console. Type /help for commands.")
        if autoconnect:
            controller.connect()

        while True:
            try:
                line = read(PROMPT)
            except EOFError:
                break
            if not handle_line(controller, line, out):
                break
    except KeyboardInterrupt:
        pass
    finally:
        unsubscribe()
    return 0
