# opconsole/cli/main.py
from __future__ import annotations

from pathlib import Path
from typing import Optional

from opconsole.core.errors import ConsoleError

from opconsole.app.controller import ConsoleController
from opconsole.cli.args import parse_args
from opconsole.cli.commands import configure_file_logging
from opconsole.cli.shell import run_shell


def main(argv: Optional[list[str]] = None) -> int:
    try:
        args, cfg = parse_args(argv)

        if cfg.log_file:
            configure_file_logging(Path(cfg.log_file))

        with ConsoleController(cfg) as controller:
            return run_shell(controller, autoconnect=args.connect)
    except ConsoleError as e:
        print(f"ERROR: {e.message}")
        if e.hint:
            print(f"Hint: {e.hint}")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
