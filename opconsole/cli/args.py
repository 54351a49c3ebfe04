# opconsole/cli/args.py
from __future__ import annotations

import argparse
from typing import Optional, Tuple

from opconsole.app.config import ConsoleConfig, load_config


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="opconsole",
        description="Operator console: live log stream + start/stop/command control.",
    )
    parser.add_argument("--config", help="YAML config file (flags below override it).")
    parser.add_argument("--host", help="Remote host[:port] (default: localhost:8080).")

    secure = parser.add_mutually_exclusive_group()
    secure.add_argument(
        "--secure",
        dest="secure",
        action="store_const",
        const=True,
        default=None,
        help="Use wss:// for the stream and https:// for the control endpoint.",
    )
    secure.add_argument("--insecure", dest="secure", action="store_const", const=False)

    parser.add_argument("--stream-path", help="Log stream path (default: /ws/logs).")
    parser.add_argument("--api-prefix", help="Control endpoint prefix (default: /api).")
    parser.add_argument("--timeout", type=float, help="Control request timeout in seconds (default: 5).")
    parser.add_argument("--driver", help="Stream driver key (default: websocket).")
    parser.add_argument("--log-file", help="Write diagnostic logs to this file.")
    parser.add_argument("--connect", action="store_true", help="Connect to the log stream on startup.")
    return parser


def parse_args(argv: Optional[list[str]] = None) -> Tuple[argparse.Namespace, ConsoleConfig]:
    """
    Returns: (args, config)

    Config file values are loaded first, then every flag that was given
    replaces the matching value.
    """
    args = build_parser().parse_args(argv)

    base = load_config(args.config) if args.config else ConsoleConfig()
    cfg = base.with_overrides(
        {
            "host": args.host,
            "secure": args.secure,
            "stream_path": args.stream_path,
            "api_prefix": args.api_prefix,
            "request_timeout_s": args.timeout,
            "stream_driver": args.driver,
            "log_file": args.log_file,
        }
    )
    return args, cfg
