from __future__ import annotations

from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from opconsole.core.errors import ConsoleConfigError
from opconsole.transport.endpoints import control_base_url, stream_url


@dataclass(frozen=True)
class ConsoleConfig:
    host: str = "localhost:8080"
    secure: bool = False
    stream_path: str = "/ws/logs"
    api_prefix: str = "/api"
    request_timeout_s: float = 5.0
    stream_driver: str = "websocket"
    log_file: Optional[str] = None

    def __post_init__(self) -> None:
        if not isinstance(self.host, str) or not self.host.strip():
            raise ConsoleConfigError(
                "Config 'host' must be a non-empty string.",
                hint="Use host or host:port, e.g. localhost:8080.",
                details={"host": self.host},
            )
        if isinstance(self.request_timeout_s, bool) or not isinstance(self.request_timeout_s, (int, float)):
            raise ConsoleConfigError(
                "Config 'request_timeout_s' must be a number.",
                details={"request_timeout_s": self.request_timeout_s},
            )
        if self.request_timeout_s <= 0:
            raise ConsoleConfigError(
                "Config 'request_timeout_s' must be > 0.",
                hint="Requests are never allowed to hang indefinitely.",
                details={"request_timeout_s": self.request_timeout_s},
            )

    @property
    def stream_url(self) -> str:
        return stream_url(self.host, self.stream_path, secure=self.secure)

    @property
    def control_url(self) -> str:
        return control_base_url(self.host, self.api_prefix, secure=self.secure)

    def with_overrides(self, overrides: Mapping[str, Any]) -> "ConsoleConfig":
        """Return a copy with the non-None overrides applied (CLI flags)."""
        values = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **_validated(values, source="overrides"))


_TYPES: Dict[str, tuple] = {
    "host": (str,),
    "secure": (bool,),
    "stream_path": (str,),
    "api_prefix": (str,),
    "request_timeout_s": (int, float),
    "stream_driver": (str,),
    "log_file": (str, type(None)),
}


def _validated(values: Mapping[str, Any], *, source: str) -> Dict[str, Any]:
    known = {f.name for f in fields(ConsoleConfig)}
    out: Dict[str, Any] = {}

    for key, value in values.items():
        if key not in known:
            raise ConsoleConfigError(
                f"Unknown config key '{key}'.",
                hint=f"Valid keys: {sorted(known)}",
                details={"source": source, "key": key},
            )

        expected = _TYPES[key]
        # bool is an int subclass; never accept it for numeric fields
        if isinstance(value, bool) and bool not in expected:
            ok = False
        else:
            ok = isinstance(value, expected)
        if not ok:
            raise ConsoleConfigError(
                f"Invalid value for config '{key}'.",
                hint=f"Expected {' or '.join(t.__name__ for t in expected)}, got {type(value).__name__}.",
                details={"source": source, "key": key, "value": value},
            )

        out[key] = float(value) if key == "request_timeout_s" else value

    return out


def load_config(path: str | Path) -> ConsoleConfig:
    """
    Load a ConsoleConfig from a YAML mapping. Missing keys keep their defaults.
    """
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f)
    except FileNotFoundError:
        raise ConsoleConfigError(
            "Config file not found.",
            hint="Check the --config path.",
            details={"path": str(path)},
        ) from None
    except (OSError, yaml.YAMLError) as e:
        raise ConsoleConfigError(
            "Failed to read config file.",
            hint=str(e),
            details={"path": str(path)},
        ) from None

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ConsoleConfigError(
            "Config file must contain a YAML mapping.",
            details={"path": str(path), "type": type(raw).__name__},
        )

    return ConsoleConfig(**_validated(raw, source=str(path)))
