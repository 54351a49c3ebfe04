# opconsole/core/errors.py
from __future__ import annotations


class ConsoleError(Exception):
    """
    Base class for all expected setup errors in the operator console.

    Runtime failures (stream errors, unreachable control endpoint) never
    raise; they are turned into log entries. Only configuration and wiring
    problems surface as exceptions.
    """

    #: Stable machine-readable identifier (for CLI exit mapping, etc.)
    code: str = "unknown"

    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        details: dict | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.hint = hint
        self.details = details or {}

    def __str__(self) -> str:
        return self.message


# ---------------------------------------------------------------------------
# Configuration / setup errors (no network access yet)
# ---------------------------------------------------------------------------

class ConsoleConfigError(ConsoleError):
    """
    Console configuration is invalid.

    Examples:
      - config file missing or not valid YAML
      - unknown config key
      - value of the wrong type (timeout as a string, ...)
    """
    code = "console_config_error"


class StreamDriverError(ConsoleError):
    """
    The configured stream driver cannot be constructed.

    Examples:
      - unknown driver key
      - driver constructor does not accept the resolved parameters
    """
    code = "stream_driver_error"
