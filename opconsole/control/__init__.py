# control/__init__.py

from .dispatcher import (
    CommandDispatcher,
    CommandOutcome,
    CommandRequest,
    CommandResult,
    ControlEndpoint,
)

__all__ = [
    "CommandDispatcher",
    "CommandOutcome", "CommandRequest", "CommandResult", "ControlEndpoint"]
