from .log_aggregator import Category, LogAggregator, LogEntry, classify
from .state import ConnectionState, ConsoleStatus, StatusTone
from .connection import ConnectionManager, StreamEvent

__all__ = ["Category",
           "LogAggregator",
           "LogEntry",
           "classify",
           "ConnectionState",
           "ConsoleStatus",
           "StatusTone",
           "ConnectionManager",
           "StreamEvent"]
