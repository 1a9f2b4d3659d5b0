"""Sinks receiving the lines of a log fetch.

A sink implements ``log`` and ``error``. ``log`` returns a ``LogAction`` telling
the requestor whether to keep reading; returning None is the same as
``LogAction.CONTINUE``.
"""

from __future__ import annotations

from enum import Enum
from typing import List, Optional, Protocol

from docker_logs.log_line import LogLine, ParsedLine
from docker_logs.timestamp import Timestamp


class LogAction(Enum):
    CONTINUE = "continue"
    STOP = "stop"  # enough lines seen, end the session normally
    ERROR = "error"  # end the session as failed


class LogCallback(Protocol):
    def log(self, stream_type: int, timestamp: Timestamp, text: str) -> Optional[LogAction]:
        ...

    def error(self, message: str) -> None:
        ...


class CollectingCallback:
    """Sink that keeps every line and error message in memory.

    Args:
        limit: Ask the requestor to stop after this many lines, None for no limit
    """

    def __init__(self, limit: Optional[int] = None):
        self.limit = limit
        self.lines: List[LogLine] = []
        self.errors: List[str] = []

    def log(self, stream_type: int, timestamp: Timestamp, text: str) -> LogAction:
        self.lines.append(LogLine(stream_type, timestamp, text))
        if self.limit is not None and len(self.lines) >= self.limit:
            return LogAction.STOP
        return LogAction.CONTINUE

    def error(self, message: str) -> None:
        self.errors.append(message)


def dispatch(callback: LogCallback, parsed: ParsedLine) -> LogAction:
    """Hand a parsed line to the sink and return what the session should do next."""
    if isinstance(parsed, LogLine):
        action = callback.log(parsed.stream_type, parsed.timestamp, parsed.text)
        return LogAction.CONTINUE if action is None else action

    callback.error(parsed.message)
    return LogAction.ERROR
