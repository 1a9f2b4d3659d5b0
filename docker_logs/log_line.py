"""Splitting decoded log frames into timestamp and message."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Union

from docker_logs.log_frame import StreamType
from docker_logs.timestamp import Timestamp

# Optional brackets around the timestamp, whitespace, then the message
LOG_LINE = re.compile(r"^\[?([^\s\]]*)\]?\s+(.*)\s*$")


@dataclass(frozen=True)
class LogLine:
    stream_type: int
    timestamp: Timestamp
    text: str


@dataclass(frozen=True)
class MalformedLine:
    """Payload text that is not of the form ``<timestamp> <text>``."""

    raw: str
    reason: str = ""

    @property
    def message(self) -> str:
        msg = f"Invalid log format for '{self.raw}' (expected: \"<timestamp> <txt>\")"
        if self.reason:
            msg += f": {self.reason}"
        return msg


ParsedLine = Union[LogLine, MalformedLine]


def parse_line(text: str, stream_type: int = StreamType.STDOUT) -> ParsedLine:
    """Parse one frame payload.

    Args:
        text: Decoded payload text
        stream_type: Stream type byte of the frame the text came from

    Returns:
        LogLine on success, MalformedLine when the text doesn't match the line
        pattern or the timestamp token is not a valid timestamp.
    """
    match = LOG_LINE.fullmatch(text)
    if not match:
        return MalformedLine(text)

    try:
        timestamp = Timestamp(match.group(1))
    except ValueError as e:
        return MalformedLine(text, str(e))

    return LogLine(stream_type, timestamp, match.group(2))
