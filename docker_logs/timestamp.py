"""Timestamps as prefixed to log lines by the Docker daemon.

With ``timestamps=1`` every log line starts with an RFC 3339 timestamp with
nanosecond precision, e.g. ``2014-11-24T09:49:41.917606192Z``. ``datetime``
only keeps microseconds, so the nanoseconds are stored next to it.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from functools import total_ordering

_TIMESTAMP = re.compile(
    r"^(?P<base>\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2})"
    r"(?:\.(?P<frac>\d{1,9}))?"
    r"(?P<tz>Z|[+-]\d{2}:\d{2})$"
)


@total_ordering
class Timestamp:
    """Point in time parsed from a log line timestamp token.

    Args:
        token: Timestamp text, ``Z`` or a ``+HH:MM`` offset is required

    Raises:
        ValueError: If the token is not a valid timestamp

    Instances compare and hash by instant, so ``Timestamp("...T01:00:00+01:00")``
    equals ``Timestamp("...T00:00:00Z")``.
    """

    __slots__ = ("_seconds", "_nanos")

    def __init__(self, token: str) -> None:
        match = _TIMESTAMP.match(token)
        if not match:
            raise ValueError(f"Invalid timestamp '{token}'")

        tz = match["tz"]
        if tz == "Z":
            tz = "+00:00"
        try:
            parsed = datetime.fromisoformat(match["base"] + tz)
        except ValueError as e:
            raise ValueError(f"Invalid timestamp '{token}': {e}") from e

        self._seconds = parsed.astimezone(timezone.utc)
        self._nanos = int((match["frac"] or "").ljust(9, "0"))

    @property
    def datetime(self) -> datetime:
        """Aware UTC datetime, truncated to microseconds."""
        return self._seconds.replace(microsecond=self._nanos // 1000)

    @property
    def nanos(self) -> int:
        """Nanoseconds within the second."""
        return self._nanos

    def _key(self) -> tuple[datetime, int]:
        return self._seconds, self._nanos

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Timestamp):
            return NotImplemented
        return self._key() == other._key()

    def __lt__(self, other: Timestamp) -> bool:
        if not isinstance(other, Timestamp):
            return NotImplemented
        return self._key() < other._key()

    def __hash__(self) -> int:
        return hash(self._key())

    def __str__(self) -> str:
        return f"{self._seconds:%Y-%m-%dT%H:%M:%S}.{self._nanos:09d}Z"

    def __repr__(self) -> str:
        return f"Timestamp('{self}')"
