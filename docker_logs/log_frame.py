"""Docker multiplexed stream frame decoding.

The logs endpoint of a container started without a TTY returns stdout and
stderr interleaved on one byte stream. Every chunk of output is wrapped in a
frame with an 8-byte header:

- byte 0: stream type (0 = stdin, 1 = stdout, 2 = stderr)
- bytes 1-3: reserved, ignored
- bytes 4-7: payload length as a big-endian unsigned 32-bit integer

followed by exactly that many payload bytes.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from enum import IntEnum
from typing import BinaryIO, Iterator, Optional

HEADER_SIZE = 8
_HEADER_FORMAT = ">BxxxI"  # type byte, 3 reserved bytes, uint32 length


class StreamType(IntEnum):
    STDIN = 0
    STDOUT = 1
    STDERR = 2


@dataclass(frozen=True)
class Frame:
    """One decoded frame. ``stream_type`` is passed through as read, so it may
    hold a value outside of ``StreamType``."""

    stream_type: int
    payload: bytes

    @property
    def length(self) -> int:
        return len(self.payload)

    def text(self) -> str:
        return self.payload.decode("utf-8", errors="ignore")


def _read_exact(stream: BinaryIO, size: int) -> Optional[bytes]:
    """Read exactly ``size`` bytes, or return None if the stream ends first."""
    buf = bytearray()
    while len(buf) < size:
        chunk = stream.read(size - len(buf))
        if not chunk:
            return None
        buf += chunk
    return bytes(buf)


def parse_header(header: bytes) -> tuple[int, int]:
    """Unpack an 8-byte frame header into ``(stream_type, payload_length)``."""
    stream_type, length = struct.unpack(_HEADER_FORMAT, header)
    return stream_type, length


def read_frame(stream: BinaryIO) -> Optional[Frame]:
    """Read the next frame from a multiplexed stream.

    Args:
        stream: Binary file-like object (``response.raw``, ``io.BytesIO``, ...)

    Returns:
        The decoded Frame, or None at end of stream. A stream that ends inside
        a header or inside a payload is treated as a normal end of stream; no
        partial frame is ever returned.

    I/O errors other than end of stream are not caught here.
    """
    header = _read_exact(stream, HEADER_SIZE)
    if header is None:
        return None

    stream_type, length = parse_header(header)

    payload = _read_exact(stream, length) if length else b""
    if payload is None:
        return None

    return Frame(stream_type, payload)


def iter_frames(stream: BinaryIO) -> Iterator[Frame]:
    """Yield frames until the stream ends."""
    while True:
        frame = read_frame(stream)
        if frame is None:
            return
        yield frame
