"""
Test Configuration
==================

Pytest fixtures and fakes for the log requestor tests. The fakes stand in for
the ``requests`` session and streamed response so no Docker daemon is needed.
"""

import io
import struct
import threading
from types import SimpleNamespace

import pytest
from urllib3.exceptions import ProtocolError

from docker_logs.log_callback import CollectingCallback, LogAction


def encode_frame(stream_type: int, payload) -> bytes:
    """Encode one frame of Docker's multiplexed stream format."""
    if isinstance(payload, str):
        payload = payload.encode("utf-8")
    return struct.pack(">BxxxI", stream_type, len(payload)) + payload


class FakeResponse:
    """Minimal streamed ``requests.Response``."""

    def __init__(self, body: bytes = b"", status_code: int = 200, reason: str = "OK", raw=None):
        self.raw = raw if raw is not None else io.BytesIO(body)
        self.status_code = status_code
        self.reason = reason
        self.closed = False
        self.closed_event = threading.Event()

    def close(self):
        self.closed = True
        self.closed_event.set()
        self.raw.close()


class FakeSession:
    """Session returning a canned response (or raising) for every GET."""

    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.urls = []
        self.stream = None
        self.requested = threading.Event()

    def get(self, url, stream=False):
        self.urls.append(url)
        self.stream = stream
        self.requested.set()
        if self.error is not None:
            raise self.error
        return self.response


class StallingSession(FakeSession):
    """Session whose GET blocks until ``release`` is set, like a daemon slow to send headers."""

    def __init__(self, response=None, error=None):
        super().__init__(response, error)
        self.release = threading.Event()

    def get(self, url, stream=False):
        self.urls.append(url)
        self.stream = stream
        self.requested.set()
        self.release.wait()
        if self.error is not None:
            raise self.error
        return self.response


class _FakeSocket:
    """Socket of a BlockingStream's connection: shutting it down breaks the stream."""

    def __init__(self, stream):
        self._stream = stream
        self.shut_down = False

    def shutdown(self, how):
        self.shut_down = True
        self._stream.break_connection()


class BlockingStream:
    """Byte stream whose reads block until data is fed, the feed ends or the connection breaks.

    Like urllib3's response, it exposes ``connection.sock``. Closing it while a
    read is pending raises in the reader, as ``http.client`` does.
    """

    def __init__(self):
        self._cond = threading.Condition()
        self._buf = bytearray()
        self._eof = False
        self._broken = False
        self.closed = False
        self.closed_while_reading = False
        self._reading = 0
        self.waiting = threading.Event()
        self.connection = SimpleNamespace(sock=_FakeSocket(self))

    def break_connection(self) -> None:
        with self._cond:
            self._broken = True
            self._cond.notify_all()

    def feed(self, data: bytes) -> None:
        with self._cond:
            self._buf += data
            self._cond.notify_all()

    def end(self) -> None:
        with self._cond:
            self._eof = True
            self._cond.notify_all()

    def read(self, size: int = -1) -> bytes:
        with self._cond:
            self._reading += 1
            try:
                while not self._buf and not self._eof and not self._broken and not self.closed:
                    self.waiting.set()
                    self._cond.wait()
                if self.closed:
                    raise AttributeError("'NoneType' object has no attribute 'readline'")
                if self._broken:
                    raise ProtocolError("Connection broken: IncompleteRead")
                if not self._buf:
                    return b""
                if size < 0:
                    size = len(self._buf)
                chunk = bytes(self._buf[:size])
                del self._buf[:size]
                return chunk
            finally:
                self._reading -= 1

    def close(self) -> None:
        with self._cond:
            if self._reading:
                self.closed_while_reading = True
            self.closed = True
            self._cond.notify_all()


class FailingStream:
    """Stream returning ``data`` and then raising ``error``."""

    def __init__(self, data: bytes, error: Exception):
        self._data = io.BytesIO(data)
        self._error = error

    def read(self, size: int = -1) -> bytes:
        chunk = self._data.read(size)
        if not chunk:
            raise self._error
        return chunk

    def close(self) -> None:
        pass


class TrickleStream(io.BytesIO):
    """BytesIO handing out a single byte per read."""

    def read(self, size: int = -1) -> bytes:
        return super().read(1 if size != 0 else 0)


class SignallingCallback(CollectingCallback):
    """CollectingCallback that sets an event once ``expected`` lines arrived."""

    def __init__(self, expected: int, limit=None):
        super().__init__(limit=limit)
        self.expected = expected
        self.arrived = threading.Event()

    def log(self, stream_type, timestamp, text) -> LogAction:
        action = super().log(stream_type, timestamp, text)
        if len(self.lines) >= self.expected:
            self.arrived.set()
        return action


@pytest.fixture
def frame():
    """Frame encoder."""
    return encode_frame


@pytest.fixture
def callback():
    return CollectingCallback()


@pytest.fixture
def sample_lines():
    """Payloads as the daemon sends them with timestamps=1."""
    return [
        (1, "2021-01-01T00:00:00.000000001Z starting server\n"),
        (2, "2021-01-01T00:00:01.500000000Z warning: low disk\n"),
        (1, "2021-01-01T00:00:02Z listening on :8080\n"),
    ]


@pytest.fixture
def sample_body(sample_lines):
    return b"".join(encode_frame(t, p) for t, p in sample_lines)
