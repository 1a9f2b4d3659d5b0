"""Docker container logs fetching module.

This module requests the combined stdout/stderr log of a container from the
Docker daemon, decodes Docker's multiplexed frame format and hands every line
to a callback, split into stream type, timestamp and text.

Two modes are supported:
- a bounded fetch of the existing log (``LogRequestor.fetch_logs``), blocking
  until the whole body has been read
- following the log as it is written (``LogRequestor.start``), running on a
  background thread until the stream ends, the callback stops it or
  ``LogRequestor.finish`` cancels it

``stream_logs`` offers the same decoding as a plain generator.
"""

from __future__ import annotations

import http.client
import logging
import socket
import threading
from concurrent import futures
from concurrent.futures import Future
from typing import Any, Generator, Optional, Union

import requests
import requests_unixsocket
import urllib3

from docker_logs.docker_url import UrlBuilder
from docker_logs.errors import DockerAccessError
from docker_logs.log_callback import LogAction, LogCallback, dispatch
from docker_logs.log_frame import iter_frames, read_frame
from docker_logs.log_line import LogLine, MalformedLine, parse_line

logger = logging.getLogger(__name__)

docker_session = requests_unixsocket.Session()

# Faults raised by requests, urllib3, http.client or the socket while reading a body.
# ValueError covers reads on a file object closed under us.
TRANSPORT_ERRORS = (
    OSError,
    ValueError,
    http.client.HTTPException,
    requests.RequestException,
    urllib3.exceptions.HTTPError,
)


def _status_error(response: requests.Response) -> Optional[DockerAccessError]:
    if response.status_code == 200:
        return None
    status = f"{response.status_code} {response.reason or ''}".strip()
    return DockerAccessError(
        f"Error while reading logs ({status})",
        status_code=response.status_code,
        reason=response.reason,
    )


def _abort(response: requests.Response) -> None:
    """Unblock a read pending on ``response`` in another thread.

    Only the socket is shut down. The reading thread sees a broken stream and
    closes the response itself.
    """
    conn = getattr(response.raw, "connection", None)
    sock = getattr(conn, "sock", None)
    if sock is None:
        # connection already released, nothing can be blocked on it
        response.close()
        return
    try:
        sock.shutdown(socket.SHUT_RDWR)
    except OSError as e:
        logger.debug(f"Socket already closed: {e}")


def _discard_late_response(request: Future) -> None:
    """Close the response of a request whose session was cancelled while it was in flight."""
    if request.exception() is None:
        logger.debug("Closing response of a cancelled log request")
        request.result().close()


class LogRequestor:
    """Fetch or follow the log of one container.

    Args:
        container_id: Docker container ID or name
        callback: Sink receiving the lines and error messages
        session: HTTP session, defaults to the module's unix socket session
        url_builder: Builds the logs URL, defaults to the local daemon
        tail: Only fetch this many lines from the end ("all" or a number)

    A requestor runs a single session: create a new one for every fetch.
    Transport errors and malformed lines are reported through
    ``callback.error`` and never raised. A non-200 status is only known once
    the body has been read and is available through ``is_error`` and
    ``get_exception`` afterwards.

    Example:
        requestor = LogRequestor("web", callback)
        requestor.start()
        ...
        requestor.finish()
    """

    def __init__(
        self,
        container_id: str,
        callback: LogCallback,
        session: Optional[Any] = None,
        url_builder: Optional[UrlBuilder] = None,
        tail: Optional[Union[int, str]] = None,
    ):
        self.container_id = container_id
        self.callback = callback
        self.session = session if session is not None else docker_session
        self.url_builder = url_builder or UrlBuilder()
        self.tail = tail

        self._lock = threading.Lock()  # guards _response, _started and the cancel token
        self._response: Optional[requests.Response] = None
        self._started = False
        self._cancelled: Future = Future()  # cancel token, resolved by finish()
        self._result: Future = Future()
        self._thread: Optional[threading.Thread] = None

    # Public API ---------------------------------------------------------------

    def fetch_logs(self) -> None:
        """Fetch the existing log and feed every line to the callback.

        Blocks until the response body is exhausted.
        """
        self._begin()
        self._complete(follow=False)

    def start(self) -> Future:
        """Follow the log on a background thread.

        Returns:
            Future resolving to the terminal DockerAccessError, or None, once the
            session has ended
        """
        self._begin()
        self._thread = threading.Thread(
            target=self._worker,
            name=f"logs-{self.container_id}",
            daemon=True,
        )
        self._thread.start()
        return self._result

    def run(self) -> None:
        """Follow the log on the calling thread until the session ends."""
        self._begin()
        self._complete(follow=True)

    def finish(self) -> None:
        """Cancel the session.

        Safe to call at any time and any number of times. A request still
        waiting for the daemon's headers is abandoned, a read blocked on the
        response fails, and the session ends without reporting an error.
        """
        with self._lock:
            if not self._cancelled.done():
                self._cancelled.set_result(None)
            response, self._response = self._response, None
        if response is not None:
            logger.debug(f"Aborting log request for {self.container_id}")
            _abort(response)

    def is_error(self) -> bool:
        return self.get_exception() is not None

    def get_exception(self) -> Optional[BaseException]:
        """Terminal error of a finished session, None while it still runs."""
        if not self._result.done():
            return None
        error = self._result.exception()
        if error is not None:
            return error
        return self._result.result()

    def wait(self, timeout: Optional[float] = None) -> Optional[DockerAccessError]:
        """Wait for the session to end and return its terminal error.

        Raises:
            concurrent.futures.TimeoutError: If the session is still running
                after ``timeout`` seconds
        """
        return self._result.result(timeout)

    @property
    def done(self) -> bool:
        return self._result.done()

    # Session ------------------------------------------------------------------

    def _begin(self) -> None:
        with self._lock:
            if self._started:
                raise RuntimeError("LogRequestor already used, create a new one per fetch")
            self._started = True
        self._result.set_running_or_notify_cancel()

    def _worker(self) -> None:
        try:
            self._complete(follow=True)
        except Exception:
            logger.exception(f"Following logs of {self.container_id} failed")

    def _complete(self, follow: bool) -> None:
        try:
            error = self._fetch(follow)
        except BaseException as e:
            self._result.set_exception(e)
            raise
        self._result.set_result(error)

    def _send(self, url: str) -> Optional[requests.Response]:
        """Issue the GET, returning None if the session is cancelled before the headers arrive.

        The request runs on a helper thread so that the session doesn't depend
        on the daemon answering. An abandoned request closes its response when
        it eventually completes.
        """
        request: Future = Future()

        def send() -> None:
            try:
                request.set_result(self.session.get(url, stream=True))
            except BaseException as e:
                request.set_exception(e)

        threading.Thread(target=send, name=f"logs-request-{self.container_id}", daemon=True).start()
        futures.wait([request, self._cancelled], return_when=futures.FIRST_COMPLETED)

        if not request.done():
            request.add_done_callback(_discard_late_response)
            return None
        return request.result()

    def _fetch(self, follow: bool) -> Optional[DockerAccessError]:
        if self._cancelled.done():
            logger.debug(f"Log request for {self.container_id} cancelled before it was sent")
            return None

        url = self.url_builder.container_logs(self.container_id, follow, tail=self.tail)
        logger.debug(f"Requesting logs: {url}")
        try:
            response = self._send(url)
        except TRANSPORT_ERRORS as e:
            if self._cancelled.done():
                return None
            logger.error(f"Log request for {self.container_id} failed: {e}")
            self.callback.error(f"IO Error while requesting logs: {e}" if follow else str(e))
            return None
        if response is None:
            logger.debug(f"Log request for {self.container_id} cancelled while waiting for the daemon")
            return None

        with self._lock:
            self._response = response
        try:
            if self._cancelled.done():
                return None
            return self._parse_response(response)
        finally:
            with self._lock:
                self._response = None
            response.close()

    def _parse_response(self, response: requests.Response) -> Optional[DockerAccessError]:
        while not self._cancelled.done():
            try:
                frame = read_frame(response.raw)
            except TRANSPORT_ERRORS as e:
                if self._cancelled.done():
                    logger.debug(f"Log session for {self.container_id} cancelled")
                    return None
                logger.error(f"Reading logs of {self.container_id} failed: {e}")
                self.callback.error(f"Cannot process chunk response: {e}")
                self.finish()
                return None

            if frame is None:
                break

            action = dispatch(self.callback, parse_line(frame.text(), frame.stream_type))
            if action is LogAction.CONTINUE:
                continue

            if action is LogAction.STOP:
                logger.debug(f"Callback stopped log session for {self.container_id}")
            else:
                logger.warning(f"Log session for {self.container_id} ended on error")
            self.finish()
            return None

        if self._cancelled.done():
            return None

        logger.debug(f"End of log stream for {self.container_id}")
        error = _status_error(response)
        if error is not None:
            logger.warning(f"Logs of {self.container_id}: {error}")
        return error


def stream_logs(
    container_id: str,
    follow: bool = False,
    tail: Optional[Union[int, str]] = None,
    since: int = 0,
    session: Optional[Any] = None,
    url_builder: Optional[UrlBuilder] = None,
) -> Generator[LogLine, None, None]:
    """Stream log lines from a Docker container.

    Args:
        container_id: Docker container ID or name
        follow: If True, keep streaming as new output is written
        tail: Number of lines to show from the end ("all" or a number)
        since: Show logs since timestamp (Unix epoch)
        session: HTTP session, defaults to the module's unix socket session
        url_builder: Builds the logs URL, defaults to the local daemon

    Returns:
        Generator yielding LogLine objects as they become available

    Iteration stops at the first malformed line. Transport errors propagate,
    and a non-200 status raises DockerAccessError once the body is drained.
    Closing the generator closes the response.
    """
    http = session if session is not None else docker_session
    url = (url_builder or UrlBuilder()).container_logs(container_id, follow, tail=tail, since=since)
    response = http.get(url, stream=True)

    try:
        for frame in iter_frames(response.raw):
            parsed = parse_line(frame.text(), frame.stream_type)
            if isinstance(parsed, MalformedLine):
                logger.warning(parsed.message)
                return
            yield parsed

        error = _status_error(response)
        if error is not None:
            raise error
    finally:
        response.close()
