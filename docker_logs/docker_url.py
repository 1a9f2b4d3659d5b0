"""URLs for the Docker Engine API served on the daemon's unix socket."""

from __future__ import annotations

import os
from typing import Dict, Optional, Union
from urllib.parse import quote, urlencode

DOCKER_SOCKET_URL = os.environ.get("DOCKER_SOCKET_URL", "http+unix://%2Fvar%2Frun%2Fdocker.sock")
DOCKER_API_VERSION = os.environ.get("DOCKER_API_VERSION") or None


def _flag(value: bool) -> str:
    return "1" if value else "0"


class UrlBuilder:
    """Build Docker Engine API URLs.

    Args:
        base_url: Daemon address, ``http+unix://`` for the local socket
        api_version: Pin an API version (``"1.43"``), None for the daemon default
    """

    def __init__(self, base_url: str = DOCKER_SOCKET_URL, api_version: Optional[str] = DOCKER_API_VERSION):
        self.base_url = base_url.rstrip("/")
        self.api_version = api_version

    def _url(self, path: str, params: Dict[str, str]) -> str:
        prefix = self.base_url
        if self.api_version:
            prefix += f"/v{self.api_version.lstrip('v')}"
        url = f"{prefix}/{path}"
        if params:
            url += "?" + urlencode(params)
        return url

    def container_logs(
        self,
        container_id: str,
        follow: bool,
        tail: Optional[Union[int, str]] = None,
        since: Optional[int] = None,
    ) -> str:
        """URL of a container's combined stdout/stderr log.

        Args:
            container_id: Docker container ID or name
            follow: Keep the connection open and stream new output
            tail: Number of lines from the end ("all" or a number), None for all
            since: Only logs since this UNIX timestamp

        Timestamps are always requested since every line is expected to start
        with one.
        """
        params = {
            "follow": _flag(follow),
            "stdout": "1",
            "stderr": "1",
            "timestamps": "1",
        }
        if tail is not None:
            params["tail"] = str(tail)
        if since:
            params["since"] = str(since)
        return self._url(f"containers/{quote(container_id, safe='')}/logs", params)
