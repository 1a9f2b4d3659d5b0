"""Errors raised while talking to the Docker daemon."""

from __future__ import annotations

from typing import Optional


class DockerAccessError(Exception):
    """Request to the Docker daemon finished with a non-success status.

    Attributes:
        status_code: HTTP status code of the response, if known
        reason: HTTP reason phrase, if known
    """

    def __init__(self, message: str, status_code: Optional[int] = None, reason: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.reason = reason
