"""
docker-logs
===========

Fetch and follow Docker container logs through the daemon's unix socket.

Components:
    - log_frame: multiplexed stream frame decoding
    - log_line: timestamp / message splitting
    - log_callback: sinks receiving the decoded lines
    - container_logs: LogRequestor, bounded fetch and follow mode
    - log_viewer: textual viewer following a container's log
"""

__version__ = "0.1.0"

__all__ = [
    "__version__",
]
