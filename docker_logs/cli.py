import argparse
import logging
import os
import sys

from rich.console import Console

from docker_logs.container_logs import LogRequestor
from docker_logs.log_callback import LogAction
from docker_logs.log_viewer import DEFAULT_TAIL, LogViewerApp, format_line


class ConsoleCallback:
    """Print lines of a bounded fetch to the terminal."""

    def __init__(self, console: Console):
        self.console = console
        self.failed = False

    def log(self, stream_type, timestamp, text):
        self.console.print(format_line(stream_type, timestamp, text))
        return LogAction.CONTINUE

    def error(self, message):
        self.failed = True
        self.console.print(f"[bold red]{message}[/bold red]")


def print_logs(container_id: str, tail: str) -> int:
    console = Console()
    callback = ConsoleCallback(console)
    requestor = LogRequestor(container_id, callback, tail=tail)
    requestor.fetch_logs()
    if requestor.is_error():
        console.print(f"[bold red]{requestor.get_exception()}[/bold red]")
        return 1
    return 1 if callback.failed else 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Show the log of a Docker container")
    parser.add_argument("container", help="container ID or name")
    parser.add_argument("--tail", default=DEFAULT_TAIL, help='lines from the end, or "all"')
    parser.add_argument("--no-follow", action="store_true", help="print the current log and exit")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=os.environ.get("DOCKER_LOGS_LOG_LEVEL", "WARNING").upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    if args.no_follow:
        return print_logs(args.container, args.tail)

    LogViewerApp(args.container, tail=args.tail).run()
    return 0


if __name__ == "__main__":
    sys.exit(main())
