"""Terminal viewer following a container's log."""

from __future__ import annotations

from typing import Optional, Union

from rich.text import Text
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.widgets import Footer, RichLog, Static

from docker_logs.container_logs import LogRequestor
from docker_logs.log_callback import LogAction
from docker_logs.log_frame import StreamType
from docker_logs.timestamp import Timestamp

DEFAULT_TAIL = "100"


def format_line(stream_type: int, timestamp: Timestamp, text: str) -> Text:
    """Render one log line, stderr in red."""
    line = Text(f"{timestamp.datetime:%Y-%m-%d %H:%M:%S} ", style="dim")
    line.append(text, style="red" if stream_type == StreamType.STDERR else "")
    return line


class ViewerCallback:
    """Log sink forwarding lines from the requestor thread to the viewer."""

    def __init__(self, app: "LogViewerApp"):
        self.app = app

    def log(self, stream_type: int, timestamp: Timestamp, text: str) -> LogAction:
        if not self.app.is_running:
            return LogAction.STOP
        self.app.call_from_thread(self.app.write_line, format_line(stream_type, timestamp, text))
        return LogAction.CONTINUE

    def error(self, message: str) -> None:
        if self.app.is_running:
            self.app.call_from_thread(self.app.write_line, Text(message, style="bold red"))


class LogViewerApp(App):
    ENABLE_COMMAND_PALETTE = False
    BINDINGS = [
        Binding("p", "toggle_follow", "Pause/Follow", show=True),
        Binding("q", "quit", "Quit", show=True),
    ]
    DEFAULT_CSS = """
    #log-title {
        height: 1;
        background: $primary;
        color: $text;
        text-style: bold;
        padding: 0 1;
    }
    """

    def __init__(self, container_id: str, tail: Optional[Union[int, str]] = DEFAULT_TAIL, requestor: Optional[LogRequestor] = None):
        super().__init__()
        self.container_id = container_id
        self.requestor = requestor or LogRequestor(container_id, ViewerCallback(self), tail=tail)
        self.line_count = 0

    def compose(self) -> ComposeResult:
        yield Static(f"📜 Logs: {self.container_id}", id="log-title")
        yield RichLog(id="log-output", max_lines=1000, wrap=True)
        yield Footer()

    def on_mount(self) -> None:
        self.log_worker = self.run_worker(self.follow_logs, group="logs", thread=True)

    def on_unmount(self) -> None:
        self.requestor.finish()

    def follow_logs(self) -> None:
        self.requestor.run()
        error = self.requestor.get_exception()
        if error is not None and self.is_running:
            self.call_from_thread(self.write_line, Text(str(error), style="bold red"))

    def write_line(self, line: Text) -> None:
        self.line_count += 1
        self.query_one("#log-output", RichLog).write(line)

    def action_toggle_follow(self) -> None:
        log_output = self.query_one("#log-output", RichLog)
        log_output.auto_scroll = not log_output.auto_scroll
        self.notify("Following" if log_output.auto_scroll else "Paused")

    async def action_quit(self) -> None:
        self.requestor.finish()
        self.exit()
