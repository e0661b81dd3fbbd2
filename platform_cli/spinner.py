"""
Interactive progress indicator shown around platform API calls.
"""

from __future__ import annotations

from rich.console import Console
from rich.markup import escape

_OK_MARK = "[green]✓[/green]"
_FAIL_MARK = "[red]✗[/red]"


class Spinner:
    """rich-backed spinner with idempotent stop.

    ``start`` begins a new session (stopping any running one hidden);
    ``stop(success)`` leaves a one-line outcome; ``stop_hidden`` leaves
    nothing. Stopping an idle spinner is a no-op. Quiet spinners never draw.
    """

    def __init__(self, quiet: bool = False, console: Console | None = None):
        self.quiet = quiet
        self._console = console
        self._status = None
        self._label = ""

    @property
    def console(self) -> Console:
        if self._console is None:
            self._console = Console(stderr=True)
        return self._console

    @property
    def running(self) -> bool:
        return self._status is not None

    def start(self, label: str) -> None:
        self.stop_hidden()
        self._label = label
        if self.quiet:
            return
        self._status = self.console.status(escape(label))
        self._status.start()

    def stop(self, success: bool) -> None:
        if self._status is None:
            return
        self._halt()
        mark = _OK_MARK if success else _FAIL_MARK
        self.console.print(f"{mark} {escape(self._label)}", highlight=False)

    def stop_hidden(self) -> None:
        if self._status is not None:
            self._halt()

    def _halt(self) -> None:
        status, self._status = self._status, None
        status.stop()
