"""Console output formatting for the CLI."""

import json
from typing import Any, Optional

from rich.console import Console
from rich.table import Table

from .utils import format_size


class OutputFormatter:
    """Formats user-facing output as styled text or JSON.

    Informational messages are suppressed in quiet mode and in JSON mode so
    that JSON output stays machine-readable. Errors always go to stderr.
    """

    def __init__(
        self,
        json_output: bool = False,
        quiet: bool = False,
        console: Optional[Console] = None,
        err_console: Optional[Console] = None,
    ):
        """Initialize output formatter.

        Args:
            json_output: Emit JSON instead of styled text
            quiet: Suppress non-essential output
            console: Console for regular output
            err_console: Console for errors and warnings
        """
        self.json_output = json_output
        self.quiet = quiet
        self.console = console or Console(highlight=False)
        self.err_console = err_console or Console(stderr=True, highlight=False)

    @property
    def _silent(self) -> bool:
        return self.quiet or self.json_output

    def print(self, message: str = "") -> None:
        """Print a plain message."""
        if not self._silent:
            self.console.print(message, markup=False)

    def info(self, message: str) -> None:
        """Print an informational message."""
        if not self._silent:
            self.console.print(message, style="cyan", markup=False)

    def success(self, message: str) -> None:
        """Print a success message."""
        if not self._silent:
            self.console.print(message, style="green", markup=False)

    def warning(self, message: str) -> None:
        """Print a warning message."""
        if not self.quiet:
            self.err_console.print(message, style="yellow", markup=False)

    def error(self, message: str) -> None:
        """Print an error message (never suppressed)."""
        self.err_console.print(f"Error: {message}", style="bold red", markup=False)

    def output_json(self, data: Any) -> None:
        """Print data as JSON."""
        self.console.print_json(json.dumps(data))

    def print_summary(self, title: str, rows: list[tuple[str, str]]) -> None:
        """Print a two-column summary table."""
        if self._silent:
            return
        table = Table(title=title, show_header=False)
        table.add_column("Key", style="bold")
        table.add_column("Value")
        for key, value in rows:
            table.add_row(key, value)
        self.console.print(table)

    def print_file_list(self, title: str, paths: list[str]) -> None:
        """Print a titled list of file paths."""
        if self._silent:
            return
        self.console.print(title, style="bold blue", markup=False)
        for path in paths:
            self.console.print(f"  {path}", markup=False)

    def format_size(self, size_bytes: int) -> str:
        """Format a byte count for display."""
        return format_size(size_bytes)
