"""Console output formatting."""

import json
from typing import Any

from rich.console import Console


class OutputFormatter:
    """Prints user-facing status lines, as text or JSON.

    In JSON mode every status line goes to stderr, leaving stdout to the
    document written by ``output_json``.
    """

    def __init__(self, json_output: bool = False, quiet: bool = False):
        """Initialize output formatter.

        Args:
            json_output: Emit machine-readable JSON instead of styled text
            quiet: Suppress info and success messages
        """
        self.json_output = json_output
        self.quiet = quiet
        self.console = Console()
        self.err_console = Console(stderr=True)

    def _emit(
        self, level: str, message: str, prefix: str, style: str, stderr: bool = False
    ) -> None:
        if self.json_output:
            self.err_console.print_json(json.dumps({"level": level, "message": message}))
        else:
            console = self.err_console if stderr else self.console
            console.print(f"{prefix}{message}", style=style, markup=False, highlight=False)

    def info(self, message: str) -> None:
        if not self.quiet:
            self._emit("info", message, "", "")

    def success(self, message: str) -> None:
        if not self.quiet:
            self._emit("success", message, "✓ ", "green")

    def warning(self, message: str) -> None:
        self._emit("warning", message, "⚠ ", "yellow", stderr=True)

    def error(self, message: str) -> None:
        self._emit("error", message, "✗ ", "bold red", stderr=True)

    def print(self, message: str = "") -> None:
        if not self.quiet and not self.json_output:
            self.console.print(message, markup=False, highlight=False)

    def output_json(self, data: Any) -> None:
        """Print a data structure as JSON."""
        self.console.print_json(json.dumps(data, default=str))
