"""Terminal output helpers for the CLI."""

import json
from typing import Any, Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .utils import format_size


class OutputFormatter:
    """Render messages, tables and JSON for the CLI.

    Normal output goes to stdout, errors and warnings to stderr. In quiet
    mode only errors and explicitly requested values are printed. In JSON
    mode human oriented messages are suppressed so stdout stays parseable.
    """

    def __init__(
        self,
        json_output: bool = False,
        quiet: bool = False,
        console: Optional[Console] = None,
        err_console: Optional[Console] = None,
    ):
        self.json_output = json_output
        self.quiet = quiet
        self.console = console or Console(highlight=False, soft_wrap=True)
        self.err_console = err_console or Console(
            stderr=True, highlight=False, soft_wrap=True
        )

    @property
    def _silent(self) -> bool:
        return self.quiet or self.json_output

    def print(self, message: str = "") -> None:
        """Print a message unless JSON output is active.

        Unlike :meth:`info` this is not suppressed by quiet mode; use it for
        values the user asked for explicitly (e.g. an uploaded file id).
        """
        if not self.json_output:
            self.console.print(message, markup=False)

    def info(self, message: str) -> None:
        if not self._silent:
            self.console.print(message, markup=False)

    def success(self, message: str) -> None:
        if not self._silent:
            self.console.print(f"[green]✓[/green] {escape(message)}")

    def warning(self, message: str) -> None:
        if not self.quiet:
            self.err_console.print(f"[yellow]Warning:[/yellow] {escape(message)}")

    def prompt_warning(self, message: str) -> None:
        """Print a warning that leads up to a question.

        Shown even in quiet mode, since the user still has to answer.
        """
        self.err_console.print(f"[yellow]Warning:[/yellow] {escape(message)}")

    def error(self, message: str) -> None:
        """Print an error line to stderr; never suppressed."""
        self.err_console.print(f"[red]Error:[/red] {escape(message)}")

    def progress_message(self, message: str) -> None:
        if not self._silent:
            self.console.print(f"[dim]{escape(message)}[/dim]")

    def format_size(self, size_bytes: int) -> str:
        return format_size(size_bytes)

    def output_json(self, data: Any) -> None:
        """Print data as indented JSON to stdout."""
        self.console.print_json(json.dumps(data, default=str))

    def print_summary(self, title: str, items: list[tuple[str, str]]) -> None:
        """Print a titled list of label/value pairs.

        Args:
            title: Summary heading
            items: (label, value) pairs in display order
        """
        if self._silent:
            return
        self.console.print(f"\n[bold]{escape(title)}[/bold]")
        width = max((len(label) for label, _ in items), default=0)
        for label, value in items:
            self.console.print(f"  {label.ljust(width)}  {value}", markup=False)

    def output_table(
        self,
        rows: list[dict[str, Any]],
        columns: list[str],
        headers: Optional[dict[str, str]] = None,
    ) -> None:
        """Print rows as a table, or as a JSON list in JSON mode.

        Args:
            rows: One dict per row
            columns: Keys to display, in order
            headers: Optional column key to header text mapping
        """
        if self.json_output:
            self.output_json([{c: row.get(c) for c in columns} for row in rows])
            return
        headers = headers or {}
        table = Table(show_header=True, header_style="bold")
        for column in columns:
            table.add_column(headers.get(column, column))
        for row in rows:
            table.add_row(*(_cell(row.get(column)) for column in columns))
        self.console.print(table)


def _cell(value: Any) -> str:
    if value is None:
        return ""
    return str(value)
