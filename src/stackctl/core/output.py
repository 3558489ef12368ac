"""Operator-facing output: phase messages and tabular reports."""

import json
from enum import Enum
from typing import Any

import click
import yaml
from rich.console import Console
from rich.table import Table


class OutputFormat(str, Enum):
    """Supported output formats."""

    TABLE = "table"
    JSON = "json"
    YAML = "yaml"
    RAW = "raw"


# Prefixes match what operators grep for in deployment logs
NOTE = ("NOTE:", "blue")
WARNING = ("WARNING:", "yellow")
ERROR = ("ERROR:", "red")


def _console(stderr: bool, color: bool | None) -> Console:
    # color=None lets rich decide from the terminal
    return Console(
        stderr=stderr,
        force_terminal=color,
        no_color=color is False,
        highlight=False,
        soft_wrap=True,
    )


class OutputFormatter:
    """Writes phase messages and reports in the selected format.

    NOTE, WARNING and success lines are suppressed by ``quiet``; ERROR
    lines always go to stderr.
    """

    def __init__(
        self,
        format: OutputFormat = OutputFormat.TABLE,
        color: bool | None = True,
        quiet: bool = False,
    ):
        self.format = format
        self.quiet = quiet
        self._console = _console(stderr=False, color=color)
        self._error_console = _console(stderr=True, color=color)

    def print(self, message: str) -> None:
        """Print a rich markup message to stdout."""
        if not self.quiet:
            self._console.print(message)

    def _prefixed(self, kind: tuple[str, str], message: str, console: Console) -> None:
        label, colour = kind
        console.print(f"[{colour}]{label}[/{colour}] {message}")

    def print_note(self, message: str) -> None:
        """Print a progress message at a phase boundary."""
        if not self.quiet:
            self._prefixed(NOTE, message, self._console)

    def print_warning(self, message: str) -> None:
        """Print a warning; execution continues."""
        if not self.quiet:
            self._prefixed(WARNING, message, self._console)

    def print_error(self, message: str) -> None:
        """Print an error to stderr, even in quiet mode."""
        self._prefixed(ERROR, message, self._error_console)

    def print_success(self, message: str) -> None:
        if not self.quiet:
            self._console.print(f"[green]✓[/green] {message}")

    def print_data(
        self,
        data: list[dict[str, Any]] | dict[str, Any],
        headers: list[str] | None = None,
        title: str | None = None,
    ) -> None:
        """Render a report; reports print even in quiet mode."""
        if self.format == OutputFormat.JSON:
            click.echo(json.dumps(data, indent=2, default=str))
        elif self.format == OutputFormat.YAML:
            click.echo(yaml.safe_dump(data, default_flow_style=False, sort_keys=False), nl=False)
        elif self.format == OutputFormat.RAW:
            if isinstance(data, dict):
                for key, value in data.items():
                    click.echo(f"{key}: {value}")
            else:
                for item in data:
                    click.echo(item)
        else:
            self._console.print(self._table(data, headers, title))

    def _table(
        self,
        data: list[dict[str, Any]] | dict[str, Any],
        headers: list[str] | None,
        title: str | None,
    ) -> Table | str:
        if isinstance(data, dict):
            headers = ["Field", "Value"]
            data = [{"Field": key, "Value": value} for key, value in data.items()]
        if not data:
            return "[dim]No data to display[/dim]"

        columns = headers or list(data[0].keys())
        table = Table(title=title, header_style="bold cyan")
        for column in columns:
            table.add_column(column)
        for row in data:
            table.add_row(*(str(row.get(column, "")) for column in columns))
        return table

    def confirm(self, message: str, default: bool = False) -> bool:
        """Ask a yes/no question; quiet mode takes the default."""
        if self.quiet:
            return default
        return click.confirm(message, default=default)


def format_duration(seconds: float) -> str:
    """Format seconds as ``12.3s``, ``4.5m`` or ``1.2h``."""
    if seconds < 60:
        return f"{seconds:.1f}s"
    if seconds < 3600:
        return f"{seconds / 60:.1f}m"
    return f"{seconds / 3600:.1f}h"
