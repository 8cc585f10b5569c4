"""Console output helpers built on Rich."""

from typing import Optional

import click
from rich.console import Console

_console = Console(highlight=False)
_stderr_console = Console(stderr=True, highlight=False)
_quiet = False


def set_quiet(quiet: bool) -> None:
    """Suppress informational output (warnings and errors still print)."""
    global _quiet
    _quiet = quiet


def is_quiet() -> bool:
    return _quiet


def _rich_echo(message: str, style: Optional[str] = None) -> None:
    if _quiet:
        return
    _console.print(message, style=style, markup=False)


def _rich_info(message: str) -> None:
    _rich_echo(message, style="cyan")


def _rich_success(message: str) -> None:
    _rich_echo(message, style="green")


def _rich_warning(message: str) -> None:
    _stderr_console.print(message, style="yellow", markup=False)


def _rich_error(message: str) -> None:
    _stderr_console.print(message, style="bold red", markup=False)


def echo(message: str = "") -> None:
    """Plain output for machine-readable listings, ignores quiet mode."""
    click.echo(message)
