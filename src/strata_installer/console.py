"""Console output for the installer.

All user-facing text goes through the rich console here. Logging is a
separate stream (see shared.logging).
"""

from __future__ import annotations

from collections.abc import Iterable

from rich.console import Console
from rich.rule import Rule

console = Console(highlight=False)

PREFIX = "strata"

BANNER = r"""
  ___| __|  _ \    \   __|  \
 \__ \  |  |   / _ \  |   _ \
 ____/  _| _|_\ _/  _\ _| _/  _\
"""


def info(message: str) -> None:
    console.print(f"[blue]\\[{PREFIX}][/blue] {message}")


def success(message: str) -> None:
    console.print(f"[green]\\[{PREFIX}][/green] {message}")


def error(message: str) -> None:
    console.print(f"[red]\\[{PREFIX}][/red] {message}")


def hint(message: str) -> None:
    console.print(f"  [dim]{message}[/dim]")


def banner() -> None:
    console.print(f"[bold]{BANNER}[/bold]", end="")
    console.print("  [dim]Enterprise Installer[/dim]\n")


def headline(title: str, style: str) -> None:
    """Print a ruled headline (red for failures, yellow for slow starts)."""
    console.print()
    console.print(Rule(style=style))
    console.print(f"  [{style}]{title}[/{style}]")
    console.print(Rule(style=style))
    console.print()


def log_block(lines: Iterable[str]) -> None:
    """Print recent service logs under a heading."""
    console.print("  [bold]Recent logs:[/bold]\n")
    for line in lines:
        console.print(line, markup=False)
    console.print()


def steps(title: str, lines: Iterable[str]) -> None:
    console.print(f"  [bold]{title}[/bold]")
    for line in lines:
        console.print(f"  {line}")
    console.print()
