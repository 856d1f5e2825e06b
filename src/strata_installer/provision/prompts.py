"""Interactive collection of missing configuration values.

The collector only asks for fields the store does not already hold, so an
upgrade run keeps every existing setting. Answers are persisted one field
at a time.
"""

from __future__ import annotations

import sys
from collections.abc import Iterable
from typing import Protocol

import click
import structlog

from .. import console
from ..errors import InputUnavailable
from .fields import FieldSpec
from .store import ConfigStore

logger = structlog.get_logger(__name__)

TTY_PATH = "/dev/tty"


class Prompter(Protocol):
    """Source of interactive answers."""

    def ask(self, field: FieldSpec) -> str:
        """Ask once for a field value. May return an empty string."""
        ...

    def confirm(self, text: str, default: bool = True) -> bool: ...

    def notice(self, text: str) -> None: ...


class TerminalPrompter:
    """Prompter backed by the controlling terminal via click."""

    def ask(self, field: FieldSpec) -> str:
        console.console.print()
        console.console.print(f"  [bold]{field.key}[/bold]")
        console.console.print(f"  [dim]{field.description}[/dim]")

        if field.default or field.required:
            text = "  Enter value"
        else:
            text = "  Enter value (leave empty to skip)"

        try:
            return click.prompt(
                text,
                default=field.default,
                show_default=bool(field.default),
                hide_input=field.secret,
                prompt_suffix=": ",
            )
        except click.Abort as e:
            raise InputUnavailable(
                message=f"Input closed while reading {field.key}",
                remediation=["Re-run the installer from an interactive terminal"],
            ) from e

    def confirm(self, text: str, default: bool = True) -> bool:
        try:
            return click.confirm(f"  {text}", default=default)
        except click.Abort as e:
            raise InputUnavailable(
                message="Input closed while waiting for confirmation",
                remediation=["Re-run the installer from an interactive terminal, or pass --yes"],
            ) from e

    def notice(self, text: str) -> None:
        console.console.print(f"  [red]{text}[/red]")


def attach_terminal() -> None:
    """Read prompts from the controlling terminal when stdin is a pipe.

    Lets ``curl ... | sh``-style invocations still answer prompts.

    Raises:
        InputUnavailable: If stdin is not a TTY and no terminal can be opened.
    """
    if sys.stdin is not None and sys.stdin.isatty():
        return
    try:
        sys.stdin = open(TTY_PATH, encoding="utf-8")  # noqa: SIM115
    except OSError as e:
        raise InputUnavailable(
            message="No interactive terminal available to answer prompts",
            remediation=["Run the installer from an interactive terminal session"],
        ) from e
    logger.debug("stdin_attached_to_tty", path=TTY_PATH)


def ask_field(prompter: Prompter, field: FieldSpec) -> str:
    """Ask for one field, honouring required and default semantics.

    Required fields are asked again until a non-empty answer is given.
    Empty answers fall back to the field default.
    """
    while True:
        value = prompter.ask(field) or field.default
        if value or not field.required:
            return value
        prompter.notice("This field is required.")


class PromptCollector:
    """Fill configuration gaps interactively."""

    def __init__(self, store: ConfigStore, prompter: Prompter):
        """Initialize collector.

        Args:
            store: Store holding the persisted configuration.
            prompter: Source of interactive answers.
        """
        self.store = store
        self.prompter = prompter

    def collect(self, fields: Iterable[FieldSpec]) -> bool:
        """Prompt for every field the store does not already hold.

        Args:
            fields: Ordered field specs.

        Returns:
            True if any field was newly collected.
        """
        prompted = False

        for field in fields:
            if self.store.get(field.key) is not None:
                logger.debug("field_already_set", key=field.key)
                continue

            prompted = True
            value = ask_field(self.prompter, field)
            self.store.set(field.key, value)
            logger.info("field_collected", key=field.key, secret=field.secret, empty=not value)

        return prompted
