"""Shared test fixtures for strata-installer tests.

This module provides fakes for the installer's collaborators:
- ScriptedPrompter: answers prompts from a per-field script
- FakeDriver: records deployment calls and replays service statuses
- ScriptedPoller: HealthPoller whose HTTP probe replays a script
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import pytest

from strata_installer.config import InstallContext
from strata_installer.provision import FieldSpec, HealthPoller, ServiceStatus

# =============================================================================
# Prompter
# =============================================================================


class ScriptedPrompter:
    """Prompter that replays answers per field key.

    Asking for a field with no scripted answer left fails the test, which is
    how tests assert that a field was not prompted for.
    """

    def __init__(self, answers: dict[str, list[str]] | None = None, confirm: bool = True):
        self.answers = {key: list(values) for key, values in (answers or {}).items()}
        self.confirm_answer = confirm
        self.asked: list[str] = []
        self.notices: list[str] = []
        self.confirmations: list[str] = []

    def ask(self, field: FieldSpec) -> str:
        self.asked.append(field.key)
        queue = self.answers.get(field.key)
        if not queue:
            raise AssertionError(f"Unexpected prompt for {field.key}")
        return queue.pop(0)

    def confirm(self, text: str, default: bool = True) -> bool:
        self.confirmations.append(text)
        return self.confirm_answer

    def notice(self, text: str) -> None:
        self.notices.append(text)


# =============================================================================
# Deployment driver
# =============================================================================


@dataclass
class FakeDriver:
    """In-memory DeploymentDriver."""

    probe_ok: bool = True
    login_ok: bool = True
    pull_ok: bool = True
    start_ok: bool = True
    statuses: list[ServiceStatus] = field(default_factory=list)
    log_lines: list[str] = field(default_factory=lambda: [f"log line {i}" for i in range(1, 31)])
    calls: list[tuple[Any, ...]] = field(default_factory=list)

    def probe(self, reference: str) -> bool:
        self.calls.append(("probe", reference))
        return self.probe_ok

    def login(self, registry: str, username: str, token: str) -> tuple[bool, str]:
        self.calls.append(("login", registry, username, token))
        if self.login_ok:
            return True, f"Authenticated with {registry}"
        return False, "unauthorized: authentication required"

    def pull(self, reference: str) -> tuple[bool, str]:
        self.calls.append(("pull", reference))
        if self.pull_ok:
            return True, f"Image pulled: {reference}"
        return False, f"manifest for {reference} not found"

    def start(self) -> tuple[bool, str]:
        self.calls.append(("start",))
        if self.start_ok:
            return True, "Stack started successfully"
        return False, "port is already allocated"

    def status(self, service: str) -> ServiceStatus:
        self.calls.append(("status", service))
        if self.statuses:
            return self.statuses.pop(0)
        return ServiceStatus.RUNNING

    def recent_logs(self, service: str | None, lines: int) -> list[str]:
        self.calls.append(("logs", service, lines))
        return self.log_lines[-lines:]

    def called(self, name: str) -> list[tuple[Any, ...]]:
        return [c for c in self.calls if c[0] == name]


# =============================================================================
# Health poller
# =============================================================================


class ScriptedPoller(HealthPoller):
    """HealthPoller whose HTTP probe replays errors, then succeeds.

    ``errors`` holds one entry per attempt: an error string for a failed
    probe or None for success. Attempts past the script fail.
    """

    def __init__(self, errors: list[str | None], max_attempts: int = 30):
        super().__init__(max_attempts=max_attempts, interval_seconds=0)
        self.errors = list(errors)
        self.probes = 0

    async def probe(self, url: str) -> str | None:
        self.probes += 1
        if self.errors:
            return self.errors.pop(0)
        return "Connection refused"


# =============================================================================
# Fixtures
# =============================================================================


FRESH_ANSWERS = {
    "LICENSE_KEY": ["eyJhbGciOiJIUzI1NiJ9.license"],
    "DB_HOST": ["db.internal"],
    "DB_PORT": [""],
    "DB_USERNAME": ["strata"],
    "DB_PASSWORD": ["s3cret"],
    "PORT": [""],
}


@pytest.fixture
def install_dir(tmp_path: Path) -> Path:
    return tmp_path / "strata"


@pytest.fixture
def context(install_dir: Path) -> InstallContext:
    """Install context rooted in a temp dir, no confirmation, no poll delay."""
    return InstallContext(install_dir=install_dir, interval_seconds=0, assume_yes=True)


@pytest.fixture
def fake_driver() -> FakeDriver:
    return FakeDriver()


@pytest.fixture
def fresh_answers() -> dict[str, list[str]]:
    return {key: list(values) for key, values in FRESH_ANSWERS.items()}


@pytest.fixture
def make_prompter() -> type[ScriptedPrompter]:
    """Factory fixture: make_prompter(answers, confirm=True)."""
    return ScriptedPrompter


@pytest.fixture
def make_poller() -> type[ScriptedPoller]:
    """Factory fixture: make_poller(errors, max_attempts=30)."""
    return ScriptedPoller
