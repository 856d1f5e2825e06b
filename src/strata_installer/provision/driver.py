"""Deployment driver for the Strata stack.

Wraps image pull, registry login, docker compose lifecycle, service status
and logs, so the sequencer does not depend on a specific container runtime.
"""

from __future__ import annotations

import json
import subprocess
from enum import Enum
from pathlib import Path
from typing import Protocol

import structlog

logger = structlog.get_logger(__name__)

DOCKER_NOT_FOUND = "Docker not found. Is Docker installed?"


class ServiceStatus(Enum):
    """Point-in-time state of one compose service."""

    RUNNING = "running"
    EXITED = "exited"
    DEAD = "dead"
    RESTARTING = "restarting"  # Process exited, restart policy is cycling it
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: str | None) -> ServiceStatus:
        try:
            return cls((value or "").strip().lower())
        except ValueError:
            return cls.UNKNOWN

    @property
    def crashed(self) -> bool:
        return self in (ServiceStatus.EXITED, ServiceStatus.DEAD, ServiceStatus.RESTARTING)


class DeploymentDriver(Protocol):
    """What the sequencer needs from a container runtime."""

    def probe(self, reference: str) -> bool: ...

    def login(self, registry: str, username: str, token: str) -> tuple[bool, str]: ...

    def pull(self, reference: str) -> tuple[bool, str]: ...

    def start(self) -> tuple[bool, str]: ...

    def status(self, service: str) -> ServiceStatus: ...

    def recent_logs(self, service: str | None, lines: int) -> list[str]: ...


class ComposeDriver:
    """Drive the stack with the docker CLI and docker compose."""

    def __init__(self, compose_dir: Path):
        """Initialize driver.

        Args:
            compose_dir: Directory containing docker-compose.yml and .env.
        """
        self.compose_dir = compose_dir
        self.compose_file = compose_dir / "docker-compose.yml"

    def _compose(self, *args: str) -> list[str]:
        return ["docker", "compose", "-f", str(self.compose_file), *args]

    def probe(self, reference: str) -> bool:
        """Check registry access with a quiet pull.

        Returns:
            True if the image can be pulled with the current credentials.
        """
        try:
            result = subprocess.run(
                ["docker", "pull", "--quiet", reference],
                capture_output=True,
                text=True,
            )
        except FileNotFoundError:
            return False
        logger.debug("registry_probe", reference=reference, returncode=result.returncode)
        return result.returncode == 0

    def login(self, registry: str, username: str, token: str) -> tuple[bool, str]:
        """Log in to the registry, passing the token on stdin.

        Returns:
            Tuple of (success, message).
        """
        try:
            result = subprocess.run(
                ["docker", "login", registry, "-u", username, "--password-stdin"],
                input=token,
                capture_output=True,
                text=True,
            )
        except FileNotFoundError:
            return False, DOCKER_NOT_FOUND

        if result.returncode != 0:
            return False, result.stderr.strip() or "docker login failed"

        return True, f"Authenticated with {registry}"

    def pull(self, reference: str) -> tuple[bool, str]:
        """Pull a versioned image.

        Output is streamed to the terminal so the user sees progress.

        Returns:
            Tuple of (success, message).
        """
        try:
            result = subprocess.run(
                ["docker", "pull", reference],
                stderr=subprocess.PIPE,
                text=True,
            )
        except FileNotFoundError:
            return False, DOCKER_NOT_FOUND

        if result.returncode != 0:
            return False, result.stderr.strip() or f"docker pull {reference} failed"

        return True, f"Image pulled: {reference}"

    def start(self) -> tuple[bool, str]:
        """Start the stack in detached mode.

        Returns:
            Tuple of (success, message).
        """
        if not self.compose_file.exists():
            return False, f"No {self.compose_file.name} found in {self.compose_dir}"

        try:
            result = subprocess.run(
                self._compose("up", "-d"),
                cwd=self.compose_dir,
                stderr=subprocess.PIPE,
                text=True,
            )
        except FileNotFoundError:
            return False, DOCKER_NOT_FOUND

        if result.returncode != 0:
            return False, result.stderr.strip() or "docker compose up failed"

        return True, "Stack started successfully"

    def status(self, service: str) -> ServiceStatus:
        """Query the state of one service.

        Returns:
            ServiceStatus; UNKNOWN when the service or docker cannot be queried.
        """
        try:
            result = subprocess.run(
                self._compose("ps", "--all", "--format", "json", service),
                cwd=self.compose_dir,
                capture_output=True,
                text=True,
            )
        except FileNotFoundError:
            return ServiceStatus.UNKNOWN

        if result.returncode != 0:
            return ServiceStatus.UNKNOWN

        for entry in _parse_ps_output(result.stdout):
            if entry.get("Service", entry.get("Name")) == service:
                return ServiceStatus.parse(entry.get("State"))

        return ServiceStatus.UNKNOWN

    def recent_logs(self, service: str | None, lines: int) -> list[str]:
        """Get the last lines of a service's logs (all services if None). Diagnostic only."""
        args = self._compose("logs", "--no-color", "--tail", str(lines))
        if service:
            args.append(service)

        try:
            result = subprocess.run(
                args,
                cwd=self.compose_dir,
                capture_output=True,
                text=True,
            )
        except FileNotFoundError:
            return []

        return (result.stdout or "").splitlines()

    def follow_logs(self, service: str | None = None, tail: int | None = None) -> int:
        """Stream logs to the terminal until interrupted.

        Returns:
            Exit code of docker compose logs.
        """
        args = self._compose("logs", "-f")
        if tail:
            args.extend(["--tail", str(tail)])
        if service:
            args.append(service)

        try:
            return subprocess.run(args, cwd=self.compose_dir).returncode
        except FileNotFoundError:
            return 1

    def running_services(self) -> tuple[list[str], list[str]]:
        """List running and stopped services.

        Returns:
            Tuple of (running, stopped) service names.
        """
        try:
            result = subprocess.run(
                self._compose("ps", "--all", "--format", "json"),
                cwd=self.compose_dir,
                capture_output=True,
                text=True,
            )
        except FileNotFoundError:
            return [], []

        if result.returncode != 0:
            return [], []

        entries = _parse_ps_output(result.stdout)
        running, stopped = [], []
        for e in entries:
            name = e.get("Service", e.get("Name", "unknown"))
            (running if e.get("State") == "running" else stopped).append(name)
        return running, stopped

    def down(self, remove_volumes: bool = False) -> tuple[bool, str]:
        """Stop stack.

        Args:
            remove_volumes: Whether to remove volumes.

        Returns:
            Tuple of (success, message).
        """
        if not self.compose_file.exists():
            return False, f"No {self.compose_file.name} found in {self.compose_dir}"

        args = self._compose("down")
        if remove_volumes:
            args.append("-v")

        try:
            result = subprocess.run(args, cwd=self.compose_dir, capture_output=True, text=True)
        except FileNotFoundError:
            return False, DOCKER_NOT_FOUND

        if result.returncode != 0:
            return False, f"Failed to stop stack: {result.stderr.strip()}"

        return True, "Stack stopped successfully"

    def restart(self) -> tuple[bool, str]:
        """Restart stack.

        Returns:
            Tuple of (success, message).
        """
        success, msg = self.down()
        if not success:
            return False, f"Failed to stop: {msg}"

        return self.start()


def _parse_ps_output(output: str) -> list[dict]:
    """Parse ``docker compose ps --format json``.

    Older compose releases print one JSON array, newer ones one object per line.
    """
    entries: list[dict] = []
    for line in output.splitlines():
        line = line.strip()
        if not line:
            continue
        try:
            parsed = json.loads(line)
        except json.JSONDecodeError:
            continue
        if isinstance(parsed, list):
            entries.extend(p for p in parsed if isinstance(p, dict))
        elif isinstance(parsed, dict):
            entries.append(parsed)
    return entries
