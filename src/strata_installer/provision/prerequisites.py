"""Prerequisite detection for the installer.

Checks that Docker Engine and the Docker Compose v2 plugin are installed
and recent enough.
"""

from __future__ import annotations

import re
import shutil
import subprocess
from dataclasses import dataclass

from ..errors import PrerequisiteMissing

DOCKER_INSTALL_URL = "https://docs.docker.com/get-docker/"
COMPOSE_INSTALL_URL = "https://docs.docker.com/compose/install/"


@dataclass
class DockerInfo:
    """Docker runtime detection result."""

    docker_available: bool
    docker_version: str | None = None
    compose_available: bool = False
    compose_version: str | None = None
    error: str | None = None


def parse_version(version: str | None) -> tuple[int, ...]:
    """Parse a dotted version, ignoring a leading 'v' and any suffix.

    "v2.21.0-desktop.1" -> (2, 21, 0). Unparseable input -> (0,).
    """
    match = re.match(r"v?(\d+(?:\.\d+)*)", (version or "").strip())
    if not match:
        return (0,)
    return tuple(int(part) for part in match.group(1).split("."))


def version_gte(version: str | None, minimum: str) -> bool:
    """Check version >= minimum, padding the shorter tuple with zeros."""
    have, need = parse_version(version), parse_version(minimum)
    width = max(len(have), len(need))
    return have + (0,) * (width - len(have)) >= need + (0,) * (width - len(need))


class DockerDetector:
    """Detect Docker Engine and Compose availability."""

    def detect(self) -> DockerInfo:
        """Check for Docker and Docker Compose."""
        docker_path = shutil.which("docker")
        if not docker_path:
            return DockerInfo(docker_available=False, error="Docker is not installed.")

        try:
            result = subprocess.run(
                ["docker", "version", "--format", "{{.Server.Version}}"],
                capture_output=True,
                text=True,
                timeout=10,
            )
            if result.returncode != 0:
                return DockerInfo(
                    docker_available=False,
                    error=f"Docker not responding: {result.stderr.strip()}",
                )
            docker_version = result.stdout.strip()
        except subprocess.TimeoutExpired:
            return DockerInfo(
                docker_available=False,
                error="Docker not responding (timeout)",
            )

        try:
            result = subprocess.run(
                ["docker", "compose", "version", "--short"],
                capture_output=True,
                text=True,
                timeout=10,
            )
            compose_available = result.returncode == 0
            compose_version = result.stdout.strip().lstrip("v") if compose_available else None
        except subprocess.TimeoutExpired:
            compose_available = False
            compose_version = None

        return DockerInfo(
            docker_available=True,
            docker_version=docker_version,
            compose_available=compose_available,
            compose_version=compose_version,
        )

    def require(self, min_docker: str, min_compose: str) -> DockerInfo:
        """Detect and enforce minimum versions.

        Raises:
            PrerequisiteMissing: If Docker or Compose is missing or too old.
        """
        info = self.detect()

        if not info.docker_available:
            raise PrerequisiteMissing(
                message=info.error or "Docker is not installed.",
                remediation=[f"Install it from {DOCKER_INSTALL_URL} and re-run this installer."],
            )
        if not version_gte(info.docker_version, min_docker):
            raise PrerequisiteMissing(
                message=(
                    f"Docker {info.docker_version} is too old. "
                    f"Strata requires Docker {min_docker}+."
                ),
                remediation=[f"Upgrade at {DOCKER_INSTALL_URL}"],
            )
        if not info.compose_available:
            raise PrerequisiteMissing(
                message="Docker Compose (v2) is not available.",
                remediation=[
                    f"It ships with Docker Desktop, or install the plugin: {COMPOSE_INSTALL_URL}"
                ],
            )
        if not version_gte(info.compose_version, min_compose):
            raise PrerequisiteMissing(
                message=(
                    f"Docker Compose {info.compose_version} is too old. "
                    f"Strata requires Compose {min_compose}+."
                ),
                remediation=[f"Upgrade at {COMPOSE_INSTALL_URL}"],
            )

        return info
