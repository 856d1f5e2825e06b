"""Installer run context.

Holds the settings an install run threads through the store, the prompt
collector, the deployment driver and the sequencer. Supports environment
variable overrides and CLI flag precedence.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .shared.paths import INSTALL_DIR_ENV, default_install_dir, get_compose_file, get_env_file

# Default values
DEFAULT_REGISTRY = "ghcr.io"
DEFAULT_IMAGE = "ghcr.io/stratasite/strata"
DEFAULT_REGISTRY_USERNAME = "strata-customer"
DEFAULT_TAG = "latest"
DEFAULT_PORT = "3000"
MAIN_SERVICE = "strata"
HEALTH_PATH = "/up"
DEFAULT_MAX_ATTEMPTS = 30
DEFAULT_INTERVAL_SECONDS = 2.0
MIN_DOCKER_VERSION = "24"
MIN_COMPOSE_VERSION = "2.20"

# Environment variable mappings
ENV_VARS = {
    "install_dir": INSTALL_DIR_ENV,
    "image": "STRATA_IMAGE",
    "registry": "STRATA_REGISTRY",
}


@dataclass
class InstallContext:
    """Settings for one install run."""

    install_dir: Path = field(default_factory=default_install_dir)
    registry: str = DEFAULT_REGISTRY
    image: str = DEFAULT_IMAGE
    registry_username: str = DEFAULT_REGISTRY_USERNAME
    main_service: str = MAIN_SERVICE
    health_path: str = HEALTH_PATH
    default_port: str = DEFAULT_PORT
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    interval_seconds: float = DEFAULT_INTERVAL_SECONDS
    min_docker_version: str = MIN_DOCKER_VERSION
    min_compose_version: str = MIN_COMPOSE_VERSION
    assume_yes: bool = False

    # Track where each value came from
    _sources: dict[str, str] = field(default_factory=dict)

    @property
    def env_file(self) -> Path:
        return get_env_file(self.install_dir)

    @property
    def compose_file(self) -> Path:
        return get_compose_file(self.install_dir)

    @property
    def log_command(self) -> str:
        """Shell command that follows the stack logs."""
        return f"cd {self.install_dir} && docker compose logs -f"

    def image_reference(self, tag: str | None = None) -> str:
        return f"{self.image}:{tag or DEFAULT_TAG}"

    def health_url(self, port: str | None = None) -> str:
        return f"http://localhost:{port or self.default_port}{self.health_path}"

    def get_source(self, key: str) -> str:
        """Get the source of a context value."""
        return self._sources.get(key, "default")


def load_context(**overrides: Any) -> InstallContext:
    """Build the install context.

    Precedence (highest to lowest):
    1. CLI flags (keyword overrides that are not None)
    2. Environment variables
    3. Defaults

    Returns:
        InstallContext with values and sources
    """
    context = InstallContext()
    sources: dict[str, str] = {key: "default" for key in ENV_VARS}

    if os.environ.get(ENV_VARS["install_dir"]):
        sources["install_dir"] = "environment"
    if os.environ.get(ENV_VARS["image"]):
        context.image = os.environ[ENV_VARS["image"]]
        sources["image"] = "environment"
    if os.environ.get(ENV_VARS["registry"]):
        context.registry = os.environ[ENV_VARS["registry"]]
        sources["registry"] = "environment"

    for key, value in overrides.items():
        if value is None:
            continue
        if not hasattr(context, key):
            raise ValueError(f"Unknown install setting: {key}")
        if key == "install_dir":
            value = Path(value).expanduser()
        setattr(context, key, value)
        sources[key] = "flag"

    context._sources = sources
    return context
