"""Path management for strata-installer.

Resolves the install directory and the files the installer manages in it.
"""

import os
from pathlib import Path

# Environment variable that overrides the install directory
INSTALL_DIR_ENV = "STRATA_INSTALL_DIR"

# Install directory name, relative to the current working directory
DEFAULT_INSTALL_DIRNAME = "strata"

# Files managed inside the install directory
ENV_FILENAME = ".env"
COMPOSE_FILENAME = "docker-compose.yml"


def default_install_dir() -> Path:
    """Get the install directory.

    Returns:
        $STRATA_INSTALL_DIR if set, otherwise ./strata under the working directory
    """
    override = os.environ.get(INSTALL_DIR_ENV)
    if override:
        return Path(override).expanduser()
    return Path.cwd() / DEFAULT_INSTALL_DIRNAME


def get_env_file(install_dir: Path) -> Path:
    """Get path to the persisted configuration file.

    Args:
        install_dir: Install directory

    Returns:
        Path to <install_dir>/.env
    """
    return install_dir / ENV_FILENAME


def get_compose_file(install_dir: Path) -> Path:
    """Get path to the compose descriptor.

    Args:
        install_dir: Install directory

    Returns:
        Path to <install_dir>/docker-compose.yml
    """
    return install_dir / COMPOSE_FILENAME


def ensure_install_dir(install_dir: Path) -> Path:
    """Create the install directory if missing.

    No prompts - silent creation. Returns the directory.
    """
    install_dir.mkdir(parents=True, exist_ok=True)
    return install_dir
