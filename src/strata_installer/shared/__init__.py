"""Shared modules for strata-installer.

This module provides functionality used by every installer command:
- Install directory and managed file paths
- Logging configuration
"""

from .logging import configure_logging
from .paths import (
    COMPOSE_FILENAME,
    ENV_FILENAME,
    INSTALL_DIR_ENV,
    default_install_dir,
    ensure_install_dir,
    get_compose_file,
    get_env_file,
)

__all__ = [
    # Paths
    "INSTALL_DIR_ENV",
    "ENV_FILENAME",
    "COMPOSE_FILENAME",
    "default_install_dir",
    "ensure_install_dir",
    "get_env_file",
    "get_compose_file",
    # Logging
    "configure_logging",
]
