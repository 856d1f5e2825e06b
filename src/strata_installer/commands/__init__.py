"""Click commands for strata-installer."""

from .install import down, install, logs, restart, status

__all__ = ["install", "status", "logs", "down", "restart"]
