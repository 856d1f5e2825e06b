"""Configurable values collected by the installer.

Only essential settings are prompted. Advanced settings (SMTP, SSL, S3,
log level, etc.) are written with defaults and can be edited in .env later.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class FieldSpec:
    """One value the installer needs in the persisted configuration."""

    key: str
    description: str
    default: str = ""
    required: bool = False
    secret: bool = False

    def __post_init__(self) -> None:
        if not self.key or not self.key.replace("_", "").isalnum() or self.key[0].isdigit():
            raise ValueError(f"Invalid field key: {self.key!r}")
        if self.secret and self.default:
            raise ValueError(f"Secret field {self.key} cannot declare a default")


PROMPTED_FIELDS: tuple[FieldSpec, ...] = (
    FieldSpec(
        "LICENSE_KEY",
        "Your Strata license key (JWT token from purchase email)",
        required=True,
        secret=True,
    ),
    FieldSpec(
        "DB_HOST",
        "PostgreSQL hostname or IP (use host.docker.internal for a DB on this machine)",
        required=True,
    ),
    FieldSpec("DB_PORT", "PostgreSQL port", default="5432", required=True),
    FieldSpec("DB_USERNAME", "PostgreSQL username", required=True),
    FieldSpec("DB_PASSWORD", "PostgreSQL password", required=True, secret=True),
    FieldSpec("PORT", "Port for the Strata web UI", default="3000"),
)

# Written only when missing, never prompted
DEFAULT_SETTINGS: tuple[tuple[str, str], ...] = (
    ("RAILS_LOG_LEVEL", "info"),
    ("APP_HOST", "localhost"),
    ("APP_PROTOCOL", "https"),
    ("ASSUME_SSL", "true"),
    ("FORCE_SSL", "true"),
)

# Registry token is prompted during authentication and never persisted
REGISTRY_TOKEN_FIELD = FieldSpec(
    "REGISTRY_TOKEN",
    "Your container registry access token",
    required=True,
    secret=True,
)

# Keys read back by the sequencer
VERSION_KEY = "STRATA_VERSION"
PORT_KEY = "PORT"

SECRET_KEYS = frozenset(
    f.key for f in (*PROMPTED_FIELDS, REGISTRY_TOKEN_FIELD) if f.secret
)
