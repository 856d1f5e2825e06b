"""Logging configuration for strata-installer.

Log records go to stderr (or ``--log-file``) as console lines, or as JSON
with ``--log-json``. Values of secret settings are masked before any
renderer sees them, so a license key, database password or registry token
never reaches a log line even when a caller passes one by mistake.
"""

import logging
import sys
from collections.abc import Iterable, MutableMapping
from pathlib import Path
from typing import Any

import structlog

REDACTED = "********"

# Request logging at INFO would log every health poll; shown only at debug
_QUIET_LOGGERS = ("httpx", "httpcore")


class SecretRedactor:
    """structlog processor that masks the values of secret keys.

    Keys are matched case-insensitively against event dict field names.
    Empty values are left alone so a missing secret is still visible.
    """

    def __init__(self, keys: Iterable[str]):
        self.keys = frozenset(k.lower() for k in keys)

    def __call__(
        self, logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
    ) -> MutableMapping[str, Any]:
        for name, value in event_dict.items():
            if name.lower() in self.keys and value:
                event_dict[name] = REDACTED
        return event_dict


def configure_logging(
    level: str = "warning",
    log_file: str | Path | None = None,
    json_output: bool = False,
    secret_keys: Iterable[str] = (),
) -> None:
    """Configure logging for the installer.

    Called once per CLI invocation, before any command runs.

    Args:
        level: Log level (debug, info, warning, error, critical)
        log_file: Optional path to log file. Replaces stderr output.
        json_output: If True, output JSON format
        secret_keys: Setting names whose values are masked in every record
    """
    log_level = getattr(logging, level.upper(), logging.WARNING)

    if log_file:
        handler: logging.Handler = logging.FileHandler(str(log_file))
    else:
        handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(log_level)

    logging.basicConfig(
        level=log_level,
        handlers=[handler],
        format="%(message)s",
        force=True,
    )
    quiet_level = log_level if log_level == logging.DEBUG else max(log_level, logging.WARNING)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(quiet_level)

    processors: list[structlog.types.Processor] = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        SecretRedactor(secret_keys),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if json_output:
        processors.append(structlog.processors.JSONRenderer())
    else:
        colors = not log_file and sys.stderr.isatty()
        processors.append(structlog.dev.ConsoleRenderer(colors=colors))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
