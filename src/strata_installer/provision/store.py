"""Persisted configuration store.

The install directory's ``.env`` file is the only state that survives an
install run. It holds newline-delimited ``KEY=VALUE`` pairs with no quoting.
Comments and malformed lines are tolerated: they are skipped for lookups and
written back untouched.
"""

from __future__ import annotations

import os
import re
import tempfile
from pathlib import Path

import structlog

from ..errors import StoreUnreadable

logger = structlog.get_logger(__name__)

_ENTRY_RE = re.compile(r"^([A-Za-z_][A-Za-z0-9_]*)=(.*)$")


class ConfigStore:
    """Ordered key-value store backed by an env file.

    Every write rewrites the whole file immediately, so an interrupted run
    keeps the keys already set.
    """

    def __init__(self, path: Path):
        """Initialize the store.

        Args:
            path: Path to the env file. It does not need to exist yet.
        """
        self.path = path
        self._lines: list[str] = []
        self._index: dict[str, int] = {}
        self._loaded = False

    def exists(self) -> bool:
        return self.path.exists()

    def load(self) -> dict[str, str]:
        """Read persisted pairs from disk.

        Returns:
            Mapping of key to value in file order. Empty if the file is missing.

        Raises:
            StoreUnreadable: If the file exists but cannot be read.
        """
        self._lines = []
        self._index = {}

        if not self.path.exists():
            self._loaded = True
            return {}

        try:
            text = self.path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise StoreUnreadable(
                message=f"Cannot read {self.path}: {e}",
                remediation=[f"Check the file permissions and encoding of {self.path}"],
            ) from e

        self._loaded = True
        skipped = 0
        # Values may hold \x0c, \x85 or \u2028, which str.splitlines treats as breaks
        lines = [line.removesuffix("\r") for line in text.split("\n")]
        if lines and lines[-1] == "":
            lines.pop()
        for position, line in enumerate(lines):
            self._lines.append(line)
            match = _ENTRY_RE.match(line)
            if match is None:
                if line.strip() and not line.lstrip().startswith("#"):
                    skipped += 1
                continue
            # First occurrence wins for lookups
            self._index.setdefault(match.group(1), position)

        if skipped:
            logger.warning("config_store_malformed_lines", path=str(self.path), count=skipped)

        return {key: self._value_at(pos) for key, pos in self._index.items()}

    def keys(self) -> list[str]:
        self._ensure_loaded()
        return list(self._index)

    def has(self, key: str) -> bool:
        """Check whether the key is present at all, even with an empty value."""
        self._ensure_loaded()
        return key in self._index

    def get(self, key: str) -> str | None:
        """Get a value.

        Absent and empty-string values are treated the same.

        Returns:
            The value if present and non-empty, else None.
        """
        self._ensure_loaded()
        position = self._index.get(key)
        if position is None:
            return None
        return self._value_at(position) or None

    def set(self, key: str, value: str) -> None:
        """Set a value and persist the whole file.

        An existing key keeps its position; a new key is appended.

        Raises:
            ValueError: If the key is not a valid env key or the value spans lines.
        """
        if not _ENTRY_RE.match(f"{key}="):
            raise ValueError(f"Invalid configuration key: {key!r}")
        if "\n" in value or "\r" in value:
            raise ValueError(f"Value for {key} must be a single line")

        self._ensure_loaded()
        line = f"{key}={value}"
        position = self._index.get(key)
        if position is None:
            self._index[key] = len(self._lines)
            self._lines.append(line)
        else:
            self._lines[position] = line
            self._drop_duplicates(key, position)

        self._flush()
        logger.debug("config_store_set", key=key, path=str(self.path))

    def set_default_if_absent(self, key: str, value: str) -> bool:
        """Write a value only if the key is not present.

        Returns:
            True if the value was written.
        """
        if self.has(key):
            return False
        self.set(key, value)
        return True

    def _value_at(self, position: int) -> str:
        return self._lines[position].split("=", 1)[1]

    def _ensure_loaded(self) -> None:
        if not self._loaded:
            self.load()

    def _drop_duplicates(self, key: str, keep: int) -> None:
        prefix = f"{key}="
        duplicates = [
            i for i, line in enumerate(self._lines) if i != keep and line.startswith(prefix)
        ]
        if not duplicates:
            return
        for i in reversed(duplicates):
            del self._lines[i]
        self._reindex()

    def _reindex(self) -> None:
        self._index = {}
        for position, line in enumerate(self._lines):
            match = _ENTRY_RE.match(line)
            if match is not None:
                self._index.setdefault(match.group(1), position)

    def _flush(self) -> None:
        """Atomically replace the file with the current lines."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        content = "".join(f"{line}\n" for line in self._lines)

        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=".env.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
            if self.path.exists():
                os.chmod(tmp_name, self.path.stat().st_mode & 0o777)
            else:
                os.chmod(tmp_name, 0o600)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
