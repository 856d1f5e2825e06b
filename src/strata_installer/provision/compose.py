"""Docker Compose descriptor for the Strata stack.

The descriptor is rewritten on every run so upgrades pick up the latest
layout. All configuration belongs in .env; the descriptor only references
it.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from ..config import DEFAULT_IMAGE, MAIN_SERVICE
from ..shared.paths import COMPOSE_FILENAME, ENV_FILENAME

HEADER = (
    "# Strata Enterprise - Docker Compose\n"
    "# Managed by the Strata installer. All configuration belongs in .env.\n\n"
)

STORAGE_VOLUME = "strata_storage"


@dataclass
class ComposeConfig:
    """Configuration for docker-compose generation."""

    output_dir: Path
    image: str = DEFAULT_IMAGE
    main_service: str = MAIN_SERVICE
    jobs_service: str = "jobs"
    container_port: int = 80


class ComposeGenerator:
    """Generate docker-compose.yml."""

    def generate(self, config: ComposeConfig) -> Path:
        """Write docker-compose.yml in the output directory.

        Args:
            config: Configuration for compose generation.

        Returns:
            Path to the generated file.
        """
        config.output_dir.mkdir(parents=True, exist_ok=True)
        compose_file = config.output_dir / COMPOSE_FILENAME

        compose_data = self._build_compose_dict(config)

        with open(compose_file, "w") as f:
            f.write(HEADER)
            yaml.dump(compose_data, f, default_flow_style=False, sort_keys=False)

        return compose_file

    def _build_compose_dict(self, config: ComposeConfig) -> dict[str, Any]:
        """Build the docker-compose structure."""
        image = f"{config.image}:${{STRATA_VERSION:-latest}}"
        services: dict[str, Any] = {
            config.main_service: {
                "image": image,
                "ports": [f"${{PORT:-3000}}:{config.container_port}"],
                **_common_settings(),
            },
            config.jobs_service: {
                "image": image,
                "command": ["./bin/rails", "solid_queue:start"],
                **_common_settings(),
            },
        }

        return {
            "services": services,
            "volumes": {STORAGE_VOLUME: None},
        }


def _common_settings() -> dict[str, Any]:
    # Fresh objects per service so yaml.dump does not emit anchors
    return {
        "env_file": ENV_FILENAME,
        "environment": {"RAILS_ENV": "production"},
        "volumes": [f"{STORAGE_VOLUME}:/rails/storage"],
        "restart": "unless-stopped",
    }
