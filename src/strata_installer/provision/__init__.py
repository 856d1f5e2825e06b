"""Provisioning package for installing and upgrading Strata Enterprise.

This package provides the `strata-installer install` flow which:
1. Checks Docker/Compose prerequisites
2. Detects a fresh install or an upgrade
3. Authenticates with the container registry
4. Writes docker-compose.yml and fills in missing .env values
5. Pulls the image and starts the stack
6. Waits for the health endpoint
"""

from .compose import ComposeConfig, ComposeGenerator
from .driver import ComposeDriver, DeploymentDriver, ServiceStatus
from .fields import DEFAULT_SETTINGS, PROMPTED_FIELDS, SECRET_KEYS, FieldSpec
from .health import HealthCheckResult, HealthPoller, ReadinessOutcome
from .prerequisites import DockerDetector, DockerInfo, version_gte
from .prompts import PromptCollector, Prompter, TerminalPrompter, ask_field, attach_terminal
from .registry import RegistryAuthenticator
from .sequencer import (
    DeploymentMode,
    ProvisioningResult,
    ProvisioningSequencer,
    SequencerState,
)
from .store import ConfigStore

__all__ = [
    # Configuration store
    "ConfigStore",
    # Fields
    "FieldSpec",
    "PROMPTED_FIELDS",
    "DEFAULT_SETTINGS",
    "SECRET_KEYS",
    # Prompting
    "Prompter",
    "PromptCollector",
    "TerminalPrompter",
    "attach_terminal",
    "ask_field",
    # Deployment
    "DeploymentDriver",
    "ComposeDriver",
    "ServiceStatus",
    "ComposeConfig",
    "ComposeGenerator",
    # Prerequisites
    "DockerDetector",
    "DockerInfo",
    "version_gte",
    # Registry
    "RegistryAuthenticator",
    # Health polling
    "HealthPoller",
    "HealthCheckResult",
    "ReadinessOutcome",
    # Sequencer
    "DeploymentMode",
    "ProvisioningResult",
    "ProvisioningSequencer",
    "SequencerState",
]
