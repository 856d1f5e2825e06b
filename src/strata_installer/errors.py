"""Installer error taxonomy.

Every terminal failure of an install run is an InstallerError subclass.
Errors carry the user-facing message, the underlying cause where known,
the remediation lines to print and the process exit code. They propagate
to the CLI layer, which renders them and exits.
"""

from dataclasses import dataclass, field

# Process exit codes
EXIT_OK = 0
EXIT_FAILURE = 1


@dataclass
class InstallerError(Exception):
    """Base error class for installer failures."""

    message: str
    detail: str | None = None
    remediation: list[str] = field(default_factory=list)
    exit_code: int = EXIT_FAILURE

    def __str__(self) -> str:
        return self.message


@dataclass
class PrerequisiteMissing(InstallerError):
    """Docker or Docker Compose missing or below the minimum version."""

    message: str = "A required dependency is missing"


@dataclass
class StoreUnreadable(InstallerError):
    """The persisted configuration file exists but cannot be read."""

    message: str = "Configuration file cannot be read"


@dataclass
class ConfigurationInvalid(InstallerError):
    """A persisted setting has a value the installer cannot use."""

    message: str = "Invalid value in configuration"


@dataclass
class InputUnavailable(InstallerError):
    """No interactive input stream, or it was closed mid-prompt."""

    message: str = "No interactive terminal available to answer prompts"


@dataclass
class InstallAborted(InstallerError):
    """The user declined the confirmation prompt."""

    message: str = "Aborted."
    exit_code: int = EXIT_OK


@dataclass
class AuthenticationFailure(InstallerError):
    """Registry login rejected the supplied token."""

    message: str = "Authentication failed. Check your access token and try again."


@dataclass
class ArtifactPullFailure(InstallerError):
    """The versioned image could not be pulled."""

    message: str = "Failed to pull image. Check your network and registry access."


@dataclass
class ServiceStartFailure(InstallerError):
    """docker compose up failed."""

    message: str = "Failed to start containers."


@dataclass
class ServiceCrashed(InstallerError):
    """The main service exited or died during the readiness poll."""

    message: str = "Strata failed to start."
    logs: list[str] = field(default_factory=list)


@dataclass
class HealthPollExhausted(InstallerError):
    """The readiness poll ran out of attempts without a crash."""

    message: str = "Strata is still starting up."
    logs: list[str] = field(default_factory=list)
