"""Provisioning sequencer for install and upgrade runs.

One run walks a fixed sequence of states:

    INIT -> MODE_DETECT -> AUTHENTICATE -> CONFIGURE_ENV
         -> PROVISIONING -> HEALTH_POLL -> SUCCESS | FAILED

Re-running is always safe. Existing .env values are kept, missing ones are
prompted for, and nothing already written or pulled is rolled back on
failure, so the next run resumes where this one stopped.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

import structlog

from .. import console
from ..config import InstallContext
from ..errors import (
    ArtifactPullFailure,
    ConfigurationInvalid,
    HealthPollExhausted,
    InstallAborted,
    InstallerError,
    ServiceCrashed,
    ServiceStartFailure,
)
from ..shared.paths import ensure_install_dir
from .compose import ComposeConfig, ComposeGenerator
from .driver import ComposeDriver, DeploymentDriver
from .fields import DEFAULT_SETTINGS, PORT_KEY, PROMPTED_FIELDS, VERSION_KEY, FieldSpec
from .health import HealthCheckResult, HealthPoller, ReadinessOutcome
from .prerequisites import DockerDetector
from .prompts import PromptCollector, Prompter, TerminalPrompter
from .registry import RegistryAuthenticator
from .store import ConfigStore

logger = structlog.get_logger(__name__)

CRASH_LOG_LINES = 20
SLOW_START_LOG_LINES = 15


class DeploymentMode(Enum):
    """Whether this run creates or upgrades an installation."""

    FRESH_INSTALL = "fresh_install"
    UPGRADE = "upgrade"


class SequencerState(Enum):
    """States of a provisioning run."""

    INIT = "init"
    MODE_DETECT = "mode_detect"
    AUTHENTICATE = "authenticate"
    CONFIGURE_ENV = "configure_env"
    PROVISIONING = "provisioning"
    HEALTH_POLL = "health_poll"
    SUCCESS = "success"
    FAILED = "failed"


@dataclass
class ProvisioningResult:
    """Result of a successful provisioning run."""

    mode: DeploymentMode
    state: SequencerState
    configured: bool
    reference: str
    port: str
    health: HealthCheckResult


class ProvisioningSequencer:
    """Drive one install or upgrade run."""

    def __init__(
        self,
        context: InstallContext,
        driver: DeploymentDriver | None = None,
        prompter: Prompter | None = None,
        store: ConfigStore | None = None,
        poller: HealthPoller | None = None,
        detector: DockerDetector | None = None,
        fields: tuple[FieldSpec, ...] = PROMPTED_FIELDS,
        defaults: tuple[tuple[str, str], ...] = DEFAULT_SETTINGS,
    ):
        """Initialize sequencer.

        Args:
            context: Settings for this run.
            driver: Deployment driver (default: docker compose in the install dir).
            prompter: Source of interactive answers (default: the terminal).
            store: Persisted configuration (default: <install_dir>/.env).
            poller: Readiness poller (default: built from the context budget).
            detector: Prerequisite detector. Skipped if None.
            fields: Prompted fields, in order.
            defaults: Default-only settings, in order.
        """
        self.context = context
        self.driver = driver or ComposeDriver(context.install_dir)
        self.prompter = prompter or TerminalPrompter()
        self.store = store or ConfigStore(context.env_file)
        self.poller = poller or HealthPoller(
            max_attempts=context.max_attempts,
            interval_seconds=context.interval_seconds,
        )
        self.detector = detector
        self.fields = fields
        self.defaults = defaults

        self.state = SequencerState.INIT
        self.mode: DeploymentMode | None = None

    def _transition(self, state: SequencerState) -> None:
        logger.debug("sequencer_transition", source=self.state.value, target=state.value)
        self.state = state

    def run(self) -> ProvisioningResult:
        """Execute the full sequence.

        Returns:
            ProvisioningResult on success.

        Raises:
            InstallerError: On any terminal failure or user abort. The state is
                left at FAILED (or at the state where the user aborted).
        """
        try:
            if self.detector is not None:
                console.info("Checking prerequisites...")
                docker = self.detector.require(
                    self.context.min_docker_version, self.context.min_compose_version
                )
                console.success(f"Docker {docker.docker_version}")
                console.success(f"Docker Compose {docker.compose_version}")

            self._transition(SequencerState.MODE_DETECT)
            self.mode = self.detect_mode()
            self.confirm()
            ensure_install_dir(self.context.install_dir)
            self.store.load()

            self._transition(SequencerState.AUTHENTICATE)
            console.console.print()
            console.info("Registry authentication")
            RegistryAuthenticator(self.context, self.driver, self.prompter).authenticate()

            self._transition(SequencerState.CONFIGURE_ENV)
            configured = self.configure_env()

            self._transition(SequencerState.PROVISIONING)
            reference = self.provision()

            self._transition(SequencerState.HEALTH_POLL)
            port = self.check_port()
            health = self.poll_health(port)
        except InstallAborted:
            raise
        except InstallerError as e:
            logger.error("provisioning_failed", state=self.state.value, error=e.message)
            self._transition(SequencerState.FAILED)
            raise

        self._transition(SequencerState.SUCCESS)
        return ProvisioningResult(
            mode=self.mode,
            state=self.state,
            configured=configured,
            reference=reference,
            port=port,
            health=health,
        )

    def detect_mode(self) -> DeploymentMode:
        """Upgrade iff persisted configuration already exists."""
        if self.store.exists():
            mode = DeploymentMode.UPGRADE
        else:
            mode = DeploymentMode.FRESH_INSTALL
        logger.info("deployment_mode", mode=mode.value, install_dir=str(self.context.install_dir))
        return mode

    def confirm(self) -> None:
        """Ask before touching the install directory.

        Raises:
            InstallAborted: If the user declines.
        """
        install_dir = self.context.install_dir
        console.console.print()
        if self.mode is DeploymentMode.UPGRADE:
            console.info(f"Existing Strata installation detected at [bold]{install_dir}[/bold]")
            console.info("This will upgrade your installation (your .env is preserved).")
            question = "Continue with upgrade?"
        else:
            console.info(f"Installing Strata to [bold]{install_dir}[/bold]")
            question = "Continue?"
        console.console.print()

        if self.context.assume_yes:
            return
        if not self.prompter.confirm(question, default=True):
            raise InstallAborted()

    def configure_env(self) -> bool:
        """Write the compose descriptor and fill in .env.

        Returns:
            True if any value was newly prompted for.
        """
        console.info("Writing docker-compose.yml...")
        ComposeGenerator().generate(
            ComposeConfig(
                output_dir=self.context.install_dir,
                image=self.context.image,
                main_service=self.context.main_service,
            )
        )
        console.success("docker-compose.yml written")

        self.context.env_file.touch(mode=0o600, exist_ok=True)

        console.console.print()
        console.info("Database & license configuration")
        console.hint("Press Enter to accept the default shown in \\[brackets].")

        prompted = PromptCollector(self.store, self.prompter).collect(self.fields)

        for key, value in self.defaults:
            if self.store.set_default_if_absent(key, value):
                logger.debug("default_applied", key=key)

        self.check_port()

        if prompted:
            console.console.print()
            console.success("Configuration saved to .env")
            console.hint("Advanced settings (SMTP, SSL, S3 storage) can be configured later in:")
            console.hint(str(self.context.env_file))
        else:
            console.success("All configuration values are set")

        return prompted

    def check_port(self) -> str:
        """Return the web UI port, rejecting values docker and the poll cannot use.

        Raises:
            ConfigurationInvalid: If PORT is not an integer between 1 and 65535.
        """
        port = self.store.get(PORT_KEY) or self.context.default_port
        if not (port.isascii() and port.isdigit() and 1 <= int(port) <= 65535):
            raise ConfigurationInvalid(
                message=f"Invalid {PORT_KEY} in .env: {port!r}",
                detail="PORT must be a whole number between 1 and 65535",
                remediation=[
                    f"Edit the config:  nano {self.context.env_file}",
                    "Then run the installer again.",
                ],
            )
        return port

    def provision(self) -> str:
        """Pull the configured image and start the stack.

        Returns:
            The image reference that was pulled.

        Raises:
            ArtifactPullFailure: If the pull fails.
            ServiceStartFailure: If docker compose up fails.
        """
        reference = self.context.image_reference(self.store.get(VERSION_KEY))
        log_hint = f"To see what went wrong: {self.context.log_command}"

        console.console.print()
        console.info("Pulling Strata image...")
        ok, msg = self.driver.pull(reference)
        if not ok:
            raise ArtifactPullFailure(detail=msg, remediation=[log_hint])
        console.success(f"Image pulled: {reference}")

        console.console.print()
        if self.mode is DeploymentMode.UPGRADE:
            console.info("Restarting Strata with the new version...")
        else:
            console.info("Starting Strata...")
        ok, msg = self.driver.start()
        if not ok:
            raise ServiceStartFailure(detail=msg, remediation=[log_hint])

        return reference

    def poll_health(self, port: str) -> HealthCheckResult:
        """Wait for the main service to answer its health endpoint.

        Raises:
            ServiceCrashed: If the service exits or dies during the poll.
            HealthPollExhausted: If every attempt fails without a crash.
        """
        service = self.context.main_service
        url = self.context.health_url(port)

        with console.console.status("Waiting for Strata to be ready..."):
            result = self.poller.wait_for_ready_sync(
                url, status_check=lambda: self.driver.status(service)
            )

        if result.outcome is ReadinessOutcome.CRASHED:
            install_dir = self.context.install_dir
            raise ServiceCrashed(
                detail=result.error,
                logs=self.driver.recent_logs(service, CRASH_LOG_LINES),
                remediation=[
                    f"1. Edit the config:  nano {install_dir}/.env",
                    "   (check DB_HOST, DB_PORT, DB_USERNAME, DB_PASSWORD)",
                    f"2. Restart:          cd {install_dir} && docker compose up -d",
                    f"3. Watch logs:       {self.context.log_command}",
                ],
            )

        if result.outcome is ReadinessOutcome.TIMED_OUT:
            raise HealthPollExhausted(
                detail=(
                    "The container is running but hasn't passed the health check yet. "
                    "This can be normal on first run (database setup takes time)."
                ),
                logs=self.driver.recent_logs(service, SLOW_START_LOG_LINES),
                remediation=[
                    f"Watch progress:  {self.context.log_command}",
                    f"Check health:    curl {url}",
                ],
            )

        return result
