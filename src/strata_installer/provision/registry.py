"""Container registry authentication."""

from __future__ import annotations

import structlog

from .. import console
from ..config import InstallContext
from ..errors import AuthenticationFailure
from .driver import DeploymentDriver
from .fields import REGISTRY_TOKEN_FIELD
from .prompts import Prompter, ask_field

logger = structlog.get_logger(__name__)


class RegistryAuthenticator:
    """Log in to the registry only when existing credentials do not work."""

    def __init__(self, context: InstallContext, driver: DeploymentDriver, prompter: Prompter):
        self.context = context
        self.driver = driver
        self.prompter = prompter

    def authenticate(self) -> bool:
        """Ensure the image can be pulled.

        Probes with a quiet pull of the floating tag first. Only on failure is
        the user asked for a token, which goes to ``docker login`` and is not
        persisted by the installer.

        Returns:
            True if a login was performed, False if credentials already worked.

        Raises:
            AuthenticationFailure: If the registry rejects the token.
        """
        if self.driver.probe(self.context.image_reference()):
            logger.info("registry_already_authenticated", registry=self.context.registry)
            console.success(f"Already authenticated with {self.context.registry}")
            return False

        console.hint("You need an access token to pull the Strata image.")
        console.hint("This was provided with your license purchase.")

        token = ask_field(self.prompter, REGISTRY_TOKEN_FIELD)
        ok, msg = self.driver.login(
            self.context.registry, self.context.registry_username, token
        )
        if not ok:
            logger.warning("registry_login_failed", registry=self.context.registry)
            raise AuthenticationFailure(
                remediation=[
                    f"Registry response: {msg}",
                    "Re-run the installer and paste the access token from your purchase email.",
                ]
            )

        logger.info("registry_login", registry=self.context.registry)
        console.success(f"Authenticated with {self.context.registry}")
        return True
