"""Unit tests for registry authentication."""

from __future__ import annotations

import pytest

from strata_installer.errors import AuthenticationFailure
from strata_installer.provision import RegistryAuthenticator


class TestRegistryAuthenticator:
    """Tests for RegistryAuthenticator."""

    def test_existing_credentials_skip_login(self, context, fake_driver, make_prompter):
        """Test that a working probe means no prompt and no login."""
        prompter = make_prompter()

        assert RegistryAuthenticator(context, fake_driver, prompter).authenticate() is False
        assert fake_driver.called("probe") == [("probe", "ghcr.io/stratasite/strata:latest")]
        assert fake_driver.called("login") == []
        assert prompter.asked == []

    def test_login_with_token(self, context, fake_driver, make_prompter):
        """Test that a failed probe leads to a token prompt and login."""
        fake_driver.probe_ok = False
        prompter = make_prompter({"REGISTRY_TOKEN": ["ghp_token"]})

        assert RegistryAuthenticator(context, fake_driver, prompter).authenticate() is True
        assert fake_driver.called("login") == [
            ("login", "ghcr.io", "strata-customer", "ghp_token")
        ]

    def test_empty_token_reprompted(self, context, fake_driver, make_prompter):
        """Test that the token is required."""
        fake_driver.probe_ok = False
        prompter = make_prompter({"REGISTRY_TOKEN": ["", "ghp_token"]})

        RegistryAuthenticator(context, fake_driver, prompter).authenticate()

        assert prompter.notices == ["This field is required."]

    def test_rejected_token(self, context, fake_driver, make_prompter):
        """Test that a rejected login raises AuthenticationFailure."""
        fake_driver.probe_ok = False
        fake_driver.login_ok = False
        prompter = make_prompter({"REGISTRY_TOKEN": ["bad"]})

        with pytest.raises(AuthenticationFailure) as exc_info:
            RegistryAuthenticator(context, fake_driver, prompter).authenticate()

        assert "unauthorized" in exc_info.value.remediation[0]
        assert exc_info.value.exit_code == 1

    def test_token_not_persisted(self, context, fake_driver, make_prompter):
        """Test that the token never reaches the env file."""
        fake_driver.probe_ok = False
        prompter = make_prompter({"REGISTRY_TOKEN": ["ghp_token"]})

        RegistryAuthenticator(context, fake_driver, prompter).authenticate()

        assert not context.env_file.exists()
