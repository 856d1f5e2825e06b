"""Scenario tests for strata-installer.

These tests walk full install and upgrade runs with the container runtime
and health endpoint replaced by fakes. The .env and docker-compose.yml are
real files in a temp directory.
"""
