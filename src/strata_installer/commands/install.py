"""Install command and stack management subcommands.

`strata-installer install` installs Strata or upgrades an existing
installation in place. `status`, `logs`, `down` and `restart` manage the
running stack afterwards.
"""

from __future__ import annotations

import sys

import click
from rich.markup import escape

from .. import console
from ..config import load_context
from ..errors import (
    HealthPollExhausted,
    InstallAborted,
    InstallerError,
    ServiceCrashed,
)
from ..provision import (
    ComposeDriver,
    DeploymentMode,
    DockerDetector,
    ProvisioningResult,
    ProvisioningSequencer,
    TerminalPrompter,
    attach_terminal,
)


@click.command()
@click.option("--yes", "-y", "assume_yes", is_flag=True, help="Skip the confirmation prompt")
@click.option(
    "--install-dir",
    type=click.Path(file_okay=False),
    default=None,
    help="Install directory (default: $STRATA_INSTALL_DIR or ./strata)",
)
@click.option(
    "--max-attempts",
    type=click.IntRange(min=1),
    default=None,
    help="Health check attempts (default: 30)",
)
@click.option(
    "--interval",
    type=click.FloatRange(min=0),
    default=None,
    help="Seconds between health checks (default: 2)",
)
def install(
    assume_yes: bool,
    install_dir: str | None,
    max_attempts: int | None,
    interval: float | None,
):
    """Install or upgrade Strata Enterprise.

    On a fresh install this prompts for the registry token, database
    connection and license key, writes docker-compose.yml and .env, pulls
    the image and starts the containers.

    On re-run (upgrade) the existing .env is kept and only missing keys are
    prompted for; docker-compose.yml is refreshed, the new image is pulled
    and the containers are restarted.

    Examples:

        # Install into ./strata
        strata-installer install

        # Install somewhere else
        STRATA_INSTALL_DIR=/opt/strata strata-installer install
    """
    context = load_context(
        install_dir=install_dir,
        max_attempts=max_attempts,
        interval_seconds=interval,
        assume_yes=assume_yes or None,
    )

    console.banner()

    try:
        attach_terminal()
        sequencer = ProvisioningSequencer(
            context,
            driver=ComposeDriver(context.install_dir),
            prompter=TerminalPrompter(),
            detector=DockerDetector(),
        )
        result = sequencer.run()
    except InstallAborted as e:
        console.info(e.message)
        sys.exit(e.exit_code)
    except InstallerError as e:
        _render_failure(e)
        sys.exit(e.exit_code)

    _render_summary(result, str(context.install_dir), context.log_command)


def _render_failure(error: InstallerError) -> None:
    """Print what failed, why, and what to run next."""
    if isinstance(error, ServiceCrashed):
        console.headline(error.message, "red")
        console.log_block(error.logs)
        console.steps("How to fix:", [escape(line) for line in error.remediation])
        return

    if isinstance(error, HealthPollExhausted):
        console.headline(error.message, "yellow")
        console.log_block(error.logs)
        if error.detail:
            console.console.print(f"  {escape(error.detail)}\n")
        console.steps("Next steps:", [escape(line) for line in error.remediation])
        return

    console.error(escape(error.message))
    if error.detail:
        console.hint(escape(error.detail))
    for line in error.remediation:
        console.hint(escape(line))


def _render_summary(result: ProvisioningResult, install_dir: str, log_command: str) -> None:
    console.console.print()
    console.console.rule(style="green")
    if result.mode is DeploymentMode.UPGRADE:
        console.console.print("  [green]Strata has been upgraded successfully.[/green]")
    else:
        console.console.print("  [green]Strata is running.[/green]\n")
        console.console.print(
            f"  Open [bold]http://localhost:{result.port}[/bold] to create your admin account."
        )
    console.console.print()
    console.console.print(f"  [dim]View logs:[/dim]   {escape(log_command)}")
    stop = f"cd {escape(install_dir)} && docker compose down"
    console.console.print(f"  [dim]Stop:[/dim]        {stop}")
    console.console.print(f"  [dim]Config:[/dim]      {escape(install_dir)}/.env")
    console.console.print("  [dim]Upgrade:[/dim]     re-run this installer")
    console.console.rule(style="green")
    console.console.print()


def _driver() -> ComposeDriver:
    context = load_context()
    if not context.compose_file.exists():
        console.error(f"No Strata installation found at {escape(str(context.install_dir))}")
        console.hint("Run: strata-installer install")
        sys.exit(1)
    return ComposeDriver(context.install_dir)


@click.command()
def status():
    """Show current stack status."""
    running, stopped = _driver().running_services()

    if not running and not stopped:
        click.echo("Stack is not running.")
        return

    if running:
        click.echo("Running services:")
        for svc in running:
            click.echo(f"  ✓ {svc}")
    if stopped:
        click.echo("Stopped services:")
        for svc in stopped:
            click.echo(f"  ✗ {svc}")


@click.command()
@click.option("--follow", "-f", is_flag=True, help="Follow log output")
@click.option("--service", "-s", default=None, help="Show logs for specific service")
@click.option("--tail", default=100, type=int, help="Number of lines")
def logs(follow, service, tail):
    """Show stack logs."""
    driver = _driver()
    if follow:
        sys.exit(driver.follow_logs(service=service, tail=tail))
    for line in driver.recent_logs(service, tail):
        click.echo(line)


@click.command()
@click.option("--volumes", is_flag=True, help="Also remove volumes (data loss!)")
def down(volumes):
    """Stop and remove the Strata containers."""
    driver = _driver()
    if volumes:
        if not click.confirm("This will delete all Strata storage. Continue?"):
            return
    success, msg = driver.down(remove_volumes=volumes)
    if success:
        click.echo("✓ Strata stack stopped.")
    else:
        click.echo(f"✗ {msg}", err=True)
        sys.exit(1)


@click.command()
def restart():
    """Restart the Strata stack."""
    success, msg = _driver().restart()
    if success:
        click.echo("✓ Stack restarted.")
    else:
        click.echo(f"✗ {msg}", err=True)
        sys.exit(1)
