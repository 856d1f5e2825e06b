"""CLI main entry point."""

import json
import os
import sys

import click

from .commands import down, install, logs, restart, status
from .config import load_context
from .errors import StoreUnreadable
from .provision import SECRET_KEYS, ConfigStore
from .shared.logging import configure_logging

MASK = "********"


@click.group()
@click.option(
    "--log-level",
    type=click.Choice(["debug", "info", "warning", "error", "critical"]),
    default=lambda: os.environ.get("STRATA_LOG_LEVEL", "warning").lower(),
    help="Log level (default: $STRATA_LOG_LEVEL or warning)",
)
@click.option("--log-file", type=click.Path(dir_okay=False), help="Write logs to a file")
@click.option("--log-json", is_flag=True, help="Emit logs as JSON")
@click.version_option(package_name="strata-installer")
@click.pass_context
def cli(ctx: click.Context, log_level: str, log_file: str | None, log_json: bool) -> None:
    """Strata Enterprise installer."""
    ctx.ensure_object(dict)
    configure_logging(
        log_level, log_file=log_file, json_output=log_json, secret_keys=SECRET_KEYS
    )


cli.add_command(install)
cli.add_command(status)
cli.add_command(logs)
cli.add_command(down)
cli.add_command(restart)


@cli.group()
def config() -> None:
    """Inspect the persisted configuration."""
    pass


@config.command("show")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON")
@click.option("--reveal", is_flag=True, help="Show secret values")
@click.option(
    "--install-dir",
    type=click.Path(file_okay=False),
    default=None,
    help="Install directory (default: $STRATA_INSTALL_DIR or ./strata)",
)
def config_show(json_output: bool, reveal: bool, install_dir: str | None) -> None:
    """Show the values in the install directory's .env."""
    context = load_context(install_dir=install_dir)
    store = ConfigStore(context.env_file)

    if not store.exists():
        click.echo(f"No configuration found at {context.env_file}", err=True)
        click.echo("\nRun: strata-installer install")
        sys.exit(1)

    try:
        values = store.load()
    except StoreUnreadable as e:
        click.echo(f"Error: {e.message}", err=True)
        sys.exit(1)

    if not reveal:
        values = {k: (MASK if k in SECRET_KEYS and v else v) for k, v in values.items()}

    if json_output:
        click.echo(json.dumps({"path": str(context.env_file), "values": values}, indent=2))
        return

    click.echo("Strata Configuration")
    click.echo(f"Source: {context.env_file}\n")
    for key, value in values.items():
        click.echo(f"  {key}={value}")


def main() -> None:
    """Main entry point."""
    cli(obj={})


if __name__ == "__main__":
    main()
