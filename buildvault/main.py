"""CLI entry point for buildvault."""

from pathlib import Path

import click
import structlog

from buildvault.cli.common import build_context
from buildvault.cli.credentials import credentials_group
from buildvault.cli.provision import provision_group
from buildvault.cli.secrets import secrets_group
from buildvault.utils.logging_config import configure_logging

log = structlog.get_logger(__name__)


@click.group()
@click.option("--config", default=None, help="Path to configuration file (default: buildvault.yml)")
@click.option("--log-level", default="WARNING", help="Logging level")
@click.option(
    "--working-dir",
    default=".",
    type=click.Path(file_okay=False, path_type=Path),
    help="Project directory that paths are resolved against",
)
@click.version_option(package_name="buildvault")
@click.pass_context
def cli(ctx: click.Context, config: str | None, log_level: str, working_dir: Path) -> None:
    """buildvault: Credential protection for mobile build automation."""
    configure_logging(log_level)
    ctx.obj = build_context(working_dir, config)
    log.debug("cli_started", command=ctx.invoked_subcommand, working_dir=str(ctx.obj.working_dir))


cli.add_command(secrets_group)
cli.add_command(provision_group)
cli.add_command(credentials_group)


if __name__ == "__main__":
    cli()
