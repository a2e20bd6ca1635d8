"""Shared state and error display for CLI commands."""

import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import NoReturn

import click
import structlog

from buildvault.config import DEFAULT_CONFIG_FILE, BuildVaultSettings
from buildvault.credentials import CredentialResolver, KeyringBackend
from buildvault.exceptions import BuildVaultError

log = structlog.get_logger(__name__)


@dataclass
class CliContext:
    """Per-invocation state passed to every command through ``ctx.obj``.

    Settings are loaded on first use so commands that work without a
    configuration file (``secrets validate``, ``credentials test``) never
    require one.
    """

    working_dir: Path
    config_path: Path
    _settings: BuildVaultSettings | None = field(default=None, init=False, repr=False)

    @property
    def settings(self) -> BuildVaultSettings:
        """Loaded settings.

        Raises:
            ConfigurationError: If the file is missing or invalid
        """
        if self._settings is None:
            self._settings = BuildVaultSettings.from_yaml(self.config_path)
        return self._settings

    def optional_settings(self) -> BuildVaultSettings | None:
        """Settings if a configuration file exists, otherwise None."""
        if self._settings is None and not self.config_path.exists():
            return None
        return self.settings

    def resolver(self, interactive: bool = True) -> CredentialResolver:
        return CredentialResolver(
            app_name=self.settings.app_name,
            store=KeyringBackend(),
            interactive=interactive,
        )


def build_context(working_dir: Path, config: str | None) -> CliContext:
    """Resolve the working directory and the configuration path inside it."""
    root = working_dir.expanduser().resolve()
    config_path = Path(config).expanduser() if config else Path(DEFAULT_CONFIG_FILE)
    if not config_path.is_absolute():
        config_path = root / config_path
    return CliContext(working_dir=root, config_path=config_path)


def fail(error: BuildVaultError) -> NoReturn:
    """Print an error with its suggestion and exit with status 1."""
    click.echo(click.style(f"Error: {error.message}", fg="red"), err=True)
    if error.suggestion:
        click.echo(click.style(f"Suggestion: {error.suggestion}", fg="yellow"), err=True)
    log.debug("command_failed", error_type=type(error).__name__, exc_info=True)
    sys.exit(1)


def mask(value: str) -> str:
    """Mask a credential for display, keeping at most four characters at each end."""
    if len(value) > 8:
        return value[:4] + "*" * (len(value) - 8) + value[-4:]
    return "*" * len(value)
