"""CLI commands for the encrypted provisioning profile archive.

The archive passphrase is resolved from ``PROVISION_PASSWORD_<SCOPE>``,
``PROVISION_PASSWORD``, the OS keyring, or an interactive prompt. The scope
defaults to ``default`` and only matters when one project keeps several
archives with different passphrases.

Example:
    Typical CI flow::

        $ export PROVISION_PASSWORD=...
        $ buildvault provision decrypt
        $ buildvault provision install
        $ buildvault provision cleanup
"""

from collections.abc import Callable
from typing import TypeVar

import click

from buildvault.credentials import CredentialKind
from buildvault.exceptions import BuildVaultError
from buildvault.provision import ProvisionService

from .common import CliContext, fail

T = TypeVar("T")


def _service(obj: CliContext) -> ProvisionService:
    return ProvisionService(obj.working_dir, obj.settings.require_provision())


def _with_passphrase(obj: CliContext, scope: str, operation: Callable[[str], T]) -> T:
    """Resolve the passphrase, run the operation, then offer to save a prompted one."""
    resolver = obj.resolver()
    credential = resolver.resolve(CredentialKind.ARCHIVE_PASSPHRASE, scope)
    result = operation(credential.value)
    resolver.offer_to_save(credential)
    return result


@click.group(name="provision")
@click.option("--scope", default="default", show_default=True, help="Passphrase scope")
@click.pass_context
def provision_group(ctx: click.Context, scope: str) -> None:
    """Manage encrypted provisioning profiles.

    Examples:

        # Encrypt provision/source/*.mobileprovision
        buildvault provision encrypt

        # Show archive contents (decrypts in memory)
        buildvault provision list
    """
    ctx.meta["provision_scope"] = scope


@provision_group.command(name="encrypt")
@click.option("--source", help="Directory with profiles (defaults to provision.source_path)")
@click.option("--dry-run", is_flag=True, help="Show what would be archived without writing")
@click.pass_context
def encrypt(ctx: click.Context, source: str | None, dry_run: bool) -> None:
    """Encrypt source profiles into the archive."""
    obj: CliContext = ctx.obj
    try:
        service = _service(obj)
        if dry_run:
            names = service.find_profiles(service.source_path(source))
            click.echo(f"Would encrypt {len(names)} profile(s) into {service.config.archive_path}:")
            for name in names:
                click.echo(f"  - {name}")
            return

        result = _with_passphrase(
            obj, ctx.meta["provision_scope"], lambda passphrase: service.encrypt_profiles(passphrase, source)
        )
        click.echo(click.style(f"Encrypted {result.profile_count} profile(s)", fg="green"))
        for name in result.profile_names:
            click.echo(f"  - {name}")
        click.echo(f"Archive: {result.archive_path} ({result.archive_size} bytes)")

    except BuildVaultError as e:
        fail(e)


@provision_group.command(name="decrypt")
@click.option("--dry-run", is_flag=True, help="Show what would be extracted without writing")
@click.pass_context
def decrypt(ctx: click.Context, dry_run: bool) -> None:
    """Decrypt the archive into provision.extract_path."""
    obj: CliContext = ctx.obj
    try:
        service = _service(obj)
        scope = ctx.meta["provision_scope"]
        if dry_run:
            names = _with_passphrase(obj, scope, service.list_profiles)
            click.echo(f"Would extract {len(names)} profile(s) to {service.config.extract_path}:")
            for name in names:
                click.echo(f"  - {name}")
            return

        result = _with_passphrase(obj, scope, service.decrypt_profiles)
        click.echo(click.style(f"Decrypted {result.profile_count} profile(s) to {result.extract_path}", fg="green"))
        for name in result.profile_names:
            click.echo(f"  - {name}")

    except BuildVaultError as e:
        fail(e)


@provision_group.command(name="list")
@click.pass_context
def list_profiles(ctx: click.Context) -> None:
    """List profiles in the archive.

    This decrypts the whole archive in memory; nothing is written to disk.
    """
    obj: CliContext = ctx.obj
    try:
        service = _service(obj)
        names = _with_passphrase(obj, ctx.meta["provision_scope"], service.list_profiles)
        click.echo(f"Profiles in {service.config.archive_path}:")
        for name in names:
            click.echo(f"  - {name}")

    except BuildVaultError as e:
        fail(e)


@provision_group.command(name="install")
@click.pass_obj
def install(obj: CliContext) -> None:
    """Copy decrypted profiles into the system profile directory."""
    try:
        service = _service(obj)
        result = service.install_profiles()
        for name in result.installed:
            click.echo(click.style(f"Installed: {name}", fg="green"))
        for name in result.skipped:
            click.echo(f"Skipped (already installed): {name}")
        click.echo(f"{len(result.installed)} installed, {len(result.skipped)} skipped")

    except BuildVaultError as e:
        fail(e)


@provision_group.command(name="cleanup")
@click.pass_obj
def cleanup(obj: CliContext) -> None:
    """Remove decrypted profiles from provision.extract_path."""
    try:
        result = _service(obj).cleanup()
        if not result.removed_paths:
            click.echo("Nothing to clean up")
        for path in result.removed_paths:
            click.echo(click.style(f"Removed: {path}", fg="green"))

    except BuildVaultError as e:
        fail(e)
