"""CLI commands for credential management.

This module provides the ``buildvault credentials`` command group for
storing and inspecting the two kinds of credentials buildvault resolves:

    - secret-private-key: opens ``env/<scope>/keys.json``
    - archive-passphrase: opens the provisioning profile archive

Both are looked up in the same order: ``<STEM>_<SCOPE>`` environment
variable, ``<STEM>`` environment variable, OS keyring, interactive prompt.

Commands:
    - set: Store a credential in the OS keyring
    - delete: Remove a credential from the OS keyring
    - status: Show which location currently provides a credential
    - test: Check availability of credential backends

Example:
    Store and inspect a private key::

        $ buildvault credentials set secret-private-key dev
        $ buildvault credentials status secret-private-key dev
"""

import sys

import click

from buildvault.credentials import (
    CredentialKind,
    CredentialNotFoundError,
    CredentialResolver,
    EnvironmentBackend,
    KeyringBackend,
)
from buildvault.exceptions import BuildVaultError

from .common import CliContext, fail, mask

KIND_CHOICE = click.Choice([kind.value for kind in CredentialKind])


@click.group(name="credentials")
def credentials_group() -> None:
    """Manage stored private keys and archive passphrases.

    Examples:

        # Store a private key for the dev environment
        buildvault credentials set secret-private-key dev

        # Store the profile archive passphrase
        buildvault credentials set archive-passphrase default

        # See where a credential would be resolved from
        buildvault credentials status secret-private-key dev
    """
    pass


@credentials_group.command(name="set")
@click.argument("kind", type=KIND_CHOICE)
@click.argument("scope")
@click.option(
    "--value",
    prompt=True,
    hide_input=True,
    confirmation_prompt=True,
    help="Credential value (will prompt if not provided)",
)
@click.pass_obj
def set_credential(obj: CliContext, kind: str, scope: str, value: str) -> None:
    """Store a credential in the OS keyring."""
    try:
        service = obj.resolver().store_credential(CredentialKind(kind), scope, value)
        click.echo(f"Stored in keyring: {service} (account: {scope})")
        click.echo(click.style("Credential stored successfully", fg="green"))
    except BuildVaultError as e:
        fail(e)
    except ValueError as e:
        click.echo(click.style(f"Error: {e}", fg="red"), err=True)
        sys.exit(1)


@credentials_group.command(name="delete")
@click.argument("kind", type=KIND_CHOICE)
@click.argument("scope")
@click.confirmation_option(prompt="Are you sure you want to delete this credential?")
@click.pass_obj
def delete_credential(obj: CliContext, kind: str, scope: str) -> None:
    """Delete a credential from the OS keyring."""
    try:
        if obj.resolver().forget_credential(CredentialKind(kind), scope):
            click.echo(click.style("Credential deleted successfully", fg="green"))
        else:
            click.echo(click.style("Credential not found", fg="yellow"))
    except BuildVaultError as e:
        fail(e)


@credentials_group.command(name="status")
@click.argument("kind", type=KIND_CHOICE)
@click.argument("scope")
@click.option("--show-value", is_flag=True, help="Show full credential value (default: masked)")
@click.pass_obj
def credential_status(obj: CliContext, kind: str, scope: str, show_value: bool) -> None:
    """Show where a credential resolves from, without prompting."""
    try:
        resolver = obj.resolver(interactive=False)
        credential_kind = CredentialKind(kind)
        click.echo("Checked, in order:")
        for index, location in enumerate(resolver.describe_locations(credential_kind, scope), start=1):
            click.echo(f"  {index}. {location}")
        click.echo()

        try:
            credential = resolver.resolve(credential_kind, scope)
        except CredentialNotFoundError:
            click.echo(click.style("Not found (an interactive run would prompt for it)", fg="yellow"))
            return

        click.echo(f"Source: {credential.source.value}")
        click.echo(f"Value: {credential.value if show_value else mask(credential.value)}")
        click.echo(click.style("Credential resolved successfully", fg="green"))
    except BuildVaultError as e:
        fail(e)


@credentials_group.command(name="test")
def test_credentials() -> None:
    """Test credential backend availability."""
    click.echo(click.style("Testing credential backends...", bold=True))
    click.echo()

    keyring_backend = KeyringBackend()
    click.echo("Keyring backend: ", nl=False)
    if keyring_backend.available:
        click.echo(click.style("Available", fg="green"))
    else:
        click.echo(click.style("Not available", fg="yellow"))
        click.echo("  Credentials can still be provided through environment variables")

    environment_backend = EnvironmentBackend()
    click.echo("Environment backend: ", nl=False)
    if environment_backend.available:
        click.echo(click.style("Available", fg="green"))

    click.echo("Interactive prompt: ", nl=False)
    if CredentialResolver.is_interactive():
        click.echo(click.style("Available", fg="green"))
    else:
        click.echo(click.style("Not available (no terminal)", fg="yellow"))
