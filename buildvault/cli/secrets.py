"""CLI commands for per-environment secret documents.

This module provides the ``buildvault secrets`` command group. Each
environment (scope) has a document at ``env/<scope>/keys.json`` holding a
public key and named values. Anyone can add and encrypt values with the
public key; decrypting and generating code needs the private key, which is
resolved from ``SECRETS_PRIVATE_KEY_<SCOPE>``, ``SECRETS_PRIVATE_KEY``, the
OS keyring, or an interactive prompt.

Commands:
    - generate-keys: Create an environment and its key pair
    - generate: Write obfuscated source files from decrypted secrets
    - encrypt: Seal plaintext values in place
    - show: Public key and per-secret encryption status
    - decrypt: Print decrypted values (development only)
    - validate: Structural checks, no private key needed

Example:
    Create an environment and generate code::

        $ buildvault secrets generate-keys dev --save-to-keyring
        $ buildvault secrets encrypt dev
        $ buildvault secrets generate dev
"""

import sys

import click

from buildvault.credentials import CredentialKind, env_var_names
from buildvault.exceptions import BuildVaultError
from buildvault.secrets import Ciphertext, SecretsService, ValidationResult

from .common import CliContext, fail


def _service(obj: CliContext) -> SecretsService:
    settings = obj.optional_settings()
    environments_dir = settings.secrets.environments_dir if settings and settings.secrets else "env"
    return SecretsService(obj.working_dir, environments_dir=environments_dir)


@click.group(name="secrets")
def secrets_group() -> None:
    """Manage encrypted secrets per environment.

    Examples:

        # Create env/dev/keys.json and a new key pair
        buildvault secrets generate-keys dev

        # Encrypt plaintext values in every environment
        buildvault secrets encrypt

        # Check all environments without a private key
        buildvault secrets validate
    """
    pass


@secrets_group.command(name="generate-keys")
@click.argument("scope")
@click.option("--save-to-keyring", is_flag=True, help="Store the private key in the OS keyring")
@click.option("--force", is_flag=True, help="Overwrite an existing keys.json")
@click.option("--dry-run", is_flag=True, help="Show what would be done without making changes")
@click.pass_obj
def generate_keys(obj: CliContext, scope: str, save_to_keyring: bool, force: bool, dry_run: bool) -> None:
    """Create a new environment with a fresh key pair.

    The public key is written to env/SCOPE/keys.json. The private key is
    shown once and is only stored when --save-to-keyring is given.
    """
    try:
        service = _service(obj)
        path = service.relative(service.document_path(scope))

        if dry_run:
            if service.document_path(scope).exists() and not force:
                click.echo(click.style(f"Environment '{scope}' already exists at {path}", fg="yellow"))
                return
            click.echo(f"Would create: {path}")
            click.echo("Would generate a new key pair")
            if save_to_keyring:
                click.echo("Would save the private key to the OS keyring")
            return

        resolver = obj.resolver() if save_to_keyring else None
        created = service.create_environment(scope, force=force)
        private_key = created.key_pair.private_key_hex

        click.echo(click.style(f"Generated key pair for '{scope}'", fg="green"))
        click.echo()
        click.echo("Public key (committed to version control):")
        click.echo(f"  {created.key_pair.public_key_hex}")
        click.echo()
        click.echo("Private key (SAVE THIS SECURELY - shown only once):")
        click.echo(f"  {private_key}")
        click.echo()
        click.echo(f"Created: {path}")
        click.echo()

        scoped_var, _ = env_var_names(CredentialKind.SECRET_PRIVATE_KEY, scope)
        click.echo("To use this environment:")
        click.echo(f"  CI/CD: export {scoped_var}='<private key>'")
        if resolver is not None:
            service_name = resolver.store_credential(CredentialKind.SECRET_PRIVATE_KEY, scope, private_key)
            click.echo(f"  Local: private key saved to keyring ({service_name})")
        else:
            click.echo(f"  Local: run 'buildvault credentials set secret-private-key {scope}' to store it")

    except BuildVaultError as e:
        fail(e)


@secrets_group.command(name="generate")
@click.argument("scope")
@click.option("--dry-run", is_flag=True, help="Print generated code instead of writing files")
@click.pass_obj
def generate(obj: CliContext, scope: str, dry_run: bool) -> None:
    """Generate obfuscated source files from the secrets of SCOPE."""
    try:
        secrets_config = obj.settings.require_secrets()
        if not secrets_config.outputs:
            click.echo(click.style("No outputs configured under secrets.outputs", fg="yellow"))
            return

        resolver = obj.resolver()
        credential = resolver.resolve(CredentialKind.SECRET_PRIVATE_KEY, scope)
        service = _service(obj)
        units = service.generate_sources(scope, credential.value, secrets_config.outputs)
        resolver.offer_to_save(credential)

        for unit in units:
            if dry_run:
                click.echo(f"Would generate: {unit.path}")
                click.echo(unit.text)
            else:
                service.write_unit(unit)
                click.echo(f"Generated: {unit.path}")

        if not dry_run:
            click.echo(click.style(f"Generated {len(units)} file(s) for {scope}", fg="green"))

    except BuildVaultError as e:
        fail(e)


@secrets_group.command(name="encrypt")
@click.argument("scope", required=False)
@click.option("--dry-run", is_flag=True, help="Show what would be encrypted without modifying files")
@click.pass_obj
def encrypt(obj: CliContext, scope: str | None, dry_run: bool) -> None:
    """Encrypt plaintext values of SCOPE, or of every environment.

    Only the public key stored in each document is needed.
    """
    try:
        service = _service(obj)
        scopes = [scope] if scope else service.list_environments()
        if not scopes:
            click.echo("No environments found")
            return

        for name in scopes:
            path = service.relative(service.document_path(name))
            if dry_run:
                document = service.load(name)
                click.echo(f"Would encrypt: {path} ({len(document.plaintext_names)} plaintext value(s))")
                continue
            service.encrypt_environment(name)
            click.echo(click.style(f"Encrypted: {path}", fg="green"))

    except BuildVaultError as e:
        fail(e)


@secrets_group.command(name="show")
@click.argument("scope")
@click.pass_obj
def show(obj: CliContext, scope: str) -> None:
    """Display the public key and which secrets are encrypted."""
    try:
        service = _service(obj)
        document = service.load(scope)
        public_key = service.vault.extract_public_key(document)

        click.echo(f"Secret document: {service.relative(service.document_path(scope))}")
        click.echo(f"Public key: {public_key}")
        click.echo(f"Secret count: {len(document.entries) + len(document.extra)}")

        if document.entries:
            click.echo()
            click.echo("Secrets:")
            for name in sorted(document.entries):
                if isinstance(document.entries[name], Ciphertext):
                    click.echo(f"  - {name} (" + click.style("encrypted", fg="green") + ")")
                else:
                    click.echo(f"  - {name} (" + click.style("plaintext", fg="yellow") + ")")

    except BuildVaultError as e:
        fail(e)


@secrets_group.command(name="decrypt")
@click.argument("scope")
@click.pass_obj
def decrypt(obj: CliContext, scope: str) -> None:
    """Decrypt and print the secrets of SCOPE (development only)."""
    try:
        resolver = obj.resolver()
        credential = resolver.resolve(CredentialKind.SECRET_PRIVATE_KEY, scope)
        secrets = _service(obj).decrypt_environment(scope, credential.value)
        resolver.offer_to_save(credential)

        click.echo(f"Decrypted secrets for {scope}:")
        for name, value in secrets.items():
            click.echo()
            click.echo(f"{name}:")
            click.echo(f"  {value}")

    except BuildVaultError as e:
        fail(e)


def _print_validation(scope: str, path: str, result: ValidationResult) -> None:
    status = click.style("valid", fg="green") if result.is_valid else click.style("invalid", fg="red")
    click.echo(f"{scope} ({path}): {status}")
    if result.public_key:
        click.echo(f"  Public key: {result.public_key[:16]}...")
    click.echo(
        f"  Secrets: {result.secret_count} total, "
        f"{result.encrypted_count} encrypted, {result.plaintext_count} plaintext"
    )
    for issue in result.errors:
        click.echo(click.style(f"  ERROR: {issue.message}", fg="red"))
    for issue in result.warnings:
        click.echo(click.style(f"  WARNING: {issue.message}", fg="yellow"))


@secrets_group.command(name="validate")
@click.argument("scope", required=False)
@click.pass_obj
def validate(obj: CliContext, scope: str | None) -> None:
    """Validate SCOPE, or every environment, without a private key.

    Exits with status 1 if any document has errors. Plaintext values are
    reported as warnings and do not fail validation.
    """
    try:
        service = _service(obj)
        if scope:
            results = {scope: service.validate_environment(scope)}
        else:
            results = service.validate_all_environments()
            if not results:
                click.echo(f"No secret documents found in {service.relative(service.environments_dir)}/*/keys.json")
                return
    except BuildVaultError as e:
        fail(e)

    for name, result in results.items():
        _print_validation(name, service.relative(service.document_path(name)), result)

    if not all(result.is_valid for result in results.values()):
        click.echo(click.style("Validation failed for one or more environments", fg="red"))
        sys.exit(1)
    if len(results) > 1:
        click.echo(click.style("All secret documents are valid", fg="green"))
