"""Ordered credential resolution shared by both protection domains.

Secret private keys and archive passphrases are located the same way:

1. ``{STEM}_{SCOPE}`` environment variable
2. ``{STEM}`` environment variable
3. OS keyring (service ``buildvault.<domain>.<app_name>``, account = scope)
4. Interactive hidden prompt, only when stdin is a terminal
5. ``CredentialNotFoundError`` naming every location that was checked

Values that fail the domain's format check are skipped at the tier that
produced them, so a stale or truncated keyring entry falls through to the
prompt instead of failing the command.
"""

import re
import sys
from dataclasses import dataclass, field
from enum import Enum

import click
import structlog

from .backend import CredentialStore
from .environment_backend import EnvironmentBackend
from .exceptions import CredentialError, CredentialNotFoundError
from .keyring_backend import KeyringBackend

log = structlog.get_logger(__name__)


class CredentialKind(str, Enum):
    """Protection domain a credential belongs to."""

    SECRET_PRIVATE_KEY = "secret-private-key"
    """Hex-encoded private key opening a scope's secret document."""

    ARCHIVE_PASSPHRASE = "archive-passphrase"
    """Passphrase protecting the provisioning profile archive."""


class CredentialSource(str, Enum):
    """Resolution tier that produced a credential."""

    SCOPED_ENVIRONMENT = "scoped-environment"
    GLOBAL_ENVIRONMENT = "global-environment"
    KEYRING = "keyring"
    PROMPT = "prompt"


@dataclass(frozen=True)
class CredentialDomain:
    """Naming and format rules for one credential kind."""

    env_stem: str
    service_stem: str
    label: str
    format_hint: str
    pattern: re.Pattern[str] | None = None

    def accepts(self, value: str) -> bool:
        if not value:
            return False
        return self.pattern is None or self.pattern.fullmatch(value) is not None


DOMAINS: dict[CredentialKind, CredentialDomain] = {
    CredentialKind.SECRET_PRIVATE_KEY: CredentialDomain(
        env_stem="SECRETS_PRIVATE_KEY",
        service_stem="secrets",
        label="secrets private key",
        format_hint="64-character hex string",
        pattern=re.compile(r"[0-9a-fA-F]{64}"),
    ),
    CredentialKind.ARCHIVE_PASSPHRASE: CredentialDomain(
        env_stem="PROVISION_PASSWORD",
        service_stem="provision",
        label="provision password",
        format_hint="non-empty passphrase",
    ),
}


@dataclass(frozen=True)
class ResolvedCredential:
    """Key or passphrase material for a single command invocation.

    The value is excluded from ``repr`` so it cannot leak through logging
    or tracebacks.
    """

    kind: CredentialKind
    scope: str
    value: str = field(repr=False)
    source: CredentialSource


def normalize_scope(scope: str) -> str:
    """Upper-case a scope for use in an environment variable name.

    Example:
        >>> normalize_scope("pre-prod")
        'PRE_PROD'
    """
    return re.sub(r"[^A-Za-z0-9]", "_", scope).upper()


def env_var_names(kind: CredentialKind, scope: str) -> tuple[str, str]:
    """Return the scoped and global environment variable names for a kind."""
    stem = DOMAINS[kind].env_stem
    return f"{stem}_{normalize_scope(scope)}", stem


def service_name(kind: CredentialKind, app_name: str) -> str:
    """Return the keyring service identifier for a kind and application."""
    return f"buildvault.{DOMAINS[kind].service_stem}.{app_name}"


class CredentialResolver:
    """Resolve key material and passphrases through the ordered tier chain.

    The resolver holds no cache: every call walks the tiers again, so
    concurrent resolutions for different scopes never share values.

    Example:
        >>> resolver = CredentialResolver(app_name="MyApp")
        >>> credential = resolver.resolve(CredentialKind.SECRET_PRIVATE_KEY, "dev")
        >>> credential.source
        <CredentialSource.SCOPED_ENVIRONMENT: 'scoped-environment'>
    """

    def __init__(
        self,
        app_name: str,
        store: CredentialStore | None = None,
        environment: EnvironmentBackend | None = None,
        interactive: bool = True,
    ) -> None:
        """Initialize credential resolver.

        Args:
            app_name: Application name used in keyring service identifiers
            store: Secure credential store (defaults to the OS keyring)
            environment: Environment variable source (defaults to os.environ)
            interactive: Allow the prompt tier when a terminal is attached
        """
        self.app_name = app_name
        self.store: CredentialStore = store if store is not None else KeyringBackend()
        self.environment = environment if environment is not None else EnvironmentBackend()
        self.interactive = interactive

    @staticmethod
    def is_interactive() -> bool:
        """Check whether stdin is attached to a terminal."""
        try:
            return sys.stdin is not None and sys.stdin.isatty()
        except ValueError:
            # stdin closed
            return False

    def resolve(self, kind: CredentialKind, scope: str) -> ResolvedCredential:
        """Resolve a credential for a protection domain and scope.

        Args:
            kind: Protection domain
            scope: Environment/application scope (e.g., "dev")

        Returns:
            The resolved credential and the tier it came from

        Raises:
            CredentialNotFoundError: If no tier produced a well-formed value
        """
        domain = DOMAINS[kind]
        scoped_var, global_var = env_var_names(kind, scope)

        for var_name, source in (
            (scoped_var, CredentialSource.SCOPED_ENVIRONMENT),
            (global_var, CredentialSource.GLOBAL_ENVIRONMENT),
        ):
            value = self.environment.get(var_name)
            if value is None:
                continue
            value = value.strip()
            if domain.accepts(value):
                log.debug("credential_resolved", kind=kind.value, scope=scope, source=source.value)
                return ResolvedCredential(kind=kind, scope=scope, value=value, source=source)
            log.debug("credential_malformed", kind=kind.value, scope=scope, location=var_name)

        stored = self._lookup_store(kind, scope)
        if stored is not None:
            log.debug(
                "credential_resolved", kind=kind.value, scope=scope, source=CredentialSource.KEYRING.value
            )
            return ResolvedCredential(kind=kind, scope=scope, value=stored, source=CredentialSource.KEYRING)

        if self.interactive and self.is_interactive():
            prompted = self._prompt(kind, scope)
            log.debug(
                "credential_resolved", kind=kind.value, scope=scope, source=CredentialSource.PROMPT.value
            )
            return ResolvedCredential(kind=kind, scope=scope, value=prompted, source=CredentialSource.PROMPT)

        raise self._not_found(kind, scope)

    def _lookup_store(self, kind: CredentialKind, scope: str) -> str | None:
        """Keyring tier. Unavailable stores, store errors and malformed values are misses."""
        if not self.store.available:
            log.debug("credential_store_unavailable", store=self.store.name)
            return None

        service = service_name(kind, self.app_name)
        try:
            value = self.store.get(service, scope)
        except CredentialError as e:
            log.warning("credential_store_lookup_failed", store=self.store.name, error=e.message)
            return None

        if value is None:
            return None
        value = value.strip()
        if not DOMAINS[kind].accepts(value):
            log.debug("credential_malformed", kind=kind.value, scope=scope, location=service)
            return None
        return value

    def describe_locations(self, kind: CredentialKind, scope: str) -> list[str]:
        """List the places the resolver checks, in order."""
        scoped_var, global_var = env_var_names(kind, scope)
        return [
            f"Environment variable: {scoped_var}",
            f"Environment variable: {global_var}",
            f"Keyring (service: {service_name(kind, self.app_name)}, account: {scope})",
        ]

    def _prompt(self, kind: CredentialKind, scope: str) -> str:
        domain = DOMAINS[kind]

        click.echo("", err=True)
        click.echo(f"{domain.label.capitalize()} not found for scope: {scope}", err=True)
        click.echo("", err=True)
        click.echo("Checked:", err=True)
        for index, location in enumerate(self.describe_locations(kind, scope), start=1):
            click.echo(f"  {index}. {location}", err=True)
        click.echo("", err=True)

        value = click.prompt(
            f"Enter {domain.label} ({domain.format_hint})",
            hide_input=True,
            default="",
            show_default=False,
            err=True,
        ).strip()

        if not domain.accepts(value):
            if value:
                click.echo(f"Invalid format. Expected {domain.format_hint}.", err=True)
            raise self._not_found(kind, scope)

        return value

    def _not_found(self, kind: CredentialKind, scope: str) -> CredentialNotFoundError:
        domain = DOMAINS[kind]
        scoped_var, _ = env_var_names(kind, scope)
        checked = "\n".join(f"  {i}. {loc}" for i, loc in enumerate(self.describe_locations(kind, scope), 1))
        return CredentialNotFoundError(
            f"{domain.label.capitalize()} not found for scope '{scope}'. Checked:\n{checked}",
            reference=scoped_var,
            suggestion=(
                f"Set the environment variable:\n"
                f"  export {scoped_var}='<{domain.format_hint}>'\n"
                f"Or store it in the keyring:\n"
                f"  buildvault credentials set {kind.value} {scope}"
            ),
        )

    def offer_to_save(self, credential: ResolvedCredential) -> bool:
        """Offer to persist a prompted credential in the keyring.

        Call this only after the credential has been used successfully.
        Declining, a non-interactive session, or a failing keyring never
        affect the operation that used the credential.

        Returns:
            True if the credential was saved
        """
        if credential.source is not CredentialSource.PROMPT:
            return False
        if not self.is_interactive() or not self.store.available:
            return False

        service = service_name(credential.kind, self.app_name)
        try:
            existing = self.store.get(service, credential.scope)
        except CredentialError as e:
            log.debug("credential_store_lookup_failed", store=self.store.name, error=e.message)
            existing = None
        if existing == credential.value:
            return False

        if not click.confirm("Save to keyring for future use?", default=True, err=True):
            return False

        try:
            self.store.set(service, credential.scope, credential.value)
        except (CredentialError, ValueError) as e:
            log.warning("credential_save_failed", kind=credential.kind.value, scope=credential.scope, error=str(e))
            click.echo(click.style(f"Could not save to keyring: {e}", fg="yellow"), err=True)
            return False

        click.echo(click.style("Saved to keyring", fg="green"), err=True)
        return True

    def store_credential(self, kind: CredentialKind, scope: str, value: str) -> str:
        """Persist a credential in the keyring after checking its format.

        Returns:
            The keyring service identifier used

        Raises:
            ValueError: If the value does not match the kind's format
            CredentialError: If the keyring is unavailable or fails
        """
        domain = DOMAINS[kind]
        value = value.strip()
        if not domain.accepts(value):
            raise ValueError(f"Invalid {domain.label}: expected {domain.format_hint}")

        service = service_name(kind, self.app_name)
        self.store.set(service, scope, value)
        return service

    def forget_credential(self, kind: CredentialKind, scope: str) -> bool:
        """Remove a credential from the keyring.

        Returns:
            True if an entry was deleted
        """
        return self.store.delete(service_name(kind, self.app_name), scope)
