"""Credential resolution for secret private keys and archive passphrases.

Key Components:
    - CredentialResolver: Ordered env -> keyring -> prompt resolution
    - KeyringBackend: OS keyring adapter
    - EnvironmentBackend: Environment variable source

Example:
    >>> from buildvault.credentials import CredentialKind, CredentialResolver
    >>> resolver = CredentialResolver(app_name="MyApp")
    >>> key = resolver.resolve(CredentialKind.SECRET_PRIVATE_KEY, "dev").value
"""

from .backend import CredentialStore
from .environment_backend import EnvironmentBackend
from .exceptions import BackendNotAvailableError, CredentialError, CredentialNotFoundError
from .keyring_backend import KeyringBackend
from .resolver import (
    DOMAINS,
    CredentialKind,
    CredentialResolver,
    CredentialSource,
    ResolvedCredential,
    env_var_names,
    normalize_scope,
    service_name,
)

__all__ = [
    "DOMAINS",
    "BackendNotAvailableError",
    "CredentialError",
    "CredentialKind",
    "CredentialNotFoundError",
    "CredentialResolver",
    "CredentialSource",
    "CredentialStore",
    "EnvironmentBackend",
    "KeyringBackend",
    "ResolvedCredential",
    "env_var_names",
    "normalize_scope",
    "service_name",
]
