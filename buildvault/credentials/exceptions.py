"""Credential-related exceptions.

This module re-exports credential exceptions from buildvault.exceptions so
the credentials package can be imported on its own. New code should import
directly from buildvault.exceptions.
"""

from buildvault.exceptions import (
    BackendNotAvailableError,
    CredentialError,
    CredentialNotFoundError,
)

__all__ = [
    "CredentialError",
    "CredentialNotFoundError",
    "BackendNotAvailableError",
]
