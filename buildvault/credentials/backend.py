"""Abstract protocol for the secure OS credential store."""

from typing import Protocol


class CredentialStore(Protocol):
    """Protocol defining the interface for secure credential stores.

    The resolver only depends on this narrow seam, so the platform-specific
    keyring adapter can be swapped for a mock in tests or for another store.
    """

    @property
    def name(self) -> str:
        """Store identifier (e.g., 'keyring')."""
        ...

    @property
    def available(self) -> bool:
        """Check if this store is usable on the current system."""
        ...

    def get(self, service: str, account: str) -> str | None:
        """Retrieve a credential.

        Args:
            service: Service identifier (e.g., 'buildvault.secrets.MyApp')
            account: Account within the service (the scope, e.g., 'dev')

        Returns:
            Credential value or None if not found

        Raises:
            BackendNotAvailableError: If the store is not available
            CredentialError: If the store operation fails
        """
        ...

    def set(self, service: str, account: str, value: str) -> None:
        """Store a credential, replacing any existing value.

        Raises:
            BackendNotAvailableError: If the store is not available
            CredentialError: If the store operation fails
        """
        ...

    def delete(self, service: str, account: str) -> bool:
        """Delete a credential.

        Returns:
            True if credential was deleted, False if not found
        """
        ...
