"""OS-level keyring store using system credential stores.

Platform Support:
- macOS: Keychain
- Linux: Secret Service API (GNOME Keyring, KWallet)
- Windows: Windows Credential Locker
"""

from typing import cast

import keyring
import structlog
from keyring.backends import fail
from keyring.errors import KeyringError, PasswordDeleteError

from .exceptions import BackendNotAvailableError, CredentialError

log = structlog.get_logger(__name__)


class KeyringBackend:
    """Secure credential storage using the system keyring.

    This is the recommended store for developer machines as it:
    - Integrates with OS security features
    - Supports biometric unlock (Touch ID, Windows Hello)
    - Works across terminal sessions

    Example:
        >>> backend = KeyringBackend()
        >>> backend.set("buildvault.secrets.MyApp", "dev", "ab12...")
        >>> key = backend.get("buildvault.secrets.MyApp", "dev")
        >>> backend.delete("buildvault.secrets.MyApp", "dev")
    """

    @property
    def name(self) -> str:
        """Get backend identifier.

        Returns:
            Backend name constant "keyring"
        """
        return "keyring"

    @property
    def available(self) -> bool:
        """Check if a functional keyring is configured.

        Returns False on headless systems where keyring falls back to its
        "fail" backend, or when the backend fails to initialize.
        """
        try:
            return not isinstance(keyring.get_keyring(), fail.Keyring)
        except Exception as e:
            log.debug("keyring_unavailable", error=str(e))
            return False

    def _require_available(self) -> None:
        if not self.available:
            raise BackendNotAvailableError(
                "Keyring backend is not available",
                suggestion=(
                    "Configure a keyring backend for this system, "
                    "or provide the credential through an environment variable"
                ),
            )

    def get(self, service: str, account: str) -> str | None:
        """Retrieve credential from the OS keyring.

        Args:
            service: Service identifier
            account: Account within the service

        Returns:
            Credential value or None if not found

        Raises:
            BackendNotAvailableError: If keyring is not available
            CredentialError: If keyring operation fails
        """
        self._require_available()

        try:
            credential = cast(str | None, keyring.get_password(service, account))
        except KeyringError as e:
            raise CredentialError(
                f"Keyring operation failed: {e}", reference=f"{service}/{account}"
            ) from e

        if credential is not None:
            log.debug("credential_found_in_keyring", service=service, account=account)

        return credential

    def set(self, service: str, account: str, value: str) -> None:
        """Store credential in the OS keyring.

        Raises:
            BackendNotAvailableError: If keyring is not available
            CredentialError: If keyring operation fails
            ValueError: If value is empty
        """
        if not value:
            raise ValueError("Credential value cannot be empty")

        self._require_available()

        try:
            keyring.set_password(service, account, value)
        except KeyringError as e:
            raise CredentialError(
                f"Failed to store credential: {e}", reference=f"{service}/{account}"
            ) from e

        log.info("credential_stored_in_keyring", service=service, account=account)

    def delete(self, service: str, account: str) -> bool:
        """Delete credential from the OS keyring.

        Returns:
            True if deleted, False if not found

        Raises:
            BackendNotAvailableError: If keyring is not available
            CredentialError: If keyring operation fails
        """
        self._require_available()

        try:
            keyring.delete_password(service, account)
        except PasswordDeleteError:
            # Credential doesn't exist - not an error
            return False
        except KeyringError as e:
            raise CredentialError(
                f"Failed to delete credential: {e}", reference=f"{service}/{account}"
            ) from e

        log.info("credential_deleted_from_keyring", service=service, account=account)
        return True
