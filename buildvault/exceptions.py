"""Custom exception hierarchy for buildvault.

This module defines a structured exception hierarchy that lets the CLI tell
apart missing key material, wrong key material, tampered data and malformed
files, and present each with an actionable suggestion.

Exception Hierarchy:
    BuildVaultError (base)
    ├── ConfigurationError
    ├── CredentialError
    │   ├── CredentialNotFoundError
    │   ├── BackendNotAvailableError
    │   ├── EncryptionError
    │   └── DecryptionFailedError
    │       ├── WrongKeyError
    │       ├── WrongPasswordError
    │       └── IntegrityCheckFailedError
    ├── SecretDocumentNotFoundError
    ├── StructuralError
    │   ├── SecretDocumentFormatError
    │   └── ArchiveFormatError
    └── ProvisionError
        ├── NoFilesFoundError
        └── InstallError

Example Usage:
    >>> from buildvault.exceptions import SecretDocumentFormatError
    >>> try:
    ...     data = json.loads(text)
    ... except json.JSONDecodeError as e:
    ...     raise SecretDocumentFormatError("File is not valid JSON", path=path) from e
"""


class BuildVaultError(Exception):
    """Base exception for all buildvault errors.

    Attributes:
        message: Human-readable error description
        suggestion: Optional remediation hint shown by the CLI
    """

    def __init__(self, message: str, suggestion: str | None = None) -> None:
        """Initialize exception.

        Args:
            message: Error message
            suggestion: Optional suggestion for resolution
        """
        self.message = message
        self.suggestion = suggestion
        super().__init__(message)


class ConfigurationError(BuildVaultError):
    """Configuration-related errors.

    Examples:
        - Configuration file not found
        - Invalid YAML syntax
        - Missing required configuration fields
        - Feature section (secrets, provision) not configured
    """

    pass


# =============================================================================
# Credential Errors
# =============================================================================


class CredentialError(BuildVaultError):
    """Credential-related errors.

    Raised when key material or passphrases cannot be resolved, or when the
    material that was resolved does not open the protected data.

    Attributes:
        message: Human-readable error description
        reference: Where the credential was looked up (e.g., "dev" scope,
            "SECRETS_PRIVATE_KEY_DEV") or which entry failed
        suggestion: Optional suggestion for resolution
    """

    def __init__(
        self,
        message: str,
        reference: str | None = None,
        suggestion: str | None = None,
    ) -> None:
        """Initialize exception.

        Args:
            message: Error message
            reference: The credential reference that failed
            suggestion: Optional suggestion for resolution
        """
        self.reference = reference

        full_message = message
        if reference:
            full_message = f"{message} (reference: {reference})"
        if suggestion:
            full_message = f"{full_message}\nSuggestion: {suggestion}"

        super().__init__(full_message, suggestion=suggestion)
        # Preserve original message (super sets self.message to full_message)
        self.message = message


class CredentialNotFoundError(CredentialError):
    """No resolution tier produced the credential."""

    pass


class BackendNotAvailableError(CredentialError):
    """Requested credential store is not available on this system."""

    pass


class EncryptionError(CredentialError):
    """Encryption operation failed."""

    pass


class DecryptionFailedError(CredentialError):
    """Key material was present but decryption failed.

    Raised directly when the primitive cannot distinguish a wrong key from a
    corrupted payload. Subclasses are used when it can.
    """

    pass


class WrongKeyError(DecryptionFailedError):
    """Private key does not match the document's public key."""

    pass


class WrongPasswordError(DecryptionFailedError):
    """Passphrase does not open the archive."""

    pass


class IntegrityCheckFailedError(DecryptionFailedError):
    """Passphrase is correct but the encrypted payload was modified."""

    pass


# =============================================================================
# Structural Errors
# =============================================================================


class SecretDocumentNotFoundError(BuildVaultError):
    """No secret document exists for the requested scope."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(
            f"Secret document not found at: {path}",
            suggestion="Create one with: buildvault secrets generate-keys <scope>",
        )


class StructuralError(BuildVaultError):
    """Document or container is malformed, independent of key material.

    Attributes:
        message: Human-readable error description
        path: File the malformed data came from, if known
    """

    def __init__(
        self,
        message: str,
        path: str | None = None,
        suggestion: str | None = None,
    ) -> None:
        """Initialize exception.

        Args:
            message: Error message
            path: Offending file path
            suggestion: Optional suggestion for resolution
        """
        self.path = path
        full_message = f"{message}: {path}" if path else message
        super().__init__(full_message, suggestion=suggestion)
        self.message = full_message


class SecretDocumentFormatError(StructuralError):
    """Secret document is not a JSON object with a valid public key."""

    pass


class ArchiveFormatError(StructuralError):
    """Archive container header or payload layout is invalid."""

    pass


# =============================================================================
# Provisioning Errors
# =============================================================================


class ProvisionError(BuildVaultError):
    """Provisioning profile workflow errors.

    Examples:
        - Source directory missing
        - Archive file missing
        - Copying profiles into the system directory failed
    """

    pass


class NoFilesFoundError(ProvisionError):
    """Nothing matched the file selection for an archive."""

    pass


class InstallError(ProvisionError):
    """Installing extracted profiles failed."""

    pass
