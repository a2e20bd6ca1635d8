"""Tests for buildvault.exceptions module."""

import pytest

from buildvault.credentials.exceptions import CredentialError as ReexportedCredentialError
from buildvault.exceptions import (
    ArchiveFormatError,
    BuildVaultError,
    ConfigurationError,
    CredentialError,
    CredentialNotFoundError,
    DecryptionFailedError,
    IntegrityCheckFailedError,
    NoFilesFoundError,
    ProvisionError,
    SecretDocumentFormatError,
    SecretDocumentNotFoundError,
    StructuralError,
    WrongKeyError,
    WrongPasswordError,
)


class TestBuildVaultError:
    """Test base BuildVaultError class."""

    def test_init_with_message(self):
        error = BuildVaultError("Test error message")

        assert error.message == "Test error message"
        assert error.suggestion is None
        assert str(error) == "Test error message"

    def test_suggestion_kept_separately(self):
        error = ConfigurationError("Bad config", suggestion="Fix it")

        assert error.message == "Bad config"
        assert error.suggestion == "Fix it"


class TestCredentialError:
    """Test CredentialError formatting."""

    def test_reference_and_suggestion_in_str(self):
        error = CredentialError("Not found", reference="SECRETS_PRIVATE_KEY_DEV", suggestion="Export it")

        assert error.message == "Not found"
        assert error.reference == "SECRETS_PRIVATE_KEY_DEV"
        assert "reference: SECRETS_PRIVATE_KEY_DEV" in str(error)
        assert "Suggestion: Export it" in str(error)

    def test_reexported_from_credentials_package(self):
        assert ReexportedCredentialError is CredentialError


class TestStructuralError:
    def test_path_appended(self):
        error = SecretDocumentFormatError("File is not valid JSON", path="env/dev/keys.json")

        assert error.path == "env/dev/keys.json"
        assert error.message == "File is not valid JSON: env/dev/keys.json"

    def test_without_path(self):
        assert ArchiveFormatError("Bad magic").message == "Bad magic"

    def test_document_not_found(self):
        error = SecretDocumentNotFoundError("env/dev/keys.json")

        assert "env/dev/keys.json" in error.message
        assert "generate-keys" in error.suggestion


class TestHierarchy:
    """Missing, wrong and malformed material stay distinguishable."""

    @pytest.mark.parametrize(
        ("error_class", "parent"),
        [
            (CredentialNotFoundError, CredentialError),
            (WrongKeyError, DecryptionFailedError),
            (WrongPasswordError, DecryptionFailedError),
            (IntegrityCheckFailedError, DecryptionFailedError),
            (DecryptionFailedError, CredentialError),
            (SecretDocumentFormatError, StructuralError),
            (ArchiveFormatError, StructuralError),
            (NoFilesFoundError, ProvisionError),
            (StructuralError, BuildVaultError),
        ],
    )
    def test_subclassing(self, error_class, parent):
        assert issubclass(error_class, parent)

    def test_categories_are_disjoint(self):
        assert not issubclass(CredentialNotFoundError, DecryptionFailedError)
        assert not issubclass(StructuralError, CredentialError)
        assert not issubclass(SecretDocumentNotFoundError, StructuralError)
