"""Tests for buildvault/secrets/vault.py - sealed per-value encryption."""

import base64

import pytest

from buildvault.exceptions import (
    DecryptionFailedError,
    EncryptionError,
    SecretDocumentFormatError,
    WrongKeyError,
)
from buildvault.secrets import AsymmetricSecretVault, Ciphertext, Plaintext, SecretDocument


def _tamper(ciphertext: Ciphertext) -> Ciphertext:
    ephemeral, nonce, sealed = ciphertext.payload.split(":")
    raw = bytearray(base64.b64decode(sealed))
    raw[0] ^= 0x01
    payload = ":".join((ephemeral, nonce, base64.b64encode(bytes(raw)).decode()))
    return Ciphertext(version=ciphertext.version, payload=payload)


class TestKeyPair:
    def test_generate_key_pair_sizes(self, secret_vault):
        pair = secret_vault.generate_key_pair()

        assert len(pair.public_key) == 32
        assert len(pair.private_key) == 32
        assert len(pair.public_key_hex) == 64

    def test_key_pairs_are_unique(self, secret_vault):
        assert secret_vault.generate_key_pair().private_key != secret_vault.generate_key_pair().private_key

    def test_private_key_hidden_from_repr(self, key_pair):
        assert key_pair.private_key_hex not in repr(key_pair)

    def test_public_key_for_matches_pair(self, secret_vault, key_pair):
        assert secret_vault.public_key_for(key_pair.private_key_hex) == key_pair.public_key_hex


class TestValueEncryption:
    @pytest.mark.parametrize("value", ["sk_live_123", "", "ünïcødé 🔑", "x" * 4096])
    def test_round_trip(self, secret_vault, key_pair, value):
        sealed = secret_vault.encrypt_value(value, key_pair.public_key_hex)

        assert secret_vault.decrypt_value(sealed, key_pair.private_key_hex) == value

    def test_ciphertext_is_versioned(self, secret_vault, key_pair):
        sealed = secret_vault.encrypt_value("value", key_pair.public_key_hex)

        assert sealed.version == 1
        assert sealed.serialize().startswith("SV[1:")

    def test_encryption_is_randomized(self, secret_vault, key_pair):
        first = secret_vault.encrypt_value("value", key_pair.public_key_hex)
        second = secret_vault.encrypt_value("value", key_pair.public_key_hex)

        assert first.payload != second.payload

    def test_plaintext_not_in_payload(self, secret_vault, key_pair):
        sealed = secret_vault.encrypt_value("sk_live_123", key_pair.public_key_hex)

        assert "sk_live_123" not in sealed.serialize()

    def test_invalid_public_key(self, secret_vault):
        with pytest.raises(EncryptionError):
            secret_vault.encrypt_value("value", "not-hex")

    def test_lone_surrogate_is_encryption_error(self, secret_vault, key_pair):
        with pytest.raises(EncryptionError, match="Unicode"):
            secret_vault.encrypt_value("\ud800", key_pair.public_key_hex)

    def test_wrong_private_key_fails(self, secret_vault, key_pair):
        other = secret_vault.generate_key_pair()
        sealed = secret_vault.encrypt_value("value", key_pair.public_key_hex)

        with pytest.raises(DecryptionFailedError):
            secret_vault.decrypt_value(sealed, other.private_key_hex)

    def test_tampered_payload_fails(self, secret_vault, key_pair):
        sealed = secret_vault.encrypt_value("value", key_pair.public_key_hex)

        with pytest.raises(DecryptionFailedError):
            secret_vault.decrypt_value(_tamper(sealed), key_pair.private_key_hex)

    @pytest.mark.parametrize(
        "payload",
        ["", "onlyone", "a:b", "!!!:!!!:!!!", "AAAA:AAAA:AAAA"],
    )
    def test_malformed_payload_fails(self, secret_vault, key_pair, payload):
        with pytest.raises(DecryptionFailedError):
            secret_vault.decrypt_value(Ciphertext(version=1, payload=payload), key_pair.private_key_hex)

    def test_unsupported_version_fails(self, secret_vault, key_pair):
        sealed = secret_vault.encrypt_value("value", key_pair.public_key_hex)

        with pytest.raises(DecryptionFailedError, match="Unsupported ciphertext version"):
            secret_vault.decrypt_value(Ciphertext(version=2, payload=sealed.payload), key_pair.private_key_hex)

    def test_malformed_private_key(self, secret_vault, key_pair):
        sealed = secret_vault.encrypt_value("value", key_pair.public_key_hex)

        with pytest.raises(DecryptionFailedError, match="Invalid private key"):
            secret_vault.decrypt_value(sealed, "abc")


class TestDocumentEncryption:
    @pytest.fixture
    def document(self, key_pair):
        return SecretDocument(
            public_key=key_pair.public_key_hex,
            entries={"all_api_key": Plaintext("x"), "ios_token": Plaintext("token")},
        )

    def test_encrypt_document_seals_plaintext(self, secret_vault, document):
        encrypted = secret_vault.encrypt_document(document)

        assert encrypted.plaintext_names == []
        assert encrypted.encrypted_names == ["all_api_key", "ios_token"]
        # Input left untouched
        assert document.plaintext_names == ["all_api_key", "ios_token"]

    def test_encrypt_document_is_idempotent(self, secret_vault, document):
        once = secret_vault.encrypt_document(document)
        twice = secret_vault.encrypt_document(once)

        assert twice.entries == once.entries

    def test_mixed_document_round_trip(self, secret_vault, key_pair):
        """Plaintext "a" and ciphertext "b" both come back after encrypt then decrypt."""
        sealed_b = secret_vault.encrypt_value("original-b", key_pair.public_key_hex)
        document = SecretDocument(
            public_key=key_pair.public_key_hex,
            entries={"a": Plaintext("x"), "b": sealed_b},
        )

        encrypted = secret_vault.encrypt_document(document)

        assert encrypted.entries["b"] is sealed_b
        assert secret_vault.decrypt_document(encrypted, key_pair.private_key_hex) == {
            "a": "x",
            "b": "original-b",
        }

    def test_plaintext_passes_through_decryption(self, secret_vault, document, key_pair):
        assert secret_vault.decrypt_document(document, key_pair.private_key_hex) == {
            "all_api_key": "x",
            "ios_token": "token",
        }

    def test_wrong_key_rejected_before_decrypting(self, secret_vault, document):
        encrypted = secret_vault.encrypt_document(document)
        other = secret_vault.generate_key_pair()

        with pytest.raises(WrongKeyError):
            secret_vault.decrypt_document(encrypted, other.private_key_hex)

    def test_one_bad_entry_aborts_everything(self, secret_vault, document, key_pair):
        encrypted = secret_vault.encrypt_document(document)
        encrypted.entries["ios_token"] = _tamper(encrypted.entries["ios_token"])

        with pytest.raises(DecryptionFailedError) as exc_info:
            secret_vault.decrypt_document(encrypted, key_pair.private_key_hex)

        assert exc_info.value.reference == "ios_token"

    def test_unencodable_entry_named_in_error(self, secret_vault, key_pair):
        document = SecretDocument(public_key=key_pair.public_key_hex, entries={"ios_token": Plaintext("\ud800")})

        with pytest.raises(EncryptionError) as exc_info:
            secret_vault.encrypt_document(document)

        assert exc_info.value.reference == "ios_token"

    def test_empty_document(self, secret_vault, key_pair):
        document = SecretDocument(public_key=key_pair.public_key_hex)

        assert secret_vault.encrypt_document(document).entries == {}
        assert secret_vault.decrypt_document(document, key_pair.private_key_hex) == {}


class TestExtractPublicKey:
    def test_extract_public_key(self, secret_vault, key_pair):
        document = SecretDocument(public_key=key_pair.public_key_hex.upper())

        assert secret_vault.extract_public_key(document) == key_pair.public_key_hex

    def test_invalid_public_key(self, secret_vault):
        with pytest.raises(SecretDocumentFormatError):
            secret_vault.extract_public_key(SecretDocument(public_key="abc"))

    def test_encrypt_document_needs_valid_public_key(self, secret_vault):
        document = SecretDocument(public_key="abc", entries={"a": Plaintext("x")})

        with pytest.raises(SecretDocumentFormatError):
            secret_vault.encrypt_document(document)

    def test_vault_class_is_stateless(self):
        assert AsymmetricSecretVault().__dict__ == {}
