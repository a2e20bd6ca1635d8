"""Sealed public-key encryption of individual secret values.

Security Model:
- Each environment has an X25519 key pair; the public key lives in the
  committed secret document, the private key never does
- Every value is sealed with a fresh ephemeral X25519 key pair, so anyone
  holding the public key can add or rotate values
- Key material: HKDF-SHA256 over the X25519 shared secret
- Cipher: ChaCha20-Poly1305 with a random 96-bit nonce

Sealed value payload (version 1)::

    <ephemeral public key b64>:<nonce b64>:<ciphertext+tag b64>

The AEAD tag cannot tell a wrong private key from a modified payload, so
``decrypt_value`` reports both as ``DecryptionFailedError``. At document
level the private key is checked against the document's public key first,
which surfaces the wrong-key case as ``WrongKeyError``.
"""

import base64
import binascii
import os

import structlog
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric.x25519 import X25519PrivateKey, X25519PublicKey
from cryptography.hazmat.primitives.ciphers.aead import ChaCha20Poly1305
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from buildvault.exceptions import (
    DecryptionFailedError,
    EncryptionError,
    SecretDocumentFormatError,
    WrongKeyError,
)

from .document import is_valid_public_key
from .models import CURRENT_VERSION, KEY_SIZE, Ciphertext, KeyPair, Plaintext, SecretDocument, SecretValue

log = structlog.get_logger(__name__)

NONCE_SIZE = 12
TAG_SIZE = 16
HKDF_INFO = b"buildvault-sealed-value-v1"


def _raw_public(key: X25519PublicKey) -> bytes:
    return key.public_bytes(encoding=serialization.Encoding.Raw, format=serialization.PublicFormat.Raw)


def _raw_private(key: X25519PrivateKey) -> bytes:
    return key.private_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PrivateFormat.Raw,
        encryption_algorithm=serialization.NoEncryption(),
    )


def _derive_key(shared_secret: bytes, ephemeral_public: bytes, recipient_public: bytes) -> bytes:
    return HKDF(
        algorithm=hashes.SHA256(),
        length=32,
        salt=ephemeral_public + recipient_public,
        info=HKDF_INFO,
    ).derive(shared_secret)


def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


class AsymmetricSecretVault:
    """Encrypt, decrypt and inspect secret documents.

    The vault is stateless; key material is passed into every call and
    never retained.

    Example:
        >>> vault = AsymmetricSecretVault()
        >>> pair = vault.generate_key_pair()
        >>> sealed = vault.encrypt_value("sk_live_123", pair.public_key_hex)
        >>> vault.decrypt_value(sealed, pair.private_key_hex)
        'sk_live_123'
    """

    def generate_key_pair(self) -> KeyPair:
        """Generate a new X25519 key pair for a secret document."""
        private_key = X25519PrivateKey.generate()
        return KeyPair(public_key=_raw_public(private_key.public_key()), private_key=_raw_private(private_key))

    @staticmethod
    def _load_private_key(private_key: str) -> X25519PrivateKey:
        try:
            raw = bytes.fromhex(private_key.strip())
            if len(raw) != KEY_SIZE:
                raise ValueError(f"expected {KEY_SIZE} bytes, got {len(raw)}")
            return X25519PrivateKey.from_private_bytes(raw)
        except ValueError as e:
            raise DecryptionFailedError(
                f"Invalid private key format: {e}",
                suggestion="The private key must be a 64-character hex string",
            ) from e

    def public_key_for(self, private_key: str) -> str:
        """Derive the hex public key matching a hex private key.

        Raises:
            DecryptionFailedError: If the private key is malformed
        """
        return _raw_public(self._load_private_key(private_key).public_key()).hex()

    def extract_public_key(self, document: SecretDocument) -> str:
        """Return the document's public key, checking its format.

        Raises:
            SecretDocumentFormatError: If the public key is not 64 hex chars
        """
        if not is_valid_public_key(document.public_key):
            raise SecretDocumentFormatError(
                "Invalid public key format (expected 64-character hex string)"
            )
        return document.public_key.lower()

    def encrypt_value(self, plaintext: str, public_key: str) -> Ciphertext:
        """Seal a value to a public key.

        Args:
            plaintext: Value to protect
            public_key: Recipient public key (64-character hex string)

        Returns:
            Version 1 ciphertext

        Raises:
            EncryptionError: If the public key is unusable or the value is
                not valid Unicode text
        """
        try:
            clear = plaintext.encode("utf-8")
        except UnicodeEncodeError as e:
            raise EncryptionError("Value is not valid Unicode text (lone surrogate)") from e

        try:
            recipient_raw = bytes.fromhex(public_key)
            recipient = X25519PublicKey.from_public_bytes(recipient_raw)
            ephemeral = X25519PrivateKey.generate()
            ephemeral_raw = _raw_public(ephemeral.public_key())
            key = _derive_key(ephemeral.exchange(recipient), ephemeral_raw, recipient_raw)
        except ValueError as e:
            raise EncryptionError(
                f"Invalid public key: {e}",
                suggestion="Make sure _public_key is a valid 64-character hex string",
            ) from e

        nonce = os.urandom(NONCE_SIZE)
        sealed = ChaCha20Poly1305(key).encrypt(nonce, clear, None)
        payload = ":".join((_b64(ephemeral_raw), _b64(nonce), _b64(sealed)))
        return Ciphertext(version=CURRENT_VERSION, payload=payload)

    def encrypt_document(self, document: SecretDocument) -> SecretDocument:
        """Seal every plaintext entry with the document's own public key.

        Ciphertext entries are carried over unchanged, so encrypting an
        already encrypted document is a no-op per entry.

        Returns:
            A new document; the input is not modified
        """
        public_key = self.extract_public_key(document)

        entries: dict[str, SecretValue] = {}
        sealed = 0
        for name, value in document.entries.items():
            if isinstance(value, Plaintext):
                try:
                    entries[name] = self.encrypt_value(value.text, public_key)
                except EncryptionError as e:
                    raise EncryptionError(e.message, reference=name, suggestion=e.suggestion) from e
                sealed += 1
            else:
                entries[name] = value

        log.info("document_encrypted", sealed=sealed, unchanged=len(entries) - sealed)
        return SecretDocument(public_key=document.public_key, entries=entries, extra=dict(document.extra))

    def decrypt_value(self, ciphertext: Ciphertext, private_key: str) -> str:
        """Open a sealed value.

        Raises:
            DecryptionFailedError: Wrong private key, tampered or malformed
                payload, or unsupported version
        """
        if ciphertext.version != CURRENT_VERSION:
            raise DecryptionFailedError(
                f"Unsupported ciphertext version: {ciphertext.version}",
                suggestion="Upgrade buildvault to a release that supports this format",
            )

        parts = ciphertext.payload.split(":")
        if len(parts) != 3:
            raise DecryptionFailedError("Malformed ciphertext payload: expected 3 fields")

        try:
            ephemeral_raw, nonce, sealed = (base64.b64decode(part, validate=True) for part in parts)
        except (binascii.Error, ValueError) as e:
            raise DecryptionFailedError("Malformed ciphertext payload: invalid base64") from e

        if len(ephemeral_raw) != KEY_SIZE or len(nonce) != NONCE_SIZE or len(sealed) < TAG_SIZE:
            raise DecryptionFailedError("Malformed ciphertext payload: truncated")

        recipient = self._load_private_key(private_key)
        recipient_raw = _raw_public(recipient.public_key())

        try:
            shared = recipient.exchange(X25519PublicKey.from_public_bytes(ephemeral_raw))
            key = _derive_key(shared, ephemeral_raw, recipient_raw)
            plaintext = ChaCha20Poly1305(key).decrypt(nonce, sealed, None)
        except (InvalidTag, ValueError) as e:
            raise DecryptionFailedError(
                "Decryption failed: wrong private key or corrupted ciphertext",
                suggestion="Verify the private key matches the public key in the secret document",
            ) from e

        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError as e:
            raise DecryptionFailedError("Decrypted value is not valid UTF-8") from e

    def decrypt_document(self, document: SecretDocument, private_key: str) -> dict[str, str]:
        """Decrypt every entry of a document.

        Plaintext entries pass through. Any failing entry aborts the whole
        call; partial secret sets are never returned.

        Raises:
            WrongKeyError: If the private key does not belong to the
                document's public key
            DecryptionFailedError: If any entry cannot be opened
        """
        public_key = self.extract_public_key(document)
        if self.public_key_for(private_key) != public_key:
            raise WrongKeyError(
                "Private key does not match the document's public key",
                reference=f"{public_key[:16]}...",
                suggestion="Check which environment the private key was generated for",
            )

        result: dict[str, str] = {}
        for name in sorted(document.entries):
            value = document.entries[name]
            if isinstance(value, Plaintext):
                result[name] = value.text
                continue
            try:
                result[name] = self.decrypt_value(value, private_key)
            except DecryptionFailedError as e:
                raise type(e)(e.message, reference=name, suggestion=e.suggestion) from e

        log.info("document_decrypted", entries=len(result))
        return result
