"""Symmetric cipher seam used by the archive vault."""

from typing import Protocol

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from buildvault.exceptions import IntegrityCheckFailedError


class SymmetricCipher(Protocol):
    """Authenticated symmetric encryption with caller-supplied key and IV."""

    @property
    def name(self) -> str: ...

    def encrypt(self, key: bytes, iv: bytes, plaintext: bytes, associated_data: bytes) -> bytes: ...

    def decrypt(self, key: bytes, iv: bytes, ciphertext: bytes, associated_data: bytes) -> bytes:
        """Decrypt and authenticate.

        Raises:
            IntegrityCheckFailedError: If the ciphertext, IV or associated
                data were modified
        """
        ...


class AesGcmCipher:
    """AES-256-GCM from the ``cryptography`` package."""

    @property
    def name(self) -> str:
        return "aes-256-gcm"

    def encrypt(self, key: bytes, iv: bytes, plaintext: bytes, associated_data: bytes) -> bytes:
        return AESGCM(key).encrypt(iv, plaintext, associated_data)

    def decrypt(self, key: bytes, iv: bytes, ciphertext: bytes, associated_data: bytes) -> bytes:
        try:
            return AESGCM(key).decrypt(iv, ciphertext, associated_data)
        except InvalidTag as e:
            raise IntegrityCheckFailedError(
                "Integrity check failed: the archive was modified or corrupted",
                suggestion="Re-encrypt the archive from the original profiles",
            ) from e
