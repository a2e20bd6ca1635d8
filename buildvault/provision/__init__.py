"""Whole-archive symmetric protection for provisioning profiles.

Key Components:
    - SymmetricArchiveVault: PBKDF2 + AES-256-GCM over a deterministic ZIP
    - ArchiveContainer: Self-describing binary container format
    - ProvisionService: Encrypt, decrypt, list, install and clean up profiles
"""

from .cipher import AesGcmCipher, SymmetricCipher
from .container import ArchiveContainer, read_container, write_container
from .service import CleanupResult, DecryptResult, EncryptResult, InstallResult, ProvisionService
from .vault import DEFAULT_ITERATIONS, MAX_ITERATIONS, MIN_ITERATIONS, SymmetricArchiveVault

__all__ = [
    "DEFAULT_ITERATIONS",
    "MAX_ITERATIONS",
    "MIN_ITERATIONS",
    "AesGcmCipher",
    "ArchiveContainer",
    "CleanupResult",
    "DecryptResult",
    "EncryptResult",
    "InstallResult",
    "ProvisionService",
    "SymmetricArchiveVault",
    "SymmetricCipher",
    "read_container",
    "write_container",
]
