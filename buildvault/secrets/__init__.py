"""Per-value asymmetric protection of named secrets.

Key Components:
    - AsymmetricSecretVault: Seal and open values with X25519 key pairs
    - ObfuscatedCodeGenerator: Turn decrypted secrets into obfuscated source
    - ValidationEngine: Structural checks that never need a private key
    - SecretsService: File layout of per-environment secret documents
"""

from .document import load_document, parse_document, save_document, serialize_document
from .generator import GeneratedSourceUnit, ObfuscatedCodeGenerator, filter_by_prefixes, to_identifier
from .models import Ciphertext, KeyPair, Plaintext, SecretDocument, SecretValue
from .obfuscation import deobfuscate, obfuscate
from .service import CreatedEnvironment, SecretsService
from .validation import Severity, ValidationEngine, ValidationIssue, ValidationResult
from .vault import AsymmetricSecretVault

__all__ = [
    "AsymmetricSecretVault",
    "Ciphertext",
    "CreatedEnvironment",
    "GeneratedSourceUnit",
    "KeyPair",
    "ObfuscatedCodeGenerator",
    "Plaintext",
    "SecretDocument",
    "SecretValue",
    "SecretsService",
    "Severity",
    "ValidationEngine",
    "ValidationIssue",
    "ValidationResult",
    "deobfuscate",
    "filter_by_prefixes",
    "load_document",
    "obfuscate",
    "parse_document",
    "save_document",
    "serialize_document",
    "to_identifier",
]
