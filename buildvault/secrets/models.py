"""Domain models for per-value secret protection.

A secret document holds one environment's secrets: the public key every
value is sealed to, and an open set of named values that are either still
plaintext or already sealed.

Example:
    Building a document by hand::

        document = SecretDocument(
            public_key="9f2c...e41a",
            entries={
                "all_api_key": Plaintext("sk_live_123"),
                "ios_token": Ciphertext(version=1, payload="..."),
            },
        )
        document.plaintext_names  # ["all_api_key"]
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

PUBLIC_KEY_FIELD = "_public_key"
"""Document field holding the hex-encoded public key."""

CIPHERTEXT_MARKER = "SV"
"""Literal that starts every sealed value, followed by ``[<version>:``."""

CURRENT_VERSION = 1
"""Only sealed-value format version currently defined."""

KEY_SIZE = 32
"""Raw size in bytes of both halves of a key pair."""


@dataclass(frozen=True)
class Plaintext:
    """A secret value that has not been sealed yet."""

    text: str


@dataclass(frozen=True)
class Ciphertext:
    """A sealed secret value.

    ``payload`` is opaque to everything but the vault; ``version`` selects
    how the vault interprets it.
    """

    version: int
    payload: str

    def serialize(self) -> str:
        """Render the at-rest form, e.g. ``SV[1:<payload>]``."""
        return f"{CIPHERTEXT_MARKER}[{self.version}:{self.payload}]"


SecretValue = Plaintext | Ciphertext


@dataclass
class SecretDocument:
    """One environment's secrets file in memory.

    Attributes:
        public_key: Hex-encoded public key values are sealed to
        entries: Secret name to value; names are unique, order is irrelevant
        extra: Non-string fields found in the file, preserved untouched
    """

    public_key: str
    entries: dict[str, SecretValue] = field(default_factory=dict)
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def plaintext_names(self) -> list[str]:
        return sorted(name for name, value in self.entries.items() if isinstance(value, Plaintext))

    @property
    def encrypted_names(self) -> list[str]:
        return sorted(name for name, value in self.entries.items() if isinstance(value, Ciphertext))

    @property
    def is_mixed(self) -> bool:
        """True when the document holds both plaintext and sealed values."""
        return bool(self.plaintext_names) and bool(self.encrypted_names)


@dataclass(frozen=True)
class KeyPair:
    """A freshly generated key pair.

    The private key is excluded from ``repr``; persisting it is always an
    explicit choice of the caller.
    """

    public_key: bytes
    private_key: bytes = field(repr=False)

    @property
    def public_key_hex(self) -> str:
        return self.public_key.hex()

    @property
    def private_key_hex(self) -> str:
        return self.private_key.hex()
