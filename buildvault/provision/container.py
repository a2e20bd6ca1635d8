"""Binary layout of encrypted profile archives.

All integers are big-endian::

    offset  size  field
    0       4     magic "BVAR"
    4       1     format version (1)
    5       16    PBKDF2 salt
    21      4     PBKDF2 iteration count (uint32)
    25      12    IV / GCM nonce
    37      32    key check (HMAC-SHA256 under the derived check key)
    69      n     ciphertext followed by the 16-byte GCM tag

The header is self-describing, so recovering the files needs nothing but
the passphrase. The whole header is authenticated as associated data.
"""

import os
import struct
import tempfile
from dataclasses import dataclass, field
from pathlib import Path

from buildvault.exceptions import ArchiveFormatError

MAGIC = b"BVAR"
FORMAT_VERSION = 1
SALT_SIZE = 16
IV_SIZE = 12
KEY_CHECK_SIZE = 32
TAG_SIZE = 16

_HEADER = struct.Struct(f">4sB{SALT_SIZE}sI{IV_SIZE}s{KEY_CHECK_SIZE}s")
HEADER_SIZE = _HEADER.size


@dataclass(frozen=True)
class ArchiveContainer:
    """An encrypted archive: key derivation parameters plus ciphertext."""

    salt: bytes
    iterations: int
    iv: bytes
    key_check: bytes = field(repr=False)
    ciphertext: bytes = field(repr=False)
    version: int = FORMAT_VERSION

    def header(self) -> bytes:
        return _HEADER.pack(MAGIC, self.version, self.salt, self.iterations, self.iv, self.key_check)

    def to_bytes(self) -> bytes:
        return self.header() + self.ciphertext

    @classmethod
    def from_bytes(cls, data: bytes, path: str | None = None) -> "ArchiveContainer":
        """Parse a container.

        Raises:
            ArchiveFormatError: If the magic, version or lengths are wrong
        """
        if len(data) < HEADER_SIZE + TAG_SIZE:
            raise ArchiveFormatError("Archive is truncated or not a buildvault archive", path=path)

        magic, version, salt, iterations, iv, key_check = _HEADER.unpack_from(data)
        if magic != MAGIC:
            raise ArchiveFormatError("Not a buildvault archive (bad magic bytes)", path=path)
        if version != FORMAT_VERSION:
            raise ArchiveFormatError(
                f"Unsupported archive format version {version}",
                path=path,
                suggestion="Upgrade buildvault to a release that supports this format",
            )

        return cls(
            salt=salt,
            iterations=iterations,
            iv=iv,
            key_check=key_check,
            ciphertext=data[HEADER_SIZE:],
            version=version,
        )


def read_container(path: Path) -> ArchiveContainer:
    """Read and parse a container file; the file is read once."""
    return ArchiveContainer.from_bytes(path.read_bytes(), path=str(path))


def write_container(container: ArchiveContainer, path: Path) -> int:
    """Write a container atomically and return its size in bytes."""
    data = container.to_bytes()
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        tmp_path.replace(path)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise
    return len(data)
