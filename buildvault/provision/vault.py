"""Passphrase-based encryption of whole directories of opaque files.

Security Model:
- Key derivation: PBKDF2-HMAC-SHA256 over the passphrase with a fresh
  16-byte salt per archive, 480,000 iterations by default
- The derived 64 bytes split into a 32-byte AES key and a 32-byte
  key-check key; the HMAC of a fixed label under the check key is stored
  in the header
- Cipher: AES-256-GCM with a fresh 96-bit IV, header as associated data

The key check is what tells a wrong passphrase (``WrongPasswordError``)
apart from a modified archive (``IntegrityCheckFailedError``). A modified
salt or iteration count changes the derived keys and therefore also reports
``WrongPasswordError``.

Payload:
    A deterministic ZIP of the selected files (sorted names, fixed
    timestamps), so encrypting the same files twice yields the same
    plaintext. Archives are flat; nested paths are rejected on extraction.
"""

import fnmatch
import io
import os
import tempfile
import zipfile
import zlib
from pathlib import Path

import structlog
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes, hmac
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from buildvault.exceptions import (
    ArchiveFormatError,
    NoFilesFoundError,
    ProvisionError,
    WrongPasswordError,
)

from .cipher import AesGcmCipher, SymmetricCipher
from .container import IV_SIZE, SALT_SIZE, ArchiveContainer

log = structlog.get_logger(__name__)

DEFAULT_ITERATIONS = 480_000
MIN_ITERATIONS = 100_000
MAX_ITERATIONS = 10_000_000
KEY_SIZE = 32
KEY_CHECK_LABEL = b"buildvault-archive-key-check-v1"
ZIP_TIMESTAMP = (1980, 1, 1, 0, 0, 0)


def _derive_keys(passphrase: str, salt: bytes, iterations: int) -> tuple[bytes, bytes]:
    material = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=KEY_SIZE * 2,
        salt=salt,
        iterations=iterations,
    ).derive(passphrase.encode("utf-8"))
    return material[:KEY_SIZE], material[KEY_SIZE:]


def _key_check_mac(check_key: bytes) -> hmac.HMAC:
    mac = hmac.HMAC(check_key, hashes.SHA256())
    mac.update(KEY_CHECK_LABEL)
    return mac


def pack_files(files: dict[str, bytes]) -> bytes:
    """Build a deterministic ZIP from name -> content."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        for name in sorted(files):
            info = zipfile.ZipInfo(name, date_time=ZIP_TIMESTAMP)
            info.compress_type = zipfile.ZIP_DEFLATED
            info.external_attr = 0o644 << 16
            archive.writestr(info, files[name])
    return buffer.getvalue()


def _check_member_name(name: str) -> None:
    if not name or "/" in name or "\\" in name or name in (".", ".."):
        raise ArchiveFormatError(f"Archive contains a non-flat entry '{name}'")


def unpack_files(data: bytes) -> dict[str, bytes]:
    """Read every member of a flat ZIP.

    Raises:
        ArchiveFormatError: If the bytes are not a valid flat ZIP
    """
    try:
        with zipfile.ZipFile(io.BytesIO(data)) as archive:
            files: dict[str, bytes] = {}
            for info in archive.infolist():
                _check_member_name(info.filename)
                if info.filename in files:
                    raise ArchiveFormatError(f"Archive contains duplicate entry '{info.filename}'")
                files[info.filename] = archive.read(info)
    except (zipfile.BadZipFile, zlib.error, EOFError) as e:
        raise ArchiveFormatError(f"Decrypted payload is not a valid archive ({e})") from e
    return files


def collect_files(source_dir: Path, pattern: str = "*") -> dict[str, bytes]:
    """Read the regular files directly inside ``source_dir`` matching ``pattern``.

    Subdirectories and symlinks are skipped.

    Raises:
        ProvisionError: If ``source_dir`` is not a directory
        NoFilesFoundError: If nothing matched
    """
    if not source_dir.is_dir():
        raise ProvisionError(
            f"Source directory not found: {source_dir}",
            suggestion=f"Create it and add the files to archive:\n  mkdir -p {source_dir}",
        )

    selected = sorted(
        entry
        for entry in source_dir.iterdir()
        if fnmatch.fnmatch(entry.name, pattern) and entry.is_file() and not entry.is_symlink()
    )
    if not selected:
        raise NoFilesFoundError(
            f"No files matching '{pattern}' found in: {source_dir}",
            suggestion="Add the files to the source directory",
        )
    return {entry.name: entry.read_bytes() for entry in selected}


class SymmetricArchiveVault:
    """Encrypt directories into passphrase-protected archives and back.

    Example:
        >>> vault = SymmetricArchiveVault()
        >>> container = vault.encrypt_directory(Path("provision/source"), "s3cret")
        >>> vault.list_archive_contents(container, "s3cret")
        ['AppStore.mobileprovision', 'Development.mobileprovision']
    """

    def __init__(self, cipher: SymmetricCipher | None = None, iterations: int = DEFAULT_ITERATIONS) -> None:
        """Initialize the vault.

        Args:
            cipher: Authenticated cipher (defaults to AES-256-GCM)
            iterations: PBKDF2 iteration count for new archives

        Raises:
            ValueError: If ``iterations`` is outside 100,000 to 10,000,000
        """
        if not MIN_ITERATIONS <= iterations <= MAX_ITERATIONS:
            raise ValueError(f"iterations must be between {MIN_ITERATIONS} and {MAX_ITERATIONS}, got {iterations}")
        self.cipher: SymmetricCipher = cipher or AesGcmCipher()
        self.iterations = iterations

    def encrypt_files(self, files: dict[str, bytes], passphrase: str) -> ArchiveContainer:
        """Encrypt an in-memory file set."""
        if not passphrase:
            raise ValueError("Passphrase cannot be empty")
        for name in files:
            _check_member_name(name)

        salt = os.urandom(SALT_SIZE)
        iv = os.urandom(IV_SIZE)
        key, check_key = _derive_keys(passphrase, salt, self.iterations)
        unsealed = ArchiveContainer(
            salt=salt,
            iterations=self.iterations,
            iv=iv,
            key_check=_key_check_mac(check_key).finalize(),
            ciphertext=b"",
        )
        ciphertext = self.cipher.encrypt(key, iv, pack_files(files), unsealed.header())

        log.info("archive_encrypted", files=len(files), cipher=self.cipher.name)
        return ArchiveContainer(
            salt=salt,
            iterations=self.iterations,
            iv=iv,
            key_check=unsealed.key_check,
            ciphertext=ciphertext,
        )

    def encrypt_directory(self, source_dir: Path, passphrase: str, pattern: str = "*") -> ArchiveContainer:
        """Archive and encrypt the matching regular files of a directory.

        Raises:
            ProvisionError: If the directory does not exist
            NoFilesFoundError: If no file matches ``pattern``
        """
        return self.encrypt_files(collect_files(source_dir, pattern), passphrase)

    def decrypt_archive(self, container: ArchiveContainer, passphrase: str) -> dict[str, bytes]:
        """Decrypt a container into name -> content, entirely in memory.

        Raises:
            WrongPasswordError: If the passphrase fails the key check
            IntegrityCheckFailedError: If the passphrase is right but the
                archive was modified
            ArchiveFormatError: If the header or payload is malformed
        """
        if container.iterations < MIN_ITERATIONS:
            raise ArchiveFormatError(f"Archive declares too few key derivation iterations ({container.iterations})")
        if container.iterations > MAX_ITERATIONS:
            raise ArchiveFormatError(f"Archive declares too many key derivation iterations ({container.iterations})")

        key, check_key = _derive_keys(passphrase, container.salt, container.iterations)
        try:
            _key_check_mac(check_key).verify(container.key_check)
        except InvalidSignature as e:
            raise WrongPasswordError(
                "Wrong password for encrypted archive",
                suggestion="Check PROVISION_PASSWORD or the keyring entry and try again",
            ) from e

        payload = self.cipher.decrypt(key, container.iv, container.ciphertext, container.header())
        files = unpack_files(payload)
        log.info("archive_decrypted", files=len(files))
        return files

    def list_archive_contents(self, container: ArchiveContainer, passphrase: str) -> list[str]:
        """File names in an archive.

        This performs the full key derivation and decryption; only the file
        contents are discarded.
        """
        return sorted(self.decrypt_archive(container, passphrase))

    def extract_archive(self, container: ArchiveContainer, passphrase: str, target_dir: Path) -> list[str]:
        """Decrypt and write every file into ``target_dir``.

        The archive is fully decrypted and verified before anything is
        written. Each file is written to a temporary name and renamed into
        place; if any write fails, files already written by this call are
        removed before the error propagates.

        Returns:
            Sorted names of the extracted files
        """
        files = self.decrypt_archive(container, passphrase)
        target_dir.mkdir(parents=True, exist_ok=True)

        written: list[Path] = []
        try:
            for name in sorted(files):
                destination = target_dir / name
                fd, tmp_name = tempfile.mkstemp(dir=target_dir, prefix=f".{name}.", suffix=".tmp")
                tmp_path = Path(tmp_name)
                try:
                    with os.fdopen(fd, "wb") as f:
                        f.write(files[name])
                    tmp_path.replace(destination)
                except BaseException:
                    tmp_path.unlink(missing_ok=True)
                    raise
                written.append(destination)
        except BaseException:
            for path in written:
                path.unlink(missing_ok=True)
            log.warning("archive_extraction_rolled_back", target=str(target_dir), removed=len(written))
            raise

        log.info("archive_extracted", target=str(target_dir), files=len(written))
        return sorted(files)
