"""Provisioning profile workflows: encrypt, decrypt, list, install and clean up.

The service maps configured paths onto the archive vault. Passphrases are
passed in explicitly; resolving them is the caller's job.
"""

import filecmp
import shutil
from dataclasses import dataclass, field
from pathlib import Path

import structlog

from buildvault.config import ProvisionConfig
from buildvault.exceptions import InstallError, NoFilesFoundError, ProvisionError

from .container import read_container, write_container
from .vault import SymmetricArchiveVault, collect_files

log = structlog.get_logger(__name__)


@dataclass
class EncryptResult:
    """Result of encrypting profiles."""

    archive_path: str
    archive_size: int
    profile_names: list[str] = field(default_factory=list)

    @property
    def profile_count(self) -> int:
        return len(self.profile_names)


@dataclass
class DecryptResult:
    """Result of decrypting profiles."""

    extract_path: str
    profile_names: list[str] = field(default_factory=list)

    @property
    def profile_count(self) -> int:
        return len(self.profile_names)


@dataclass
class InstallResult:
    """Result of installing profiles; identical profiles are skipped."""

    installed: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)


@dataclass
class CleanupResult:
    removed_paths: list[str] = field(default_factory=list)


class ProvisionService:
    """Manage the encrypted provisioning profile archive of a project.

    Example:
        >>> service = ProvisionService(Path.cwd(), settings.require_provision())
        >>> result = service.encrypt_profiles(passphrase)
        >>> result.profile_count
        2
    """

    def __init__(
        self,
        working_dir: Path,
        config: ProvisionConfig,
        vault: SymmetricArchiveVault | None = None,
    ) -> None:
        self.working_dir = working_dir
        self.config = config
        self.vault = vault or SymmetricArchiveVault()

    def resolve_path(self, path: str) -> Path:
        candidate = Path(path).expanduser()
        return candidate if candidate.is_absolute() else self.working_dir / candidate

    @property
    def archive_path(self) -> Path:
        return self.resolve_path(self.config.archive_path)

    @property
    def extract_path(self) -> Path:
        return self.resolve_path(self.config.extract_path)

    @property
    def install_path(self) -> Path:
        return self.resolve_path(self.config.install_path)

    def source_path(self, override: str | None = None) -> Path:
        return self.resolve_path(override or self.config.source_path)

    def find_profiles(self, directory: Path) -> list[str]:
        """Names of the profiles directly inside a directory."""
        return sorted(collect_files(directory, self.config.pattern))

    def _require_archive(self) -> Path:
        path = self.archive_path
        if not path.is_file():
            raise ProvisionError(
                f"Encrypted profile archive not found at: {self.config.archive_path}",
                suggestion="Create one with: buildvault provision encrypt",
            )
        return path

    def encrypt_profiles(self, passphrase: str, source: str | None = None) -> EncryptResult:
        """Encrypt the source profiles into the configured archive."""
        files = collect_files(self.source_path(source), self.config.pattern)
        container = self.vault.encrypt_files(files, passphrase)
        size = write_container(container, self.archive_path)
        log.info("profiles_encrypted", count=len(files), archive=self.config.archive_path)
        return EncryptResult(
            archive_path=self.config.archive_path,
            archive_size=size,
            profile_names=sorted(files),
        )

    def decrypt_profiles(self, passphrase: str) -> DecryptResult:
        """Decrypt the archive into the extraction directory."""
        container = read_container(self._require_archive())
        names = self.vault.extract_archive(container, passphrase, self.extract_path)
        return DecryptResult(extract_path=self.config.extract_path, profile_names=names)

    def list_profiles(self, passphrase: str) -> list[str]:
        """Names inside the archive. Decrypts fully, writes nothing."""
        container = read_container(self._require_archive())
        return self.vault.list_archive_contents(container, passphrase)

    def install_profiles(self) -> InstallResult:
        """Copy extracted profiles into the system profile directory.

        Raises:
            ProvisionError: If nothing has been extracted yet
            InstallError: If copying a profile fails
        """
        source = self.extract_path
        if not source.is_dir():
            raise ProvisionError(
                f"Decrypted profiles not found at: {self.config.extract_path}",
                suggestion="Run: buildvault provision decrypt",
            )
        try:
            profiles = self.find_profiles(source)
        except NoFilesFoundError as e:
            raise NoFilesFoundError(e.message, suggestion="Run: buildvault provision decrypt") from e

        target = self.install_path
        result = InstallResult()
        try:
            target.mkdir(parents=True, exist_ok=True)
            for name in profiles:
                destination = target / name
                if destination.is_file() and filecmp.cmp(source / name, destination, shallow=False):
                    result.skipped.append(name)
                    continue
                shutil.copyfile(source / name, destination)
                result.installed.append(name)
        except OSError as e:
            raise InstallError(
                f"Failed to install provisioning profiles: {e}",
                suggestion=f"Check that {target} is writable",
            ) from e

        log.info("profiles_installed", installed=len(result.installed), skipped=len(result.skipped))
        return result

    def cleanup(self) -> CleanupResult:
        """Remove the extraction directory."""
        result = CleanupResult()
        path = self.extract_path
        if path.exists():
            shutil.rmtree(path)
            result.removed_paths.append(self.config.extract_path)
        log.info("profiles_cleaned_up", removed=len(result.removed_paths))
        return result
