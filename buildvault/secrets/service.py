"""Secret document workflows over the ``<environments_dir>/<scope>/keys.json`` layout.

The vault, generator and validator work on in-memory documents; this
service owns the file layout around them: locating documents per scope,
creating new environments, encrypting in place and writing generated
source files.
"""

import os
import tempfile
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

import structlog

from buildvault.exceptions import ConfigurationError

from .document import load_document, save_document
from .generator import GeneratedSourceUnit, ObfuscatedCodeGenerator, OutputTarget
from .models import KeyPair, SecretDocument
from .validation import ValidationEngine, ValidationResult
from .vault import AsymmetricSecretVault

log = structlog.get_logger(__name__)

DOCUMENT_NAME = "keys.json"


@dataclass
class CreatedEnvironment:
    """A freshly created environment and its key pair."""

    scope: str
    path: Path
    key_pair: KeyPair


class SecretsService:
    """File-level secret operations for one project.

    Example:
        >>> service = SecretsService(Path.cwd())
        >>> created = service.create_environment("dev")
        >>> service.document_path("dev")
        PosixPath('.../env/dev/keys.json')
    """

    def __init__(
        self,
        working_dir: Path,
        environments_dir: str = "env",
        vault: AsymmetricSecretVault | None = None,
        generator: ObfuscatedCodeGenerator | None = None,
        validator: ValidationEngine | None = None,
    ) -> None:
        self.working_dir = working_dir
        self.environments_dir = working_dir / environments_dir
        self.vault = vault or AsymmetricSecretVault()
        self.generator = generator or ObfuscatedCodeGenerator()
        self.validator = validator or ValidationEngine()

    def resolve_path(self, path: str) -> Path:
        """Resolve a configured path against the working directory."""
        candidate = Path(path).expanduser()
        return candidate if candidate.is_absolute() else self.working_dir / candidate

    def document_path(self, scope: str) -> Path:
        return self.environments_dir / scope / DOCUMENT_NAME

    def relative(self, path: Path) -> str:
        """Display form of a path, relative to the working directory when possible."""
        try:
            return str(path.relative_to(self.working_dir))
        except ValueError:
            return str(path)

    def list_environments(self) -> list[str]:
        """Scopes that have a secret document, sorted by name."""
        if not self.environments_dir.is_dir():
            return []
        return sorted(
            entry.name
            for entry in self.environments_dir.iterdir()
            if entry.is_dir() and (entry / DOCUMENT_NAME).is_file()
        )

    def load(self, scope: str) -> SecretDocument:
        return load_document(self.document_path(scope))

    def save(self, scope: str, document: SecretDocument) -> Path:
        path = self.document_path(scope)
        save_document(document, path)
        return path

    def create_environment(self, scope: str, force: bool = False) -> CreatedEnvironment:
        """Generate a key pair and write a document holding only its public key.

        The private key is returned to the caller and never written to disk.

        Raises:
            ConfigurationError: If the environment exists and ``force`` is False
        """
        path = self.document_path(scope)
        if path.exists() and not force:
            raise ConfigurationError(
                f"Environment '{scope}' already exists at {self.relative(path)}",
                suggestion="Use --force to overwrite",
            )

        key_pair = self.vault.generate_key_pair()
        self.save(scope, SecretDocument(public_key=key_pair.public_key_hex))
        log.info("environment_created", scope=scope, path=self.relative(path))
        return CreatedEnvironment(scope=scope, path=path, key_pair=key_pair)

    def encrypt_environment(self, scope: str) -> Path:
        """Seal every plaintext value of one environment in place."""
        path = self.document_path(scope)
        document = load_document(path)
        if document.plaintext_names:
            save_document(self.vault.encrypt_document(document), path)
        log.info("environment_encrypted", scope=scope, sealed=len(document.plaintext_names))
        return path

    def encrypt_all_environments(self) -> list[Path]:
        """Encrypt every environment; stops at the first failure."""
        return [self.encrypt_environment(scope) for scope in self.list_environments()]

    def decrypt_environment(self, scope: str, private_key: str) -> dict[str, str]:
        """Decrypt one environment in memory. Nothing is written."""
        return self.vault.decrypt_document(self.load(scope), private_key)

    def validate_environment(self, scope: str) -> ValidationResult:
        return self.validator.validate_file(self.document_path(scope))

    def validate_all_environments(self) -> dict[str, ValidationResult]:
        """Validate every environment, aggregating results per scope."""
        return {scope: self.validate_environment(scope) for scope in self.list_environments()}

    def generate_sources(
        self,
        scope: str,
        private_key: str,
        outputs: Iterable[OutputTarget],
    ) -> list[GeneratedSourceUnit]:
        """Decrypt an environment and render one unit per output target."""
        secrets = self.decrypt_environment(scope, private_key)
        return self.generator.generate_units(secrets, outputs, scope)

    def write_unit(self, unit: GeneratedSourceUnit) -> Path:
        """Write a generated unit atomically, creating parent directories."""
        path = self.resolve_path(unit.path)
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(unit.text)
            tmp_path.replace(path)
        except BaseException:
            tmp_path.unlink(missing_ok=True)
            raise
        log.info("source_written", path=unit.path)
        return path
