"""Pytest configuration and shared fixtures."""

import os
from pathlib import Path
from unittest.mock import patch

import pytest
import structlog
from click.testing import CliRunner

from buildvault.config import BuildVaultSettings
from buildvault.credentials import EnvironmentBackend
from buildvault.provision import SymmetricArchiveVault
from buildvault.secrets import AsymmetricSecretVault, KeyPair

FAST_ITERATIONS = 100_000


class InMemoryStore:
    """Credential store double backed by a dict."""

    def __init__(self, available: bool = True) -> None:
        self.entries: dict[tuple[str, str], str] = {}
        self._available = available

    @property
    def name(self) -> str:
        return "memory"

    @property
    def available(self) -> bool:
        return self._available

    def get(self, service: str, account: str) -> str | None:
        return self.entries.get((service, account))

    def set(self, service: str, account: str, value: str) -> None:
        if not value:
            raise ValueError("Credential value cannot be empty")
        self.entries[(service, account)] = value

    def delete(self, service: str, account: str) -> bool:
        return self.entries.pop((service, account), None) is not None


@pytest.fixture
def memory_store() -> InMemoryStore:
    """Empty in-memory credential store."""
    return InMemoryStore()


@pytest.fixture
def unavailable_store() -> InMemoryStore:
    """Store that reports itself unavailable, like keyring on a headless host."""
    return InMemoryStore(available=False)


@pytest.fixture
def empty_environment() -> EnvironmentBackend:
    """Environment backend that sees no variables."""
    return EnvironmentBackend({})


@pytest.fixture
def secret_vault() -> AsymmetricSecretVault:
    return AsymmetricSecretVault()


@pytest.fixture
def key_pair(secret_vault: AsymmetricSecretVault) -> KeyPair:
    """Fresh key pair for one test."""
    return secret_vault.generate_key_pair()


@pytest.fixture
def archive_vault() -> SymmetricArchiveVault:
    """Archive vault at the lowest allowed iteration count."""
    return SymmetricArchiveVault(iterations=FAST_ITERATIONS)


@pytest.fixture
def profile_dir(tmp_path: Path) -> Path:
    """Source directory with two profiles and one unrelated file."""
    source = tmp_path / "source"
    source.mkdir()
    (source / "AppStore.mobileprovision").write_bytes(b"\x00\x01appstore-profile\xff")
    (source / "Development.mobileprovision").write_bytes(b"development-profile")
    (source / "notes.txt").write_text("not a profile")
    return source


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    """Project directory with a buildvault.yml enabling secrets and provisioning."""
    project = tmp_path / "project"
    project.mkdir()
    (project / "buildvault.yml").write_text(
        "app_name: TestApp\n"
        "secrets:\n"
        "  outputs:\n"
        "    - path: generated/app_keys.py\n"
        "      prefixes: [all, ios]\n"
        "provision:\n"
        "  enabled: true\n"
        f"  install_path: {project / 'installed'}\n"
    )
    return project


@pytest.fixture
def settings(project_dir: Path) -> BuildVaultSettings:
    return BuildVaultSettings.from_yaml(project_dir / "buildvault.yml")


@pytest.fixture(autouse=True)
def reset_structlog():
    """Drop logging configuration bound to a CliRunner stream by a previous test."""
    yield
    structlog.reset_defaults()


@pytest.fixture
def cli_runner() -> CliRunner:
    """Create CLI runner for testing Click commands."""
    return CliRunner()


@pytest.fixture
def cli_keyring(memory_store: InMemoryStore, monkeypatch: pytest.MonkeyPatch):
    """Route CLI keyring access to an in-memory store and clear credential variables."""
    for name in list(os.environ):
        if name.startswith(("SECRETS_PRIVATE_KEY", "PROVISION_PASSWORD")):
            monkeypatch.delenv(name)
    with patch("buildvault.cli.common.KeyringBackend", return_value=memory_store):
        yield memory_store
