"""Unit tests for buildvault/cli/provision.py - Provisioning profile CLI."""

import shutil
from unittest.mock import patch

import pytest

from buildvault.main import cli
from buildvault.provision import SymmetricArchiveVault

PASSPHRASE = "archive-passphrase"


@pytest.fixture(autouse=True)
def fast_vault():
    """Keep key derivation at the minimum iteration count."""
    with patch("buildvault.provision.service.SymmetricArchiveVault", lambda: SymmetricArchiveVault(iterations=100_000)):
        yield


@pytest.fixture
def project(project_dir, profile_dir):
    shutil.copytree(profile_dir, project_dir / "provision" / "source")
    return project_dir


@pytest.fixture
def run(cli_runner, project, cli_keyring):
    def invoke(*args):
        return cli_runner.invoke(cli, ["--working-dir", str(project), "provision", *args])

    return invoke


class TestEncrypt:
    def test_encrypt_with_environment_password(self, run, project, monkeypatch):
        monkeypatch.setenv("PROVISION_PASSWORD", PASSPHRASE)

        result = run("encrypt")

        assert result.exit_code == 0
        assert "Encrypted 2 profile(s)" in result.output
        assert "- AppStore.mobileprovision" in result.output
        assert "notes.txt" not in result.output
        assert (project / "provision" / "profiles.zip.enc").is_file()

    def test_dry_run_needs_no_password(self, run, project):
        result = run("encrypt", "--dry-run")

        assert result.exit_code == 0
        assert "Would encrypt 2 profile(s) into provision/profiles.zip.enc" in result.output
        assert not (project / "provision" / "profiles.zip.enc").exists()

    def test_missing_password(self, run):
        result = run("encrypt")

        assert result.exit_code == 1
        assert "PROVISION_PASSWORD_DEFAULT" in result.output

    def test_scoped_password(self, run, monkeypatch):
        monkeypatch.setenv("PROVISION_PASSWORD_RELEASE", PASSPHRASE)

        result = run("--scope", "release", "encrypt")

        assert result.exit_code == 0

    def test_keyring_password(self, run, cli_keyring):
        cli_keyring.entries[("buildvault.provision.TestApp", "default")] = PASSPHRASE

        result = run("encrypt")

        assert result.exit_code == 0

    def test_provision_disabled(self, cli_runner, tmp_path, cli_keyring):
        (tmp_path / "buildvault.yml").write_text("app_name: TestApp\n")

        result = cli_runner.invoke(cli, ["--working-dir", str(tmp_path), "provision", "encrypt"])

        assert result.exit_code == 1
        assert "not enabled" in result.output


class TestDecryptWorkflow:
    @pytest.fixture(autouse=True)
    def encrypted(self, run, monkeypatch):
        monkeypatch.setenv("PROVISION_PASSWORD", PASSPHRASE)
        assert run("encrypt").exit_code == 0

    def test_list(self, run, project):
        result = run("list")

        assert result.exit_code == 0
        assert "- Development.mobileprovision" in result.output
        assert not (project / "provision" / "profiles").exists()

    def test_decrypt_install_cleanup(self, run, project):
        decrypted = run("decrypt")
        installed = run("install")
        reinstalled = run("install")
        cleaned = run("cleanup")

        assert decrypted.exit_code == 0
        assert "Decrypted 2 profile(s) to provision/profiles/" in decrypted.output
        assert installed.exit_code == 0
        assert "2 installed, 0 skipped" in installed.output
        assert (project / "installed" / "AppStore.mobileprovision").is_file()
        assert "0 installed, 2 skipped" in reinstalled.output
        assert "Removed: provision/profiles/" in cleaned.output
        assert not (project / "provision" / "profiles").exists()

    def test_decrypt_dry_run(self, run, project):
        result = run("decrypt", "--dry-run")

        assert result.exit_code == 0
        assert "Would extract 2 profile(s)" in result.output
        assert not (project / "provision" / "profiles").exists()

    def test_wrong_password(self, run, project, monkeypatch):
        monkeypatch.setenv("PROVISION_PASSWORD", "not-the-passphrase")

        result = run("decrypt")

        assert result.exit_code == 1
        assert "Wrong password" in result.output
        assert not (project / "provision" / "profiles").exists()

    def test_tampered_archive(self, run, project):
        archive = project / "provision" / "profiles.zip.enc"
        data = bytearray(archive.read_bytes())
        data[-1] ^= 0x01
        archive.write_bytes(bytes(data))

        result = run("decrypt")

        assert result.exit_code == 1
        assert "Integrity check failed" in result.output


class TestWithoutArchive:
    def test_decrypt_missing_archive(self, run, monkeypatch):
        monkeypatch.setenv("PROVISION_PASSWORD", PASSPHRASE)

        result = run("decrypt")

        assert result.exit_code == 1
        assert "buildvault provision encrypt" in result.output

    def test_install_before_decrypt(self, run):
        result = run("install")

        assert result.exit_code == 1
        assert "buildvault provision decrypt" in result.output

    def test_cleanup_nothing(self, run):
        result = run("cleanup")

        assert result.exit_code == 0
        assert "Nothing to clean up" in result.output
