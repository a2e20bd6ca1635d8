"""Tests for buildvault/provision/service.py - profile archive workflows."""

from pathlib import Path

import pytest

from buildvault.config import ProvisionConfig
from buildvault.exceptions import InstallError, NoFilesFoundError, ProvisionError, WrongPasswordError
from buildvault.provision import ProvisionService

PASSPHRASE = "profile-passphrase"
PROFILES = ["AppStore.mobileprovision", "Development.mobileprovision"]


@pytest.fixture
def service(tmp_path, profile_dir, archive_vault):
    config = ProvisionConfig(
        enabled=True,
        source_path="source",
        install_path=str(tmp_path / "installed"),
    )
    return ProvisionService(tmp_path, config, vault=archive_vault)


class TestPaths:
    def test_relative_paths_resolve_against_working_dir(self, service, tmp_path):
        assert service.archive_path == tmp_path / "provision" / "profiles.zip.enc"
        assert service.extract_path == tmp_path / "provision" / "profiles"
        assert service.source_path() == tmp_path / "source"

    def test_source_override(self, service, tmp_path):
        assert service.source_path("elsewhere") == tmp_path / "elsewhere"

    def test_home_expanded(self, tmp_path):
        service = ProvisionService(tmp_path, ProvisionConfig())

        assert service.install_path == Path.home() / "Library/MobileDevice/Provisioning Profiles"


class TestEncrypt:
    def test_encrypts_only_matching_profiles(self, service):
        result = service.encrypt_profiles(PASSPHRASE)

        assert result.profile_names == PROFILES
        assert result.profile_count == 2
        assert result.archive_path == "provision/profiles.zip.enc"
        assert service.archive_path.stat().st_size == result.archive_size

    def test_missing_source(self, service):
        with pytest.raises(ProvisionError, match="Source directory not found"):
            service.encrypt_profiles(PASSPHRASE, source="missing")

    def test_no_profiles(self, service, tmp_path):
        (tmp_path / "empty").mkdir()

        with pytest.raises(NoFilesFoundError):
            service.encrypt_profiles(PASSPHRASE, source="empty")


class TestDecrypt:
    def test_round_trip(self, service, profile_dir):
        service.encrypt_profiles(PASSPHRASE)

        result = service.decrypt_profiles(PASSPHRASE)

        assert result.profile_names == PROFILES
        for name in PROFILES:
            assert (service.extract_path / name).read_bytes() == (profile_dir / name).read_bytes()

    def test_missing_archive(self, service):
        with pytest.raises(ProvisionError) as exc_info:
            service.decrypt_profiles(PASSPHRASE)

        assert "buildvault provision encrypt" in exc_info.value.suggestion

    def test_wrong_password_extracts_nothing(self, service):
        service.encrypt_profiles(PASSPHRASE)

        with pytest.raises(WrongPasswordError):
            service.decrypt_profiles("nope")

        assert not service.extract_path.exists()

    def test_list_writes_nothing(self, service):
        service.encrypt_profiles(PASSPHRASE)

        assert service.list_profiles(PASSPHRASE) == PROFILES
        assert not service.extract_path.exists()


class TestInstall:
    def test_requires_decrypted_profiles(self, service):
        with pytest.raises(ProvisionError, match="Decrypted profiles not found"):
            service.install_profiles()

    def test_empty_extract_dir(self, service):
        service.extract_path.mkdir(parents=True)

        with pytest.raises(NoFilesFoundError) as exc_info:
            service.install_profiles()

        assert exc_info.value.suggestion == "Run: buildvault provision decrypt"

    def test_installs_then_skips_identical(self, service):
        service.encrypt_profiles(PASSPHRASE)
        service.decrypt_profiles(PASSPHRASE)

        first = service.install_profiles()
        second = service.install_profiles()

        assert first.installed == PROFILES
        assert first.skipped == []
        assert second.installed == []
        assert second.skipped == PROFILES

    def test_changed_profile_reinstalled(self, service):
        service.encrypt_profiles(PASSPHRASE)
        service.decrypt_profiles(PASSPHRASE)
        service.install_profiles()
        (service.install_path / "AppStore.mobileprovision").write_bytes(b"stale")

        result = service.install_profiles()

        assert result.installed == ["AppStore.mobileprovision"]
        assert result.skipped == ["Development.mobileprovision"]

    def test_copy_failure_is_install_error(self, service, tmp_path):
        service.encrypt_profiles(PASSPHRASE)
        service.decrypt_profiles(PASSPHRASE)
        service.install_path.parent.mkdir(parents=True, exist_ok=True)
        service.install_path.write_text("a file, not a directory")

        with pytest.raises(InstallError):
            service.install_profiles()


class TestCleanup:
    def test_removes_extract_dir(self, service):
        service.encrypt_profiles(PASSPHRASE)
        service.decrypt_profiles(PASSPHRASE)

        result = service.cleanup()

        assert result.removed_paths == ["provision/profiles/"]
        assert not service.extract_path.exists()

    def test_nothing_to_remove(self, service):
        assert service.cleanup().removed_paths == []
