"""Tests for TOML configuration loading."""

import pytest

from list_backup.config.loader import load_backup_config
from list_backup.config.models import BackupConfig, EngineSettings, StoreProfile

VALID_TOML = """
default_profile = "prod"

[profiles.prod]
site_url = "https://contoso.sharepoint.com/sites/TSS"
description = "Production"
created_by = "ops@example.com"

[profiles.dev]
provider = "local"
site_url = "https://contoso.sharepoint.com/sites/TSS-dev"
backup_dir = "/tmp/tss-backups"
token_env = "DEV_GRAPH_TOKEN"

[engine]
progress_interval = 50
"""


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "list-backup.toml"
    path.write_text(VALID_TOML)
    return path


class TestLoadBackupConfig:
    def test_loads_profiles(self, config_file):
        config = load_backup_config(config_file)

        assert isinstance(config, BackupConfig)
        assert config.default_profile == "prod"
        assert set(config.profiles) == {"prod", "dev"}

    def test_profile_defaults(self, config_file):
        prod = load_backup_config(config_file).profiles["prod"]

        assert prod.provider == "graph"
        assert prod.backup_library == "TSS_Backups"
        assert prod.token_env == "GRAPH_TOKEN"
        assert prod.created_by == "ops@example.com"

    def test_local_profile(self, config_file):
        dev = load_backup_config(config_file).profiles["dev"]

        assert dev.provider == "local"
        assert dev.backup_dir == "/tmp/tss-backups"
        assert dev.token_env == "DEV_GRAPH_TOKEN"

    def test_engine_settings(self, config_file):
        engine = load_backup_config(config_file).engine

        assert engine.progress_interval == 50
        assert engine.page_size == 200
        assert engine.timeout == 30.0

    def test_default_path_is_cwd(self, config_file, monkeypatch):
        monkeypatch.chdir(config_file.parent)
        assert load_backup_config().default_profile == "prod"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError, match="Config not found"):
            load_backup_config(tmp_path / "absent.toml")

    def test_invalid_toml(self, tmp_path):
        path = tmp_path / "list-backup.toml"
        path.write_text("[profiles.prod\nsite_url = ")

        with pytest.raises(ValueError, match="Invalid TOML"):
            load_backup_config(path)

    def test_missing_site_url(self, tmp_path):
        path = tmp_path / "list-backup.toml"
        path.write_text("[profiles.prod]\ndescription = 'no url'\n")

        with pytest.raises(ValueError, match="Invalid config"):
            load_backup_config(path)

    def test_unknown_provider(self, tmp_path):
        path = tmp_path / "list-backup.toml"
        path.write_text("[profiles.prod]\nsite_url = 'https://x'\nprovider = 's3'\n")

        with pytest.raises(ValueError, match="Invalid config"):
            load_backup_config(path)

    def test_zero_progress_interval_rejected(self, tmp_path):
        path = tmp_path / "list-backup.toml"
        path.write_text("[profiles.prod]\nsite_url = 'https://x'\n[engine]\nprogress_interval = 0\n")

        with pytest.raises(ValueError, match="Invalid config"):
            load_backup_config(path)

    def test_undefined_default_profile(self, tmp_path):
        path = tmp_path / "list-backup.toml"
        path.write_text("default_profile = 'staging'\n[profiles.prod]\nsite_url = 'https://x'\n")

        with pytest.raises(ValueError, match="default_profile 'staging' is not defined"):
            load_backup_config(path)


class TestConfigModels:
    def test_engine_defaults(self):
        assert EngineSettings().progress_interval == 20

    def test_profile_minimal(self):
        profile = StoreProfile(site_url="https://contoso.sharepoint.com/sites/TSS")
        assert profile.description == ""
        assert profile.created_by is None
