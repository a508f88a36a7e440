"""Unit tests for configuration management."""

from pathlib import Path

import pytest
import yaml

from src.payback_transfer.config import (
    ImportPolicyConfig,
    LoggingConfig,
    RemoteConfig,
    TransferConfig,
    load_config,
)


class TestImportPolicyConfig:
    """Test ImportPolicyConfig dataclass."""

    def test_default_values(self):
        """Test default policy configuration values."""
        policy = ImportPolicyConfig()

        assert policy.chunk_size == 100
        assert policy.amount_tolerance == 0.01
        assert policy.date_tolerance_seconds == 300.0
        assert policy.near_zero_amount == 0.001
        assert policy.default_friend_status == "friend"

    def test_chunk_size_must_be_positive(self):
        """Test that a zero chunk size is rejected."""
        with pytest.raises(ValueError, match="chunk_size must be at least 1"):
            ImportPolicyConfig(chunk_size=0)


class TestRemoteConfig:
    """Test RemoteConfig dataclass."""

    def test_defaults(self):
        """Test default remote settings."""
        remote = RemoteConfig(base_url="https://payback.example.com")

        assert remote.api_token is None
        assert remote.timeout == 30
        assert remote.verify_ssl is True
        assert remote.max_attempts == 3

    def test_bulk_import_url(self):
        """Test URL joining with and without slashes."""
        assert (
            RemoteConfig(base_url="https://x.example.com/").bulk_import_url
            == "https://x.example.com/api/bulk-import"
        )
        assert (
            RemoteConfig(base_url="https://x.example.com", bulk_import_path="v2/import").bulk_import_url
            == "https://x.example.com/v2/import"
        )


class TestTransferConfig:
    """Test TransferConfig loading and saving."""

    def test_default_config(self):
        """Test that the default config has no remote section."""
        config = TransferConfig()

        assert config.remote is None
        assert isinstance(config.policy, ImportPolicyConfig)
        assert config.logging == LoggingConfig()

    def test_from_file(self, tmp_path: Path):
        """Test loading every section from YAML."""
        config_file = tmp_path / "config.yaml"
        config_file.write_text(
            yaml.safe_dump(
                {
                    "policy": {"chunk_size": 25, "amount_tolerance": 0.05},
                    "remote": {"base_url": "https://payback.example.com", "api_token": "t0k"},
                    "logging": {"level": "DEBUG", "format": "json", "file": "logs/transfer.log"},
                }
            )
        )

        config = TransferConfig.from_file(config_file)

        assert config.policy.chunk_size == 25
        assert config.policy.amount_tolerance == 0.05
        assert config.remote.api_token == "t0k"
        assert config.logging.level == "DEBUG"
        assert config.logging.file == Path("logs/transfer.log")

    def test_from_empty_file(self, tmp_path: Path):
        """Test that an empty file yields defaults."""
        config_file = tmp_path / "config.yaml"
        config_file.write_text("")

        config = TransferConfig.from_file(config_file)
        assert config.policy == ImportPolicyConfig()

    def test_from_file_invalid_yaml(self, tmp_path: Path):
        """Test that broken YAML raises ValueError."""
        config_file = tmp_path / "config.yaml"
        config_file.write_text("policy: [unclosed")

        with pytest.raises(ValueError, match="Invalid YAML"):
            TransferConfig.from_file(config_file)

    def test_from_file_wrong_structure(self, tmp_path: Path):
        """Test that a top-level list is rejected."""
        config_file = tmp_path / "config.yaml"
        config_file.write_text("- a\n- b\n")

        with pytest.raises(ValueError, match="expected dictionary, got list"):
            TransferConfig.from_file(config_file)

    def test_to_file_round_trip(self, tmp_path: Path):
        """Test that a saved config loads back unchanged."""
        config = TransferConfig(
            policy=ImportPolicyConfig(chunk_size=10),
            remote=RemoteConfig(base_url="https://payback.example.com", api_token="abc"),
            logging=LoggingConfig(level="WARNING", file=Path("out.log")),
        )
        config_file = tmp_path / "nested" / "config.yaml"

        config.to_file(config_file)
        loaded = TransferConfig.from_file(config_file)

        assert loaded.policy.chunk_size == 10
        assert loaded.remote == config.remote
        assert loaded.logging.file == Path("out.log")

    def test_from_env(self, monkeypatch):
        """Test configuration from environment variables."""
        monkeypatch.setenv("PAYBACK_REMOTE_URL", "https://payback.example.com")
        monkeypatch.setenv("PAYBACK_API_TOKEN", "env-token")
        monkeypatch.setenv("PAYBACK_CHUNK_SIZE", "50")
        monkeypatch.setenv("PAYBACK_VERIFY_SSL", "false")
        monkeypatch.setenv("LOG_LEVEL", "DEBUG")

        config = TransferConfig.from_env()

        assert config.remote.api_token == "env-token"
        assert config.remote.verify_ssl is False
        assert config.policy.chunk_size == 50
        assert config.logging.level == "DEBUG"

    def test_from_env_without_remote(self, monkeypatch):
        """Test that no remote section is created without a URL."""
        monkeypatch.delenv("PAYBACK_REMOTE_URL", raising=False)

        assert TransferConfig.from_env().remote is None

    def test_from_env_requires_token(self, monkeypatch):
        """Test that a URL without a token is rejected."""
        monkeypatch.setenv("PAYBACK_REMOTE_URL", "https://payback.example.com")
        monkeypatch.delenv("PAYBACK_API_TOKEN", raising=False)

        with pytest.raises(ValueError, match="PAYBACK_API_TOKEN is missing"):
            TransferConfig.from_env()


class TestLoadConfig:
    """Test load_config helper."""

    def test_missing_file(self, tmp_path: Path):
        """Test that a missing config file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "missing.yaml")

    def test_falls_back_to_env(self, monkeypatch):
        """Test that no file means environment configuration."""
        monkeypatch.delenv("PAYBACK_REMOTE_URL", raising=False)
        monkeypatch.setenv("PAYBACK_CHUNK_SIZE", "7")

        assert load_config().policy.chunk_size == 7
