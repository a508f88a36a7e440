"""Configuration management for the PayBack transfer engine."""

import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from .constants import (
    DEFAULT_AMOUNT_TOLERANCE,
    DEFAULT_BULK_IMPORT_PATH,
    DEFAULT_CHUNK_SIZE,
    DEFAULT_DATE_TOLERANCE_SECONDS,
    FRIEND_STATUS,
    NEAR_ZERO_AMOUNT,
)


@dataclass
class ImportPolicyConfig:
    """
    Policy configuration for import and export runs.

    Controls dedup tolerances, chunking and export noise reduction.
    """

    # Remote submission
    chunk_size: int = DEFAULT_CHUNK_SIZE  # Expenses per bulk-import request

    # Deduplication
    amount_tolerance: float = DEFAULT_AMOUNT_TOLERANCE
    date_tolerance_seconds: float = DEFAULT_DATE_TOLERANCE_SECONDS

    # Export
    near_zero_amount: float = NEAR_ZERO_AMOUNT

    # Status given to friend records that arrive without one
    default_friend_status: str = FRIEND_STATUS

    def __post_init__(self) -> None:
        if self.chunk_size < 1:
            raise ValueError(f"chunk_size must be at least 1, got {self.chunk_size}")


@dataclass
class RemoteConfig:
    """Bulk-import endpoint connection configuration."""

    base_url: str
    api_token: str | None = None
    bulk_import_path: str = DEFAULT_BULK_IMPORT_PATH
    timeout: int = 30
    verify_ssl: bool = True
    max_attempts: int = 3  # Transport-level attempts per request

    @property
    def bulk_import_url(self) -> str:
        """Full URL of the bulk-import endpoint."""
        return f"{self.base_url.rstrip('/')}/{self.bulk_import_path.lstrip('/')}"


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"
    format: str = "console"
    file: Path | None = None


@dataclass
class TransferConfig:
    """
    Complete configuration for the PayBack transfer engine.

    This combines all configuration sections.
    """

    policy: ImportPolicyConfig = field(default_factory=ImportPolicyConfig)
    remote: RemoteConfig | None = None
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_file(cls, config_path: Path) -> "TransferConfig":
        """
        Load configuration from YAML file.

        Args:
            config_path: Path to YAML config file

        Returns:
            TransferConfig instance
        """
        try:
            with open(config_path, encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in configuration file {config_path}: {e}") from e

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ValueError(
                f"Invalid configuration file structure in {config_path}: "
                f"expected dictionary, got {type(data).__name__}"
            )

        policy = ImportPolicyConfig(**(data.get("policy") or {}))

        remote_data = data.get("remote")
        remote = RemoteConfig(**remote_data) if remote_data else None

        logging_data = dict(data.get("logging") or {})
        if logging_data.get("file"):
            logging_data["file"] = Path(logging_data["file"])
        logging = LoggingConfig(**logging_data)

        return cls(policy=policy, remote=remote, logging=logging)

    def to_file(self, config_path: Path) -> None:
        """
        Save configuration to YAML file.

        Args:
            config_path: Path to save config file
        """
        data = {
            "policy": dict(self.policy.__dict__),
            "remote": dict(self.remote.__dict__) if self.remote else None,
            "logging": {
                k: str(v) if isinstance(v, Path) else v
                for k, v in self.logging.__dict__.items()
                if v is not None
            },
        }

        config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(config_path, "w", encoding="utf-8") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)

    @classmethod
    def from_env(cls) -> "TransferConfig":
        """
        Create configuration from environment variables.

        Environment variables:
            PAYBACK_REMOTE_URL: Base URL of the remote store
            PAYBACK_API_TOKEN: Bearer token for the bulk-import endpoint
            PAYBACK_CHUNK_SIZE: Expenses per bulk-import request (default: 100)
            PAYBACK_VERIFY_SSL: Set to 'false' to disable certificate checks
            LOG_LEVEL: Logging level (default: INFO)
            LOG_FORMAT: console or json (default: console)

        Returns:
            TransferConfig instance

        Raises:
            ValueError: If PAYBACK_REMOTE_URL is set without PAYBACK_API_TOKEN
        """
        remote = None
        remote_url = os.getenv("PAYBACK_REMOTE_URL")
        if remote_url:
            token = os.environ.get("PAYBACK_API_TOKEN", "")
            if not token:
                raise ValueError(
                    "PAYBACK_REMOTE_URL is set but PAYBACK_API_TOKEN is missing. "
                    "Set both to enable remote submission."
                )
            verify_ssl = os.environ.get("PAYBACK_VERIFY_SSL", "true").lower() not in (
                "false",
                "0",
                "no",
                "off",
            )
            remote = RemoteConfig(base_url=remote_url, api_token=token, verify_ssl=verify_ssl)

        policy = ImportPolicyConfig(
            chunk_size=int(os.environ.get("PAYBACK_CHUNK_SIZE", str(DEFAULT_CHUNK_SIZE)))
        )

        logging_config = LoggingConfig(
            level=os.environ.get("LOG_LEVEL", "INFO"),
            format=os.environ.get("LOG_FORMAT", "console"),
        )

        return cls(policy=policy, remote=remote, logging=logging_config)


def load_config(config_file: Path | None = None) -> TransferConfig:
    """
    Load configuration from file or environment variables.

    Args:
        config_file: Optional path to YAML config file

    Returns:
        TransferConfig instance

    Raises:
        FileNotFoundError: If config_file is specified but doesn't exist
    """
    if config_file:
        if not config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_file}")
        return TransferConfig.from_file(config_file)
    return TransferConfig.from_env()
