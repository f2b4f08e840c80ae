"""TOML configuration loader for list-backup profiles."""

import tomllib
from pathlib import Path

from pydantic import ValidationError

from list_backup.config.models import BackupConfig, EngineSettings, StoreProfile

DEFAULT_CONFIG_FILE = "list-backup.toml"


def load_backup_config(config_path: Path | None = None) -> BackupConfig:
    """Load store profiles from a TOML file.

    Args:
        config_path: Path to the config file (default: ``list-backup.toml``
            in the current working directory).

    Returns:
        BackupConfig with all profiles and engine settings

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If config format is invalid
    """
    if config_path is None:
        config_path = Path.cwd() / DEFAULT_CONFIG_FILE

    if not config_path.exists():
        raise FileNotFoundError(
            f"Config not found: {config_path}\n"
            f"Create {DEFAULT_CONFIG_FILE} with at least one [profiles.<name>] table."
        )

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ValueError(f"Invalid TOML in {config_path}: {e}") from e

    try:
        profiles = {
            name: StoreProfile(**profile_data)
            for name, profile_data in data.get("profiles", {}).items()
        }
        config = BackupConfig(
            profiles=profiles,
            default_profile=data.get("default_profile"),
            engine=EngineSettings(**data.get("engine", {})),
        )
    except (TypeError, ValidationError) as e:
        raise ValueError(f"Invalid config in {config_path}: {e}") from e

    if config.default_profile and config.default_profile not in config.profiles:
        raise ValueError(
            f"default_profile '{config.default_profile}' is not defined in {config_path}"
        )

    return config
