"""Configuration management: profiles, TOML loading, and config models.

Usage:
    >>> from list_backup.config import load_backup_config, StoreProfile, BackupConfig
"""

from list_backup.config.loader import load_backup_config
from list_backup.config.models import BackupConfig, EngineSettings, StoreProfile

__all__ = ["load_backup_config", "BackupConfig", "EngineSettings", "StoreProfile"]
