"""Pydantic models for list-backup configuration."""

from typing import Literal

from pydantic import BaseModel, Field


class StoreProfile(BaseModel):
    """Connection profile from list-backup.toml."""

    site_url: str
    provider: Literal["graph", "local"] = "graph"   # where snapshots are kept
    description: str = ""
    backup_library: str = "TSS_Backups"             # document library (provider = "graph")
    backup_dir: str = "./backups"                   # directory (provider = "local")
    token_env: str = "GRAPH_TOKEN"                  # env var holding the bearer token
    created_by: str | None = None                   # default backup author


class EngineSettings(BaseModel):
    """Tuning shared by every profile."""

    progress_interval: int = Field(default=20, gt=0)
    page_size: int = Field(default=200, gt=0)
    timeout: float = Field(default=30.0, gt=0)


class BackupConfig(BaseModel):
    """Complete configuration from list-backup.toml."""

    profiles: dict[str, StoreProfile]
    default_profile: str | None = None
    engine: EngineSettings = Field(default_factory=EngineSettings)
