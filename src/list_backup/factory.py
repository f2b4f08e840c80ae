"""Store client factory.

Resolves the active profile and builds the record store and snapshot store
clients the engines need.  Clients are constructed per call and handed to
the engines explicitly; there is no process-wide client cache.

Profile resolution order:
1. Explicit ``profile_name`` argument (``--profile``)
2. ``{env_prefix}LIST_BACKUP_PROFILE`` environment variable
3. ``default_profile`` in list-backup.toml
"""

import logging
import os
from dataclasses import dataclass

import httpx

from list_backup.adapters.base import RecordStoreClient, SnapshotStoreClient
from list_backup.adapters.graph import GraphDriveStore, GraphListStore, GraphSession
from list_backup.adapters.local import LocalSnapshotStore
from list_backup.config.loader import load_backup_config
from list_backup.config.models import BackupConfig, EngineSettings, StoreProfile

logger = logging.getLogger(__name__)

PROFILE_ENV_VAR = "LIST_BACKUP_PROFILE"


class ProfileNotFoundError(Exception):
    """Raised when no profile is configured or the named one does not exist."""

    pass


class CredentialsNotFoundError(Exception):
    """Raised when the profile's bearer token environment variable is unset."""

    pass


def get_active_profile_name(
    config: BackupConfig,
    profile_name: str | None = None,
    env_prefix: str = "",
) -> str:
    """Get active profile name from argument, env var, or config default.

    Args:
        config: Loaded configuration.
        profile_name: Explicit profile name; wins when given.
        env_prefix: Prefix for the environment variable lookup
            (e.g. ``"APP_"`` reads ``APP_LIST_BACKUP_PROFILE``).

    Returns:
        Profile name

    Raises:
        ProfileNotFoundError: If no profile is configured, or the resolved
            name is not in the config.
    """
    name = (
        profile_name
        or os.environ.get(f"{env_prefix}{PROFILE_ENV_VAR}")
        or config.default_profile
    )

    if not name:
        raise ProfileNotFoundError(
            "No profile selected.\n"
            f"Pass --profile, set {env_prefix}{PROFILE_ENV_VAR}, or set default_profile.\n"
            f"Available profiles: {', '.join(config.profiles) or '(none)'}"
        )

    if name not in config.profiles:
        raise ProfileNotFoundError(
            f"Profile '{name}' not found.\n"
            f"Available profiles: {', '.join(config.profiles) or '(none)'}"
        )

    return name


def resolve_token(profile: StoreProfile, env_prefix: str = "") -> str:
    """Read the profile's bearer token from the environment.

    Raises:
        CredentialsNotFoundError: If the variable is unset or empty.
    """
    var = f"{env_prefix}{profile.token_env}"
    token = os.environ.get(var, "").strip()
    if not token:
        raise CredentialsNotFoundError(
            f"No access token: set {var} to a Graph bearer token with Sites.ReadWrite.All"
        )
    return token


@dataclass
class StoreClients:
    """Record and snapshot store clients for one profile.

    Usable as an async context manager; closes both clients on exit.
    """

    profile_name: str
    profile: StoreProfile
    settings: EngineSettings
    records: RecordStoreClient
    snapshots: SnapshotStoreClient

    async def close(self) -> None:
        await self.records.close()
        await self.snapshots.close()

    async def __aenter__(self) -> "StoreClients":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()


def create_clients(
    profile_name: str | None = None,
    env_prefix: str = "",
    config: BackupConfig | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> StoreClients:
    """Build store clients for the active profile.

    Args:
        profile_name: Explicit profile name (see module docstring for the
            fallback order).
        env_prefix: Prefix for environment variable lookups.
        config: Pre-loaded configuration; loaded from list-backup.toml
            when ``None``.
        transport: Optional ``httpx`` transport for the Graph session.

    Returns:
        ``StoreClients`` for the profile.

    Raises:
        ProfileNotFoundError: If no usable profile is configured.
        CredentialsNotFoundError: If the bearer token is missing.
        FileNotFoundError: If the config file does not exist.

    Example:
        async with create_clients("prod") as clients:
            await create_backup(clients.records, clients.snapshots, DEFAULT_CATALOG, "me")
    """
    if config is None:
        config = load_backup_config()

    name = get_active_profile_name(config, profile_name, env_prefix)
    profile = config.profiles[name]
    settings = config.engine

    session = GraphSession(
        site_url=profile.site_url,
        token=resolve_token(profile, env_prefix),
        timeout=settings.timeout,
        transport=transport,
    )
    records = GraphListStore(session, page_size=settings.page_size)

    snapshots: SnapshotStoreClient
    if profile.provider == "local":
        snapshots = LocalSnapshotStore(profile.backup_dir)
    else:
        snapshots = GraphDriveStore(session, library=profile.backup_library)

    logger.debug(f"Using profile {name} ({profile.provider} snapshots)")
    return StoreClients(
        profile_name=name,
        profile=profile,
        settings=settings,
        records=records,
        snapshots=snapshots,
    )
