"""list-backup: backup, restore and reset for a remote list store.

Exports every collection of a SharePoint-list-backed application to JSON
snapshots, restores a snapshot with identifier remapping across lookup
fields, and wipes the dataset.  Store access goes through async Protocols
so the engines can run against any backend or test double.

Usage:
    from list_backup import DEFAULT_CATALOG, create_backup, restore_from_backup
    from list_backup import GraphSession, GraphListStore, GraphDriveStore
    from list_backup import create_clients, load_backup_config
"""

__version__ = "0.1.0"

# Adapters
from list_backup.adapters.base import (
    RecordStoreClient,
    SnapshotFileNotFoundError,
    SnapshotStoreClient,
    SnapshotStoreNotProvisionedError,
)
from list_backup.adapters.graph import GraphDriveStore, GraphListStore, GraphSession
from list_backup.adapters.local import LocalSnapshotStore

# Backup engines
from list_backup.backup.backup_restore import (
    IncompleteBackupError,
    RestoreError,
    create_backup,
    delete_backup,
    list_backups,
    restore_from_backup,
    validate_backup,
)
from list_backup.backup.catalog import DEFAULT_CATALOG
from list_backup.backup.models import (
    BackupInfo,
    BackupManifest,
    CollectionCatalog,
    CollectionDef,
    ForeignKey,
    OperationProgress,
    RestorePhase,
    RestoreReport,
)
from list_backup.backup.progress import CallbackReporter, ProgressChannel
from list_backup.backup.reset import reset_all_data

# Config
from list_backup.config.loader import load_backup_config
from list_backup.config.models import BackupConfig, StoreProfile

# Factory
from list_backup.factory import ProfileNotFoundError, create_clients

__all__ = [
    # Adapters
    "RecordStoreClient",
    "SnapshotStoreClient",
    "SnapshotFileNotFoundError",
    "SnapshotStoreNotProvisionedError",
    "GraphSession",
    "GraphListStore",
    "GraphDriveStore",
    "LocalSnapshotStore",
    # Catalog and models
    "CollectionCatalog",
    "CollectionDef",
    "ForeignKey",
    "DEFAULT_CATALOG",
    "BackupManifest",
    "BackupInfo",
    "OperationProgress",
    "RestorePhase",
    "RestoreReport",
    # Engines
    "create_backup",
    "list_backups",
    "delete_backup",
    "validate_backup",
    "restore_from_backup",
    "reset_all_data",
    "RestoreError",
    "IncompleteBackupError",
    # Progress
    "CallbackReporter",
    "ProgressChannel",
    # Config
    "load_backup_config",
    "BackupConfig",
    "StoreProfile",
    # Factory
    "create_clients",
    "ProfileNotFoundError",
]
