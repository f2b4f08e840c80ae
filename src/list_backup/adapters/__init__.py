"""Store adapters package.

Provides the ``RecordStoreClient`` and ``SnapshotStoreClient`` Protocols
plus concrete async implementations: Microsoft Graph (SharePoint lists and
document libraries) and a local-directory snapshot store.

Usage:
    from list_backup.adapters import RecordStoreClient, SnapshotStoreClient
    from list_backup.adapters import GraphSession, GraphListStore, GraphDriveStore
    from list_backup.adapters import LocalSnapshotStore
"""

from list_backup.adapters.base import (
    RecordStoreClient,
    SnapshotFileNotFoundError,
    SnapshotStoreClient,
    SnapshotStoreNotProvisionedError,
    StoreError,
)
from list_backup.adapters.graph import GraphDriveStore, GraphListStore, GraphSession
from list_backup.adapters.local import LocalSnapshotStore

__all__ = [
    "RecordStoreClient",
    "SnapshotStoreClient",
    "StoreError",
    "SnapshotFileNotFoundError",
    "SnapshotStoreNotProvisionedError",
    "GraphSession",
    "GraphListStore",
    "GraphDriveStore",
    "LocalSnapshotStore",
]
