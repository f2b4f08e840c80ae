"""Store client protocol definitions.

Defines the two Protocols the backup, restore and reset engines consume:
``RecordStoreClient`` for the remote list store and ``SnapshotStoreClient``
for the durable file storage that holds snapshots.  All methods are
``async def`` -- the engines await every call before issuing the next.

Usage:
    from list_backup.adapters.base import RecordStoreClient, SnapshotStoreClient

    async def do_work(records: RecordStoreClient, snapshots: SnapshotStoreClient) -> None:
        rows = await records.list_all("TSS_Company")
        await snapshots.upload_file("2026-01-01T00-00-00-000Z", "x.json", "[]")
        await records.close()
"""

from typing import Any, Protocol


class StoreError(Exception):
    """Base class for errors raised by store adapters."""

    pass


class SnapshotFileNotFoundError(StoreError):
    """Raised when a snapshot file or folder does not exist."""

    pass


class SnapshotStoreNotProvisionedError(StoreError):
    """Raised when the snapshot storage itself has not been set up.

    This is a configuration error: it is raised before any mutating work
    begins (e.g. the backup document library was never created).
    """

    pass


class RecordStoreClient(Protocol):
    """Remote record store interface that all record adapters must implement.

    Records are exchanged as plain dicts of the form
    ``{"id": int, "fields": {...}}``.  The identifier is assigned by the
    store on creation and is only unique within its collection.
    """

    async def list_all(self, collection: str) -> list[dict]:
        """Read every record in a collection.

        Must transparently follow pagination continuation tokens until
        the collection is exhausted.

        Args:
            collection: Collection (list) name.

        Returns:
            List of ``{"id": int, "fields": dict}`` records.

        Example:
            rows = await records.list_all("TSS_Country")
            ids = [r["id"] for r in rows]
        """
        ...

    async def list_ids(self, collection: str) -> list[int]:
        """Read the identifier of every record in a collection.

        Cheaper than ``list_all`` when only identifiers are needed
        (deletion).  Follows pagination like ``list_all``.

        Args:
            collection: Collection (list) name.

        Returns:
            List of record identifiers.
        """
        ...

    async def create(self, collection: str, fields: dict[str, Any]) -> dict:
        """Create a record and return it with its store-assigned identifier.

        Args:
            collection: Collection (list) name.
            fields: Field name -> value pairs to set.

        Returns:
            Dict ``{"id": int, "fields": dict}`` for the created record.

        Example:
            row = await records.create("TSS_Country", {"Title": "Norway"})
            new_id = row["id"]
        """
        ...

    async def patch(self, collection: str, record_id: int, fields: dict[str, Any]) -> None:
        """Update selected fields of an existing record.

        Args:
            collection: Collection (list) name.
            record_id: Store identifier of the record.
            fields: Field name -> value pairs to overwrite.
        """
        ...

    async def delete(self, collection: str, record_id: int) -> None:
        """Delete a record by identifier.

        Args:
            collection: Collection (list) name.
            record_id: Store identifier of the record.
        """
        ...

    async def close(self) -> None:
        """Release network resources held by the client."""
        ...


class SnapshotStoreClient(Protocol):
    """Durable file storage interface for snapshot folders.

    One snapshot is one folder holding UTF-8 JSON files.
    """

    async def list_folders(self) -> list[str]:
        """List snapshot folder names.

        Returns an empty list when the storage has not been provisioned.
        Ordering is not guaranteed; callers sort.
        """
        ...

    async def create_folder(self, name: str) -> None:
        """Create a new snapshot folder.

        Raises:
            SnapshotStoreNotProvisionedError: If the storage does not exist.
        """
        ...

    async def upload_file(self, folder: str, file_name: str, content: str) -> None:
        """Write a UTF-8 text file into a snapshot folder, replacing any existing file."""
        ...

    async def download_json(self, folder: str, file_name: str) -> Any:
        """Download a file from a snapshot folder and parse it as JSON.

        Raises:
            SnapshotFileNotFoundError: If the folder or file does not exist.
        """
        ...

    async def delete_folder(self, folder: str) -> None:
        """Delete a snapshot folder and everything in it.

        Deleting a folder that no longer exists is a no-op.
        """
        ...

    async def close(self) -> None:
        """Release resources held by the client."""
        ...
