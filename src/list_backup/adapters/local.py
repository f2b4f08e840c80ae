"""Local filesystem snapshot storage.

``LocalSnapshotStore`` implements the ``SnapshotStoreClient`` protocol on
top of a directory: one sub-directory per snapshot, one JSON file per
collection.  Useful for development profiles and for keeping an offline
copy of a document-library backup.

Usage:
    from list_backup.adapters.local import LocalSnapshotStore

    snapshots = LocalSnapshotStore("./backups")
    await snapshots.create_folder("2026-01-15T09-30-00-000Z")
"""

import json
import shutil
from pathlib import Path
from typing import Any

from list_backup.adapters.base import SnapshotFileNotFoundError


class LocalSnapshotStore:
    """Directory-backed implementation of the ``SnapshotStoreClient`` protocol.

    The root directory is created on the first ``create_folder`` call.

    Args:
        root: Directory that holds the snapshot folders.
    """

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root)

    def _folder(self, name: str) -> Path:
        if not name or "/" in name or "\\" in name or name in (".", ".."):
            raise ValueError(f"Invalid snapshot name: {name!r}")
        return self._root / name

    async def list_folders(self) -> list[str]:
        if not self._root.is_dir():
            return []
        return [p.name for p in self._root.iterdir() if p.is_dir()]

    async def create_folder(self, name: str) -> None:
        self._root.mkdir(parents=True, exist_ok=True)
        # Fails if the folder exists, same as the remote store
        self._folder(name).mkdir()

    async def upload_file(self, folder: str, file_name: str, content: str) -> None:
        folder_path = self._folder(folder)
        if not folder_path.is_dir():
            raise SnapshotFileNotFoundError(f"Backup folder not found: {folder}")
        (folder_path / Path(file_name).name).write_text(content, encoding="utf-8")

    async def download_json(self, folder: str, file_name: str) -> Any:
        path = self._folder(folder) / Path(file_name).name
        try:
            content = path.read_text(encoding="utf-8")
        except FileNotFoundError as e:
            raise SnapshotFileNotFoundError(f"{folder}/{file_name} not found") from e
        return json.loads(content)

    async def delete_folder(self, folder: str) -> None:
        folder_path = self._folder(folder)
        if folder_path.is_dir():
            shutil.rmtree(folder_path)

    async def close(self) -> None:
        return None
