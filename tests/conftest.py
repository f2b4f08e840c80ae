"""Shared store doubles for engine tests.

Both doubles are ``AsyncMock`` objects whose methods are backed by plain
dicts, so tests can assert on call order (``calls``) and on the resulting
store contents (``data`` / ``files``).
"""

import itertools
import json
from unittest.mock import AsyncMock

import pytest

from list_backup.adapters.base import SnapshotFileNotFoundError
from list_backup.backup.models import CollectionCatalog, CollectionDef, ForeignKey


def make_record_store(
    initial: dict[str, list[dict]] | None = None,
    start_id: int = 100,
    fail_on: tuple[str, str] | None = None,
) -> AsyncMock:
    """Dict-backed ``RecordStoreClient`` double.

    Args:
        initial: ``{collection: [{"id": int, "fields": dict}, ...]}``.
        start_id: First identifier handed out by ``create``.
        fail_on: ``(operation, collection)`` that raises ``RuntimeError``.

    The double exposes ``data`` (``{collection: {id: fields}}``) and
    ``calls`` (``[(operation, collection, record_id), ...]``).
    """
    data: dict[str, dict[int, dict]] = {}
    for collection, rows in (initial or {}).items():
        data[collection] = {row["id"]: dict(row["fields"]) for row in rows}

    counter = itertools.count(start_id)
    calls: list[tuple] = []

    def _check(operation: str, collection: str) -> None:
        if fail_on == (operation, collection):
            raise RuntimeError(f"{operation} failed for {collection}")

    async def _list_all(collection):
        _check("list_all", collection)
        return [{"id": i, "fields": dict(f)} for i, f in data.get(collection, {}).items()]

    async def _list_ids(collection):
        _check("list_ids", collection)
        return list(data.get(collection, {}))

    async def _create(collection, fields):
        _check("create", collection)
        new_id = next(counter)
        data.setdefault(collection, {})[new_id] = dict(fields)
        calls.append(("create", collection, new_id))
        return {"id": new_id, "fields": dict(fields)}

    async def _patch(collection, record_id, fields):
        _check("patch", collection)
        data[collection][record_id].update(fields)
        calls.append(("patch", collection, record_id))

    async def _delete(collection, record_id):
        _check("delete", collection)
        del data[collection][record_id]
        calls.append(("delete", collection, record_id))

    store = AsyncMock()
    store.list_all = AsyncMock(side_effect=_list_all)
    store.list_ids = AsyncMock(side_effect=_list_ids)
    store.create = AsyncMock(side_effect=_create)
    store.patch = AsyncMock(side_effect=_patch)
    store.delete = AsyncMock(side_effect=_delete)
    store.close = AsyncMock()
    store.data = data
    store.calls = calls
    return store


def make_snapshot_store(
    folders: dict[str, dict[str, object]] | None = None,
    fail_upload: str | None = None,
) -> AsyncMock:
    """Dict-backed ``SnapshotStoreClient`` double.

    Args:
        folders: ``{folder: {file_name: json-serializable data}}``.
        fail_upload: File name whose upload raises ``RuntimeError``.

    Exposes ``files`` (``{folder: {file_name: text}}``) and ``uploads``
    (file names in upload order).
    """
    files: dict[str, dict[str, str]] = {
        folder: {name: json.dumps(content) for name, content in contents.items()}
        for folder, contents in (folders or {}).items()
    }
    uploads: list[str] = []

    async def _list_folders():
        return list(files)

    async def _create_folder(name):
        if name in files:
            raise RuntimeError(f"{name} already exists")
        files[name] = {}

    async def _upload_file(folder, file_name, content):
        if file_name == fail_upload:
            raise RuntimeError(f"upload of {file_name} failed")
        files[folder][file_name] = content
        uploads.append(file_name)

    async def _download_json(folder, file_name):
        try:
            return json.loads(files[folder][file_name])
        except KeyError:
            raise SnapshotFileNotFoundError(f"{folder}/{file_name}") from None

    async def _delete_folder(folder):
        files.pop(folder, None)

    store = AsyncMock()
    store.list_folders = AsyncMock(side_effect=_list_folders)
    store.create_folder = AsyncMock(side_effect=_create_folder)
    store.upload_file = AsyncMock(side_effect=_upload_file)
    store.download_json = AsyncMock(side_effect=_download_json)
    store.delete_folder = AsyncMock(side_effect=_delete_folder)
    store.close = AsyncMock()
    store.files = files
    store.uploads = uploads
    return store


def sample_catalog() -> CollectionCatalog:
    """Three collections: reference data, a self-referencing entity, a dependent."""
    return CollectionCatalog(
        collections=[
            CollectionDef(name="Country"),
            CollectionDef(
                name="Company",
                foreign_keys=[
                    ForeignKey(field="countryLookupId", target="Country"),
                    ForeignKey(field="parentCompanyLookupId", target="Company"),
                ],
            ),
            CollectionDef(
                name="Contact",
                foreign_keys=[ForeignKey(field="companyLookupId", target="Company")],
            ),
        ]
    )


@pytest.fixture
def catalog() -> CollectionCatalog:
    return sample_catalog()


@pytest.fixture
def make_records():
    return make_record_store


@pytest.fixture
def make_snapshots():
    return make_snapshot_store
