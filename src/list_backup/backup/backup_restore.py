"""Catalog-driven backup and restore against a remote list store.

Backups are snapshot folders holding one JSON file per collection plus a
``manifest.json`` written last.  The collection order, lookup fields and
identifier remapping are all driven by a caller-provided
``CollectionCatalog`` -- no hardcoded list names.

Restore is destructive ("replace", not "merge") and runs four phases:

1. Download every collection file (a missing file means zero records).
2. Clear the store in reverse dependency order.
3. Recreate records in dependency order, rewriting lookup fields through
   per-collection old -> new identifier maps.  Self-referential lookups are
   left out, and lookups that do not resolve are dropped.
4. Patch self-referential lookups once every record exists.

Nothing is retried and nothing is rolled back: the first failure aborts the
run and the raised ``RestoreError`` carries a report of how far it got.

Usage:
    from list_backup.backup.backup_restore import (
        create_backup,
        list_backups,
        restore_from_backup,
        validate_backup,
    )
    from list_backup.backup.catalog import DEFAULT_CATALOG

    # Backup
    name = await create_backup(records, snapshots, DEFAULT_CATALOG, "me@example.com")

    # Restore
    report = await restore_from_backup(records, snapshots, DEFAULT_CATALOG, name)

    # Validate (read-only)
    result = await validate_backup(snapshots, name, DEFAULT_CATALOG)
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any

from pydantic import ValidationError

from list_backup.adapters.base import (
    RecordStoreClient,
    SnapshotFileNotFoundError,
    SnapshotStoreClient,
)
from list_backup.backup.models import (
    MANIFEST_VERSION,
    BackupInfo,
    BackupManifest,
    BackupValidation,
    CollectionCatalog,
    CollectionCount,
    CollectionDef,
    CollectionRestoreStats,
    OperationProgress,
    RestorePhase,
    RestoreReport,
)
from list_backup.backup.progress import (
    DEFAULT_PROGRESS_INTERVAL,
    ProgressArg,
    ProgressReporter,
    as_reporter,
    should_report,
)
from list_backup.backup.reset import clear_collections

logger = logging.getLogger(__name__)

MANIFEST_FILE = "manifest.json"

# Carries the store-assigned identifier inside an exported record
RECORD_ID_FIELD = "_itemId"

# SharePoint system fields that cannot be set on creation
SYSTEM_FIELDS = frozenset({
    RECORD_ID_FIELD,
    "id",
    "Created",
    "Modified",
    "AuthorLookupId",
    "EditorLookupId",
    "Author",
    "Editor",
    "_UIVersionString",
    "Attachments",
    "Edit",
    "ContentType",
    "ContentTypeId",
    "_ComplianceFlags",
    "_ComplianceTag",
    "_ComplianceTagWrittenTime",
    "_ComplianceTagUserId",
    "_ModerationComments",
    "_ModerationStatus",
    "AppAuthorLookupId",
    "AppEditorLookupId",
})


class RestoreError(Exception):
    """Raised when a restore stops before completing.

    Attributes:
        report: ``RestoreReport`` describing how far the restore got.
    """

    def __init__(self, message: str, report: RestoreReport) -> None:
        super().__init__(message)
        self.report = report


class IncompleteBackupError(RestoreError):
    """Raised when restoring a snapshot that has no readable manifest."""

    pass


# ============================================================================
# Helpers
# ============================================================================


def make_snapshot_name(now: datetime | None = None) -> str:
    """Build a sortable snapshot folder name from a UTC timestamp.

    ``2026-01-15T09:30:00.123Z`` becomes ``2026-01-15T09-30-00-123Z``
    (colons and dots are not allowed in library folder names).
    """
    now = now or datetime.now(timezone.utc)
    now = now.astimezone(timezone.utc)
    iso = now.strftime("%Y-%m-%dT%H:%M:%S") + f".{now.microsecond // 1000:03d}Z"
    return iso.replace(":", "-").replace(".", "-")


def collection_file(collection: str) -> str:
    return f"{collection}.json"


def _as_record_id(value: Any) -> int | None:
    """Normalize a stored identifier (lookup ids often arrive as strings)."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value)
    return None


def _to_json(data: Any) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False, default=str)


# ============================================================================
# Backup
# ============================================================================


async def create_backup(
    records: RecordStoreClient,
    snapshots: SnapshotStoreClient,
    catalog: CollectionCatalog,
    created_by: str,
    progress: ProgressArg = None,
    now: datetime | None = None,
) -> str:
    """Export every collection to a new snapshot folder.

    Iterates the catalog in creation order.  Each collection is read in
    full and written verbatim as ``{collection}.json``: raw field values
    (lookup ids included) plus the store identifier under ``_itemId``.
    Progress is reported before and after each collection; the record
    counters are the running total exported so far.
    The manifest is uploaded last, so a folder without one is a failed or
    interrupted backup.

    Args:
        records: Record store client to read from.
        snapshots: Snapshot store client to write to.
        catalog: Collection catalog.
        created_by: Identity recorded in the manifest (e.g. user email).
        progress: ``ProgressReporter``, plain callback, or ``None``.
        now: Timestamp override for the snapshot name and manifest.

    Returns:
        The snapshot folder name.

    Raises:
        Exception: The first read or upload failure, unchanged.  Creating
            the folder is the first call, so a misconfigured snapshot
            store fails before any export work.

    Example:
        name = await create_backup(records, snapshots, DEFAULT_CATALOG, "me@example.com")
    """
    reporter = as_reporter(progress)
    now = now or datetime.now(timezone.utc)
    folder_name = make_snapshot_name(now)
    collections = catalog.ordered_collections()
    total = len(collections)

    manifest = BackupManifest(
        version=MANIFEST_VERSION,
        created_at=now.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z"),
        created_by=created_by,
    )

    await reporter.publish(
        OperationProgress(phase="Creating backup folder", collections_total=total)
    )
    await snapshots.create_folder(folder_name)
    logger.info(f"Creating backup {folder_name} ({total} collections)")

    for index, coll in enumerate(collections):
        await reporter.publish(
            OperationProgress(
                phase="Exporting",
                current_collection=coll.name,
                collections_completed=index,
                collections_total=total,
                records_processed=manifest.total_records,
                records_total=manifest.total_records,
            )
        )

        rows = await records.list_all(coll.name)
        exported = [{RECORD_ID_FIELD: row["id"], **row["fields"]} for row in rows]

        await snapshots.upload_file(folder_name, collection_file(coll.name), _to_json(exported))
        manifest.collections[coll.name] = CollectionCount(count=len(exported))
        logger.info(f"Exported {len(exported)} records from {coll.name}")

        await reporter.publish(
            OperationProgress(
                phase="Exporting",
                current_collection=coll.name,
                collections_completed=index + 1,
                collections_total=total,
                records_processed=manifest.total_records,
                records_total=manifest.total_records,
            )
        )

    # Manifest last: its presence marks the backup complete
    await snapshots.upload_file(
        folder_name, MANIFEST_FILE, _to_json(manifest.model_dump(by_alias=True))
    )
    logger.info(f"Backup {folder_name} complete: {manifest.total_records} records")

    return folder_name


async def list_backups(snapshots: SnapshotStoreClient) -> list[BackupInfo]:
    """List snapshot folders newest-first, each with its manifest.

    Folders whose manifest is missing or unreadable are still listed,
    with ``manifest=None`` (incomplete, not restorable).
    """
    folders = sorted(await snapshots.list_folders(), reverse=True)
    backups: list[BackupInfo] = []

    for folder in folders:
        manifest: BackupManifest | None = None
        try:
            manifest = BackupManifest.model_validate(
                await snapshots.download_json(folder, MANIFEST_FILE)
            )
        except Exception as e:
            logger.debug(f"Backup {folder} has no readable manifest: {e}")
        backups.append(BackupInfo(folder_name=folder, manifest=manifest))

    return backups


async def delete_backup(snapshots: SnapshotStoreClient, folder_name: str) -> None:
    """Delete a snapshot folder and its contents.  Deleting twice is a no-op."""
    await snapshots.delete_folder(folder_name)
    logger.info(f"Deleted backup {folder_name}")


async def _load_manifest(snapshots: SnapshotStoreClient, folder_name: str) -> BackupManifest:
    """Download and parse a snapshot's manifest.

    Raises:
        SnapshotFileNotFoundError: If the manifest is missing.
        ValidationError: If it does not parse.
    """
    return BackupManifest.model_validate(await snapshots.download_json(folder_name, MANIFEST_FILE))


async def _download_collection(
    snapshots: SnapshotStoreClient, folder_name: str, collection: str
) -> list[dict] | None:
    """Download one collection file; ``None`` if the snapshot lacks it.

    Raises:
        ValueError: If the file is not a JSON array of objects.
    """
    try:
        data = await snapshots.download_json(folder_name, collection_file(collection))
    except SnapshotFileNotFoundError:
        return None
    if not isinstance(data, list):
        raise ValueError(f"{collection_file(collection)} in {folder_name} is not a JSON array")
    for position, row in enumerate(data):
        if not isinstance(row, dict):
            raise ValueError(
                f"{collection_file(collection)} in {folder_name}: element {position} "
                f"is {type(row).__name__}, not a JSON object"
            )
    return data


def _check_unique_record_ids(collection: str, rows: list[dict]) -> None:
    """Reject snapshot records that share an ``_itemId``.

    Two records with the same old identifier would make lookups to it
    resolve to whichever was recreated last.

    Raises:
        ValueError: On the first duplicate.
    """
    seen: set[int] = set()
    for row in rows:
        record_id = _as_record_id(row.get(RECORD_ID_FIELD))
        if record_id is None:
            continue
        if record_id in seen:
            raise ValueError(f"{collection} has duplicate {RECORD_ID_FIELD} {record_id}")
        seen.add(record_id)


# ============================================================================
# Validation
# ============================================================================


async def validate_backup(
    snapshots: SnapshotStoreClient,
    folder_name: str,
    catalog: CollectionCatalog,
) -> BackupValidation:
    """Check a snapshot's format and internal consistency without restoring it.

    Errors make the snapshot unsafe to restore: missing or unsupported
    manifest, collection files that are not arrays, record counts that
    disagree with the manifest, records without an integer ``_itemId``.
    Warnings flag data that restores with losses: collections missing
    from the snapshot, and lookups pointing at records the snapshot does
    not contain (those lookups are dropped on restore).

    Args:
        snapshots: Snapshot store client.
        folder_name: Snapshot folder to validate.
        catalog: Collection catalog to validate against.

    Returns:
        ``BackupValidation`` with ``valid``, ``errors`` and ``warnings``.

    Example:
        result = await validate_backup(snapshots, name, DEFAULT_CATALOG)
        if not result.valid:
            print(result.format_report())
    """
    errors: list[str] = []
    warnings: list[str] = []

    manifest: BackupManifest | None = None
    try:
        manifest = await _load_manifest(snapshots, folder_name)
    except SnapshotFileNotFoundError:
        errors.append(f"Missing {MANIFEST_FILE} (incomplete backup)")
    except ValidationError as e:
        errors.append(f"Invalid {MANIFEST_FILE}: {e.error_count()} problem(s)")

    if manifest is not None:
        if manifest.version != MANIFEST_VERSION:
            errors.append(
                f"Unsupported backup version {manifest.version} (expected {MANIFEST_VERSION})"
            )
        for name in manifest.collections:
            if name not in catalog.names():
                warnings.append(f"{name} is not in the catalog and will not be restored")

    # Old identifiers per collection, for lookup checks
    old_ids: dict[str, set[int]] = {}
    data: dict[str, list[dict]] = {}

    for coll in catalog.ordered_collections():
        try:
            rows = await _download_collection(snapshots, folder_name, coll.name)
        except ValueError as e:
            errors.append(str(e))
            continue

        if rows is None:
            expected = manifest.collections.get(coll.name) if manifest else None
            if expected is not None and expected.count > 0:
                errors.append(f"{collection_file(coll.name)} missing but manifest lists {expected.count} records")
            else:
                warnings.append(f"{coll.name} not in backup (restores as empty)")
            rows = []

        elif manifest is not None and coll.name in manifest.collections:
            expected_count = manifest.collections[coll.name].count
            if expected_count != len(rows):
                errors.append(
                    f"{coll.name}: manifest lists {expected_count} records, file has {len(rows)}"
                )

        ids: set[int] = set()
        for row in rows:
            record_id = _as_record_id(row.get(RECORD_ID_FIELD))
            if record_id is None:
                errors.append(f"{coll.name} record missing integer '{RECORD_ID_FIELD}'")
            elif record_id in ids:
                errors.append(f"{coll.name} has duplicate {RECORD_ID_FIELD} {record_id}")
            else:
                ids.add(record_id)

        old_ids[coll.name] = ids
        data[coll.name] = rows

    for coll in catalog.ordered_collections():
        for fk in coll.foreign_keys:
            targets = old_ids.get(fk.target, set())
            orphans = 0
            for row in data.get(coll.name, []):
                value = row.get(fk.field)
                if value is not None and _as_record_id(value) not in targets:
                    orphans += 1
            if orphans:
                warnings.append(
                    f"{orphans} {coll.name}.{fk.field} value(s) reference records "
                    f"missing from {fk.target}; dropped on restore"
                )

    return BackupValidation(
        folder_name=folder_name,
        valid=not errors,
        errors=errors,
        warnings=warnings,
    )


# ============================================================================
# Restore
# ============================================================================


def build_restore_fields(
    raw: dict[str, Any],
    coll: CollectionDef,
    id_maps: dict[str, dict[int, int]],
    stats: CollectionRestoreStats | None = None,
) -> dict[str, Any]:
    """Build the fields to create a record with from its exported form.

    Strips system fields and OData annotations, leaves out
    self-referential lookups (patched in a second pass), and rewrites the
    remaining lookups through ``id_maps``.  A lookup whose old identifier
    is not in its target's map is omitted, never written stale.

    Args:
        raw: Exported record (``_itemId`` plus raw fields).
        coll: Definition of the record's collection.
        id_maps: Old -> new identifier maps, keyed by collection.
        stats: Optional stats to count dropped lookups in.

    Returns:
        Field dict ready for ``RecordStoreClient.create``.
    """
    lookups = {fk.field: fk for fk in coll.foreign_keys}
    fields: dict[str, Any] = {}

    for key, value in raw.items():
        if key in SYSTEM_FIELDS or key.startswith("@odata."):
            continue

        fk = lookups.get(key)
        if fk is None:
            fields[key] = value
            continue

        if coll.is_self_reference(fk) or value is None:
            continue

        old_id = _as_record_id(value)
        new_id = id_maps.get(fk.target, {}).get(old_id) if old_id is not None else None
        if new_id is None:
            logger.debug(f"Dropping {coll.name}.{key}={value!r}: no restored {fk.target} record")
            if stats is not None:
                stats.dropped_references += 1
            continue

        fields[key] = new_id

    return fields


async def _recreate_collection(
    records: RecordStoreClient,
    coll: CollectionDef,
    rows: list[dict],
    id_maps: dict[str, dict[int, int]],
    stats: CollectionRestoreStats,
    reporter: ProgressReporter,
    collections_completed: int,
    collections_total: int,
    progress_interval: int,
    records_done: int,
    records_total: int,
) -> None:
    # records_done and records_total are operation-wide; cadence is per collection
    id_map = id_maps.setdefault(coll.name, {})
    total = len(rows)

    await reporter.publish(
        OperationProgress(
            phase="Restoring",
            current_collection=coll.name,
            collections_completed=collections_completed,
            collections_total=collections_total,
            records_processed=records_done,
            records_total=records_total,
        )
    )

    for processed, raw in enumerate(rows, start=1):
        fields = build_restore_fields(raw, coll, id_maps, stats)
        created = await records.create(coll.name, fields)
        stats.created += 1

        old_id = _as_record_id(raw.get(RECORD_ID_FIELD))
        if old_id is not None:
            id_map[old_id] = int(created["id"])

        if should_report(processed, total, progress_interval):
            await reporter.publish(
                OperationProgress(
                    phase="Restoring",
                    current_collection=coll.name,
                    collections_completed=collections_completed,
                    collections_total=collections_total,
                    records_processed=records_done + processed,
                    records_total=records_total,
                )
            )

    logger.info(
        f"Restored {stats.created} {coll.name} records "
        f"({stats.dropped_references} unresolved lookups dropped)"
    )


async def _link_self_references(
    records: RecordStoreClient,
    coll: CollectionDef,
    rows: list[dict],
    id_map: dict[int, int],
    stats: CollectionRestoreStats,
    reporter: ProgressReporter,
    collections_total: int,
    records_total: int,
) -> None:
    self_fields = coll.self_referential_fields

    await reporter.publish(
        OperationProgress(
            phase="Linking self-references",
            current_collection=coll.name,
            collections_completed=collections_total,
            collections_total=collections_total,
            records_processed=records_total,
            records_total=records_total,
        )
    )

    for raw in rows:
        old_id = _as_record_id(raw.get(RECORD_ID_FIELD))
        new_id = id_map.get(old_id) if old_id is not None else None
        if new_id is None:
            continue

        patch: dict[str, int] = {}
        for field in self_fields:
            old_ref = _as_record_id(raw.get(field))
            new_ref = id_map.get(old_ref) if old_ref is not None else None
            if new_ref is not None:
                patch[field] = new_ref
            elif raw.get(field) is not None:
                stats.dropped_references += 1

        if patch:
            await records.patch(coll.name, new_id, patch)
            stats.self_references_patched += 1

    logger.info(f"Linked {stats.self_references_patched} self-referencing {coll.name} records")


async def restore_from_backup(
    records: RecordStoreClient,
    snapshots: SnapshotStoreClient,
    catalog: CollectionCatalog,
    folder_name: str,
    progress: ProgressArg = None,
    progress_interval: int = DEFAULT_PROGRESS_INTERVAL,
) -> RestoreReport:
    """Replace the whole dataset with the contents of a snapshot.

    Args:
        records: Record store client to write to.
        snapshots: Snapshot store client to read from.
        catalog: Collection catalog.
        folder_name: Snapshot folder to restore.
        progress: ``ProgressReporter``, plain callback, or ``None``.
        progress_interval: Emit per-record progress every N records.

    Returns:
        ``RestoreReport`` with ``phase=COMPLETE`` and per-collection counts.

    Raises:
        IncompleteBackupError: If the snapshot has no readable manifest.
            Raised before anything is deleted.
        RestoreError: On the first failure of any phase.  A collection
            file that is not an array of objects, or that repeats an
            ``_itemId``, fails the download phase before anything is
            deleted.  ``.report`` describes the partial state; the
            original exception is the ``__cause__``.  There is no rollback.

    Progress counters run across the whole restore: ``collections_total``
    is twice the catalog size (clear, then recreate) and the record
    counters add the records created to those cleared.

    Example:
        try:
            report = await restore_from_backup(records, snapshots, DEFAULT_CATALOG, name)
        except RestoreError as e:
            print(e.report.failed_phase, e.report.restored_collections)
    """
    reporter = as_reporter(progress)
    report = RestoreReport(folder_name=folder_name)
    collections = catalog.ordered_collections()
    # Every collection is visited twice: once to clear, once to recreate
    total = 2 * len(collections)
    records_total = 0

    try:
        # Phase 1: download
        report.phase = RestorePhase.DOWNLOADING
        await reporter.publish(
            OperationProgress(phase="Downloading backup", collections_total=total)
        )

        try:
            manifest = await _load_manifest(snapshots, folder_name)
        except (SnapshotFileNotFoundError, ValidationError) as e:
            raise IncompleteBackupError(
                f"Backup {folder_name} has no readable {MANIFEST_FILE}; it is incomplete "
                f"and cannot be restored",
                report,
            ) from e
        if manifest.version > MANIFEST_VERSION:
            raise RestoreError(
                f"Backup {folder_name} has version {manifest.version}; "
                f"this tool reads up to version {MANIFEST_VERSION}",
                report,
            )

        backup_data: dict[str, list[dict]] = {}
        for coll in collections:
            rows = await _download_collection(snapshots, folder_name, coll.name)
            if rows is None:
                # Snapshot predates this collection
                logger.info(f"{coll.name} not in backup {folder_name}; restoring as empty")
                rows = []
            _check_unique_record_ids(coll.name, rows)
            backup_data[coll.name] = rows
            report.collections[coll.name] = CollectionRestoreStats(expected=len(rows))

        # Phase 2: clear
        report.phase = RestorePhase.CLEARING
        logger.info(f"Clearing existing data before restoring {folder_name}")
        await clear_collections(
            records,
            catalog,
            reporter,
            phase="Clearing existing data",
            progress_interval=progress_interval,
            summary=report.cleared,
            collections_total=total,
        )

        # Phase 3: recreate in dependency order, counting on from the clear
        report.phase = RestorePhase.RESTORING
        records_done = report.cleared.total
        records_total = records_done + sum(len(rows) for rows in backup_data.values())
        id_maps: dict[str, dict[int, int]] = {}
        for index, coll in enumerate(collections):
            await _recreate_collection(
                records,
                coll,
                backup_data[coll.name],
                id_maps,
                report.collections[coll.name],
                reporter,
                collections_completed=len(collections) + index,
                collections_total=total,
                progress_interval=progress_interval,
                records_done=records_done,
                records_total=records_total,
            )
            records_done += len(backup_data[coll.name])
            report.restored_collections.append(coll.name)

        # Phase 4: self-references, once every record exists
        report.phase = RestorePhase.LINKING_SELF_REFERENCES
        for coll in collections:
            if not coll.self_referential_fields:
                continue
            await _link_self_references(
                records,
                coll,
                backup_data[coll.name],
                id_maps.get(coll.name, {}),
                report.collections[coll.name],
                reporter,
                collections_total=total,
                records_total=records_total,
            )

    except Exception as e:
        report.failed_phase = report.phase
        report.phase = RestorePhase.FAILED
        report.error = str(e)
        logger.error(f"Restore of {folder_name} failed during {report.failed_phase.value}: {e}")
        if isinstance(e, RestoreError):
            raise
        raise RestoreError(f"Restore failed during {report.failed_phase.value}: {e}", report) from e

    report.phase = RestorePhase.COMPLETE
    await reporter.publish(
        OperationProgress(
            phase="Restore complete",
            collections_completed=total,
            collections_total=total,
            records_processed=records_total,
            records_total=records_total,
        )
    )
    logger.info(f"Restore of {folder_name} complete: {report.total_created} records created")
    return report
