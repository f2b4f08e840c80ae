"""Reset engine: delete every record of every collection.

Collections are processed in reverse dependency order (junctions first,
reference data last) so no record is deleted while a record that looks it
up still exists.  Deletion is fail-fast: the first failed delete aborts the
whole run, leaving earlier collections empty and the current one partly
deleted.

Usage:
    from list_backup.backup.reset import reset_all_data
    from list_backup.backup.catalog import DEFAULT_CATALOG

    summary = await reset_all_data(records, DEFAULT_CATALOG, progress=print)
    print(summary.total)
"""

import logging

from list_backup.adapters.base import RecordStoreClient
from list_backup.backup.models import CollectionCatalog, OperationProgress, ResetSummary
from list_backup.backup.progress import (
    DEFAULT_PROGRESS_INTERVAL,
    ProgressArg,
    ProgressReporter,
    as_reporter,
    should_report,
)

logger = logging.getLogger(__name__)


async def delete_all_records(
    records: RecordStoreClient,
    collection: str,
    reporter: ProgressReporter,
    phase: str,
    collections_completed: int,
    collections_total: int,
    progress_interval: int = DEFAULT_PROGRESS_INTERVAL,
    records_done: int = 0,
) -> int:
    """Delete every record in one collection.

    Collects all identifiers first, then deletes them one at a time.

    Args:
        records: Record store client.
        collection: Collection to empty.
        reporter: Progress reporter.
        phase: Phase label used in progress events.
        collections_completed: Collections already processed in this run.
        collections_total: Collections in this run.
        progress_interval: Emit progress every N deletions (and on the last).
        records_done: Records already deleted earlier in this run; the
            ``records_*`` counters of every event start from here.

    Returns:
        Number of records deleted.
    """
    await reporter.publish(
        OperationProgress(
            phase=phase,
            current_collection=collection,
            collections_completed=collections_completed,
            collections_total=collections_total,
            records_processed=records_done,
            records_total=records_done,
        )
    )

    record_ids = await records.list_ids(collection)
    total = len(record_ids)

    for processed, record_id in enumerate(record_ids, start=1):
        await records.delete(collection, record_id)

        if should_report(processed, total, progress_interval):
            await reporter.publish(
                OperationProgress(
                    phase=phase,
                    current_collection=collection,
                    collections_completed=collections_completed,
                    collections_total=collections_total,
                    records_processed=records_done + processed,
                    records_total=records_done + total,
                )
            )

    logger.info(f"Deleted {total} records from {collection}")
    return total


async def clear_collections(
    records: RecordStoreClient,
    catalog: CollectionCatalog,
    reporter: ProgressReporter,
    phase: str,
    progress_interval: int = DEFAULT_PROGRESS_INTERVAL,
    summary: ResetSummary | None = None,
    collections_total: int | None = None,
) -> ResetSummary:
    """Empty every catalog collection in reverse dependency order.

    ``summary`` is filled in place as collections finish, so a caller
    holding it still sees what was deleted when a delete fails.
    ``collections_total`` overrides the total reported in progress events
    when clearing is only the first part of a longer operation.
    """
    summary = summary if summary is not None else ResetSummary()
    order = catalog.deletion_order()
    total = collections_total if collections_total is not None else len(order)

    for index, coll in enumerate(order):
        summary.deleted[coll.name] = await delete_all_records(
            records,
            coll.name,
            reporter,
            phase=phase,
            collections_completed=index,
            collections_total=total,
            progress_interval=progress_interval,
            records_done=summary.total,
        )

    return summary


async def reset_all_data(
    records: RecordStoreClient,
    catalog: CollectionCatalog,
    progress: ProgressArg = None,
    progress_interval: int = DEFAULT_PROGRESS_INTERVAL,
) -> ResetSummary:
    """Delete ALL records from ALL catalog collections.

    Args:
        records: Record store client.
        catalog: Collection catalog (deletion runs in reverse of its order).
        progress: ``ProgressReporter``, plain callback, or ``None``.
        progress_interval: Emit per-record progress every N deletions.

    Returns:
        ``ResetSummary`` with the number of records deleted per collection.

    Raises:
        Exception: Whatever the record store raised for the first failed
            read or delete.  No retry, no skip.

    Example:
        summary = await reset_all_data(records, DEFAULT_CATALOG)
    """
    reporter = as_reporter(progress)
    logger.info(f"Resetting {len(catalog.collections)} collections")

    summary = await clear_collections(
        records, catalog, reporter, phase="Deleting", progress_interval=progress_interval
    )

    await reporter.publish(
        OperationProgress(
            phase="Reset complete",
            collections_completed=len(catalog.collections),
            collections_total=len(catalog.collections),
            records_processed=summary.total,
            records_total=summary.total,
        )
    )
    logger.info(f"Reset complete: {summary.total} records deleted")
    return summary
