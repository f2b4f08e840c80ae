"""Backup, restore and reset with a declarative collection catalog.

Provides ``CollectionCatalog``-driven backup, restore, reset and
validation.  The collections and their lookup fields are declared by the
caller; ``DEFAULT_CATALOG`` describes the deployed TSS lists.

Usage:
    from list_backup.backup import CollectionCatalog, CollectionDef, ForeignKey
    from list_backup.backup import create_backup, restore_from_backup, reset_all_data
"""

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
    BackupValidation,
    CollectionCatalog,
    CollectionDef,
    ForeignKey,
    OperationProgress,
    ResetSummary,
    RestorePhase,
    RestoreReport,
)
from list_backup.backup.progress import CallbackReporter, ProgressChannel, ProgressReporter
from list_backup.backup.reset import reset_all_data

__all__ = [
    "CollectionCatalog",
    "CollectionDef",
    "ForeignKey",
    "DEFAULT_CATALOG",
    "BackupManifest",
    "BackupInfo",
    "BackupValidation",
    "OperationProgress",
    "ResetSummary",
    "RestorePhase",
    "RestoreReport",
    "ProgressReporter",
    "CallbackReporter",
    "ProgressChannel",
    "create_backup",
    "list_backups",
    "delete_backup",
    "validate_backup",
    "restore_from_backup",
    "reset_all_data",
    "RestoreError",
    "IncompleteBackupError",
]
