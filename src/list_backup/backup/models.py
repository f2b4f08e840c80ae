"""Backup models: declarative collection catalog, manifest and reports.

Projects declare their collections and the foreign-key (lookup) fields
between them; the catalog computes a dependency-safe creation order and the
engines handle identifier remapping automatically.

Usage:
    from list_backup.backup.models import CollectionCatalog, CollectionDef, ForeignKey

    catalog = CollectionCatalog(collections=[
        CollectionDef(name="authors"),
        CollectionDef(name="books", foreign_keys=[
            ForeignKey(field="authorLookupId", target="authors"),
            ForeignKey(field="sequelLookupId", target="books"),   # self-reference
        ]),
    ])
    catalog.names()                        # ["authors", "books"]
    catalog.self_referential_fields("books")  # ["sequelLookupId"]
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, model_validator


# ============================================================================
# Catalog
# ============================================================================


class ForeignKey(BaseModel):
    """Lookup field holding the identifier of a record in another collection."""

    field: str          # lookup field in the owning collection
    target: str         # collection the identifier points into


class CollectionDef(BaseModel):
    """Definition of a collection for backup/restore operations."""

    name: str
    foreign_keys: list[ForeignKey] = Field(default_factory=list)

    def is_self_reference(self, fk: ForeignKey) -> bool:
        return fk.target == self.name

    @property
    def self_referential_fields(self) -> list[str]:
        """Lookup fields pointing back into this same collection."""
        return [fk.field for fk in self.foreign_keys if self.is_self_reference(fk)]

    @property
    def dependencies(self) -> set[str]:
        """Collections that must be created before this one."""
        return {fk.target for fk in self.foreign_keys if not self.is_self_reference(fk)}


def _stable_topological_order(collections: list[CollectionDef]) -> list[str]:
    """Order collections so every dependency precedes its dependents.

    Declaration order breaks ties, so an already valid list keeps its
    order exactly.  Self-references are not edges.

    Raises:
        ValueError: If the non-self-referential edges form a cycle.
    """
    ordered: list[str] = []
    placed: set[str] = set()
    remaining = list(collections)

    while remaining:
        for coll in remaining:
            if coll.dependencies <= placed:
                ordered.append(coll.name)
                placed.add(coll.name)
                remaining.remove(coll)
                break
        else:
            names = ", ".join(c.name for c in remaining)
            raise ValueError(f"Foreign keys form a dependency cycle among: {names}")

    return ordered


class CollectionCatalog(BaseModel):
    """Declarative catalog of every collection and its foreign keys.

    The creation order is computed from the declared edges at
    construction time; duplicate names, unknown targets and dependency
    cycles are rejected.
    """

    collections: list[CollectionDef]

    _order: list[str] = PrivateAttr(default_factory=list)
    _by_name: dict[str, CollectionDef] = PrivateAttr(default_factory=dict)

    @model_validator(mode="after")
    def _check_graph(self) -> "CollectionCatalog":
        by_name: dict[str, CollectionDef] = {}
        for coll in self.collections:
            if coll.name in by_name:
                raise ValueError(f"Duplicate collection: {coll.name}")
            by_name[coll.name] = coll

        for coll in self.collections:
            for fk in coll.foreign_keys:
                if fk.target not in by_name:
                    raise ValueError(
                        f"{coll.name}.{fk.field} references undeclared collection '{fk.target}'"
                    )

        self._by_name = by_name
        self._order = _stable_topological_order(self.collections)
        return self

    def names(self) -> list[str]:
        """Collection names in creation order."""
        return list(self._order)

    def ordered_collections(self) -> list[CollectionDef]:
        """Collections in creation order (dependencies first, junctions last)."""
        return [self._by_name[name] for name in self._order]

    def deletion_order(self) -> list[CollectionDef]:
        """Collections in deletion order (reverse of creation order)."""
        return list(reversed(self.ordered_collections()))

    def get(self, name: str) -> CollectionDef:
        """Look up a collection by name.

        Raises:
            KeyError: If the collection is not declared.
        """
        return self._by_name[name]

    def rank_of(self, name: str) -> int:
        """Position of a collection in the creation order."""
        return self._order.index(name)

    def foreign_keys_of(self, name: str) -> list[ForeignKey]:
        return list(self.get(name).foreign_keys)

    def self_referential_fields(self, name: str) -> list[str]:
        return self.get(name).self_referential_fields


# ============================================================================
# Snapshot metadata
# ============================================================================


MANIFEST_VERSION = 1


class CollectionCount(BaseModel):
    count: int


class BackupManifest(BaseModel):
    """Contents of ``manifest.json``, the snapshot's completion marker.

    Serialized with camelCase keys and ``lists`` for the per-collection
    counts, the layout existing snapshots already use.
    """

    model_config = ConfigDict(populate_by_name=True)

    version: int = MANIFEST_VERSION
    created_at: str = Field(alias="createdAt")
    created_by: str = Field(alias="createdBy")
    collections: dict[str, CollectionCount] = Field(default_factory=dict, alias="lists")

    @property
    def total_records(self) -> int:
        return sum(c.count for c in self.collections.values())


class BackupInfo(BaseModel):
    """One snapshot folder as listed for the user."""

    folder_name: str
    manifest: BackupManifest | None = None    # None: partial or corrupt backup

    @property
    def is_complete(self) -> bool:
        return self.manifest is not None


class BackupValidation(BaseModel):
    """Result of ``validate_backup()``."""

    folder_name: str
    valid: bool
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)

    def format_report(self) -> str:
        """Format validation result as human-readable report."""
        lines = [f"Backup {self.folder_name}: {'valid' if self.valid else 'INVALID'}"]

        if self.errors:
            lines.append(f"\n  Errors ({len(self.errors)}):")
            for error in self.errors:
                lines.append(f"    - {error}")

        if self.warnings:
            lines.append(f"\n  Warnings ({len(self.warnings)}):")
            for warning in self.warnings:
                lines.append(f"    - {warning}")

        return "\n".join(lines)


# ============================================================================
# Progress and operation reports
# ============================================================================


class OperationProgress(BaseModel):
    """One progress event emitted by a backup, restore or reset run.

    Every counter is cumulative and never decreases within one operation.
    ``records_*`` count records handled so far across all collections.
    A restore visits each collection twice, once to clear it and once to
    recreate it, so its ``collections_total`` is twice the catalog size.
    """

    phase: str
    current_collection: str | None = None
    collections_completed: int = 0
    collections_total: int = 0
    records_processed: int = 0
    records_total: int = 0


class RestorePhase(str, Enum):
    IDLE = "idle"
    DOWNLOADING = "downloading"
    CLEARING = "clearing"
    RESTORING = "restoring"
    LINKING_SELF_REFERENCES = "linking_self_references"
    COMPLETE = "complete"
    FAILED = "failed"


class CollectionRestoreStats(BaseModel):
    """Per-collection outcome of a restore."""

    expected: int = 0                    # records in the snapshot
    created: int = 0
    dropped_references: int = 0          # lookups omitted because the target did not resolve
    self_references_patched: int = 0


class ResetSummary(BaseModel):
    """Records deleted per collection by a reset (or a restore's clearing phase)."""

    deleted: dict[str, int] = Field(default_factory=dict)

    @property
    def total(self) -> int:
        return sum(self.deleted.values())


class RestoreReport(BaseModel):
    """Outcome of ``restore_from_backup()``.

    On failure the report is attached to the raised ``RestoreError`` with
    ``phase`` set to ``FAILED`` and ``failed_phase`` naming where the run
    stopped.  The store is left exactly as it was at that moment.
    """

    folder_name: str
    phase: RestorePhase = RestorePhase.IDLE
    failed_phase: RestorePhase | None = None
    error: str | None = None
    cleared: ResetSummary = Field(default_factory=ResetSummary)
    collections: dict[str, CollectionRestoreStats] = Field(default_factory=dict)
    restored_collections: list[str] = Field(default_factory=list)   # fully recreated, in order

    @property
    def succeeded(self) -> bool:
        return self.phase == RestorePhase.COMPLETE

    @property
    def total_created(self) -> int:
        return sum(s.created for s in self.collections.values())

    @property
    def total_dropped_references(self) -> int:
        return sum(s.dropped_references for s in self.collections.values())
