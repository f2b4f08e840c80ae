"""CLI module for list store backup, restore and reset.

Usage:
    list-backup profiles
    list-backup catalog
    list-backup --profile prod backup --created-by me@example.com
    list-backup list
    list-backup validate 2026-01-15T09-30-00-000Z
    list-backup restore 2026-01-15T09-30-00-000Z --yes
    list-backup reset
    list-backup delete 2026-01-15T09-30-00-000Z

Commands:
    profiles  - List configured profiles
    catalog   - Show collection creation order and lookup fields
    backup    - Export every collection to a new snapshot
    list      - List snapshots, newest first
    validate  - Check a snapshot without restoring it
    restore   - Replace all data with a snapshot's contents
    reset     - Delete all data
    delete    - Delete a snapshot
"""

import argparse
import asyncio
import getpass
import logging
import sys
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler
from rich.progress import BarColumn, MofNCompleteColumn, Progress, TextColumn
from rich.prompt import Confirm
from rich.table import Table

from list_backup.backup.backup_restore import (
    RestoreError,
    create_backup,
    delete_backup,
    list_backups,
    restore_from_backup,
    validate_backup,
)
from list_backup.backup.catalog import DEFAULT_CATALOG
from list_backup.backup.models import OperationProgress
from list_backup.backup.progress import CallbackReporter
from list_backup.backup.reset import reset_all_data
from list_backup.config.loader import load_backup_config
from list_backup.config.models import BackupConfig
from list_backup.factory import (
    CredentialsNotFoundError,
    ProfileNotFoundError,
    StoreClients,
    create_clients,
)

console = Console()


# ============================================================================
# Helpers
# ============================================================================


class _ProgressView:
    """Live rich progress bar fed by engine progress events."""

    def __init__(self) -> None:
        self._progress = Progress(
            TextColumn("[bold]{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            TextColumn("[dim]{task.fields[detail]}"),
            console=console,
            transient=True,
        )
        self._task = self._progress.add_task("Starting", total=None, detail="")
        self.reporter = CallbackReporter(self.update)

    def update(self, event: OperationProgress) -> None:
        detail = event.current_collection or ""
        if event.records_total:
            detail += f" ({event.records_processed}/{event.records_total})"
        self._progress.update(
            self._task,
            description=event.phase,
            completed=event.collections_completed,
            total=event.collections_total or None,
            detail=detail,
        )

    def __enter__(self) -> "_ProgressView":
        self._progress.start()
        return self

    def stop(self) -> None:
        """Remove the bar before printing an error (safe to call twice)."""
        self._progress.stop()

    def __exit__(self, *exc_info: object) -> None:
        self.stop()


def _print_last_progress(event: OperationProgress | None) -> None:
    if event is None:
        return
    where = f" in {event.current_collection}" if event.current_collection else ""
    console.print(
        f"  [dim]Last progress:[/dim] {event.phase}{where}, "
        f"{event.collections_completed}/{event.collections_total} collections, "
        f"{event.records_processed}/{event.records_total} records"
    )


def _load_config(args: argparse.Namespace) -> BackupConfig | None:
    try:
        return load_backup_config(Path(args.config) if args.config else None)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        return None


def _open_clients(args: argparse.Namespace) -> StoreClients | None:
    config = _load_config(args)
    if config is None:
        return None
    try:
        clients = create_clients(
            profile_name=args.profile,
            env_prefix=args.env_prefix,
            config=config,
        )
    except (ProfileNotFoundError, CredentialsNotFoundError) as e:
        console.print(f"[red]Error: {e}[/red]")
        return None
    console.print(f"Profile: [bold cyan]{clients.profile_name}[/bold cyan]", style="dim")
    return clients


def _confirm(args: argparse.Namespace, message: str) -> bool:
    if args.yes:
        return True
    return Confirm.ask(message, console=console, default=False)


# ============================================================================
# Async command implementations
# ============================================================================


async def _async_backup(args: argparse.Namespace) -> int:
    """Async implementation for backup command.

    Returns:
        0 on success, 1 on failure.
    """
    clients = _open_clients(args)
    if clients is None:
        return 1

    created_by = args.created_by or clients.profile.created_by or getpass.getuser()

    async with clients:
        with _ProgressView() as view:
            try:
                name = await create_backup(
                    clients.records,
                    clients.snapshots,
                    DEFAULT_CATALOG,
                    created_by,
                    progress=view.reporter,
                )
            except Exception as e:
                view.stop()
                console.print(f"[bold red]x[/bold red] Backup failed: {e}")
                _print_last_progress(view.reporter.last)
                return 1

    console.print(f"[bold green]v[/bold green] Backup created: [bold cyan]{name}[/bold cyan]")
    return 0


async def _async_list(args: argparse.Namespace) -> int:
    """Async implementation for list command.

    Returns:
        0 on success, 1 on failure.
    """
    clients = _open_clients(args)
    if clients is None:
        return 1

    async with clients:
        try:
            backups = await list_backups(clients.snapshots)
        except Exception as e:
            console.print(f"[bold red]x[/bold red] Could not list backups: {e}")
            return 1

    if not backups:
        console.print("[yellow]No backups found.[/yellow]")
        return 0

    table = Table(title="Backups", show_header=True, header_style="bold")
    table.add_column("Folder")
    table.add_column("Created")
    table.add_column("By")
    table.add_column("Records", justify="right")
    table.add_column("Status")

    for info in backups:
        if info.manifest is None:
            table.add_row(info.folder_name, "", "", "", "[red]incomplete[/red]")
            continue
        table.add_row(
            info.folder_name,
            info.manifest.created_at,
            info.manifest.created_by,
            str(info.manifest.total_records),
            "[green]complete[/green]",
        )

    console.print(table)
    return 0


async def _async_validate(args: argparse.Namespace) -> int:
    """Async implementation for validate command.

    Returns:
        0 on valid backup, 1 on invalid backup or failure.
    """
    clients = _open_clients(args)
    if clients is None:
        return 1

    async with clients:
        try:
            result = await validate_backup(clients.snapshots, args.folder, DEFAULT_CATALOG)
        except Exception as e:
            console.print(f"[bold red]x[/bold red] Validation failed: {e}")
            return 1

    console.print(result.format_report())
    if result.valid:
        console.print("\n[bold green]v[/bold green] Backup is valid")
        return 0
    console.print("\n[bold red]x[/bold red] Backup is invalid")
    return 1


async def _async_restore(args: argparse.Namespace) -> int:
    """Async implementation for restore command.

    Returns:
        0 on success, 1 on failure or cancellation.
    """
    clients = _open_clients(args)
    if clients is None:
        return 1

    console.print(
        f"[bold yellow]This deletes ALL current data[/bold yellow] and replaces it "
        f"with backup [bold]{args.folder}[/bold]."
    )
    if not _confirm(args, "Continue?"):
        console.print("Cancelled.")
        await clients.close()
        return 1

    async with clients:
        with _ProgressView() as view:
            try:
                report = await restore_from_backup(
                    clients.records,
                    clients.snapshots,
                    DEFAULT_CATALOG,
                    args.folder,
                    progress=view.reporter,
                    progress_interval=clients.settings.progress_interval,
                )
            except RestoreError as e:
                view.stop()
                console.print(f"[bold red]x[/bold red] {e}")
                if e.report.restored_collections:
                    console.print(
                        f"  Fully restored before the failure: "
                        f"{', '.join(e.report.restored_collections)}"
                    )
                _print_last_progress(view.reporter.last)
                return 1

    table = Table(title=f"Restored {args.folder}", show_header=True, header_style="bold")
    table.add_column("Collection", style="dim")
    table.add_column("Created", justify="right")
    table.add_column("Lookups dropped", justify="right")
    table.add_column("Self-refs linked", justify="right")
    for name, stats in report.collections.items():
        table.add_row(
            name,
            str(stats.created),
            str(stats.dropped_references) if stats.dropped_references else "-",
            str(stats.self_references_patched) if stats.self_references_patched else "-",
        )
    console.print(table)
    console.print(
        f"[bold green]v[/bold green] Restore complete: {report.total_created} records "
        f"(cleared {report.cleared.total} first)"
    )
    return 0


async def _async_reset(args: argparse.Namespace) -> int:
    """Async implementation for reset command.

    Returns:
        0 on success, 1 on failure or cancellation.
    """
    clients = _open_clients(args)
    if clients is None:
        return 1

    console.print("[bold yellow]This deletes ALL data in ALL lists.[/bold yellow]")
    if not _confirm(args, "Continue?"):
        console.print("Cancelled.")
        await clients.close()
        return 1

    async with clients:
        with _ProgressView() as view:
            try:
                summary = await reset_all_data(
                    clients.records,
                    DEFAULT_CATALOG,
                    progress=view.reporter,
                    progress_interval=clients.settings.progress_interval,
                )
            except Exception as e:
                view.stop()
                console.print(f"[bold red]x[/bold red] Reset failed: {e}")
                _print_last_progress(view.reporter.last)
                return 1

    console.print(f"[bold green]v[/bold green] Reset complete: {summary.total} records deleted")
    return 0


async def _async_delete(args: argparse.Namespace) -> int:
    """Async implementation for delete command.

    Returns:
        0 on success, 1 on failure or cancellation.
    """
    clients = _open_clients(args)
    if clients is None:
        return 1

    if not _confirm(args, f"Delete backup {args.folder}?"):
        console.print("Cancelled.")
        await clients.close()
        return 1

    async with clients:
        try:
            await delete_backup(clients.snapshots, args.folder)
        except Exception as e:
            console.print(f"[bold red]x[/bold red] Delete failed: {e}")
            return 1

    console.print(f"[bold green]v[/bold green] Deleted backup {args.folder}")
    return 0


# ============================================================================
# Sync command wrappers (cmd_profiles, cmd_catalog read local data only)
# ============================================================================


def cmd_profiles(args: argparse.Namespace) -> int:
    """List available profiles from list-backup.toml.

    Returns:
        0 on success, 1 if the config cannot be loaded.
    """
    config = _load_config(args)
    if config is None:
        return 1

    table = Table(title="Profiles", show_header=True, header_style="bold")
    table.add_column("", width=2)
    table.add_column("Profile")
    table.add_column("Snapshots")
    table.add_column("Site")
    table.add_column("Description")

    for name, profile in config.profiles.items():
        is_default = name == config.default_profile
        location = (
            f"local: {profile.backup_dir}"
            if profile.provider == "local"
            else f"library: {profile.backup_library}"
        )
        table.add_row(
            "[bold green]*[/bold green]" if is_default else " ",
            f"[bold cyan]{name}[/bold cyan]" if is_default else name,
            location,
            profile.site_url,
            profile.description,
        )

    console.print(table)
    if config.default_profile:
        console.print("\n[bold green]*[/bold green] = default profile")
    return 0


def cmd_catalog(args: argparse.Namespace) -> int:
    """Show the computed creation order and lookup fields.

    Returns:
        0 always (informational command).
    """
    table = Table(title="Collection Catalog", show_header=True, header_style="bold")
    table.add_column("Rank", justify="right", style="dim")
    table.add_column("Collection")
    table.add_column("Lookups")

    for rank, coll in enumerate(DEFAULT_CATALOG.ordered_collections()):
        lookups = [
            f"{fk.field} -> {fk.target}" + (" [yellow](self)[/yellow]" if coll.is_self_reference(fk) else "")
            for fk in coll.foreign_keys
        ]
        table.add_row(str(rank), coll.name, "\n".join(lookups) or "-")

    console.print(table)
    return 0


def cmd_backup(args: argparse.Namespace) -> int:
    return asyncio.run(_async_backup(args))


def cmd_list(args: argparse.Namespace) -> int:
    return asyncio.run(_async_list(args))


def cmd_validate(args: argparse.Namespace) -> int:
    return asyncio.run(_async_validate(args))


def cmd_restore(args: argparse.Namespace) -> int:
    return asyncio.run(_async_restore(args))


def cmd_reset(args: argparse.Namespace) -> int:
    return asyncio.run(_async_reset(args))


def cmd_delete(args: argparse.Namespace) -> int:
    return asyncio.run(_async_delete(args))


# ============================================================================
# Main entry point
# ============================================================================


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="list-backup",
        description="Backup, restore and reset for SharePoint list data",
    )

    parser.add_argument(
        "--config",
        default=None,
        help="Path to list-backup.toml (default: ./list-backup.toml)",
    )
    parser.add_argument(
        "--profile",
        "-p",
        default=None,
        help="Profile to use (default: LIST_BACKUP_PROFILE or default_profile)",
    )
    parser.add_argument(
        "--env-prefix",
        default="",
        help=(
            "Prefix for environment variable lookup "
            "(e.g., --env-prefix APP_ reads APP_LIST_BACKUP_PROFILE)"
        ),
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Log engine activity",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    p_profiles = subparsers.add_parser("profiles", help="List configured profiles")
    p_profiles.set_defaults(func=cmd_profiles)

    p_catalog = subparsers.add_parser("catalog", help="Show collection order and lookups")
    p_catalog.set_defaults(func=cmd_catalog)

    p_backup = subparsers.add_parser("backup", help="Create a backup")
    p_backup.add_argument(
        "--created-by",
        default=None,
        help="Author recorded in the manifest (default: profile created_by or login name)",
    )
    p_backup.set_defaults(func=cmd_backup)

    p_list = subparsers.add_parser("list", help="List backups, newest first")
    p_list.set_defaults(func=cmd_list)

    p_validate = subparsers.add_parser("validate", help="Validate a backup")
    p_validate.add_argument("folder", help="Backup folder name")
    p_validate.set_defaults(func=cmd_validate)

    p_restore = subparsers.add_parser("restore", help="Replace all data with a backup")
    p_restore.add_argument("folder", help="Backup folder name")
    p_restore.add_argument("--yes", "-y", action="store_true", help="Skip confirmation prompt")
    p_restore.set_defaults(func=cmd_restore)

    p_reset = subparsers.add_parser("reset", help="Delete all data")
    p_reset.add_argument("--yes", "-y", action="store_true", help="Skip confirmation prompt")
    p_reset.set_defaults(func=cmd_reset)

    p_delete = subparsers.add_parser("delete", help="Delete a backup")
    p_delete.add_argument("folder", help="Backup folder name")
    p_delete.add_argument("--yes", "-y", action="store_true", help="Skip confirmation prompt")
    p_delete.set_defaults(func=cmd_delete)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
