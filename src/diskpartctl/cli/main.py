"""
diskpartctl CLI Main Entry Point.

Command-line interface over the diskpart operation service.
"""

from __future__ import annotations

import json
import sys
from contextlib import AbstractContextManager, nullcontext
from pathlib import Path

import click
import humanize
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from diskpartctl import __version__
from diskpartctl.core.config import DiskpartCtlConfig, load_config
from diskpartctl.core.errors import InvalidCommandError, PartitionNotFoundError
from diskpartctl.core.logging import AuditLog, setup_logging
from diskpartctl.core.models import CommandResult, Disk, Partition
from diskpartctl.core.safety import (
    Operation,
    PreflightReport,
    check_disk_operation_safety,
    check_partition_operation_safety,
    check_power_status,
    generate_confirmation_string,
    validate_drive_letter,
    validate_partition_size,
    verify_confirmation,
)
from diskpartctl.diskpart.executor import DiskpartExecutor
from diskpartctl.diskpart.service import DiskpartService
from diskpartctl.platform import get_platform_name, privilege_status

console = Console()
err_console = Console(stderr=True)

MB = 1024 * 1024


def get_service(ctx: click.Context) -> DiskpartService:
    """Get or create the operation service from context."""
    if "service" not in ctx.obj:
        config: DiskpartCtlConfig = ctx.obj["config"]
        audit = AuditLog(config.get_audit_file(), max_entries=config.logging.audit_max_entries)
        ctx.call_on_close(lambda: audit.save() if audit.entries else None)
        executor = DiskpartExecutor(config.executor, audit=audit)
        ctx.obj["service"] = DiskpartService(executor)
    return ctx.obj["service"]


def size(value: int) -> str:
    return humanize.naturalsize(value, binary=True)


def working(ctx: click.Context, message: str) -> AbstractContextManager[object]:
    """Spinner for interactive output; silent in JSON or quiet mode."""
    if ctx.obj.get("json_output") or ctx.obj.get("quiet"):
        return nullcontext()
    return console.status(message)


def emit(ctx: click.Context, result: CommandResult) -> None:
    """Print a result envelope and exit non-zero on failure."""
    if ctx.obj.get("json_output"):
        click.echo(json.dumps(result.to_dict(), indent=2, default=str))
    elif result.success:
        console.print(f"[green]✓ {escape(result.message)}[/green]")
    else:
        console.print(f"[red]✗ {escape(result.message)}[/red] [dim]({result.error_code})[/dim]")
        if result.details and not ctx.obj.get("quiet"):
            console.print(Panel(escape(result.details.strip()), title="Details", border_style="red"))

    if not result.success:
        sys.exit(1)


def emit_failure(ctx: click.Context, result: CommandResult) -> None:
    if not result.success:
        emit(ctx, result)


def notices(ctx: click.Context) -> Console:
    """Console for warnings and prompts; stderr when stdout carries JSON."""
    return err_console if ctx.obj.get("json_output") else console


def review(ctx: click.Context, report: PreflightReport, target: str) -> None:
    """Show safety warnings and collect confirmation for ``target``."""
    out = notices(ctx)
    to_stderr = out is err_console
    for check in report.checks:
        if check.passed:
            continue
        color = "red" if check.severity in ("error", "critical") else "yellow"
        out.print(f"[{color}]⚠️  {escape(check.message)}[/{color}]")

    if report.has_errors:
        out.print("[red]Operation blocked by safety checks[/red]")
        sys.exit(1)

    config: DiskpartCtlConfig = ctx.obj["config"]
    if ctx.obj.get("assume_yes") or not config.safety.require_confirmation:
        return

    if report.requires_confirmation:
        confirm_str = generate_confirmation_string(target)
        user_confirm = click.prompt(
            f"Type '{confirm_str}' to confirm", default="", err=to_stderr
        )
        if not verify_confirmation(target, user_confirm):
            out.print("[red]Confirmation failed - operation cancelled[/red]")
            sys.exit(1)
    elif not click.confirm("Proceed?", default=False, err=to_stderr):
        out.print("[yellow]Operation cancelled[/yellow]")
        sys.exit(1)


def load_disk(ctx: click.Context, disk_id: int) -> Disk:
    result = get_service(ctx).inspect_disk(disk_id)
    emit_failure(ctx, result)
    return result.data


def load_partition(ctx: click.Context, disk: Disk, partition_id: int) -> Partition:
    """Find the partition and fill in its volume, letter and status."""
    partition = disk.get_partition(partition_id)
    if partition is None:
        emit(ctx, CommandResult.fail(PartitionNotFoundError(partition_id)))

    result = get_service(ctx).detail_partition(disk.id, partition_id)
    emit_failure(ctx, result)
    return result.data.apply_to(partition)  # type: ignore[arg-type]


def show_plan(ctx: click.Context, result: CommandResult, title: str) -> None:
    if ctx.obj.get("json_output"):
        emit(ctx, result)
        return
    if not result.success:
        emit(ctx, result)
    console.print(
        Panel(
            f"[yellow]DRY RUN - No changes will be made[/yellow]\n\n{escape(str(result.data))}",
            title=title,
        )
    )


@click.group()
@click.version_option(version=__version__, prog_name="diskpartctl")
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, path_type=Path),
    help="Path to configuration file",
)
@click.option("--json", "json_output", is_flag=True, help="Output in JSON format")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.option("--yes", "-y", "assume_yes", is_flag=True, help="Skip confirmation prompts")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(
    ctx: click.Context,
    config: Path | None,
    json_output: bool,
    quiet: bool,
    assume_yes: bool,
    verbose: bool,
) -> None:
    """
    diskpartctl - Scripted diskpart automation.

    Lists disks, volumes and partitions and runs partitioning operations
    through diskpart. Requires an elevated (administrator) session.
    """
    ctx.ensure_object(dict)

    if config:
        ctx.obj["config"] = load_config(config)
    elif "config" not in ctx.obj:
        ctx.obj["config"] = load_config()

    loaded: DiskpartCtlConfig = ctx.obj["config"]
    if verbose:
        loaded.logging.level = "DEBUG"
    if quiet:
        loaded.logging.console_enabled = False
    setup_logging(loaded.logging)

    ctx.obj["json_output"] = json_output
    ctx.obj["quiet"] = quiet
    ctx.obj["assume_yes"] = assume_yes


@cli.command("check")
@click.pass_context
def check(ctx: click.Context) -> None:
    """Report platform, privileges and diskpart availability."""
    service = get_service(ctx)
    available = service.executor.is_available()
    elevated = service.executor.elevation_probe()

    if ctx.obj.get("json_output"):
        click.echo(
            json.dumps(
                {
                    "platform": get_platform_name(),
                    "elevated": elevated,
                    "available": available,
                    "diskpart": service.executor.get_version(),
                },
                indent=2,
            )
        )
        return

    console.print(
        Panel(
            f"""[cyan]Platform:[/cyan] {get_platform_name()}
[cyan]Privileges:[/cyan] {privilege_status(service.executor.elevation_probe)}
[cyan]diskpart:[/cyan] {service.executor.get_version()}""",
            title="Environment",
        )
    )


@cli.command("disks")
@click.pass_context
def list_disks(ctx: click.Context) -> None:
    """List all disks."""
    with working(ctx, "Scanning disks..."):
        result = get_service(ctx).list_disks()

    if ctx.obj.get("json_output") or not result.success:
        emit(ctx, result)
        return

    table = Table(title="Disks")
    table.add_column("Disk", style="cyan")
    table.add_column("Status", style="white")
    table.add_column("Size", style="green")
    table.add_column("Free", style="green")
    table.add_column("Type", style="yellow")
    table.add_column("Style", style="magenta")

    for disk in result.data:
        table.add_row(
            str(disk.id),
            disk.status.value,
            size(disk.size_bytes),
            size(disk.free_bytes),
            disk.disk_type.value,
            disk.partition_style.value,
        )

    console.print(table)


@cli.command("volumes")
@click.pass_context
def list_volumes(ctx: click.Context) -> None:
    """List all volumes."""
    with working(ctx, "Scanning volumes..."):
        result = get_service(ctx).list_volumes()

    if ctx.obj.get("json_output") or not result.success:
        emit(ctx, result)
        return

    table = Table(title="Volumes")
    table.add_column("#", style="dim")
    table.add_column("Ltr", style="cyan")
    table.add_column("Label", style="white")
    table.add_column("FS", style="yellow")
    table.add_column("Type", style="blue")
    table.add_column("Size", style="green")
    table.add_column("Status", style="white")
    table.add_column("Info", style="magenta")

    for volume in result.data:
        table.add_row(
            str(volume.number),
            volume.letter or "",
            escape(volume.label or ""),
            volume.file_system,
            volume.type.value,
            size(volume.size_bytes),
            volume.status.value,
            volume.info,
        )

    console.print(table)


def _partition_table(title: str, partitions: tuple[Partition, ...] | list[Partition]) -> Table:
    table = Table(title=title)
    table.add_column("#", style="dim")
    table.add_column("Type", style="yellow")
    table.add_column("Size", style="green")
    table.add_column("Offset", style="blue")
    table.add_column("Status", style="white")

    for partition in partitions:
        table.add_row(
            str(partition.id),
            partition.type.value,
            size(partition.size_bytes),
            size(partition.offset_bytes),
            partition.status.value,
        )
    return table


@cli.command("partitions")
@click.argument("disk", type=int)
@click.pass_context
def list_partitions(ctx: click.Context, disk: int) -> None:
    """List partitions on DISK."""
    with working(ctx, f"Scanning disk {disk}..."):
        result = get_service(ctx).list_partitions(disk)

    if ctx.obj.get("json_output") or not result.success:
        emit(ctx, result)
        return

    console.print(_partition_table(f"Partitions on disk {disk}", result.data))


@cli.command("detail")
@click.argument("disk", type=int)
@click.pass_context
def detail(ctx: click.Context, disk: int) -> None:
    """Show detailed information about DISK."""
    with working(ctx, f"Inspecting disk {disk}..."):
        result = get_service(ctx).inspect_disk(disk)

    if ctx.obj.get("json_output") or not result.success:
        emit(ctx, result)
        return

    info: Disk = result.data
    console.print(
        Panel(
            f"""[cyan]Disk:[/cyan] {info.id}
[cyan]Status:[/cyan] {info.status.value}
[cyan]Size:[/cyan] {size(info.size_bytes)}
[cyan]Free:[/cyan] {size(info.free_bytes)}
[cyan]Type:[/cyan] {info.disk_type.value}
[cyan]Partition style:[/cyan] {info.partition_style.value}
[cyan]System disk:[/cyan] {"Yes" if info.is_system_disk else "No"}
[cyan]Boot disk:[/cyan] {"Yes" if info.is_boot_disk else "No"}""",
            title=f"Disk {info.id}",
        )
    )
    if info.partitions:
        console.print(_partition_table("Partitions", info.partitions))


@cli.command("clean")
@click.argument("disk", type=int)
@click.option("--all", "secure", is_flag=True, help="Zero every sector (slow)")
@click.option("--dry-run", is_flag=True, help="Show the script without running it")
@click.pass_context
def clean(ctx: click.Context, disk: int, secure: bool, dry_run: bool) -> None:
    """Remove all partitions from DISK."""
    service = get_service(ctx)
    action = service.clean_all if secure else service.clean_disk

    if dry_run:
        show_plan(ctx, action(disk, dry_run=True), "Clean Disk Plan")
        return

    config: DiskpartCtlConfig = ctx.obj["config"]
    report = check_disk_operation_safety(
        Operation.CLEAN_ALL if secure else Operation.CLEAN, load_disk(ctx, disk)
    )
    if secure and config.safety.power_check_enabled:
        report.checks.append(check_power_status())
    review(ctx, report, f"disk-{disk}")

    with working(ctx, "Cleaning disk..."):
        result = action(disk)
    emit(ctx, result)


@cli.command("create-partition")
@click.argument("disk", type=int)
@click.option("--size-mb", type=int, help="Partition size in MB (default: all free space)")
@click.option("--dry-run", is_flag=True, help="Show the script without running it")
@click.pass_context
def create_partition(ctx: click.Context, disk: int, size_mb: int | None, dry_run: bool) -> None:
    """Create a primary partition on DISK."""
    service = get_service(ctx)

    if dry_run:
        show_plan(ctx, service.create_partition(disk, size_mb, dry_run=True), "Create Partition Plan")
        return

    target = load_disk(ctx, disk)
    if size_mb is not None:
        valid, error = validate_partition_size(size_mb * MB, target, ctx.obj["config"].safety)
        if not valid:
            emit(ctx, CommandResult.fail(InvalidCommandError(error)))
    review(ctx, check_disk_operation_safety(Operation.CREATE_PARTITION, target), f"disk-{disk}")

    with working(ctx, "Creating partition..."):
        result = service.create_partition(disk, size_mb)
    emit(ctx, result)


@cli.command("delete-partition")
@click.argument("disk", type=int)
@click.argument("partition", type=int)
@click.option("--dry-run", is_flag=True, help="Show the script without running it")
@click.pass_context
def delete_partition(ctx: click.Context, disk: int, partition: int, dry_run: bool) -> None:
    """Delete PARTITION on DISK."""
    service = get_service(ctx)

    if dry_run:
        show_plan(ctx, service.delete_partition(disk, partition, dry_run=True), "Delete Partition Plan")
        return

    target = load_disk(ctx, disk)
    report = check_partition_operation_safety(
        Operation.DELETE_PARTITION, target, load_partition(ctx, target, partition)
    )
    review(ctx, report, f"disk-{disk}-partition-{partition}")

    with working(ctx, "Deleting partition..."):
        result = service.delete_partition(disk, partition)
    emit(ctx, result)


@cli.command("format")
@click.argument("disk", type=int)
@click.argument("partition", type=int)
@click.option(
    "--fs",
    "file_system",
    type=click.Choice(["NTFS", "FAT32", "exFAT", "FAT"], case_sensitive=False),
    default="NTFS",
    show_default=True,
    help="File system",
)
@click.option("--label", "-l", help="Volume label")
@click.option("--full", is_flag=True, help="Full format instead of quick")
@click.option("--dry-run", is_flag=True, help="Show the script without running it")
@click.pass_context
def format_partition(
    ctx: click.Context,
    disk: int,
    partition: int,
    file_system: str,
    label: str | None,
    full: bool,
    dry_run: bool,
) -> None:
    """Format PARTITION on DISK."""
    service = get_service(ctx)

    if dry_run:
        show_plan(
            ctx,
            service.format_partition(disk, partition, file_system, label, not full, dry_run=True),
            "Format Plan",
        )
        return

    target = load_disk(ctx, disk)
    report = check_partition_operation_safety(
        Operation.FORMAT, target, load_partition(ctx, target, partition)
    )
    review(ctx, report, f"disk-{disk}-partition-{partition}")

    with working(ctx, "Formatting..."):
        result = service.format_partition(disk, partition, file_system, label, not full)
    emit(ctx, result)


@cli.command("assign")
@click.argument("disk", type=int)
@click.argument("partition", type=int)
@click.argument("letter")
@click.option("--dry-run", is_flag=True, help="Show the script without running it")
@click.pass_context
def assign_letter(ctx: click.Context, disk: int, partition: int, letter: str, dry_run: bool) -> None:
    """Assign drive LETTER to PARTITION on DISK."""
    service = get_service(ctx)

    if dry_run:
        show_plan(ctx, service.assign_letter(disk, partition, letter, dry_run=True), "Assign Letter Plan")
        return

    valid, error = validate_drive_letter(letter, ctx.obj["config"].safety)
    if not valid and not ctx.obj.get("assume_yes"):
        out = notices(ctx)
        out.print(f"[yellow]⚠️  {escape(error)}[/yellow]")
        if not click.confirm("Assign anyway?", default=False, err=out is err_console):
            sys.exit(1)

    emit(ctx, service.assign_letter(disk, partition, letter))


@cli.command("remove-letter")
@click.argument("disk", type=int)
@click.argument("partition", type=int)
@click.argument("letter")
@click.option("--dry-run", is_flag=True, help="Show the script without running it")
@click.pass_context
def remove_letter(ctx: click.Context, disk: int, partition: int, letter: str, dry_run: bool) -> None:
    """Remove drive LETTER from PARTITION on DISK."""
    service = get_service(ctx)

    if dry_run:
        show_plan(ctx, service.remove_letter(disk, partition, letter, dry_run=True), "Remove Letter Plan")
        return

    emit(ctx, service.remove_letter(disk, partition, letter))


@cli.command("set-active")
@click.argument("disk", type=int)
@click.argument("partition", type=int)
@click.option("--dry-run", is_flag=True, help="Show the script without running it")
@click.pass_context
def set_active(ctx: click.Context, disk: int, partition: int, dry_run: bool) -> None:
    """Mark PARTITION on DISK as active (MBR boot partition)."""
    service = get_service(ctx)

    if dry_run:
        show_plan(ctx, service.set_active(disk, partition, dry_run=True), "Set Active Plan")
        return

    target = load_disk(ctx, disk)
    review(
        ctx,
        check_partition_operation_safety(
            Operation.SET_ACTIVE, target, load_partition(ctx, target, partition)
        ),
        f"disk-{disk}-partition-{partition}",
    )
    emit(ctx, service.set_active(disk, partition))


@cli.command("extend")
@click.argument("disk", type=int)
@click.argument("partition", type=int)
@click.option("--size-mb", type=int, help="MB to add (default: all adjacent free space)")
@click.option("--dry-run", is_flag=True, help="Show the script without running it")
@click.pass_context
def extend(ctx: click.Context, disk: int, partition: int, size_mb: int | None, dry_run: bool) -> None:
    """Extend PARTITION on DISK into free space."""
    service = get_service(ctx)

    if dry_run:
        show_plan(ctx, service.extend_partition(disk, partition, size_mb, dry_run=True), "Extend Plan")
        return

    target = load_disk(ctx, disk)
    review(
        ctx,
        check_partition_operation_safety(
            Operation.EXTEND, target, load_partition(ctx, target, partition)
        ),
        f"disk-{disk}-partition-{partition}",
    )

    with working(ctx, "Extending partition..."):
        result = service.extend_partition(disk, partition, size_mb)
    emit(ctx, result)


@cli.command("shrink")
@click.argument("disk", type=int)
@click.argument("partition", type=int)
@click.option("--desired-mb", type=int, required=True, help="MB to reclaim")
@click.option("--minimum-mb", type=int, help="Smallest acceptable reduction in MB")
@click.option("--dry-run", is_flag=True, help="Show the script without running it")
@click.pass_context
def shrink(
    ctx: click.Context,
    disk: int,
    partition: int,
    desired_mb: int,
    minimum_mb: int | None,
    dry_run: bool,
) -> None:
    """Shrink PARTITION on DISK."""
    service = get_service(ctx)

    if dry_run:
        show_plan(
            ctx,
            service.shrink_partition(disk, partition, desired_mb, minimum_mb, dry_run=True),
            "Shrink Plan",
        )
        return

    target = load_disk(ctx, disk)
    review(
        ctx,
        check_partition_operation_safety(
            Operation.SHRINK, target, load_partition(ctx, target, partition)
        ),
        f"disk-{disk}-partition-{partition}",
    )

    with working(ctx, "Shrinking partition..."):
        result = service.shrink_partition(disk, partition, desired_mb, minimum_mb)
    emit(ctx, result)


def main() -> None:
    """Main entry point."""
    try:
        cli(obj={})
    except KeyboardInterrupt:
        console.print("\n[yellow]Operation cancelled[/yellow]")
        sys.exit(130)
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
