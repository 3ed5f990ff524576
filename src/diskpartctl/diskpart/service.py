"""
Diskpart operations.

One method per user-level operation. Each builds its script, runs it through
the executor and returns a ``CommandResult``; invalid parameters come back as
``INVALID_COMMAND`` results without spawning diskpart.
"""

from __future__ import annotations

from collections.abc import Callable

from diskpartctl.core.errors import DiskNotFoundError, InvalidCommandError
from diskpartctl.core.logging import OperationLogger, get_logger
from diskpartctl.core.models import CommandResult, Disk, DiskDetail
from diskpartctl.diskpart import commands
from diskpartctl.diskpart.executor import DiskpartExecutor
from diskpartctl.diskpart.parsers import (
    parse_detail_disk,
    parse_detail_partition,
    parse_list_disk,
    parse_list_partition,
    parse_list_volume,
)

logger = get_logger(__name__)


class DiskpartService:
    """High-level diskpart operations."""

    def __init__(self, executor: DiskpartExecutor | None = None) -> None:
        self.executor = executor or DiskpartExecutor()

    def _run(
        self,
        operation: str,
        build: Callable[[], str],
        destructive: bool = False,
        success_message: str | None = None,
        dry_run: bool = False,
        **context: object,
    ) -> CommandResult:
        with OperationLogger(operation, logger, dry_run=dry_run, **context) as op:
            try:
                script = build()
            except InvalidCommandError as error:
                op.success = False
                op.update(error_code=error.code.value, error=error.message)
                return CommandResult.fail(error)

            if dry_run:
                return CommandResult.ok(f"Would run {operation}", data=script, details=script)

            if destructive:
                result = self.executor.execute_destructive(script)
            else:
                result = self.executor.execute(script)

            op.success = result.success
            if not result.success:
                op.update(error_code=result.error_code)
                return result

        return CommandResult.ok(
            success_message or result.message,
            data=result.data,
            details=result.details,
        )

    def _query(
        self,
        operation: str,
        build: Callable[[], str],
        parser: Callable[[str], object],
        **context: object,
    ) -> CommandResult:
        with OperationLogger(operation, logger, **context) as op:
            try:
                script = build()
            except InvalidCommandError as error:
                op.success = False
                return CommandResult.fail(error)

            result = self.executor.execute_and_parse(script, parser)
            op.success = result.success
            if not result.success:
                op.update(error_code=result.error_code)
            return result

    # ==================== Queries ====================

    def list_disks(self) -> CommandResult:
        return self._query("list disks", commands.build_list_disks, parse_list_disk)

    def list_volumes(self) -> CommandResult:
        return self._query("list volumes", commands.build_list_volumes, parse_list_volume)

    def list_partitions(self, disk_id: int) -> CommandResult:
        return self._query(
            "list partitions",
            lambda: commands.build_script(
                [commands.build_select_disk(disk_id), commands.build_list_partitions()]
            ),
            parse_list_partition,
            disk_id=disk_id,
        )

    def detail_disk(self, disk_id: int) -> CommandResult:
        return self._query(
            "detail disk",
            lambda: commands.build_detail_disk_script(disk_id),
            parse_detail_disk,
            disk_id=disk_id,
        )

    def detail_partition(self, disk_id: int, partition_id: int) -> CommandResult:
        return self._query(
            "detail partition",
            lambda: commands.build_detail_partition_script(disk_id, partition_id),
            parse_detail_partition,
            disk_id=disk_id,
            partition_id=partition_id,
        )

    def inspect_disk(self, disk_id: int) -> CommandResult:
        """Enumerate disks, then merge ``detail disk`` facts into the match.

        Disk numbers are positional, so the enumeration is repeated on every
        call rather than cached.
        """
        listed = self.list_disks()
        if not listed.success:
            return listed

        disk: Disk | None = next((d for d in listed.data if d.id == disk_id), None)
        if disk is None:
            return CommandResult.fail(
                DiskNotFoundError(disk_id, f"Known disks: {[d.id for d in listed.data]}")
            )

        detailed = self.detail_disk(disk_id)
        if not detailed.success:
            return detailed

        detail: DiskDetail = detailed.data
        return CommandResult.ok(
            f"Disk {disk_id} inspected",
            data=detail.apply_to(disk),
            details=detailed.details,
        )

    # ==================== Disk operations ====================

    def select_disk(self, disk_id: int) -> CommandResult:
        return self._run(
            "select disk",
            lambda: commands.build_select_disk(disk_id),
            success_message=f"Disk {disk_id} selected successfully",
            disk_id=disk_id,
        )

    def clean_disk(self, disk_id: int, dry_run: bool = False) -> CommandResult:
        return self._run(
            "clean disk",
            lambda: commands.build_script(
                [commands.build_select_disk(disk_id), commands.build_clean()]
            ),
            destructive=True,
            success_message=f"Disk {disk_id} cleaned successfully",
            dry_run=dry_run,
            disk_id=disk_id,
        )

    def clean_all(self, disk_id: int, dry_run: bool = False) -> CommandResult:
        return self._run(
            "clean all",
            lambda: commands.build_script(
                [commands.build_select_disk(disk_id), commands.build_clean_all()]
            ),
            destructive=True,
            success_message=f"All data on disk {disk_id} erased",
            dry_run=dry_run,
            disk_id=disk_id,
        )

    def create_partition(
        self, disk_id: int, size_mb: int | None = None, dry_run: bool = False
    ) -> CommandResult:
        return self._run(
            "create partition",
            lambda: commands.build_script(
                [
                    commands.build_select_disk(disk_id),
                    commands.build_create_partition(size_mb),
                ]
            ),
            success_message=f"Partition created on disk {disk_id}",
            dry_run=dry_run,
            disk_id=disk_id,
            size_mb=size_mb,
        )

    # ==================== Partition operations ====================

    def _partition_script(self, disk_id: int, partition_id: int, *instructions: str) -> str:
        return commands.build_script(
            [
                commands.build_select_disk(disk_id),
                commands.build_select_partition(partition_id),
                *instructions,
            ]
        )

    def delete_partition(
        self, disk_id: int, partition_id: int, dry_run: bool = False
    ) -> CommandResult:
        return self._run(
            "delete partition",
            lambda: self._partition_script(
                disk_id, partition_id, commands.build_delete_partition()
            ),
            destructive=True,
            success_message=f"Partition {partition_id} deleted from disk {disk_id}",
            dry_run=dry_run,
            disk_id=disk_id,
            partition_id=partition_id,
        )

    def format_partition(
        self,
        disk_id: int,
        partition_id: int,
        file_system: str,
        label: str | None = None,
        quick: bool = True,
        dry_run: bool = False,
    ) -> CommandResult:
        return self._run(
            "format partition",
            lambda: commands.build_format_partition_script(
                disk_id, partition_id, file_system, label, quick
            ),
            destructive=True,
            success_message=f"Partition {partition_id} formatted as {str(file_system).upper()}",
            dry_run=dry_run,
            disk_id=disk_id,
            partition_id=partition_id,
            file_system=file_system,
        )

    def assign_letter(
        self, disk_id: int, partition_id: int, letter: str, dry_run: bool = False
    ) -> CommandResult:
        return self._run(
            "assign letter",
            lambda: self._partition_script(
                disk_id, partition_id, commands.build_assign_letter(letter)
            ),
            success_message=f"Drive letter {str(letter).upper()}: assigned",
            dry_run=dry_run,
            disk_id=disk_id,
            partition_id=partition_id,
        )

    def remove_letter(
        self, disk_id: int, partition_id: int, letter: str, dry_run: bool = False
    ) -> CommandResult:
        return self._run(
            "remove letter",
            lambda: self._partition_script(
                disk_id, partition_id, commands.build_remove_letter(letter)
            ),
            success_message=f"Drive letter {str(letter).upper()}: removed",
            dry_run=dry_run,
            disk_id=disk_id,
            partition_id=partition_id,
        )

    def set_active(
        self, disk_id: int, partition_id: int, dry_run: bool = False
    ) -> CommandResult:
        return self._run(
            "set active",
            lambda: self._partition_script(disk_id, partition_id, commands.build_set_active()),
            success_message=f"Partition {partition_id} marked active",
            dry_run=dry_run,
            disk_id=disk_id,
            partition_id=partition_id,
        )

    def extend_partition(
        self,
        disk_id: int,
        partition_id: int,
        size_mb: int | None = None,
        dry_run: bool = False,
    ) -> CommandResult:
        return self._run(
            "extend partition",
            lambda: self._partition_script(
                disk_id, partition_id, commands.build_extend(size_mb)
            ),
            destructive=True,
            success_message=f"Partition {partition_id} extended",
            dry_run=dry_run,
            disk_id=disk_id,
            partition_id=partition_id,
            size_mb=size_mb,
        )

    def shrink_partition(
        self,
        disk_id: int,
        partition_id: int,
        desired_mb: int,
        minimum_mb: int | None = None,
        dry_run: bool = False,
    ) -> CommandResult:
        return self._run(
            "shrink partition",
            lambda: self._partition_script(
                disk_id, partition_id, commands.build_shrink(desired_mb, minimum_mb)
            ),
            destructive=True,
            success_message=f"Partition {partition_id} shrunk by {desired_mb} MB",
            dry_run=dry_run,
            disk_id=disk_id,
            partition_id=partition_id,
            desired_mb=desired_mb,
        )
