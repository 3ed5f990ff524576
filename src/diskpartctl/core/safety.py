"""
diskpartctl safety checks.

Warnings and confirmation strings for destructive operations, computed from
the most recently parsed disk and partition records.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

import humanize
import psutil

from diskpartctl.core.config import SafetyConfig
from diskpartctl.core.logging import get_logger
from diskpartctl.core.models import Disk, DiskStatus, Partition, PartitionStatus

logger = get_logger(__name__)


class Operation(Enum):
    """Operations that need a safety review."""

    CLEAN = "clean"
    CLEAN_ALL = "clean_all"
    CREATE_PARTITION = "create_partition"
    DELETE_PARTITION = "delete_partition"
    FORMAT = "format"
    ASSIGN_LETTER = "assign_letter"
    REMOVE_LETTER = "remove_letter"
    SET_ACTIVE = "set_active"
    EXTEND = "extend"
    SHRINK = "shrink"


@dataclass
class PreflightCheck:
    """Result of a single preflight check."""

    name: str
    passed: bool
    message: str
    severity: str = "info"  # info, warning, error, critical
    details: dict[str, Any] = field(default_factory=dict)


@dataclass
class PreflightReport:
    """Safety review of one operation."""

    checks: list[PreflightCheck] = field(default_factory=list)
    requires_confirmation: bool = False
    timestamp: datetime = field(default_factory=datetime.now)

    @property
    def all_passed(self) -> bool:
        return all(c.passed for c in self.checks)

    @property
    def has_errors(self) -> bool:
        return any(c.severity in ("error", "critical") and not c.passed for c in self.checks)

    @property
    def has_warnings(self) -> bool:
        return any(c.severity == "warning" and not c.passed for c in self.checks)

    @property
    def safe(self) -> bool:
        """No blocking errors, and either no warnings or no confirmation needed."""
        if self.has_errors:
            return False
        return self.all_passed or not self.requires_confirmation

    @property
    def warnings(self) -> list[str]:
        return [c.message for c in self.checks if not c.passed]

    def add(self, name: str, message: str, severity: str = "warning") -> None:
        self.checks.append(PreflightCheck(name=name, passed=False, message=message, severity=severity))

    def get_summary(self) -> str:
        """Get human-readable summary."""
        passed = sum(1 for c in self.checks if c.passed)
        lines = [f"Results: {passed}/{len(self.checks)} checks passed"]
        for check in self.checks:
            status = "✓" if check.passed else "✗"
            lines.append(f"[{status}] {check.name}: {check.message}")
        return "\n".join(lines)


_DATA_LOSS_OPERATIONS = {Operation.CLEAN, Operation.CLEAN_ALL}


def check_disk_operation_safety(operation: Operation, disk: Disk | None) -> PreflightReport:
    """Review a whole-disk operation."""
    report = PreflightReport()

    if disk is None:
        report.add("Target", "No disk selected", severity="error")
        return report

    if disk.is_protected:
        report.add("System Disk", "This is a SYSTEM or BOOT disk")
        report.add("System Disk", "Operating on this disk may make your system unbootable")
        report.requires_confirmation = True

    if disk.status == DiskStatus.OFFLINE:
        report.add("Disk Status", "Disk is currently offline")
    elif disk.status == DiskStatus.NO_MEDIA:
        report.add("Disk Status", "Disk has no media", severity="error")

    if operation in _DATA_LOSS_OPERATIONS:
        report.add("Data Loss", f"ALL DATA on disk {disk.id} will be PERMANENTLY DELETED")
        report.add("Data Loss", "All partitions will be removed")
        report.requires_confirmation = True
    elif operation == Operation.CREATE_PARTITION and disk.free_bytes == 0:
        report.add("Free Space", "No free space available on disk", severity="error")

    return report


def check_partition_operation_safety(
    operation: Operation,
    disk: Disk | None,
    partition: Partition | None,
) -> PreflightReport:
    """Review an operation on one partition."""
    report = PreflightReport()

    if disk is None:
        report.add("Target", "No disk selected", severity="error")
        return report
    if partition is None:
        report.add("Target", "No partition selected", severity="error")
        return report

    if disk.is_protected:
        report.add("System Disk", "This partition is on a SYSTEM or BOOT disk")

    if partition.status in (PartitionStatus.SYSTEM, PartitionStatus.BOOT):
        report.add("System Partition", f"This is a {partition.status.value} partition")
        report.add("System Partition", "Modifying this partition may make your system unbootable")
        report.requires_confirmation = True

    drive = f"Drive {partition.drive_letter}:" if partition.drive_letter else None

    if operation == Operation.DELETE_PARTITION:
        report.add("Data Loss", "The partition and ALL its data will be permanently deleted")
        if drive:
            report.add("Data Loss", f"{drive} will be removed")
        report.requires_confirmation = True
    elif operation == Operation.FORMAT:
        report.add("Data Loss", "ALL DATA on this partition will be erased")
        if drive:
            report.add("Data Loss", f"{drive} will be formatted")
        report.requires_confirmation = True
    elif operation == Operation.SHRINK:
        report.add("Shrink", "Shrinking may fail if there are unmovable files")
        report.add("Shrink", "Backup important data before shrinking")
    elif operation == Operation.EXTEND and disk.free_bytes == 0:
        report.add("Free Space", "No free space available on disk", severity="error")

    return report


def validate_partition_size(
    size_bytes: int,
    disk: Disk | None,
    config: SafetyConfig | None = None,
) -> tuple[bool, str | None]:
    """Check a requested partition size against the disk's free space."""
    config = config or SafetyConfig()

    if disk is None:
        return False, "No disk selected"
    if size_bytes <= 0:
        return False, "Size must be greater than 0"
    if size_bytes > disk.free_bytes:
        return False, (
            "Size exceeds available free space "
            f"({humanize.naturalsize(disk.free_bytes, binary=True)})"
        )
    if size_bytes < config.min_partition_size_bytes:
        return False, (
            "Partition size must be at least "
            f"{humanize.naturalsize(config.min_partition_size_bytes, binary=True)}"
        )
    return True, None


def validate_drive_letter(
    letter: str,
    config: SafetyConfig | None = None,
) -> tuple[bool, str | None]:
    """Check a drive letter for assignment."""
    config = config or SafetyConfig()

    if not letter:
        return False, "Drive letter is required"
    upper = letter.upper()
    if len(upper) != 1:
        return False, "Drive letter must be a single character"
    if not re.fullmatch(r"[A-Z]", upper):
        return False, "Drive letter must be A-Z"
    if upper in config.reserved_drive_letters:
        return False, f"Drive letter {upper}: is typically reserved"
    return True, None


def check_power_status() -> PreflightCheck:
    """Check that a long-running wipe will not run on a draining battery."""
    try:
        battery = psutil.sensors_battery()
    except (AttributeError, NotImplementedError, OSError) as e:
        return PreflightCheck(
            name="Power Status",
            passed=True,
            message=f"Could not check power status: {e}",
        )

    if battery is None:
        return PreflightCheck(
            name="Power Status",
            passed=True,
            message="No battery detected (desktop/server)",
        )

    if battery.power_plugged:
        return PreflightCheck(
            name="Power Status",
            passed=True,
            message="System is on AC power",
            details={"battery_percent": battery.percent},
        )

    return PreflightCheck(
        name="Power Status",
        passed=False,
        message=f"System on battery ({battery.percent}%)",
        severity="warning" if battery.percent > 50 else "error",
        details={"battery_percent": battery.percent},
    )


def generate_confirmation_string(target_identifier: str) -> str:
    """Generate a confirmation string that includes the target identifier."""
    safe_target = re.sub(r"[^a-zA-Z0-9_-]", "", target_identifier)
    return f"DESTROY-{safe_target.upper()}"


def verify_confirmation(target_identifier: str, user_input: str) -> bool:
    expected = generate_confirmation_string(target_identifier)
    if user_input.strip() != expected:
        logger.warning(
            "Confirmation verification failed",
            expected=expected,
            received=user_input,
        )
        return False
    logger.info("Operation confirmed", target=target_identifier)
    return True
