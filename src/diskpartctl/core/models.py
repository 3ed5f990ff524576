"""
diskpartctl data models.

Defines the immutable records produced by the diskpart output parsers and the
uniform result envelope returned by every public operation.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any

from diskpartctl.core.errors import DiskpartError, ErrorCode


class DiskStatus(Enum):
    """Disk online state as reported by diskpart."""

    ONLINE = "Online"
    OFFLINE = "Offline"
    NO_MEDIA = "No Media"


class DiskType(Enum):
    """Basic or dynamic disk."""

    BASIC = "Basic"
    DYNAMIC = "Dynamic"


class PartitionStyle(Enum):
    """Partition table style."""

    MBR = "MBR"
    GPT = "GPT"


class PartitionType(Enum):
    """Partition role."""

    PRIMARY = "Primary"
    EXTENDED = "Extended"
    LOGICAL = "Logical"


class PartitionStatus(Enum):
    """Partition status."""

    HEALTHY = "Healthy"
    ACTIVE = "Active"
    SYSTEM = "System"
    BOOT = "Boot"


class VolumeType(Enum):
    """Volume media type."""

    PARTITION = "Partition"
    REMOVABLE = "Removable"
    CD_ROM = "CD-ROM"


class VolumeStatus(Enum):
    """Volume health."""

    HEALTHY = "Healthy"
    FAILED = "Failed"


@dataclass(frozen=True)
class Partition:
    """A partition on the disk that was selected when it was listed."""

    id: int  # 1-based, unique only within the owning disk
    type: PartitionType
    size_bytes: int
    offset_bytes: int
    status: PartitionStatus = PartitionStatus.HEALTHY
    file_system: str | None = None
    label: str | None = None
    drive_letter: str | None = None

    @property
    def end_bytes(self) -> int:
        return self.offset_bytes + self.size_bytes

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type.value,
            "size_bytes": self.size_bytes,
            "offset_bytes": self.offset_bytes,
            "status": self.status.value,
            "file_system": self.file_system,
            "label": self.label,
            "drive_letter": self.drive_letter,
        }


@dataclass(frozen=True)
class Disk:
    """A disk as reported by one enumeration pass."""

    id: int  # positional, reassigned by the OS on every rescan
    status: DiskStatus
    size_bytes: int
    free_bytes: int
    disk_type: DiskType = DiskType.BASIC
    partition_style: PartitionStyle = PartitionStyle.MBR
    is_system_disk: bool = False
    is_boot_disk: bool = False
    partitions: tuple[Partition, ...] = ()

    @property
    def used_bytes(self) -> int:
        return max(0, self.size_bytes - self.free_bytes)

    @property
    def is_protected(self) -> bool:
        """True for disks the OS is running from."""
        return self.is_system_disk or self.is_boot_disk

    def get_partition(self, partition_id: int) -> Partition | None:
        for partition in self.partitions:
            if partition.id == partition_id:
                return partition
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "status": self.status.value,
            "size_bytes": self.size_bytes,
            "free_bytes": self.free_bytes,
            "disk_type": self.disk_type.value,
            "partition_style": self.partition_style.value,
            "is_system_disk": self.is_system_disk,
            "is_boot_disk": self.is_boot_disk,
            "partitions": [p.to_dict() for p in self.partitions],
        }


@dataclass(frozen=True)
class Volume:
    """An OS-level volume from ``list volume``."""

    number: int
    file_system: str
    type: VolumeType
    size_bytes: int
    status: VolumeStatus
    letter: str | None = None
    label: str | None = None
    info: str = ""

    @property
    def is_system(self) -> bool:
        info = self.info.lower()
        return "system" in info or "boot" in info

    @property
    def is_hidden(self) -> bool:
        return "hidden" in self.info.lower()

    def to_dict(self) -> dict[str, Any]:
        return {
            "number": self.number,
            "letter": self.letter,
            "label": self.label,
            "file_system": self.file_system,
            "type": self.type.value,
            "size_bytes": self.size_bytes,
            "status": self.status.value,
            "info": self.info,
        }


@dataclass(frozen=True)
class DiskDetail:
    """Facts extracted from ``detail disk`` output."""

    is_boot_disk: bool = False
    is_system_disk: bool = False
    disk_type: DiskType | None = None
    volumes: tuple[Volume, ...] = ()
    partitions: tuple[Partition, ...] = ()

    def apply_to(self, disk: Disk) -> Disk:
        """Return a copy of ``disk`` carrying the detail flags and partitions."""
        return replace(
            disk,
            is_boot_disk=disk.is_boot_disk or self.is_boot_disk,
            is_system_disk=disk.is_system_disk or self.is_system_disk,
            disk_type=self.disk_type or disk.disk_type,
            partitions=self.partitions or disk.partitions,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "is_boot_disk": self.is_boot_disk,
            "is_system_disk": self.is_system_disk,
            "disk_type": self.disk_type.value if self.disk_type else None,
            "volumes": [v.to_dict() for v in self.volumes],
            "partitions": [p.to_dict() for p in self.partitions],
        }


@dataclass(frozen=True)
class PartitionDetail:
    """Facts extracted from ``detail partition`` output."""

    active: bool = False
    hidden: bool = False
    volume: Volume | None = None

    @property
    def status(self) -> PartitionStatus:
        info = self.volume.info.lower() if self.volume else ""
        if "boot" in info:
            return PartitionStatus.BOOT
        if "system" in info:
            return PartitionStatus.SYSTEM
        if self.active:
            return PartitionStatus.ACTIVE
        return PartitionStatus.HEALTHY

    def apply_to(self, partition: Partition) -> Partition:
        """Return a copy of ``partition`` carrying its volume and status."""
        if self.volume is None:
            return replace(partition, status=self.status)
        return replace(
            partition,
            status=self.status,
            file_system=self.volume.file_system or partition.file_system,
            label=self.volume.label or partition.label,
            drive_letter=self.volume.letter or partition.drive_letter,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "active": self.active,
            "hidden": self.hidden,
            "status": self.status.value,
            "volume": self.volume.to_dict() if self.volume else None,
        }


@dataclass(frozen=True)
class ProcessOutput:
    """Captured output of one diskpart run."""

    returncode: int
    stdout: str
    stderr: str
    command: tuple[str, ...] = ()
    duration_seconds: float = 0.0

    @property
    def output(self) -> str:
        """Combined text used for classification and parsing."""
        if self.stdout and self.stderr:
            return f"{self.stdout}\n{self.stderr}"
        return self.stdout or self.stderr

    def to_dict(self) -> dict[str, Any]:
        return {
            "returncode": self.returncode,
            "stdout": self.stdout,
            "stderr": self.stderr,
            "command": list(self.command),
            "duration_seconds": self.duration_seconds,
        }


@dataclass(frozen=True)
class CommandResult:
    """Result envelope returned by every public operation."""

    success: bool
    message: str
    error_code: str | None = None
    details: str | None = None
    data: Any = field(default=None, compare=False)

    @classmethod
    def ok(cls, message: str, data: Any = None, details: str | None = None) -> CommandResult:
        return cls(success=True, message=message, details=details, data=data)

    @classmethod
    def fail(
        cls,
        error: DiskpartError,
        data: Any = None,
        details: str | None = None,
    ) -> CommandResult:
        return cls(
            success=False,
            message=error.message,
            error_code=error.code.value,
            details=details if details is not None else error.details,
            data=data,
        )

    def has_code(self, code: ErrorCode) -> bool:
        return self.error_code == code.value

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "success": self.success,
            "message": self.message,
        }
        if self.error_code is not None:
            result["error_code"] = self.error_code
        if self.details is not None:
            result["details"] = self.details
        if self.data is not None:
            result["data"] = _serialize(self.data)
        return result


def _serialize(value: Any) -> Any:
    if hasattr(value, "to_dict"):
        return value.to_dict()
    if isinstance(value, (list, tuple)):
        return [_serialize(v) for v in value]
    if isinstance(value, Enum):
        return value.value
    return value
