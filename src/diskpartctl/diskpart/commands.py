"""
Diskpart script builders.

Each builder validates its parameters and returns one script instruction.
Instructions that act on a disk or partition are only valid after the
matching ``select`` instruction earlier in the same script; ``build_script``
keeps the order it is given.
"""

from __future__ import annotations

import re
from collections.abc import Sequence

from diskpartctl.core.errors import InvalidCommandError

FILE_SYSTEMS = ("NTFS", "FAT32", "EXFAT", "FAT")
NTFS_LABEL_MAX = 32
FAT_LABEL_MAX = 11

_DRIVE_LETTER_RE = re.compile(r"[A-Za-z]")


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _require_positive(value: object, what: str) -> int:
    if not _is_int(value) or value <= 0:  # type: ignore[operator]
        raise InvalidCommandError(f"Invalid {what}: {value!r}", "Must be a positive integer")
    return value  # type: ignore[return-value]


def _require_letter(letter: object) -> str:
    if not isinstance(letter, str) or not _DRIVE_LETTER_RE.fullmatch(letter):
        raise InvalidCommandError(f"Invalid drive letter: {letter!r}", "Must be A-Z")
    return letter.upper()


def build_list_disks() -> str:
    return "list disk"


def build_list_volumes() -> str:
    return "list volume"


def build_list_partitions() -> str:
    """List partitions of the selected disk."""
    return "list partition"


def build_detail_disk() -> str:
    """Describe the selected disk."""
    return "detail disk"


def build_detail_partition() -> str:
    return "detail partition"


def build_select_disk(disk_number: int) -> str:
    if not _is_int(disk_number) or disk_number < 0:
        raise InvalidCommandError(
            f"Invalid disk number: {disk_number!r}", "Must be a non-negative integer"
        )
    return f"select disk {disk_number}"


def build_select_partition(partition_number: int) -> str:
    if not _is_int(partition_number) or partition_number < 1:
        raise InvalidCommandError(
            f"Invalid partition number: {partition_number!r}", "Partition numbers start at 1"
        )
    return f"select partition {partition_number}"


def build_clean() -> str:
    """Remove all partition information from the selected disk."""
    return "clean"


def build_clean_all() -> str:
    """Zero every sector of the selected disk."""
    return "clean all"


def build_create_partition(size_mb: int | None = None) -> str:
    """Create a primary partition, using all free space when no size is given."""
    if size_mb is None:
        return "create partition primary"
    size_mb = _require_positive(size_mb, "partition size")
    return f"create partition primary size={size_mb}"


def build_delete_partition() -> str:
    return "delete partition"


def build_format(file_system: str, label: str | None = None, quick: bool = True) -> str:
    """Format the selected partition or volume."""
    if not isinstance(file_system, str) or file_system.upper() not in FILE_SYSTEMS:
        raise InvalidCommandError(
            f"Invalid file system: {file_system!r}",
            f"Must be one of: {', '.join(FILE_SYSTEMS)}",
        )
    fs_upper = file_system.upper()
    command = f"format fs={fs_upper}"

    if label:
        max_length = NTFS_LABEL_MAX if fs_upper == "NTFS" else FAT_LABEL_MAX
        if len(label) > max_length:
            raise InvalidCommandError(
                f"Label too long: {len(label)} characters",
                f"Maximum is {max_length} for {fs_upper}",
            )
        if '"' in label or not label.isprintable():
            raise InvalidCommandError(
                f"Invalid label: {label!r}",
                "Labels cannot contain quotes, line breaks or unencodable characters",
            )
        command += f' label="{label}"'

    if quick:
        command += " quick"

    return command


def build_assign_letter(letter: str) -> str:
    return f"assign letter={_require_letter(letter)}"


def build_remove_letter(letter: str) -> str:
    return f"remove letter={_require_letter(letter)}"


def build_set_active() -> str:
    """Mark the selected MBR partition as active."""
    return "active"


def build_extend(size_mb: int | None = None) -> str:
    """Extend the selected volume into following free space."""
    if size_mb is None:
        return "extend"
    size_mb = _require_positive(size_mb, "extend size")
    return f"extend size={size_mb}"


def build_shrink(desired_mb: int, minimum_mb: int | None = None) -> str:
    """Shrink the selected volume by ``desired_mb``, accepting ``minimum_mb``."""
    desired_mb = _require_positive(desired_mb, "shrink size")
    command = f"shrink desired={desired_mb}"
    if minimum_mb is not None:
        minimum_mb = _require_positive(minimum_mb, "minimum shrink size")
        command += f" minimum={minimum_mb}"
    return command


def build_script(instructions: Sequence[str]) -> str:
    """Join instructions into one newline-delimited script, preserving order."""
    if not instructions:
        raise InvalidCommandError("No commands provided")

    for instruction in instructions:
        if not isinstance(instruction, str) or not instruction.strip():
            raise InvalidCommandError(f"Invalid instruction: {instruction!r}")
        if "\n" in instruction or "\r" in instruction:
            raise InvalidCommandError(
                "Instructions must be single lines", repr(instruction)
            )

    return "\n".join(instructions)


def build_detail_disk_script(disk_number: int) -> str:
    return build_script(
        [
            build_select_disk(disk_number),
            build_detail_disk(),
            build_list_partitions(),
        ]
    )


def build_detail_partition_script(disk_number: int, partition_number: int) -> str:
    return build_script(
        [
            build_select_disk(disk_number),
            build_select_partition(partition_number),
            build_detail_partition(),
        ]
    )


def build_format_partition_script(
    disk_number: int,
    partition_number: int,
    file_system: str,
    label: str | None = None,
    quick: bool = True,
) -> str:
    return build_script(
        [
            build_select_disk(disk_number),
            build_select_partition(partition_number),
            build_format(file_system, label, quick),
        ]
    )
