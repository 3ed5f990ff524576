"""
Diskpart output parsers.

Parsers for the fixed-width tables printed by ``list disk``, ``list volume``,
``list partition``, ``detail disk`` and ``detail partition``. Rows that do not fit the expected
shape are skipped; a missing table header raises ``ParseError``.
"""

from __future__ import annotations

import re

from diskpartctl.core.errors import ParseError
from diskpartctl.core.logging import get_logger
from diskpartctl.core.models import (
    Disk,
    DiskDetail,
    DiskStatus,
    DiskType,
    Partition,
    PartitionDetail,
    PartitionStyle,
    PartitionType,
    Volume,
    VolumeStatus,
    VolumeType,
)

logger = get_logger(__name__)

DISK_HEADER = "Disk ###"
VOLUME_HEADER = "Volume ###"
PARTITION_HEADER = "Partition ###"

KNOWN_FILE_SYSTEMS = frozenset({"NTFS", "FAT32", "FAT", "EXFAT", "RAW", "REFS", "UDF", "CDFS"})
VOLUME_TYPE_TOKENS = frozenset(
    {"partition", "removable", "cd-rom", "dvd-rom", "simple", "spanned", "stripe", "mirror", "raid-5"}
)

_UNIT_POWERS = {"B": 0, "KB": 1, "MB": 2, "GB": 3, "TB": 4}
_SIZE_RE = re.compile(r"(\d+)\s*([A-Za-z]+)")
_SIZE_PATTERN = r"\d+\s*[KMGT]?B"

_DISK_ROW_RE = re.compile(
    rf"^\s*\*?\s*Disk\s+(\d+)\s+(.+?)\s+({_SIZE_PATTERN})\s+({_SIZE_PATTERN})((?:\s+\*)*)\s*$"
)
_PARTITION_ROW_RE = re.compile(
    rf"^\s*\*?\s*Partition\s+(\d+)\s+(.+?)\s+({_SIZE_PATTERN})\s+({_SIZE_PATTERN})\s*$"
)
_FLAG_RE = re.compile(r"^\s*(Active|Hidden)\s*:\s*(\w+)", re.MULTILINE)
_TOKEN_RE = re.compile(r"\S+")
_DASHES_RE = re.compile(r"-+")

# Column indexes in the dash separator under each table header
_DISK_DYN_COLUMN = 4
_DISK_GPT_COLUMN = 5
_VOLUME_LTR_COLUMN = 1


def parse_size(size_str: str | None) -> int:
    """Parse a size string like '238 GB' to bytes; unknown units give 0."""
    if not size_str:
        return 0

    match = _SIZE_RE.fullmatch(size_str.strip())
    if not match:
        return 0

    power = _UNIT_POWERS.get(match.group(2).upper())
    if power is None:
        return 0

    return int(match.group(1)) * 1024**power


def normalize_disk_status(status: str) -> DiskStatus:
    normalized = status.strip().lower()
    if "online" in normalized:
        return DiskStatus.ONLINE
    if "no media" in normalized:
        return DiskStatus.NO_MEDIA
    return DiskStatus.OFFLINE


def normalize_volume_type(vol_type: str) -> VolumeType:
    normalized = vol_type.strip().lower()
    if "removable" in normalized:
        return VolumeType.REMOVABLE
    if "cd" in normalized or "dvd" in normalized:
        return VolumeType.CD_ROM
    return VolumeType.PARTITION


def normalize_partition_type(part_type: str) -> PartitionType:
    normalized = part_type.strip().lower()
    if "extended" in normalized:
        return PartitionType.EXTENDED
    if "logical" in normalized:
        return PartitionType.LOGICAL
    return PartitionType.PRIMARY


def normalize_volume_status(status: str) -> VolumeStatus:
    if status.strip().lower() == "healthy":
        return VolumeStatus.HEALTHY
    return VolumeStatus.FAILED


def _locate_table(output: str, marker: str, name: str) -> tuple[list[tuple[int, int]], list[str]]:
    """Return the separator column spans and the data rows below ``marker``."""
    lines = output.splitlines()
    for index, line in enumerate(lines):
        if marker in line:
            break
    else:
        raise ParseError(f"Could not find {name} list header in output", output)

    rows = lines[index + 1 :]
    spans: list[tuple[int, int]] = []
    if rows and rows[0].strip().startswith("-"):
        spans = [(m.start(), m.end()) for m in _DASHES_RE.finditer(rows[0])]
        rows = rows[1:]
    return spans, rows


def _within(position: int, span: tuple[int, int]) -> bool:
    return span[0] <= position < span[1]


def _assign_markers(positions: list[int], spans: list[tuple[int, int]]) -> tuple[bool, bool]:
    """Decide (dynamic, gpt) from the columns of the trailing '*' markers."""
    if not positions:
        return False, False

    if len(spans) > _DISK_GPT_COLUMN:
        dyn_span = spans[_DISK_DYN_COLUMN]
        gpt_span = spans[_DISK_GPT_COLUMN]
        if all(_within(p, dyn_span) or _within(p, gpt_span) for p in positions):
            dynamic = any(_within(p, dyn_span) for p in positions)
            gpt = any(_within(p, gpt_span) for p in positions)
            return dynamic, gpt

    # Row not aligned with the header: a lone marker can only be told apart by count
    if len(positions) >= 2:
        return True, True
    return False, True


def parse_list_disk(output: str) -> list[Disk]:
    """
    Parse ``list disk`` output.

      Disk ###  Status         Size     Free     Dyn  Gpt
      --------  -------------  -------  -------  ---  ---
      Disk 0    Online          238 GB      0 B        *
    """
    spans, rows = _locate_table(output, DISK_HEADER, "disk")
    disks: list[Disk] = []

    for line in rows:
        match = _DISK_ROW_RE.match(line)
        if not match:
            if line.strip():
                logger.debug("Skipping unrecognized disk row", line=line)
            continue

        markers_start = match.start(5)
        positions = [
            markers_start + offset
            for offset, char in enumerate(match.group(5))
            if char == "*"
        ]
        dynamic, gpt = _assign_markers(positions, spans)

        disks.append(
            Disk(
                id=int(match.group(1)),
                status=normalize_disk_status(match.group(2)),
                size_bytes=parse_size(match.group(3)),
                free_bytes=parse_size(match.group(4)),
                disk_type=DiskType.DYNAMIC if dynamic else DiskType.BASIC,
                partition_style=PartitionStyle.GPT if gpt else PartitionStyle.MBR,
            )
        )

    return disks


def _split_volume_row(tokens: list[str]) -> tuple[int, str, list[str], list[str]] | None:
    """Find the anchor column; returns (index, file system, before, after)."""
    for index in range(len(tokens) - 1):
        if (
            tokens[index].upper() in KNOWN_FILE_SYSTEMS
            and tokens[index + 1].lower() in VOLUME_TYPE_TOKENS
        ):
            return index, tokens[index], tokens[:index], tokens[index + 1 :]

    for index, token in enumerate(tokens):
        if token.upper() in KNOWN_FILE_SYSTEMS:
            return index, token, tokens[:index], tokens[index + 1 :]

    for index, token in enumerate(tokens):
        if token.lower() in VOLUME_TYPE_TOKENS:
            return index, "", tokens[:index], tokens[index:]

    return None


def _parse_volume_row(line: str, ltr_span: tuple[int, int] | None) -> Volume | None:
    positioned = [(m.group(), m.start()) for m in _TOKEN_RE.finditer(line)]
    if positioned and positioned[0][0] == "*":
        positioned = positioned[1:]
    if len(positioned) < 2 or positioned[0][0] != "Volume" or not positioned[1][0].isdigit():
        return None

    number = int(positioned[1][0])
    rest = positioned[2:]
    split = _split_volume_row([token for token, _ in rest])
    if split is None:
        return None

    anchor, file_system, before, after = split
    if len(after) < 3:
        return None

    letter = None
    if before and len(before[0]) == 1 and before[0].isascii() and before[0].isalpha():
        start = rest[0][1]
        if ltr_span is None or ltr_span[0] - 1 <= start <= ltr_span[1]:
            letter = before[0].upper()
            before = before[1:]

    status_tokens = after[3:]
    if status_tokens[:2] == ["No", "Media"]:
        status, info_tokens = "No Media", status_tokens[2:]
    elif status_tokens:
        status, info_tokens = status_tokens[0], status_tokens[1:]
    else:
        status, info_tokens = "", []

    return Volume(
        number=number,
        letter=letter,
        label=" ".join(before) or None,
        file_system=file_system,
        type=normalize_volume_type(after[0]),
        size_bytes=parse_size(f"{after[1]} {after[2]}"),
        status=normalize_volume_status(status),
        info=" ".join(info_tokens),
    )


def parse_list_volume(output: str) -> list[Volume]:
    """
    Parse ``list volume`` output.

      Volume ###  Ltr  Label        Fs     Type        Size     Status     Info
      ----------  ---  -----------  -----  ----------  -------  ---------  --------
      Volume 0     D   Data         NTFS   Partition    100 GB  Healthy
      Volume 1     C   System       NTFS   Partition    138 GB  Healthy    System

    The label column may contain spaces, so rows are anchored on the file
    system token instead of fixed offsets.
    """
    spans, rows = _locate_table(output, VOLUME_HEADER, "volume")
    ltr_span = spans[_VOLUME_LTR_COLUMN] if len(spans) > _VOLUME_LTR_COLUMN else None
    volumes: list[Volume] = []

    for line in rows:
        volume = _parse_volume_row(line, ltr_span)
        if volume is None:
            if line.strip():
                logger.debug("Skipping unrecognized volume row", line=line)
            continue
        volumes.append(volume)

    return volumes


def parse_list_partition(output: str) -> list[Partition]:
    """
    Parse ``list partition`` output.

      Partition ###  Type              Size     Offset
      -------------  ----------------  -------  -------
      Partition 1    Primary            100 MB  1024 KB
    """
    _, rows = _locate_table(output, PARTITION_HEADER, "partition")
    partitions: list[Partition] = []

    for line in rows:
        match = _PARTITION_ROW_RE.match(line)
        if not match:
            if line.strip():
                logger.debug("Skipping unrecognized partition row", line=line)
            continue

        partitions.append(
            Partition(
                id=int(match.group(1)),
                type=normalize_partition_type(match.group(2)),
                size_bytes=parse_size(match.group(3)),
                offset_bytes=parse_size(match.group(4)),
            )
        )

    return partitions


def parse_detail_disk(output: str) -> DiskDetail:
    """
    Parse ``detail disk`` output.

    Flags come from the ``Boot Disk``, ``Pagefile Disk`` and ``Type`` lines.
    The embedded volume table marks the disk as a system disk when any of its
    volumes is flagged System or Boot. Missing tables are not an error.
    """
    is_boot = False
    is_system = False
    disk_type: DiskType | None = None

    for line in output.splitlines():
        if "Boot Disk" in line and "Yes" in line:
            is_boot = True
        if "Pagefile Disk" in line and "Yes" in line:
            is_system = True
        if "Type" in line and "Dynamic" in line:
            disk_type = DiskType.DYNAMIC

    volumes: list[Volume] = []
    if VOLUME_HEADER in output:
        volumes = parse_list_volume(output[output.index(VOLUME_HEADER) :])
        if any(volume.is_system for volume in volumes):
            is_system = True

    partitions: list[Partition] = []
    if PARTITION_HEADER in output:
        partitions = parse_list_partition(output[output.index(PARTITION_HEADER) :])

    return DiskDetail(
        is_boot_disk=is_boot,
        is_system_disk=is_system,
        disk_type=disk_type,
        volumes=tuple(volumes),
        partitions=tuple(partitions),
    )


def parse_detail_partition(output: str) -> PartitionDetail:
    """
    Parse ``detail partition`` output.

      Partition 2
      Type    : 07
      Hidden  : No
      Active  : Yes
      Offset in Bytes: 1048576

        Volume ###  Ltr  Label        Fs     Type        Size     Status     Info
        ----------  ---  -----------  -----  ----------  -------  ---------  --------
      * Volume 1     C   Windows      NTFS   Partition    237 GB  Healthy    Boot

    GPT partitions have no ``Active`` line. A partition without a volume
    prints no table at all.
    """
    flags = {name.lower(): value.lower() == "yes" for name, value in _FLAG_RE.findall(output)}

    volume: Volume | None = None
    if VOLUME_HEADER in output:
        volumes = parse_list_volume(output[output.index(VOLUME_HEADER) :])
        volume = volumes[0] if volumes else None

    return PartitionDetail(
        active=flags.get("active", False),
        hidden=flags.get("hidden", False),
        volume=volume,
    )
