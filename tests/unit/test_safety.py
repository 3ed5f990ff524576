"""
Tests for diskpartctl.core.safety module.
"""

from types import SimpleNamespace
from unittest.mock import patch

import pytest

from diskpartctl.core.config import SafetyConfig
from diskpartctl.core.models import (
    Disk,
    DiskStatus,
    Partition,
    PartitionStatus,
    PartitionType,
)
from diskpartctl.core.safety import (
    Operation,
    PreflightCheck,
    PreflightReport,
    check_disk_operation_safety,
    check_partition_operation_safety,
    check_power_status,
    generate_confirmation_string,
    validate_drive_letter,
    validate_partition_size,
    verify_confirmation,
)

GB = 1024**3
MB = 1024**2


@pytest.fixture
def data_disk() -> Disk:
    return Disk(id=1, status=DiskStatus.ONLINE, size_bytes=100 * GB, free_bytes=10 * GB)


@pytest.fixture
def system_disk() -> Disk:
    return Disk(
        id=0,
        status=DiskStatus.ONLINE,
        size_bytes=238 * GB,
        free_bytes=0,
        is_system_disk=True,
        is_boot_disk=True,
    )


@pytest.fixture
def data_partition() -> Partition:
    return Partition(
        id=2,
        type=PartitionType.PRIMARY,
        size_bytes=50 * GB,
        offset_bytes=MB,
        drive_letter="E",
    )


class TestPreflightReport:
    """Tests for PreflightReport."""

    def test_all_passed(self) -> None:
        report = PreflightReport(
            checks=[
                PreflightCheck(name="Check 1", passed=True, message="OK"),
                PreflightCheck(name="Check 2", passed=True, message="OK"),
            ]
        )
        assert report.all_passed is True
        assert report.has_errors is False
        assert report.has_warnings is False
        assert report.safe is True

    def test_has_errors(self) -> None:
        report = PreflightReport()
        report.add("Target", "No disk selected", severity="error")
        assert report.has_errors is True
        assert report.safe is False

    def test_warnings_need_confirmation(self) -> None:
        report = PreflightReport(requires_confirmation=True)
        report.add("Data Loss", "All data will be lost")
        assert report.has_warnings is True
        assert report.safe is False
        assert report.warnings == ["All data will be lost"]

    def test_summary(self) -> None:
        report = PreflightReport(checks=[PreflightCheck(name="Power", passed=True, message="AC")])
        report.add("Data Loss", "gone")
        summary = report.get_summary()
        assert "1/2 checks passed" in summary
        assert "[✗] Data Loss: gone" in summary


class TestDiskOperationSafety:
    """Tests for whole-disk reviews."""

    def test_no_disk(self) -> None:
        report = check_disk_operation_safety(Operation.CLEAN, None)
        assert report.has_errors is True

    def test_clean_requires_confirmation(self, data_disk: Disk) -> None:
        report = check_disk_operation_safety(Operation.CLEAN, data_disk)
        assert report.requires_confirmation is True
        assert any("PERMANENTLY DELETED" in w for w in report.warnings)
        assert report.has_errors is False

    def test_system_disk_warns(self, system_disk: Disk) -> None:
        report = check_disk_operation_safety(Operation.CLEAN_ALL, system_disk)
        assert "This is a SYSTEM or BOOT disk" in report.warnings
        assert report.requires_confirmation is True

    def test_no_media_blocks(self) -> None:
        disk = Disk(id=3, status=DiskStatus.NO_MEDIA, size_bytes=0, free_bytes=0)
        report = check_disk_operation_safety(Operation.CLEAN, disk)
        assert report.has_errors is True

    def test_create_partition_needs_free_space(self, system_disk: Disk, data_disk: Disk) -> None:
        assert check_disk_operation_safety(Operation.CREATE_PARTITION, system_disk).has_errors
        report = check_disk_operation_safety(Operation.CREATE_PARTITION, data_disk)
        assert report.has_errors is False
        assert report.requires_confirmation is False


class TestPartitionOperationSafety:
    """Tests for partition reviews."""

    def test_no_partition(self, data_disk: Disk) -> None:
        report = check_partition_operation_safety(Operation.FORMAT, data_disk, None)
        assert report.has_errors is True

    def test_delete_mentions_drive(self, data_disk: Disk, data_partition: Partition) -> None:
        report = check_partition_operation_safety(
            Operation.DELETE_PARTITION, data_disk, data_partition
        )
        assert report.requires_confirmation is True
        assert "Drive E: will be removed" in report.warnings

    def test_format_requires_confirmation(self, data_disk: Disk, data_partition: Partition) -> None:
        report = check_partition_operation_safety(Operation.FORMAT, data_disk, data_partition)
        assert report.requires_confirmation is True

    def test_system_partition(self, system_disk: Disk) -> None:
        partition = Partition(
            id=1,
            type=PartitionType.PRIMARY,
            size_bytes=100 * MB,
            offset_bytes=MB,
            status=PartitionStatus.SYSTEM,
        )
        report = check_partition_operation_safety(Operation.SHRINK, system_disk, partition)
        assert report.requires_confirmation is True
        assert "This is a System partition" in report.warnings

    def test_shrink_warns_without_confirmation(
        self, data_disk: Disk, data_partition: Partition
    ) -> None:
        report = check_partition_operation_safety(Operation.SHRINK, data_disk, data_partition)
        assert report.has_warnings is True
        assert report.requires_confirmation is False

    def test_extend_needs_free_space(self, system_disk: Disk, data_partition: Partition) -> None:
        report = check_partition_operation_safety(Operation.EXTEND, system_disk, data_partition)
        assert report.has_errors is True


class TestValidation:
    """Tests for parameter validation."""

    def test_partition_size(self, data_disk: Disk) -> None:
        assert validate_partition_size(GB, data_disk) == (True, None)

    def test_partition_size_too_large(self, data_disk: Disk) -> None:
        valid, error = validate_partition_size(20 * GB, data_disk)
        assert valid is False
        assert "10.0 GiB" in error

    def test_partition_size_too_small(self, data_disk: Disk) -> None:
        valid, error = validate_partition_size(1024, data_disk)
        assert valid is False
        assert "at least" in error

    def test_partition_size_custom_minimum(self, data_disk: Disk) -> None:
        config = SafetyConfig(min_partition_size_bytes=1)
        assert validate_partition_size(1024, data_disk, config) == (True, None)

    def test_partition_size_without_disk(self) -> None:
        assert validate_partition_size(GB, None) == (False, "No disk selected")

    def test_drive_letter(self) -> None:
        assert validate_drive_letter("e") == (True, None)
        assert validate_drive_letter("C")[0] is False
        assert validate_drive_letter("")[0] is False
        assert validate_drive_letter("EF")[0] is False
        assert validate_drive_letter("1")[0] is False

    def test_drive_letter_custom_reserved(self) -> None:
        config = SafetyConfig(reserved_drive_letters=["z"])
        assert validate_drive_letter("C", config) == (True, None)
        assert validate_drive_letter("z", config)[0] is False


class TestPowerStatus:
    """Tests for the battery check."""

    def test_no_battery(self) -> None:
        with patch("diskpartctl.core.safety.psutil.sensors_battery", return_value=None):
            assert check_power_status().passed is True

    def test_on_ac(self) -> None:
        battery = SimpleNamespace(percent=40, power_plugged=True)
        with patch("diskpartctl.core.safety.psutil.sensors_battery", return_value=battery):
            assert check_power_status().passed is True

    def test_low_battery_is_error(self) -> None:
        battery = SimpleNamespace(percent=20, power_plugged=False)
        with patch("diskpartctl.core.safety.psutil.sensors_battery", return_value=battery):
            check = check_power_status()
        assert check.passed is False
        assert check.severity == "error"

    def test_high_battery_is_warning(self) -> None:
        battery = SimpleNamespace(percent=80, power_plugged=False)
        with patch("diskpartctl.core.safety.psutil.sensors_battery", return_value=battery):
            assert check_power_status().severity == "warning"


class TestConfirmation:
    """Tests for typed confirmation strings."""

    def test_generate(self) -> None:
        assert generate_confirmation_string("disk-1") == "DESTROY-DISK-1"
        assert generate_confirmation_string("disk 1/partition:2") == "DESTROY-DISK1PARTITION2"

    def test_verify(self) -> None:
        assert verify_confirmation("disk-1", "DESTROY-DISK-1") is True
        assert verify_confirmation("disk-1", "  DESTROY-DISK-1 \n") is True
        assert verify_confirmation("disk-1", "destroy-disk-1") is False
        assert verify_confirmation("disk-1", "") is False
