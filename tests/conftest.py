"""
Pytest configuration and fixtures for diskpartctl tests.
"""

import sys
import tempfile
from pathlib import Path
from typing import Generator

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))


LIST_DISK_OUTPUT = """
Microsoft DiskPart version 10.0.22621.1

Copyright (C) Microsoft Corporation.
On computer: WORKSTATION

  Disk ###  Status         Size     Free     Dyn  Gpt
  --------  -------------  -------  -------  ---  ---
  Disk 0    Online          238 GB      0 B        *
  Disk 1    Online         1863 GB  1024 KB   *    *
  Disk 2    No Media           0 B      0 B
"""

LIST_VOLUME_OUTPUT = """
  Volume ###  Ltr  Label        Fs     Type        Size     Status     Info
  ----------  ---  -----------  -----  ----------  -------  ---------  --------
  Volume 0     E                       DVD-ROM         0 B  No Media
  Volume 1     C   Windows      NTFS   Partition    237 GB  Healthy    Boot
  Volume 2         SYSTEM       FAT32  Partition    100 MB  Healthy    System
  Volume 3     D   My Backup    NTFS   Partition    931 GB  Healthy
  Volume 4         Recovery     NTFS   Partition    522 MB  Healthy    Hidden
"""

LIST_PARTITION_OUTPUT = """
  Partition ###  Type              Size     Offset
  -------------  ----------------  -------  -------
  Partition 1    System             100 MB  1024 KB
  Partition 2    Reserved            16 MB   101 MB
  Partition 3    Primary            237 GB   117 MB
  Partition 4    Recovery           522 MB   237 GB
"""

DETAIL_DISK_OUTPUT = """
Disk 0 is now the selected disk.

Samsung SSD 970 EVO Plus 250GB
Disk ID: {8A1B2C3D-0000-0000-0000-000000000000}
Type   : NVMe
Status : Online
Path   : 0
Target : 0
LUN ID : 0
Location Path : PCIROOT(0)#PCI(0104)#PCI(0000)#NVME(P00T00L00)
Current Read-only State : No
Read-only  : No
Boot Disk  : Yes
Pagefile Disk  : Yes
Hibernation File Disk  : No
Crashdump Disk  : Yes
Clustered Disk  : No

  Volume ###  Ltr  Label        Fs     Type        Size     Status     Info
  ----------  ---  -----------  -----  ----------  -------  ---------  --------
  Volume 1     C   Windows      NTFS   Partition    237 GB  Healthy    Boot
  Volume 2         SYSTEM       FAT32  Partition    100 MB  Healthy    System

  Partition ###  Type              Size     Offset
  -------------  ----------------  -------  -------
  Partition 1    System             100 MB  1024 KB
  Partition 2    Primary            237 GB   117 MB
"""


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def sample_config(temp_dir: Path) -> "DiskpartCtlConfig":
    """Create a sample configuration for testing."""
    from diskpartctl.core.config import DiskpartCtlConfig

    config = DiskpartCtlConfig(audit_directory=temp_dir / "audit")
    config.logging.log_directory = temp_dir / "logs"
    config.executor.temp_directory = temp_dir / "scripts"
    config.ensure_directories()
    return config


@pytest.fixture
def executor(sample_config: "DiskpartCtlConfig") -> "DiskpartExecutor":
    """Create an executor that believes it is elevated."""
    from diskpartctl.diskpart.executor import DiskpartExecutor

    return DiskpartExecutor(sample_config.executor, elevation_probe=lambda: True)


@pytest.fixture
def script_dir(sample_config: "DiskpartCtlConfig") -> Path:
    """Directory the executor writes its temporary scripts to."""
    return sample_config.executor.temp_directory


@pytest.fixture
def list_disk_output() -> str:
    return LIST_DISK_OUTPUT


@pytest.fixture
def list_volume_output() -> str:
    return LIST_VOLUME_OUTPUT


@pytest.fixture
def list_partition_output() -> str:
    return LIST_PARTITION_OUTPUT


@pytest.fixture
def detail_disk_output() -> str:
    return DETAIL_DISK_OUTPUT


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")
    config.addinivalue_line("markers", "slow: Slow running tests")
