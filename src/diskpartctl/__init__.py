"""
diskpartctl - Scripted diskpart automation.

Builds diskpart scripts, runs them with privilege and timeout checks, and
parses the disk, volume and partition tables diskpart prints.
"""

__version__ = "1.0.0"
__author__ = "diskpartctl Team"

from diskpartctl.core.config import DiskpartCtlConfig
from diskpartctl.core.models import CommandResult
from diskpartctl.diskpart.executor import DiskpartExecutor
from diskpartctl.diskpart.service import DiskpartService

__all__ = [
    "CommandResult",
    "DiskpartCtlConfig",
    "DiskpartExecutor",
    "DiskpartService",
    "__version__",
]
