"""
diskpartctl Core - shared infrastructure.

Contains the error taxonomy, data models, configuration, logging and safety
checks used by the diskpart layer.
"""

from diskpartctl.core.config import DiskpartCtlConfig, load_config
from diskpartctl.core.errors import DiskpartError, ErrorCode
from diskpartctl.core.logging import AuditLog, get_logger, setup_logging
from diskpartctl.core.models import CommandResult, Disk, DiskDetail, Partition, Volume

__all__ = [
    "AuditLog",
    "CommandResult",
    "Disk",
    "DiskDetail",
    "DiskpartCtlConfig",
    "DiskpartError",
    "ErrorCode",
    "Partition",
    "Volume",
    "get_logger",
    "load_config",
    "setup_logging",
]
