"""
diskpartctl diskpart layer.

Script builders, output parsers, the output classifier, the executor and
the operation service built on top of them.
"""

from diskpartctl.diskpart.classifier import OutputClassifier, OutputRule, extract_error_message
from diskpartctl.diskpart.executor import DiskpartExecutor
from diskpartctl.diskpart.parsers import (
    parse_detail_disk,
    parse_list_disk,
    parse_list_partition,
    parse_list_volume,
    parse_size,
)
from diskpartctl.diskpart.service import DiskpartService

__all__ = [
    "DiskpartExecutor",
    "DiskpartService",
    "OutputClassifier",
    "OutputRule",
    "extract_error_message",
    "parse_detail_disk",
    "parse_list_disk",
    "parse_list_partition",
    "parse_list_volume",
    "parse_size",
]
