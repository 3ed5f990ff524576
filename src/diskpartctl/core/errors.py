"""
diskpartctl error taxonomy.

A closed set of failure kinds shared by the builder, parser, executor and
service layers. Each kind has exactly one exception class and one code.
"""

from __future__ import annotations

from enum import Enum


class ErrorCode(Enum):
    """Machine-readable failure codes."""

    PRIVILEGE_ERROR = "PRIVILEGE_ERROR"
    DISK_NOT_FOUND = "DISK_NOT_FOUND"
    PARTITION_NOT_FOUND = "PARTITION_NOT_FOUND"
    COMMAND_EXECUTION_ERROR = "COMMAND_EXECUTION_ERROR"
    COMMAND_TIMEOUT = "COMMAND_TIMEOUT"
    PARSE_ERROR = "PARSE_ERROR"
    INVALID_COMMAND = "INVALID_COMMAND"
    ACCESS_DENIED = "ACCESS_DENIED"


class DiskpartError(Exception):
    """Base error carrying a code, a human message and optional details."""

    code: ErrorCode = ErrorCode.COMMAND_EXECUTION_ERROR
    default_message = "Diskpart operation failed"

    def __init__(self, message: str | None = None, details: str | None = None) -> None:
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> dict[str, str | None]:
        return {
            "code": self.code.value,
            "message": self.message,
            "details": self.details,
        }

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code.value!r}, message={self.message!r})"


class PrivilegeError(DiskpartError):
    code = ErrorCode.PRIVILEGE_ERROR
    default_message = "Administrator privileges required"


class DiskNotFoundError(DiskpartError):
    code = ErrorCode.DISK_NOT_FOUND
    default_message = "Disk not found"
    disk_id: int | None = None

    def __init__(self, disk_id: int | None = None, details: str | None = None) -> None:
        self.disk_id = disk_id
        message = f"Disk {disk_id} not found" if disk_id is not None else None
        super().__init__(message, details)


class PartitionNotFoundError(DiskpartError):
    code = ErrorCode.PARTITION_NOT_FOUND
    default_message = "Partition not found"
    partition_id: int | None = None

    def __init__(self, partition_id: int | None = None, details: str | None = None) -> None:
        self.partition_id = partition_id
        message = f"Partition {partition_id} not found" if partition_id is not None else None
        super().__init__(message, details)


class CommandExecutionError(DiskpartError):
    code = ErrorCode.COMMAND_EXECUTION_ERROR
    default_message = "Failed to execute diskpart command"


class CommandTimeoutError(DiskpartError):
    code = ErrorCode.COMMAND_TIMEOUT
    default_message = "Command timed out"
    timeout: float | None = None

    def __init__(self, timeout: float | None = None, details: str | None = None) -> None:
        self.timeout = timeout
        message = f"Command timed out after {timeout:g}s" if timeout is not None else None
        super().__init__(message, details)


class ParseError(DiskpartError):
    code = ErrorCode.PARSE_ERROR
    default_message = "Failed to parse command output"


class InvalidCommandError(DiskpartError):
    code = ErrorCode.INVALID_COMMAND
    default_message = "Invalid command parameter"


class AccessDeniedError(DiskpartError):
    code = ErrorCode.ACCESS_DENIED
    default_message = "Access denied to disk or partition"


_ERRORS_BY_CODE: dict[ErrorCode, type[DiskpartError]] = {
    ErrorCode.PRIVILEGE_ERROR: PrivilegeError,
    ErrorCode.DISK_NOT_FOUND: DiskNotFoundError,
    ErrorCode.PARTITION_NOT_FOUND: PartitionNotFoundError,
    ErrorCode.COMMAND_EXECUTION_ERROR: CommandExecutionError,
    ErrorCode.COMMAND_TIMEOUT: CommandTimeoutError,
    ErrorCode.PARSE_ERROR: ParseError,
    ErrorCode.INVALID_COMMAND: InvalidCommandError,
    ErrorCode.ACCESS_DENIED: AccessDeniedError,
}


def error_for_code(
    code: ErrorCode,
    message: str | None = None,
    details: str | None = None,
) -> DiskpartError:
    """Build the error instance that belongs to a code."""
    error_class = _ERRORS_BY_CODE[code]
    error = error_class.__new__(error_class)
    DiskpartError.__init__(error, message, details)
    return error
