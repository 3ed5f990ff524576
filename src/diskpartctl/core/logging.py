"""
diskpartctl structured logging.

Provides structured logging for debugging plus an audit trail of every
diskpart invocation.
"""

from __future__ import annotations

import json
import logging
import sys
from collections import deque
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

import structlog
from structlog.types import EventDict, WrappedLogger

if TYPE_CHECKING:
    from diskpartctl.core.config import LoggingConfig


_configured = False

DEFAULT_AUDIT_ENTRIES = 500


def add_timestamp(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Add ISO format timestamp to log events."""
    event_dict["timestamp"] = datetime.now().isoformat()
    return event_dict


def add_log_level(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Add log level to event dict."""
    event_dict["level"] = method_name.upper()
    return event_dict


def setup_logging(config: LoggingConfig) -> None:
    """Configure structured logging for diskpartctl."""
    global _configured

    if _configured:
        return

    handlers: list[logging.Handler] = []

    if config.console_enabled:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(getattr(logging, config.level))
        handlers.append(console_handler)

    if config.file_enabled:
        config.log_directory.mkdir(parents=True, exist_ok=True)
        log_file = config.log_directory / f"diskpartctl_{datetime.now().strftime('%Y%m%d')}.log"
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        handlers.append(file_handler)

    logging.basicConfig(
        level=logging.DEBUG,
        handlers=handlers,
        format="%(message)s",
    )

    shared_processors: list[structlog.types.Processor] = [
        structlog.stdlib.add_logger_name,
        add_timestamp,
        add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if config.json_format:
        renderer: list[structlog.types.Processor] = [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        renderer = [structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())]

    structlog.configure(
        processors=shared_processors + renderer,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    _configured = True


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name or "diskpartctl")


class OperationLogger:
    """Context manager for logging operations with start/end tracking."""

    def __init__(
        self,
        operation: str,
        logger: structlog.stdlib.BoundLogger | None = None,
        **context: Any,
    ):
        self.operation = operation
        self.logger = logger or get_logger()
        self.context = context
        self.start_time: datetime | None = None
        self.success: bool | None = None

    def __enter__(self) -> OperationLogger:
        self.start_time = datetime.now()
        self.logger.info(
            f"Starting {self.operation}",
            operation=self.operation,
            **self.context,
        )
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        duration = (datetime.now() - self.start_time).total_seconds() if self.start_time else 0

        if exc_type is not None:
            self.logger.error(
                f"Failed {self.operation}",
                operation=self.operation,
                duration_seconds=duration,
                error_type=exc_type.__name__,
                error=str(exc_val),
                **self.context,
            )
        elif self.success is False:
            self.logger.warning(
                f"Failed {self.operation}",
                operation=self.operation,
                duration_seconds=duration,
                **self.context,
            )
        else:
            self.logger.info(
                f"Completed {self.operation}",
                operation=self.operation,
                duration_seconds=duration,
                **self.context,
            )

    def update(self, **additional_context: Any) -> None:
        """Update the operation context."""
        self.context.update(additional_context)


class AuditLog:
    """Audit trail of diskpart invocations.

    Entries are ``{timestamp, level, message, details}`` records mirrored to
    structlog and written as JSON by :meth:`save`. Only the newest
    ``max_entries`` are kept in memory.
    """

    def __init__(
        self,
        audit_file: Path | None = None,
        logger: structlog.stdlib.BoundLogger | None = None,
        max_entries: int = DEFAULT_AUDIT_ENTRIES,
    ):
        self.audit_file = audit_file
        self.logger = logger or get_logger("diskpartctl.audit")
        self.entries: deque[dict[str, Any]] = deque(maxlen=max_entries)

    def log(self, level: str, message: str, details: Any = None) -> None:
        entry = {
            "timestamp": datetime.now().isoformat(),
            "level": level,
            "message": message,
            "details": details,
        }
        self.entries.append(entry)

        log_method = getattr(self.logger, level.lower(), self.logger.info)
        log_method(message, details=details)

    def info(self, message: str, details: Any = None) -> None:
        self.log("INFO", message, details)

    def warning(self, message: str, details: Any = None) -> None:
        self.log("WARNING", message, details)

    def error(self, message: str, details: Any = None) -> None:
        self.log("ERROR", message, details)

    def log_command(self, script: str) -> None:
        self.info("Executing diskpart script", {"script": script})

    def log_result(self, script: str, success: bool, output: str, stderr: str = "") -> None:
        details = {"script": script, "output": output, "stderr": stderr}
        if success:
            self.info("Diskpart script succeeded", details)
        else:
            self.error("Diskpart script failed", details)

    def save(self) -> None:
        """Save the audit trail to its file."""
        if self.audit_file is None:
            return

        self.audit_file.parent.mkdir(parents=True, exist_ok=True)
        with open(self.audit_file, "w", encoding="utf-8") as f:
            json.dump(
                {
                    "audit_file": str(self.audit_file),
                    "entries": list(self.entries),
                    "summary": {
                        "total_entries": len(self.entries),
                        "errors": sum(1 for e in self.entries if e["level"] == "ERROR"),
                        "warnings": sum(1 for e in self.entries if e["level"] == "WARNING"),
                    },
                },
                f,
                indent=2,
                default=str,
            )
