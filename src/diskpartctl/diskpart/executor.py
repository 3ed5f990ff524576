"""
Diskpart command executor.

Runs a script through ``diskpart /s`` and always answers with a
``CommandResult``: privilege check, temp script, subprocess with timeout,
output classification, cleanup, optional parsing.

Invocations are independent and not serialized against each other; callers
must serialize destructive operations on the same disk themselves.
"""

from __future__ import annotations

import subprocess
import sys
import tempfile
import time
import uuid
from collections.abc import Callable
from pathlib import Path
from typing import Any, TypeVar

from diskpartctl.core.config import ExecutorConfig
from diskpartctl.core.errors import (
    AccessDeniedError,
    CommandExecutionError,
    CommandTimeoutError,
    ErrorCode,
    ParseError,
    PrivilegeError,
    error_for_code,
)
from diskpartctl.core.logging import AuditLog, get_logger
from diskpartctl.core.models import CommandResult, ProcessOutput
from diskpartctl.diskpart.classifier import OutputClassifier, extract_error_message
from diskpartctl.platform import ElevationProbe, find_executable, is_admin

logger = get_logger(__name__)

T = TypeVar("T")

# diskpart reads scripts and writes output in the OEM code page
SCRIPT_ENCODING = "oem" if sys.platform == "win32" else "utf-8"


class DiskpartExecutor:
    """Executes diskpart scripts."""

    def __init__(
        self,
        config: ExecutorConfig | None = None,
        elevation_probe: ElevationProbe = is_admin,
        classifier: OutputClassifier | None = None,
        audit: AuditLog | None = None,
    ) -> None:
        self.config = config or ExecutorConfig()
        self.elevation_probe = elevation_probe
        self.classifier = classifier or OutputClassifier()
        self.audit = audit or AuditLog()

    @property
    def default_timeout(self) -> float:
        return self.config.default_timeout_seconds

    @property
    def destructive_timeout(self) -> float:
        return self.config.destructive_timeout_seconds

    def run_command(self, command: list[str], timeout: float) -> ProcessOutput:
        """Run a command, raising CommandTimeoutError or CommandExecutionError."""
        logger.debug("Running command", command=command, timeout=timeout)
        start_time = time.time()

        kwargs: dict[str, Any] = {}
        if sys.platform == "win32":
            # Hide the console window diskpart would otherwise open
            startupinfo = subprocess.STARTUPINFO()
            startupinfo.dwFlags |= subprocess.STARTF_USESHOWWINDOW
            startupinfo.wShowWindow = subprocess.SW_HIDE
            kwargs["startupinfo"] = startupinfo
            kwargs["creationflags"] = subprocess.CREATE_NO_WINDOW

        try:
            completed = subprocess.run(
                command,
                capture_output=True,
                text=True,
                encoding=SCRIPT_ENCODING,
                errors="replace",
                timeout=timeout,
                **kwargs,
            )
        except subprocess.TimeoutExpired as exc:
            raise CommandTimeoutError(
                timeout, f"Command exceeded timeout of {timeout:g}s"
            ) from exc
        except OSError as exc:
            if "access is denied" in str(exc).lower():
                raise AccessDeniedError(details=str(exc)) from exc
            raise CommandExecutionError("Failed to execute diskpart command", str(exc)) from exc

        return ProcessOutput(
            returncode=completed.returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
            command=tuple(command),
            duration_seconds=time.time() - start_time,
        )

    def execute(self, script: str, timeout: float | None = None) -> CommandResult:
        """Run a script; never raises."""
        if timeout is None:
            timeout = self.default_timeout

        if not self.elevation_probe():
            error = PrivilegeError(
                "Administrator privileges required to execute diskpart commands",
                "Restart the application as administrator",
            )
            logger.error("Privilege check failed", script=script)
            self.audit.error("Privilege check failed", {"script": script})
            return CommandResult.fail(error)

        self.audit.log_command(script)

        try:
            script_path = self._create_temp_script(script)
        except CommandExecutionError as error:
            logger.error("Could not write script file", error=error.details)
            self.audit.error(error.message, {"script": script, "error": error.details})
            return CommandResult.fail(error)

        command = [self.config.diskpart_path, "/s", str(script_path)]
        try:
            process = self.run_command(command, timeout)
        except CommandTimeoutError as error:
            logger.error("Command timeout", script=script, timeout=timeout)
            self.audit.error("Command timeout", {"script": script, "timeout": timeout})
            return CommandResult.fail(error)
        except (CommandExecutionError, AccessDeniedError) as error:
            logger.error("Command execution failed", script=script, error=error.details)
            self.audit.error("Command execution failed", {"script": script, "error": error.details})
            return CommandResult.fail(error)
        finally:
            self._delete_temp_script(script_path)

        return self._interpret(script, process)

    def execute_destructive(self, script: str) -> CommandResult:
        """Run a script with the longer timeout for destructive operations."""
        return self.execute(script, timeout=self.destructive_timeout)

    def execute_and_parse(
        self,
        script: str,
        parser: Callable[[str], T],
        timeout: float | None = None,
    ) -> CommandResult:
        """Run a script and hand its output to ``parser``."""
        result = self.execute(script, timeout)
        if not result.success:
            return result

        process: ProcessOutput = result.data
        output = process.output

        try:
            parsed = parser(output)
        except ParseError as error:
            logger.error("Failed to parse command output", script=script, error=error.message)
            return CommandResult.fail(error, data=process, details=output)
        except (ValueError, IndexError) as exc:
            logger.error("Failed to parse command output", script=script, error=str(exc))
            error = ParseError(f"Failed to parse command output: {exc}", output)
            return CommandResult.fail(error, data=process)

        return CommandResult.ok(
            "Command executed and parsed successfully",
            data=parsed,
            details=output,
        )

    def is_available(self) -> bool:
        """Check whether diskpart resolves on the search path."""
        return find_executable(self.config.diskpart_path) is not None

    def get_version(self) -> str:
        # diskpart has no version switch; report presence only
        return "Available" if self.is_available() else "Not Found"

    def _interpret(self, script: str, process: ProcessOutput) -> CommandResult:
        output = process.output
        classification = self.classifier.classify(output)
        failed = process.returncode != 0 or not classification.success

        self.audit.log_result(script, not failed, output, process.stderr)

        if not failed:
            return CommandResult.ok(
                "Command executed successfully",
                data=process,
                details=output,
            )

        if "access is denied" in output.lower():
            error = AccessDeniedError(details=output)
        else:
            code = classification.code or ErrorCode.COMMAND_EXECUTION_ERROR
            message = extract_error_message(output)
            if message is None:
                if process.returncode != 0:
                    message = f"diskpart exited with code {process.returncode}"
                else:
                    message = "Command failed"
            error = error_for_code(code, message, output)

        logger.warning(
            "Command failed",
            script=script,
            returncode=process.returncode,
            error_code=error.code.value,
            output=output[:500],
        )
        return CommandResult.fail(error, data=process)

    def _create_temp_script(self, script: str) -> Path:
        directory = self.config.temp_directory or Path(tempfile.gettempdir())
        name = f"{self.config.script_prefix}{int(time.time() * 1000)}_{uuid.uuid4().hex[:8]}.txt"
        script_path = directory / name

        try:
            with open(script_path, "x", encoding=SCRIPT_ENCODING) as f:
                f.write(script)
        except FileExistsError as exc:
            raise CommandExecutionError("Failed to create temporary script file", str(exc)) from exc
        except (OSError, UnicodeError) as exc:
            self._delete_temp_script(script_path)
            raise CommandExecutionError("Failed to create temporary script file", str(exc)) from exc

        return script_path

    def _delete_temp_script(self, script_path: Path) -> None:
        try:
            script_path.unlink(missing_ok=True)
        except OSError as exc:
            logger.warning("Failed to delete temp script", path=str(script_path), error=str(exc))
